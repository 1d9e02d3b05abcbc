import argparse
import json
import sys
from pathlib import Path

from dotenv import load_dotenv

load_dotenv()

from privacy_footprint.app.run import clamp_limit, connect_gmail_mailbox, run_discovery
from privacy_footprint.config.paths import ACCOUNTS_PATH, ANALYSES_PATH, SCAN_LIMIT_DEFAULT
from privacy_footprint.errors import PrivacyFootprintError
from privacy_footprint.pipeline.orchestrator import analyze_policy_text, analyze_policy_url
from privacy_footprint.policy.source import HttpPolicySource
from privacy_footprint.risk.classifier import OpenAIRiskClassifier
from privacy_footprint.storage.accounts import JsonAccountStore
from privacy_footprint.storage.analyses import JsonAnalysisStore


def cmd_discover(args: argparse.Namespace) -> dict:
    mailbox = connect_gmail_mailbox()
    store = JsonAccountStore(ACCOUNTS_PATH)
    return run_discovery(
        args.user,
        mailbox,
        store,
        limit=clamp_limit(args.limit),
        max_workers=args.workers,
        verbose=args.verbose,
    )


def cmd_analyze(args: argparse.Namespace) -> dict:
    classifier = OpenAIRiskClassifier()
    store = JsonAnalysisStore(ANALYSES_PATH)

    if args.url:
        analysis = analyze_policy_url(
            args.user,
            args.url,
            source=HttpPolicySource(),
            classifier=classifier,
            service_name=args.service,
            store=store,
        )
    else:
        text = Path(args.file).read_text(encoding="utf-8")
        analysis = analyze_policy_text(
            args.user,
            text,
            classifier=classifier,
            service_name=args.service,
            store=store,
        )
    return analysis.model_dump(mode="json", exclude={"policy_hash"})


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(description="Discover signed-up services and review their privacy policies.")
    sub = parser.add_subparsers(dest="command", required=True)

    discover = sub.add_parser("discover", help="Scan Gmail for service accounts")
    discover.add_argument("--user", required=True)
    discover.add_argument("--limit", type=int, default=SCAN_LIMIT_DEFAULT)
    discover.add_argument("--workers", type=int, default=1)
    discover.add_argument("--verbose", action="store_true")
    discover.set_defaults(func=cmd_discover)

    analyze = sub.add_parser("analyze", help="Analyze a privacy policy")
    analyze.add_argument("--user", required=True)
    source = analyze.add_mutually_exclusive_group(required=True)
    source.add_argument("--url")
    source.add_argument("--file")
    analyze.add_argument("--service")
    analyze.set_defaults(func=cmd_analyze)

    return parser


def main() -> int:
    args = build_parser().parse_args()
    try:
        result = args.func(args)
    except (PrivacyFootprintError, ValueError) as exc:
        print(f"[error] {type(exc).__name__}: {exc}", file=sys.stderr)
        return 1
    print(json.dumps(result, indent=2, ensure_ascii=False))
    return 0


if __name__ == "__main__":
    raise SystemExit(main())

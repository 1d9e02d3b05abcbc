# src/privacy_footprint/app/run.py
from __future__ import annotations

from dataclasses import dataclass, asdict, field
from datetime import datetime, timezone
from typing import Optional, Dict, Any, List, Callable, Sequence

from privacy_footprint.config.paths import SECRETS_DIR, SCAN_LIMIT_DEFAULT, SCAN_LIMIT_MAX
from privacy_footprint.discovery.aggregator import aggregate_signals
from privacy_footprint.discovery.merge import merge_into_store
from privacy_footprint.gmail.client import (
    GmailClient,
    GmailClientConfig,
    GmailMailbox,
    default_search_queries,
)
from privacy_footprint.interfaces import AccountStore, Mailbox
from privacy_footprint.models import EmailSignal
from privacy_footprint.observability.logging import get_logger

logger = get_logger(__name__)

ProgressCallback = Callable[[str, Dict[str, Any]], None]


@dataclass
class DiscoverySummary:
    fetched: int = 0
    fetch_errors: int = 0
    signals: int = 0
    skipped_no_domain: int = 0
    skipped_bad_date: int = 0
    discovered_count: int = 0
    created: int = 0
    updated: int = 0
    store_errors: int = 0
    accounts: List[Dict[str, Any]] = field(default_factory=list)


def load_gmail_config() -> GmailClientConfig:
    credentials_path = SECRETS_DIR / "credentials.json"
    if not credentials_path.exists():
        raise RuntimeError(
            f"Missing Gmail credentials at {credentials_path}. "
            "Did you configure PRIVACY_FOOTPRINT_SECRETS_DIR?"
        )

    token_path = SECRETS_DIR / "gmail_token.json"
    return GmailClientConfig(
        credentials_path=credentials_path,
        token_path=token_path,
        user_id="me",
    )


def connect_gmail_mailbox() -> GmailMailbox:
    client = GmailClient(load_gmail_config())
    client.connect()
    return GmailMailbox(client)


def clamp_limit(limit: Optional[int]) -> int:
    if not limit or limit < 1:
        return SCAN_LIMIT_DEFAULT
    return min(int(limit), SCAN_LIMIT_MAX)


def run_discovery(
    user_id: str,
    mailbox: Mailbox,
    store: AccountStore,
    *,
    queries: Optional[Sequence[str]] = None,
    limit: Optional[int] = SCAN_LIMIT_DEFAULT,
    now: Optional[datetime] = None,
    max_workers: int = 1,
    verbose: bool = False,
    progress_cb: Optional[ProgressCallback] = None,
) -> Dict[str, Any]:
    """
    Execute one discovery run and return a machine-readable summary.

    Args:
        user_id: Owner of the discovered accounts.
        mailbox: Search/fetch collaborator (e.g. GmailMailbox).
        store: Account store holding the per-(user, domain) records.
        limit: Maximum messages to inspect, clamped to 1..SCAN_LIMIT_MAX.
        now: Reference time for inactivity_days; defaults to the current time.
        verbose: If True, print progress for CLI usage.

    Returns:
        dict summary (JSON-serializable).
    """
    def log(msg: str) -> None:
        if verbose:
            print(msg)

    def report(
        step: str,
        *,
        detail: str | None = None,
        metrics: Optional[Dict[str, Any]] = None,
        **extra: Any,
    ) -> None:
        if not progress_cb:
            return
        payload: Dict[str, Any] = {"detail": detail}
        if metrics:
            payload["metrics"] = metrics
        if extra:
            payload.update(extra)
        progress_cb(step, payload)

    summary = DiscoverySummary()
    limit = clamp_limit(limit)
    now = now or datetime.now(timezone.utc)

    # --- Search ---
    report("search", detail="Searching mailbox")
    message_ids = mailbox.search(list(queries or default_search_queries()), limit)
    message_ids = message_ids[:limit]
    summary.fetched = len(message_ids)
    log(f"[run] Found {summary.fetched} messages")

    # --- Fetch metadata; one bad message never aborts the batch ---
    signals: List[EmailSignal] = []
    for index, mid in enumerate(message_ids, start=1):
        try:
            signals.append(mailbox.fetch_metadata(mid))
        except Exception as exc:
            # Any per-message failure, typed or not, is counted and skipped.
            summary.fetch_errors += 1
            logger.warning("fetch failed message_id=%s: %s: %s", mid, type(exc).__name__, exc)
            log(f"[error] {type(exc).__name__}: {exc}")
            report(
                "error",
                detail=f"{type(exc).__name__}: {exc}",
                error={"message_id": mid, "error": f"{type(exc).__name__}: {exc}"},
            )
        finally:
            report(
                "fetch",
                detail=f"Loading message metadata {index}/{summary.fetched}",
                metrics={"fetched": summary.fetched, "fetch_errors": summary.fetch_errors},
            )

    # --- Phase A: in-batch aggregation ---
    report("aggregate", detail="Grouping messages by domain")
    aggregation = aggregate_signals(signals)
    summary.signals = aggregation.signals
    summary.skipped_no_domain = aggregation.skipped_no_domain
    summary.skipped_bad_date = aggregation.skipped_bad_date
    log(f"[run] {len(aggregation.domains)} domains from {aggregation.signals} messages")

    # --- Phase B: merge with stored accounts ---
    report("merge", detail="Merging with stored accounts")
    outcome = merge_into_store(
        user_id,
        aggregation.domains,
        store,
        now=now,
        max_workers=max_workers,
    )
    summary.created = outcome.created
    summary.updated = outcome.updated
    summary.store_errors = outcome.store_errors
    summary.discovered_count = len(outcome.accounts)
    summary.accounts = [a.model_dump(mode="json") for a in outcome.accounts]

    logger.info(
        "discovery user=%s fetched=%d fetch_errors=%d discovered=%d store_errors=%d",
        user_id,
        summary.fetched,
        summary.fetch_errors,
        summary.discovered_count,
        summary.store_errors,
    )
    result = asdict(summary)
    report(
        "done",
        detail="Discovery completed",
        metrics={k: v for k, v in result.items() if k != "accounts"},
    )
    return result

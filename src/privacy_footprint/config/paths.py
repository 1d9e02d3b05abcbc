import os
from pathlib import Path
from dotenv import load_dotenv

# Load .env once, globally
load_dotenv()

# Project root (independent of current working directory).
PROJECT_ROOT = Path(__file__).resolve().parents[3]

def resolve_dir(env_key: str, default: str) -> Path:
    """
    Resolve a directory path from ENV.
    Relative paths are resolved against PROJECT_ROOT.
    """
    value = os.getenv(env_key, default)
    path = Path(value)

    if not path.is_absolute():
        path = PROJECT_ROOT / path

    path.mkdir(parents=True, exist_ok=True)
    return path


def env_int(env_key: str, default: int) -> int:
    """Read an integer setting, falling back to the default on garbage."""
    raw = os.getenv(env_key)
    if raw is None or not raw.strip():
        return default
    try:
        return int(raw)
    except ValueError:
        return default


SECRETS_DIR = resolve_dir("PRIVACY_FOOTPRINT_SECRETS_DIR", "secrets")
STATE_DIR   = resolve_dir("PRIVACY_FOOTPRINT_STATE_DIR", ".state")

ACCOUNTS_PATH = STATE_DIR / "accounts.json"
ANALYSES_PATH = STATE_DIR / "analyses.json"

# Shipped next to this module as package data.
RISK_TAXONOMY_PATH = Path(__file__).resolve().parent / "risk_taxonomy.json"

MAIL_SEARCH_PERIOD_MONTHS = env_int("MAIL_SEARCH_PERIOD_MONTHS", 24)
SCAN_LIMIT_DEFAULT = 100
SCAN_LIMIT_MAX = 200

OPENAI_MODEL = os.getenv("OPENAI_MODEL", "gpt-4.1-mini")
POLICY_FETCH_TIMEOUT = env_int("POLICY_FETCH_TIMEOUT", 10)

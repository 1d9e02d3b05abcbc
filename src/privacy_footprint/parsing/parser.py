from __future__ import annotations

from datetime import datetime, timezone
from email.utils import parsedate_to_datetime
from typing import Dict, Optional

from privacy_footprint.models import EmailSignal


def header_map(payload: dict) -> Dict[str, str]:
    """Gmail payload headers as a dict keyed by lower-cased header name."""
    # Later duplicates win, matching how Gmail lists re-sent headers.
    return {
        h["name"].lower(): h.get("value", "")
        for h in payload.get("headers", []) or []
        if h.get("name")
    }


def parse_message_metadata(message: dict) -> EmailSignal:
    """
    Turn a Gmail message resource (format=metadata) into an EmailSignal.
    Only From, Subject, Date and List-Unsubscribe are read.
    """
    headers = header_map(message.get("payload", {}) or {})
    return EmailSignal(
        message_id=str(message.get("id", "")),
        from_address=headers.get("from"),
        subject=headers.get("subject"),
        date_sent=headers.get("date"),
        unsubscribe_header=headers.get("list-unsubscribe"),
    )


def parse_mail_date(value: Optional[str]) -> Optional[datetime]:
    """
    Parse an RFC 2822 Date header (ISO 8601 accepted as well).
    Returns an aware UTC datetime, or None if the value is unusable.
    """
    if not value or not value.strip():
        return None

    parsed: Optional[datetime]
    try:
        parsed = parsedate_to_datetime(value.strip())
    except (TypeError, ValueError, IndexError):
        parsed = None

    if parsed is None:
        try:
            parsed = datetime.fromisoformat(value.strip().replace("Z", "+00:00"))
        except ValueError:
            return None

    # Headers without an offset (or "-0000") are taken as UTC.
    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=timezone.utc)
    return parsed.astimezone(timezone.utc)

from __future__ import annotations

from datetime import datetime, timezone
from typing import Optional

_SECONDS_PER_DAY = 24 * 60 * 60


def as_utc(value: datetime) -> datetime:
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value


def inactivity_days(last_activity: Optional[datetime], now: Optional[datetime] = None) -> Optional[int]:
    """
    Whole days between last_activity and now, floored and clamped at zero.
    None means unknown (no activity date).
    """
    if last_activity is None:
        return None
    now = as_utc(now or datetime.now(timezone.utc))
    elapsed = (now - as_utc(last_activity)).total_seconds()
    return max(0, int(elapsed // _SECONDS_PER_DAY))

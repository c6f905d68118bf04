"""Time helpers shared by entities, codecs and repositories.

All instants are timezone-aware UTC datetimes with millisecond precision,
which is what the document store can represent natively.
"""

from __future__ import annotations

from datetime import datetime, timedelta, timezone
from typing import Optional, Tuple


def utc_now() -> datetime:
    """Current instant, UTC, truncated to milliseconds."""
    return truncate_to_millis(datetime.now(timezone.utc))


def truncate_to_millis(dt: datetime) -> datetime:
    """Drop sub-millisecond precision."""
    return dt.replace(microsecond=(dt.microsecond // 1000) * 1000)


def ensure_utc(dt: datetime) -> datetime:
    """
    Normalize a datetime to aware UTC.

    Naive values (what pymongo returns without tz_aware=True) are
    interpreted as UTC.
    """
    if dt.tzinfo is None:
        return dt.replace(tzinfo=timezone.utc)
    return dt.astimezone(timezone.utc)


def normalize_instant(dt: datetime) -> datetime:
    """Aware UTC with millisecond precision; applied to every model timestamp."""
    return truncate_to_millis(ensure_utc(dt))


def start_of_day(dt: Optional[datetime] = None) -> datetime:
    """Midnight UTC of the day containing dt (default: today)."""
    moment = ensure_utc(dt) if dt is not None else datetime.now(timezone.utc)
    return moment.replace(hour=0, minute=0, second=0, microsecond=0)


def day_bounds(dt: Optional[datetime] = None) -> Tuple[datetime, datetime]:
    """Half-open [start_of_day, start_of_next_day) interval."""
    start = start_of_day(dt)
    return start, start + timedelta(days=1)


def format_day_key(dt: datetime) -> str:
    """yyyyMMdd representation used in per-day document ids."""
    return start_of_day(dt).strftime("%Y%m%d")

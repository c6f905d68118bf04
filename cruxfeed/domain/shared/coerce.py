"""
Lenient readers for loosely-typed document fields.

Codecs use these instead of indexing documents directly so that a
malformed field yields None (or a default) rather than an exception.
"""

from __future__ import annotations

from datetime import datetime
from typing import Any, Dict, List, Optional

from cruxfeed.domain.shared.clock import ensure_utc, utc_now


def as_str(data: Dict[str, Any], key: str) -> Optional[str]:
    value = data.get(key)
    return value if isinstance(value, str) else None


def as_int(data: Dict[str, Any], key: str, default: int = 0) -> int:
    value = data.get(key)
    # bool is an int subclass; a stored True is not a count
    if isinstance(value, bool):
        return default
    if isinstance(value, int):
        return value
    if isinstance(value, float) and value.is_integer():
        return int(value)
    return default


def as_float(data: Dict[str, Any], key: str, default: float = 0.0) -> float:
    value = data.get(key)
    if isinstance(value, bool):
        return default
    if isinstance(value, (int, float)):
        return float(value)
    return default


def as_bool(data: Dict[str, Any], key: str, default: bool = False) -> bool:
    value = data.get(key)
    return value if isinstance(value, bool) else default


def as_datetime(data: Dict[str, Any], key: str) -> Optional[datetime]:
    value = data.get(key)
    return ensure_utc(value) if isinstance(value, datetime) else None


def as_datetime_or_now(data: Dict[str, Any], key: str) -> datetime:
    """Stored timestamp, or now when absent/mistyped."""
    return as_datetime(data, key) or utc_now()


def as_str_list(data: Dict[str, Any], key: str) -> List[str]:
    value = data.get(key)
    if not isinstance(value, list):
        return []
    return [v for v in value if isinstance(v, str)]


def as_optional_url(data: Dict[str, Any], key: str) -> Optional[str]:
    """URL strings are stored as-is; empty string means no URL."""
    value = as_str(data, key)
    return value if value else None

"""
Domain clock and timestamp checks.

Every timestamp on a sell request, offer or transaction is stored in UTC.
Entities call these checks from __post_init__; services take their "now"
from utc_now (or an injected clock in tests).
"""

from __future__ import annotations

from datetime import datetime, timedelta, timezone
from typing import Optional

_ZERO_OFFSET = timedelta(0)


def require_utc_timestamp(name: str, value: datetime) -> None:
    """Raise ValueError unless value is timezone-aware with offset 0."""

    offset = value.utcoffset() if value.tzinfo is not None else None
    if offset is None:
        raise ValueError(f"{name} must be timezone-aware (UTC)")
    if offset != _ZERO_OFFSET:
        raise ValueError(f"{name} must be a UTC timestamp, got offset {offset}")


def require_optional_utc_timestamp(name: str, value: Optional[datetime]) -> None:
    """Same as require_utc_timestamp, but None (not reached yet) is accepted."""

    if value is not None:
        require_utc_timestamp(name, value)


def utc_now() -> datetime:
    return datetime.now(timezone.utc)

"""
Domain time utilities (pure).

Sale windows are expressed in u64 unix seconds, as the conductor encodes them.
Wall-clock values entering the domain are converted here so that every ledger
operation receives an explicit `now`; no implicit clock is read inside the
ledgers.
"""

from __future__ import annotations

from datetime import datetime, timedelta, timezone

from .amounts import U64_MAX


def require_utc_timestamp(name: str, value: datetime) -> None:
    """
    Enforces that timestamps are UTC.

    Invariants:
    - Timestamps must be timezone-aware.
    - Timestamps must have UTC offset 0.
    """

    if value.tzinfo is None or value.utcoffset() is None:
        raise ValueError(f"{name} must be timezone-aware (UTC)")
    if value.utcoffset() != timedelta(0):
        raise ValueError(f"{name} must be a UTC timestamp (offset 0)")


def to_unix_seconds(name: str, value: datetime) -> int:
    """Convert a UTC datetime to whole unix seconds (floor)."""

    require_utc_timestamp(name, value)
    seconds = int(value.timestamp())
    if seconds < 0 or seconds > U64_MAX:
        raise ValueError(f"{name} is outside the u64 seconds range")
    return seconds


def from_unix_seconds(seconds: int) -> datetime:
    """Inverse of to_unix_seconds, for display only."""

    return datetime.fromtimestamp(seconds, tz=timezone.utc)


def utc_now_seconds() -> int:
    return to_unix_seconds("now", datetime.now(timezone.utc))

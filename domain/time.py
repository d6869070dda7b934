"""
Domain time utilities (pure).

Sale instants (start, end, unlock, "now") are timezone-aware UTC datetimes.
Durations (grace window, minimum notice, unlock delay) are timedeltas.
"""

from __future__ import annotations

from datetime import datetime, timedelta, timezone


def require_utc_timestamp(name: str, value: datetime) -> None:
    """
    Enforce that an instant is a UTC timestamp.

    Invariants:
    - Timestamps must be timezone-aware.
    - Timestamps must have UTC offset 0.
    """

    if value.tzinfo is None or value.utcoffset() is None:
        raise ValueError(f"{name} must be timezone-aware (UTC)")
    if value.utcoffset() != timedelta(0):
        raise ValueError(f"{name} must be a UTC timestamp (offset 0)")


def require_non_negative_duration(name: str, value: timedelta) -> None:
    if value < timedelta(0):
        raise ValueError(f"{name} must not be negative")


def utc_now() -> datetime:
    """Default sale clock."""
    return datetime.now(timezone.utc)

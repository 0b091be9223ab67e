"""
Domain time utilities (pure).

Centralized timestamp validation and calendar-window helpers.

Behavior and error messages must remain consistent across the domain model.
"""

from __future__ import annotations

from datetime import datetime, time, timedelta, timezone


def require_utc_timestamp(name: str, value: datetime) -> None:
    """
    Enforces the requirement that timestamps are UTC.

    Invariants:
    - Timestamps must be timezone-aware.
    - Timestamps must have UTC offset 0.
    """

    if value.tzinfo is None or value.utcoffset() is None:
        raise ValueError(f"{name} must be timezone-aware (UTC)")
    if value.utcoffset() != timedelta(0):
        raise ValueError(f"{name} must be a UTC timestamp (offset 0)")


def utc_now() -> datetime:
    return datetime.now(timezone.utc)


def start_of_day(value: datetime) -> datetime:
    """Midnight (UTC) of the calendar day containing `value`."""

    return datetime.combine(value.astimezone(timezone.utc).date(), time.min, tzinfo=timezone.utc)


def day_window(value: datetime) -> tuple[datetime, datetime]:
    """Half-open window [day, day + 1) for the UTC calendar day containing `value`."""

    start = start_of_day(value)
    return start, start + timedelta(days=1)

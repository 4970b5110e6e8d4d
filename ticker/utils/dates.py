"""
Date helpers for the daily swipe quota.

All day boundaries are UTC so every user resets at the same instant,
regardless of device timezone.
"""

from collections.abc import Callable
from datetime import UTC, datetime, tzinfo

Clock = Callable[[], datetime]


def utc_now() -> datetime:
    """Get current UTC timestamp."""
    return datetime.now(UTC)


def date_key(timestamp: datetime, timezone: tzinfo = UTC) -> str:
    """
    Canonical calendar-day key ("YYYY-MM-DD") for a timestamp.

    Naive timestamps are treated as UTC.
    """
    if timestamp.tzinfo is None:
        timestamp = timestamp.replace(tzinfo=UTC)
    return timestamp.astimezone(timezone).strftime("%Y-%m-%d")


def is_reset(last_key: str | None, now_key: str) -> bool:
    """True when the quota has never been reset or was last reset on another day."""
    if not last_key:
        return True
    return last_key != now_key

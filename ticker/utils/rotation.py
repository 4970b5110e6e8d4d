"""
Daily rotation themes.

A theme is a pure function of (user_id, timestamp): stable for a user within
a day, different across users and days. No state is persisted.
"""

from datetime import UTC, datetime

ROTATION_THEMES: tuple[str, ...] = (
    "Focus on: Large cap tech stocks and SaaS ideas",
    "Focus on: Healthcare stocks and medical service ideas",
    "Focus on: Financial stocks and fintech ideas",
    "Focus on: Consumer goods stocks and e-commerce ideas",
    "Focus on: Emerging growth stocks and innovative ideas",
    "Focus on: Dividend stocks and stable business ideas",
    "Focus on: International stocks and global business ideas",
)

_WEEK_MS = 7 * 24 * 60 * 60 * 1000


def hash_user_id(user_id: str) -> int:
    """Non-negative 32-bit rolling hash (h * 31 + c) of a string."""
    h = 0
    for ch in user_id:
        h = ((h << 5) - h + ord(ch)) & 0xFFFFFFFF
    if h >= 0x80000000:
        h -= 0x100000000
    return abs(h)


def day_of_week(timestamp: datetime) -> int:
    """Day of week in UTC, Sunday = 0."""
    return (timestamp.astimezone(UTC).weekday() + 1) % 7


def week_index(timestamp: datetime) -> int:
    """Whole weeks elapsed since the Unix epoch."""
    epoch_ms = int(timestamp.timestamp() * 1000)
    return epoch_ms // _WEEK_MS


def rotation_theme(
    user_id: str, timestamp: datetime, themes: tuple[str, ...] = ROTATION_THEMES
) -> str:
    """Pick today's thematic hint for a user."""
    if timestamp.tzinfo is None:
        timestamp = timestamp.replace(tzinfo=UTC)
    index = (day_of_week(timestamp) + week_index(timestamp) + hash_user_id(user_id) % 3) % len(
        themes
    )
    return themes[index]

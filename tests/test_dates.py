"""
Tests for UTC date keys and reset detection.
"""

from datetime import UTC, datetime, timedelta, timezone

from ticker.utils.dates import date_key, is_reset, utc_now


class TestDateKey:
    """Tests for date_key."""

    def test_formats_utc_day(self):
        assert date_key(datetime(2024, 3, 5, 23, 59, tzinfo=UTC)) == "2024-03-05"

    def test_converts_offset_timestamps_to_utc(self):
        """23:30 at UTC-5 is already the next UTC day."""
        local = datetime(2024, 3, 5, 23, 30, tzinfo=timezone(timedelta(hours=-5)))
        assert date_key(local) == "2024-03-06"

    def test_naive_timestamp_treated_as_utc(self):
        assert date_key(datetime(2024, 12, 31, 23, 59, 59)) == "2024-12-31"

    def test_explicit_timezone(self):
        ts = datetime(2024, 3, 5, 23, 30, tzinfo=UTC)
        assert date_key(ts, timezone(timedelta(hours=2))) == "2024-03-06"

    def test_midnight_boundary(self):
        before = datetime(2024, 3, 5, 23, 59, 59, 999999, tzinfo=UTC)
        after = before + timedelta(microseconds=1)
        assert date_key(before) == "2024-03-05"
        assert date_key(after) == "2024-03-06"


class TestIsReset:
    """Tests for is_reset."""

    def test_never_reset(self):
        assert is_reset(None, "2024-03-05") is True

    def test_empty_key_counts_as_never_reset(self):
        assert is_reset("", "2024-03-05") is True

    def test_same_day(self):
        assert is_reset("2024-03-05", "2024-03-05") is False

    def test_different_day(self):
        assert is_reset("2024-03-04", "2024-03-05") is True


def test_utc_now_is_aware():
    assert utc_now().tzinfo is not None

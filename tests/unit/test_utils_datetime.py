"""
Tests for datetime utilities.
"""

from datetime import date, datetime, timedelta, timezone

import pytz

from rundown.utils.datetime_utils import (
    days_ago,
    format_date,
    naive_utc_now,
    to_aware_utc,
    to_naive_utc,
    utc_now,
)


class TestNow:
    def test_utc_now_is_aware(self):
        assert utc_now().tzinfo is not None

    def test_naive_utc_now_has_no_tzinfo(self):
        assert naive_utc_now().tzinfo is None


class TestConversions:
    """Round trips between storage and in-memory datetimes."""

    def test_aware_to_naive_converts_to_utc(self):
        berlin = pytz.timezone("Europe/Berlin").localize(datetime(2026, 3, 16, 10, 0))

        assert to_naive_utc(berlin) == datetime(2026, 3, 16, 9, 0)

    def test_naive_input_is_kept(self):
        value = datetime(2026, 3, 16, 9, 0)

        assert to_naive_utc(value) is value

    def test_naive_to_aware_assumes_utc(self):
        assert to_aware_utc(datetime(2026, 3, 16, 9, 0)) == datetime(2026, 3, 16, 9, 0, tzinfo=timezone.utc)

    def test_none_passes_through(self):
        assert to_naive_utc(None) is None
        assert to_aware_utc(None) is None


class TestHelpers:
    def test_days_ago(self):
        now = datetime(2026, 3, 16, 9, 0, tzinfo=timezone.utc)

        assert days_ago(7, now) == now - timedelta(days=7)

    def test_format_date(self):
        assert format_date(date(2026, 3, 9)) == "2026-03-09"

    def test_format_datetime_uses_utc_day(self):
        late_evening = datetime(2026, 3, 16, 1, 30, tzinfo=timezone(timedelta(hours=3)))

        assert format_date(late_evening) == "2026-03-15"

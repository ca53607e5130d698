"""Unit tests for timestamp utilities."""

from datetime import date, datetime, timedelta, timezone

import pytest

from neo_alerts.utils.timestamps import ensure_utc, parse_iso_date, utc_now, utc_today


class TestUtcNow:
    """Tests for utc_now and utc_today."""

    def test_utc_now_returns_utc_datetime(self):
        now = utc_now()

        assert now.tzinfo == timezone.utc
        assert isinstance(now, datetime)

    def test_utc_now_is_recent(self):
        before = datetime.now(timezone.utc)
        now = utc_now()
        after = datetime.now(timezone.utc)

        assert before <= now <= after

    def test_utc_today(self):
        before = datetime.now(timezone.utc).date()
        today = utc_today()
        after = datetime.now(timezone.utc).date()

        assert isinstance(today, date)
        assert before <= today <= after


class TestEnsureUtc:
    """Tests for ensure_utc function."""

    def test_ensure_utc_with_none(self):
        assert ensure_utc(None) is None

    def test_naive_datetime_treated_as_utc(self):
        result = ensure_utc(datetime(2025, 11, 4, 12, 0))

        assert result == datetime(2025, 11, 4, 12, 0, tzinfo=timezone.utc)

    def test_other_timezone_converted(self):
        eastern = timezone(timedelta(hours=-5))

        result = ensure_utc(datetime(2025, 11, 4, 7, 0, tzinfo=eastern))

        assert result.tzinfo == timezone.utc
        assert result.hour == 12


class TestParseIsoDate:
    """Tests for parse_iso_date function."""

    @pytest.mark.parametrize(
        "value, expected",
        [
            ("2025-11-04", date(2025, 11, 4)),
            ("  2025-11-04  ", date(2025, 11, 4)),
            ("2025-11-04T12:30:00", date(2025, 11, 4)),
        ],
    )
    def test_valid(self, value, expected):
        assert parse_iso_date(value) == expected

    @pytest.mark.parametrize("value", [None, "", "   ", "someday", "2025-13-01", "2025-02-30", 20251104])
    def test_invalid_returns_none(self, value):
        assert parse_iso_date(value) is None

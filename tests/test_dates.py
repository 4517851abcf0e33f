"""Timestamp parsing and report-timezone month/year windows."""
from datetime import date, timedelta, timezone

from salescycle.engine.dates import is_current_month, parse_date, report_tz

EST = timezone(timedelta(hours=-5))


class TestParseDate:

    def test_utc_suffix(self):
        assert parse_date("2026-10-19T15:00:00Z") == date(2026, 10, 19)

    def test_aware_timestamp_converted_to_report_tz(self):
        assert parse_date("2026-10-01T02:30:00Z", EST) == date(2026, 9, 30)

    def test_seven_digit_fraction_still_converted_to_report_tz(self):
        assert parse_date("2026-10-01T02:30:00.1234567Z", EST) == date(2026, 9, 30)
        assert parse_date("2026-10-01T02:30:00.1234567+00:00", EST) == date(2026, 9, 30)

    def test_short_fraction(self):
        assert parse_date("2026-10-01T02:30:00.5Z", EST) == date(2026, 9, 30)

    def test_naive_taken_as_is(self):
        assert parse_date("2026-10-01T02:30:00", EST) == date(2026, 10, 1)

    def test_date_only(self):
        assert parse_date("2026-03-01") == date(2026, 3, 1)

    def test_blank_and_garbage(self):
        assert parse_date("") is None
        assert parse_date("   ") is None
        assert parse_date(None) is None
        assert parse_date("not a date") is None


def test_month_boundary_follows_report_tz():
    today = date(2026, 9, 30)
    assert is_current_month("2026-10-01T02:30:00.1234567Z", today, EST)
    assert not is_current_month("2026-10-01T02:30:00.1234567Z", today, timezone.utc)


def test_report_tz_utc():
    assert report_tz("UTC") is timezone.utc
    assert report_tz("") is timezone.utc

"""
Tests for value coercion.

These tests verify:
    - Date/time decomposition of stored strings
    - Calendar validation (no 31st of February)
    - Integer and boolean coercion used by rules and validators
"""

from datetime import datetime

import pytest

from metaform.coercion import (
    convert_value_to_date,
    get_day_from,
    get_hour_part,
    get_minute_part,
    get_month_from,
    get_year_from,
    parse_date,
    parse_date_time,
    to_bool,
    to_int,
)


class TestDateParts:
    """Test splitting of yyyy-mm-dd strings."""

    def test_year_month_day(self):
        """Should split a date on '-'."""
        assert get_year_from("2021-03-14") == "2021"
        assert get_month_from("2021-03-14") == "03"
        assert get_day_from("2021-03-14") == "14"

    def test_too_short(self):
        """Should give nothing for values too short to be a date."""
        assert get_year_from("2021") == ""
        assert get_day_from("") == ""

    def test_time_parts_from_full_value(self):
        """Should pull hour and minute from 'yyyy-mm-dd HH:MM'."""
        assert get_hour_part("2021-03-14 09:30") == "09"
        assert get_minute_part("2021-03-14 09:30") == "30"

    def test_time_parts_from_time_only(self):
        """Should pull hour and minute from 'HH:MM', padding the hour."""
        assert get_hour_part("9:05") == "09"
        assert get_minute_part("9:05") == "05"


class TestParseDate:
    """Test the shared date/time routine."""

    @pytest.mark.parametrize("year,month,day", [
        (2021, 1, 1),
        (2020, 2, 29),
        (1999, 12, 31),
    ])
    def test_round_trip(self, year, month, day):
        """Formatting a valid triple and parsing it recovers the triple."""
        parsed = parse_date_time(f"{year:04d}-{month:02d}-{day:02d}")
        assert (parsed.year, parsed.month, parsed.day) == (year, month, day)

    @pytest.mark.parametrize("value", ["2021-02-30", "2021-02-29", "2021-13-01", "2021-04-31"])
    def test_invalid_calendar_dates(self, value):
        """Impossible dates parse to None."""
        assert parse_date_time(value) is None

    @pytest.mark.parametrize("value", ["", "2021", "2021-01", "abcd-ef-gh", "2021-01-xx"])
    def test_malformed(self, value):
        """Missing or non-numeric parts parse to None."""
        assert parse_date_time(value) is None

    def test_with_time(self):
        """A value with ':' carries a time."""
        assert parse_date_time("2021-03-14 09:30") == datetime(2021, 3, 14, 9, 30)

    def test_bad_time(self):
        """A non-numeric minute fails the whole value."""
        assert parse_date_time("2021-03-14 09:xx") is None

    def test_time_required(self):
        """require_time rejects date-only values."""
        assert parse_date_time("2021-03-14", require_time=True) is None
        assert parse_date_time("2021-03-14 10:00", require_time=True) == datetime(2021, 3, 14, 10, 0)

    def test_out_of_range_time(self):
        """25:00 is not a time."""
        assert parse_date_time("2021-03-14 25:00") is None

    def test_parse_date_ignores_time(self):
        """parse_date looks at the date part only."""
        assert parse_date("2021-03-14 09:30") == datetime(2021, 3, 14)

    def test_convert_value_to_date(self):
        """Date and time may be supplied separately."""
        assert convert_value_to_date("2021-03-14", "23:59") == datetime(2021, 3, 14, 23, 59)


class TestToInt:
    """Test integer coercion."""

    @pytest.mark.parametrize("value,expected", [("0", 0), ("42", 42), ("-7", -7), ("+3", 3)])
    def test_integers(self, value, expected):
        assert to_int(value) == expected

    @pytest.mark.parametrize("value", ["", " 1", "1.5", "1_000", "abc", None])
    def test_not_integers(self, value):
        assert to_int(value) is None


class TestToBool:
    """Test boolean coercion."""

    @pytest.mark.parametrize("value", ["Y", "y", "TRUE", "true", "True", "1"])
    def test_truthy(self, value):
        assert to_bool(value) is True

    @pytest.mark.parametrize("value", ["N", "false", "0", "", "yes", None])
    def test_falsy(self, value):
        assert to_bool(value) is False

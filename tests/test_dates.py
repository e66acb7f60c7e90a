"""
Tests for the dates module.
Covers parsing stored values and today's date string.
"""
from datetime import date, datetime

import pytest

from wishful_search.dates import parse_date_value, to_iso, today_str


class TestParseDateValue:
    """Test parsing column values as dates."""

    def test_iso_date(self):
        """Test plain ISO dates."""
        assert parse_date_value("2022-01-15") == datetime(2022, 1, 15)

    def test_iso_datetime_utc(self):
        """Test a Z suffix is read as UTC and returned naive."""
        assert parse_date_value("2022-01-15T10:30:00Z") == datetime(2022, 1, 15, 10, 30)

    def test_offset_converted(self):
        """Test offsets are converted to UTC."""
        assert parse_date_value("2022-01-15T10:30:00+02:00") == datetime(2022, 1, 15, 8, 30)

    def test_year_only(self):
        """Test a bare year is the first of January."""
        assert parse_date_value("1995") == datetime(1995, 1, 1)

    @pytest.mark.parametrize("value,expected", [
        ("2022/03/15", datetime(2022, 3, 15)),
        ("03/15/2022", datetime(2022, 3, 15)),
        ("15 Mar 2022", datetime(2022, 3, 15)),
        ("March 15, 2022", datetime(2022, 3, 15)),
    ])
    def test_other_formats(self, value, expected):
        """Test common non-ISO layouts."""
        assert parse_date_value(value) == expected

    @pytest.mark.parametrize("value", ["", "   ", "NULL", "soon", "2022-13-45", None])
    def test_not_dates(self, value):
        """Test values that aren't dates give None."""
        assert parse_date_value(value) is None


class TestFormatting:
    """Test date output."""

    def test_to_iso(self):
        """Test ISO-8601 output."""
        assert to_iso(datetime(2020, 1, 5)) == "2020-01-05T00:00:00"

    def test_today_str(self):
        """Test today's date string format."""
        assert today_str(date(2024, 3, 1)) == "2024-03-01"
        assert len(today_str()) == 10

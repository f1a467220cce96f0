"""Tests for date parsing utilities."""

from datetime import date, datetime

import pytest

from bankrec.utils.date_parser import (
    format_date,
    is_valid_date,
    parse_date,
    parse_excel_serial_date,
    parse_timestamp_date,
)


def test_parse_date_formats():
    """Test parsing the accepted date shapes."""
    assert parse_date("01/15/2024") == date(2024, 1, 15)
    assert parse_date("1/5/2024") == date(2024, 1, 5)
    assert parse_date("2024-01-15") == date(2024, 1, 15)
    assert parse_date("01-15-2024") == date(2024, 1, 15)


def test_parse_date_two_digit_years():
    """Test that two-digit years pivot at 50."""
    assert parse_date("1/5/24") == date(2024, 1, 5)
    assert parse_date("12/31/99") == date(1999, 12, 31)
    assert parse_date("1/1/50") == date(2050, 1, 1)
    assert parse_date("1/1/51") == date(1951, 1, 1)


def test_parse_date_objects():
    """Test that date and datetime values are returned as dates."""
    assert parse_date(datetime(2024, 1, 15, 10, 30)) == date(2024, 1, 15)
    assert parse_date(date(2024, 1, 15)) == date(2024, 1, 15)


def test_parse_date_invalid():
    """Test that invalid input returns None."""
    assert parse_date("garbage") is None
    assert parse_date("02/30/2024") is None
    assert parse_date("") is None
    assert parse_date(None) is None


def test_parse_date_fallback():
    """Test that other textual dates go through dateutil."""
    assert parse_date("January 15, 2024") == date(2024, 1, 15)


@pytest.mark.parametrize(
    "value,expected",
    [
        ("01/15/2024", True),
        ("1/5/24", True),
        ("2024-01-15", True),
        ("01-15-2024", True),
        (date(2024, 1, 15), True),
        ("20240115", False),
        ("Jan 15 2024", False),
        (45000, False),
        ("", False),
        (None, False),
    ],
)
def test_is_valid_date(value, expected):
    """Test the date shape check."""
    assert is_valid_date(value) is expected


class TestExcelSerialDate:
    """Tests for parse_excel_serial_date."""

    def test_serial_number(self):
        """Test conversion of serial day numbers."""
        assert parse_excel_serial_date(45000) == date(2023, 3, 15)
        assert parse_excel_serial_date(45688) == date(2025, 1, 31)
        assert parse_excel_serial_date("45000") == date(2023, 3, 15)

    def test_out_of_range_numbers_are_amounts(self):
        """Test that numbers outside the serial window are not dates."""
        assert parse_excel_serial_date(1500) is None
        assert parse_excel_serial_date(60000) is None
        assert parse_excel_serial_date(29999.5) is None

    def test_date_strings(self):
        """Test that date-shaped strings are parsed as dates."""
        assert parse_excel_serial_date("01/15/2024") == date(2024, 1, 15)
        assert parse_excel_serial_date(datetime(2024, 1, 15)) == date(2024, 1, 15)

    def test_unparseable(self):
        """Test that anything else returns None."""
        assert parse_excel_serial_date("abc") is None
        assert parse_excel_serial_date("") is None
        assert parse_excel_serial_date(None) is None
        assert parse_excel_serial_date(True) is None


def test_parse_timestamp_date():
    """Test reading the date part of bank timestamps."""
    assert parse_timestamp_date("20251205000000[-5:EST]") == date(2025, 12, 5)
    assert parse_timestamp_date("20251305000000[-5:EST]") is None
    assert parse_timestamp_date("abc") is None
    assert parse_timestamp_date(None) is None


def test_format_date():
    """Test MM/DD/YYYY formatting and that it parses back."""
    assert format_date(date(2024, 1, 5)) == "01/05/2024"
    assert format_date(None) == ""
    assert parse_date(format_date(date(2024, 1, 5))) == date(2024, 1, 5)

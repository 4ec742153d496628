"""Tests for date parser with relative dates and import row dates."""

import pytest
from datetime import date, datetime, time, timedelta
from balancebook.utils.date_parser import parse_date, parse_instant, parse_row_datetime, time_key


def test_parse_absolute_date():
    """Test parsing absolute dates."""
    result = parse_date("2024-01-15")
    assert result == date(2024, 1, 15)


def test_parse_today():
    """Test parsing 'today'."""
    result = parse_date("today")
    assert result == date.today()


def test_parse_yesterday():
    """Test parsing 'yesterday'."""
    result = parse_date("yesterday")
    assert result == date.today() - timedelta(days=1)


def test_parse_last_month():
    """Test parsing 'last month'."""
    result = parse_date("last month")
    # Should be first day of last month
    today = date.today()
    if today.month == 1:
        expected = date(today.year - 1, 12, 1)
    else:
        expected = date(today.year, today.month - 1, 1)
    assert result == expected


def test_parse_this_week():
    """Test parsing 'this week'."""
    result = parse_date("this week")
    assert result.weekday() == 0
    assert result <= date.today()


def test_parse_invalid_relative():
    """Test parsing invalid relative date."""
    with pytest.raises(ValueError):
        parse_date("last invalid")


def test_parse_instant_date_only():
    """Date-only values resolve to midnight, or to the end of the day."""
    assert parse_instant("2024-01-31") == datetime(2024, 1, 31)
    assert parse_instant("2024-01-31", end_of_day=True) == datetime.combine(date(2024, 1, 31), time.max)


def test_parse_instant_with_time():
    assert parse_instant("2024-01-31 18:30", end_of_day=True) == datetime(2024, 1, 31, 18, 30)


def test_parse_instant_relative():
    assert parse_instant("yesterday").date() == date.today() - timedelta(days=1)


@pytest.mark.parametrize(
    "text,expected",
    [
        ("2024-01-05", datetime(2024, 1, 5)),
        ("2024/1/5", datetime(2024, 1, 5)),
        ("2024.01.05", datetime(2024, 1, 5)),
        ("2024年1月5日", datetime(2024, 1, 5)),
        ("2024年1月5日 9:15", datetime(2024, 1, 5, 9, 15)),
        ("2024-01-05T09:15:30", datetime(2024, 1, 5, 9, 15, 30)),
    ],
)
def test_parse_row_datetime(text, expected):
    assert parse_row_datetime(text) == expected


@pytest.mark.parametrize("text", ["", "05/01/2024", "2024-02-30", "2024-01-05 25:00", "Jan 5 2024"])
def test_parse_row_datetime_rejects(text):
    with pytest.raises(ValueError):
        parse_row_datetime(text)


def test_time_key():
    assert time_key(datetime(2024, 1, 5)) == ""
    assert time_key(datetime(2024, 1, 5, 0, 1)) == "00:01"
    assert time_key(datetime(2024, 1, 5, 14, 5)) == "14:05"

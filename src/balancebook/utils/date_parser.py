"""Date parsing utilities."""

import re
from datetime import date, datetime, time, timedelta
from dateutil import parser as date_parser
from dateutil.relativedelta import relativedelta

_ROW_DATE_PATTERN = re.compile(
    r"^\s*(\d{4})\s*[-/.年]\s*(\d{1,2})\s*[-/.月]\s*(\d{1,2})\s*日?"
    r"(?:\s*[ T]\s*(\d{1,2})[:：](\d{2})(?:[:：](\d{2}))?)?\s*$"
)
_HAS_TIME_PATTERN = re.compile(r"\d{1,2}:\d{2}")


def parse_date(date_str: str) -> date:
    """Parse a date string into a date object.

    Supports various formats including relative dates:
    - Absolute dates: "2024-01-15", "January 15, 2024", etc.
    - Relative dates: "today", "yesterday", "last month", "this year", etc.

    Args:
        date_str: Date string in various formats

    Returns:
        Date object

    Raises:
        ValueError: If date string cannot be parsed
    """
    date_str = date_str.strip().lower()
    today = date.today()

    relative_dates = {
        "today": today,
        "yesterday": today - timedelta(days=1),
        "tomorrow": today + timedelta(days=1),
    }

    if date_str in relative_dates:
        return relative_dates[date_str]

    if date_str.startswith("last "):
        period = date_str[5:]
        if period == "month":
            return (today - relativedelta(months=1)).replace(day=1)
        elif period == "year":
            return today.replace(month=1, day=1) - relativedelta(years=1)
        elif period == "week":
            return today - timedelta(days=today.weekday() + 7)

    elif date_str.startswith("this "):
        period = date_str[5:]
        if period == "month":
            return today.replace(day=1)
        elif period == "year":
            return today.replace(month=1, day=1)
        elif period == "week":
            return today - timedelta(days=today.weekday())

    try:
        dt = date_parser.parse(date_str)
        return dt.date()
    except (ValueError, OverflowError) as e:
        raise ValueError(f"Could not parse date '{date_str}': {e}")


def parse_instant(value: str, end_of_day: bool = False) -> datetime:
    """Parse a command-line date or date-time into a naive datetime.

    Values without a time of day resolve to midnight, or to the last
    microsecond of the day when ``end_of_day`` is set, so that "as of
    2024-01-31" includes everything posted on that day.

    Args:
        value: Date string, optionally with a time ("2024-01-31 18:30")
        end_of_day: Resolve date-only values to the end of the day

    Returns:
        Naive datetime

    Raises:
        ValueError: If the value cannot be parsed
    """
    text = value.strip()
    if text.lower() in ("now",):
        return datetime.now().replace(microsecond=0)

    if _HAS_TIME_PATTERN.search(text):
        try:
            return date_parser.parse(text).replace(tzinfo=None)
        except (ValueError, OverflowError) as e:
            raise ValueError(f"Could not parse date '{value}': {e}")

    day = parse_date(text)
    return datetime.combine(day, time.max if end_of_day else time.min)


def parse_row_datetime(value: str) -> datetime:
    """Parse the date cell of an import row.

    Accepts year-month-day separated by ``-``, ``/``, ``.`` or the
    年/月/日 date units, optionally followed by ``H:MM`` or ``H:MM:SS``
    after a space or ``T``. A missing time means midnight.

    Raises:
        ValueError: If the cell is not a valid calendar date
    """
    match = _ROW_DATE_PATTERN.match(value or "")
    if match is None:
        raise ValueError(f"Unrecognized date format '{value}'")

    year, month, day, hour, minute, second = match.groups()
    try:
        return datetime(
            int(year),
            int(month),
            int(day),
            int(hour or 0),
            int(minute or 0),
            int(second or 0),
        )
    except ValueError as e:
        raise ValueError(f"Invalid date '{value}': {e}")


def time_key(moment: datetime) -> str:
    """Return ``HH:MM`` for a timed instant, or ``''`` for a bare midnight."""
    if moment.hour == 0 and moment.minute == 0:
        return ""
    return moment.strftime("%H:%M")

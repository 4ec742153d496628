"""Utility functions for balancebook."""

from balancebook.utils.date_parser import parse_date, parse_instant, parse_row_datetime
from balancebook.utils.amount_parser import parse_amount, parse_amount_pair
from balancebook.utils.name_normalizer import normalize_name

__all__ = [
    "parse_date",
    "parse_instant",
    "parse_row_datetime",
    "parse_amount",
    "parse_amount_pair",
    "normalize_name",
]

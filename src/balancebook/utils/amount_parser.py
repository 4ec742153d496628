"""Amount parsing utilities."""

from decimal import Decimal, InvalidOperation
from typing import Optional
import re

_DECORATION = re.compile(r"[¥￥$€£,，\s]")
_ARROW = re.compile(r"\s*(?:→|->)\s*")


def parse_amount(amount_str: str) -> Decimal:
    """Parse an amount string into a Decimal.

    Handles various formats:
    - "123.45"
    - "¥123.45", "$123.45"
    - "-123.45"
    - "1,234.56", "1，234.56"
    - "(123.45)" (negative in parentheses)

    Args:
        amount_str: Amount string

    Returns:
        Decimal amount

    Raises:
        ValueError: If amount string cannot be parsed
    """
    if not amount_str or not amount_str.strip():
        raise ValueError("Empty amount string")

    amount_str = amount_str.strip()

    is_negative = False
    if amount_str.startswith("(") and amount_str.endswith(")"):
        is_negative = True
        amount_str = amount_str[1:-1]

    cleaned = _DECORATION.sub("", amount_str)

    try:
        amount = Decimal(cleaned)
    except InvalidOperation:
        raise ValueError(f"Could not parse amount '{amount_str}'")
    if not amount.is_finite():
        raise ValueError(f"Could not parse amount '{amount_str}'")
    return -amount if is_negative else amount


def parse_amount_pair(amount_str: str) -> tuple[Decimal, Optional[Decimal]]:
    """Parse a single amount or a ``X->Y`` / ``X→Y`` cross-currency pair.

    Returns:
        Tuple of (from_amount, to_amount); to_amount is None for a single amount

    Raises:
        ValueError: If either side cannot be parsed
    """
    if not amount_str or not amount_str.strip():
        raise ValueError("Empty amount string")

    parts = _ARROW.split(amount_str.strip())
    if len(parts) == 1:
        return parse_amount(parts[0]), None
    if len(parts) != 2:
        raise ValueError(f"Could not parse amount pair '{amount_str}'")
    return parse_amount(parts[0]), parse_amount(parts[1])

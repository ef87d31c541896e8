"""Amount parsing and formatting utilities.

Amounts are stored as integer minor units (pesewas, cents). Parsing is the only
place a decimal string becomes an integer, and formatting the only place it
goes back.
"""

import re
from decimal import Decimal, InvalidOperation

DEFAULT_CURRENCY = "GH₵"

_CURRENCY_SYMBOLS = re.compile(r"GH₵|GHS|₵|[$€£¥]")


def parse_amount(amount_str: str) -> int:
    """Parse an amount string into integer minor units.

    Handles various formats:
    - "123.45" -> 12345
    - "GH₵1,234.50" -> 123450
    - "-50" -> -5000
    - "(12.00)" (negative in parentheses) -> -1200

    Args:
        amount_str: Amount string in major units

    Returns:
        Amount in minor units

    Raises:
        ValueError: If the string is empty, not a number, or has more than two decimal places
    """
    if not amount_str or not amount_str.strip():
        raise ValueError("Empty amount string")

    cleaned = amount_str.strip()
    is_negative = cleaned.startswith("(") and cleaned.endswith(")")
    if is_negative:
        cleaned = cleaned[1:-1]

    cleaned = _CURRENCY_SYMBOLS.sub("", cleaned).replace(",", "").strip()

    try:
        amount = Decimal(cleaned)
    except InvalidOperation as e:
        raise ValueError(f"Could not parse amount '{amount_str}'") from e

    if not amount.is_finite():
        raise ValueError(f"Could not parse amount '{amount_str}'")

    minor = to_minor_units(amount)
    return -minor if is_negative else minor


def to_minor_units(amount: Decimal) -> int:
    """Convert a major-unit Decimal to minor units, rejecting sub-minor precision."""
    scaled = amount.scaleb(2)
    if scaled != scaled.to_integral_value():
        raise ValueError(f"Amount {amount} has more than two decimal places")
    return int(scaled)


def format_amount(minor_units: int, currency: str = DEFAULT_CURRENCY) -> str:
    """Format minor units for display, e.g. ``GH₵1,234.50`` or ``-GH₵5.00``."""
    major = Decimal(minor_units).scaleb(-2)
    sign = "-" if major < 0 else ""
    return f"{sign}{currency}{abs(major):,.2f}"

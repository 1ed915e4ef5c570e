"""Text formatting helpers shared by templating and reasons."""

from datetime import date
from decimal import ROUND_HALF_UP, Decimal, InvalidOperation
from typing import Optional, Union

Number = Union[Decimal, int, float]


def to_decimal(value: Optional[Number]) -> Optional[Decimal]:
    """Convert a numeric value to Decimal, returning None for missing values."""
    if value is None:
        return None
    if isinstance(value, Decimal):
        return value
    try:
        return Decimal(str(value))
    except InvalidOperation:
        return None


def format_currency(amount: Optional[Number]) -> str:
    """
    Format an amount as whole US dollars.

    Rounds half-up to the dollar and groups thousands, e.g. 10000 -> "$10,000"
    and -500.4 -> "-$500". Missing amounts format as an empty string.
    """
    value = to_decimal(amount)
    if value is None:
        return ""

    rounded = value.quantize(Decimal("1"), rounding=ROUND_HALF_UP)
    if rounded == 0:
        # Avoid "-$0" for small negative amounts
        return "$0"
    if rounded < 0:
        return f"-${abs(rounded):,.0f}"
    return f"${rounded:,.0f}"


def format_percent(value: Decimal) -> str:
    """Format a percentage with two decimals, e.g. Decimal("0.8") -> "0.80%"."""
    return f"{value:.2f}%"


def format_us_date(value: date) -> str:
    """Format a date as M/D/YYYY without zero padding."""
    return f"{value.month}/{value.day}/{value.year}"

"""
Money helpers - eBay expects prices as strings with exactly two decimals.
"""
from decimal import Decimal, InvalidOperation, ROUND_HALF_UP
from typing import Any

TWO_PLACES = Decimal("0.01")


def to_money_str(value: Any) -> str:
    """
    Format a numeric value as a two-decimal string ("35" -> "35.00").

    Raises:
        ValueError: If value cannot be converted to Decimal
    """
    try:
        amount = value if isinstance(value, Decimal) else Decimal(str(value))
    except (InvalidOperation, ValueError) as e:
        raise ValueError(f"Invalid money value: {value!r}") from e
    if not amount.is_finite():
        raise ValueError(f"Invalid money value: {value!r}")
    return str(amount.quantize(TWO_PLACES, rounding=ROUND_HALF_UP))


def equal_money(a: Any, b: Any) -> bool:
    """Compare two money values at cent precision."""
    return to_money_str(a) == to_money_str(b)

from decimal import ROUND_HALF_UP, Decimal
from typing import Any

TWO_PLACES = Decimal("0.01")


def safe_decimal(value: Any, default: Decimal = Decimal("0")) -> Decimal:
    """
    Safely convert a value to Decimal.

    Args:
        value: Value to convert (int, float, str, Decimal, None)
        default: Default value if conversion fails or value is None

    Returns:
        Decimal value
    """
    if value is None:
        return default
    if isinstance(value, Decimal):
        return value
    try:
        return Decimal(str(value))
    except (ValueError, TypeError, ArithmeticError):
        return default


def minor_to_major(amount: int) -> Decimal:
    """Convert an amount in minor units (pesewas, kobo) to major units."""
    return (Decimal(amount) / 100).quantize(TWO_PLACES, rounding=ROUND_HALF_UP)


def major_to_minor(amount: Any) -> int:
    """Convert a major-unit amount to the integer minor units Paystack expects."""
    return int((safe_decimal(amount) * 100).quantize(Decimal("1"), ROUND_HALF_UP))

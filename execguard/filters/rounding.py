"""
Decimal rounding helpers for tick and step alignment.

Binary floats cannot represent most tick sizes exactly, so every alignment
check and adjustment is done in Decimal, starting from the value's shortest
decimal text.
"""

from decimal import ROUND_DOWN, ROUND_HALF_UP, Decimal, InvalidOperation
from typing import Any

ZERO = Decimal("0")


def to_decimal(value: Any) -> Decimal:
    """
    Convert a price or quantity to Decimal.

    Floats go through their shortest repr, so 100.004 becomes
    Decimal("100.004") rather than its binary expansion.

    Raises:
        ValueError: If the value is not a finite number
    """
    if isinstance(value, bool):
        raise ValueError(f"Invalid numeric value: {value!r}")
    if isinstance(value, Decimal):
        result = value
    else:
        try:
            result = Decimal(str(value).strip())
        except InvalidOperation as e:
            raise ValueError(f"Invalid numeric value: {value!r}") from e
    if not result.is_finite():
        raise ValueError(f"Invalid numeric value: {value!r}")
    return result


def decimal_precision(increment: Decimal) -> int:
    """Number of decimal digits in an increment, ignoring trailing zeros."""
    exponent = increment.normalize().as_tuple().exponent
    return max(0, -exponent)


def is_aligned(value: Decimal, increment: Decimal, anchor: Decimal = ZERO) -> bool:
    """True if value sits exactly on the anchor + n * increment grid."""
    return (value - anchor) % increment == 0


def round_to_increment(
    value: Decimal,
    increment: Decimal,
    anchor: Decimal = ZERO,
    rounding: str = ROUND_HALF_UP,
) -> Decimal:
    """
    Snap a value to the anchor + n * increment grid.

    Args:
        value: Value to round
        increment: Tick or step size, must be positive
        anchor: Grid origin (minPrice for prices, zero for quantities)
        rounding: decimal rounding mode, ROUND_HALF_UP or ROUND_DOWN

    Returns:
        Rounded value quantized to the increment's precision
    """
    steps = ((value - anchor) / increment).quantize(Decimal(1), rounding=rounding)
    rounded = anchor + steps * increment
    places = max(decimal_precision(increment), decimal_precision(anchor))
    return rounded.quantize(Decimal(1).scaleb(-places))


def round_down_to_increment(value: Decimal, increment: Decimal, anchor: Decimal = ZERO) -> Decimal:
    return round_to_increment(value, increment, anchor, rounding=ROUND_DOWN)

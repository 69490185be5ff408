"""
Money helpers. All amounts are handled as Decimal dollars quantized to cents;
floats only appear at the JSON boundary.
"""

from decimal import Decimal, InvalidOperation, ROUND_HALF_UP
from typing import Any, Optional

CENTS = Decimal("0.01")


def to_decimal(value: Any) -> Optional[Decimal]:
    """
    Coerce a number or numeric string to Decimal cents.
    Returns None for empty, non-numeric or non-finite input.
    """
    if value is None or isinstance(value, bool):
        return None
    if isinstance(value, float):
        value = repr(value)
    try:
        d = Decimal(str(value).strip())
    except (InvalidOperation, ValueError):
        return None
    if not d.is_finite():
        return None
    return d.quantize(CENTS, rounding=ROUND_HALF_UP)


def to_float(value: Any) -> Optional[float]:
    if value is None:
        return None
    return float(value)


def percent_of(total: Decimal, goal: Decimal) -> float:
    if not goal or goal <= 0:
        return 0.0
    return round(min(100.0, float(total / goal) * 100.0), 2)

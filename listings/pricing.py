"""Conversions between major-unit prices and stored integer cents."""
from decimal import Decimal, ROUND_HALF_UP, InvalidOperation
from typing import Union

Number = Union[int, float, Decimal, str]

CENT = Decimal('0.01')

def to_cents(amount: Number) -> int:
    """Convert a major-unit amount to integer cents, rounding half up.

    Goes through str() so binary float noise (e.g. 19.99 * 100) cannot
    shift the result by a cent.

    Raises:
        ValueError: If the amount is not a finite number
    """
    try:
        value = Decimal(str(amount))
    except InvalidOperation:
        raise ValueError(f"Invalid amount: {amount}")
    if not value.is_finite():
        raise ValueError(f"Invalid amount: {amount}")
    return int((value * 100).quantize(Decimal('1'), rounding=ROUND_HALF_UP))

def from_cents(cents: int) -> float:
    """Convert stored cents back to a major-unit amount with two decimals."""
    return float((Decimal(cents) * CENT).quantize(CENT))

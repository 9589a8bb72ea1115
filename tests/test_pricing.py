"""Tests for price conversions."""

from decimal import Decimal

import pytest

from listings import to_cents, from_cents

@pytest.mark.parametrize("amount,cents", [
    (0, 0),
    (1, 100),
    (19.99, 1999),
    (0.1 + 0.2, 30),
    ("12.345", 1235),
    (Decimal("2.675"), 268),
])
def test_to_cents(amount, cents):
    """Test major units convert to cents rounding half up."""
    assert to_cents(amount) == cents

@pytest.mark.parametrize("amount", ["abc", float("nan"), float("inf")])
def test_to_cents_invalid(amount):
    """Test non-numbers are refused."""
    with pytest.raises(ValueError):
        to_cents(amount)

def test_from_cents():
    """Test cents convert back to two-decimal major units."""
    assert from_cents(1999) == 19.99
    assert from_cents(5) == 0.05
    assert from_cents(0) == 0.0

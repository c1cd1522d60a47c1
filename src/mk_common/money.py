"""Decimal money utilities.

Balances, prices and movement amounts are ``Decimal`` end to end. No float.
Rounding (ROUND_HALF_UP, 2 places) happens only when a value is displayed
or reported, never on a stored amount.
"""

from decimal import ROUND_HALF_UP, Decimal, InvalidOperation

ZERO = Decimal("0")
CENT = Decimal("0.01")


def to_money(value: Decimal | int | str) -> Decimal:
    """Coerce an int/str/Decimal into a Decimal. Floats are refused."""
    if isinstance(value, float):
        raise TypeError("Money must not be built from float")
    try:
        amount = Decimal(value)
    except InvalidOperation as exc:
        raise ValueError(f"Not a monetary amount: {value!r}") from exc
    if not amount.is_finite():
        raise ValueError(f"Not a monetary amount: {value!r}")
    return amount


def round_half_up(amount: Decimal) -> Decimal:
    """Quantize to cents with ROUND_HALF_UP: 2.345 -> 2.35, 2.344 -> 2.34."""
    return amount.quantize(CENT, rounding=ROUND_HALF_UP)


def money_to_display(amount: Decimal) -> str:
    """Format for display: Decimal('1500') -> '€1,500.00', Decimal('-12') -> '-€12.00'."""
    rounded = round_half_up(amount)
    if rounded < 0:
        return f"-€{-rounded:,.2f}"
    return f"€{rounded:,.2f}"

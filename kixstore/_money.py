"""Money helpers: cent rounding and display formatting."""

from __future__ import annotations

from decimal import Decimal, ROUND_HALF_UP
from typing import Any

CENT = Decimal("0.01")
ZERO = Decimal("0")


def to_money(value: Any) -> Decimal:
    """Coerce a stored amount (str, int, float or Decimal) into Decimal."""
    if isinstance(value, Decimal):
        return value
    return Decimal(str(value))


def round2(value: Decimal) -> Decimal:
    """Round to the cent, half away from zero."""
    return value.quantize(CENT, rounding=ROUND_HALF_UP)


def to_minor_units(value: Decimal) -> int:
    """Dollars → cents, as payment gateways expect."""
    return int((value * 100).quantize(Decimal("1"), rounding=ROUND_HALF_UP))


def format_amount(value: Decimal) -> str:
    """
    Human amount without a trailing `.00` for whole values.

        format_amount(Decimal("50"))    -> "50"
        format_amount(Decimal("49.5"))  -> "49.50"
    """
    if value == value.to_integral_value():
        return str(int(value))
    return f"{round2(value):.2f}"


__all__ = ("CENT", "ZERO", "to_money", "round2", "to_minor_units", "format_amount")

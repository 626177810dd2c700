"""
Money helpers for the royalty engine.

Every amount inside the engine is an integer count of minor currency units
(cents). Decimal values only exist at the input and output boundary.
"""

from decimal import ROUND_HALF_UP, Decimal
from fractions import Fraction

MINOR_UNITS_PER_MAJOR = 100
MINOR_UNIT = Decimal('0.01')


def to_minor_units(value) -> int:
    """Convert a major-unit amount (e.g. dollars) to integer cents, rounding half-up."""
    amount = Decimal(str(value)) * MINOR_UNITS_PER_MAJOR
    return int(amount.quantize(Decimal('1'), rounding=ROUND_HALF_UP))


def from_minor_units(value: int) -> Decimal:
    """Convert integer cents back to a 2-place Decimal."""
    return (Decimal(value) / MINOR_UNITS_PER_MAJOR).quantize(MINOR_UNIT)


def to_money(value: int) -> float:
    """Convert minor units to float with 2 decimal places for JSON output."""
    return round(float(from_minor_units(value)), 2)


def round_half_up(value: Fraction) -> int:
    """Round an exact ratio to the nearest integer, halves away from zero."""
    if value < 0:
        return -round_half_up(-value)
    return (value.numerator * 2 + value.denominator) // (value.denominator * 2)

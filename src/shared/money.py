"""Amount conversion between major and minor currency units.

The client works in major units (``Decimal("1000.00")``); payment providers
expect integer minor units (kobo, cents). These two functions are the only
place the factor is applied.
"""

from decimal import ROUND_HALF_UP, Decimal

MINOR_UNITS_PER_MAJOR = 100

TWO_PLACES = Decimal("0.01")


def to_decimal(value) -> Decimal:
    """Coerce ints, strings and floats to a Decimal without float noise."""
    if isinstance(value, Decimal):
        return value
    if isinstance(value, float):
        return Decimal(str(value))
    return Decimal(value)


def to_minor_units(amount) -> int:
    """Convert a major-unit amount to integer minor units, rounding half up."""
    major = to_decimal(amount)
    if major < 0:
        raise ValueError(f"Amount cannot be negative: {major}")
    return int((major * MINOR_UNITS_PER_MAJOR).quantize(Decimal("1"), rounding=ROUND_HALF_UP))


def from_minor_units(minor: int) -> Decimal:
    """Convert integer minor units back to a two-place major-unit Decimal."""
    return (Decimal(int(minor)) / MINOR_UNITS_PER_MAJOR).quantize(TWO_PLACES)

from __future__ import annotations

from decimal import Decimal, ROUND_HALF_UP
from typing import Optional

TWO_PLACES = Decimal("0.01")


def to_decimal(value) -> Decimal:
    """Coerce int/float/str/Decimal to Decimal without float artifacts."""
    if isinstance(value, Decimal):
        return value
    if value is None:
        return Decimal("0")
    return Decimal(str(value))


def quantize_money(value) -> Decimal:
    return to_decimal(value).quantize(TWO_PLACES, rounding=ROUND_HALF_UP)


def to_number(value) -> Optional[float]:
    """
    Serializes Numeric column values for JSON.
    Whole numbers come back as int so quantities read naturally.
    """
    if value is None:
        return None
    d = to_decimal(value)
    if d == d.to_integral_value():
        return int(d)
    return float(d)

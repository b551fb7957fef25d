"""Utility functions shared across the invoice validation engine."""
from __future__ import annotations

import math
import re
from decimal import ROUND_CEILING, ROUND_FLOOR, ROUND_HALF_UP, Decimal, InvalidOperation, localcontext
from typing import Optional

MONEY_PLACES = 2

ROUNDING_METHODS = {
    "round": ROUND_HALF_UP,
    "floor": ROUND_FLOOR,
    "ceil": ROUND_CEILING,
}

_CURRENCY_NOISE = re.compile(r"[$€£¥₹,\s]")


def to_decimal(value: object) -> Optional[Decimal]:
    """Convert a finite number to Decimal via its string form, else None."""
    if isinstance(value, Decimal):
        return value if value.is_finite() else None
    if isinstance(value, bool) or not isinstance(value, (int, float)):
        return None
    if isinstance(value, float) and not math.isfinite(value):
        return None
    return Decimal(str(value))


def round_decimal(value: Decimal, precision: int = MONEY_PLACES, method: str = "round") -> Decimal:
    """Quantize ``value`` to ``precision`` places. Every calculation rounds through here."""
    if method not in ROUNDING_METHODS:
        raise ValueError(f"Unknown rounding method: {method!r}")
    with localcontext() as ctx:
        # quantize needs room for every integer digit plus the kept places
        ctx.prec = max(ctx.prec, value.adjusted() + precision + 2)
        return value.quantize(Decimal(1).scaleb(-precision), rounding=ROUNDING_METHODS[method])


def apply_rounding(value: object, precision: int = MONEY_PLACES, method: str = "round") -> float:
    number = to_decimal(value)
    if number is None:
        raise ValueError(f"Cannot round non-numeric value {value!r}")
    return float(round_decimal(number, precision, method))


def money_difference(a: object, b: object) -> float:
    """Absolute difference of two amounts, computed in Decimal so 11.01 - 10 == 1.01."""
    left, right = to_decimal(a), to_decimal(b)
    if left is None or right is None:
        raise ValueError(f"Cannot compare {a!r} with {b!r}")
    return float(abs(left - right))


def approx_equal(a: Optional[Decimal], b: Optional[Decimal], tolerance: Decimal = Decimal("0.01")) -> bool:
    """Check if two money-like values are equal within an absolute tolerance.

    The boundary is inclusive: a difference exactly equal to ``tolerance``
    counts as equal.
    """
    if a is None or b is None:
        return False
    return abs(a - b) <= tolerance


def parse_currency_value(value: object) -> Optional[float]:
    """Parse ``"$1,200.50"``-style strings into floats; returns None on failure."""
    if isinstance(value, bool):
        return None
    if isinstance(value, (int, float)):
        return float(value) if math.isfinite(value) else None
    if not isinstance(value, str):
        return None
    cleaned = _CURRENCY_NOISE.sub("", value)
    if not cleaned:
        return None
    try:
        number = Decimal(cleaned)
    except InvalidOperation:
        return None
    return float(number) if number.is_finite() else None

"""Fixed-point money helpers.

All amounts in paytrack are ``decimal.Decimal`` quantized to the smallest
currency unit. Display strings and floats are converted here, once, so that
splitting and re-summing never drifts.
"""

from decimal import Decimal, InvalidOperation, ROUND_FLOOR, ROUND_HALF_UP
from typing import Any, Optional

from paytrack.domain.exceptions import InvalidArgument

ZERO = Decimal("0")
DEFAULT_PLACES = 0


def unit(places: int = DEFAULT_PLACES) -> Decimal:
    """Smallest currency unit, e.g. Decimal('1') or Decimal('0.01')"""
    return Decimal(1).scaleb(-places)


def quantize(amount: Decimal, places: int = DEFAULT_PLACES) -> Decimal:
    """Round half-up to the smallest currency unit"""
    return amount.quantize(unit(places), rounding=ROUND_HALF_UP)


def floor(amount: Decimal, places: int = DEFAULT_PLACES) -> Decimal:
    """Round down to the smallest currency unit"""
    return amount.quantize(unit(places), rounding=ROUND_FLOOR)


def parse(value: Any, places: int = DEFAULT_PLACES) -> Decimal:
    """
    Normalize a monetary string or number to a fixed-point amount.

    None, empty strings, non-numeric text, NaN and infinities all yield zero;
    this never raises. Thousands separators and surrounding whitespace are
    tolerated ("12,500 " -> 12500).
    """
    candidate = _candidate(value)
    if candidate is None or not candidate.is_finite():
        return quantize(ZERO, places)
    try:
        return quantize(candidate, places)
    except InvalidOperation:
        # beyond decimal context precision
        return quantize(ZERO, places)


def exact(value: Any, places: int = DEFAULT_PLACES) -> Decimal:
    """
    Strict counterpart of ``parse`` for amounts that will be stored.

    Accepts the same inputs, but refuses anything that is not a finite number
    or that carries more precision than the smallest unit instead of rounding.

    Raises:
        InvalidArgument: Missing, non-numeric, or finer than ``unit(places)``
    """
    candidate = _candidate(value)
    if candidate is None or not candidate.is_finite():
        raise InvalidArgument(f"{value!r} is not a valid amount")
    try:
        amount = quantize(candidate, places)
    except InvalidOperation:
        raise InvalidArgument(f"{value!r} is out of range")
    if amount != candidate:
        raise InvalidArgument(f"{value!r} is finer than the smallest currency unit {unit(places)}")
    return amount


def _candidate(value: Any) -> Optional[Decimal]:
    if value is None or isinstance(value, bool):
        return None
    if isinstance(value, Decimal):
        return value
    if isinstance(value, int):
        return Decimal(value)
    if isinstance(value, float):
        # repr gives the shortest round-tripping text, avoiding binary noise
        return _to_decimal(repr(value))
    return _to_decimal(str(value).strip().replace(",", ""))


def _to_decimal(text: str) -> Optional[Decimal]:
    if not text:
        return None
    try:
        return Decimal(text)
    except InvalidOperation:
        return None


def format(amount: Decimal, places: int = DEFAULT_PLACES) -> str:
    """Plain decimal string with exactly ``places`` fractional digits"""
    return f"{quantize(amount, places):f}"


def total(amounts, places: int = DEFAULT_PLACES) -> Decimal:
    """Exact sum of already-parsed amounts"""
    return quantize(sum(amounts, ZERO), places)

"""Coercion of raw user input into numbers.

Total amounts and percentages arrive as raw text from input fields (or as
numbers once loaded from a profile). All of them go through
:func:`parse_number` before any arithmetic.
"""
from __future__ import annotations

import math
import re
from decimal import Decimal
from typing import Optional, Union

RawNumber = Union[str, int, float, Decimal, None]

_NON_NUMERIC = re.compile(r"[^0-9.]")
_LEADING_NUMBER = re.compile(r"\d*\.?\d*")


def sanitize_numeric_text(value: RawNumber) -> str:
    """Strip everything but digits and decimal points from ``value``."""
    if value is None:
        return ""
    return _NON_NUMERIC.sub("", str(value))


def to_storable(value: RawNumber) -> RawNumber:
    """Return ``value`` in a form JSON can hold.

    Decimals become plain positional text and non-finite numbers become
    ``""`` (unset); everything else is returned unchanged.
    """
    if isinstance(value, Decimal):
        return format(value, "f") if value.is_finite() else ""
    if isinstance(value, float) and not math.isfinite(value):
        return ""
    return value


def parse_number(value: RawNumber, default: Optional[float] = 0.0) -> Optional[float]:
    """Return ``value`` as a float, or ``default`` when it does not parse.

    Numbers pass through unchanged (NaN counts as unparsable). Text is
    sanitized first and then read up to the first character that cannot
    continue a number, so ``"12.5.3"`` reads as ``12.5``.
    """
    if value is None or isinstance(value, bool):
        return default
    if isinstance(value, (int, float, Decimal)):
        number = float(value)
        return default if math.isnan(number) else number

    match = _LEADING_NUMBER.match(sanitize_numeric_text(value))
    text = match.group(0) if match else ""
    if text in ("", "."):
        return default
    return float(text)


def parse_amount(value: RawNumber) -> Optional[float]:
    """Parse a total amount; ``None`` when it is missing or not finite."""
    number = parse_number(value, default=None)
    if number is None or not math.isfinite(number):
        return None
    return number

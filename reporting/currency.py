"""Indian digit-grouping for display amounts.

The last three digits of the integer part form one group and the rest are
grouped in pairs: ``12,34,567``. Display only; no rounding happens here.
"""
from __future__ import annotations

import re
from decimal import Decimal

import numpy as np

from common.numeric import RawNumber, sanitize_numeric_text

RUPEE_SIGN = "₹"

_PAIRS = re.compile(r"\B(?=(\d{2})+(?!\d))")


def _to_text(amount: RawNumber) -> str:
    if isinstance(amount, float):
        return np.format_float_positional(amount, trim="-")
    if isinstance(amount, Decimal):
        return format(amount, "f")
    return str(amount)


def format_indian_currency(amount: RawNumber) -> str:
    """Return ``amount`` with Indian digit grouping; falsy input gives ``""``."""
    if not amount:
        return ""

    number = sanitize_numeric_text(_to_text(amount))
    whole, _, rest = number.partition(".")
    decimal = rest.split(".", 1)[0]

    last_three = whole[-3:]
    others = whole[:-3]
    if others:
        whole = _PAIRS.sub(",", others) + "," + last_three
    else:
        whole = last_three

    return f"{whole}.{decimal}" if decimal else whole


def format_rupees(amount: RawNumber) -> str:
    return RUPEE_SIGN + format_indian_currency(amount)

"""
Fixed-point money helpers.

All P&L and fee accumulation happens in integer cents (scale 100) and is
only converted back to float dollars at output boundaries. Summing floats
directly drifts over large trade histories; summing ints does not.
"""

import math
import re
from typing import Iterable, Optional

import pandas as pd


SCALE = 100  # one unit = one cent


def parse_currency(value) -> Optional[float]:
    """Parse currency string like '$123.45' or '($123.45)' to float.

    Returns None for empty or unparseable values instead of guessing 0, so
    callers can tell a missing P&L apart from a break-even trade.
    """
    if value is None or isinstance(value, bool):
        return None
    if isinstance(value, (int, float)):
        if pd.isna(value) or math.isinf(value):
            return None
        return float(value)

    value_str = str(value).strip()
    if value_str == '':
        return None

    # Check if negative (parentheses format)
    is_negative = value_str.startswith('(') and value_str.endswith(')')

    # Remove currency symbols, parentheses, commas
    cleaned = re.sub(r'[$,()\s]', '', value_str)

    try:
        result = float(cleaned)
    except ValueError:
        return None
    if math.isnan(result) or math.isinf(result):
        return None
    return -result if is_negative else result


def to_cents(value: Optional[float]) -> int:
    """Round a dollar amount to the nearest integer cent (None/NaN/inf -> 0)."""
    if value is None or pd.isna(value) or math.isinf(value):
        return 0
    return int(round(value * SCALE))


def from_cents(cents: int) -> float:
    return cents / SCALE


def safe_sum(values: Iterable[Optional[float]]) -> float:
    """Sum dollar values through integer cents so the result has no drift."""
    return from_cents(sum(to_cents(v) for v in values))

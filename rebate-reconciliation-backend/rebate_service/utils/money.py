"""Pure money helpers used by classification, validation & dashboard folds."""
from __future__ import annotations

import math
from decimal import Decimal
from typing import Any, Optional


def safe_div(numerator: float | int, denominator: float | int) -> float:
    if denominator in (0, 0.0):
        return 0.0
    return float(numerator) / float(denominator)


def to_amount(value: Any) -> Optional[float]:
    """Lenient conversion: numeric values become float, anything else None.

    Upstream records occasionally carry amounts as strings; those are accepted
    when they parse. Booleans, NaN and infinities are not amounts.
    """
    if value is None or isinstance(value, bool):
        return None
    if isinstance(value, (int, float, Decimal)):
        number = float(value)
    elif isinstance(value, str):
        text = value.strip()
        if not text:
            return None
        try:
            number = float(text)
        except ValueError:
            return None
    else:
        return None
    if math.isnan(number) or math.isinf(number):
        return None
    return number


def parse_amount(value: Any) -> Optional[float]:
    """Strict conversion for user input.

    Returns None when nothing was supplied (None or blank string) and raises
    ValueError when something was supplied that is not a finite number.
    """
    if value is None:
        return None
    if isinstance(value, str) and not value.strip():
        return None
    number = to_amount(value)
    if number is None:
        raise ValueError(f"Not a valid amount: {value!r}")
    return number


def round_money(value: float) -> float:
    return round(value + 0.0, 2)


__all__ = ["safe_div", "to_amount", "parse_amount", "round_money"]

"""Pure metric math helpers shared by the commission model and the assembler."""
from __future__ import annotations

import math
from decimal import Decimal
from typing import Any


def safe_div(numerator: float | int, denominator: float | int) -> float:
    if denominator in (0, 0.0):
        return 0.0
    return float(numerator) / float(denominator)


def round_half_up(value: float) -> int:
    """Round to the nearest integer, halves away from zero for positives.

    Python's round() uses banker's rounding; displayed dashboard numbers have
    always been rounded half-up.
    """
    return int(math.floor(value + 0.5))


def as_count(value: Any) -> int:
    """Coerce a raw count from the store; missing or negative counts are 0."""
    if value is None:
        return 0
    count = int(value)
    return count if count > 0 else 0


def as_money(value: Any, precision: int = 2) -> float:
    """Coerce a summed Numeric (Decimal / float / None) to a rounded float."""
    if value is None:
        return 0.0
    if isinstance(value, Decimal):
        value = float(value)
    return round(float(value), precision)


def rate_pct(numerator: float | int, denominator: float | int, precision: int = 2) -> float:
    """Percentage with fixed precision; 0 when the denominator is 0."""
    return round(safe_div(numerator, denominator) * 100, precision)


__all__ = ["safe_div", "round_half_up", "as_count", "as_money", "rate_pct"]

"""Small numeric helpers shared by the scheduling and analytics modules."""

from __future__ import annotations

import math


def round_half_up(value: float) -> int:
    """
    Round to the nearest integer, halves toward positive infinity.

    Python's built-in round() uses banker's rounding (2.5 -> 2); the engine's
    interval and percentage formulas expect 2.5 -> 3.
    """
    return math.floor(value + 0.5)


def clamp(value: float, low: float, high: float) -> float:
    """Bound value to the closed range [low, high]."""
    return max(low, min(high, value))

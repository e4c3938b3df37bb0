"""Half-up rounding helpers.

Scores and prices round .5 upward, not to the nearest even number as
Python's built-in round() does.
"""

import math


def round0(value: float) -> int:
    return math.floor(value + 0.5)


def round2(value: float) -> float:
    return math.floor(value * 100 + 0.5) / 100


def clamp_0_100(value: float) -> float:
    return min(100, max(0, value))

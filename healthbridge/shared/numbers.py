"""Numeric helpers."""

import math


def round_half_up(value: float) -> int:
    """Round to the nearest integer with halves rounded up (310.5 -> 311)."""
    return math.floor(value + 0.5)

"""
Mathematical utility functions for the fixed-point engine.
Integer helpers work on Python ints (arbitrary precision); window
statistics use numpy for efficient array operations.
"""

import numpy as np
from numpy.typing import ArrayLike


def saturate_int(value: int, min_val: int, max_val: int) -> int:
    """Clamp an integer between inclusive bounds, never wrapping."""
    if value > max_val:
        return max_val
    if value < min_val:
        return min_val
    return value


def shift_radix(value: int, from_radix: int, to_radix: int) -> int:
    """
    Move a raw fixed-point integer from one radix to another.

    Left shifts are exact. Right shifts are arithmetic, so the result is
    truncated toward negative infinity.
    """
    if to_radix >= from_radix:
        return value << (to_radix - from_radix)
    return value >> (from_radix - to_radix)


def mean(values: ArrayLike) -> float:
    """Arithmetic mean, 0.0 for an empty input."""
    arr = np.asarray(values, dtype=float)
    if len(arr) == 0:
        return 0.0
    return float(np.mean(arr))


def rms_deviation(values: ArrayLike) -> float:
    """Root-mean-square deviation from the mean (population std)."""
    arr = np.asarray(values, dtype=float)
    if len(arr) == 0:
        return 0.0
    return float(np.sqrt(np.mean((arr - np.mean(arr)) ** 2)))

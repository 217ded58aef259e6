"""Utility functions and helpers."""

from pid_engine.utils.validators import (
    ConfigurationError,
    validate_positive_int,
    validate_non_negative_int,
    validate_multiple_of,
    validate_at_most,
    validate_at_least,
    validate_type,
)
from pid_engine.utils.math_utils import saturate_int, shift_radix, mean, rms_deviation

__all__ = [
    "ConfigurationError",
    "validate_positive_int",
    "validate_non_negative_int",
    "validate_multiple_of",
    "validate_at_most",
    "validate_at_least",
    "validate_type",
    "saturate_int",
    "shift_radix",
    "mean",
    "rms_deviation",
]

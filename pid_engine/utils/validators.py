"""
Validation utilities for construction-time parameter checking.
Provides robust input validation with clear error messages.
"""

from typing import Any, Type, Union, Tuple
import numbers


class ConfigurationError(ValueError):
    """Raised when construction-time parameters violate width/radix rules."""
    pass


def validate_type(value: Any, name: str, expected_type: Union[Type, Tuple[Type, ...]]) -> Any:
    """
    Validate that a value is of the expected type.

    Args:
        value: The value to validate
        name: Parameter name for error messages
        expected_type: Expected type or tuple of types

    Returns:
        The validated value

    Raises:
        ConfigurationError: If value is not of expected type
    """
    if not isinstance(value, expected_type):
        if isinstance(expected_type, tuple):
            type_names = " or ".join(t.__name__ for t in expected_type)
        else:
            type_names = expected_type.__name__
        raise ConfigurationError(
            f"{name} must be of type {type_names}, got {type(value).__name__}"
        )
    return value


def validate_int(value: Any, name: str) -> int:
    """Validate that a value is an integer (bools are rejected)."""
    if isinstance(value, bool) or not isinstance(value, numbers.Integral):
        raise ConfigurationError(f"{name} must be an integer, got {type(value).__name__}")
    return int(value)


def validate_positive_int(value: Any, name: str) -> int:
    """
    Validate that a value is a strictly positive integer.

    Args:
        value: The value to validate
        name: Parameter name for error messages

    Returns:
        The validated value

    Raises:
        ConfigurationError: If value is not a positive integer
    """
    value = validate_int(value, name)
    if value <= 0:
        raise ConfigurationError(f"{name} must be positive, got {value}")
    return value


def validate_non_negative_int(value: Any, name: str) -> int:
    """Validate that a value is an integer >= 0."""
    value = validate_int(value, name)
    if value < 0:
        raise ConfigurationError(f"{name} must be non-negative, got {value}")
    return value


def validate_multiple_of(value: int, name: str, factor: int) -> int:
    """Validate that an integer is a whole multiple of ``factor``."""
    if value % factor != 0:
        raise ConfigurationError(f"{name} must be a multiple of {factor}, got {value}")
    return value


def validate_at_most(value: int, name: str, limit: int, limit_name: str) -> int:
    """
    Validate that ``value <= limit``.

    Args:
        value: The value to validate
        name: Parameter name for error messages
        limit: Inclusive upper bound
        limit_name: Name of the bound for error messages

    Returns:
        The validated value

    Raises:
        ConfigurationError: If value exceeds the bound
    """
    if value > limit:
        raise ConfigurationError(f"{name} must be <= {limit_name} ({limit}), got {value}")
    return value


def validate_at_least(value: int, name: str, limit: int, limit_name: str) -> int:
    """Validate that ``value >= limit``."""
    if value < limit:
        raise ConfigurationError(f"{name} must be >= {limit_name} ({limit}), got {value}")
    return value


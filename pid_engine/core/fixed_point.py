"""
Fixed-point arithmetic for the PID pipeline.

Features:
- Immutable (width, radix) formats validated at construction
- Samples that carry their own format
- Saturating add/sub/mul/resize computed at full precision
- Truncation toward negative infinity (arithmetic shift, no rounding)
- Vectorised real <-> fixed conversion with numpy

All values are signed two's-complement. A raw integer ``v`` in format
``(width, radix)`` represents the real number ``v / 2**radix``.
"""

from typing import Iterable, List, Optional
from dataclasses import dataclass
import numpy as np
from numpy.typing import ArrayLike

from pid_engine.utils.math_utils import saturate_int, shift_radix
from pid_engine.utils.validators import (
    ConfigurationError,
    validate_positive_int,
    validate_non_negative_int,
    validate_at_most,
)


@dataclass(frozen=True)
class FixedFormat:
    """
    Signed fixed-point format.

    Attributes:
        width: Total number of bits, sign included
        radix: Number of fractional bits (binary point position)
    """
    width: int
    radix: int

    def __post_init__(self):
        """Validate format after initialization."""
        validate_positive_int(self.width, "width")
        validate_non_negative_int(self.radix, "radix")
        validate_at_most(self.radix, "radix", self.width, "width")

    @property
    def min_int(self) -> int:
        """Smallest representable raw value."""
        return -(1 << (self.width - 1))

    @property
    def max_int(self) -> int:
        """Largest representable raw value."""
        return (1 << (self.width - 1)) - 1

    @property
    def scale(self) -> int:
        return 1 << self.radix

    @property
    def resolution(self) -> float:
        """Real value of one LSB."""
        return 1.0 / self.scale

    @property
    def min_value(self) -> float:
        return self.min_int / self.scale

    @property
    def max_value(self) -> float:
        return self.max_int / self.scale

    def saturate(self, value: int) -> int:
        """Clamp a raw integer into this format's range."""
        return saturate_int(value, self.min_int, self.max_int)

    def __str__(self) -> str:
        return f"Q({self.width},{self.radix})"


@dataclass(frozen=True)
class FixedSample:
    """
    A raw fixed-point value paired with its format.

    The raw value must already be representable; use ``from_raw`` or
    ``from_float`` to saturate arbitrary inputs.
    """
    value: int
    fmt: FixedFormat

    def __post_init__(self):
        if isinstance(self.value, bool) or not isinstance(self.value, (int, np.integer)):
            raise ValueError(f"raw value must be an integer, got {type(self.value).__name__}")
        if not self.fmt.min_int <= self.value <= self.fmt.max_int:
            raise ValueError(f"raw value {self.value} out of range for {self.fmt}")
        # numpy integers are normalised so arithmetic stays arbitrary precision
        object.__setattr__(self, "value", int(self.value))

    @classmethod
    def zero(cls, fmt: FixedFormat) -> 'FixedSample':
        return cls(0, fmt)

    @classmethod
    def from_raw(cls, value: int, fmt: FixedFormat) -> 'FixedSample':
        """Create a sample from a raw integer, saturating to the format."""
        return cls(fmt.saturate(int(value)), fmt)

    @classmethod
    def from_float(cls, value: float, fmt: FixedFormat) -> 'FixedSample':
        """
        Quantize a real number.

        Rounds to the nearest representable value, then saturates. Values
        beyond the format range (infinities included) saturate by sign.

        Raises:
            ValueError: If ``value`` is NaN
        """
        value = float(value)
        if np.isnan(value):
            raise ValueError(f"cannot quantize NaN into {fmt}")
        # Range bound is a power of two, exact in float
        limit = (fmt.max_int + 1) / fmt.scale
        if value >= limit:
            return cls(fmt.max_int, fmt)
        if value <= -limit:
            return cls(fmt.min_int, fmt)
        return cls.from_raw(int(np.round(value * fmt.scale)), fmt)

    @property
    def width(self) -> int:
        return self.fmt.width

    @property
    def radix(self) -> int:
        return self.fmt.radix

    def to_float(self) -> float:
        """Real value represented by this sample."""
        return self.value / self.fmt.scale

    def __float__(self) -> float:
        return self.to_float()

    def __str__(self) -> str:
        return f"{self.to_float():g}{self.fmt}"


def _narrow(value: int, radix: int, fmt: FixedFormat) -> FixedSample:
    """Shift a full-precision raw value to ``fmt`` and saturate."""
    return FixedSample(fmt.saturate(shift_radix(value, radix, fmt.radix)), fmt)


def _sum_format(a: FixedSample, b: FixedSample) -> FixedFormat:
    """Lossless format for the sum or difference of two samples."""
    radix = max(a.radix, b.radix)
    int_bits = max(a.width - a.radix, b.width - b.radix)
    return FixedFormat(int_bits + radix + 1, radix)


def product_format(a: FixedFormat, b: FixedFormat) -> FixedFormat:
    """Full-precision format of ``a * b``: widths and radices compound."""
    return FixedFormat(a.width + b.width, a.radix + b.radix)


def resize(a: FixedSample, fmt: FixedFormat) -> FixedSample:
    """
    Convert a sample to another format.

    Args:
        a: Source sample
        fmt: Target format

    Returns:
        Sample in ``fmt``, truncated toward negative infinity and saturated
    """
    return _narrow(a.value, a.radix, fmt)


def add(a: FixedSample, b: FixedSample, fmt: Optional[FixedFormat] = None) -> FixedSample:
    """
    Saturating addition.

    Both operands are aligned to the larger radix before adding, then the
    exact sum is shifted to ``fmt`` (lossless format if omitted).
    """
    radix = max(a.radix, b.radix)
    total = shift_radix(a.value, a.radix, radix) + shift_radix(b.value, b.radix, radix)
    return _narrow(total, radix, fmt if fmt is not None else _sum_format(a, b))


def sub(a: FixedSample, b: FixedSample, fmt: Optional[FixedFormat] = None) -> FixedSample:
    """Saturating subtraction ``a - b`` with the same alignment rules as ``add``."""
    radix = max(a.radix, b.radix)
    diff = shift_radix(a.value, a.radix, radix) - shift_radix(b.value, b.radix, radix)
    return _narrow(diff, radix, fmt if fmt is not None else _sum_format(a, b))


def mul(a: FixedSample, b: FixedSample, fmt: Optional[FixedFormat] = None) -> FixedSample:
    """
    Saturating multiplication.

    The product is formed at full precision in ``product_format`` (which is
    the result format when ``fmt`` is omitted) and only then resized.
    """
    full = product_format(a.fmt, b.fmt)
    return _narrow(a.value * b.value, full.radix, fmt if fmt is not None else full)


def quantize(values: ArrayLike, fmt: FixedFormat) -> List[FixedSample]:
    """
    Quantize an array of reals into samples.

    Each element follows ``FixedSample.from_float``: round to nearest, then
    saturate on Python integers so formats wider than a float mantissa
    stay exact. NaN elements raise ValueError.
    """
    arr = np.asarray(values, dtype=float).ravel()
    return [FixedSample.from_float(v, fmt) for v in arr]


def to_real(samples: Iterable[FixedSample]) -> np.ndarray:
    """Convert samples to a float array for measurement."""
    return np.array([s.to_float() for s in samples], dtype=float)


__all__ = [
    "ConfigurationError",
    "FixedFormat",
    "FixedSample",
    "product_format",
    "resize",
    "add",
    "sub",
    "mul",
    "quantize",
    "to_real",
]

"""
PID Engine Configuration.
Encapsulates the construction-time numeric widths in a validated,
immutable structure, plus the coefficient set consumed by the pipeline.
"""

from dataclasses import dataclass, asdict
from typing import Dict, Any, Union

from pid_engine.core.fixed_point import FixedFormat, FixedSample, product_format
from pid_engine.utils.validators import (
    ConfigurationError,
    validate_positive_int,
    validate_non_negative_int,
    validate_multiple_of,
    validate_at_most,
    validate_at_least,
)


@dataclass(frozen=True)
class EngineConfig:
    """
    PID Engine Configuration.

    Fixed for the lifetime of an engine. Every derived format used by the
    pipeline stages is computed from these five values.
    """

    data_width: int = 24  # Error/output word width, multiple of 8
    data_radix: int = 10  # Fractional bits of the data path
    k_width: int = 24  # Coefficient word width
    k_radix: int = 10  # Fractional bits of the coefficients
    integrator_width: int = 32  # Accumulator width (>= data_width)

    def __post_init__(self):
        """Validate parameters after initialization."""
        self._validate()

    def _validate(self) -> None:
        """Validate all width/radix invariants."""
        validate_positive_int(self.data_width, "data_width")
        validate_multiple_of(self.data_width, "data_width", 8)
        validate_non_negative_int(self.data_radix, "data_radix")
        validate_at_most(self.data_radix, "data_radix", self.data_width, "data_width")

        validate_positive_int(self.k_width, "k_width")
        validate_non_negative_int(self.k_radix, "k_radix")
        validate_at_most(self.k_radix, "k_radix", self.k_width, "k_width")

        validate_positive_int(self.integrator_width, "integrator_width")
        validate_at_least(
            self.integrator_width, "integrator_width", self.data_width, "data_width"
        )

    @property
    def data_format(self) -> FixedFormat:
        """Format of the error input, P/D terms and the output."""
        return FixedFormat(self.data_width, self.data_radix)

    @property
    def coeff_format(self) -> FixedFormat:
        return FixedFormat(self.k_width, self.k_radix)

    @property
    def integrator_format(self) -> FixedFormat:
        """Accumulator format: wide integer part, data-path radix."""
        return FixedFormat(self.integrator_width, self.data_radix)

    @property
    def product_format(self) -> FixedFormat:
        """Full-precision P/D products."""
        return product_format(self.data_format, self.coeff_format)

    @property
    def integral_product_format(self) -> FixedFormat:
        """Full-precision I product."""
        return product_format(self.integrator_format, self.coeff_format)

    @property
    def term_format(self) -> FixedFormat:
        """Scaled-term format carried from stage 2 into the sum."""
        return FixedFormat(self.data_width + self.k_width, self.data_radix)

    def copy(self, **changes) -> 'EngineConfig':
        """
        Create a copy with optional parameter changes.

        Args:
            **changes: Parameters to override

        Returns:
            New EngineConfig instance
        """
        params = self.to_dict()
        params.update(changes)
        return EngineConfig(**params)

    def to_dict(self) -> Dict[str, int]:
        """Convert to dictionary for serialization."""
        return asdict(self)

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> 'EngineConfig':
        """
        Create from dictionary.

        Unknown keys are rejected so typos surface at construction.
        """
        unknown = set(data) - set(cls.__dataclass_fields__)
        if unknown:
            raise ConfigurationError(f"Unknown configuration keys: {sorted(unknown)}")
        return cls(**data)

    def __str__(self) -> str:
        """Human-readable string representation."""
        return (
            f"EngineConfig(data={self.data_format}, k={self.coeff_format}, "
            f"integrator={self.integrator_format})"
        )


@dataclass(frozen=True)
class Coefficients:
    """PID gains sharing one coefficient format."""
    kp: FixedSample
    ki: FixedSample
    kd: FixedSample

    def __post_init__(self):
        if not (self.kp.fmt == self.ki.fmt == self.kd.fmt):
            raise ConfigurationError("kp, ki and kd must share one fixed-point format")

    @property
    def fmt(self) -> FixedFormat:
        return self.kp.fmt

    @classmethod
    def zero(cls, fmt: FixedFormat) -> 'Coefficients':
        z = FixedSample.zero(fmt)
        return cls(z, z, z)

    @classmethod
    def from_floats(cls, kp: float, ki: float, kd: float, fmt: FixedFormat) -> 'Coefficients':
        """Quantize real gains into ``fmt`` (round to nearest, saturate)."""
        return cls(
            FixedSample.from_float(kp, fmt),
            FixedSample.from_float(ki, fmt),
            FixedSample.from_float(kd, fmt),
        )

    def to_floats(self) -> Dict[str, float]:
        return {'kp': self.kp.to_float(), 'ki': self.ki.to_float(), 'kd': self.kd.to_float()}

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary with raw values and format."""
        return {
            'kp': self.kp.value,
            'ki': self.ki.value,
            'kd': self.kd.value,
            'k_width': self.fmt.width,
            'k_radix': self.fmt.radix,
        }

    def __str__(self) -> str:
        return (
            f"Coefficients(Kp={self.kp.to_float():.4f}, Ki={self.ki.to_float():.4f}, "
            f"Kd={self.kd.to_float():.4f}, fmt={self.fmt})"
        )


CoefficientValue = Union[FixedSample, float]


def coerce_coefficients(
    kp: CoefficientValue,
    ki: CoefficientValue,
    kd: CoefficientValue,
    fmt: FixedFormat
) -> Coefficients:
    """
    Build a coefficient set from reals or samples.

    Reals are quantized into ``fmt``; samples must already be in ``fmt``.
    """
    values = []
    for name, k in (('kp', kp), ('ki', ki), ('kd', kd)):
        if isinstance(k, FixedSample):
            if k.fmt != fmt:
                raise ConfigurationError(f"{name} is in {k.fmt}, expected {fmt}")
            values.append(k)
        else:
            values.append(FixedSample.from_float(float(k), fmt))
    return Coefficients(*values)


# Preset coefficient sets
class CoefficientPresets:
    """Coefficient sets with a known closed-loop regime (unity feedback)."""

    @staticmethod
    def stable() -> Dict[str, float]:
        """Converges to zero error with a quiet window."""
        return {'kp': 0.1, 'ki': 0.03, 'kd': 0.0}

    @staticmethod
    def overdamped() -> Dict[str, float]:
        """Integral only, too slow to close the error within a window."""
        return {'kp': 0.0, 'ki': 0.003, 'kd': 0.0}

    @staticmethod
    def unstable() -> Dict[str, float]:
        """Growing oscillation at the Nyquist rate."""
        return {'kp': 0.11, 'ki': 0.3, 'kd': 0.395}

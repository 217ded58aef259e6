"""
Verification scenarios for the closed-loop harness.
Defines coefficient sets with the regime each one must produce.
"""

from typing import List, Dict, Any
from dataclasses import dataclass

from pid_engine.analyzer.metrics import WindowStatistics
from pid_engine.analyzer.regime import Regime, meets_threshold
from pid_engine.core.engine_params import CoefficientPresets


@dataclass(frozen=True)
class RegimeCase:
    """
    One coefficient set and the regime it must produce.

    Gains are reals; they are quantized to the engine's coefficient format
    when applied.
    """

    name: str
    kp: float
    ki: float
    kd: float
    expected: Regime
    reset_ticks: int = 10
    settle_ticks: int = 600

    def check(self, stats: WindowStatistics) -> bool:
        """True if the window meets this case's documented threshold."""
        return meets_threshold(self.expected, stats)

    @property
    def gains(self) -> Dict[str, float]:
        return {'kp': self.kp, 'ki': self.ki, 'kd': self.kd}

    def to_dict(self) -> Dict[str, Any]:
        return {
            'name': self.name,
            **self.gains,
            'expected': self.expected.value,
            'reset_ticks': self.reset_ticks,
            'settle_ticks': self.settle_ticks,
        }


class RegimeLibrary:
    """Library of predefined regime cases."""

    @staticmethod
    def stable(settle_ticks: int = 600) -> RegimeCase:
        """Slow but converging PI set: window RMS falls below 0.001."""
        return RegimeCase("stable", expected=Regime.STABLE, settle_ticks=settle_ticks,
                          **CoefficientPresets.stable())

    @staticmethod
    def overdamped(settle_ticks: int = 600) -> RegimeCase:
        """Integral-only set, too slow: mean error stays above 1.0."""
        return RegimeCase("overdamped", expected=Regime.OVERDAMPED, settle_ticks=settle_ticks,
                          **CoefficientPresets.overdamped())

    @staticmethod
    def unstable(settle_ticks: int = 600) -> RegimeCase:
        """Excessive derivative gain: oscillation grows, RMS above 5.0."""
        return RegimeCase("unstable", expected=Regime.UNSTABLE, settle_ticks=settle_ticks,
                          **CoefficientPresets.unstable())

    @staticmethod
    def default_sequence() -> List[RegimeCase]:
        """The fixed ordered list driven by the verification run."""
        return [
            RegimeLibrary.stable(),
            RegimeLibrary.overdamped(),
            RegimeLibrary.unstable(),
        ]

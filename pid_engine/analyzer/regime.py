"""
Dynamical regime classification from error-window statistics.
"""

from enum import Enum

from pid_engine.analyzer.metrics import WindowStatistics

# Window thresholds (setpoint 10.0, 100-sample window)
STABLE_RMS_MAX = 0.001
OVERDAMPED_MEAN_MIN = 1.0
UNSTABLE_RMS_MIN = 5.0


class Regime(Enum):
    """Closed-loop behaviour of a coefficient set."""
    STABLE = "stable"  # Settled, quiet window
    UNDERDAMPED = "underdamped"  # Bounded oscillation still present
    OVERDAMPED = "overdamped"  # Too slow, error still far from zero
    UNSTABLE = "unstable"  # Growing oscillation


def classify(stats: WindowStatistics) -> Regime:
    """
    Classify window statistics.

    Checked in order: RMS above the unstable bound, mean error above the
    overdamped bound, RMS below the stable bound; anything else is a
    bounded oscillation.
    """
    if stats.rms > UNSTABLE_RMS_MIN:
        return Regime.UNSTABLE
    if abs(stats.mean) > OVERDAMPED_MEAN_MIN:
        return Regime.OVERDAMPED
    if stats.rms < STABLE_RMS_MAX:
        return Regime.STABLE
    return Regime.UNDERDAMPED


def meets_threshold(regime: Regime, stats: WindowStatistics) -> bool:
    """Check the single documented threshold for ``regime``."""
    if regime == Regime.STABLE:
        return stats.rms < STABLE_RMS_MAX
    if regime == Regime.OVERDAMPED:
        return abs(stats.mean) > OVERDAMPED_MEAN_MIN
    if regime == Regime.UNSTABLE:
        return stats.rms > UNSTABLE_RMS_MIN
    return STABLE_RMS_MAX <= stats.rms <= UNSTABLE_RMS_MIN

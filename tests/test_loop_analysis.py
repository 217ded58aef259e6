"""
Unit tests for the transfer-function loop model.
"""

import pytest
import numpy as np
import sys
from pathlib import Path

sys.path.insert(0, str(Path(__file__).parent.parent))

from pid_engine.analyzer.loop_analysis import (
    LOOP_DELAY,
    controller_tf,
    closed_loop_poles,
    spectral_radius,
    predict_regime,
    analyze_loop,
)
from pid_engine.analyzer.regime import Regime
from pid_engine.core.engine_params import CoefficientPresets, EngineConfig, Coefficients
from pid_engine.core.pid_engine import PIDEngine


class TestLoopModel:
    """Test suite for closed-loop pole analysis."""

    def test_loop_delay(self):
        """Test loop delay is the pipeline latency plus the error register."""
        assert LOOP_DELAY == PIDEngine.LATENCY + 1

    def test_controller_is_discrete(self):
        """Test the controller model is a discrete-time system."""
        tf = controller_tf(0.1, 0.03, 0.0)
        assert tf.isdtime()

    def test_poles_sorted_by_magnitude(self):
        """Test poles come back dominant first."""
        poles = closed_loop_poles(**CoefficientPresets.stable())
        mags = np.abs(poles)
        assert np.all(mags[:-1] >= mags[1:])

    def test_stable_set(self):
        """Test the stable preset has all poles inside the unit circle."""
        gains = CoefficientPresets.stable()
        assert spectral_radius(**gains) < 1.0
        assert predict_regime(**gains) != Regime.UNSTABLE

    def test_overdamped_set(self):
        """Test the integral-only preset has a slow real dominant pole."""
        assert predict_regime(**CoefficientPresets.overdamped()) == Regime.OVERDAMPED

    def test_unstable_set(self):
        """Test the unstable preset has a pole outside the unit circle."""
        gains = CoefficientPresets.unstable()
        assert spectral_radius(**gains) > 1.0
        assert predict_regime(**gains) == Regime.UNSTABLE

    def test_accepts_coefficient_set(self):
        """Test quantized coefficient sets are accepted directly."""
        coeffs = Coefficients.from_floats(
            **CoefficientPresets.unstable(), fmt=EngineConfig().coeff_format
        )
        summary = analyze_loop(coeffs)
        assert summary['regime'] == Regime.UNSTABLE
        assert summary['loop_delay'] == LOOP_DELAY
        assert summary['spectral_radius'] > 1.0


if __name__ == "__main__":
    pytest.main([__file__, "-v"])

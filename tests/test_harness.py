"""
Closed-loop tests: the engine driven by the verification harness.
"""

import csv
import pytest
import numpy as np
import sys
from pathlib import Path

sys.path.insert(0, str(Path(__file__).parent.parent))

from pid_engine.simulation.harness import ClosedLoopHarness
from pid_engine.simulation.scenarios import RegimeCase, RegimeLibrary
from pid_engine.analyzer.regime import Regime
from pid_engine.core.engine_params import CoefficientPresets


class TestHarnessMechanics:
    """Test suite for harness tick ordering."""

    def test_error_register_delays_by_one_tick(self):
        """Test the fed error is the one computed on the previous tick."""
        harness = ClosedLoopHarness(setpoint=10.0)
        harness.run(3)
        errors = harness.trace.to_dict()['error']
        np.testing.assert_array_equal(errors, [0.0, 10.0, 10.0])

    def test_window_fills(self):
        """Test one window sample per tick up to the window size."""
        harness = ClosedLoopHarness(window_size=100)
        harness.run(150)
        assert len(harness.window) == 100
        assert len(harness.trace) == 150
        assert harness.tick_count == 150

    def test_zero_gains_hold_full_error(self):
        """Test with no control action the error equals the setpoint."""
        harness = ClosedLoopHarness(setpoint=10.0)
        stats = harness.apply(0.0, 0.0, 0.0, reset_ticks=1, settle_ticks=200)
        assert stats.mean == 10.0
        assert stats.rms == 0.0

    def test_reset_recorded_in_trace(self):
        """Test the reset window shows up in the trace."""
        harness = ClosedLoopHarness(reset_ticks=4, settle_ticks=6)
        harness.apply(**CoefficientPresets.stable())
        trace = harness.trace.to_dict()
        assert list(trace['reset']) == [True] * 4 + [False] * 6

    def test_csv_trace(self, tmp_path):
        """Test per-tick CSV output."""
        path = tmp_path / "loop.csv"
        with ClosedLoopHarness(csv_path=str(path)) as harness:
            harness.run(20)

        with open(path, newline='') as f:
            rows = list(csv.DictReader(f))
        assert len(rows) == 20
        assert [int(r['tick']) for r in rows] == list(range(20))


class TestRegimes:
    """End-to-end regime checks with the documented coefficient sets."""

    def test_stable(self):
        """Test the stable set settles with a quiet window."""
        harness = ClosedLoopHarness()
        stats = harness.apply(**CoefficientPresets.stable())
        assert stats.count == 100
        assert stats.rms < 0.001
        assert abs(stats.mean) < 0.01

    def test_overdamped(self):
        """Test the integral-only set is still far from the setpoint."""
        harness = ClosedLoopHarness()
        stats = harness.apply(**CoefficientPresets.overdamped())
        assert stats.mean > 1.0
        assert stats.mean < 10.0

    def test_unstable(self):
        """Test the unstable set oscillates with growing amplitude."""
        harness = ClosedLoopHarness()
        stats = harness.apply(**CoefficientPresets.unstable())
        assert stats.rms > 5.0

    def test_default_sequence(self):
        """Test the fixed ordered list passes every threshold."""
        with ClosedLoopHarness() as harness:
            results = harness.run_regimes()

        assert [r.case.name for r in results] == ["stable", "overdamped", "unstable"]
        assert all(r.passed for r in results)
        assert [r.regime for r in results] == [
            Regime.STABLE, Regime.OVERDAMPED, Regime.UNSTABLE
        ]
        assert harness.controller.applied_count == 3

    def test_sequence_order_is_irrelevant(self):
        """Test the reset between sets isolates each case."""
        cases = list(reversed(RegimeLibrary.default_sequence()))
        results = ClosedLoopHarness().run_regimes(cases)
        assert all(r.passed for r in results)

    def test_failed_case_reported(self):
        """Test a case whose threshold is not met is reported as failed."""
        case = RegimeCase("mislabelled", expected=Regime.STABLE,
                          **CoefficientPresets.unstable())
        result = ClosedLoopHarness().run_case(case)
        assert not result.passed
        assert result.regime == Regime.UNSTABLE
        assert result.to_dict()['passed'] is False


if __name__ == "__main__":
    pytest.main([__file__, "-v"])

"""
Unit tests for the pipelined PID engine.
"""

import csv
import pytest
import numpy as np
import sys
from pathlib import Path

sys.path.insert(0, str(Path(__file__).parent.parent))

from pid_engine.core.pid_engine import PIDEngine
from pid_engine.core.engine_params import EngineConfig, Coefficients
from pid_engine.core.fixed_point import FixedFormat, FixedSample, quantize, to_real
from pid_engine.core.registers import RegisterSnapshot
from pid_engine.analyzer.reference import reference_output
from pid_engine.utils.validators import ConfigurationError


def make_engine(kp=0.0, ki=0.0, kd=0.0, **config):
    engine = PIDEngine(EngineConfig(**config))
    engine.set_coefficients(kp, ki, kd)
    return engine


class TestPipelineTiming:
    """Test suite for latency and valid propagation."""

    def test_reset_state(self):
        """Test engine starts with every register cleared."""
        engine = PIDEngine()
        assert engine.output.valid is False
        assert engine.output.value.to_float() == 0.0
        assert engine.accumulator.to_float() == 0.0
        assert engine.tick_count == 0

    def test_latency(self):
        """Test input n appears at output index n+3 after one warm-up sample."""
        engine = make_engine(kp=1.0)
        outputs, valid = engine.run([1.0, 2.0, 3.0, 4.0, 5.0, 6.0])

        assert len(outputs) == 6 + PIDEngine.LATENCY
        assert list(valid) == [False] * 4 + [True] * 5 + [False]
        np.testing.assert_array_equal(outputs[valid], [2.0, 3.0, 4.0, 5.0, 6.0])

    def test_first_valid_output_five_ticks_after_first_input(self):
        """Test the first valid output needs the warm-up tick."""
        engine = make_engine(kp=1.0)
        ticks = 0
        while not engine.output.valid:
            engine.tick(1.0)
            ticks += 1
        assert ticks == PIDEngine.LATENCY + 1

    def test_invalid_input_produces_bubble(self):
        """Test an invalid tick propagates as an invalid output."""
        engine = make_engine(kp=1.0)
        valid = []
        for e, v in [(1.0, True), (1.0, True), (1.0, True), (0.0, False),
                     (1.0, True), (1.0, True), (1.0, True)]:
            valid.append(engine.tick(e, valid=v).valid)
        for _ in range(4):
            valid.append(engine.tick(valid=False).valid)
        # Bubble at the invalid tick, plus the warm-up of the resumed stream
        assert valid == [False, False, False, False, True, True, False,
                         False, True, True, False]

    def test_none_error_is_invalid(self):
        """Test a missing sample is treated as invalid."""
        engine = make_engine(kp=1.0)
        for _ in range(10):
            assert engine.tick(None).valid is False


class TestControlLaw:
    """Test suite for P, I and D terms."""

    def test_proportional(self):
        """Test P-only output."""
        engine = make_engine(kp=0.5)
        outputs, valid = engine.run([4.0, 4.0, -2.0])
        np.testing.assert_array_equal(outputs[valid], [2.0, -1.0])

    def test_integral_accumulation(self):
        """Test the accumulator is a running sum excluding the priming sample."""
        engine = make_engine(ki=1.0)
        outputs, valid = engine.run([1.0, 1.0, 1.0, 1.0])
        np.testing.assert_array_equal(outputs[valid], [1.0, 2.0, 3.0])
        assert engine.accumulator.to_float() == 3.0

    def test_accumulator_retained_across_invalid_ticks(self):
        """Test the accumulator holds its value while no sample is valid."""
        engine = make_engine(ki=1.0)
        for _ in range(3):
            engine.tick(2.0)
        for _ in range(2):
            engine.tick(valid=False)
        held = engine.accumulator.to_float()
        assert held == 4.0

        for _ in range(10):
            engine.tick(valid=False)
        assert engine.accumulator.to_float() == held

    def test_first_derivative_is_zero(self):
        """Test the first captured sample primes the derivative history."""
        engine = make_engine(kd=1.0)
        engine.tick(5.0)
        assert engine.state.derivative.to_float() == 0.0
        engine.tick(7.0)
        assert engine.state.derivative.to_float() == 2.0

    def test_derivative(self):
        """Test the derivative is the first difference of valid samples."""
        engine = make_engine(kd=1.0)
        outputs, valid = engine.run([5.0, 7.0, 7.0, 4.0])
        np.testing.assert_array_equal(outputs[valid], [2.0, 0.0, -3.0])

    def test_output_saturates(self):
        """Test the output saturates at the data format bounds."""
        engine = make_engine(kp=100.0)
        fmt = engine.config.data_format
        outputs, valid = engine.run([100.0, 100.0, -100.0])
        np.testing.assert_array_equal(outputs[valid], [fmt.max_value, fmt.min_value])

    def test_accumulator_saturates(self):
        """Test the accumulator is a saturating running sum in both directions."""
        engine = make_engine(ki=1.0, integrator_width=24)
        data_fmt = engine.config.data_format
        int_fmt = engine.config.integrator_format

        for _ in range(10):
            engine.tick(data_fmt.max_value)
        assert engine.accumulator.value == int_fmt.max_int

        for _ in range(10):
            engine.tick(data_fmt.min_value)
        assert engine.accumulator.value == int_fmt.min_int

    def test_derivative_saturates(self):
        """Test a full-scale jump saturates the derivative instead of wrapping."""
        fmt = EngineConfig().data_format

        engine = make_engine(kd=1.0)
        outputs, valid = engine.run([fmt.min_value, fmt.min_value, fmt.max_value])
        np.testing.assert_array_equal(outputs[valid], [0.0, fmt.max_value])

        engine = make_engine(kd=1.0)
        outputs, valid = engine.run([fmt.max_value, fmt.max_value, fmt.min_value])
        np.testing.assert_array_equal(outputs[valid], [0.0, fmt.min_value])

    def test_huge_real_input_saturates(self):
        """Test real inputs beyond the data range are clamped, not rejected."""
        engine = make_engine(kp=1.0)
        fmt = engine.config.data_format
        outputs, valid = engine.run([1e308, 1e308, -1e308])
        np.testing.assert_array_equal(outputs[valid], [fmt.max_value, fmt.min_value])

    def test_nan_input_rejected(self):
        """Test a NaN error sample raises ValueError."""
        engine = PIDEngine()
        with pytest.raises(ValueError):
            engine.tick(float('nan'))

    def test_matches_reference_model(self):
        """Test agreement with the floating-point control law within truncation error."""
        engine = PIDEngine()
        coeffs = engine.set_coefficients(kp=0.5, ki=0.1, kd=0.25)

        rng = np.random.default_rng(7)
        errors = to_real(quantize(rng.uniform(-5.0, 5.0, 50), engine.config.data_format))
        outputs, valid = engine.run(errors)

        expected = reference_output(errors, coeffs)[1:]
        lsb = engine.config.data_format.resolution
        assert valid.sum() == len(expected)
        np.testing.assert_allclose(outputs[valid], expected, atol=4 * lsb)
        # Truncation only ever rounds down
        assert np.all(outputs[valid] <= expected + 1e-12)

    def test_state_snapshots_match_outputs(self):
        """Test the state snapshot mirrors the output register."""
        engine = make_engine(kp=1.0)
        engine.run([1.0, 2.0, 3.0, 4.0], flush=False)
        engine.tick(5.0)
        state = engine.state
        assert isinstance(state.output, RegisterSnapshot)
        assert state.output == (engine.output.value, engine.output.valid)
        assert state.to_dict()['output'] == 2.0


class TestCoefficientPort:
    """Test suite for coefficient sampling."""

    def test_new_coefficients_reach_multiply_two_ticks_later(self):
        """Test coefficients are latched, then used by the next multiply."""
        engine = make_engine(kp=1.0)
        for _ in range(6):
            engine.tick(1.0)
        assert engine.output.value.to_float() == 1.0

        engine.set_coefficients(kp=2.0, ki=0.0, kd=0.0)
        seen = [engine.tick(1.0).value.to_float() for _ in range(3)]
        assert seen == [1.0, 1.0, 2.0]

    def test_wrong_coefficient_format_rejected(self):
        """Test the port only accepts the configured coefficient format."""
        engine = PIDEngine()
        with pytest.raises(ConfigurationError):
            engine.coefficients = Coefficients.zero(FixedFormat(16, 8))

    def test_sample_input_resized(self):
        """Test samples in another format are resized to the data format."""
        engine = make_engine(kp=1.0)
        sample = FixedSample.from_float(1.5, FixedFormat(16, 4))
        outputs, valid = engine.run([sample, sample])
        assert outputs[valid][0] == 1.5


class TestReset:
    """Test suite for synchronous reset."""

    def test_reset_clears_everything(self):
        """Test one reset tick clears output, accumulator and history."""
        engine = make_engine(kp=1.0, ki=1.0, kd=1.0)
        for _ in range(10):
            engine.tick(3.0)
        assert engine.output.valid
        assert engine.accumulator.to_float() > 0

        engine.reset()
        state = engine.state
        assert engine.output.valid is False
        assert engine.output.value.to_float() == 0.0
        assert engine.accumulator.to_float() == 0.0
        assert state.seen is False
        assert state.capture.valid is False
        assert state.terms.valid is False
        assert state.scaled.valid is False

    def test_reset_ignores_input(self):
        """Test valid input during reset is discarded."""
        engine = make_engine(kp=1.0, ki=1.0)
        for _ in range(5):
            engine.tick(3.0, reset=True)
        assert engine.accumulator.to_float() == 0.0
        assert engine.state.seen is False

    def test_restart_after_reset(self):
        """Test the pipeline behaves like a fresh engine after reset."""
        engine = make_engine(kp=1.0, ki=1.0)
        engine.run([5.0] * 8)
        engine.reset(3)

        fresh = make_engine(kp=1.0, ki=1.0)
        a, va = engine.run([1.0, 2.0, 3.0])
        b, vb = fresh.run([1.0, 2.0, 3.0])
        np.testing.assert_array_equal(a, b)
        np.testing.assert_array_equal(va, vb)


class TestTraceLogging:
    """Test suite for CSV trace output."""

    def test_csv_rows(self, tmp_path):
        """Test one CSV row per tick."""
        path = tmp_path / "engine.csv"
        with PIDEngine(csv_path=str(path)) as engine:
            engine.set_coefficients(kp=1.0, ki=0.0, kd=0.0)
            engine.run([1.0, 2.0, 3.0])

        with open(path, newline='') as f:
            rows = list(csv.DictReader(f))

        assert len(rows) == 3 + PIDEngine.LATENCY
        assert rows[0]['tick'] == '0'
        assert float(rows[5]['output']) == 3.0
        assert rows[5]['output_valid'] == '1'
        assert float(rows[5]['kp']) == 1.0


if __name__ == "__main__":
    pytest.main([__file__, "-v"])

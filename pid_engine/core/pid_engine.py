"""
Pipelined Fixed-Point PID Engine.

Features:
- Four clocked stages: capture, integrate/differentiate, scale, sum
- Saturating fixed-point arithmetic with explicit width/radix per signal
- Integral accumulator retained across invalid ticks
- Derivative primed by the first sample (first derivative is zero)
- Synchronous, level-sensitive reset clearing every register
- Coefficients sampled every tick, no commit strobe
- Efficient CSV trace logging

Every tick reads the committed register contents, drives the next
contents of all stages, then clocks every register together. Latency
from a valid input to its output is fixed at four ticks.
"""

from typing import Optional, Dict, Any, List, NamedTuple, Sequence, Tuple, Union
from dataclasses import dataclass
import numpy as np

from pid_engine.core.engine_params import (
    EngineConfig,
    Coefficients,
    CoefficientValue,
    coerce_coefficients,
)
from pid_engine.core.fixed_point import FixedSample, resize, add, sub, mul
from pid_engine.core.registers import PipelineRegister, RegisterSnapshot
from pid_engine.logging.csv_logger import CSVLogger
from pid_engine.utils.validators import ConfigurationError


@dataclass(frozen=True)
class Capture:
    """Stage 0 contents: the latched error and the one before it."""
    error: FixedSample
    previous: FixedSample


@dataclass(frozen=True)
class Terms:
    """Proportional, integral and derivative terms of one sample."""
    p: FixedSample
    i: FixedSample
    d: FixedSample

    def to_floats(self) -> Tuple[float, float, float]:
        return self.p.to_float(), self.i.to_float(), self.d.to_float()


class EngineOutput(NamedTuple):
    """Per-tick output of the engine."""
    value: FixedSample
    valid: bool


@dataclass(frozen=True)
class EngineState:
    """Snapshot of every register of the engine."""
    tick: int
    capture: RegisterSnapshot
    capture_history: bool
    seen: bool
    coefficients: Coefficients
    accumulator: FixedSample
    terms: RegisterSnapshot
    scaled: RegisterSnapshot
    output: RegisterSnapshot

    @property
    def derivative(self) -> FixedSample:
        """Derivative implied by the captured error history."""
        cap = self.capture.value
        return sub(cap.error, cap.previous, cap.error.fmt)

    def to_dict(self) -> Dict[str, Any]:
        """Convert state to dictionary of real values."""
        terms = self.terms.value
        return {
            'tick': self.tick,
            'error': self.capture.value.error.to_float(),
            'previous_error': self.capture.value.previous.to_float(),
            'capture_valid': self.capture.valid,
            'seen': self.seen,
            'accumulator': self.accumulator.to_float(),
            'p_term': terms.p.to_float(),
            'i_term': terms.i.to_float(),
            'd_term': terms.d.to_float(),
            'terms_valid': self.terms.valid,
            'scaled_valid': self.scaled.valid,
            'output': self.output.value.to_float(),
            'output_valid': self.output.valid,
            **self.coefficients.to_floats(),
        }


class PIDEngine:
    """
    Streaming fixed-point PID engine.

    Consumes one (error, valid) pair per tick and produces one
    (output, valid) pair per tick. Coefficients are an input port that is
    sampled on every tick; change them only together with a reset
    (see ``CoefficientController``).

    Example:
        >>> engine = PIDEngine(EngineConfig(data_width=24, data_radix=10))
        >>> _ = engine.set_coefficients(kp=0.5, ki=0.0, kd=0.0)
        >>> for e in [1.0, 1.0, 1.0, 1.0, 1.0]:
        ...     out = engine.tick(e)
        >>> out.valid, out.value.to_float()
        (True, 0.5)
    """

    LATENCY = 4  # Ticks from committed input to observable output

    def __init__(
        self,
        config: Optional[EngineConfig] = None,
        coefficients: Optional[Coefficients] = None,
        csv_path: Optional[str] = None
    ):
        """
        Initialize engine with every register cleared.

        Args:
            config: Numeric widths (uses defaults if None)
            coefficients: Initial coefficient input (zero if None)
            csv_path: Path for per-tick CSV trace (no logging if None)
        """
        self._config = config if config is not None else EngineConfig()
        cfg = self._config

        self._data_fmt = cfg.data_format
        self._int_fmt = cfg.integrator_format
        self._product_fmt = cfg.product_format
        self._int_product_fmt = cfg.integral_product_format
        self._term_fmt = cfg.term_format

        self._coefficients = Coefficients.zero(cfg.coeff_format)
        if coefficients is not None:
            self.coefficients = coefficients

        zero_data = FixedSample.zero(self._data_fmt)
        zero_terms = Terms(zero_data, FixedSample.zero(self._int_fmt), zero_data)
        zero_scaled_term = FixedSample.zero(self._term_fmt)

        # Stage 0
        self._capture = PipelineRegister(Capture(zero_data, zero_data), "capture")
        self._capture_history = PipelineRegister(False, "capture_history")
        self._seen = PipelineRegister(False, "seen")
        self._coeff_latch = PipelineRegister(Coefficients.zero(cfg.coeff_format), "coefficients")
        # Stage 1
        self._accumulator = PipelineRegister(FixedSample.zero(self._int_fmt), "accumulator")
        self._terms = PipelineRegister(zero_terms, "terms")
        # Stage 2
        self._scaled = PipelineRegister(
            Terms(zero_scaled_term, zero_scaled_term, zero_scaled_term), "scaled"
        )
        # Stage 3
        self._output = PipelineRegister(zero_data, "output")

        self._registers: List[PipelineRegister] = [
            self._capture, self._capture_history, self._seen, self._coeff_latch,
            self._accumulator, self._terms, self._scaled, self._output,
        ]
        self._tick: int = 0

        # CSV Logger
        self._logger: Optional[CSVLogger] = None
        if csv_path is not None:
            self._logger = CSVLogger(
                csv_path,
                columns=[
                    'tick', 'reset', 'error', 'error_valid',
                    'p_term', 'i_term', 'd_term', 'terms_valid',
                    'accumulator', 'output', 'output_valid',
                    'kp', 'ki', 'kd'
                ]
            )

    @property
    def config(self) -> EngineConfig:
        """Get engine configuration."""
        return self._config

    @property
    def coefficients(self) -> Coefficients:
        """Coefficient input port (sampled every tick)."""
        return self._coefficients

    @coefficients.setter
    def coefficients(self, value: Coefficients) -> None:
        if value.fmt != self._config.coeff_format:
            raise ConfigurationError(
                f"Coefficients are in {value.fmt}, engine expects {self._config.coeff_format}"
            )
        self._coefficients = value

    def set_coefficients(
        self,
        kp: CoefficientValue,
        ki: CoefficientValue,
        kd: CoefficientValue
    ) -> Coefficients:
        """
        Drive new gains onto the coefficient port.

        Args:
            kp: Proportional gain (real or coefficient-format sample)
            ki: Integral gain
            kd: Derivative gain

        Returns:
            The quantized coefficient set now on the port
        """
        self.coefficients = coerce_coefficients(kp, ki, kd, self._config.coeff_format)
        return self._coefficients

    @property
    def output(self) -> EngineOutput:
        """Current output, mirroring stage 3."""
        return EngineOutput(self._output.value, self._output.valid)

    @property
    def accumulator(self) -> FixedSample:
        """Current integral accumulator."""
        return self._accumulator.value

    @property
    def tick_count(self) -> int:
        return self._tick

    @property
    def state(self) -> EngineState:
        """Get snapshot of all registers."""
        return EngineState(
            tick=self._tick,
            capture=self._capture.snapshot(),
            capture_history=self._capture_history.value,
            seen=self._seen.value,
            coefficients=self._coeff_latch.value,
            accumulator=self._accumulator.value,
            terms=self._terms.snapshot(),
            scaled=self._scaled.snapshot(),
            output=self._output.snapshot(),
        )

    def tick(
        self,
        error: Union[FixedSample, float, None] = None,
        valid: bool = True,
        reset: bool = False
    ) -> EngineOutput:
        """
        Advance the engine by one clock tick.

        Args:
            error: Error sample (real values are quantized to the data format)
            valid: Whether ``error`` carries a sample this tick
            reset: Synchronous reset; clears every register when asserted

        Returns:
            Output after the tick
        """
        sample = self._coerce_error(error)
        valid = bool(valid) and error is not None

        if not reset:
            # All stages read committed values and only drive next values
            self._capture_stage(sample, valid)
            self._integrate_stage()
            self._scale_stage()
            self._sum_stage()

        for register in self._registers:
            register.clock(reset)

        if self._logger is not None:
            self._log_tick(sample, valid, reset)
        self._tick += 1

        return self.output

    def reset(self, ticks: int = 1) -> EngineOutput:
        """Hold reset asserted for ``ticks`` ticks."""
        output = self.output
        for _ in range(ticks):
            output = self.tick(valid=False, reset=True)
        return output

    def run(
        self,
        errors: Sequence[Union[FixedSample, float]],
        flush: bool = True
    ) -> Tuple[np.ndarray, np.ndarray]:
        """
        Feed a sequence of valid error samples, one per tick.

        Args:
            errors: Error samples
            flush: If True, keep ticking with no input until the pipeline drains

        Returns:
            (outputs, valid) arrays with one entry per tick
        """
        outputs: List[float] = []
        valids: List[bool] = []
        for e in errors:
            out = self.tick(e)
            outputs.append(out.value.to_float())
            valids.append(out.valid)
        if flush:
            for _ in range(self.LATENCY):
                out = self.tick(valid=False)
                outputs.append(out.value.to_float())
                valids.append(out.valid)
        return np.array(outputs, dtype=float), np.array(valids, dtype=bool)

    def _coerce_error(self, error: Union[FixedSample, float, None]) -> FixedSample:
        """Bring the input sample into the data format."""
        if error is None:
            return FixedSample.zero(self._data_fmt)
        if isinstance(error, FixedSample):
            if error.fmt == self._data_fmt:
                return error
            return resize(error, self._data_fmt)
        return FixedSample.from_float(float(error), self._data_fmt)

    def _capture_stage(self, error: FixedSample, valid: bool) -> None:
        """Stage 0: latch error, error history and coefficients."""
        if valid:
            current = self._capture.value
            previous = current.error if self._seen.value else error
            self._capture.drive(Capture(error, previous), True)
            self._seen.drive(True)
        else:
            self._capture.drive(self._capture.value, False)

        self._capture_history.drive(self._capture.valid)
        self._coeff_latch.drive(self._coefficients)

    def _integrate_stage(self) -> None:
        """Stage 1: proportional, integral and derivative terms."""
        # Needs this capture and the one before it
        if self._capture.valid and self._capture_history.value:
            capture = self._capture.value
            p = resize(capture.error, self._data_fmt)
            i = add(self._accumulator.value, capture.error, self._int_fmt)
            d = sub(capture.error, capture.previous, self._data_fmt)

            self._accumulator.drive(i)
            self._terms.drive(Terms(p, i, d), True)
        else:
            self._terms.clear()

    def _scale_stage(self) -> None:
        """Stage 2: multiply each term by its coefficient."""
        if self._terms.valid:
            terms = self._terms.value
            k = self._coeff_latch.value
            self._scaled.drive(Terms(
                self._scale(terms.p, k.kp, self._product_fmt),
                self._scale(terms.i, k.ki, self._int_product_fmt),
                self._scale(terms.d, k.kd, self._product_fmt),
            ), True)
        else:
            self._scaled.clear()

    def _scale(self, term: FixedSample, k: FixedSample, product_fmt) -> FixedSample:
        return resize(mul(term, k, product_fmt), self._term_fmt)

    def _sum_stage(self) -> None:
        """Stage 3: P + D, then + I into the output format."""
        if self._scaled.valid:
            scaled = self._scaled.value
            pd = add(scaled.p, scaled.d, self._term_fmt)
            self._output.drive(add(pd, scaled.i, self._data_fmt), True)
        else:
            self._output.clear()

    def _log_tick(self, error: FixedSample, valid: bool, reset: bool) -> None:
        p, i, d = self._terms.value.to_floats()
        k = self._coeff_latch.value.to_floats()
        self._logger.log({
            'tick': self._tick,
            'reset': int(reset),
            'error': error.to_float(),
            'error_valid': int(valid),
            'p_term': p,
            'i_term': i,
            'd_term': d,
            'terms_valid': int(self._terms.valid),
            'accumulator': self._accumulator.value.to_float(),
            'output': self._output.value.to_float(),
            'output_valid': int(self._output.valid),
            'kp': k['kp'],
            'ki': k['ki'],
            'kd': k['kd'],
        })

    def flush_log(self) -> None:
        """Flush any buffered log data to disk."""
        if self._logger is not None:
            self._logger.flush()

    def close(self) -> None:
        """Close engine and flush logs."""
        if self._logger is not None:
            self._logger.close()

    def __enter__(self):
        """Context manager entry."""
        return self

    def __exit__(self, exc_type, exc_val, exc_tb):
        """Context manager exit."""
        self.close()
        return False

    def __repr__(self) -> str:
        return f"PIDEngine({self._config})"

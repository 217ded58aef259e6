"""
Closed-loop verification harness.
Drives the engine in unity feedback and measures the error window.
"""

import logging
from typing import Dict, Any, List, Optional, Sequence
from dataclasses import dataclass, field
import numpy as np

from pid_engine.core.engine_params import EngineConfig, CoefficientValue
from pid_engine.core.fixed_point import FixedSample
from pid_engine.core.pid_engine import PIDEngine, EngineOutput
from pid_engine.core.coefficient_controller import CoefficientController
from pid_engine.analyzer.metrics import ErrorWindow, WindowStatistics
from pid_engine.analyzer.regime import Regime, classify
from pid_engine.logging.csv_logger import CSVLogger
from pid_engine.simulation.scenarios import RegimeCase, RegimeLibrary

logger = logging.getLogger(__name__)


@dataclass
class ClosedLoopTrace:
    """Per-tick record of a harness run."""
    errors: List[float] = field(default_factory=list)
    outputs: List[float] = field(default_factory=list)
    output_valid: List[bool] = field(default_factory=list)
    reset: List[bool] = field(default_factory=list)

    def append(self, error: float, output: EngineOutput, reset: bool) -> None:
        self.errors.append(error)
        self.outputs.append(output.value.to_float())
        self.output_valid.append(output.valid)
        self.reset.append(reset)

    def to_dict(self) -> Dict[str, np.ndarray]:
        """Convert to dictionary of numpy arrays."""
        return {
            'tick': np.arange(len(self.errors)),
            'error': np.array(self.errors, dtype=float),
            'output': np.array(self.outputs, dtype=float),
            'output_valid': np.array(self.output_valid, dtype=bool),
            'reset': np.array(self.reset, dtype=bool),
        }

    def __len__(self) -> int:
        return len(self.errors)


@dataclass
class RegimeResult:
    """Outcome of one regime case."""
    case: RegimeCase
    statistics: WindowStatistics
    regime: Regime
    passed: bool

    def to_dict(self) -> Dict[str, Any]:
        return {
            **self.case.to_dict(),
            **self.statistics.to_dict(),
            'regime': self.regime.value,
            'passed': self.passed,
        }


class ClosedLoopHarness:
    """
    Closed-loop verification harness.

    Each tick computes ``setpoint - output`` and registers it; the error
    registered on the previous tick is fed to the engine with valid
    asserted and pushed into the measurement window.

    Example:
        >>> harness = ClosedLoopHarness(setpoint=10.0)
        >>> stats = harness.apply(kp=0.1, ki=0.03, kd=0.0)
        >>> stats.rms < 0.001
        True
    """

    def __init__(
        self,
        config: Optional[EngineConfig] = None,
        setpoint: float = 10.0,
        window_size: int = 100,
        reset_ticks: int = 10,
        settle_ticks: int = 600,
        csv_path: Optional[str] = None,
        record_trace: bool = True
    ):
        """
        Initialize harness.

        Args:
            config: Engine configuration (uses defaults if None)
            setpoint: Target value the loop regulates to
            window_size: Number of error samples in the statistics window
            reset_ticks: Default reset window per coefficient change
            settle_ticks: Default settle interval per coefficient change
            csv_path: Optional path for per-tick CSV logging
            record_trace: Keep a per-tick trace in memory
        """
        self._engine = PIDEngine(config)
        self._controller = CoefficientController(self._engine, reset_ticks, settle_ticks)
        self._setpoint = float(setpoint)
        self._data_fmt = self._engine.config.data_format
        self._window = ErrorWindow(window_size)
        self._record_trace = record_trace
        self._trace = ClosedLoopTrace()

        # Error register between the loop subtraction and the engine input
        self._error = FixedSample.zero(self._data_fmt)

        self._logger: Optional[CSVLogger] = None
        if csv_path is not None:
            self._logger = CSVLogger(
                csv_path,
                columns=['tick', 'reset', 'error', 'output', 'output_valid',
                         'window_mean', 'window_rms']
            )

    @property
    def engine(self) -> PIDEngine:
        return self._engine

    @property
    def controller(self) -> CoefficientController:
        return self._controller

    @property
    def window(self) -> ErrorWindow:
        return self._window

    @property
    def setpoint(self) -> float:
        return self._setpoint

    @property
    def trace(self) -> ClosedLoopTrace:
        return self._trace

    @property
    def tick_count(self) -> int:
        return self._engine.tick_count

    def tick(self) -> EngineOutput:
        """
        Advance the loop by one tick.

        Returns:
            Engine output after the tick
        """
        # Read before the engine clocks
        next_error = FixedSample.from_float(
            self._setpoint - self._engine.output.value.to_float(), self._data_fmt
        )

        reset = self._controller.reset
        fed = self._error
        output = self._engine.tick(fed, valid=True, reset=reset)
        self._controller.tick()

        self._window.push(fed)
        self._error = next_error

        if self._record_trace:
            self._trace.append(fed.to_float(), output, reset)
        if self._logger is not None:
            self._logger.log({
                'tick': self._engine.tick_count - 1,
                'reset': int(reset),
                'error': fed.to_float(),
                'output': output.value.to_float(),
                'output_valid': int(output.valid),
                'window_mean': self._window.mean(),
                'window_rms': self._window.rms(),
            })
        return output

    def run(self, n_ticks: int) -> EngineOutput:
        """Run ``n_ticks`` loop ticks and return the last output."""
        output = self._engine.output
        for _ in range(n_ticks):
            output = self.tick()
        return output

    def mean(self) -> float:
        """Mean of the error window."""
        return self._window.mean()

    def rms(self) -> float:
        """RMS deviation of the error window."""
        return self._window.rms()

    def statistics(self) -> WindowStatistics:
        return self._window.statistics()

    def apply(
        self,
        kp: CoefficientValue,
        ki: CoefficientValue,
        kd: CoefficientValue,
        reset_ticks: Optional[int] = None,
        settle_ticks: Optional[int] = None
    ) -> WindowStatistics:
        """
        Apply a coefficient set and run until it is in effect.

        Args:
            kp, ki, kd: Gains (reals or coefficient-format samples)
            reset_ticks: Reset window (controller default if None)
            settle_ticks: Settle interval (controller default if None)

        Returns:
            Window statistics once the set is in effect
        """
        self._controller.apply(kp, ki, kd, reset_ticks, settle_ticks)
        while not self._controller.in_effect:
            self.tick()
        return self.statistics()

    def run_case(self, case: RegimeCase) -> RegimeResult:
        """Apply one regime case and evaluate its threshold."""
        stats = self.apply(case.kp, case.ki, case.kd, case.reset_ticks, case.settle_ticks)
        result = RegimeResult(
            case=case,
            statistics=stats,
            regime=classify(stats),
            passed=case.check(stats),
        )
        log = logger.info if result.passed else logger.warning
        log("Case %s: %s -> %s (expected %s)", case.name, stats,
            result.regime.value, case.expected.value)
        return result

    def run_regimes(self, cases: Optional[Sequence[RegimeCase]] = None) -> List[RegimeResult]:
        """
        Drive an ordered list of coefficient sets.

        Args:
            cases: Cases to run in order (default sequence if None)

        Returns:
            One result per case
        """
        if cases is None:
            cases = RegimeLibrary.default_sequence()
        return [self.run_case(case) for case in cases]

    def flush_log(self) -> None:
        """Flush any buffered log data to disk."""
        if self._logger is not None:
            self._logger.flush()
        self._engine.flush_log()

    def close(self) -> None:
        """Close harness and flush logs."""
        if self._logger is not None:
            self._logger.close()
        self._engine.close()

    def __enter__(self):
        """Context manager entry."""
        return self

    def __exit__(self, exc_type, exc_val, exc_tb):
        """Context manager exit."""
        self.close()
        return False

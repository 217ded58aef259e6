"""
Coefficient & reset controller.

Coefficients are not hot-swapped: a partially computed pipeline would mix
old and new gains, and the accumulator would carry an integral built
under the old ki. Every change therefore writes the new gains and holds
the engine in reset for a number of ticks, then waits a settle interval
before the set counts as in effect for measurement.
"""

import logging
from typing import Optional

from pid_engine.core.engine_params import Coefficients, CoefficientValue, coerce_coefficients
from pid_engine.core.pid_engine import PIDEngine
from pid_engine.utils.validators import (
    validate_type,
    validate_positive_int,
    validate_non_negative_int,
)

logger = logging.getLogger(__name__)


class CoefficientController:
    """
    Applies coefficient sets through a reset window.

    The controller does not tick the engine itself. The tick driver reads
    ``reset`` each tick, drives it into the engine, then calls ``tick``.

    Example:
        >>> engine = PIDEngine()
        >>> ctrl = CoefficientController(engine, reset_ticks=2, settle_ticks=3)
        >>> _ = ctrl.apply(kp=0.1, ki=0.03, kd=0.0)
        >>> while not ctrl.in_effect:
        ...     _ = engine.tick(1.0, reset=ctrl.reset)
        ...     ctrl.tick()
    """

    def __init__(
        self,
        engine: PIDEngine,
        reset_ticks: int = 10,
        settle_ticks: int = 600
    ):
        """
        Initialize controller.

        Args:
            engine: Engine whose coefficient port and reset are managed
            reset_ticks: Default number of ticks reset stays asserted
            settle_ticks: Default ticks after release before the set is in effect
        """
        self._engine = validate_type(engine, "engine", PIDEngine)
        self._default_reset_ticks = validate_positive_int(reset_ticks, "reset_ticks")
        self._default_settle_ticks = validate_non_negative_int(settle_ticks, "settle_ticks")

        self._reset_remaining: int = 0
        self._settle_remaining: int = 0
        self._applied: int = 0

    @property
    def engine(self) -> PIDEngine:
        return self._engine

    @property
    def coefficients(self) -> Coefficients:
        """Coefficients currently driven onto the engine port."""
        return self._engine.coefficients

    @property
    def reset(self) -> bool:
        """Reset level to drive into the engine on the current tick."""
        return self._reset_remaining > 0

    @property
    def settling(self) -> bool:
        return self._reset_remaining == 0 and self._settle_remaining > 0

    @property
    def in_effect(self) -> bool:
        """True once the reset window and settle interval have both elapsed."""
        return self._reset_remaining == 0 and self._settle_remaining == 0

    @property
    def pending_reset_ticks(self) -> int:
        return self._reset_remaining

    @property
    def pending_settle_ticks(self) -> int:
        return self._settle_remaining

    @property
    def applied_count(self) -> int:
        """Number of coefficient sets applied so far."""
        return self._applied

    def apply(
        self,
        kp: CoefficientValue,
        ki: CoefficientValue,
        kd: CoefficientValue,
        reset_ticks: Optional[int] = None,
        settle_ticks: Optional[int] = None
    ) -> Coefficients:
        """
        Write a new coefficient set and start the reset window.

        Args:
            kp: Proportional gain (real or coefficient-format sample)
            ki: Integral gain
            kd: Derivative gain
            reset_ticks: Ticks to hold reset (controller default if None)
            settle_ticks: Ticks to wait after release (controller default if None)

        Returns:
            The quantized coefficient set written to the engine
        """
        reset_ticks = validate_positive_int(
            self._default_reset_ticks if reset_ticks is None else reset_ticks, "reset_ticks"
        )
        settle_ticks = validate_non_negative_int(
            self._default_settle_ticks if settle_ticks is None else settle_ticks, "settle_ticks"
        )

        coefficients = coerce_coefficients(kp, ki, kd, self._engine.config.coeff_format)
        self._engine.coefficients = coefficients

        self._reset_remaining = reset_ticks
        self._settle_remaining = settle_ticks
        self._applied += 1

        logger.info(
            "Applying %s with %d reset ticks and %d settle ticks",
            coefficients, reset_ticks, settle_ticks
        )
        return coefficients

    def tick(self) -> None:
        """Advance the reset/settle counters by one tick."""
        if self._reset_remaining > 0:
            self._reset_remaining -= 1
            if self._reset_remaining == 0:
                logger.debug("Reset released at engine tick %d", self._engine.tick_count)
        elif self._settle_remaining > 0:
            self._settle_remaining -= 1
            if self._settle_remaining == 0:
                logger.debug("%s in effect", self._engine.coefficients)

    def __repr__(self) -> str:
        return (
            f"CoefficientController(reset_remaining={self._reset_remaining}, "
            f"settle_remaining={self._settle_remaining})"
        )

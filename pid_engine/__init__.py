"""
Fixed-Point PID Engine
======================

A cycle-accurate model of a pipelined fixed-point PID engine with:
- Saturating signed fixed-point arithmetic with per-signal width/radix
- Four-stage clocked pipeline with valid propagation and synchronous reset
- Coefficient controller applying gain changes through a reset window
- Closed-loop verification harness with moving-window regime checks
- Floating-point and transfer-function reference models

Author: Fixed-Point PID Engine Project
"""

from pid_engine.core.fixed_point import FixedFormat, FixedSample
from pid_engine.core.engine_params import EngineConfig, Coefficients
from pid_engine.core.pid_engine import PIDEngine
from pid_engine.core.coefficient_controller import CoefficientController
from pid_engine.analyzer.metrics import ErrorWindow
from pid_engine.analyzer.regime import Regime
from pid_engine.simulation.harness import ClosedLoopHarness

__version__ = "1.0.0"
__all__ = [
    "FixedFormat",
    "FixedSample",
    "EngineConfig",
    "Coefficients",
    "PIDEngine",
    "CoefficientController",
    "ErrorWindow",
    "Regime",
    "ClosedLoopHarness",
]

"""Core fixed-point PID engine components."""

from pid_engine.core.fixed_point import FixedFormat, FixedSample, add, sub, mul, resize
from pid_engine.core.registers import PipelineRegister
from pid_engine.core.engine_params import EngineConfig, Coefficients, CoefficientPresets
from pid_engine.core.pid_engine import PIDEngine, EngineOutput, EngineState
from pid_engine.core.coefficient_controller import CoefficientController

__all__ = [
    "FixedFormat",
    "FixedSample",
    "add",
    "sub",
    "mul",
    "resize",
    "PipelineRegister",
    "EngineConfig",
    "Coefficients",
    "CoefficientPresets",
    "PIDEngine",
    "EngineOutput",
    "EngineState",
    "CoefficientController",
]

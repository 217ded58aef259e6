"""Closed-loop verification harness and regime scenarios."""

from pid_engine.simulation.scenarios import RegimeCase, RegimeLibrary
from pid_engine.simulation.harness import ClosedLoopHarness, ClosedLoopTrace, RegimeResult

__all__ = [
    "RegimeCase",
    "RegimeLibrary",
    "ClosedLoopHarness",
    "ClosedLoopTrace",
    "RegimeResult",
]

"""Closed-loop measurement and analysis components."""

from pid_engine.analyzer.metrics import ErrorWindow, WindowStatistics
from pid_engine.analyzer.regime import Regime, classify
from pid_engine.analyzer.reference import reference_output, reference_terms
from pid_engine.analyzer.loop_analysis import closed_loop_poles, predict_regime, analyze_loop

__all__ = [
    "ErrorWindow",
    "WindowStatistics",
    "Regime",
    "classify",
    "reference_output",
    "reference_terms",
    "closed_loop_poles",
    "predict_regime",
    "analyze_loop",
]

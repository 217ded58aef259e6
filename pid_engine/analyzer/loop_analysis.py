"""
Closed-loop analysis of the engine in the verification loop.
Uses python-control for discrete-time transfer functions.

The loop is unity feedback: the harness registers ``setpoint - output``
for one tick before the engine captures it, and the engine adds its
pipeline latency, so the loop delay is ``PIDEngine.LATENCY + 1`` ticks.
"""

from typing import Dict, Any, Union
import numpy as np
import control as ct

from pid_engine.core.engine_params import Coefficients
from pid_engine.core.pid_engine import PIDEngine
from pid_engine.analyzer.regime import Regime

LOOP_DELAY = PIDEngine.LATENCY + 1


def _gains(kp: Union[float, Coefficients], ki: float, kd: float):
    if isinstance(kp, Coefficients):
        gains = kp.to_floats()
        return gains['kp'], gains['ki'], gains['kd']
    return float(kp), float(ki), float(kd)


def controller_tf(kp: Union[float, Coefficients], ki: float = 0.0,
                  kd: float = 0.0) -> ct.TransferFunction:
    """Engine control law without latency.

    C(z) = Kp + Ki * z/(z-1) + Kd * (z-1)/z

    The integral includes the current sample (accumulate, then use), the
    derivative is the backward first difference.
    """
    kp, ki, kd = _gains(kp, ki, kd)
    num = (kp * np.array([1.0, -1.0, 0.0])
           + ki * np.array([1.0, 0.0, 0.0])
           + kd * np.array([1.0, -2.0, 1.0]))
    return ct.tf(num, [1.0, -1.0, 0.0], True)


def delay_tf(ticks: int = LOOP_DELAY) -> ct.TransferFunction:
    """Pure delay z^-ticks."""
    return ct.tf([1.0], np.concatenate(([1.0], np.zeros(ticks))), True)


def closed_loop_tf(kp: Union[float, Coefficients], ki: float = 0.0, kd: float = 0.0,
                   loop_delay: int = LOOP_DELAY) -> ct.TransferFunction:
    """Setpoint-to-output transfer function of the verification loop."""
    return ct.feedback(controller_tf(kp, ki, kd) * delay_tf(loop_delay), 1)


def closed_loop_poles(kp: Union[float, Coefficients], ki: float = 0.0, kd: float = 0.0,
                      loop_delay: int = LOOP_DELAY) -> np.ndarray:
    """Closed-loop poles sorted by decreasing magnitude."""
    poles = np.atleast_1d(ct.poles(closed_loop_tf(kp, ki, kd, loop_delay)))
    return poles[np.argsort(-np.abs(poles))]


def spectral_radius(kp: Union[float, Coefficients], ki: float = 0.0, kd: float = 0.0,
                    loop_delay: int = LOOP_DELAY) -> float:
    """Largest closed-loop pole magnitude."""
    return float(np.max(np.abs(closed_loop_poles(kp, ki, kd, loop_delay))))


def predict_regime(
    kp: Union[float, Coefficients],
    ki: float = 0.0,
    kd: float = 0.0,
    loop_delay: int = LOOP_DELAY,
    slow_radius: float = 0.99
) -> Regime:
    """
    Predict the regime of a coefficient set from the ideal loop model.

    Args:
        kp, ki, kd: Gains (or a coefficient set as ``kp``)
        loop_delay: Total loop delay in ticks
        slow_radius: Dominant real pole above this is too slow to settle

    Returns:
        UNSTABLE if any pole lies outside the unit circle, UNDERDAMPED if
        the dominant pole is complex or negative, OVERDAMPED if it is real
        and above ``slow_radius``, otherwise STABLE.
    """
    poles = closed_loop_poles(kp, ki, kd, loop_delay)
    dominant = poles[0]
    radius = abs(dominant)

    if radius > 1.0:
        return Regime.UNSTABLE
    if abs(dominant.imag) > 1e-9 or dominant.real < 0:
        return Regime.UNDERDAMPED
    if radius > slow_radius:
        return Regime.OVERDAMPED
    return Regime.STABLE


def analyze_loop(kp: Union[float, Coefficients], ki: float = 0.0, kd: float = 0.0,
                 loop_delay: int = LOOP_DELAY) -> Dict[str, Any]:
    """Complete closed-loop summary for one coefficient set."""
    poles = closed_loop_poles(kp, ki, kd, loop_delay)
    return {
        'poles': poles,
        'spectral_radius': float(np.max(np.abs(poles))),
        'regime': predict_regime(kp, ki, kd, loop_delay),
        'loop_delay': loop_delay,
    }

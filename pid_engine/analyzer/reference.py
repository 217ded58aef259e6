"""
Floating-point reference of the pipelined control law.
Uses scipy.signal for the running sum and first difference.
"""

from typing import Union
import numpy as np
from numpy.typing import ArrayLike
from scipy import signal

from pid_engine.core.engine_params import Coefficients


def reference_terms(errors: ArrayLike) -> np.ndarray:
    """
    Ideal P, I and D terms per input sample.

    The first sample after reset only primes the derivative, so it is not
    integrated and produces no terms (row of NaN), matching the engine's
    warm-up tick.

    Returns:
        Array of shape (n, 3) with columns p, i, d
    """
    e = np.asarray(errors, dtype=float)
    terms = np.full((len(e), 3), np.nan)
    if len(e) < 2:
        return terms

    terms[1:, 0] = e[1:]
    terms[1:, 1] = signal.lfilter([1.0], [1.0, -1.0], e[1:])
    terms[1:, 2] = signal.lfilter([1.0, -1.0], [1.0], e)[1:]
    return terms


def reference_output(
    errors: ArrayLike,
    kp: Union[float, Coefficients],
    ki: float = 0.0,
    kd: float = 0.0
) -> np.ndarray:
    """
    Ideal control output per input sample (no latency, no quantization).

    Args:
        errors: Error samples as reals
        kp: Proportional gain, or a coefficient set (ki/kd then ignored)
        ki: Integral gain
        kd: Derivative gain

    Returns:
        Output per sample; NaN for the priming sample
    """
    if isinstance(kp, Coefficients):
        gains = kp.to_floats()
        kp, ki, kd = gains['kp'], gains['ki'], gains['kd']
    return reference_terms(errors) @ np.array([kp, ki, kd], dtype=float)

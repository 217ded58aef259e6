"""
Moving-window statistics for closed-loop verification.
Samples are kept as reals; nothing here feeds back into engine arithmetic.
"""

from typing import Dict, Iterable, Union
from dataclasses import dataclass, asdict
from collections import deque
import numpy as np

from pid_engine.core.fixed_point import FixedSample
from pid_engine.utils.math_utils import mean, rms_deviation
from pid_engine.utils.validators import validate_positive_int


@dataclass(frozen=True)
class WindowStatistics:
    """Mean and RMS deviation of the error window."""
    mean: float
    rms: float
    count: int

    def to_dict(self) -> Dict[str, float]:
        return asdict(self)

    def __str__(self) -> str:
        return f"mean={self.mean:.6f}, rms={self.rms:.6f} over {self.count} samples"


class ErrorWindow:
    """
    Fixed-size circular buffer of real-valued error samples.

    Pushing into a full window evicts the oldest sample.

    Example:
        >>> window = ErrorWindow(size=4)
        >>> window.extend([1.0, 2.0, 3.0, 4.0, 5.0])
        >>> window.mean()
        3.5
    """

    def __init__(self, size: int = 100):
        """
        Initialize window.

        Args:
            size: Number of most recent samples kept
        """
        self._size = validate_positive_int(size, "size")
        self._buffer: deque = deque(maxlen=self._size)

    def push(self, sample: Union[FixedSample, float]) -> None:
        """Add one sample, converting fixed-point samples to reals."""
        if isinstance(sample, FixedSample):
            sample = sample.to_float()
        self._buffer.append(float(sample))

    def extend(self, samples: Iterable[Union[FixedSample, float]]) -> None:
        for sample in samples:
            self.push(sample)

    def values(self) -> np.ndarray:
        """Window contents, oldest first."""
        return np.fromiter(self._buffer, dtype=float, count=len(self._buffer))

    def mean(self) -> float:
        """Mean of the window (0.0 when empty)."""
        return mean(self.values())

    def rms(self) -> float:
        """Root-mean-square deviation from the window mean (0.0 when empty)."""
        return rms_deviation(self.values())

    def statistics(self) -> WindowStatistics:
        values = self.values()
        return WindowStatistics(mean=mean(values), rms=rms_deviation(values), count=len(values))

    def clear(self) -> None:
        self._buffer.clear()

    @property
    def size(self) -> int:
        return self._size

    @property
    def is_full(self) -> bool:
        return len(self._buffer) >= self._size

    def __len__(self) -> int:
        return len(self._buffer)

"""Online z-score spike detection over a short rolling window."""

from __future__ import annotations

from collections import deque
from dataclasses import dataclass
from math import sqrt
from typing import Deque, Optional

MIN_WINDOW_SIZE = 5
DEFAULT_WINDOW_SIZE = 60
DEFAULT_Z_THRESHOLD = 3.5
DEFAULT_WARMUP_POINTS = 10


class RollingStats:
    """Mean and sample standard deviation of the last *window_size* values."""

    __slots__ = ("window_size", "_values")

    def __init__(self, window_size: int = DEFAULT_WINDOW_SIZE) -> None:
        self.window_size = max(MIN_WINDOW_SIZE, int(window_size))
        self._values: Deque[float] = deque(maxlen=self.window_size)

    def push(self, value: float) -> None:
        self._values.append(float(value))

    def __len__(self) -> int:
        return len(self._values)

    @property
    def mean(self) -> float:
        if not self._values:
            return 0.0
        return sum(self._values) / len(self._values)

    @property
    def variance(self) -> float:
        count = len(self._values)
        if count < 2:
            return 0.0
        mean = self.mean
        return sum((value - mean) ** 2 for value in self._values) / (count - 1)

    @property
    def std_dev(self) -> float:
        return sqrt(self.variance)


@dataclass(frozen=True)
class Spike:
    value: float
    z: float
    mean: float


class SpikeDetector:
    """Flags values whose z-score against the rolling window crosses a threshold.

    The detector is metric-agnostic; the tick scheduler feeds it bytes/sec.
    Values are observed first and checked afterwards, so the window used for
    the test already contains the value under test.
    """

    def __init__(
        self,
        window_size: int = DEFAULT_WINDOW_SIZE,
        threshold: float = DEFAULT_Z_THRESHOLD,
        warmup_points: int = DEFAULT_WARMUP_POINTS,
    ) -> None:
        self.stats = RollingStats(window_size)
        self.threshold = threshold
        self.warmup_points = warmup_points

    def observe(self, value: float) -> None:
        self.stats.push(value)

    def zscore(self, value: float) -> Optional[float]:
        std = self.stats.std_dev
        if std <= 0:
            return None
        return (value - self.stats.mean) / std

    def check(self, value: float, points_produced: int) -> Optional[Spike]:
        """Return a :class:`Spike` when *value* is an outlier.

        ``points_produced`` is the number of stats points produced so far,
        including the current one; nothing fires during warm-up.
        """
        if points_produced <= self.warmup_points:
            return None
        z = self.zscore(value)
        if z is None or z < self.threshold:
            return None
        return Spike(value=value, z=z, mean=self.stats.mean)


__all__ = [
    "MIN_WINDOW_SIZE",
    "DEFAULT_WINDOW_SIZE",
    "DEFAULT_Z_THRESHOLD",
    "DEFAULT_WARMUP_POINTS",
    "RollingStats",
    "Spike",
    "SpikeDetector",
]

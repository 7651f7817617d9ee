from collections import deque
from collections.abc import Iterator

from connmon.monitor.types import HISTORY_CAPACITY, LatencyMeasurement


class LatencyHistory:
    """
    Fixed-capacity latency samples in arrival order.

    Once full, each append evicts the oldest sample.
    """

    __slots__ = ("_samples",)

    def __init__(self, capacity: int = HISTORY_CAPACITY) -> None:
        if capacity < 1:
            raise ValueError(f"History capacity must be positive, got {capacity}")

        self._samples: deque[LatencyMeasurement] = deque(maxlen=capacity)

    @property
    def capacity(self) -> int:
        return self._samples.maxlen or 0

    def __len__(self) -> int:
        return len(self._samples)

    def __iter__(self) -> Iterator[LatencyMeasurement]:
        return iter(self._samples)

    def append(self, measurement: LatencyMeasurement) -> None:
        self._samples.append(measurement)

    def clear(self) -> None:
        self._samples.clear()

    def snapshot(self) -> list[LatencyMeasurement]:
        return list(self._samples)

    def average(self, count: int) -> int | None:
        """Mean latency of the most recent `count` samples, rounded to whole ms.

        Returns None when there are no samples to average.
        """
        window = min(count, len(self._samples))
        if window < 1:
            return None

        total = 0
        for i in range(len(self._samples) - window, len(self._samples)):
            total += self._samples[i].latency_ms

        # Round half up; built-in round() uses banker's rounding
        return int(total / window + 0.5)

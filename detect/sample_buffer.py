"""Bounded ring buffer of wrist IMU samples."""

from __future__ import annotations

from collections import deque
from typing import Deque, Iterator, List, Optional

from contracts.types import TimedSample
from log_config.logger import get_logger

logger = get_logger(__name__)


class SampleBuffer:
    """Time-ordered IMU history; the oldest samples are evicted on overflow.

    Samples must arrive in increasing timestamp order. A sample that does not
    advance time is dropped.
    """

    def __init__(self, capacity: int = 800) -> None:
        if capacity < 2:
            raise ValueError(f"Buffer capacity must be at least 2, got {capacity}")
        self.capacity = capacity
        self._samples: Deque[TimedSample] = deque(maxlen=capacity)
        self.dropped_count = 0

    def __len__(self) -> int:
        return len(self._samples)

    def __iter__(self) -> Iterator[TimedSample]:
        return iter(self._samples)

    @property
    def latest(self) -> Optional[TimedSample]:
        return self._samples[-1] if self._samples else None

    def append(self, sample: TimedSample) -> bool:
        latest = self.latest
        if latest is not None and sample.t_s <= latest.t_s:
            self.dropped_count += 1
            logger.debug(f"Dropping out-of-order IMU sample t={sample.t_s:.4f} (latest {latest.t_s:.4f})")
            return False
        self._samples.append(sample)
        return True

    def window(self, start_s: float, end_s: float) -> List[TimedSample]:
        """Samples with ``start_s <= t <= end_s``, oldest first."""
        selected: List[TimedSample] = []
        for sample in reversed(self._samples):
            if sample.t_s < start_s:
                break
            if sample.t_s <= end_s:
                selected.append(sample)
        selected.reverse()
        return selected

    def nearest(self, t_s: float) -> Optional[TimedSample]:
        """Buffered sample closest in time to ``t_s``; the earlier one on ties."""
        best: Optional[TimedSample] = None
        best_distance = float("inf")
        for sample in self._samples:
            distance = abs(sample.t_s - t_s)
            if distance < best_distance:
                best = sample
                best_distance = distance
            elif sample.t_s > t_s:
                break
        return best

    def snapshot(self) -> List[TimedSample]:
        return list(self._samples)

    def effective_rate_hz(self) -> float:
        """Observed sample rate: inverse of the mean positive interval, 0 if unknown."""
        if len(self._samples) < 2:
            return 0.0
        intervals = []
        previous = None
        for sample in self._samples:
            if previous is not None:
                dt = sample.t_s - previous.t_s
                if dt > 0:
                    intervals.append(dt)
            previous = sample
        if not intervals:
            return 0.0
        mean_interval = sum(intervals) / len(intervals)
        return 1.0 / mean_interval if mean_interval > 0 else 0.0

    def clear(self) -> None:
        self._samples.clear()
        self.dropped_count = 0

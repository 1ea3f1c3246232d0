"""Clock sources for the two devices.

Production code reads ``time.monotonic``. Tests and the ``simulate`` command
share one ``SimulatedClock`` between devices and give each device a
``DeviceClock`` view with its own skew, so no test sleeps.
"""

from __future__ import annotations

import threading
import time
from typing import Callable

Clock = Callable[[], float]

monotonic_clock: Clock = time.monotonic


class SimulatedClock:
    """Shared "true" time that only moves when advanced."""

    def __init__(self, start_s: float = 0.0) -> None:
        self._now = float(start_s)
        self._lock = threading.Lock()

    def __call__(self) -> float:
        return self.now()

    def now(self) -> float:
        with self._lock:
            return self._now

    def advance(self, dt_s: float) -> float:
        if dt_s < 0:
            raise ValueError(f"Cannot move a simulated clock backwards ({dt_s})")
        with self._lock:
            self._now += dt_s
            return self._now

    def sleep(self, dt_s: float) -> None:
        self.advance(max(0.0, dt_s))


class DeviceClock:
    """A device's monotonic clock: true time plus a fixed offset and drift.

    Args:
        world: Shared simulated time
        offset_s: Device reading when true time is zero
        drift_ppm: Rate error in parts per million
    """

    def __init__(self, world: SimulatedClock, offset_s: float = 0.0, drift_ppm: float = 0.0) -> None:
        self._world = world
        self.offset_s = float(offset_s)
        self.drift_ppm = float(drift_ppm)

    def __call__(self) -> float:
        return self.at(self._world.now())

    def at(self, true_t_s: float) -> float:
        """Device reading at a given true time."""
        return true_t_s * (1.0 + self.drift_ppm * 1e-6) + self.offset_s

    def to_true(self, device_t_s: float) -> float:
        return (device_t_s - self.offset_s) / (1.0 + self.drift_ppm * 1e-6)

"""Tap-sync and linear-drift corrections.

A tap on the watch is heard by the camera's microphone and felt by the wrist
IMU. Comparing the two peaks, each measured from its own device's origin time,
gives a millisecond correction independent of the sync channel.
The recorder stands alone: fusion reads only the ClockOffset from the sync
channel, and these corrections apply through ``relative_time_ms``.
"""

from __future__ import annotations

import threading
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import List, Optional, Sequence, Tuple

import numpy as np

from log_config.logger import get_logger

logger = get_logger(__name__)

AUDIO_PEAK = "audio_peak"
IMU_JERK = "imu_jerk"


@dataclass(frozen=True)
class TapSyncEvent:
    device: str
    peak_ms: int
    confidence: float
    event_type: str


@dataclass(frozen=True)
class SyncCorrection:
    delta_ms: float
    method: str
    confidence: float
    applied_at: str
    slope: float = 0.0


def _now_iso() -> str:
    return datetime.now(timezone.utc).isoformat()


class TapSyncRecorder:
    """Collects tap peaks from both devices and derives corrections.

    Args:
        audio_threshold: Normalised audio level that counts as a tap
        jerk_threshold: 3-axis jerk (G per sample) that counts as a tap
    """

    def __init__(self, audio_threshold: float = 0.7, jerk_threshold: float = 5.0) -> None:
        self.audio_threshold = audio_threshold
        self.jerk_threshold = jerk_threshold
        self.camera_origin_s: Optional[float] = None
        self.wrist_origin_s: Optional[float] = None
        self.current_delta_ms = 0.0
        self._events: List[TapSyncEvent] = []
        self._corrections: List[SyncCorrection] = []
        self._lock = threading.Lock()

    @property
    def events(self) -> List[TapSyncEvent]:
        with self._lock:
            return list(self._events)

    @property
    def corrections(self) -> List[SyncCorrection]:
        with self._lock:
            return list(self._corrections)

    def set_camera_origin(self, t_s: float) -> None:
        self.camera_origin_s = t_s

    def set_wrist_origin(self, t_s: float) -> None:
        """Record the first motion timestamp; later calls are ignored."""
        if self.wrist_origin_s is None:
            self.wrist_origin_s = t_s

    def detect_audio_peak(self, audio_level: float, t_s: float) -> Optional[TapSyncEvent]:
        if self.camera_origin_s is None or audio_level <= self.audio_threshold:
            return None
        peak_ms = int((t_s - self.camera_origin_s) * 1000)
        event = TapSyncEvent("camera", peak_ms, float(audio_level), AUDIO_PEAK)
        self._record(event)
        logger.debug(f"Audio tap peak at {peak_ms}ms")
        return event

    def detect_imu_jerk(
        self,
        acceleration: Sequence[float],
        previous_acceleration: Optional[Sequence[float]],
        t_s: float,
    ) -> Optional[TapSyncEvent]:
        if self.wrist_origin_s is None or previous_acceleration is None:
            return None
        jerk = float(np.linalg.norm(np.asarray(acceleration, dtype=float) - np.asarray(previous_acceleration, dtype=float)))
        if jerk <= self.jerk_threshold:
            return None
        peak_ms = int((t_s - self.wrist_origin_s) * 1000)
        event = TapSyncEvent("wrist", peak_ms, min(jerk / 10.0, 1.0), IMU_JERK)
        self._record(event)
        logger.debug(f"IMU tap peak at {peak_ms}ms (jerk {jerk:.2f})")
        return event

    def tap_sync_correction(self) -> Optional[SyncCorrection]:
        """Correction from the latest audio and IMU peaks: audio minus IMU."""
        with self._lock:
            audio = [e for e in self._events if e.event_type == AUDIO_PEAK]
            imu = [e for e in self._events if e.event_type == IMU_JERK]
        if not audio or not imu:
            logger.warning("Insufficient tap events for tap sync")
            return None

        correction = SyncCorrection(
            delta_ms=float(audio[-1].peak_ms - imu[-1].peak_ms),
            method="tap_sync",
            confidence=min(audio[-1].confidence, imu[-1].confidence),
            applied_at=_now_iso(),
        )
        self._apply(correction)
        logger.info(f"Tap sync correction: {correction.delta_ms:.2f}ms (confidence {correction.confidence:.2f})")
        return correction

    def linear_drift_correction(self, points: Sequence[Tuple[float, float]]) -> Optional[SyncCorrection]:
        """Least-squares line through (time, delta_ms) points; the intercept is the correction."""
        if len(points) < 3:
            logger.warning("Need at least 3 data points for linear drift correction")
            return None
        data = np.asarray(points, dtype=float)
        x, y = data[:, 0], data[:, 1]
        if np.ptp(x) == 0.0:
            logger.warning("Linear drift correction needs distinct x values")
            return None

        slope, intercept = np.polyfit(x, y, 1)
        correction = SyncCorrection(
            delta_ms=float(intercept),
            method="linear_drift",
            confidence=0.8,
            applied_at=_now_iso(),
            slope=float(slope),
        )
        self._apply(correction)
        logger.info(f"Linear drift correction: {correction.delta_ms:.2f}ms (slope {correction.slope:.4f})")
        return correction

    def relative_time_ms(self, t_s: float, is_wrist: bool) -> int:
        origin = self.wrist_origin_s if is_wrist else self.camera_origin_s
        return int((t_s - (origin or 0.0)) * 1000) + int(self.current_delta_ms)

    def reset(self) -> None:
        with self._lock:
            self._events.clear()
            self._corrections.clear()
        self.camera_origin_s = None
        self.wrist_origin_s = None
        self.current_delta_ms = 0.0

    def _record(self, event: TapSyncEvent) -> None:
        with self._lock:
            self._events.append(event)

    def _apply(self, correction: SyncCorrection) -> None:
        with self._lock:
            self._corrections.append(correction)
        self.current_delta_ms = correction.delta_ms

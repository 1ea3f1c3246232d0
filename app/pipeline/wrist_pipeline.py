"""Wrist-device pipeline: IMU ingestion, impact, face angles, swing timing.

All buffer, detector and calibration state is mutated under one RLock so the
IMU callback and operator commands (calibration, reset) can run on different
threads.
"""

from __future__ import annotations

import threading
import time
from collections import deque
from typing import Deque, List, Optional

from app.events import EventBus, ImpactDetectedEvent
from calib.orientation import OrientationCalibrator
from configs.settings import AppConfig
from contracts.messages import encode_impact_report
from contracts.types import CalibrationFrame, FaceAngles, ImpactEvent, ImpactReport, SwingEfficiency, TimedSample
from detect.impact import ImpactDetector
from detect.sample_buffer import SampleBuffer
from exceptions import CalibrationSampleMissing, ChannelUnavailable, NotCalibrated
from log_config.logger import get_logger
from metrics.swing_efficiency import SwingEfficiencyAnalyzer
from sync.channel import MessageChannel
from sync.clock import Clock
from sync.clock_sync import ClockSyncResponder

logger = get_logger(__name__)


class WristPipeline:
    """Owns the wrist device's IMU history and its per-serve results.

    Args:
        channel: Wrist end of the device channel
        config: Application config (defaults if omitted)
        clock: Wrist monotonic clock, used to answer sync requests
        event_bus: Optional bus for ImpactDetectedEvent
    """

    def __init__(
        self,
        channel: Optional[MessageChannel] = None,
        config: Optional[AppConfig] = None,
        clock: Clock = time.monotonic,
        event_bus: Optional[EventBus] = None,
    ) -> None:
        self._config = config or AppConfig()
        self._lock = threading.RLock()
        self._channel = channel
        self._event_bus = event_bus

        self.buffer = SampleBuffer(self._config.impact.buffer_capacity)
        self.detector = ImpactDetector(self._config.impact, self.buffer)
        self.calibrator = OrientationCalibrator(self._config.calibration)
        self.swing_analyzer = SwingEfficiencyAnalyzer(self._config.swing)
        self.responder = ClockSyncResponder(clock)
        if channel is not None:
            self.responder.attach(channel)

        self._last_impact: Optional[ImpactEvent] = None
        self._last_angles: Optional[FaceAngles] = None
        self._last_swing: Optional[SwingEfficiency] = None
        self._pending_reports: Deque[ImpactReport] = deque(maxlen=self._config.impact.max_pending_reports)
        self._recording = False

    @property
    def is_recording(self) -> bool:
        return self._recording

    @property
    def last_impact(self) -> Optional[ImpactEvent]:
        with self._lock:
            return self._last_impact

    @property
    def last_face_angles(self) -> Optional[FaceAngles]:
        with self._lock:
            return self._last_angles

    @property
    def last_swing(self) -> Optional[SwingEfficiency]:
        with self._lock:
            return self._last_swing

    @property
    def pending_reports(self) -> List[ImpactReport]:
        with self._lock:
            return list(self._pending_reports)

    def start_recording(self) -> None:
        with self._lock:
            self._recording = True
            self.detector.arm()
        logger.info("Wrist recording started")

    def stop_recording(self) -> None:
        with self._lock:
            self._recording = False
            self.detector.disarm()
        logger.info(f"Wrist recording stopped (effective IMU rate {self.buffer.effective_rate_hz():.0f}Hz)")

    def calibrate_level(self, sample: Optional[TimedSample] = None) -> None:
        """Commit the level pose, from ``sample`` or the latest buffered sample."""
        with self._lock:
            self.calibrator.commit_level(sample if sample is not None else self.buffer.latest)

    def calibrate_direction(self, sample: Optional[TimedSample] = None) -> CalibrationFrame:
        with self._lock:
            return self.calibrator.commit_direction(sample if sample is not None else self.buffer.latest)

    def process_sample(self, sample: TimedSample) -> Optional[ImpactEvent]:
        """Ingest one IMU sample; returns the impact if this sample triggered one."""
        with self._lock:
            impact = self.detector.process(sample)
            if impact is None:
                return None

            angles = self._face_angles(impact)
            swing = self.swing_analyzer.analyze(self.buffer, impact.refined_t_s)
            self._last_impact = impact
            self._last_angles = angles
            self._last_swing = swing

            report = ImpactReport(
                refined_t_s=impact.refined_t_s,
                confidence=impact.confidence,
                roll_deg=angles.roll_deg if angles is not None else None,
                pitch_deg=angles.pitch_deg if angles is not None else None,
                swing_r=swing.r,
            )
            if len(self._pending_reports) == self._pending_reports.maxlen:
                dropped = self._pending_reports[0]
                logger.warning(f"Report queue full, dropping undelivered impact at {dropped.refined_t_s:.3f}s")
            self._pending_reports.append(report)
            self._flush_reports()

        if self._event_bus is not None:
            self._event_bus.publish(ImpactDetectedEvent(impact=impact, face_angles=angles, swing=swing))
        return impact

    def flush_reports(self) -> int:
        """Retry sending impact reports that could not be delivered; returns how many remain."""
        with self._lock:
            self._flush_reports()
            return len(self._pending_reports)

    def reset(self) -> None:
        with self._lock:
            self.buffer.clear()
            self.detector.reset()
            self.calibrator.reset()
            self._last_impact = None
            self._last_angles = None
            self._last_swing = None
            self._pending_reports.clear()
            self._recording = False
        logger.info("Wrist pipeline reset")

    def _face_angles(self, impact: ImpactEvent) -> Optional[FaceAngles]:
        try:
            return self.calibrator.face_angles(impact.orientation)
        except (NotCalibrated, CalibrationSampleMissing) as e:
            logger.warning(f"Face angles unavailable: {e}")
            return None

    def _flush_reports(self) -> None:
        if self._channel is None:
            return
        while self._pending_reports:
            report = self._pending_reports[0]
            try:
                self._channel.send_fire_and_forget(encode_impact_report(report))
            except ChannelUnavailable as e:
                logger.warning(f"Impact report for {report.refined_t_s:.3f}s queued: {e}")
                return
            self._pending_reports.popleft()
            logger.debug(f"Impact report sent for {report.refined_t_s:.3f}s")

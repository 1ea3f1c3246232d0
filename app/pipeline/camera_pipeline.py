"""Camera-device pipeline: ball tracking, pose history, sync and fusion."""

from __future__ import annotations

import threading
import time
from collections import deque
from dataclasses import dataclass
from typing import Deque, List, Optional

from app.events import ApexDetectedEvent, ClockSyncedEvent, EventBus, FusedImpactEvent
from configs.settings import AppConfig
from contracts.messages import IMPACT_REPORT, decode_impact_report, message_type
from contracts.types import ApexEvent, BallDetection, ClockOffset, FaceAngles, FusedImpact, ImpactReport, PoseSample
from exceptions import MessageDecodeError, SyncError
from fusion.engine import EventFusionEngine
from fusion.scoring import ScoringInputs
from fusion.trophy import TrophyPose, find_trophy_pose
from log_config.logger import get_logger
from metrics.pelvis import PelvisRise, compute_pelvis_rise
from sync.channel import Message, MessageChannel
from sync.clock import Clock
from sync.clock_sync import ClockSyncCoordinator
from track.apex import apex_from_history
from track.ball_tracker import BallTrajectoryEstimator

logger = get_logger(__name__)


@dataclass(frozen=True)
class ServeAnalysis:
    """Everything derived for one serve from a single impact/apex pair."""
    fused: FusedImpact
    apex: Optional[ApexEvent]
    trophy: Optional[TrophyPose]
    pelvis: Optional[PelvisRise]
    impact_report: Optional[ImpactReport]
    scoring: ScoringInputs


class CameraPipeline:
    """Owns the camera device's ball filter, pose history and clock offset.

    Frame ingestion and message handling are serialised by one RLock. Clock
    sync runs outside the lock so it never blocks frame ingestion.

    Args:
        channel: Camera end of the device channel
        config: Application config (defaults if omitted)
        clock: Camera monotonic clock
        event_bus: Optional bus for apex, sync and fused-impact events
    """

    def __init__(
        self,
        channel: MessageChannel,
        config: Optional[AppConfig] = None,
        clock: Clock = time.monotonic,
        event_bus: Optional[EventBus] = None,
    ) -> None:
        self._config = config or AppConfig()
        self._lock = threading.RLock()
        self._event_bus = event_bus

        self.estimator = BallTrajectoryEstimator(self._config.ball, self._config.apex)
        self.coordinator = ClockSyncCoordinator(channel, self._config.sync, clock)
        self.fusion = EventFusionEngine(self._config.fusion)

        self._poses: Deque[PoseSample] = deque(maxlen=self._config.fusion.pose_history_size)
        self._apex: Optional[ApexEvent] = None
        self._impact_report: Optional[ImpactReport] = None
        channel.on_message(self._on_message)

    @property
    def apex(self) -> Optional[ApexEvent]:
        with self._lock:
            return self._apex

    @property
    def impact_report(self) -> Optional[ImpactReport]:
        with self._lock:
            return self._impact_report

    @property
    def poses(self) -> List[PoseSample]:
        with self._lock:
            return list(self._poses)

    def sync_clocks(self, timeout_s: Optional[float] = None) -> Optional[ClockOffset]:
        """Run clock sync; failures are logged and leave the fallback chain in place."""
        cfg = self._config.sync
        budget = timeout_s if timeout_s is not None else cfg.max_rounds * cfg.round_timeout_s
        try:
            offset = self.coordinator.sync(budget)
        except SyncError as e:
            logger.warning(f"Clock sync failed after {e.attempts} attempt(s): {e}")
            return None
        if self._event_bus is not None:
            self._event_bus.publish(ClockSyncedEvent(offset=offset))
        return offset

    def cancel_sync(self) -> None:
        self.coordinator.cancel()

    def add_pose(self, pose: PoseSample) -> None:
        with self._lock:
            if self._poses and pose.t_s <= self._poses[-1].t_s:
                logger.debug(f"Dropping out-of-order pose t={pose.t_s:.3f}")
                return
            self._poses.append(pose)

    def process_frame(
        self,
        t_s: float,
        ball: Optional[BallDetection] = None,
        pose: Optional[PoseSample] = None,
    ) -> Optional[BallDetection]:
        """Ingest one frame's detections; returns the tracked (or predicted) ball."""
        apex = None
        with self._lock:
            if pose is not None:
                self.add_pose(pose)
            tracked = self.estimator.track(ball, t_s)
            if tracked is not None and not tracked.predicted:
                apex = self.estimator.detect_apex()
                if apex is not None:
                    self._apex = apex

        if apex is not None and self._event_bus is not None:
            self._event_bus.publish(ApexDetectedEvent(apex=apex))
        return tracked

    def receive_impact(self, report: ImpactReport) -> None:
        with self._lock:
            self._impact_report = report
        logger.info(f"Impact report received: wrist t={report.refined_t_s:.3f}s confidence={report.confidence:.2f}")

    def finalize(self) -> ServeAnalysis:
        """Fuse the serve from one consistent snapshot of impact, apex and poses."""
        with self._lock:
            poses = list(self._poses)
            report = self._impact_report
            apex = self._apex
            if apex is None:
                apex = apex_from_history(self.estimator.history, self._config.outliers)
            offset = self.coordinator.offset

        trophy = find_trophy_pose(poses, apex, self._config.trophy)
        fused = self.fusion.fuse(report, offset, poses, trophy.t_s if trophy is not None else None)
        pelvis = compute_pelvis_rise(poses, trophy.t_s, self._config.pelvis) if trophy is not None else None

        face_angles = None
        if report is not None and report.roll_deg is not None and report.pitch_deg is not None:
            face_angles = FaceAngles(roll_deg=report.roll_deg, pitch_deg=report.pitch_deg)
        scoring = ScoringInputs(
            fused=fused,
            face_angles=face_angles,
            apex=apex,
            swing_r=report.swing_r if report is not None else None,
            trophy=trophy,
            pelvis_rise_px=pelvis.rise_px if pelvis is not None else None,
        )

        if self._event_bus is not None:
            self._event_bus.publish(FusedImpactEvent(fused=fused))
        return ServeAnalysis(
            fused=fused,
            apex=apex,
            trophy=trophy,
            pelvis=pelvis,
            impact_report=report,
            scoring=scoring,
        )

    def reset(self) -> None:
        """Clear per-session state. The clock offset is kept: it is valid for the device pair."""
        with self._lock:
            self.estimator.reset()
            self._poses.clear()
            self._apex = None
            self._impact_report = None
        logger.info("Camera pipeline reset")

    def _on_message(self, message: Message) -> Optional[Message]:
        try:
            if message_type(message) != IMPACT_REPORT:
                return None
            report = decode_impact_report(message)
        except MessageDecodeError as e:
            logger.warning(f"Ignoring malformed message: {e}")
            return None
        self.receive_impact(report)
        return None

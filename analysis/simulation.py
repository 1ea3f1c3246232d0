"""End-to-end synthetic serve through both device pipelines.

Both devices run on one simulated timeline. Each gets its own DeviceClock
(the wrist clock skewed from the camera clock) and they talk over a
LoopbackChannel with configurable one-way delays.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Dict, List, Optional, Tuple

import numpy as np

from app.events import EventBus
from app.pipeline.camera_pipeline import CameraPipeline, ServeAnalysis
from app.pipeline.wrist_pipeline import WristPipeline
from calib.orientation import axis_angle_matrix
from capture.simulated_imu import ServeProfile, simulate_serve_imu
from capture.simulated_toss import simulate_poses, simulate_toss
from configs.settings import AppConfig
from contracts.types import ClockOffset, ImpactEvent, SwingEfficiency, TimedSample
from log_config.logger import get_logger
from sync.channel import LoopbackChannel
from sync.clock import DeviceClock, SimulatedClock

logger = get_logger(__name__)

TOSS_APEX_BEFORE_IMPACT_S = 0.46


@dataclass(frozen=True)
class SimulationResult:
    analysis: ServeAnalysis
    offset: Optional[ClockOffset]
    wrist_impact: Optional[ImpactEvent]
    swing: Optional[SwingEfficiency]
    true_skew_s: float
    true_impact_camera_t_s: float
    true_apex_camera_t_s: float

    def summary(self) -> Dict[str, Any]:
        fused = self.analysis.fused
        apex = self.analysis.apex
        resolved = self.analysis.scoring.resolved()
        return {
            "sync": None
            if self.offset is None
            else {
                "offset_s": self.offset.offset_s,
                "round_trip_s": self.offset.round_trip_s,
                "complete": self.offset.is_complete,
                "rounds": self.offset.rounds,
                "true_skew_s": self.true_skew_s,
            },
            "impact": None
            if self.wrist_impact is None
            else {
                "wrist_t_s": self.wrist_impact.refined_t_s,
                "confidence": self.wrist_impact.confidence,
            },
            "swing": None if self.swing is None else {"r": self.swing.r, "band": self.swing.band},
            "face_angles": {"roll_deg": resolved.roll_deg, "pitch_deg": resolved.pitch_deg},
            "apex": None
            if apex is None
            else {"t_s": apex.t_s, "x": apex.x, "y": apex.y, "method": apex.method.value},
            "fused": {
                "provenance": fused.provenance.value,
                "target_t_s": fused.target_t_s,
                "pose_t_s": None if fused.pose is None else fused.pose.t_s,
                "true_impact_t_s": self.true_impact_camera_t_s,
            },
            "trophy_angles": {
                "right_elbow_deg": resolved.trophy_angles.right_elbow_deg,
                "right_armpit_deg": resolved.trophy_angles.right_armpit_deg,
                "left_shoulder_deg": resolved.trophy_angles.left_shoulder_deg,
                "left_elbow_deg": resolved.trophy_angles.left_elbow_deg,
            },
            "pelvis_rise_px": resolved.pelvis_rise_px,
            "flags": resolved.flags,
        }


def _camera_events(balls, poses) -> List[Tuple[float, int, Any]]:
    events = [(b.t_s, 1, b) for b in balls]
    events.extend((p.t_s, 0, p) for p in poses)
    events.sort(key=lambda e: (e[0], e[1]))
    return events


def run_simulation(
    config: Optional[AppConfig] = None,
    skew_s: float = 3.7,
    drift_ppm: float = 0.0,
    one_way_delay_s: float = 0.004,
    return_delay_s: Optional[float] = None,
    face_roll_deg: float = 8.0,
    imu_noise: float = 0.0,
    ball_noise_px: float = 0.0,
    seed: Optional[int] = 7,
    wrist_reachable: bool = True,
    send_impact: bool = True,
    event_bus: Optional[EventBus] = None,
) -> SimulationResult:
    """Simulate sync, calibration, one serve and fusion.

    Args:
        config: Application config
        skew_s: Wrist clock reading minus camera clock reading
        drift_ppm: Wrist clock rate error
        one_way_delay_s: Camera-to-wrist delay
        return_delay_s: Wrist-to-camera delay (defaults to the forward delay)
        face_roll_deg: Racket face rotation about the racket axis at impact
        imu_noise: Gaussian noise on IMU magnitudes
        ball_noise_px: Gaussian noise on ball positions
        seed: Noise seed
        wrist_reachable: False simulates the watch out of range
        send_impact: False drops the impact report (watch event missing)
        event_bus: Optional bus shared by both pipelines
    """
    cfg = config or AppConfig()
    world = SimulatedClock(start_s=100.0)
    camera_clock = DeviceClock(world, offset_s=0.0)
    wrist_clock = DeviceClock(world, offset_s=skew_s, drift_ppm=drift_ppm)
    back_delay = one_way_delay_s if return_delay_s is None else return_delay_s
    camera_channel, wrist_channel = LoopbackChannel.pair(world, one_way_delay_s, back_delay)

    wrist = WristPipeline(wrist_channel if send_impact else None, cfg, clock=wrist_clock, event_bus=event_bus)
    if not send_impact:
        wrist.responder.attach(wrist_channel)
    camera = CameraPipeline(camera_channel, cfg, clock=camera_clock, event_bus=event_bus)

    if not wrist_reachable:
        camera_channel.set_reachable(False)
    offset = camera.sync_clocks()

    still = TimedSample(t_s=wrist_clock(), orientation=np.eye(3), angular_velocity=0.0, linear_acceleration=0.0)
    wrist.calibrate_level(still)
    wrist.calibrate_direction(still)

    serve_start = world.now() + 1.0
    profile = ServeProfile()
    impact_true = serve_start + profile.impact_t_s
    apex_true = impact_true - TOSS_APEX_BEFORE_IMPACT_S

    def face(t: float) -> np.ndarray:
        progress = min(max(t / profile.impact_t_s, 0.0), 1.0)
        return axis_angle_matrix((0.0, 1.0, 0.0), face_roll_deg * progress)

    imu = simulate_serve_imu(
        profile,
        clock=lambda t: wrist_clock.at(serve_start + t),
        orientation=face,
        noise_std=imu_noise,
        seed=seed,
    )
    balls = simulate_toss(
        apex_t_s=apex_true,
        noise_px=ball_noise_px,
        seed=seed,
        clock=camera_clock.at,
    )
    poses = simulate_poses(
        start_s=serve_start,
        end_s=serve_start + 3.0,
        trophy_t_s=apex_true,
        impact_t_s=impact_true,
        clock=camera_clock.at,
    )

    wrist.start_recording()
    for sample in imu:
        wrist.process_sample(sample)
    wrist.stop_recording()

    for t_s, kind, item in _camera_events(balls, poses):
        if kind == 0:
            camera.add_pose(item)
        else:
            camera.process_frame(t_s, ball=item)

    analysis = camera.finalize()
    return SimulationResult(
        analysis=analysis,
        offset=offset,
        wrist_impact=wrist.last_impact,
        swing=wrist.last_swing,
        true_skew_s=skew_s,
        true_impact_camera_t_s=camera_clock.at(impact_true),
        true_apex_camera_t_s=camera_clock.at(apex_true),
    )

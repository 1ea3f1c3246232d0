"""Core data contracts for the wrist, camera, and fusion pipelines."""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Dict, Optional, Tuple

import numpy as np


@dataclass(frozen=True)
class TimedSample:
    """One wrist IMU reading.

    Attributes:
        t_s: Wrist monotonic timestamp in seconds
        orientation: 3x3 device attitude rotation matrix
        angular_velocity: Gyro magnitude in rad/s
        linear_acceleration: User acceleration magnitude in G
    """
    t_s: float
    orientation: np.ndarray
    angular_velocity: float
    linear_acceleration: float


@dataclass(frozen=True)
class CalibrationFrame:
    r_level: np.ndarray
    world_up: np.ndarray
    nominal_face_normal: np.ndarray


@dataclass(frozen=True)
class FaceAngles:
    roll_deg: float
    pitch_deg: float


@dataclass(frozen=True)
class ImpactEvent:
    raw_trigger_t_s: float
    refined_t_s: float
    orientation: np.ndarray
    confidence: float
    peak_angular_velocity: float = 0.0
    jerk_proxy: float = 0.0


@dataclass(frozen=True)
class SwingEfficiency:
    r: float
    t_start_s: float
    t_peak_s: float
    t_end_s: float
    peak_angular_accel: float
    start_from_static: bool
    band: str


@dataclass(frozen=True)
class ImpactReport:
    """Impact summary sent from the wrist device to the camera device."""
    refined_t_s: float
    confidence: float
    roll_deg: Optional[float] = None
    pitch_deg: Optional[float] = None
    swing_r: Optional[float] = None


@dataclass(frozen=True)
class BallDetection:
    t_s: float
    x: float
    y: float
    radius_px: float
    confidence: float
    image_size: Tuple[int, int] = (1280, 720)
    predicted: bool = False

    def is_valid(self, min_confidence: float = 0.15, min_radius_px: float = 3.0, max_radius_px: float = 200.0) -> bool:
        return self.confidence > min_confidence and min_radius_px < self.radius_px < max_radius_px


@dataclass
class FilterState:
    """Mutable Kalman state owned by one BallTrajectoryEstimator."""
    x: float
    y: float
    vx: float
    vy: float
    t_s: float
    var_x: float
    var_y: float
    var_vx: float
    var_vy: float


class RefinementMethod(Enum):
    DISCRETE = "discrete"
    PARABOLIC = "parabolic"


@dataclass(frozen=True)
class ApexEvent:
    t_s: float
    x: float
    y: float
    confidence: float
    method: RefinementMethod


@dataclass(frozen=True)
class ClockOffset:
    """Remote-minus-local clock offset from a four-timestamp exchange.

    A positive offset means the remote (wrist) clock is ahead of the local
    (camera) clock.
    """
    offset_s: float
    round_trip_s: float
    is_complete: bool
    rounds: int = 1

    def convert(self, remote_t_s: float) -> float:
        """Map a remote timestamp onto the local clock."""
        return remote_t_s - self.offset_s


@dataclass(frozen=True)
class PoseSample:
    t_s: float
    joints: Dict[str, Tuple[float, float]]
    confidences: Dict[str, float] = field(default_factory=dict)

    @property
    def average_confidence(self) -> float:
        if not self.confidences:
            return 0.0
        return float(sum(self.confidences.values()) / len(self.confidences))

    def hip_center(self) -> Optional[Tuple[float, float]]:
        left = self.joints.get("left_hip")
        right = self.joints.get("right_hip")
        if left is None or right is None:
            return None
        return ((left[0] + right[0]) / 2.0, (left[1] + right[1]) / 2.0)


class Provenance(Enum):
    SYNCED = "synced"
    FALLBACK_HEURISTIC = "fallback-heuristic"
    VISION_ONLY = "vision-only"


@dataclass(frozen=True)
class FusedImpact:
    pose: Optional[PoseSample]
    provenance: Provenance
    target_t_s: Optional[float] = None
    diagnostics: Dict[str, Any] = field(default_factory=dict)

    @property
    def is_synced(self) -> bool:
        return self.provenance is Provenance.SYNCED

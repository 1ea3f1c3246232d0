"""Joint angles from 2D pose keypoints."""

from __future__ import annotations

import math
from dataclasses import dataclass
from typing import Optional, Tuple

from contracts.types import PoseSample

Point = Tuple[float, float]


def joint_angle(a: Point, b: Point, c: Point) -> float:
    """Angle ABC at vertex ``b`` in degrees, 0 when either arm has zero length."""
    v1 = (a[0] - b[0], a[1] - b[1])
    v2 = (c[0] - b[0], c[1] - b[1])
    n1 = math.hypot(*v1)
    n2 = math.hypot(*v2)
    if n1 <= 0 or n2 <= 0:
        return 0.0
    cos_angle = (v1[0] * v2[0] + v1[1] * v2[1]) / (n1 * n2)
    return math.degrees(math.acos(max(-1.0, min(1.0, cos_angle))))


def pose_angle(pose: PoseSample, a: str, b: str, c: str) -> Optional[float]:
    """Angle at joint ``b``, or None if any of the three joints is missing."""
    points = [pose.joints.get(name) for name in (a, b, c)]
    if any(p is None for p in points):
        return None
    return joint_angle(*points)


def elbow_angle(pose: PoseSample, side: str = "right") -> Optional[float]:
    return pose_angle(pose, f"{side}_shoulder", f"{side}_elbow", f"{side}_wrist")


def armpit_angle(pose: PoseSample, side: str = "right") -> Optional[float]:
    return pose_angle(pose, "neck", f"{side}_shoulder", f"{side}_elbow")


def shoulder_abduction(pose: PoseSample, side: str = "right") -> Optional[float]:
    """Neck-shoulder-wrist angle: how far the arm is raised away from the torso."""
    return pose_angle(pose, "neck", f"{side}_shoulder", f"{side}_wrist")


@dataclass(frozen=True)
class TrophyAngles:
    """Hitting-arm and tossing-arm angles at the trophy pose (right-handed player)."""
    right_elbow_deg: Optional[float] = None
    right_armpit_deg: Optional[float] = None
    left_shoulder_deg: Optional[float] = None
    left_elbow_deg: Optional[float] = None

    @classmethod
    def from_pose(cls, pose: PoseSample) -> "TrophyAngles":
        return cls(
            right_elbow_deg=elbow_angle(pose, "right"),
            right_armpit_deg=armpit_angle(pose, "right"),
            left_shoulder_deg=armpit_angle(pose, "left"),
            left_elbow_deg=elbow_angle(pose, "left"),
        )

    @property
    def is_complete(self) -> bool:
        return None not in (self.right_elbow_deg, self.right_armpit_deg, self.left_shoulder_deg, self.left_elbow_deg)

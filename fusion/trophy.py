"""Trophy pose: the player's pose when the tossed ball is at its apex."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Optional, Sequence

from configs.settings import TrophyConfig
from contracts.types import ApexEvent, PoseSample
from fusion.engine import nearest_pose
from log_config.logger import get_logger
from metrics.joint_angles import TrophyAngles, shoulder_abduction

logger = get_logger(__name__)


@dataclass(frozen=True)
class TrophyPose:
    pose: PoseSample
    apex: ApexEvent
    time_gap_s: float
    angles: TrophyAngles = field(default_factory=TrophyAngles)
    shoulder_abduction_deg: Optional[float] = None
    # Racket elbow extended and arm raised, with confident keypoints.
    in_position: bool = False

    @property
    def t_s(self) -> float:
        return self.pose.t_s

    @property
    def confidence(self) -> float:
        return self.pose.average_confidence


def is_trophy_position(
    pose: PoseSample,
    angles: TrophyAngles,
    abduction_deg: Optional[float],
    config: Optional[TrophyConfig] = None,
) -> bool:
    cfg = config or TrophyConfig()
    if angles.right_elbow_deg is None or abduction_deg is None:
        return False
    return (
        cfg.min_elbow_deg <= angles.right_elbow_deg <= cfg.max_elbow_deg
        and abduction_deg > cfg.min_shoulder_abduction_deg
        and pose.average_confidence > cfg.min_confidence
    )


def find_trophy_pose(
    poses: Sequence[PoseSample],
    apex: Optional[ApexEvent],
    config: Optional[TrophyConfig] = None,
) -> Optional[TrophyPose]:
    if apex is None or not poses:
        return None
    pose = nearest_pose(poses, apex.t_s)
    if pose is None:
        return None

    angles = TrophyAngles.from_pose(pose)
    abduction = shoulder_abduction(pose)
    trophy = TrophyPose(
        pose=pose,
        apex=apex,
        time_gap_s=abs(pose.t_s - apex.t_s),
        angles=angles,
        shoulder_abduction_deg=abduction,
        in_position=is_trophy_position(pose, angles, abduction, config),
    )
    logger.info(f"Trophy pose at {trophy.t_s:.3f}s ({trophy.time_gap_s * 1000:.0f}ms from apex)")
    if not angles.is_complete:
        logger.debug(f"Trophy pose missing joints for some angles: {angles}")
    return trophy

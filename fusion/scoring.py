"""Inputs handed to the external scoring collaborator.

Every input is independently optional. ``resolved()`` substitutes the
documented fallback values and records a flag for each substitution so the
scorer can discount the affected items. Trophy joint angles fall back to the
values of a typical trophy position; when there is no trophy pose at all only
``no_trophy_pose`` is flagged.
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from typing import Any, List, Optional

from contracts.types import ApexEvent, FaceAngles, FusedImpact, PoseSample, Provenance
from fusion.trophy import TrophyPose
from metrics.joint_angles import TrophyAngles

FALLBACK_ROLL_DEG = 0.0
FALLBACK_PITCH_DEG = 0.0
FALLBACK_SWING_R = 0.0
FALLBACK_RIGHT_ELBOW_DEG = 165.0
FALLBACK_RIGHT_ARMPIT_DEG = 90.0
FALLBACK_LEFT_SHOULDER_DEG = 65.0
FALLBACK_LEFT_ELBOW_DEG = 170.0

_TROPHY_ANGLE_FALLBACKS = (
    ("right_elbow_deg", FALLBACK_RIGHT_ELBOW_DEG),
    ("right_armpit_deg", FALLBACK_RIGHT_ARMPIT_DEG),
    ("left_shoulder_deg", FALLBACK_LEFT_SHOULDER_DEG),
    ("left_elbow_deg", FALLBACK_LEFT_ELBOW_DEG),
)


@dataclass(frozen=True)
class ResolvedScoringInputs:
    impact_pose: Optional[PoseSample]
    provenance: Provenance
    roll_deg: float
    pitch_deg: float
    swing_r: float
    apex: Optional[ApexEvent]
    trophy: Optional[TrophyPose]
    trophy_angles: TrophyAngles
    pelvis_rise_px: Optional[float]
    flags: List[str] = field(default_factory=list)

    @property
    def is_complete(self) -> bool:
        return not self.flags


@dataclass(frozen=True)
class ScoringInputs:
    fused: Optional[FusedImpact] = None
    face_angles: Optional[FaceAngles] = None
    apex: Optional[ApexEvent] = None
    swing_r: Optional[float] = None
    trophy: Optional[TrophyPose] = None
    pelvis_rise_px: Optional[float] = None

    def resolved(self) -> ResolvedScoringInputs:
        flags: List[str] = []
        pose = self.fused.pose if self.fused is not None else None
        provenance = self.fused.provenance if self.fused is not None else Provenance.VISION_ONLY
        if pose is None:
            flags.append("no_impact_pose")
        if self.fused is not None and not self.fused.is_synced:
            flags.append(f"impact_{provenance.value}")

        if self.face_angles is None:
            flags.append("no_face_angles")
            roll, pitch = FALLBACK_ROLL_DEG, FALLBACK_PITCH_DEG
        else:
            roll, pitch = self.face_angles.roll_deg, self.face_angles.pitch_deg

        if self.swing_r is None:
            flags.append("no_swing_efficiency")
        swing_r = self.swing_r if self.swing_r is not None else FALLBACK_SWING_R

        if self.apex is None:
            flags.append("no_toss_apex")

        measured = self.trophy.angles if self.trophy is not None else TrophyAngles()
        angles = {}
        if self.trophy is None:
            flags.append("no_trophy_pose")
        for name, fallback in _TROPHY_ANGLE_FALLBACKS:
            value = getattr(measured, name)
            if value is None:
                value = fallback
                if self.trophy is not None:
                    flags.append(f"no_{name[:-4]}_angle")
            angles[name] = value

        if self.pelvis_rise_px is None:
            flags.append("no_pelvis_rise")

        return ResolvedScoringInputs(
            impact_pose=pose,
            provenance=provenance,
            roll_deg=roll,
            pitch_deg=pitch,
            swing_r=swing_r,
            apex=self.apex,
            trophy=self.trophy,
            trophy_angles=TrophyAngles(**angles),
            pelvis_rise_px=self.pelvis_rise_px,
            flags=flags,
        )


class ScoringCollaborator(ABC):
    """Weighted scoring and feedback generation, implemented outside this package."""

    @abstractmethod
    def score(self, inputs: ResolvedScoringInputs) -> Any:
        """Score one serve. Must accept inputs carrying fallback values."""

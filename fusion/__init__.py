"""Camera-side event fusion."""

from .engine import EventFusionEngine, nearest_pose
from .scoring import ResolvedScoringInputs, ScoringCollaborator, ScoringInputs
from .trophy import TrophyPose, find_trophy_pose

__all__ = [
    "EventFusionEngine",
    "ResolvedScoringInputs",
    "ScoringCollaborator",
    "ScoringInputs",
    "TrophyPose",
    "find_trophy_pose",
    "nearest_pose",
]

"""Swing and body metrics."""

from .joint_angles import TrophyAngles, elbow_angle, joint_angle, shoulder_abduction
from .pelvis import PelvisRise, compute_pelvis_rise, pixel_to_meter_scale
from .swing_efficiency import SwingEfficiencyAnalyzer

__all__ = [
    "PelvisRise",
    "SwingEfficiencyAnalyzer",
    "TrophyAngles",
    "compute_pelvis_rise",
    "elbow_angle",
    "joint_angle",
    "pixel_to_meter_scale",
    "shoulder_abduction",
]

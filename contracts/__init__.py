"""Shared data contracts for serve analysis."""

from .types import (
    ApexEvent,
    BallDetection,
    CalibrationFrame,
    ClockOffset,
    FaceAngles,
    FilterState,
    FusedImpact,
    ImpactEvent,
    ImpactReport,
    PoseSample,
    Provenance,
    RefinementMethod,
    SwingEfficiency,
    TimedSample,
)

__all__ = [
    "ApexEvent",
    "BallDetection",
    "CalibrationFrame",
    "ClockOffset",
    "FaceAngles",
    "FilterState",
    "FusedImpact",
    "ImpactEvent",
    "ImpactReport",
    "PoseSample",
    "Provenance",
    "RefinementMethod",
    "SwingEfficiency",
    "TimedSample",
]

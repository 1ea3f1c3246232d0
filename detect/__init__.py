"""Wrist-side detection module."""

from .impact import ImpactDetector, ImpactState
from .sample_buffer import SampleBuffer

__all__ = ["ImpactDetector", "ImpactState", "SampleBuffer"]

"""Tracking interfaces and track state containers."""

from __future__ import annotations

from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import Optional

from contracts import BallDetection


@dataclass(frozen=True)
class TrackState:
    x: float
    y: float
    vx: float
    vy: float
    last_update_t_s: float
    detection_count: int


class Tracker(ABC):
    @abstractmethod
    def track(self, detection: Optional[BallDetection], t_s: float) -> Optional[BallDetection]:
        """Consume one frame's detection (or None) and return the ball for that frame."""

    @abstractmethod
    def snapshot(self) -> Optional[TrackState]:
        """Current filtered state, or None before the first detection."""

    @abstractmethod
    def reset(self) -> None:
        """Forget all state between sessions."""

"""Event types for pipeline communication.

All events are immutable dataclasses that flow through the EventBus.
Pipelines publish events when a serve milestone is reached; consumers
subscribe to react to them.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Optional

from contracts import ApexEvent, ClockOffset, FaceAngles, FusedImpact, ImpactEvent, SwingEfficiency


@dataclass(frozen=True)
class ImpactDetectedEvent:
    """Published when the wrist pipeline detects a racket impact.

    Published By: WristPipeline
    Subscribed By: CLI reporting, UI

    Frequency: At most once per debounce interval (one per serve)

    Attributes:
        impact: Refined impact on the wrist clock
        face_angles: Racket face roll/pitch, None if uncalibrated or edge-on
        swing: Swing efficiency for the swing ending at the impact
    """
    impact: ImpactEvent
    face_angles: Optional[FaceAngles] = None
    swing: Optional[SwingEfficiency] = None


@dataclass(frozen=True)
class ApexDetectedEvent:
    """Published when the camera pipeline finds the toss apex.

    Published By: CameraPipeline
    Subscribed By: CameraPipeline (trophy pose), UI

    Frequency: At most once per apex cooldown (one per toss)

    Attributes:
        apex: Apex on the camera clock
    """
    apex: ApexEvent


@dataclass(frozen=True)
class ClockSyncedEvent:
    """Published after a clock sync run returns an offset.

    Published By: CameraPipeline

    Attributes:
        offset: Wrist-minus-camera offset; check ``offset.is_complete``
    """
    offset: ClockOffset


@dataclass(frozen=True)
class FusedImpactEvent:
    """Published when an impact pose has been fused.

    Published By: CameraPipeline
    Subscribed By: Scoring collaborator, CLI reporting

    Attributes:
        fused: Impact pose with provenance tag
    """
    fused: FusedImpact

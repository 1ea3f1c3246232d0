"""Event system for pipeline-wide event handling."""

from app.events.event_bus import EventBus
from app.events.event_types import ApexDetectedEvent, ClockSyncedEvent, FusedImpactEvent, ImpactDetectedEvent

__all__ = [
    "ApexDetectedEvent",
    "ClockSyncedEvent",
    "EventBus",
    "FusedImpactEvent",
    "ImpactDetectedEvent",
]

"""Cross-device clock synchronization."""

from sync.channel import LoopbackChannel, MessageChannel
from sync.clock import DeviceClock, SimulatedClock
from sync.clock_sync import ClockSyncCoordinator, ClockSyncResponder, SyncRound
from sync.tap_sync import SyncCorrection, TapSyncEvent, TapSyncRecorder

__all__ = [
    "ClockSyncCoordinator",
    "ClockSyncResponder",
    "DeviceClock",
    "LoopbackChannel",
    "MessageChannel",
    "SimulatedClock",
    "SyncCorrection",
    "SyncRound",
    "TapSyncEvent",
    "TapSyncRecorder",
]

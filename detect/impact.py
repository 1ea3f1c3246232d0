"""Racket impact detection from the wrist IMU stream."""

from __future__ import annotations

import time
from enum import Enum
from typing import Optional

from configs.settings import ImpactConfig
from contracts.types import ImpactEvent, TimedSample
from detect.sample_buffer import SampleBuffer
from log_config.logger import get_logger, log_performance

logger = get_logger(__name__)


class ImpactState(Enum):
    IDLE = "idle"
    ARMED = "armed"
    TRIGGERED = "triggered"
    COOLDOWN = "cooldown"


class ImpactDetector:
    """Debounced impact detector.

    Feed one sample per call to ``process``; it returns an ImpactEvent on the
    sample that triggers and None otherwise. The detector never raises on
    sample data: a trigger whose refinement window is empty is dropped and the
    detector stays armed.

    A trigger needs a swing in progress (peak angular velocity over the
    trailing ``gate_lookback_s`` at or above ``swing_gate_threshold``) and a
    jump in acceleration magnitude between consecutive samples above
    ``impact_shock_threshold``. The refined time is the buffered sample
    nearest ``lead_offset_s`` after the angular-velocity peak within
    ``refinement_window_s`` of the trigger.

    Args:
        config: Thresholds and timing
        buffer: Shared IMU history (created from ``config.buffer_capacity`` if omitted)
    """

    def __init__(self, config: Optional[ImpactConfig] = None, buffer: Optional[SampleBuffer] = None) -> None:
        self.config = config or ImpactConfig()
        self.buffer = buffer if buffer is not None else SampleBuffer(self.config.buffer_capacity)
        self._state = ImpactState.IDLE
        self._previous_accel: Optional[float] = None
        self._last_trigger_t: Optional[float] = None
        self.events_emitted = 0
        self.triggers_discarded = 0

    @property
    def state(self) -> ImpactState:
        return self._state

    @property
    def last_trigger_t_s(self) -> Optional[float]:
        return self._last_trigger_t

    def arm(self) -> None:
        if self._state is ImpactState.IDLE:
            self._state = ImpactState.ARMED
            logger.debug("Impact detector armed")

    def disarm(self) -> None:
        self._state = ImpactState.IDLE

    def reset(self) -> None:
        self._state = ImpactState.IDLE
        self._previous_accel = None
        self._last_trigger_t = None
        self.events_emitted = 0
        self.triggers_discarded = 0

    def process(self, sample: TimedSample) -> Optional[ImpactEvent]:
        """Buffer one sample and evaluate it for an impact."""
        if not self.buffer.append(sample):
            return None
        previous_accel = self._previous_accel
        self._previous_accel = sample.linear_acceleration

        if self._state is ImpactState.IDLE or previous_accel is None:
            return None

        if self._state is ImpactState.COOLDOWN:
            if not self._debounce_elapsed(sample.t_s):
                return None
            self._state = ImpactState.ARMED

        gate = self._gate_velocity(sample)
        if gate < self.config.swing_gate_threshold:
            return None

        jerk = abs(sample.linear_acceleration - previous_accel)
        if jerk <= self.config.impact_shock_threshold:
            return None

        self._state = ImpactState.TRIGGERED
        started = time.perf_counter()
        event = self._refine(sample.t_s, jerk)
        log_performance("impact refinement", (time.perf_counter() - started) * 1000.0, threshold_ms=2.0)

        if event is None:
            self.triggers_discarded += 1
            self._state = ImpactState.ARMED
            logger.debug(f"Impact trigger at {sample.t_s:.3f}s discarded: empty refinement window")
            return None

        self._last_trigger_t = sample.t_s
        self._state = ImpactState.COOLDOWN
        self.events_emitted += 1
        logger.info(
            f"Impact detected: trigger={sample.t_s:.3f}s refined={event.refined_t_s:.3f}s "
            f"gyro={event.peak_angular_velocity:.1f}rad/s jerk={jerk:.2f}G confidence={event.confidence:.2f}"
        )
        return event

    def _debounce_elapsed(self, t_s: float) -> bool:
        return self._last_trigger_t is None or t_s - self._last_trigger_t > self.config.debounce_s

    def _gate_velocity(self, sample: TimedSample) -> float:
        lookback = self.config.gate_lookback_s
        if lookback <= 0:
            return sample.angular_velocity
        recent = self.buffer.window(sample.t_s - lookback, sample.t_s)
        return max((s.angular_velocity for s in recent), default=sample.angular_velocity)

    def _refine(self, trigger_t: float, jerk: float) -> Optional[ImpactEvent]:
        window = self.config.refinement_window_s
        candidates = self.buffer.window(trigger_t - window, trigger_t + window)
        if not candidates:
            return None

        peak = max(candidates, key=lambda s: s.angular_velocity)
        best = self.buffer.nearest(peak.t_s + self.config.lead_offset_s)
        if best is None:
            return None

        threshold = self.config.impact_shock_threshold
        confidence = min(jerk / (2.0 * threshold), 1.0) if threshold > 0 else 1.0
        return ImpactEvent(
            raw_trigger_t_s=trigger_t,
            refined_t_s=best.t_s,
            orientation=best.orientation,
            confidence=confidence,
            peak_angular_velocity=peak.angular_velocity,
            jerk_proxy=jerk,
        )

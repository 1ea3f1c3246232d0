"""Ball trajectory estimation with a gravity-aware scalar Kalman filter."""

from __future__ import annotations

import math
import time
from collections import deque
from dataclasses import replace
from typing import Deque, List, Optional

from configs.settings import ApexConfig, BallConfig
from contracts.types import ApexEvent, BallDetection, FilterState
from log_config.logger import get_logger, log_performance
from track.apex import find_apex
from track.tracker import TrackState, Tracker

logger = get_logger(__name__)

PREDICTED_RADIUS_PX = 15.0


class BallTrajectoryEstimator(Tracker):
    """Filters noisy ball detections and finds the toss apex.

    Each axis carries independent scalar gains for position and velocity
    rather than a full covariance matrix. The vertical axis predicts under a
    constant downward acceleration in px/s^2 (image y grows downward).

    Not thread-safe; the camera pipeline serialises access.
    """

    def __init__(self, config: Optional[BallConfig] = None, apex_config: Optional[ApexConfig] = None) -> None:
        self.config = config or BallConfig()
        self.apex_config = apex_config or ApexConfig()
        self._state: Optional[FilterState] = None
        self._history: Deque[BallDetection] = deque(maxlen=self.config.history_size)
        self._last_apex_t: Optional[float] = None
        self.reseed_count = 0

    @property
    def state(self) -> Optional[FilterState]:
        return replace(self._state) if self._state is not None else None

    @property
    def is_tracking(self) -> bool:
        return self._state is not None

    @property
    def history(self) -> List[BallDetection]:
        return list(self._history)

    @property
    def last_apex_t_s(self) -> Optional[float]:
        return self._last_apex_t

    def recent(self, duration_s: float) -> List[BallDetection]:
        if not self._history:
            return []
        cutoff = self._history[-1].t_s - duration_s
        return [d for d in self._history if d.t_s >= cutoff]

    def snapshot(self) -> Optional[TrackState]:
        s = self._state
        if s is None:
            return None
        return TrackState(x=s.x, y=s.y, vx=s.vx, vy=s.vy, last_update_t_s=s.t_s, detection_count=len(self._history))

    def is_valid(self, detection: BallDetection) -> bool:
        cfg = self.config
        return detection.is_valid(cfg.min_confidence, cfg.min_radius_px, cfg.max_radius_px)

    def track(self, detection: Optional[BallDetection], t_s: float) -> Optional[BallDetection]:
        """Use a valid detection, otherwise fall back to a short-horizon prediction."""
        if detection is not None and self.is_valid(detection):
            self.update(detection)
            return detection
        return self.predict(t_s)

    def update(self, detection: BallDetection) -> FilterState:
        """Fold one detection into the filter and the apex history."""
        self._history.append(detection)
        state = self._state
        if state is None:
            self._state = self._seed(detection)
            return replace(self._state)

        dt = detection.t_s - state.t_s
        if not 0.0 < dt < self.config.max_reseed_gap_s:
            logger.debug(f"Re-seeding ball filter (dt={dt:.3f}s)")
            self.reseed_count += 1
            self._state = self._seed(detection)
            return replace(self._state)

        cfg = self.config
        g = cfg.gravity_px_s2
        q = cfg.process_noise
        r = cfg.measurement_noise
        rv = cfg.measurement_noise * cfg.velocity_noise_scale

        pred_x = state.x + state.vx * dt
        pred_y = state.y + state.vy * dt + 0.5 * g * dt * dt
        pred_vx = state.vx
        pred_vy = state.vy + g * dt

        state.var_x += state.var_vx * dt + q
        state.var_y += state.var_vy * dt + q
        state.var_vx += q
        state.var_vy += q

        innov_x = detection.x - pred_x
        innov_y = detection.y - pred_y

        kx = state.var_x / (state.var_x + r)
        ky = state.var_y / (state.var_y + r)
        kvx = state.var_vx / (state.var_vx + rv)
        kvy = state.var_vy / (state.var_vy + rv)

        state.x = pred_x + kx * innov_x
        state.y = pred_y + ky * innov_y
        state.vx = pred_vx + kvx * (innov_x / dt)
        state.vy = pred_vy + kvy * (innov_y / dt)
        state.t_s = detection.t_s

        state.var_x *= 1.0 - kx
        state.var_y *= 1.0 - ky
        state.var_vx *= 1.0 - kvx
        state.var_vy *= 1.0 - kvy
        return replace(state)

    def predict(self, t_s: float) -> Optional[BallDetection]:
        """Propagate the last state to ``t_s``; None past the horizon or off-image."""
        state = self._state
        if state is None:
            return None
        cfg = self.config
        dt = t_s - state.t_s
        if not 0.0 < dt < cfg.max_prediction_horizon_s:
            logger.debug(f"Track lost: {dt:.3f}s since last detection")
            return None

        x = state.x + state.vx * dt
        y = state.y + state.vy * dt + 0.5 * cfg.gravity_px_s2 * dt * dt
        image_size = self._history[-1].image_size if self._history else (1280, 720)
        if not (0.0 <= x <= image_size[0] and 0.0 <= y <= image_size[1]):
            return None

        confidence = (
            cfg.prediction_base_confidence
            * math.exp(-dt / cfg.prediction_decay_tau_s)
            * cfg.prediction_confidence_scale
        )
        return BallDetection(
            t_s=t_s,
            x=x,
            y=y,
            radius_px=PREDICTED_RADIUS_PX,
            confidence=confidence,
            image_size=image_size,
            predicted=True,
        )

    def detect_apex(self) -> Optional[ApexEvent]:
        """Look for the toss apex in the recent detections.

        At most one apex per ``cooldown_s``, measured from the last apex time
        to the newest detection.
        """
        cfg = self.apex_config
        if len(self._history) < cfg.min_history:
            return None
        last = self._history[-1]
        if self._last_apex_t is not None and last.t_s - self._last_apex_t <= cfg.cooldown_s:
            return None

        recent = list(self._history)[-cfg.window_size:]
        if len(recent) < cfg.min_history:
            return None

        started = time.perf_counter()
        apex = find_apex(recent, cfg)
        log_performance("apex search", (time.perf_counter() - started) * 1000.0, threshold_ms=2.0)
        if apex is None:
            return None

        self._last_apex_t = apex.t_s
        logger.info(
            f"Apex detected ({apex.method.value}): t={apex.t_s:.3f}s "
            f"pos=({apex.x:.0f}, {apex.y:.0f}) confidence={apex.confidence:.2f}"
        )
        return apex

    def reset(self) -> None:
        self._state = None
        self._history.clear()
        self._last_apex_t = None
        self.reseed_count = 0
        logger.debug("Ball estimator reset")

    def _seed(self, detection: BallDetection) -> FilterState:
        cfg = self.config
        return FilterState(
            x=detection.x,
            y=detection.y,
            vx=0.0,
            vy=0.0,
            t_s=detection.t_s,
            var_x=cfg.initial_position_var,
            var_y=cfg.initial_position_var,
            var_vx=cfg.initial_velocity_var,
            var_vy=cfg.initial_velocity_var,
        )

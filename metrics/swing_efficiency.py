"""Swing efficiency: where in the swing the angular acceleration peaks.

``r = (t_peak - t_start) / (t_end - t_start)``. A late peak (r near 1) means
the racket head is still accelerating into contact.
"""

from __future__ import annotations

from typing import Iterable, Optional

from configs.settings import SwingConfig
from contracts.types import SwingEfficiency, TimedSample
from log_config.logger import get_logger

logger = get_logger(__name__)

BAND_EXCELLENT = "excellent"
BAND_GOOD = "good"
BAND_EARLY_PEAK = "early_peak"


class SwingEfficiencyAnalyzer:
    def __init__(self, config: Optional[SwingConfig] = None) -> None:
        self.config = config or SwingConfig()

    def band(self, r: float) -> str:
        if r >= self.config.excellent_band:
            return BAND_EXCELLENT
        if r >= self.config.good_band:
            return BAND_GOOD
        return BAND_EARLY_PEAK

    def find_start(self, samples: Iterable[TimedSample], impact_t_s: float) -> tuple:
        """Most recent static sample in the ready-stance window.

        Returns:
            (t_start, found) where ``found`` is False when the default was used
        """
        cfg = self.config
        begin = impact_t_s - cfg.start_search_begin_s
        end = impact_t_s - cfg.start_search_end_s
        t_start = None
        for sample in samples:
            if sample.t_s > end:
                break
            if sample.t_s >= begin and sample.angular_velocity <= cfg.static_threshold:
                t_start = sample.t_s
        if t_start is None:
            return impact_t_s - cfg.default_start_s, False
        return t_start, True

    def analyze(self, samples: Iterable[TimedSample], impact_t_s: float) -> SwingEfficiency:
        """Score the swing ending at ``impact_t_s``.

        Args:
            samples: Time-ordered IMU history (e.g. a SampleBuffer)
            impact_t_s: Refined impact time on the same clock
        """
        history = list(samples)
        t_start, from_static = self.find_start(history, impact_t_s)
        t_end = impact_t_s

        t_peak = t_start
        max_accel = 0.0
        previous: Optional[TimedSample] = None
        for sample in history:
            if sample.t_s < t_start:
                continue
            if sample.t_s > t_end:
                break
            if previous is not None:
                dt = sample.t_s - previous.t_s
                if dt > 0:
                    accel = (sample.angular_velocity - previous.angular_velocity) / dt
                    if accel > max_accel:
                        max_accel = accel
                        t_peak = sample.t_s
            previous = sample

        total = t_end - t_start
        r = (t_peak - t_start) / total if total > 0 else 0.0
        r = min(max(r, 0.0), 1.0)
        result = SwingEfficiency(
            r=r,
            t_start_s=t_start,
            t_peak_s=t_peak,
            t_end_s=t_end,
            peak_angular_accel=max_accel,
            start_from_static=from_static,
            band=self.band(r),
        )
        logger.info(
            f"Swing efficiency r={r:.3f} ({result.band}): duration {total:.2f}s, "
            f"peak accel {max_accel:.1f}rad/s^2 at {t_peak:.3f}s"
        )
        return result

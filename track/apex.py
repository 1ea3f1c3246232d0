"""Toss-apex search over recent ball detections.

Vertical velocity comes from 3-point central differences smoothed by a running
median of 3. An apex is a velocity pattern up -> near zero -> down with enough
downward acceleration between the up and down sides. At 60 fps one pixel of
position noise is tens of px/s of velocity noise, so both sides are averaged
and the zero may fall between two samples. The apex time is then refined to
sub-frame precision by a least-squares parabola through the window.
"""

from __future__ import annotations

import math
from dataclasses import dataclass
from typing import List, Optional, Sequence

import numpy as np

from configs.settings import ApexConfig, OutlierConfig
from contracts.types import ApexEvent, BallDetection, RefinementMethod
from log_config.logger import get_logger
from track.outliers import filter_outliers

logger = get_logger(__name__)

MIN_DT_S = 1e-3
MIN_DETERMINANT = 1e-9


@dataclass(frozen=True)
class VelocitySample:
    index: int
    vy: float
    t_s: float


@dataclass(frozen=True)
class ParabolaFit:
    """``y = a*(t - t0)**2 + b*(t - t0) + c``"""
    a: float
    b: float
    c: float
    t0: float

    @property
    def vertex_offset_s(self) -> float:
        return -self.b / (2.0 * self.a)

    def y_at_offset(self, dt: float) -> float:
        return self.a * dt * dt + self.b * dt + self.c


def vertical_velocities(detections: Sequence[BallDetection]) -> List[VelocitySample]:
    """Central-difference vertical velocity at every interior detection, median-smoothed."""
    raw: List[VelocitySample] = []
    for i in range(1, len(detections) - 1):
        before, after = detections[i - 1], detections[i + 1]
        dt = max(after.t_s - before.t_s, MIN_DT_S)
        raw.append(VelocitySample(i, (after.y - before.y) / dt, detections[i].t_s))
    return median_smooth(raw)


def median_smooth(velocities: List[VelocitySample]) -> List[VelocitySample]:
    """Running median of 3; the two end values are kept as-is."""
    if len(velocities) < 3:
        return list(velocities)
    smoothed = [velocities[0]]
    for i in range(1, len(velocities) - 1):
        window = sorted(v.vy for v in velocities[i - 1:i + 2])
        smoothed.append(VelocitySample(velocities[i].index, window[1], velocities[i].t_s))
    smoothed.append(velocities[-1])
    return smoothed


def det3(a: float, b: float, c: float, d: float, e: float, f: float, g: float, h: float, i: float) -> float:
    return a * (e * i - f * h) - b * (d * i - f * g) + c * (d * h - e * g)


def fit_parabola(detections: Sequence[BallDetection]) -> Optional[ParabolaFit]:
    """Least-squares ``y(t)`` parabola by Cramer's rule on the normal equations.

    Time is measured from the first detection to keep the sums well scaled.
    Returns None when the system is singular.
    """
    if len(detections) < 3:
        return None
    t0 = detections[0].t_s
    t = np.array([d.t_s for d in detections], dtype=float) - t0
    y = np.array([d.y for d in detections], dtype=float)

    s0, s1, s2, s3, s4 = (float(np.sum(t ** k)) for k in range(5))
    ty0 = float(np.sum(y))
    ty1 = float(np.sum(t * y))
    ty2 = float(np.sum(t * t * y))

    d = det3(s4, s3, s2, s3, s2, s1, s2, s1, s0)
    if abs(d) <= MIN_DETERMINANT:
        return None
    a = det3(ty2, s3, s2, ty1, s2, s1, ty0, s1, s0) / d
    b = det3(s4, ty2, s2, s3, ty1, s1, s2, ty0, s0) / d
    c = det3(s4, s3, ty2, s3, s2, ty1, s2, s1, ty0) / d
    return ParabolaFit(a=a, b=b, c=c, t0=t0)


def refine_apex_by_parabola(
    detections: Sequence[BallDetection],
    config: Optional[ApexConfig] = None,
) -> Optional[ApexEvent]:
    """Sub-frame apex from a parabola fit, or None if the fit is rejected."""
    cfg = config or ApexConfig()
    if len(detections) < cfg.min_fit_points:
        return None
    fit = fit_parabola(detections)
    if fit is None or abs(fit.a) <= cfg.min_curvature:
        logger.debug("Parabola fit rejected: singular or flat")
        return None

    t_apex = fit.vertex_offset_s
    span = detections[-1].t_s - fit.t0
    if not math.isfinite(t_apex) or t_apex < -cfg.vertex_margin_s or t_apex > span + cfg.vertex_margin_s:
        logger.debug(f"Parabola vertex {t_apex:.3f}s outside sampled span {span:.3f}s")
        return None

    x_apex = detections[-1].x
    for before, after in zip(detections, detections[1:]):
        tb, ta = before.t_s - fit.t0, after.t_s - fit.t0
        if tb <= t_apex <= ta:
            if ta > tb:
                r = (t_apex - tb) / (ta - tb)
                x_apex = before.x * (1.0 - r) + after.x * r
            break

    return ApexEvent(
        t_s=fit.t0 + t_apex,
        x=x_apex,
        y=fit.y_at_offset(t_apex),
        confidence=detections[-1].confidence,
        method=RefinementMethod.PARABOLIC,
    )


def _is_turning_point(velocities: Sequence[VelocitySample], i: int, cfg: ApexConfig) -> bool:
    """Up -> zero -> down around ``velocities[i]``.

    The zero is either the sample itself or a sign change from the previous
    sample. Up and down are judged on the means of up to ``pattern_samples``
    velocities on each side.
    """
    curr = velocities[i]
    if not (abs(curr.vy) < cfg.near_zero_velocity or velocities[i - 1].vy < 0.0 <= curr.vy):
        return False

    before = velocities[max(0, i - cfg.pattern_samples):i]
    after = velocities[i + 1:i + 1 + cfg.pattern_samples]
    if not before or not after:
        return False
    up = float(np.mean([v.vy for v in before]))
    down = float(np.mean([v.vy for v in after]))
    if up >= -cfg.up_velocity or down <= cfg.down_velocity:
        return False

    dt = float(np.mean([v.t_s for v in after]) - np.mean([v.t_s for v in before]))
    return (down - up) / max(dt, MIN_DT_S) > cfg.min_down_accel


def find_apex(detections: Sequence[BallDetection], config: Optional[ApexConfig] = None) -> Optional[ApexEvent]:
    """Search a detection window for the up -> zero -> down velocity pattern."""
    cfg = config or ApexConfig()
    velocities = vertical_velocities(detections)
    if len(velocities) < cfg.min_velocities:
        return None

    # The two end velocities are unsmoothed.
    smoothed = velocities[1:-1]
    for i in range(1, len(smoothed) - 1):
        if not _is_turning_point(smoothed, i, cfg):
            continue

        refined = refine_apex_by_parabola(detections, cfg)
        if refined is not None:
            return refined

        apex = detections[smoothed[i].index]
        return ApexEvent(
            t_s=apex.t_s,
            x=apex.x,
            y=apex.y,
            confidence=apex.confidence,
            method=RefinementMethod.DISCRETE,
        )
    return None


def apex_from_history(
    detections: Sequence[BallDetection],
    outlier_config: Optional[OutlierConfig] = None,
) -> Optional[ApexEvent]:
    """Highest (minimum-y) detection after outlier filtering."""
    filtered = filter_outliers(detections, outlier_config)
    if not filtered:
        return None
    apex = min(filtered, key=lambda d: d.y)
    logger.info(f"History apex: t={apex.t_s:.3f}s y={apex.y:.0f}px from {len(filtered)} detections")
    return ApexEvent(
        t_s=apex.t_s,
        x=apex.x,
        y=apex.y,
        confidence=apex.confidence,
        method=RefinementMethod.DISCRETE,
    )

"""Pelvis rise around the trophy pose."""

from __future__ import annotations

import math
from dataclasses import dataclass
from typing import Iterable, Optional, Tuple

from configs.settings import PelvisConfig
from contracts.types import PoseSample
from log_config.logger import get_logger

logger = get_logger(__name__)


@dataclass(frozen=True)
class PelvisRise:
    rise_px: float
    rise_m: Optional[float]
    base_pose: PoseSample
    top_pose: PoseSample
    base_hip: Tuple[float, float]
    top_hip: Tuple[float, float]


def pixel_to_meter_scale(pose: PoseSample, config: Optional[PelvisConfig] = None) -> Optional[float]:
    """Metres per pixel from the right hip-to-ankle length."""
    cfg = config or PelvisConfig()
    hip = pose.joints.get("right_hip")
    ankle = pose.joints.get("right_ankle")
    if hip is None or ankle is None:
        return None
    length_px = math.hypot(hip[0] - ankle[0], hip[1] - ankle[1])
    if length_px <= 0:
        return None
    return cfg.player_height_m * cfg.hip_to_ankle_ratio / length_px


def compute_pelvis_rise(
    poses: Iterable[PoseSample],
    trophy_t_s: float,
    config: Optional[PelvisConfig] = None,
) -> Optional[PelvisRise]:
    """Hip-centre rise from its lowest to its highest point near the trophy pose.

    Image y grows downward, so the lowest hip has the largest y. Returns None
    when no pose in the window has both hips.
    """
    cfg = config or PelvisConfig()
    start = trophy_t_s - cfg.window_before_s
    end = trophy_t_s + cfg.window_after_s

    lowest = highest = None
    lowest_hip = highest_hip = None
    for pose in poses:
        if pose.t_s < start or pose.t_s > end:
            continue
        hip = pose.hip_center()
        if hip is None:
            continue
        if lowest_hip is None or hip[1] > lowest_hip[1]:
            lowest, lowest_hip = pose, hip
        if highest_hip is None or hip[1] < highest_hip[1]:
            highest, highest_hip = pose, hip

    if lowest is None or highest is None:
        logger.debug(f"No hip positions in [{start:.2f}, {end:.2f}]s")
        return None

    rise_px = max(0.0, lowest_hip[1] - highest_hip[1])
    scale = pixel_to_meter_scale(lowest, cfg)
    rise_m = rise_px * scale if scale is not None else None
    logger.info(f"Pelvis rise: {rise_px:.1f}px" + (f" ({rise_m:.3f}m)" if rise_m is not None else ""))
    return PelvisRise(
        rise_px=rise_px,
        rise_m=rise_m,
        base_pose=lowest,
        top_pose=highest,
        base_hip=lowest_hip,
        top_hip=highest_hip,
    )

"""Synthetic ball toss and player pose tracks for the camera pipeline."""

from __future__ import annotations

from typing import Callable, Dict, List, Optional, Tuple

import numpy as np

from contracts import BallDetection, PoseSample


def simulate_toss(
    apex_t_s: float = 2.0,
    apex_x: float = 700.0,
    apex_y: float = 150.0,
    gravity_px_s2: float = 2000.0,
    fps: float = 60.0,
    before_s: float = 0.45,
    after_s: float = 0.3,
    x_velocity: float = 0.0,
    noise_px: float = 0.0,
    seed: Optional[int] = None,
    radius_px: float = 12.0,
    confidence: float = 0.9,
    image_size: Tuple[int, int] = (1280, 720),
    clock: Optional[Callable[[float], float]] = None,
) -> List[BallDetection]:
    """Ball detections along a vertical parabola with its vertex on a frame.

    Image y grows downward, so ``y = apex_y + g/2 * (t - apex)^2``.
    """
    to_device = clock or (lambda t: t)
    rng = np.random.default_rng(seed)
    first = -int(round(before_s * fps))
    last = int(round(after_s * fps))

    detections: List[BallDetection] = []
    for k in range(first, last + 1):
        dt = k / fps
        x = apex_x + x_velocity * dt
        y = apex_y + 0.5 * gravity_px_s2 * dt * dt
        if noise_px > 0:
            x += rng.normal(0.0, noise_px)
            y += rng.normal(0.0, noise_px)
        detections.append(
            BallDetection(
                t_s=to_device(apex_t_s + dt),
                x=float(x),
                y=float(y),
                radius_px=radius_px,
                confidence=confidence,
                image_size=image_size,
            )
        )
    return detections


def hip_height_px(t: float, trophy_t_s: float, impact_t_s: float) -> float:
    """Hip-centre y: knees bend into the trophy pose, then drive up to impact."""
    standing, crouched, extended = 500.0, 530.0, 470.0
    bend_start = trophy_t_s - 0.5
    if t <= bend_start:
        return standing
    if t <= trophy_t_s:
        return standing + (crouched - standing) * (t - bend_start) / 0.5
    if t <= impact_t_s:
        return crouched + (extended - crouched) * (t - trophy_t_s) / (impact_t_s - trophy_t_s)
    return extended


def simulate_poses(
    start_s: float,
    end_s: float,
    trophy_t_s: float,
    impact_t_s: float,
    fps: float = 30.0,
    clock: Optional[Callable[[float], float]] = None,
) -> List[PoseSample]:
    to_device = clock or (lambda t: t)
    count = int(round((end_s - start_s) * fps)) + 1
    poses: List[PoseSample] = []
    for i in range(count):
        t = round(start_s + i / fps, 9)
        hip_y = hip_height_px(t, trophy_t_s, impact_t_s)
        joints: Dict[str, Tuple[float, float]] = {
            "left_hip": (620.0, hip_y),
            "right_hip": (680.0, hip_y),
            "left_ankle": (610.0, 700.0),
            "right_ankle": (690.0, 700.0),
            "neck": (650.0, hip_y - 200.0),
            "right_shoulder": (690.0, hip_y - 180.0),
            "right_elbow": (700.0, hip_y - 250.0),
            "right_wrist": (720.0, hip_y - 320.0),
            "left_shoulder": (610.0, hip_y - 180.0),
            "left_elbow": (590.0, hip_y - 250.0),
            "left_wrist": (585.0, hip_y - 330.0),
        }
        poses.append(
            PoseSample(
                t_s=to_device(t),
                joints=joints,
                confidences={name: 0.9 for name in joints},
            )
        )
    return poses

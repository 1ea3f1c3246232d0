from __future__ import annotations

import math
from typing import List, Optional, Sequence

from configs.settings import OutlierConfig
from contracts.types import BallDetection
from log_config.logger import get_logger

logger = get_logger(__name__)


def filter_outliers(
    detections: Sequence[BallDetection], config: Optional[OutlierConfig] = None
) -> List[BallDetection]:
    """Drop detections that cannot belong to the toss.

    Excludes the left part of the frame, the lower part of the frame, and any
    detection that jumped too far from the previous one in time order. Two or
    fewer detections are returned unchanged.
    """
    cfg = config or OutlierConfig()
    ordered = sorted(detections, key=lambda d: d.t_s)
    if len(ordered) <= 2:
        return ordered

    output: List[BallDetection] = []
    for index, det in enumerate(ordered):
        width, height = det.image_size
        if det.x < width * cfg.left_exclusion_fraction:
            logger.debug(f"Outlier (left zone): t={det.t_s:.2f}s x={det.x:.0f}")
            continue
        if det.y > height * (1.0 - cfg.lower_exclusion_fraction):
            logger.debug(f"Outlier (lower zone): t={det.t_s:.2f}s y={det.y:.0f}")
            continue
        if index > 0:
            prev = ordered[index - 1]
            distance = math.hypot(det.x - prev.x, det.y - prev.y)
            if distance > cfg.max_jump_px:
                logger.debug(f"Outlier (jump {distance:.0f}px): t={det.t_s:.2f}s")
                continue
        output.append(det)

    logger.debug(f"Outlier filter: {len(ordered)} -> {len(output)} detections")
    return output

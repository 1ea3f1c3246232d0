"""Temporal alignment of the wrist impact with the camera pose history.

The impact time arrives on the wrist clock. When a complete clock offset is
available it is converted onto the camera clock and the nearest pose is taken
as the impact pose. Otherwise the engine degrades along a fixed chain and tags
the result with how it was derived:

    synced              complete offset and a wrist impact
    fallback-heuristic  trophy time + fixed offset
    vision-only         most recent pose
"""

from __future__ import annotations

from typing import Any, Dict, Optional, Sequence, Union

from configs.settings import FusionConfig
from contracts.types import ClockOffset, FusedImpact, ImpactEvent, ImpactReport, PoseSample, Provenance
from log_config.logger import get_logger

logger = get_logger(__name__)

WristImpact = Union[ImpactEvent, ImpactReport]


def nearest_pose(poses: Sequence[PoseSample], t_s: float) -> Optional[PoseSample]:
    """Pose whose timestamp is closest to ``t_s``; the earlier one on ties."""
    best: Optional[PoseSample] = None
    best_gap = float("inf")
    for pose in poses:
        gap = abs(pose.t_s - t_s)
        if gap < best_gap:
            best, best_gap = pose, gap
    return best


class EventFusionEngine:
    """Produces one FusedImpact per analysis cycle. Stateless apart from config."""

    def __init__(self, config: Optional[FusionConfig] = None) -> None:
        self.config = config or FusionConfig()

    def fuse(
        self,
        impact: Optional[WristImpact],
        clock_offset: Optional[ClockOffset],
        pose_history: Sequence[PoseSample],
        trophy_t_s: Optional[float] = None,
    ) -> FusedImpact:
        """Select the impact pose.

        Args:
            impact: Wrist impact (event or decoded report), wrist clock
            clock_offset: Result of clock sync, if any
            pose_history: Camera poses, camera clock, oldest first
            trophy_t_s: Trophy pose time on the camera clock, if known
        """
        diagnostics: Dict[str, Any] = {"pose_count": len(pose_history)}

        if impact is not None and clock_offset is not None and clock_offset.is_complete:
            target = clock_offset.convert(impact.refined_t_s)
            diagnostics.update(
                wrist_impact_t_s=impact.refined_t_s,
                offset_s=clock_offset.offset_s,
                round_trip_s=clock_offset.round_trip_s,
            )
            return self._select(Provenance.SYNCED, target, pose_history, diagnostics)

        if impact is None:
            diagnostics["fallback_reason"] = "no wrist impact"
        elif clock_offset is None:
            diagnostics["fallback_reason"] = "clock not synced"
        else:
            diagnostics["fallback_reason"] = (
                f"clock sync incomplete (rtt {clock_offset.round_trip_s * 1000:.0f}ms)"
            )

        if trophy_t_s is not None:
            target = trophy_t_s + self.config.fallback_offset_s
            diagnostics["trophy_t_s"] = trophy_t_s
            return self._select(Provenance.FALLBACK_HEURISTIC, target, pose_history, diagnostics)

        pose = pose_history[-1] if pose_history else None
        if pose is None:
            logger.warning("Fusion has no pose history; impact pose unavailable")
        fused = FusedImpact(
            pose=pose,
            provenance=Provenance.VISION_ONLY,
            target_t_s=pose.t_s if pose is not None else None,
            diagnostics=diagnostics,
        )
        logger.info(f"Fused impact ({fused.provenance.value}): {diagnostics['fallback_reason']}")
        return fused

    def _select(
        self,
        provenance: Provenance,
        target_t_s: float,
        pose_history: Sequence[PoseSample],
        diagnostics: Dict[str, Any],
    ) -> FusedImpact:
        pose = nearest_pose(pose_history, target_t_s)
        diagnostics["target_t_s"] = target_t_s
        if pose is not None:
            diagnostics["pose_t_s"] = pose.t_s
            diagnostics["pose_gap_s"] = abs(pose.t_s - target_t_s)
        else:
            logger.warning(f"No pose available near {target_t_s:.3f}s")
        logger.info(
            f"Fused impact ({provenance.value}): target={target_t_s:.3f}s "
            f"pose={'none' if pose is None else f'{pose.t_s:.3f}s'}"
        )
        return FusedImpact(pose=pose, provenance=provenance, target_t_s=target_t_s, diagnostics=diagnostics)

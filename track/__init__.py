"""Ball tracking module."""

from .apex import apex_from_history, find_apex, fit_parabola, refine_apex_by_parabola, vertical_velocities
from .ball_tracker import BallTrajectoryEstimator
from .outliers import filter_outliers
from .tracker import TrackState, Tracker

__all__ = [
    "BallTrajectoryEstimator",
    "TrackState",
    "Tracker",
    "apex_from_history",
    "filter_outliers",
    "find_apex",
    "fit_parabola",
    "refine_apex_by_parabola",
    "vertical_velocities",
]

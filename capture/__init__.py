"""Synthetic sensor sources."""

from .simulated_imu import ServeProfile, simulate_serve_imu
from .simulated_toss import simulate_poses, simulate_toss

__all__ = ["ServeProfile", "simulate_poses", "simulate_serve_imu", "simulate_toss"]

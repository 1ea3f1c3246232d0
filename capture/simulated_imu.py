"""Synthetic wrist IMU stream for a single serve."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Callable, List, Optional, Union

import numpy as np

from contracts import TimedSample

OrientationSource = Union[np.ndarray, Callable[[float], np.ndarray]]


@dataclass(frozen=True)
class ServeProfile:
    """Shape of the simulated swing, in true seconds.

    Angular velocity is zero before ``swing_start_s``, grows quadratically to
    ``peak_velocity`` at ``peak_t_s`` (so angular acceleration is largest
    there), rises slowly by ``late_gain`` rad/s^2 until ``impact_t_s``, then
    decays to zero over ``follow_through_s``. Acceleration magnitude is
    ``idle_accel_g`` except for ``spike_s`` after impact.
    """
    swing_start_s: float = 0.0
    peak_t_s: float = 2.4
    impact_t_s: float = 2.5
    peak_velocity: float = 15.0
    late_gain: float = 1.0
    follow_through_s: float = 0.5
    idle_accel_g: float = 0.5
    impact_accel_g: float = 5.0
    spike_s: float = 0.01

    def angular_velocity(self, t: float) -> float:
        if t <= self.swing_start_s:
            return 0.0
        if t <= self.peak_t_s:
            u = (t - self.swing_start_s) / (self.peak_t_s - self.swing_start_s)
            return self.peak_velocity * u * u
        at_impact = self.peak_velocity + self.late_gain * (self.impact_t_s - self.peak_t_s)
        if t <= self.impact_t_s:
            return self.peak_velocity + self.late_gain * (t - self.peak_t_s)
        if self.follow_through_s <= 0:
            return 0.0
        return max(0.0, at_impact * (1.0 - (t - self.impact_t_s) / self.follow_through_s))

    def linear_acceleration(self, t: float) -> float:
        if self.impact_t_s - 1e-9 <= t < self.impact_t_s + self.spike_s - 1e-9:
            return self.impact_accel_g
        return self.idle_accel_g


def simulate_serve_imu(
    profile: Optional[ServeProfile] = None,
    start_s: float = -1.0,
    end_s: float = 3.0,
    rate_hz: float = 200.0,
    clock: Optional[Callable[[float], float]] = None,
    orientation: Optional[OrientationSource] = None,
    noise_std: float = 0.0,
    seed: Optional[int] = None,
) -> List[TimedSample]:
    """Sample a serve at a fixed rate.

    Args:
        profile: Swing shape (defaults to the reference serve)
        start_s: First sample, true time
        end_s: Last sample, true time
        rate_hz: IMU rate
        clock: Maps true time to device time (e.g. ``DeviceClock.at``)
        orientation: Fixed attitude or a function of true time
        noise_std: Gaussian noise on both magnitudes
        seed: Seed for the noise generator
    """
    profile = profile or ServeProfile()
    to_device = clock or (lambda t: t)
    rng = np.random.default_rng(seed)
    count = int(round((end_s - start_s) * rate_hz)) + 1

    samples: List[TimedSample] = []
    for i in range(count):
        t = round(start_s + i / rate_hz, 9)
        omega = profile.angular_velocity(t)
        accel = profile.linear_acceleration(t)
        if noise_std > 0:
            omega = abs(omega + rng.normal(0.0, noise_std))
            accel = abs(accel + rng.normal(0.0, noise_std))
        if orientation is None:
            attitude = np.eye(3)
        elif callable(orientation):
            attitude = orientation(t)
        else:
            attitude = orientation
        samples.append(
            TimedSample(
                t_s=to_device(t),
                orientation=attitude,
                angular_velocity=float(omega),
                linear_acceleration=float(accel),
            )
        )
    return samples

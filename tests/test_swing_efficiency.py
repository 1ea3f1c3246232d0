import numpy as np
import pytest

from capture import ServeProfile, simulate_serve_imu
from configs.settings import SwingConfig
from contracts import TimedSample
from metrics import SwingEfficiencyAnalyzer
from metrics.swing_efficiency import BAND_EARLY_PEAK, BAND_EXCELLENT, BAND_GOOD


def history_until(samples, t_end):
    return [s for s in samples if s.t_s <= t_end + 1e-9]


def test_late_peak_scores_near_one() -> None:
    samples = history_until(simulate_serve_imu(), 2.5)

    swing = SwingEfficiencyAnalyzer().analyze(samples, 2.5)

    assert swing.start_from_static
    assert swing.t_start_s == pytest.approx(0.195)
    assert swing.t_peak_s == pytest.approx(2.4)
    assert swing.r == pytest.approx(2.205 / 2.305)
    assert swing.band == BAND_EXCELLENT


def test_early_peak() -> None:
    profile = ServeProfile(peak_t_s=1.0, late_gain=0.0)
    samples = history_until(simulate_serve_imu(profile), 2.5)

    swing = SwingEfficiencyAnalyzer().analyze(samples, 2.5)

    assert swing.t_peak_s == pytest.approx(1.0)
    assert swing.r < 0.75
    assert swing.band == BAND_EARLY_PEAK


def test_default_start_without_static_sample() -> None:
    samples = [
        TimedSample(t_s=round(-1.0 + i / 200.0, 9), orientation=np.eye(3), angular_velocity=5.0, linear_acceleration=0.5)
        for i in range(701)
    ]

    swing = SwingEfficiencyAnalyzer().analyze(samples, 2.5)

    assert not swing.start_from_static
    assert swing.t_start_s == pytest.approx(0.0)
    assert swing.r == 0.0
    assert swing.peak_angular_accel == 0.0


def test_bands() -> None:
    analyzer = SwingEfficiencyAnalyzer(SwingConfig())

    assert analyzer.band(0.95) == BAND_EXCELLENT
    assert analyzer.band(0.90) == BAND_EXCELLENT
    assert analyzer.band(0.80) == BAND_GOOD
    assert analyzer.band(0.5) == BAND_EARLY_PEAK


def test_r_is_clamped() -> None:
    samples = history_until(simulate_serve_imu(), 2.5)
    swing = SwingEfficiencyAnalyzer().analyze(samples, 2.5)

    assert 0.0 <= swing.r <= 1.0

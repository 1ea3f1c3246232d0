"""End-to-end serve: both pipelines on skewed clocks over a loopback channel."""

import pytest

from analysis.simulation import run_simulation
from app.events import ApexDetectedEvent, ClockSyncedEvent, EventBus, FusedImpactEvent, ImpactDetectedEvent
from contracts import Provenance, RefinementMethod

SKEW_S = 3.7


@pytest.fixture(scope="module")
def default_run():
    return run_simulation(skew_s=SKEW_S)


def test_clock_offset_recovers_skew(default_run) -> None:
    offset = default_run.offset

    assert offset.is_complete
    assert offset.offset_s == pytest.approx(SKEW_S, abs=1e-6)


def test_impact_aligns_with_camera_timeline(default_run) -> None:
    fused = default_run.analysis.fused

    assert fused.provenance is Provenance.SYNCED
    assert fused.target_t_s == pytest.approx(default_run.true_impact_camera_t_s, abs=0.02)
    assert abs(fused.pose.t_s - default_run.true_impact_camera_t_s) <= 1 / 60.0


def test_wrist_metrics_reach_camera(default_run) -> None:
    report = default_run.analysis.impact_report

    assert report is not None
    assert report.swing_r == pytest.approx(0.96, abs=0.01)
    assert report.roll_deg == pytest.approx(8.0, abs=1e-6)
    assert report.pitch_deg == pytest.approx(-8.0, abs=1e-6)
    assert default_run.swing.band == "excellent"


def test_toss_apex_trophy_and_pelvis(default_run) -> None:
    analysis = default_run.analysis

    assert analysis.apex.method is RefinementMethod.PARABOLIC
    assert analysis.apex.t_s == pytest.approx(default_run.true_apex_camera_t_s, abs=1e-6)
    assert analysis.trophy.time_gap_s <= 1 / 60.0
    assert 55.0 < analysis.pelvis.rise_px <= 60.0


def test_scoring_inputs_complete(default_run) -> None:
    resolved = default_run.analysis.scoring.resolved()

    assert resolved.is_complete
    assert resolved.roll_deg == pytest.approx(8.0, abs=1e-6)


def test_summary_is_plain_data(default_run) -> None:
    summary = default_run.summary()

    assert summary["fused"]["provenance"] == "synced"
    assert summary["apex"]["method"] == "parabolic"
    assert summary["flags"] == []


def test_asymmetric_link_stays_within_half_round_trip() -> None:
    result = run_simulation(skew_s=SKEW_S, one_way_delay_s=0.002, return_delay_s=0.014)

    assert result.offset.is_complete
    assert abs(result.offset.offset_s - SKEW_S) <= result.offset.round_trip_s / 2 + 1e-9
    assert result.analysis.fused.provenance is Provenance.SYNCED
    assert abs(result.analysis.fused.pose.t_s - result.true_impact_camera_t_s) <= 1 / 60.0


def test_unreachable_watch_falls_back_to_trophy_heuristic() -> None:
    result = run_simulation(skew_s=SKEW_S, wrist_reachable=False)

    fused = result.analysis.fused
    assert result.offset is None
    assert fused.provenance is Provenance.FALLBACK_HEURISTIC
    assert fused.target_t_s == pytest.approx(result.analysis.trophy.t_s + 0.4)
    assert "impact_fallback-heuristic" in result.analysis.scoring.resolved().flags


def test_missing_impact_report_falls_back() -> None:
    result = run_simulation(skew_s=SKEW_S, send_impact=False)

    assert result.offset.is_complete
    assert result.wrist_impact is not None
    assert result.analysis.impact_report is None
    assert result.analysis.fused.provenance is Provenance.FALLBACK_HEURISTIC


def test_noisy_ball_track_still_syncs() -> None:
    result = run_simulation(skew_s=SKEW_S, ball_noise_px=0.1, seed=11)

    assert result.analysis.fused.provenance is Provenance.SYNCED
    assert result.analysis.apex.t_s == pytest.approx(result.true_apex_camera_t_s, abs=0.005)


def test_events_published_once_each() -> None:
    bus = EventBus()
    counts = {}
    for event_type in (ClockSyncedEvent, ImpactDetectedEvent, ApexDetectedEvent, FusedImpactEvent):
        bus.subscribe(event_type, lambda event, name=event_type.__name__: counts.update({name: counts.get(name, 0) + 1}))

    run_simulation(skew_s=SKEW_S, event_bus=bus)

    assert counts == {
        "ClockSyncedEvent": 1,
        "ImpactDetectedEvent": 1,
        "ApexDetectedEvent": 1,
        "FusedImpactEvent": 1,
    }

"""Camera pipeline: sync, apex, pose history and fusion."""

import pytest

from app.events import ApexDetectedEvent, ClockSyncedEvent, EventBus, FusedImpactEvent
from app.pipeline.camera_pipeline import CameraPipeline
from capture import simulate_poses, simulate_toss
from contracts import ImpactReport, PoseSample, Provenance, RefinementMethod
from contracts.messages import encode_impact_report, encode_sync_request
from contracts.versioning import make_envelope
from sync import ClockSyncResponder, DeviceClock, LoopbackChannel, SimulatedClock

SKEW_S = 4.0
APEX_T = 20.0
IMPACT_T = 20.46


@pytest.fixture
def world() -> SimulatedClock:
    return SimulatedClock(start_s=10.0)


@pytest.fixture
def bus() -> EventBus:
    return EventBus()


@pytest.fixture
def setup(world, bus):
    camera_end, wrist_end = LoopbackChannel.pair(world, 0.004, 0.004)
    ClockSyncResponder(DeviceClock(world, offset_s=SKEW_S)).attach(wrist_end)
    pipeline = CameraPipeline(camera_end, clock=DeviceClock(world), event_bus=bus)
    return pipeline, camera_end, wrist_end


def feed_serve(pipeline: CameraPipeline) -> None:
    for pose in simulate_poses(start_s=18.0, end_s=21.0, trophy_t_s=APEX_T, impact_t_s=IMPACT_T):
        pipeline.add_pose(pose)
    for ball in simulate_toss(apex_t_s=APEX_T):
        pipeline.process_frame(ball.t_s, ball=ball)


def test_sync_clocks_publishes_offset(setup, bus) -> None:
    pipeline, _, _ = setup
    events = []
    bus.subscribe(ClockSyncedEvent, events.append)

    offset = pipeline.sync_clocks()

    assert offset.offset_s == pytest.approx(SKEW_S, abs=1e-9)
    assert offset.is_complete
    assert events[0].offset == offset


def test_sync_failure_returns_none(setup) -> None:
    pipeline, camera_end, _ = setup
    camera_end.set_reachable(False)

    assert pipeline.sync_clocks() is None
    assert pipeline.coordinator.offset is None


def test_apex_detected_and_published(setup, bus) -> None:
    pipeline, _, _ = setup
    apexes = []
    bus.subscribe(ApexDetectedEvent, apexes.append)

    feed_serve(pipeline)

    assert len(apexes) == 1
    assert pipeline.apex.method is RefinementMethod.PARABOLIC
    assert pipeline.apex.t_s == pytest.approx(APEX_T, abs=1e-6)


def test_full_serve_fuses_synced_pose(setup, bus) -> None:
    pipeline, _, wrist_end = setup
    fused_events = []
    bus.subscribe(FusedImpactEvent, fused_events.append)
    pipeline.sync_clocks()
    feed_serve(pipeline)

    wrist_end.send_fire_and_forget(
        encode_impact_report(ImpactReport(refined_t_s=IMPACT_T + SKEW_S, confidence=1.0, roll_deg=2.0, pitch_deg=1.0, swing_r=0.9))
    )
    analysis = pipeline.finalize()

    assert pipeline.impact_report.swing_r == pytest.approx(0.9)
    assert analysis.fused.provenance is Provenance.SYNCED
    assert analysis.fused.pose.t_s == pytest.approx(IMPACT_T, abs=1 / 60.0)
    assert analysis.trophy.t_s == pytest.approx(APEX_T)
    assert analysis.trophy.in_position
    assert analysis.pelvis.rise_px == pytest.approx(60.0)
    assert analysis.scoring.resolved().is_complete
    assert fused_events[0].fused is analysis.fused


def test_finalize_without_impact_uses_trophy_heuristic(setup) -> None:
    pipeline, _, _ = setup
    pipeline.sync_clocks()
    feed_serve(pipeline)

    analysis = pipeline.finalize()

    assert analysis.fused.provenance is Provenance.FALLBACK_HEURISTIC
    assert analysis.fused.target_t_s == pytest.approx(APEX_T + 0.4)
    assert "no_face_angles" in analysis.scoring.resolved().flags


def test_finalize_with_nothing_is_vision_only(setup) -> None:
    pipeline, _, _ = setup

    analysis = pipeline.finalize()

    assert analysis.fused.provenance is Provenance.VISION_ONLY
    assert analysis.fused.pose is None
    assert analysis.apex is None


def test_apex_falls_back_to_history(setup) -> None:
    pipeline, _, _ = setup
    for ball in simulate_toss(apex_t_s=APEX_T, after_s=0.0):
        pipeline.process_frame(ball.t_s, ball=ball)

    analysis = pipeline.finalize()

    assert pipeline.apex is None
    assert analysis.apex.method is RefinementMethod.DISCRETE
    assert analysis.apex.t_s == pytest.approx(APEX_T)


def test_out_of_order_pose_dropped(setup) -> None:
    pipeline, _, _ = setup
    pipeline.add_pose(PoseSample(t_s=2.0, joints={}))
    pipeline.add_pose(PoseSample(t_s=1.0, joints={}))
    pipeline.process_frame(3.0, pose=PoseSample(t_s=3.0, joints={}))

    assert [p.t_s for p in pipeline.poses] == [2.0, 3.0]


def test_ignores_foreign_and_malformed_messages(setup) -> None:
    pipeline, _, wrist_end = setup

    wrist_end.send_fire_and_forget(encode_sync_request(1.0))
    wrist_end.send_fire_and_forget(make_envelope({"type": "impact_report", "refined_t_s": "late"}))

    assert pipeline.impact_report is None


def test_reset_keeps_clock_offset(setup) -> None:
    pipeline, _, _ = setup
    pipeline.sync_clocks()
    feed_serve(pipeline)

    pipeline.reset()

    assert pipeline.apex is None
    assert pipeline.poses == []
    assert pipeline.coordinator.is_synced

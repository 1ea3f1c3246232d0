"""Clock sync over a loopback channel on simulated time."""

import pytest

from configs.settings import SyncConfig
from contracts.messages import encode_impact_report, encode_sync_request
from contracts.types import ImpactReport
from exceptions import ChannelUnavailable, SyncCancelled, SyncTimeout
from sync import ClockSyncCoordinator, ClockSyncResponder, DeviceClock, LoopbackChannel, SimulatedClock, SyncRound

SKEW_S = 5.0


@pytest.fixture
def world() -> SimulatedClock:
    return SimulatedClock(start_s=50.0)


def build_link(world, forward, back, skew_s=SKEW_S, config=None):
    camera_clock = DeviceClock(world, offset_s=0.0)
    wrist_clock = DeviceClock(world, offset_s=skew_s)
    camera_end, wrist_end = LoopbackChannel.pair(world, forward, back)
    responder = ClockSyncResponder(wrist_clock)
    responder.attach(wrist_end)
    coordinator = ClockSyncCoordinator(camera_end, config or SyncConfig(), clock=camera_clock)
    return coordinator, responder, camera_end, wrist_end


def test_sync_round_formulas() -> None:
    sample = SyncRound(t1=10.0, t2=15.004, t3=15.005, t4=10.009)

    assert sample.offset_s == pytest.approx(5.0)
    assert sample.round_trip_s == pytest.approx(0.008)


def test_equal_delays_give_exact_offset(world) -> None:
    coordinator, responder, _, _ = build_link(world, 0.004, 0.004)

    offset = coordinator.sync(1.0)

    assert offset.offset_s == pytest.approx(SKEW_S, abs=1e-9)
    assert offset.round_trip_s == pytest.approx(0.008, abs=1e-9)
    assert offset.is_complete
    assert offset.rounds == 1  # under the early-stop threshold
    assert responder.replies_sent == 1
    assert coordinator.is_synced
    assert coordinator.convert(SKEW_S + 12.0) == pytest.approx(12.0)


def test_asymmetric_delays_bounded_by_half_round_trip(world) -> None:
    coordinator, _, _, _ = build_link(world, 0.002, 0.012)

    offset = coordinator.sync(2.0)

    assert offset.round_trip_s == pytest.approx(0.014, abs=1e-9)
    assert abs(offset.offset_s - SKEW_S) <= offset.round_trip_s / 2 + 1e-9
    assert offset.offset_s == pytest.approx(SKEW_S - 0.005, abs=1e-9)
    assert offset.rounds == 5


def test_minimum_round_trip_round_is_kept(world) -> None:
    forward = iter([0.030, 0.020, 0.008, 0.025, 0.030])
    back = iter([0.010, 0.020, 0.004, 0.025, 0.030])
    coordinator, _, _, _ = build_link(world, lambda: next(forward), lambda: next(back))

    offset = coordinator.sync(2.0)

    assert offset.round_trip_s == pytest.approx(0.012, abs=1e-9)
    assert offset.offset_s == pytest.approx(SKEW_S + 0.002, abs=1e-9)
    assert offset.rounds == 5


def test_slow_link_is_incomplete(world) -> None:
    coordinator, _, _, _ = build_link(world, 0.08, 0.08)

    offset = coordinator.sync(2.0)

    assert not offset.is_complete
    assert offset.offset_s == pytest.approx(SKEW_S, abs=1e-9)
    assert not coordinator.is_synced


def test_incomplete_result_never_replaces_complete(world) -> None:
    delay = {"value": 0.004}
    coordinator, _, _, _ = build_link(world, lambda: delay["value"], lambda: delay["value"])
    first = coordinator.sync(1.0)

    delay["value"] = 0.08
    second = coordinator.sync(2.0)

    assert not second.is_complete
    assert coordinator.offset == first


def test_timeout_when_no_round_completes(world) -> None:
    coordinator, _, _, _ = build_link(world, 0.5, 0.5)

    with pytest.raises(SyncTimeout) as excinfo:
        coordinator.sync(1.5)
    assert excinfo.value.attempts == 5
    assert coordinator.offset is None


def test_unreachable_wrist(world) -> None:
    coordinator, _, camera_end, _ = build_link(world, 0.004, 0.004)
    camera_end.set_reachable(False)

    with pytest.raises(ChannelUnavailable):
        coordinator.sync(1.0)
    assert coordinator.offset is None


def test_cancel_before_any_round(world) -> None:
    camera_clock = DeviceClock(world)
    camera_end, wrist_end = LoopbackChannel.pair(world, 0.004, 0.004)
    coordinator = ClockSyncCoordinator(camera_end, SyncConfig(), clock=camera_clock)

    def cancel_and_drop(message):
        coordinator.cancel()
        return None

    wrist_end.on_message(cancel_and_drop)

    with pytest.raises(SyncCancelled):
        coordinator.sync(1.0)
    assert camera_end.sent_count == 1


def test_reset_clears_offset(world) -> None:
    coordinator, _, _, _ = build_link(world, 0.004, 0.004)
    coordinator.sync(1.0)

    coordinator.reset()

    assert coordinator.offset is None
    assert coordinator.convert(1.0) is None


def test_responder_ignores_other_messages(world) -> None:
    responder = ClockSyncResponder(DeviceClock(world, offset_s=SKEW_S))
    report = encode_impact_report(ImpactReport(refined_t_s=1.0, confidence=1.0))

    assert responder.handle(report) is None
    assert responder.handle({"garbage": True}) is None
    assert responder.handle(encode_sync_request(3.0)) is not None
    assert responder.replies_sent == 1


def test_simulated_clock_rejects_going_backwards(world) -> None:
    with pytest.raises(ValueError):
        world.advance(-0.1)


def test_device_clock_round_trip(world) -> None:
    clock = DeviceClock(world, offset_s=2.0, drift_ppm=50.0)

    assert clock.to_true(clock.at(123.0)) == pytest.approx(123.0)
    assert clock() == pytest.approx(50.0 * (1 + 50e-6) + 2.0)

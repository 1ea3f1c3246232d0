import pytest

from sync.tap_sync import AUDIO_PEAK, IMU_JERK, TapSyncRecorder


@pytest.fixture
def recorder() -> TapSyncRecorder:
    rec = TapSyncRecorder()
    rec.set_camera_origin(100.0)
    rec.set_wrist_origin(40.0)
    return rec


def test_wrist_origin_set_once(recorder) -> None:
    recorder.set_wrist_origin(55.0)

    assert recorder.wrist_origin_s == 40.0


def test_audio_peak_threshold(recorder) -> None:
    assert recorder.detect_audio_peak(0.7, 101.0) is None

    event = recorder.detect_audio_peak(0.9, 101.25)
    assert event.device == "camera"
    assert event.event_type == AUDIO_PEAK
    assert event.peak_ms == 1250
    assert event.confidence == pytest.approx(0.9)


def test_imu_jerk_needs_previous_sample(recorder) -> None:
    assert recorder.detect_imu_jerk((0.0, 0.0, 9.0), None, 41.0) is None
    assert recorder.detect_imu_jerk((0.0, 0.0, 3.0), (0.0, 0.0, 0.0), 41.0) is None

    event = recorder.detect_imu_jerk((6.0, 0.0, 0.0), (0.0, 0.0, 0.0), 41.2)
    assert event.event_type == IMU_JERK
    assert event.peak_ms == 1200
    assert event.confidence == pytest.approx(0.6)


def test_tap_sync_correction(recorder) -> None:
    recorder.detect_audio_peak(0.95, 101.25)
    recorder.detect_imu_jerk((12.0, 0.0, 0.0), (0.0, 0.0, 0.0), 41.2)

    correction = recorder.tap_sync_correction()

    assert correction.method == "tap_sync"
    assert correction.delta_ms == pytest.approx(50.0)
    assert correction.confidence == pytest.approx(0.95)
    assert recorder.current_delta_ms == pytest.approx(50.0)
    assert recorder.relative_time_ms(41.0, is_wrist=True) == 1050


def test_tap_sync_needs_both_devices(recorder) -> None:
    recorder.detect_audio_peak(0.95, 101.25)

    assert recorder.tap_sync_correction() is None
    assert recorder.corrections == []


def test_linear_drift_correction(recorder) -> None:
    points = [(0.0, 10.0), (10.0, 12.0), (20.0, 14.0), (30.0, 16.0)]

    correction = recorder.linear_drift_correction(points)

    assert correction.method == "linear_drift"
    assert correction.delta_ms == pytest.approx(10.0)
    assert correction.slope == pytest.approx(0.2)
    assert correction.confidence == pytest.approx(0.8)


def test_linear_drift_rejects_degenerate_input(recorder) -> None:
    assert recorder.linear_drift_correction([(0.0, 1.0), (1.0, 2.0)]) is None
    assert recorder.linear_drift_correction([(5.0, 1.0), (5.0, 2.0), (5.0, 3.0)]) is None


def test_reset(recorder) -> None:
    recorder.detect_audio_peak(0.95, 101.25)
    recorder.reset()

    assert recorder.events == []
    assert recorder.camera_origin_s is None
    assert recorder.current_delta_ms == 0.0


def test_latest_correction_shifts_relative_time(recorder) -> None:
    assert recorder.relative_time_ms(101.0, is_wrist=False) == 1000

    recorder.linear_drift_correction([(0.0, 10.4), (10.0, 12.4), (20.0, 14.4)])
    assert recorder.relative_time_ms(101.0, is_wrist=False) == 1010

    recorder.detect_audio_peak(0.95, 101.25)
    recorder.detect_imu_jerk((12.0, 0.0, 0.0), (0.0, 0.0, 0.0), 41.2)
    recorder.tap_sync_correction()
    assert recorder.relative_time_ms(101.0, is_wrist=False) == 1050
    assert [c.method for c in recorder.corrections] == ["linear_drift", "tap_sync"]

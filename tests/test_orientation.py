import numpy as np
import pytest

from calib import CalibrationState, OrientationCalibrator, axis_angle_matrix
from configs.settings import CalibrationConfig
from contracts import TimedSample
from exceptions import CalibrationSampleMissing, NotCalibrated


def sample(matrix: np.ndarray, t_s: float = 0.0) -> TimedSample:
    return TimedSample(t_s=t_s, orientation=matrix, angular_velocity=0.0, linear_acceleration=0.0)


@pytest.fixture
def calibrated() -> OrientationCalibrator:
    calibrator = OrientationCalibrator()
    calibrator.commit_level(sample(np.eye(3)))
    calibrator.commit_direction(sample(np.eye(3)))
    return calibrator


def test_axis_angle_matrix_is_rotation() -> None:
    rotation = axis_angle_matrix((1.0, 2.0, 3.0), 37.0)

    assert np.allclose(rotation @ rotation.T, np.eye(3))
    assert np.linalg.det(rotation) == pytest.approx(1.0)
    assert np.allclose(axis_angle_matrix((0.0, 0.0, 1.0), 90.0) @ [1.0, 0.0, 0.0], [0.0, 1.0, 0.0])


def test_state_transitions() -> None:
    calibrator = OrientationCalibrator()
    assert calibrator.state is CalibrationState.IDLE

    calibrator.begin_level()
    assert calibrator.state is CalibrationState.LEVEL_PENDING
    calibrator.commit_level(np.eye(3))
    assert calibrator.state is CalibrationState.LEVEL_DONE
    calibrator.begin_direction()
    assert calibrator.state is CalibrationState.DIRECTION_PENDING
    frame = calibrator.commit_direction(np.eye(3))

    assert calibrator.is_ready
    assert np.allclose(frame.world_up, [0.0, 1.0, 0.0])
    assert np.allclose(frame.nominal_face_normal, [1.0, 0.0, 0.0])


def test_reference_attitude_reads_zero(calibrated) -> None:
    angles = calibrated.face_angles(np.eye(3))

    assert angles.roll_deg == pytest.approx(0.0, abs=1e-9)
    assert angles.pitch_deg == pytest.approx(0.0, abs=1e-9)


def test_reference_attitude_reads_zero_for_any_level_pose() -> None:
    r_calib = axis_angle_matrix((0.3, -1.0, 0.5), 40.0)
    calibrator = OrientationCalibrator()
    calibrator.commit_level(sample(r_calib))
    calibrator.commit_direction(sample(r_calib))

    angles = calibrator.face_angles(r_calib)

    assert angles.roll_deg == pytest.approx(0.0, abs=1e-9)
    assert angles.pitch_deg == pytest.approx(0.0, abs=1e-9)


def test_roll_about_racket_axis(calibrated) -> None:
    angles = calibrated.face_angles(axis_angle_matrix((0.0, 1.0, 0.0), 25.0))

    assert angles.roll_deg == pytest.approx(25.0)
    assert angles.pitch_deg == pytest.approx(-25.0)

    opposite = calibrated.face_angles(axis_angle_matrix((0.0, 1.0, 0.0), -25.0))
    assert opposite.roll_deg == pytest.approx(-25.0)


def test_half_turn_reads_plus_180(calibrated) -> None:
    angles = calibrated.face_angles(axis_angle_matrix((0.0, 1.0, 0.0), 180.0))

    assert angles.roll_deg == pytest.approx(180.0)


def test_edge_on_face_has_no_roll(calibrated) -> None:
    assert calibrated.face_angles(axis_angle_matrix((0.0, 0.0, 1.0), 90.0)) is None


def test_face_angles_before_calibration() -> None:
    calibrator = OrientationCalibrator()
    with pytest.raises(NotCalibrated):
        calibrator.face_angles(np.eye(3))

    calibrator.commit_level(np.eye(3))
    with pytest.raises(NotCalibrated):
        calibrator.face_angles(np.eye(3))


def test_direction_requires_level() -> None:
    calibrator = OrientationCalibrator()

    with pytest.raises(NotCalibrated):
        calibrator.begin_direction()
    with pytest.raises(NotCalibrated):
        calibrator.commit_direction(np.eye(3))


def test_commit_without_sample() -> None:
    calibrator = OrientationCalibrator()

    with pytest.raises(CalibrationSampleMissing):
        calibrator.commit_level(None)
    with pytest.raises(CalibrationSampleMissing):
        calibrator.commit_level(np.eye(2))


def test_relevelling_restarts_flow(calibrated) -> None:
    calibrated.commit_level(np.eye(3))

    assert calibrated.state is CalibrationState.LEVEL_DONE
    assert calibrated.frame is None


def test_vertical_face_normal_config() -> None:
    calibrator = OrientationCalibrator(CalibrationConfig(device_normal=(0.0, 0.0, 1.0)))
    calibrator.commit_level(np.eye(3))
    calibrator.commit_direction(np.eye(3))

    angles = calibrator.face_angles(np.eye(3))

    assert angles.pitch_deg == pytest.approx(90.0)
    assert angles.roll_deg == pytest.approx(0.0, abs=1e-9)


def test_reset(calibrated) -> None:
    calibrated.reset()

    assert calibrated.state is CalibrationState.IDLE
    with pytest.raises(NotCalibrated):
        calibrated.face_angles(np.eye(3))

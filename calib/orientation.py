"""Two-step racket-face orientation calibration.

Step 1 (level): the player holds the racket still in a reference pose and the
device attitude is stored as ``R_calib``. Step 2 (direction): the player points
the racket along the swing axis; the attitude relative to ``R_calib`` gives the
world-up axis and the nominal face normal. Afterwards ``face_angles`` turns any
attitude into (roll, pitch) of the racket face.
"""

from __future__ import annotations

import math
import threading
from enum import Enum
from typing import Optional, Sequence

import numpy as np

from configs.settings import CalibrationConfig
from contracts.types import CalibrationFrame, FaceAngles, TimedSample
from exceptions import CalibrationSampleMissing, NotCalibrated
from log_config.logger import get_logger

logger = get_logger(__name__)

DEGENERATE_LENGTH = 1e-6


class CalibrationState(Enum):
    IDLE = "idle"
    LEVEL_PENDING = "level_pending"
    LEVEL_DONE = "level_done"
    DIRECTION_PENDING = "direction_pending"
    READY = "ready"


def axis_angle_matrix(axis: Sequence[float], angle_deg: float) -> np.ndarray:
    """Rotation matrix for a right-handed rotation about ``axis``."""
    a = np.asarray(axis, dtype=float)
    a = a / np.linalg.norm(a)
    theta = math.radians(angle_deg)
    k = np.array(
        [
            [0.0, -a[2], a[1]],
            [a[2], 0.0, -a[0]],
            [-a[1], a[0], 0.0],
        ]
    )
    return np.eye(3) + math.sin(theta) * k + (1.0 - math.cos(theta)) * (k @ k)


def _normalize(v: np.ndarray) -> Optional[np.ndarray]:
    length = float(np.linalg.norm(v))
    if length < DEGENERATE_LENGTH:
        return None
    return v / length


def _orientation_of(sample) -> np.ndarray:
    if sample is None:
        raise CalibrationSampleMissing("No orientation sample available to commit")
    matrix = sample.orientation if isinstance(sample, TimedSample) else sample
    matrix = np.asarray(matrix, dtype=float)
    if matrix.shape != (3, 3):
        raise CalibrationSampleMissing(f"Orientation must be a 3x3 rotation, got shape {matrix.shape}")
    return matrix


class OrientationCalibrator:
    """Holds the session's CalibrationFrame and computes face angles.

    Commits are explicit and user-triggered. ``commit_level`` may be repeated at
    any time and restarts the flow; ``commit_direction`` needs a level commit.
    """

    def __init__(self, config: Optional[CalibrationConfig] = None) -> None:
        cfg = config or CalibrationConfig()
        self._device_up = np.asarray(cfg.device_up, dtype=float)
        self._device_normal = np.asarray(cfg.device_normal, dtype=float)
        self._state = CalibrationState.IDLE
        self._r_calib: Optional[np.ndarray] = None
        self._frame: Optional[CalibrationFrame] = None
        self._lock = threading.Lock()

    @property
    def state(self) -> CalibrationState:
        return self._state

    @property
    def frame(self) -> Optional[CalibrationFrame]:
        return self._frame

    @property
    def is_ready(self) -> bool:
        return self._state is CalibrationState.READY

    def begin_level(self) -> None:
        with self._lock:
            self._state = CalibrationState.LEVEL_PENDING
            self._frame = None

    def commit_level(self, sample) -> None:
        """Store the reference attitude. Accepts a TimedSample or a 3x3 matrix."""
        r_calib = _orientation_of(sample)
        with self._lock:
            self._r_calib = r_calib.copy()
            self._frame = None
            self._state = CalibrationState.LEVEL_DONE
        logger.info("Level calibration committed")

    def begin_direction(self) -> None:
        with self._lock:
            if self._r_calib is None:
                raise NotCalibrated("Direction step requires the level step first")
            self._state = CalibrationState.DIRECTION_PENDING

    def commit_direction(self, sample) -> CalibrationFrame:
        """Derive world-up and the nominal face normal from the pointing pose.

        Raises:
            NotCalibrated: If the level step has not been committed
            CalibrationSampleMissing: If no usable sample is supplied
        """
        with self._lock:
            if self._r_calib is None or self._state not in (
                CalibrationState.LEVEL_DONE,
                CalibrationState.DIRECTION_PENDING,
                CalibrationState.READY,
            ):
                raise NotCalibrated("Direction step requires the level step first")
            r_calib = self._r_calib

        r_rel = r_calib.T @ _orientation_of(sample)
        world_up = _normalize(r_rel @ self._device_up)
        nominal = _normalize(r_rel @ self._device_normal)
        if world_up is None or nominal is None:
            raise CalibrationSampleMissing("Device axes are degenerate; check calibration config")

        frame = CalibrationFrame(r_level=r_calib.copy(), world_up=world_up, nominal_face_normal=nominal)
        with self._lock:
            self._frame = frame
            self._state = CalibrationState.READY
        logger.info(
            f"Direction calibration committed: up={np.round(world_up, 3).tolist()} "
            f"normal={np.round(nominal, 3).tolist()}"
        )
        return frame

    def face_angles(self, orientation) -> Optional[FaceAngles]:
        """Roll and pitch of the racket face for an attitude.

        Returns None when the face normal is edge-on to world-up, where roll
        is undefined.

        Raises:
            NotCalibrated: If calibration is not complete
        """
        frame = self._frame
        if frame is None:
            raise NotCalibrated("Face angles require a completed calibration")

        r_rel = frame.r_level.T @ _orientation_of(orientation)
        n = _normalize(r_rel @ self._device_normal)
        if n is None:
            return None
        pitch = math.degrees(math.atan2(n[2], math.hypot(n[0], n[1])))

        up = frame.world_up
        a = _normalize(frame.nominal_face_normal - np.dot(frame.nominal_face_normal, up) * up)
        b = _normalize(n - np.dot(n, up) * up)
        if a is None or b is None:
            logger.debug("Face normal edge-on to swing axis; roll undefined")
            return None

        roll = math.degrees(math.atan2(float(np.dot(up, np.cross(a, b))), float(np.dot(a, b))))
        if roll <= -180.0:
            roll += 360.0
        return FaceAngles(roll_deg=roll, pitch_deg=pitch)

    def reset(self) -> None:
        with self._lock:
            self._state = CalibrationState.IDLE
            self._r_calib = None
            self._frame = None
        logger.debug("Calibration cleared")

"""Orientation calibration module."""

from .orientation import CalibrationState, OrientationCalibrator, axis_angle_matrix

__all__ = ["CalibrationState", "OrientationCalibrator", "axis_angle_matrix"]

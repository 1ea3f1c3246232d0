"""Custom exception classes for serve-fusion."""

from __future__ import annotations

from typing import Optional


class ServeFusionError(Exception):
    """Base exception for all serve-fusion errors."""

    pass


class SyncError(ServeFusionError):
    """Base exception for cross-device clock synchronization errors."""

    def __init__(self, message: str, attempts: int = 0):
        self.attempts = attempts
        super().__init__(message)


class SyncTimeout(SyncError):
    """Raised when no sync round completes within its time budget."""

    pass


class SyncCancelled(SyncTimeout):
    """Raised when a sync run is cancelled before any round completed."""

    pass


class ChannelUnavailable(SyncError):
    """Raised when the device-to-device channel cannot carry a request."""

    pass


class ChannelError(ServeFusionError):
    """Base exception for channel payload errors."""

    pass


class MessageDecodeError(ChannelError):
    """Raised when a channel payload is missing fields or has the wrong type."""

    def __init__(self, message: str, payload: Optional[dict] = None):
        self.payload = payload
        super().__init__(message)


class CalibrationError(ServeFusionError):
    """Base exception for orientation calibration errors."""

    pass


class NotCalibrated(CalibrationError):
    """Raised when a calibration step runs before the step it depends on."""

    pass


class CalibrationSampleMissing(CalibrationError):
    """Raised when a calibration commit has no orientation sample to store."""

    pass


class ConfigError(ServeFusionError):
    """Base exception for configuration errors."""

    pass


class InvalidConfigError(ConfigError):
    """Raised when configuration file is invalid or corrupted."""

    pass


class ConfigValidationError(ConfigError):
    """Raised when configuration fails schema validation."""

    def __init__(self, message: str, validation_errors: Optional[list] = None):
        self.validation_errors = validation_errors or []
        super().__init__(message)

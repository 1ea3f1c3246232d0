"""Configuration loading for serve fusion."""

from __future__ import annotations

from dataclasses import dataclass, field
from pathlib import Path
from typing import Optional, Tuple

import yaml

from configs.validator import validate_config
from exceptions import ConfigError, InvalidConfigError
from log_config.logger import get_logger

logger = get_logger(__name__)

DEFAULT_CONFIG_PATH = Path(__file__).with_name("default.yaml")


@dataclass(frozen=True)
class SyncConfig:
    max_rounds: int = 5
    round_timeout_s: float = 0.3
    max_round_trip_s: float = 0.100
    early_stop_rtt_s: float = 0.010
    retry_delay_s: float = 0.0


@dataclass(frozen=True)
class CalibrationConfig:
    device_up: Tuple[float, float, float] = (0.0, 1.0, 0.0)
    device_normal: Tuple[float, float, float] = (1.0, 0.0, 0.0)


@dataclass(frozen=True)
class ImpactConfig:
    sample_rate_hz: float = 200.0
    buffer_capacity: int = 800
    max_pending_reports: int = 16  # oldest undelivered impact reports are dropped
    swing_gate_threshold: float = 3.0  # rad/s
    gate_lookback_s: float = 0.2
    impact_shock_threshold: float = 2.0  # G
    debounce_s: float = 1.0
    refinement_window_s: float = 0.1
    lead_offset_s: float = 0.02


@dataclass(frozen=True)
class SwingConfig:
    static_threshold: float = 0.1  # rad/s
    start_search_begin_s: float = 3.0  # seconds before impact
    start_search_end_s: float = 2.0
    default_start_s: float = 2.5
    excellent_band: float = 0.90
    good_band: float = 0.75


@dataclass(frozen=True)
class BallConfig:
    process_noise: float = 15.0
    measurement_noise: float = 8.0
    velocity_noise_scale: float = 2.0
    initial_position_var: float = 100.0
    initial_velocity_var: float = 50.0
    gravity_px_s2: float = 9.8 * 30.0
    max_reseed_gap_s: float = 1.0
    max_prediction_horizon_s: float = 0.15
    prediction_base_confidence: float = 0.3
    prediction_decay_tau_s: float = 0.05
    prediction_confidence_scale: float = 0.7
    history_size: int = 180
    min_confidence: float = 0.15
    min_radius_px: float = 3.0
    max_radius_px: float = 200.0


@dataclass(frozen=True)
class ApexConfig:
    window_size: int = 24
    min_history: int = 10
    min_velocities: int = 5
    cooldown_s: float = 1.2
    up_velocity: float = 10.0  # px/s, upward motion is negative vy
    near_zero_velocity: float = 20.0
    down_velocity: float = 10.0
    min_down_accel: float = 20.0  # px/s^2
    pattern_samples: int = 5  # velocities averaged on each side of the crossing
    min_fit_points: int = 8
    min_curvature: float = 1e-6
    vertex_margin_s: float = 0.1


@dataclass(frozen=True)
class OutlierConfig:
    left_exclusion_fraction: float = 0.2
    lower_exclusion_fraction: float = 0.5
    max_jump_px: float = 100.0


@dataclass(frozen=True)
class FusionConfig:
    fallback_offset_s: float = 0.4
    pose_history_size: int = 300


@dataclass(frozen=True)
class TrophyConfig:
    min_elbow_deg: float = 140.0
    max_elbow_deg: float = 180.0
    min_shoulder_abduction_deg: float = 45.0
    min_confidence: float = 0.5


@dataclass(frozen=True)
class PelvisConfig:
    window_before_s: float = 0.2
    window_after_s: float = 0.6
    player_height_m: float = 1.70
    hip_to_ankle_ratio: float = 0.53


@dataclass(frozen=True)
class AppConfig:
    sync: SyncConfig = field(default_factory=SyncConfig)
    calibration: CalibrationConfig = field(default_factory=CalibrationConfig)
    impact: ImpactConfig = field(default_factory=ImpactConfig)
    swing: SwingConfig = field(default_factory=SwingConfig)
    ball: BallConfig = field(default_factory=BallConfig)
    apex: ApexConfig = field(default_factory=ApexConfig)
    outliers: OutlierConfig = field(default_factory=OutlierConfig)
    fusion: FusionConfig = field(default_factory=FusionConfig)
    trophy: TrophyConfig = field(default_factory=TrophyConfig)
    pelvis: PelvisConfig = field(default_factory=PelvisConfig)


def load_config(path: Optional[Path] = None) -> AppConfig:
    """Load and validate configuration from YAML file.

    Args:
        path: Path to configuration file (defaults to the bundled default.yaml)

    Returns:
        Validated AppConfig instance

    Raises:
        ConfigError: If configuration is invalid or cannot be loaded
    """
    path = Path(path) if path is not None else DEFAULT_CONFIG_PATH
    try:
        logger.info(f"Loading configuration from {path}")
        if not path.exists():
            raise InvalidConfigError(f"Configuration file not found: {path}")

        data = yaml.safe_load(path.read_text()) or {}
        if not isinstance(data, dict):
            raise InvalidConfigError(f"Configuration root must be a mapping: {path}")

        # Validate against JSON Schema (fills in defaults)
        validate_config(data)

        logger.debug("Parsing configuration sections")

    except yaml.YAMLError as e:
        logger.error(f"Failed to parse YAML configuration: {e}")
        raise InvalidConfigError(f"Failed to parse configuration file: {e}")

    try:
        calibration_data = dict(data.get("calibration", {}))
        for key in ("device_up", "device_normal"):
            if key in calibration_data:
                calibration_data[key] = tuple(float(v) for v in calibration_data[key])

        config = AppConfig(
            sync=SyncConfig(**data.get("sync", {})),
            calibration=CalibrationConfig(**calibration_data),
            impact=ImpactConfig(**data.get("impact", {})),
            swing=SwingConfig(**data.get("swing", {})),
            ball=BallConfig(**data.get("ball", {})),
            apex=ApexConfig(**data.get("apex", {})),
            outliers=OutlierConfig(**data.get("outliers", {})),
            fusion=FusionConfig(**data.get("fusion", {})),
            trophy=TrophyConfig(**data.get("trophy", {})),
            pelvis=PelvisConfig(**data.get("pelvis", {})),
        )

        logger.info(
            f"Configuration loaded successfully: IMU {config.impact.sample_rate_hz:.0f}Hz, "
            f"sync RTT ceiling {config.sync.max_round_trip_s * 1000:.0f}ms, "
            f"gravity {config.ball.gravity_px_s2:.0f}px/s^2"
        )
        return config

    except ConfigError:
        raise
    except (TypeError, ValueError) as e:
        logger.error(f"Failed to construct configuration objects: {e}")
        raise InvalidConfigError(f"Failed to construct configuration: {e}")

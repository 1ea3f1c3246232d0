"""Configuration validation using JSON Schema."""

from __future__ import annotations

import copy
from typing import Any, Dict

import jsonschema
from jsonschema import Draft7Validator, validators

from exceptions import ConfigValidationError
from log_config.logger import get_logger

logger = get_logger(__name__)


def _number(minimum: float, maximum: float, default: float) -> Dict[str, Any]:
    return {"type": "number", "minimum": minimum, "maximum": maximum, "default": default}


def _integer(minimum: int, maximum: int, default: int) -> Dict[str, Any]:
    return {"type": "integer", "minimum": minimum, "maximum": maximum, "default": default}


_VECTOR3 = {
    "type": "array",
    "items": {"type": "number"},
    "minItems": 3,
    "maxItems": 3,
}


def _section(properties: Dict[str, Any]) -> Dict[str, Any]:
    return {
        "type": "object",
        "additionalProperties": False,
        "default": {},
        "properties": properties,
    }


# JSON Schema for default.yaml configuration
CONFIG_SCHEMA = {
    "$schema": "http://json-schema.org/draft-07/schema#",
    "type": "object",
    "additionalProperties": False,
    "properties": {
        "sync": _section(
            {
                "max_rounds": _integer(1, 50, 5),
                "round_timeout_s": _number(0.01, 5.0, 0.3),
                "max_round_trip_s": _number(0.001, 2.0, 0.1),
                "early_stop_rtt_s": _number(0.0, 2.0, 0.01),
                "retry_delay_s": _number(0.0, 2.0, 0.0),
            }
        ),
        "calibration": _section(
            {
                "device_up": dict(_VECTOR3, default=[0.0, 1.0, 0.0]),
                "device_normal": dict(_VECTOR3, default=[1.0, 0.0, 0.0]),
            }
        ),
        "impact": _section(
            {
                "sample_rate_hz": _number(10.0, 2000.0, 200.0),
                "buffer_capacity": _integer(16, 100000, 800),
                "max_pending_reports": _integer(1, 10000, 16),
                "swing_gate_threshold": _number(0.0, 100.0, 3.0),
                "gate_lookback_s": _number(0.0, 2.0, 0.2),
                "impact_shock_threshold": _number(0.0, 50.0, 2.0),
                "debounce_s": _number(0.0, 10.0, 1.0),
                "refinement_window_s": _number(0.001, 1.0, 0.1),
                "lead_offset_s": _number(-0.5, 0.5, 0.02),
            }
        ),
        "swing": _section(
            {
                "static_threshold": _number(0.0, 10.0, 0.1),
                "start_search_begin_s": _number(0.0, 10.0, 3.0),
                "start_search_end_s": _number(0.0, 10.0, 2.0),
                "default_start_s": _number(0.0, 10.0, 2.5),
                "excellent_band": _number(0.0, 1.0, 0.9),
                "good_band": _number(0.0, 1.0, 0.75),
            }
        ),
        "ball": _section(
            {
                "process_noise": _number(0.0, 1000.0, 15.0),
                "measurement_noise": _number(0.001, 1000.0, 8.0),
                "velocity_noise_scale": _number(0.001, 100.0, 2.0),
                "initial_position_var": _number(0.0, 100000.0, 100.0),
                "initial_velocity_var": _number(0.0, 100000.0, 50.0),
                "gravity_px_s2": _number(0.0, 100000.0, 294.0),
                "max_reseed_gap_s": _number(0.001, 10.0, 1.0),
                "max_prediction_horizon_s": _number(0.0, 2.0, 0.15),
                "prediction_base_confidence": _number(0.0, 1.0, 0.3),
                "prediction_decay_tau_s": _number(0.001, 10.0, 0.05),
                "prediction_confidence_scale": _number(0.0, 1.0, 0.7),
                "history_size": _integer(10, 10000, 180),
                "min_confidence": _number(0.0, 1.0, 0.15),
                "min_radius_px": _number(0.0, 1000.0, 3.0),
                "max_radius_px": _number(0.0, 5000.0, 200.0),
            }
        ),
        "apex": _section(
            {
                "window_size": _integer(5, 1000, 24),
                "min_history": _integer(3, 1000, 10),
                "min_velocities": _integer(3, 1000, 5),
                "cooldown_s": _number(0.0, 30.0, 1.2),
                "up_velocity": _number(0.0, 100000.0, 10.0),
                "near_zero_velocity": _number(0.0, 100000.0, 20.0),
                "down_velocity": _number(0.0, 100000.0, 10.0),
                "min_down_accel": _number(0.0, 1000000.0, 20.0),
                "pattern_samples": _integer(1, 100, 5),
                "min_fit_points": _integer(3, 1000, 8),
                "min_curvature": _number(0.0, 1000.0, 1e-6),
                "vertex_margin_s": _number(0.0, 5.0, 0.1),
            }
        ),
        "outliers": _section(
            {
                "left_exclusion_fraction": _number(0.0, 1.0, 0.2),
                "lower_exclusion_fraction": _number(0.0, 1.0, 0.5),
                "max_jump_px": _number(0.0, 10000.0, 100.0),
            }
        ),
        "fusion": _section(
            {
                "fallback_offset_s": _number(-5.0, 5.0, 0.4),
                "pose_history_size": _integer(1, 100000, 300),
            }
        ),
        "trophy": _section(
            {
                "min_elbow_deg": _number(0.0, 180.0, 140.0),
                "max_elbow_deg": _number(0.0, 180.0, 180.0),
                "min_shoulder_abduction_deg": _number(0.0, 180.0, 45.0),
                "min_confidence": _number(0.0, 1.0, 0.5),
            }
        ),
        "pelvis": _section(
            {
                "window_before_s": _number(0.0, 5.0, 0.2),
                "window_after_s": _number(0.0, 5.0, 0.6),
                "player_height_m": _number(0.5, 2.8, 1.7),
                "hip_to_ankle_ratio": _number(0.1, 1.0, 0.53),
            }
        ),
    },
}


def extend_with_default(validator_class):
    """Extend JSON Schema validator to set default values."""
    validate_properties = validator_class.VALIDATORS["properties"]

    def set_defaults(validator, properties, instance, schema):
        if isinstance(instance, dict):
            for prop, subschema in properties.items():
                if "default" in subschema:
                    default = subschema["default"]
                    instance.setdefault(prop, copy.deepcopy(default))

        for error in validate_properties(validator, properties, instance, schema):
            yield error

    return validators.extend(validator_class, {"properties": set_defaults})


DefaultValidatingValidator = extend_with_default(Draft7Validator)


def validate_config(config: Dict[str, Any]) -> None:
    """Validate configuration against JSON Schema.

    Missing sections and keys are filled in with their defaults in place.

    Args:
        config: Configuration dictionary

    Raises:
        ConfigValidationError: If configuration is invalid
    """
    try:
        validator = DefaultValidatingValidator(CONFIG_SCHEMA)
        errors = list(validator.iter_errors(config))

        if errors:
            error_messages = []
            for error in errors:
                path = " -> ".join(str(p) for p in error.path) if error.path else "root"
                error_messages.append(f"{path}: {error.message}")

            logger.error(f"Configuration validation failed with {len(errors)} errors")
            for msg in error_messages:
                logger.error(f"  - {msg}")

            raise ConfigValidationError(
                f"Configuration validation failed with {len(errors)} error(s). See logs for details.",
                validation_errors=error_messages,
            )

        _check_ordering(config)
        logger.info("Configuration validation passed")

    except jsonschema.exceptions.SchemaError as e:
        logger.error(f"Invalid schema: {e}")
        raise ConfigValidationError(f"Invalid schema definition: {e}")


def _check_ordering(config: Dict[str, Any]) -> None:
    errors = []
    swing = config.get("swing", {})
    if swing.get("start_search_begin_s", 3.0) < swing.get("start_search_end_s", 2.0):
        errors.append("swing: start_search_begin_s must be >= start_search_end_s")
    if swing.get("excellent_band", 0.9) < swing.get("good_band", 0.75):
        errors.append("swing: excellent_band must be >= good_band")
    ball = config.get("ball", {})
    if ball.get("min_radius_px", 3.0) >= ball.get("max_radius_px", 200.0):
        errors.append("ball: min_radius_px must be < max_radius_px")
    trophy = config.get("trophy", {})
    if trophy.get("min_elbow_deg", 140.0) > trophy.get("max_elbow_deg", 180.0):
        errors.append("trophy: min_elbow_deg must be <= max_elbow_deg")
    if errors:
        for msg in errors:
            logger.error(f"  - {msg}")
        raise ConfigValidationError(
            f"Configuration validation failed with {len(errors)} error(s). See logs for details.",
            validation_errors=errors,
        )


def validate_config_file(config_path: str) -> None:
    """Validate a YAML configuration file.

    Args:
        config_path: Path to configuration file

    Raises:
        ConfigValidationError: If configuration is invalid
    """
    import yaml
    from pathlib import Path

    path = Path(config_path)
    if not path.exists():
        raise ConfigValidationError(f"Configuration file not found: {config_path}")

    try:
        with open(path, "r") as f:
            config = yaml.safe_load(f) or {}
    except yaml.YAMLError as e:
        logger.error(f"Failed to parse YAML: {e}")
        raise ConfigValidationError(f"Failed to parse configuration file: {e}")

    validate_config(config)


__all__ = ["validate_config", "validate_config_file", "CONFIG_SCHEMA"]

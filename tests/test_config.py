from pathlib import Path

import pytest

from configs.settings import DEFAULT_CONFIG_PATH, load_config
from configs.validator import validate_config, validate_config_file
from exceptions import ConfigError, ConfigValidationError, InvalidConfigError


def test_load_config() -> None:
    config = load_config(DEFAULT_CONFIG_PATH)

    assert config.impact.sample_rate_hz == 200.0
    assert config.impact.impact_shock_threshold == 2.0
    assert config.sync.max_round_trip_s == pytest.approx(0.1)
    assert config.ball.max_prediction_horizon_s == pytest.approx(0.15)
    assert config.apex.cooldown_s == pytest.approx(1.2)
    assert config.fusion.fallback_offset_s == pytest.approx(0.4)
    assert config.calibration.device_normal == (1.0, 0.0, 0.0)
    assert config.trophy.min_elbow_deg == pytest.approx(140.0)
    assert config.apex.pattern_samples == 5


def test_load_config_defaults_without_path() -> None:
    assert load_config().swing.static_threshold == pytest.approx(0.1)


def test_partial_config_fills_defaults(tmp_path: Path) -> None:
    path = tmp_path / "partial.yaml"
    path.write_text("impact:\n  debounce_s: 0.5\nfusion:\n  fallback_offset_s: 0.3\n")

    config = load_config(path)

    assert config.impact.debounce_s == pytest.approx(0.5)
    assert config.impact.swing_gate_threshold == pytest.approx(3.0)
    assert config.fusion.fallback_offset_s == pytest.approx(0.3)
    assert config.apex.window_size == 24


def test_empty_config_file_uses_defaults(tmp_path: Path) -> None:
    path = tmp_path / "empty.yaml"
    path.write_text("")

    assert load_config(path).ball.history_size == 180


def test_missing_config_file(tmp_path: Path) -> None:
    with pytest.raises(InvalidConfigError):
        load_config(tmp_path / "nope.yaml")


def test_malformed_yaml(tmp_path: Path) -> None:
    path = tmp_path / "broken.yaml"
    path.write_text("impact: [unclosed\n")

    with pytest.raises(InvalidConfigError):
        load_config(path)


def test_out_of_range_value_rejected(tmp_path: Path) -> None:
    path = tmp_path / "bad.yaml"
    path.write_text("apex:\n  cooldown_s: -1.0\n")

    with pytest.raises(ConfigValidationError) as excinfo:
        load_config(path)
    assert any("cooldown_s" in message for message in excinfo.value.validation_errors)


def test_unknown_key_rejected() -> None:
    with pytest.raises(ConfigValidationError):
        validate_config({"sync": {"rounds": 3}})


def test_inconsistent_bands_rejected() -> None:
    with pytest.raises(ConfigValidationError):
        validate_config({"swing": {"excellent_band": 0.7, "good_band": 0.8}})


def test_inverted_trophy_elbow_range_rejected() -> None:
    with pytest.raises(ConfigValidationError) as exc_info:
        validate_config({"trophy": {"min_elbow_deg": 170.0, "max_elbow_deg": 150.0}})

    assert "min_elbow_deg" in exc_info.value.validation_errors[0]


def test_validate_config_fills_sections() -> None:
    data = {}
    validate_config(data)

    assert data["sync"]["max_rounds"] == 5
    assert data["calibration"]["device_up"] == [0.0, 1.0, 0.0]


def test_validate_config_file() -> None:
    validate_config_file(str(DEFAULT_CONFIG_PATH))

    with pytest.raises(ConfigError):
        validate_config_file("does/not/exist.yaml")

import json
from pathlib import Path

from analysis.cli import main
from configs.settings import DEFAULT_CONFIG_PATH


def test_no_command_prints_help(capsys) -> None:
    assert main([]) == 1
    assert "simulate" in capsys.readouterr().out


def test_simulate_json(capsys) -> None:
    assert main(["simulate", "--skew", "2.5", "--json"]) == 0

    summary = json.loads(capsys.readouterr().out)
    assert summary["fused"]["provenance"] == "synced"
    assert abs(summary["sync"]["offset_s"] - 2.5) < 1e-6
    assert summary["apex"]["method"] == "parabolic"
    assert 170.0 < summary["trophy_angles"]["right_elbow_deg"] < 175.0


def test_simulate_text_report(capsys) -> None:
    assert main(["simulate", "--unreachable"]) == 0

    out = capsys.readouterr().out
    assert "Clock sync: failed" in out
    assert "fallback-heuristic" in out
    assert "Trophy angles: right elbow 172" in out


def test_validate_config(capsys, tmp_path: Path) -> None:
    assert main(["validate-config", "--config", str(DEFAULT_CONFIG_PATH)]) == 0
    assert "Configuration valid" in capsys.readouterr().out

    bad = tmp_path / "bad.yaml"
    bad.write_text("impact:\n  debounce_s: -3\n")
    assert main(["validate-config", "--config", str(bad)]) == 1
    assert "debounce_s" in capsys.readouterr().err


def test_simulate_with_bad_config(tmp_path: Path) -> None:
    assert main(["simulate", "--config", str(tmp_path / "missing.yaml")]) == 1

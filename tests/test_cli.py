"""Tests for the augur-score command line."""

import sys
from pathlib import Path

sys.path.insert(0, str(Path(__file__).parent.parent / "src"))

from typer.testing import CliRunner  # noqa: E402

from augur.cli import app  # noqa: E402

runner = CliRunner()


def _write_closes(path, n=40):
    rows = ["close"] + [f"{100.0 + 0.25 * ((i * 3) % 5):.2f}" for i in range(n)]
    path.write_text("\n".join(rows) + "\n")
    return path


def test_score_selected_predictors(tmp_path):
    csv = _write_closes(tmp_path / "closes.csv")
    result = runner.invoke(app, [
        "score", str(csv), "--predictor", "ewma-v1", "--predictor", "kalman-v1", "--symbol", "btcusdt",
    ])
    assert result.exit_code == 0, result.output
    lines = [line for line in result.output.splitlines() if "n=" in line]
    assert len(lines) == 6
    assert any(line.startswith("ewma-v1") and "1m" in line for line in lines)


def test_score_rejects_unknown_predictor(tmp_path):
    csv = _write_closes(tmp_path / "closes.csv")
    result = runner.invoke(app, ["score", str(csv), "--predictor", "does-not-exist"])
    assert result.exit_code != 0


def test_score_with_custom_config(tmp_path):
    csv = _write_closes(tmp_path / "closes.csv")
    config = tmp_path / "core.yaml"
    config.write_text(
        "predictors:\n"
        "  quick: {kind: ewma, alpha_mean: 0.5}\n"
        "horizons:\n"
        "  2m: 120000\n"
    )
    result = runner.invoke(app, ["score", str(csv), "--config", str(config), "--volnorm"])
    assert result.exit_code == 0, result.output
    lines = [line for line in result.output.splitlines() if "n=" in line]
    assert len(lines) == 1
    assert lines[0].startswith("quick")
    assert "n=38" in lines[0]


def test_baseline_reports_summary(tmp_path):
    csv = _write_closes(tmp_path / "closes.csv", n=20)
    result = runner.invoke(app, ["baseline", str(csv), "--alpha-mean", "0.2"])
    assert result.exit_code == 0, result.output
    assert "baseline n=19" in result.output


def test_score_missing_config_is_a_usage_error(tmp_path):
    csv = _write_closes(tmp_path / "closes.csv")
    result = runner.invoke(app, ["score", str(csv), "--config", str(tmp_path / "absent.yaml")])
    assert result.exit_code == 2
    assert not isinstance(result.exception, FileNotFoundError)

"""Tests for CLI module."""

import json
from pathlib import Path

import pytest
from click.testing import CliRunner

from hhdedupe.cli.main import cli


@pytest.fixture
def runner() -> CliRunner:
    """Provide Click test CLI runner."""
    return CliRunner()


# ---------------------------------------------------------------------------
# Top-level CLI
# ---------------------------------------------------------------------------


@pytest.mark.unit
def test_cli_version_flag(runner: CliRunner) -> None:
    """Test --version flag outputs version string."""
    result = runner.invoke(cli, ["--version"])

    assert result.exit_code == 0
    assert "hhdedupe" in result.output


@pytest.mark.unit
def test_cli_help(runner: CliRunner) -> None:
    """Test --help output lists commands."""
    result = runner.invoke(cli, ["--help"])

    assert result.exit_code == 0
    assert "run" in result.output
    assert "score" in result.output
    assert "check-config" in result.output


@pytest.mark.unit
def test_cli_invalid_command(runner: CliRunner) -> None:
    """Test invalid command returns non-zero exit code."""
    result = runner.invoke(cli, ["invalid-command"])

    assert result.exit_code != 0


# ---------------------------------------------------------------------------
# run command
# ---------------------------------------------------------------------------


@pytest.mark.integration
def test_run(runner: CliRunner, tmp_path: Path, records_file: Path) -> None:
    """Test run writes artifacts and reports a summary."""
    output_dir = tmp_path / "out"

    result = runner.invoke(cli, ["run", str(records_file), "-o", str(output_dir), "-v"])

    assert result.exit_code == 0, result.output
    assert "✓ Resolved 5 records into 3 clusters" in result.output
    assert (output_dir / "run.json").exists()
    assert (output_dir / "artifacts" / "clusters.jsonl").exists()


@pytest.mark.integration
def test_run_with_invalidation(runner: CliRunner, tmp_path: Path, records_file: Path) -> None:
    """Test --invalidate splits a duplicate pair."""
    output_dir = tmp_path / "out"

    result = runner.invoke(
        cli,
        ["run", str(records_file), "-o", str(output_dir), "--invalidate", "org-b:org-a"],
    )

    assert result.exit_code == 0, result.output
    assert "into 4 clusters" in result.output


@pytest.mark.unit
def test_run_bad_invalidate_pair(runner: CliRunner, tmp_path: Path, records_file: Path) -> None:
    """Test a malformed pair is a usage error."""
    result = runner.invoke(
        cli, ["run", str(records_file), "-o", str(tmp_path / "out"), "--invalidate", "org-a"]
    )

    assert result.exit_code == 2
    assert "RECORD_A:RECORD_B" in result.output


@pytest.mark.unit
def test_run_invalid_config_exits_2(
    runner: CliRunner, tmp_path: Path, records_file: Path
) -> None:
    """Test an invalid configuration aborts before any work."""
    config = tmp_path / "config.json"
    config.write_text(json.dumps({"thresholds": {"near": 2}}))
    output_dir = tmp_path / "out"

    result = runner.invoke(
        cli, ["run", str(records_file), "-o", str(output_dir), "--config", str(config)]
    )

    assert result.exit_code == 2
    assert "Invalid configuration" in result.output
    assert not output_dir.exists()


@pytest.mark.unit
def test_run_empty_input_fails(runner: CliRunner, tmp_path: Path) -> None:
    """Test a run without records exits 1."""
    empty = tmp_path / "empty.jsonl"
    empty.write_text("")

    result = runner.invoke(cli, ["run", str(empty), "-o", str(tmp_path / "out")])

    assert result.exit_code == 1
    assert "No records found" in result.output


@pytest.mark.unit
def test_run_nonexistent_file(runner: CliRunner, tmp_path: Path) -> None:
    """Test run with nonexistent file."""
    result = runner.invoke(cli, ["run", "nonexistent.jsonl", "-o", str(tmp_path)])

    assert result.exit_code != 0


# ---------------------------------------------------------------------------
# score command
# ---------------------------------------------------------------------------


@pytest.mark.unit
def test_score(runner: CliRunner, records_file: Path) -> None:
    """Test score prints the breakdown and the classification."""
    result = runner.invoke(cli, ["score", str(records_file), "job-a", "job-c"])

    assert result.exit_code == 0, result.output
    payload = json.loads(result.stdout)
    assert payload["pair_id"] == "job-a|job-c"
    assert payload["score"] == pytest.approx(0.65)
    assert payload["classification"] == "possible"


@pytest.mark.unit
def test_score_unknown_record(runner: CliRunner, records_file: Path) -> None:
    """Test an unknown record id exits 1."""
    result = runner.invoke(cli, ["score", str(records_file), "job-a", "job-zz"])

    assert result.exit_code == 1
    assert "job-zz" in result.output


@pytest.mark.unit
def test_score_mixed_kinds(runner: CliRunner, records_file: Path) -> None:
    """Test a job and an organization cannot be scored."""
    result = runner.invoke(cli, ["score", str(records_file), "job-a", "org-a"])

    assert result.exit_code == 1
    assert "Cannot score" in result.output


# ---------------------------------------------------------------------------
# check-config command
# ---------------------------------------------------------------------------


@pytest.mark.unit
def test_check_config(runner: CliRunner, tmp_path: Path) -> None:
    """Test a valid configuration prints its effective settings."""
    config = tmp_path / "config.json"
    config.write_text(json.dumps({"merge_reposts": True}))

    result = runner.invoke(cli, ["check-config", str(config)])

    assert result.exit_code == 0
    assert '"merge_reposts": true' in result.output
    assert "Configuration is valid" in result.output


@pytest.mark.unit
def test_check_config_invalid(runner: CliRunner, tmp_path: Path) -> None:
    """Test an invalid configuration exits 2."""
    config = tmp_path / "config.json"
    config.write_text(json.dumps({"weights": {"job": {"title": 1.0}}}))

    result = runner.invoke(cli, ["check-config", str(config)])

    assert result.exit_code == 2
    assert "must cover exactly" in result.output

"""Tests for run context module."""

import json
from pathlib import Path

import pytest

from hhdedupe.audit.context import RunContext


def _read_manifest(output_dir: Path) -> dict:
    """Read and parse run.json."""
    with (output_dir / "run.json").open() as f:
        return json.load(f)


def _read_events(output_dir: Path) -> list[dict]:
    """Read and parse events.jsonl."""
    with (output_dir / "events.jsonl").open() as f:
        return [json.loads(line) for line in f if line.strip()]


@pytest.mark.unit
def test_context_start_creates_structure(tmp_path: Path) -> None:
    """Test start() creates dirs, events file, and sets run_id."""
    output_dir = tmp_path / "output"
    run = RunContext.start(output_dir=output_dir, parameters={"k": 1})

    assert run.run_id is not None
    assert "__" in run.run_id
    assert output_dir.exists()
    assert run.artifacts_dir == output_dir / "artifacts"
    assert run.artifacts_dir.is_dir()
    assert (output_dir / "events.jsonl").exists()

    run.finish(status="success")


@pytest.mark.unit
def test_context_stage_lifecycle(tmp_path: Path) -> None:
    """Test start_stage → finish_stage records timing and counters."""
    output_dir = tmp_path / "output"
    run = RunContext.start(output_dir=output_dir, parameters={})

    run.start_stage("resolve", expected_records=50)
    run.finish_stage("resolve", counters={"records_committed": 48, "records_rejected": 2})

    stage = run.manifest_writer.manifest.stages[0]
    assert stage.name == "resolve"
    assert stage.finished_at is not None
    assert stage.duration_seconds is not None
    assert stage.duration_seconds >= 0
    assert stage.counters["records_committed"] == 48

    run.finish(status="success")


@pytest.mark.unit
def test_context_finish_stage_not_started_raises(tmp_path: Path) -> None:
    """Test finishing a stage that was never started raises ValueError."""
    output_dir = tmp_path / "output"
    run = RunContext.start(output_dir=output_dir, parameters={})

    with pytest.raises(ValueError, match="Stage not started"):
        run.finish_stage("ghost")

    run.finish(status="failed")


@pytest.mark.unit
def test_context_error_recording(tmp_path: Path) -> None:
    """Test record_error adds error to manifest and events."""
    output_dir = tmp_path / "output"
    run = RunContext.start(output_dir=output_dir, parameters={})

    exc = ValueError("bad input")
    run.record_error(exc, stage="invalidate", rid="job-001", include_traceback=True)

    error = run.manifest_writer.manifest.errors[0]
    assert error.exception_class == "ValueError"
    assert error.message == "bad input"
    assert error.stage == "invalidate"
    assert error.rid == "job-001"
    assert error.traceback is not None

    run.finish(status="failed")


@pytest.mark.unit
def test_context_register_artifact(tmp_path: Path) -> None:
    """Test register_artifact hashes the file and logs artifact_written."""
    output_dir = tmp_path / "output"
    run = RunContext.start(output_dir=output_dir, parameters={})
    path = run.artifacts_dir / "clusters.jsonl"
    path.write_text('{"cluster_id":"c:1"}\n')

    run.register_artifact(path, stage="export", record_count=1)
    run.finish(status="success")

    data = _read_manifest(output_dir)
    artifact = next(a for a in data["artifacts"] if a["path"] == "artifacts/clusters.jsonl")
    assert artifact["sha256"].startswith("sha256:")
    assert artifact["record_count"] == 1

    written = [e for e in _read_events(output_dir) if e["event"] == "artifact_written"]
    assert written[0]["data"]["path"] == "artifacts/clusters.jsonl"


@pytest.mark.unit
def test_context_finish_is_idempotent(tmp_path: Path) -> None:
    """Test calling finish twice writes a single run_finished event."""
    output_dir = tmp_path / "output"
    run = RunContext.start(output_dir=output_dir, parameters={})

    run.finish(status="success")
    run.finish(status="failed")

    events = _read_events(output_dir)
    assert [e["event"] for e in events].count("run_finished") == 1
    assert _read_manifest(output_dir)["status"] == "success"


@pytest.mark.unit
def test_context_manager_success(tmp_path: Path) -> None:
    """Test context manager writes success manifest on clean exit."""
    output_dir = tmp_path / "output"

    with RunContext.start(output_dir=output_dir, parameters={}) as run:
        run.start_stage("s1")
        run.finish_stage("s1", counters={"n": 10})

    data = _read_manifest(output_dir)
    assert data["status"] == "success"
    assert data["duration_seconds"] > 0


@pytest.mark.unit
def test_context_manager_exception(tmp_path: Path) -> None:
    """Test context manager writes failed manifest on exception."""
    output_dir = tmp_path / "output"

    with pytest.raises(RuntimeError):
        with RunContext.start(output_dir=output_dir, parameters={}):
            raise RuntimeError("boom")

    data = _read_manifest(output_dir)
    assert data["status"] == "failed"
    assert len(data["errors"]) == 1
    assert data["errors"][0]["exception_class"] == "RuntimeError"


@pytest.mark.unit
def test_context_full_workflow_produces_valid_outputs(tmp_path: Path) -> None:
    """Test full workflow: events.jsonl has all lifecycle events, run.json is complete."""
    output_dir = tmp_path / "output"

    run = RunContext.start(
        output_dir=output_dir,
        parameters={"config": {"merge_reposts": False}},
        command_argv=["hhdedupe", "run"],
    )
    run.start_stage("resolve", expected_records=100)
    run.finish_stage("resolve", counters={"records_committed": 100, "edges_created": 12})
    run.finish(status="success", records_processed=100)

    events = _read_events(output_dir)
    event_types = [e["event"] for e in events]
    assert event_types == ["run_started", "stage_started", "stage_finished", "run_finished"]
    assert all(e["run_id"] == run.run_id for e in events)

    data = _read_manifest(output_dir)
    assert data["status"] == "success"
    assert data["manifest_version"] == "1.0.0"
    assert data["parameters"]["config"]["merge_reposts"] is False
    assert data["command"]["argv"] == ["hhdedupe", "run"]
    assert data["environment"]["python_version"] is not None
    assert len(data["stages"]) == 1
    assert data["stages"][0]["counters"]["edges_created"] == 12
    assert data["duration_seconds"] > 0

    # events.jsonl is hashed into the artifact list
    artifact_paths = [a["path"] for a in data["artifacts"]]
    assert "events.jsonl" in artifact_paths

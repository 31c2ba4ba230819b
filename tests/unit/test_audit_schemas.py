"""Tests for schema validation of manifests and events."""

import json
from pathlib import Path

import jsonschema
import pytest

from hhdedupe.audit import RunContext

_SCHEMAS_DIR = Path(__file__).parent.parent.parent / "schemas"


@pytest.fixture(scope="module")
def manifest_schema() -> dict:
    """Load run manifest JSON schema."""
    with (_SCHEMAS_DIR / "run_manifest.schema.json").open() as f:
        return json.load(f)


@pytest.fixture(scope="module")
def event_schema() -> dict:
    """Load log event JSON schema."""
    with (_SCHEMAS_DIR / "log_event.schema.json").open() as f:
        return json.load(f)


@pytest.mark.unit
def test_generated_manifest_validates(tmp_path: Path, manifest_schema: dict) -> None:
    """Test programmatically generated manifest validates against schema."""
    output_dir = tmp_path / "output"
    run = RunContext.start(output_dir=output_dir, parameters={"config": {"shingle_size": 5}})
    run.start_stage("resolve")
    run.finish_stage("resolve", counters={"records_committed": 10})
    run.record_error(KeyError("job-404"), stage="invalidate")
    run.finish(status="success")

    with (output_dir / "run.json").open() as f:
        jsonschema.validate(instance=json.load(f), schema=manifest_schema)


@pytest.mark.unit
def test_generated_events_validate(tmp_path: Path, event_schema: dict) -> None:
    """Test programmatically generated events validate against schema."""
    output_dir = tmp_path / "output"
    run = RunContext.start(output_dir=output_dir, parameters={})
    run.start_stage("resolve")
    run.audit_logger.record_processed(rid="job-001", cluster_id="c:1", is_canonical=True, edges=0)
    run.audit_logger.candidate_skipped(rid="job-002", candidate_id="job-009", reason="not_found")
    run.audit_logger.clusters_merged(cluster_id="c:2", merged_from=["c:0", "c:1"], size=3)
    run.finish_stage("resolve", counters={})
    run.finish(status="success")

    with (output_dir / "events.jsonl").open() as f:
        for line in f:
            if line.strip():
                jsonschema.validate(instance=json.loads(line), schema=event_schema)


@pytest.mark.unit
def test_invalid_data_rejected_by_schema(
    manifest_schema: dict,
    event_schema: dict,
) -> None:
    """Test schemas reject invalid status, level, and missing fields."""
    with pytest.raises(jsonschema.ValidationError):
        jsonschema.validate(
            instance={
                "manifest_version": "1.0.0",
                "run_id": "x",
                "created_at": "2026-01-01T00:00:00Z",
                "status": "bogus",
                "transform_version": "v1",
                "command": {"argv": ["x"]},
                "environment": {
                    "python_version": "3.12",
                    "platform": "Linux",
                    "package_version": "0.1.0",
                },
                "parameters": {},
                "inputs": [],
                "stages": [],
                "artifacts": [],
                "errors": [],
            },
            schema=manifest_schema,
        )

    with pytest.raises(jsonschema.ValidationError):
        jsonschema.validate(
            instance={
                "ts": "2026-01-01T00:00:00Z",
                "run_id": "x",
                "level": "TRACE",
                "event": "e",
                "data": {},
            },
            schema=event_schema,
        )

    # Missing required event fields
    with pytest.raises(jsonschema.ValidationError):
        jsonschema.validate(instance={"ts": "x", "run_id": "x"}, schema=event_schema)

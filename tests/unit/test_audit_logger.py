"""Tests for audit logger module."""

import json
import threading
from pathlib import Path

import pytest

from hhdedupe.audit.logger import AuditLogger


@pytest.fixture
def logger(tmp_path: Path) -> AuditLogger:
    """Create an AuditLogger writing to a temp file."""
    log = AuditLogger(run_id="test_run", log_path=tmp_path / "events.jsonl")
    yield log
    log.close()


def _read_events(path: Path) -> list[dict]:
    """Read and parse all events from a JSONL file."""
    with path.open() as f:
        return [json.loads(line) for line in f if line.strip()]


@pytest.mark.unit
def test_logger_writes_event_with_required_fields(logger: AuditLogger) -> None:
    """Test event() writes JSONL with ts, run_id, level, event, data."""
    logger.event("test_event", data={"key": "value"}, rid="job-001")
    logger.close()

    events = _read_events(logger.log_path)
    assert len(events) == 1
    e = events[0]
    assert e["ts"].endswith("Z")
    assert e["run_id"] == "test_run"
    assert e["level"] == "INFO"
    assert e["event"] == "test_event"
    assert e["data"] == {"key": "value"}
    assert e["rid"] == "job-001"


@pytest.mark.unit
def test_logger_stage_context(logger: AuditLogger) -> None:
    """Test set_stage applies default stage; explicit stage overrides it."""
    logger.set_stage("resolve")
    logger.event("e1")
    logger.event("e2", stage="override")
    logger.set_stage(None)
    logger.event("e3")
    logger.close()

    events = _read_events(logger.log_path)
    assert events[0]["stage"] == "resolve"
    assert events[1]["stage"] == "override"
    assert events[2]["stage"] is None


@pytest.mark.unit
def test_logger_warn_level(logger: AuditLogger) -> None:
    """Test warn() writes a WARN-level event."""
    logger.warn("oversized_block", data={"size": 1001}, stage="blocking")
    logger.close()

    event = _read_events(logger.log_path)[0]
    assert event["level"] == "WARN"
    assert event["stage"] == "blocking"
    assert event["data"]["size"] == 1001


@pytest.mark.unit
@pytest.mark.parametrize(
    ("method", "kwargs", "expected_event", "expected_data_subset"),
    [
        (
            "run_started",
            {"command": ["hhdedupe", "run"], "parameters": {"max_workers": 1}},
            "run_started",
            {"command": ["hhdedupe", "run"]},
        ),
        (
            "run_finished",
            {"status": "success", "duration_seconds": 10.5, "records_processed": 100},
            "run_finished",
            {"status": "success", "records_processed": 100},
        ),
        (
            "stage_finished",
            {"stage": "s1", "duration_seconds": 5.0, "counters": {"n": 42}},
            "stage_finished",
            {"counters": {"n": 42}},
        ),
        (
            "record_processed",
            {"rid": "job-001", "cluster_id": "c:abc", "is_canonical": True, "edges": 2},
            "record_processed",
            {"cluster_id": "c:abc", "is_canonical": True, "edges": 2},
        ),
        (
            "clusters_merged",
            {"cluster_id": "c:new", "merged_from": ["c:a", "c:b"], "size": 3},
            "clusters_merged",
            {"merged_from": ["c:a", "c:b"], "size": 3},
        ),
        (
            "artifact_written",
            {"path": "a.jsonl", "sha256": "sha256:abc", "bytes_written": 1024},
            "artifact_written",
            {"path": "a.jsonl", "bytes": 1024},
        ),
    ],
)
def test_logger_convenience_methods(
    logger: AuditLogger,
    method: str,
    kwargs: dict,
    expected_event: str,
    expected_data_subset: dict,
) -> None:
    """Test each convenience method writes correct event type and data."""
    getattr(logger, method)(**kwargs)
    logger.close()

    event = _read_events(logger.log_path)[0]
    assert event["event"] == expected_event
    for key, value in expected_data_subset.items():
        assert event["data"][key] == value


@pytest.mark.unit
def test_logger_candidate_skipped_is_warn(logger: AuditLogger) -> None:
    """Test candidate_skipped logs a WARN event in the match stage."""
    logger.candidate_skipped(rid="job-002", candidate_id="job-001", reason="not_found")
    logger.close()

    event = _read_events(logger.log_path)[0]
    assert event["level"] == "WARN"
    assert event["stage"] == "match"
    assert event["rid"] == "job-002"
    assert event["data"] == {"candidate_id": "job-001", "reason": "not_found"}


@pytest.mark.unit
def test_logger_error_event(logger: AuditLogger) -> None:
    """Test error() writes ERROR level with optional traceback."""
    logger.error(exception_class="ValueError", message="bad", traceback="Traceback...")
    logger.close()

    event = _read_events(logger.log_path)[0]
    assert event["level"] == "ERROR"
    assert event["data"]["exception_class"] == "ValueError"
    assert event["data"]["traceback"] == "Traceback..."


@pytest.mark.unit
def test_logger_context_manager_and_append(tmp_path: Path) -> None:
    """Test context manager closes file and reopening appends."""
    log_path = tmp_path / "events.jsonl"

    with AuditLogger(run_id="r1", log_path=log_path) as log:
        log.event("first")
    assert log._file.closed

    with AuditLogger(run_id="r2", log_path=log_path) as log:
        log.event("second")

    events = _read_events(log_path)
    assert [e["event"] for e in events] == ["first", "second"]


@pytest.mark.unit
def test_logger_concurrent_writes_keep_lines_intact(logger: AuditLogger) -> None:
    """Test events written from several threads never interleave."""

    def write(worker: int) -> None:
        for i in range(50):
            logger.event("tick", data={"worker": worker, "i": i})

    threads = [threading.Thread(target=write, args=(w,)) for w in range(4)]
    for t in threads:
        t.start()
    for t in threads:
        t.join()
    logger.close()

    events = _read_events(logger.log_path)
    assert len(events) == 200
    assert {e["data"]["worker"] for e in events} == {0, 1, 2, 3}

"""Batch runner: resolve a JSONL file of records and write the results.

Stage flow:
    ingest     Parse the input file into records
    resolve    Process every record through the coordinator
    invalidate Apply administrative edge invalidations (optional)
    export     Write assignments, edges, clusters, review queue and reposts

Every run writes ``events.jsonl`` and a ``run.json`` manifest next to the
``artifacts/`` directory.
"""

import json
from collections.abc import Iterable, Sequence
from pathlib import Path
from typing import Any

from hhdedupe.audit.context import RunContext
from hhdedupe.audit.models import InputInfo
from hhdedupe.engine.config import DedupConfig, RunResult
from hhdedupe.engine.coordinator import DedupCoordinator, ProcessResult
from hhdedupe.errors import EdgeNotFoundError
from hhdedupe.models import Record
from hhdedupe.parse.ingestion import ingest_file

ARTIFACT_NAMES = ("assignments", "edges", "clusters", "review_queue", "reposts")


def _write_rows(path: Path, rows: Iterable[dict[str, Any]]) -> int:
    """Write dictionaries as deterministic JSONL; returns the line count."""
    count = 0
    with path.open("w", encoding="utf-8", newline="\n") as f:
        for row in rows:
            f.write(json.dumps(row, ensure_ascii=False, sort_keys=True) + "\n")
            count += 1
    return count


# ---------------------------------------------------------------------------
# Individual stage functions
# ---------------------------------------------------------------------------


def _stage_ingest(input_path: Path, run: RunContext) -> tuple[list[Record], int]:
    """Parse the input file; returns records and the rejected line count."""
    run.start_stage("ingest")
    records, report = ingest_file(input_path)

    for message in report.errors:
        run.audit_logger.warn("line_rejected", data={"reason": message}, stage="ingest")
    for message in report.warnings:
        run.audit_logger.warn("duplicate_record_id", data={"reason": message}, stage="ingest")

    run.manifest_writer.add_input(
        InputInfo(
            name=report.filename,
            bytes=report.file_size,
            sha256=report.file_digest,
            records_loaded=report.records_parsed,
            records_rejected=report.lines_rejected,
        )
    )
    run.finish_stage(
        "ingest",
        counters={"records_in": report.records_parsed, "lines_rejected": report.lines_rejected},
    )
    return records, report.lines_rejected


def _stage_resolve(
    records: list[Record],
    coordinator: DedupCoordinator,
    run: RunContext,
    max_workers: int,
) -> list[ProcessResult]:
    """Process every record through the coordinator."""
    run.start_stage("resolve", expected_records=len(records))
    run.audit_logger.set_stage("resolve")
    results = coordinator.process_many(records, max_workers=max_workers)
    run.audit_logger.set_stage(None)

    committed = [r for r in results if r.success]
    run.finish_stage(
        "resolve",
        counters={
            "records_committed": len(committed),
            "records_rejected": len(results) - len(committed),
            "edges_created": sum(len(r.edges) for r in committed),
            "possible_matches": sum(len(r.possible) for r in committed),
            "reposts": sum(len(r.reposts) for r in committed),
        },
    )
    return results


def _stage_invalidate(
    pairs: Sequence[tuple[str, str]],
    coordinator: DedupCoordinator,
    run: RunContext,
) -> None:
    """Apply edge invalidations; unknown edges are recorded as errors."""
    run.start_stage("invalidate")
    applied = 0
    for record_a_id, record_b_id in pairs:
        try:
            coordinator.invalidate_edge(record_a_id, record_b_id)
        except EdgeNotFoundError as e:
            run.record_error(e, stage="invalidate")
            continue
        applied += 1
    run.finish_stage(
        "invalidate",
        counters={"requested": len(pairs), "applied": applied},
    )


def _stage_export(coordinator: DedupCoordinator, run: RunContext) -> dict[str, str]:
    """Write the final state as JSONL artifacts; returns name → path."""
    run.start_stage("export")
    snapshot = coordinator.snapshot()
    output_files: dict[str, str] = {}
    counters: dict[str, int] = {}

    for name in ARTIFACT_NAMES:
        path = run.artifacts_dir / f"{name}.jsonl"
        count = _write_rows(path, snapshot[name])
        run.register_artifact(path, stage="export", record_count=count)
        output_files[name] = str(path)
        counters[name] = count

    run.finish_stage("export", counters=counters)
    return output_files


# ---------------------------------------------------------------------------
# Runner
# ---------------------------------------------------------------------------


def _run_stages(
    input_path: Path,
    config: DedupConfig,
    run: RunContext,
    invalidate: Sequence[tuple[str, str]],
    max_workers: int,
) -> RunResult:
    """Execute all stages sequentially.

    Accumulates partial results so that diagnostic information
    is preserved even when a late stage fails.
    """
    total_records = 0
    rejected_records = 0
    output_files: dict[str, str] = {}

    try:
        records, lines_rejected = _stage_ingest(input_path, run)
        total_records = len(records)
        rejected_records = lines_rejected

        if total_records == 0:
            return RunResult(
                success=False,
                rejected_records=rejected_records,
                error_message="No records found in input",
            )

        coordinator = DedupCoordinator(config, logger=run.audit_logger)
        results = _stage_resolve(records, coordinator, run, max_workers)
        rejected_records += sum(1 for r in results if not r.success)

        if invalidate:
            _stage_invalidate(invalidate, coordinator, run)

        coordinator.check_invariants()
        output_files = _stage_export(coordinator, run)

        clusters = coordinator.clusters()
        duplicates = [c for c in clusters if c.size > 1]
        clustered = len(coordinator)
        in_duplicates = sum(c.size for c in duplicates)

        return RunResult(
            success=True,
            total_records=total_records,
            rejected_records=rejected_records,
            total_clusters=len(clusters),
            duplicate_clusters=len(duplicates),
            records_in_duplicates=in_duplicates,
            possible_matches=len(coordinator.review_queue()),
            reposts=len(coordinator.reposts()),
            dedup_rate=round((clustered - len(clusters)) / clustered, 6) if clustered else 0.0,
            output_files=output_files,
        )

    except Exception as e:
        error_msg = f"{type(e).__name__}: {e}"
        run.record_error(e, stage="pipeline", include_traceback=True)
        return RunResult(
            success=False,
            total_records=total_records,
            rejected_records=rejected_records,
            output_files=output_files,
            error_message=error_msg,
        )


def run_dedup(
    input_path: Path | str,
    output_dir: Path | str,
    config: DedupConfig | None = None,
    invalidate: Sequence[tuple[str, str]] = (),
    max_workers: int = 1,
    command_argv: list[str] | None = None,
) -> RunResult:
    """Resolve a JSONL file of records end to end.

    Parameters
    ----------
    input_path : Path | str
        JSONL file, one record per line.
    output_dir : Path | str
        Directory for ``events.jsonl``, ``run.json`` and ``artifacts/``.
    config : DedupConfig | None, optional
        Engine configuration. If None, uses defaults.
    invalidate : Sequence[tuple[str, str]], optional
        Edges to invalidate after resolution.
    max_workers : int, optional
        Coordinator thread pool size, by default 1 (sequential).
    command_argv : list[str] | None, optional
        Command line recorded in the manifest.

    Returns
    -------
    RunResult
        Run statistics and output file paths.

    Examples
    --------
        >>> from hhdedupe.engine import run_dedup
        >>> result = run_dedup("postings.jsonl", "out")
        >>> if result.success:
        ...     print(result.duplicate_clusters, result.output_files["clusters"])
    """
    input_path = Path(input_path)
    output_dir = Path(output_dir)

    if config is None:
        config = DedupConfig()

    if not input_path.is_file():
        return RunResult(success=False, error_message=f"Input file does not exist: {input_path}")

    run = RunContext.start(
        output_dir=output_dir,
        parameters={
            "config": config.to_dict(),
            "invalidate": [f"{a}:{b}" for a, b in invalidate],
            "max_workers": max_workers,
        },
        command_argv=command_argv,
    )
    result = _run_stages(input_path, config, run, invalidate, max_workers)
    run.finish(
        status="success" if result.success else "failed",
        records_processed=result.total_records,
    )
    return result

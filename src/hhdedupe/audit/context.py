"""Run context manager for audit logging and manifest tracking."""

import sys
import traceback
from datetime import UTC, datetime
from pathlib import Path
from typing import Any

from hhdedupe.audit.helpers import (
    TRACKED_DEPENDENCIES,
    generate_run_id,
    get_dependency_versions,
    get_git_sha,
    get_package_version,
    get_platform_info,
    get_python_version,
)
from hhdedupe.audit.logger import AuditLogger
from hhdedupe.audit.manifest import ManifestWriter
from hhdedupe.audit.models import (
    ArtifactInfo,
    CommandInfo,
    EnvironmentInfo,
    ErrorInfo,
    StageInfo,
)
from hhdedupe.utils import calculate_file_sha256, get_iso_timestamp

__all__ = ["RunContext"]


class RunContext:
    """Context manager for a batch dedup run.

    Manages audit logging and manifest writing for a complete run.
    Tracks stage timing internally to avoid coupling with ManifestWriter
    internals.

    Attributes
    ----------
    run_id : str
        Unique run identifier.
    output_dir : Path
        Output directory for all artifacts.
    audit_logger : AuditLogger
        Structured event logger.
    manifest_writer : ManifestWriter
        Manifest builder and writer.
    start_time : datetime
        Run start timestamp.
    """

    def __init__(
        self,
        run_id: str,
        output_dir: Path,
        audit_logger: AuditLogger,
        manifest_writer: ManifestWriter,
    ) -> None:
        self.run_id = run_id
        self.output_dir = output_dir
        self.audit_logger = audit_logger
        self.manifest_writer = manifest_writer
        self.start_time = datetime.now(UTC)
        self._stage_start_times: dict[str, datetime] = {}
        self._finished = False

    @property
    def artifacts_dir(self) -> Path:
        """Directory holding the run's JSONL outputs."""
        return self.output_dir / "artifacts"

    @classmethod
    def start(
        cls,
        output_dir: Path,
        parameters: dict[str, Any],
        command_argv: list[str] | None = None,
    ) -> "RunContext":
        """Start a new run context.

        Creates output directory structure, initializes logger and manifest.

        Parameters
        ----------
        output_dir : Path
            Output directory for run artifacts.
        parameters : dict[str, Any]
            Configuration parameters for run.
        command_argv : list[str] | None, optional
            Command-line arguments, uses sys.argv if None.

        Returns
        -------
        RunContext
            Initialized run context.
        """
        run_id = generate_run_id()

        output_dir.mkdir(parents=True, exist_ok=True)
        (output_dir / "artifacts").mkdir(exist_ok=True)

        command = CommandInfo(
            argv=command_argv or sys.argv,
            cwd=Path.cwd().name or None,
        )

        environment = EnvironmentInfo(
            python_version=get_python_version(),
            platform=get_platform_info(),
            package_version=get_package_version(),
            dependencies=get_dependency_versions(TRACKED_DEPENDENCIES),
        )

        git_sha = get_git_sha()
        transform_version = f"git:{git_sha}" if git_sha else get_package_version()

        audit_logger = AuditLogger(
            run_id=run_id,
            log_path=output_dir / "events.jsonl",
        )

        manifest_writer = ManifestWriter(
            run_id=run_id,
            output_dir=output_dir,
            command=command,
            environment=environment,
            transform_version=transform_version,
            parameters=parameters,
        )

        audit_logger.run_started(command=command.argv, parameters=parameters)

        return cls(
            run_id=run_id,
            output_dir=output_dir,
            audit_logger=audit_logger,
            manifest_writer=manifest_writer,
        )

    def start_stage(self, stage_name: str, expected_records: int | None = None) -> None:
        """Start a run stage.

        Parameters
        ----------
        stage_name : str
            Stage identifier.
        expected_records : int | None, optional
            Expected number of records to process.
        """
        self._stage_start_times[stage_name] = datetime.now(UTC)
        self.manifest_writer.add_stage(StageInfo(name=stage_name, started_at=get_iso_timestamp()))
        self.audit_logger.stage_started(stage=stage_name, expected_records=expected_records)

    def finish_stage(
        self,
        stage_name: str,
        counters: dict[str, int] | None = None,
    ) -> None:
        """Finish a run stage.

        Parameters
        ----------
        stage_name : str
            Stage identifier.
        counters : dict[str, int] | None, optional
            Final counters for stage.

        Raises
        ------
        ValueError
            If stage was not started.
        """
        start_time = self._stage_start_times.pop(stage_name, None)
        if start_time is None:
            raise ValueError(f"Stage not started: {stage_name}")

        duration = (datetime.now(UTC) - start_time).total_seconds()

        self.manifest_writer.finish_stage(
            stage_name=stage_name,
            finished_at=get_iso_timestamp(),
            duration_seconds=duration,
        )

        if counters:
            self.manifest_writer.update_stage_counters(stage_name=stage_name, counters=counters)

        self.audit_logger.stage_finished(
            stage=stage_name,
            duration_seconds=duration,
            counters=counters,
        )

    def register_artifact(self, path: Path, stage: str, record_count: int | None = None) -> None:
        """Hash an output file and record it in the manifest and event log.

        Parameters
        ----------
        path : Path
            Artifact path inside ``output_dir``.
        stage : str
            Stage that produced the artifact.
        record_count : int | None, optional
            Number of JSONL lines written.
        """
        sha256 = calculate_file_sha256(path)
        relative = path.relative_to(self.output_dir).as_posix()
        size = path.stat().st_size
        self.manifest_writer.add_output_artifact(
            ArtifactInfo(path=relative, sha256=sha256, bytes=size, record_count=record_count)
        )
        self.audit_logger.artifact_written(
            path=relative,
            sha256=sha256,
            stage=stage,
            bytes_written=size,
            record_count=record_count,
        )

    def record_error(
        self,
        exception: BaseException,
        stage: str | None = None,
        rid: str | None = None,
        include_traceback: bool = False,
    ) -> None:
        """Record an error in logs and manifest.

        Parameters
        ----------
        exception : BaseException
            Exception that occurred.
        stage : str | None, optional
            Stage where error occurred.
        rid : str | None, optional
            Record identifier if error is record-specific.
        include_traceback : bool, optional
            Whether to include stack trace, by default False.
        """
        exception_class = type(exception).__name__
        message = str(exception)

        tb = None
        if include_traceback:
            tb = "".join(
                traceback.format_exception(type(exception), exception, exception.__traceback__)
            )

        self.manifest_writer.add_error(
            ErrorInfo(
                timestamp=get_iso_timestamp(),
                exception_class=exception_class,
                message=message,
                stage=stage,
                traceback=tb,
                rid=rid,
            )
        )

        self.audit_logger.error(
            exception_class=exception_class,
            message=message,
            stage=stage,
            rid=rid,
            traceback=tb,
        )

    def finish(
        self,
        status: str = "success",
        records_processed: int | None = None,
    ) -> None:
        """Finish the run and write final manifest.

        Closes the audit logger before computing artifact hashes to ensure
        the events.jsonl file is complete on disk. Calling ``finish`` twice
        is a no-op.

        Parameters
        ----------
        status : str, optional
            Final run status, by default "success".
        records_processed : int | None, optional
            Total records processed.
        """
        if self._finished:
            return
        self._finished = True

        duration = (datetime.now(UTC) - self.start_time).total_seconds()

        self.audit_logger.run_finished(
            status=status,
            duration_seconds=duration,
            records_processed=records_processed,
        )
        self.audit_logger.close()

        self.manifest_writer.compute_output_artifacts()
        self.manifest_writer.finish(
            status=status,
            finished_at=get_iso_timestamp(),
            duration_seconds=duration,
        )

    def __enter__(self) -> "RunContext":
        """Enter context manager."""
        return self

    def __exit__(self, exc_type: Any, exc_val: Any, exc_tb: Any) -> None:
        """Exit context manager, recording errors if present."""
        if exc_type is not None:
            self.record_error(exc_val, include_traceback=True)
            self.finish(status="failed")
        else:
            self.finish(status="success")

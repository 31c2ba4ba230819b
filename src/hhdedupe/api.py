"""Public API for resolving job and organization records.

This module provides the main public API for hhdedupe, enabling:
- Loading records from JSON Lines files
- Exporting records, edges and clusters to JSONL format
- Running a batch resolution
"""

from __future__ import annotations

import json
from collections.abc import Iterable
from pathlib import Path
from typing import TYPE_CHECKING, Any, Protocol

from hhdedupe.models import Record
from hhdedupe.parse.ingestion import ingest_file

if TYPE_CHECKING:
    from hhdedupe.engine.config import DedupConfig, RunResult

__all__ = [
    "load_records",
    "write_jsonl",
    "dedupe",
    "LoadError",
]


class _Serializable(Protocol):
    def to_dict(self) -> dict[str, Any]: ...


class LoadError(Exception):
    """Raised when loading records fails."""

    def __init__(
        self,
        message: str,
        file: str | None = None,
    ) -> None:
        """Initialize load error.

        Parameters
        ----------
        message : str
            Error message.
        file : str | None, optional
            File where error occurred.
        """
        super().__init__(message)
        self.file = file


def load_records(
    path: str | Path,
    *,
    strict: bool = True,
) -> list[Record]:
    """Load records from a JSON Lines file.

    Parameters
    ----------
    path : str | Path
        Path to file to load (one ``Record.to_dict`` object per line).
    strict : bool, optional
        If True, raise on any malformed line. If False, return
        whatever records could be parsed, by default True.

    Returns
    -------
    list[Record]
        Parsed records in file order.

    Raises
    ------
    LoadError
        If a line fails to parse and strict=True.
    FileNotFoundError
        If file does not exist.

    Examples
    --------
        >>> from hhdedupe import load_records
        >>> records = load_records("postings.jsonl")
        >>> print(records[0].kind)
    """
    file_path = Path(path)

    if not file_path.exists():
        raise FileNotFoundError(f"File not found: {path}")

    records, result = ingest_file(file_path)

    if result.errors and strict:
        error_msg = "; ".join(result.errors[:3])
        raise LoadError(
            f"Failed to load {file_path.name}: {error_msg}",
            file=str(file_path),
        )

    return records


def write_jsonl(
    items: Iterable[_Serializable],
    path: str | Path,
    *,
    sort_keys: bool = True,
) -> int:
    """Write objects to a JSONL file (one JSON object per line).

    Accepts anything with a ``to_dict`` method: records, edges, clusters,
    assignments. Output is deterministic with consistent field ordering and
    UTF-8 encoding.

    Parameters
    ----------
    items : Iterable[_Serializable]
        Objects to write.
    path : str | Path
        Output file path.
    sort_keys : bool, optional
        Whether to sort dictionary keys for deterministic output,
        by default True.

    Returns
    -------
    int
        Number of lines written.

    Examples
    --------
        >>> from hhdedupe import load_records, write_jsonl
        >>> records = load_records("postings.jsonl")
        >>> write_jsonl(records, "copy.jsonl")
    """
    file_path = Path(path)
    count = 0

    with file_path.open("w", encoding="utf-8", newline="\n") as f:
        for item in items:
            json_str = json.dumps(
                item.to_dict(),
                ensure_ascii=False,
                sort_keys=sort_keys,
            )
            f.write(json_str + "\n")
            count += 1
    return count


def dedupe(
    input_path: str | Path,
    *,
    output_dir: str | Path = "out",
    config: DedupConfig | None = None,
    max_workers: int = 1,
) -> RunResult:
    """Resolve job and organization records from a JSONL file.

    Simplified interface to the batch runner: loads the records, runs them
    through the dedup coordinator and writes the cluster artifacts.

    Parameters
    ----------
    input_path : str | Path
        JSONL file with one record per line.
    output_dir : str | Path, optional
        Directory for output files, by default "out".
    config : DedupConfig | None, optional
        Engine configuration. If None, uses defaults.
    max_workers : int, optional
        Worker threads, by default 1.

    Returns
    -------
    RunResult
        Run result with statistics and output file paths.
        Access ``result.output_files`` for a dict mapping artifact names to paths.

    Raises
    ------
    FileNotFoundError
        If input path does not exist.
    LoadError
        If the run fails.

    Examples
    --------
        >>> from hhdedupe import dedupe
        >>> result = dedupe("postings.jsonl", output_dir="results")
        >>> print(result.total_clusters, result.duplicate_clusters)
    """
    from hhdedupe.engine import run_dedup

    input_path_obj = Path(input_path)

    if not input_path_obj.exists():
        raise FileNotFoundError(f"Input path not found: {input_path}")

    result = run_dedup(
        input_path=input_path_obj,
        output_dir=Path(output_dir),
        config=config,
        max_workers=max_workers,
    )

    if not result.success:
        raise LoadError(f"Resolution failed: {result.error_message}", file=str(input_path_obj))

    return result

"""JSON Lines ingestion of normalized records."""

import json
from dataclasses import dataclass
from pathlib import Path

from hhdedupe.models import Record
from hhdedupe.utils import calculate_file_sha256


@dataclass(frozen=True)
class FileIngestionResult:
    """Immutable result of ingesting a single file.

    Attributes
    ----------
    filename : str
        Name of the file (basename).
    filepath : str
        Full path to the file.
    file_size : int
        Size of file in bytes.
    file_digest : str
        SHA-256 digest of file bytes ("sha256:" prefixed).
    records_parsed : int
        Number of records successfully parsed.
    lines_rejected : int
        Non-blank lines that did not parse into a record.
    warnings : tuple[str, ...]
        Warning messages.
    errors : tuple[str, ...]
        Error messages, one per rejected line.
    """

    filename: str
    filepath: str
    file_size: int
    file_digest: str
    records_parsed: int
    lines_rejected: int = 0
    warnings: tuple[str, ...] = ()
    errors: tuple[str, ...] = ()


def ingest_file(file_path: Path) -> tuple[list[Record], FileIngestionResult]:
    """Ingest a JSONL file of records (one ``Record.to_dict`` object per line).

    Malformed lines are reported in the result and skipped; they never
    abort the ingestion. Blank lines are ignored.

    Parameters
    ----------
    file_path : Path
        Path to file to ingest.

    Returns
    -------
    tuple[list[Record], FileIngestionResult]
        - Parsed records in file order
        - File ingestion result with metadata and stats

    Raises
    ------
    FileNotFoundError
        If the file does not exist.
    """
    records: list[Record] = []
    errors: list[str] = []
    warnings: list[str] = []
    seen: set[str] = set()

    with file_path.open(encoding="utf-8") as f:
        for line_no, line in enumerate(f, start=1):
            if not line.strip():
                continue
            try:
                data = json.loads(line)
                if not isinstance(data, dict):
                    raise ValueError("expected a JSON object")
                record = Record.from_dict(data)
            except (json.JSONDecodeError, KeyError, TypeError, ValueError) as e:
                errors.append(f"line {line_no}: {type(e).__name__}: {e}")
                continue
            if record.record_id in seen:
                warnings.append(
                    f"line {line_no}: record {record.record_id!r} repeated; "
                    "later versions replace earlier ones"
                )
            seen.add(record.record_id)
            records.append(record)

    result = FileIngestionResult(
        filename=file_path.name,
        filepath=str(file_path),
        file_size=file_path.stat().st_size,
        file_digest=calculate_file_sha256(file_path),
        records_parsed=len(records),
        lines_rejected=len(errors),
        warnings=tuple(warnings),
        errors=tuple(errors),
    )
    return records, result

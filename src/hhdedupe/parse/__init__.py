"""JSON Lines record ingestion.

Main entry point:
- ingest_file: Parse a JSONL file into ``Record`` objects
"""

from hhdedupe.parse.ingestion import FileIngestionResult, ingest_file

__all__ = [
    "FileIngestionResult",
    "ingest_file",
]

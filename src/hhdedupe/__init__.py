"""Entity resolution for job postings and organizations.

This package provides:
- Data models (hhdedupe.models): records and entity kinds
- Normalization (hhdedupe.normalize): match-key derivation
- Fingerprints (hhdedupe.fingerprint): exact hash and MinHash sketch
- Candidates (hhdedupe.candidates): blocking keys and the blocking index
- Scoring (hhdedupe.scoring): weighted pairwise similarity
- Matching (hhdedupe.matching): exact → near → fuzzy match pipeline
- Clustering (hhdedupe.clustering): union-find cluster graph
- Canonical (hhdedupe.canonical): canonical member selection
- Engine (hhdedupe.engine): dedup coordinator and batch runner
- Audit (hhdedupe.audit): logging and traceability
- CLI (hhdedupe.cli): command-line interface
- Public API (hhdedupe.api): high-level convenience functions
"""

__version__ = "0.1.0"
__license__ = "MIT"

from hhdedupe.api import (
    LoadError,
    dedupe,
    load_records,
    write_jsonl,
)
from hhdedupe.engine import DedupConfig, DedupCoordinator
from hhdedupe.models import EntityKind, Record

__all__ = [
    "__version__",
    "__license__",
    "DedupConfig",
    "DedupCoordinator",
    "EntityKind",
    "Record",
    "LoadError",
    "dedupe",
    "load_records",
    "write_jsonl",
]

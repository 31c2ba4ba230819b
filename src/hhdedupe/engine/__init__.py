"""Resolution engine.

This package provides the dedup coordinator (the per-record resolution
loop), its configuration and the batch runner.
"""

from hhdedupe.engine.config import DedupConfig, RunResult, load_config
from hhdedupe.engine.coordinator import DedupCoordinator, ProcessResult, StageError
from hhdedupe.engine.runner import run_dedup

__all__ = [
    "DedupConfig",
    "DedupCoordinator",
    "ProcessResult",
    "RunResult",
    "StageError",
    "load_config",
    "run_dedup",
]

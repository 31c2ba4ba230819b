"""Audit logging and run manifest subsystem for hhdedupe.

Main Components
---------------
- RunContext: High-level context manager for batch runs
- AuditLogger: JSONL event logger
- ManifestWriter: Run manifest builder
"""

from hhdedupe.audit.context import RunContext
from hhdedupe.audit.helpers import generate_run_id
from hhdedupe.audit.logger import AuditLogger
from hhdedupe.audit.manifest import ManifestWriter

__all__ = [
    "RunContext",
    "AuditLogger",
    "ManifestWriter",
    "generate_run_id",
]

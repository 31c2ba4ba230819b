"""Exception hierarchy for hhdedupe.

Component-local failures (one malformed candidate, one cancelled run) are
recovered by the caller and reported as structured results. Configuration
errors and invariant violations are raised to the caller.
"""

from __future__ import annotations

__all__ = [
    "DedupError",
    "ConfigError",
    "RecordValidationError",
    "PipelineCancelled",
    "InvariantViolation",
    "EdgeNotFoundError",
]


class DedupError(Exception):
    """Base class for all hhdedupe errors."""


class ConfigError(DedupError, ValueError):
    """Raised when configuration is invalid (fatal at load time)."""


class RecordValidationError(DedupError, ValueError):
    """Raised when a record lacks required normalized fields.

    Parameters
    ----------
    record_id : str
        Identifier of the offending record.
    missing : tuple[str, ...]
        Names of the missing or empty fields.
    """

    def __init__(self, record_id: str, missing: tuple[str, ...]) -> None:
        super().__init__(f"Record {record_id!r} is missing required fields: {', '.join(missing)}")
        self.record_id = record_id
        self.missing = missing


class PipelineCancelled(DedupError):
    """Raised when a match pipeline run is cancelled or times out."""

    def __init__(self, record_id: str, reason: str) -> None:
        super().__init__(f"Match pipeline for {record_id!r} cancelled: {reason}")
        self.record_id = record_id
        self.reason = reason


class InvariantViolation(DedupError, RuntimeError):
    """Raised when cluster state breaks a structural invariant."""


class EdgeNotFoundError(DedupError, KeyError):
    """Raised when an administrative operation names an unknown edge."""

    def __init__(self, record_a_id: str, record_b_id: str) -> None:
        super().__init__(f"No accepted edge between {record_a_id!r} and {record_b_id!r}")
        self.record_a_id = record_a_id
        self.record_b_id = record_b_id

    def __str__(self) -> str:
        return str(self.args[0])

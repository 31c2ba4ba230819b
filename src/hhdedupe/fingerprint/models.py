"""Fingerprint data model."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any

# Largest 32-bit MinHash value; a sketch made only of it means "no text"
MAX_HASH = (1 << 32) - 1


@dataclass(frozen=True)
class Fingerprint:
    """Compact identity of a record's content.

    Attributes
    ----------
    record_id : str
        Owning record.
    exact_hash : str
        SHA-256 hex digest of the kind and its normalized key fields.
    sketch : tuple[int, ...]
        MinHash minima of the description shingles.
    """

    record_id: str
    exact_hash: str
    sketch: tuple[int, ...]

    @property
    def is_empty_sketch(self) -> bool:
        """True when the sketch carries no text signal."""
        return all(value == MAX_HASH for value in self.sketch)

    def to_dict(self) -> dict[str, Any]:
        """Convert to dictionary for JSON serialization."""
        return {
            "record_id": self.record_id,
            "exact_hash": self.exact_hash,
            "sketch": list(self.sketch),
        }

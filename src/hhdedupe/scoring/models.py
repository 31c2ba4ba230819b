"""Data models for pairwise scoring.

This module defines the schema for pair scores and per-signal comparison
results produced by the weighted similarity scorer.
"""

from dataclasses import asdict, dataclass
from typing import Any


@dataclass(frozen=True, slots=True)
class SignalScore:
    """Comparison result for a single signal.

    Attributes
    ----------
    sim : float
        Signal similarity (0.0-1.0).
    weight : float
        Configured weight of the signal.
    contribution : float
        ``sim * weight``.
    """

    sim: float
    weight: float
    contribution: float

    def to_dict(self) -> dict[str, Any]:
        """Convert to dictionary for JSON serialization."""
        return asdict(self)


@dataclass(frozen=True, slots=True)
class PairScore:
    """Pairwise similarity score with explainability.

    Attributes
    ----------
    pair_id : str
        Deterministic pair identifier (format: "rid_a|rid_b").
    rid_a : str
        First record ID (lexicographically smaller).
    rid_b : str
        Second record ID (lexicographically larger).
    kind : str
        Entity kind of both records.
    signals : dict[str, SignalScore]
        Per-signal comparison results.
    score : float
        Weighted similarity (0.0-1.0).
    top_contributions : tuple[dict[str, Any], ...]
        Highest contributing signals, largest first.
    """

    pair_id: str
    rid_a: str
    rid_b: str
    kind: str
    signals: dict[str, SignalScore]
    score: float
    top_contributions: tuple[dict[str, Any], ...]

    def to_dict(self) -> dict[str, Any]:
        """Convert to dictionary for JSON serialization.

        Returns
        -------
        dict
            Complete dictionary representation.
        """
        return {
            "pair_id": self.pair_id,
            "rid_a": self.rid_a,
            "rid_b": self.rid_b,
            "kind": self.kind,
            "signals": {name: sig.to_dict() for name, sig in self.signals.items()},
            "score": self.score,
            "explain": {"top_contributions": list(self.top_contributions)},
        }

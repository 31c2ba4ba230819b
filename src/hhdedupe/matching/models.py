"""Data models for the match pipeline: edge types, thresholds and outcomes."""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import StrEnum
from typing import Any

from hhdedupe.errors import ConfigError

NEAR_THRESHOLD = 0.85
FUZZY_ACCEPT_THRESHOLD = 0.75
POSSIBLE_THRESHOLD = 0.60


class MatchType(StrEnum):
    """Relationship between two records.

    Attributes
    ----------
    EXACT : str
        Identical exact hash.
    NEAR : str
        MinHash similarity at or above the near threshold.
    FUZZY : str
        Weighted similarity at or above the fuzzy-accept threshold.
    POSSIBLE : str
        Weighted similarity in the review band; never merged.
    REPOSTING : str
        Otherwise-accepted job match outside the reposting window.
    """

    EXACT = "exact"
    NEAR = "near"
    FUZZY = "fuzzy"
    POSSIBLE = "possible"
    REPOSTING = "reposting"

    @property
    def merges(self) -> bool:
        """Whether edges of this type join clusters."""
        return self in (MatchType.EXACT, MatchType.NEAR, MatchType.FUZZY)


@dataclass(frozen=True, order=True)
class CandidateEdge:
    """A scored relationship between two records.

    Use ``CandidateEdge.create`` to get the canonical id order.

    Attributes
    ----------
    record_a_id : str
        Lexicographically smaller record id.
    record_b_id : str
        Lexicographically larger record id.
    match_type : MatchType
        Stage / band that produced the edge.
    score : float
        Similarity that justified the edge (1.0 for exact).
    """

    record_a_id: str
    record_b_id: str
    match_type: MatchType
    score: float

    def __post_init__(self) -> None:
        """Validate canonical ordering."""
        if not self.record_a_id < self.record_b_id:
            raise ValueError(
                f"Edge ids must be distinct and ordered: {self.record_a_id!r}, {self.record_b_id!r}"
            )

    @classmethod
    def create(cls, id_1: str, id_2: str, match_type: MatchType, score: float) -> CandidateEdge:
        """Build an edge with ids in canonical order."""
        a, b = sorted((id_1, id_2))
        return cls(record_a_id=a, record_b_id=b, match_type=MatchType(match_type), score=score)

    @property
    def pair_id(self) -> str:
        """Deterministic pair identifier ("rid_a|rid_b")."""
        return f"{self.record_a_id}|{self.record_b_id}"

    @property
    def pair(self) -> tuple[str, str]:
        """Ordered id pair."""
        return (self.record_a_id, self.record_b_id)

    def other(self, record_id: str) -> str:
        """The endpoint that is not ``record_id``."""
        return self.record_b_id if record_id == self.record_a_id else self.record_a_id

    def to_dict(self) -> dict[str, Any]:
        """Convert to dictionary for JSON serialization."""
        return {
            "pair_id": self.pair_id,
            "record_a_id": self.record_a_id,
            "record_b_id": self.record_b_id,
            "match_type": self.match_type.value,
            "score": self.score,
        }

    @staticmethod
    def from_dict(data: dict[str, Any]) -> CandidateEdge:
        """Deserialize an edge from a dictionary."""
        return CandidateEdge.create(
            data["record_a_id"],
            data["record_b_id"],
            MatchType(data["match_type"]),
            float(data["score"]),
        )


@dataclass(frozen=True)
class MatchThresholds:
    """Classification thresholds.

    Attributes
    ----------
    near : float
        Minimum MinHash similarity for a ``near`` edge.
    fuzzy_accept : float
        Minimum weighted score for a ``fuzzy`` edge.
    possible : float
        Minimum weighted score for the ``possible`` review band.
    """

    near: float = NEAR_THRESHOLD
    fuzzy_accept: float = FUZZY_ACCEPT_THRESHOLD
    possible: float = POSSIBLE_THRESHOLD

    def __post_init__(self) -> None:
        """Validate threshold ordering."""
        if not 0.0 < self.near <= 1.0:
            raise ConfigError(f"near threshold must be in (0, 1], got {self.near}")
        if not 0.0 <= self.possible < self.fuzzy_accept <= 1.0:
            raise ConfigError(
                "thresholds must satisfy 0 <= possible < fuzzy_accept <= 1, "
                f"got possible={self.possible}, fuzzy_accept={self.fuzzy_accept}"
            )

    def classify(self, score: float) -> MatchType | None:
        """Map a weighted score to ``fuzzy``, ``possible`` or None (rejected)."""
        if score >= self.fuzzy_accept:
            return MatchType.FUZZY
        if score >= self.possible:
            return MatchType.POSSIBLE
        return None

    def to_dict(self) -> dict[str, float]:
        """Convert to dictionary for JSON serialization."""
        return {"near": self.near, "fuzzy_accept": self.fuzzy_accept, "possible": self.possible}


@dataclass
class MatchOutcome:
    """Result of one match pipeline run.

    Attributes
    ----------
    record_id : str
        Record the pipeline ran for.
    edges : list[CandidateEdge]
        Accepted (merging) edges.
    possible : list[CandidateEdge]
        Review-band edges (side output).
    reposts : list[CandidateEdge]
        Reposting links (side output unless reposts merge).
    skipped : list[str]
        Candidate ids skipped as malformed or missing.
    warnings : list[str]
        Human-readable warning messages.
    terminal_stage : str | None
        Stage that ended the pipeline, or None if no stage accepted.
    candidates_seen : int
        Candidate ids considered.
    """

    record_id: str
    edges: list[CandidateEdge] = field(default_factory=list)
    possible: list[CandidateEdge] = field(default_factory=list)
    reposts: list[CandidateEdge] = field(default_factory=list)
    skipped: list[str] = field(default_factory=list)
    warnings: list[str] = field(default_factory=list)
    terminal_stage: str | None = None
    candidates_seen: int = 0

    def merge(self, other: MatchOutcome) -> None:
        """Fold a follow-up run (over late candidates) into this outcome."""
        self.edges.extend(other.edges)
        self.possible.extend(other.possible)
        self.reposts.extend(other.reposts)
        self.skipped.extend(other.skipped)
        self.warnings.extend(other.warnings)
        self.candidates_seen += other.candidates_seen
        if self.terminal_stage is None:
            self.terminal_stage = other.terminal_stage

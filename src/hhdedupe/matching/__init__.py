"""Multi-stage record matching (exact → near → fuzzy)."""

from hhdedupe.matching.models import (
    CandidateEdge,
    MatchOutcome,
    MatchThresholds,
    MatchType,
)
from hhdedupe.matching.pipeline import Candidate, MatchPipeline

__all__ = [
    "Candidate",
    "CandidateEdge",
    "MatchOutcome",
    "MatchPipeline",
    "MatchThresholds",
    "MatchType",
]

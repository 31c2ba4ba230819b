"""Pairwise similarity scoring for hhdedupe.

This module compares same-kind record pairs signal by signal and combines
the similarities with configurable per-kind weights.
"""

from hhdedupe.scoring.comparators import (
    DEFAULT_WEIGHTS,
    JOB_SIGNALS,
    ORGANIZATION_SIGNALS,
    SIGNALS_BY_KIND,
    SignalConfig,
    domain_match,
    jaccard_similarity,
    location_similarity,
    name_similarity,
    temporal_proximity,
)
from hhdedupe.scoring.models import PairScore, SignalScore
from hhdedupe.scoring.scorer import SimilarityScorer, validate_weights

__all__ = [
    "DEFAULT_WEIGHTS",
    "JOB_SIGNALS",
    "ORGANIZATION_SIGNALS",
    "SIGNALS_BY_KIND",
    "PairScore",
    "SignalConfig",
    "SignalScore",
    "SimilarityScorer",
    "domain_match",
    "jaccard_similarity",
    "location_similarity",
    "name_similarity",
    "temporal_proximity",
    "validate_weights",
]

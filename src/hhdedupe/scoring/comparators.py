"""Signal comparators for pairwise similarity scoring.

This module provides pure, deterministic, symmetric functions that compare
one signal of two records' match keys and return a similarity in [0, 1].
A missing value on either side contributes 0.0.

Signals are grouped into per-kind registries (``JOB_SIGNALS``,
``ORGANIZATION_SIGNALS``) iterated in a fixed order by the scorer.
"""

from collections.abc import Callable
from dataclasses import dataclass
from datetime import datetime
from typing import Any

from rapidfuzz.distance import JaroWinkler

from hhdedupe.models.records import EntityKind
from hhdedupe.normalize.keys import MatchKeys

TEMPORAL_WINDOW_DAYS = 30
SECONDS_PER_DAY = 86400.0


@dataclass(frozen=True, slots=True)
class SignalConfig:
    """Configuration for a single similarity signal.

    Attributes
    ----------
    name : str
        Signal name (e.g., 'title', 'location').
    extractor : Callable[[MatchKeys, MatchKeys], dict[str, Any]]
        Maps a key pair to comparator arguments.
    comparator : Callable[..., float]
        Comparison function returning a similarity in [0, 1].
    options : tuple[str, ...]
        Scorer options forwarded to the comparator (e.g., 'window_days').
    """

    name: str
    extractor: Callable[[MatchKeys, MatchKeys], dict[str, Any]]
    comparator: Callable[..., float]
    options: tuple[str, ...] = ()

    def compare(self, keys_a: MatchKeys, keys_b: MatchKeys, **options: Any) -> float:
        """Extract fields and run comparison.

        Parameters
        ----------
        keys_a : MatchKeys
            First record's keys.
        keys_b : MatchKeys
            Second record's keys.
        **options : Any
            Scorer options; only those named in ``self.options`` are used.

        Returns
        -------
        float
            Similarity in [0, 1].
        """
        params = self.extractor(keys_a, keys_b)
        params.update({name: options[name] for name in self.options if name in options})
        return self.comparator(**params)


# ---------------------------------------------------------------------------
# Comparators
# ---------------------------------------------------------------------------


def jaccard_similarity(set_a: frozenset[str] | set[str], set_b: frozenset[str] | set[str]) -> float:
    """Calculate Jaccard similarity between two sets.

    Parameters
    ----------
    set_a : set[str]
        First set.
    set_b : set[str]
        Second set.

    Returns
    -------
    float
        Jaccard similarity (0.0-1.0).

    Notes
    -----
    Jaccard = |A ∩ B| / |A ∪ B|

    When either set is empty the signal is missing and 0.0 is returned,
    so two records without a description never look alike on it.
    """
    if not set_a or not set_b:
        return 0.0
    return len(set_a & set_b) / len(set_a | set_b)


def name_similarity(name_a: str, name_b: str) -> float:
    """Compare two normalized names or titles.

    Parameters
    ----------
    name_a : str
        First normalized name.
    name_b : str
        Second normalized name.

    Returns
    -------
    float
        max(Jaro-Winkler similarity, token-set Jaccard).

    Notes
    -----
    Jaro-Winkler rewards shared prefixes and catches typos; token Jaccard
    catches reordered words ("engineer software" vs "software engineer").
    Inputs are ordered before the Jaro-Winkler call so the result is
    symmetric bit for bit.
    """
    if not name_a or not name_b:
        return 0.0
    if name_a == name_b:
        return 1.0
    first, second = sorted((name_a, name_b))
    jaro = JaroWinkler.normalized_similarity(first, second)
    tokens = jaccard_similarity(frozenset(name_a.split()), frozenset(name_b.split()))
    return max(jaro, tokens)


def location_similarity(city_a: str, city_b: str, province_a: str, province_b: str) -> float:
    """Compare locations.

    Returns
    -------
    float
        1.0 or 0.0 on city equality when both cities are present; else 0.5
        when both provinces are present and equal; else 0.0.
    """
    if city_a and city_b:
        return 1.0 if city_a == city_b else 0.0
    if province_a and province_b and province_a == province_b:
        return 0.5
    return 0.0


def temporal_proximity(
    observed_a: datetime,
    observed_b: datetime,
    window_days: float = TEMPORAL_WINDOW_DAYS,
) -> float:
    """Linear decay of posting-date distance.

    Parameters
    ----------
    observed_a : datetime
        First observation timestamp.
    observed_b : datetime
        Second observation timestamp.
    window_days : float, optional
        Distance at which proximity reaches 0, by default 30.

    Returns
    -------
    float
        max(0, 1 - |Δdays| / window_days).
    """
    days = abs((observed_a - observed_b).total_seconds()) / SECONDS_PER_DAY
    return max(0.0, 1.0 - days / window_days)


def domain_match(domain_a: str, domain_b: str) -> float:
    """1.0 on equal registrable domains, else 0.0."""
    if not domain_a or not domain_b:
        return 0.0
    return 1.0 if domain_a == domain_b else 0.0


def exact_match(value_a: str, value_b: str) -> float:
    """1.0 on equal non-empty normalized values, else 0.0."""
    if not value_a or not value_b:
        return 0.0
    return 1.0 if value_a == value_b else 0.0


# ---------------------------------------------------------------------------
# Field extractors - map MatchKeys pairs to comparator arguments
# ---------------------------------------------------------------------------


def _extract_name(a: MatchKeys, b: MatchKeys) -> dict[str, Any]:
    return {"name_a": a.name, "name_b": b.name}


def _extract_organization(a: MatchKeys, b: MatchKeys) -> dict[str, Any]:
    if a.organization_id and b.organization_id:
        return {"name_a": a.organization_id, "name_b": b.organization_id}
    return {"name_a": a.organization, "name_b": b.organization}


def _extract_location(a: MatchKeys, b: MatchKeys) -> dict[str, Any]:
    return {
        "city_a": a.city,
        "city_b": b.city,
        "province_a": a.province,
        "province_b": b.province,
    }


def _extract_description(a: MatchKeys, b: MatchKeys) -> dict[str, Any]:
    return {"set_a": a.description_tokens, "set_b": b.description_tokens}


def _extract_observed(a: MatchKeys, b: MatchKeys) -> dict[str, Any]:
    return {"observed_a": a.observed_at, "observed_b": b.observed_at}


def _extract_industry(a: MatchKeys, b: MatchKeys) -> dict[str, Any]:
    return {"value_a": a.industry, "value_b": b.industry}


def _extract_domain(a: MatchKeys, b: MatchKeys) -> dict[str, Any]:
    return {"domain_a": a.domain, "domain_b": b.domain}


def _extract_contacts(a: MatchKeys, b: MatchKeys) -> dict[str, Any]:
    return {"set_a": a.contacts, "set_b": b.contacts}


# ---------------------------------------------------------------------------
# Signal registries - ordered for deterministic iteration
# ---------------------------------------------------------------------------


JOB_SIGNALS: tuple[SignalConfig, ...] = (
    SignalConfig(name="title", extractor=_extract_name, comparator=name_similarity),
    SignalConfig(name="organization", extractor=_extract_organization, comparator=name_similarity),
    SignalConfig(name="location", extractor=_extract_location, comparator=location_similarity),
    SignalConfig(name="description", extractor=_extract_description, comparator=jaccard_similarity),
    SignalConfig(
        name="temporal",
        extractor=_extract_observed,
        comparator=temporal_proximity,
        options=("window_days",),
    ),
)

ORGANIZATION_SIGNALS: tuple[SignalConfig, ...] = (
    SignalConfig(name="name", extractor=_extract_name, comparator=name_similarity),
    SignalConfig(name="location", extractor=_extract_location, comparator=location_similarity),
    SignalConfig(name="industry", extractor=_extract_industry, comparator=exact_match),
    SignalConfig(name="website", extractor=_extract_domain, comparator=domain_match),
    SignalConfig(name="contact", extractor=_extract_contacts, comparator=jaccard_similarity),
)

SIGNALS_BY_KIND: dict[EntityKind, tuple[SignalConfig, ...]] = {
    EntityKind.JOB: JOB_SIGNALS,
    EntityKind.ORGANIZATION: ORGANIZATION_SIGNALS,
}

DEFAULT_WEIGHTS: dict[EntityKind, dict[str, float]] = {
    EntityKind.JOB: {
        "title": 0.30,
        "organization": 0.25,
        "location": 0.15,
        "description": 0.20,
        "temporal": 0.10,
    },
    EntityKind.ORGANIZATION: {
        "name": 0.40,
        "location": 0.20,
        "industry": 0.15,
        "website": 0.15,
        "contact": 0.10,
    },
}

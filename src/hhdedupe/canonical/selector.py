"""Canonical member selection for clusters."""

from __future__ import annotations

from collections.abc import Iterable, Sequence
from dataclasses import dataclass

from hhdedupe.models.records import JobAttributes, Record

DEFAULT_AUTHORITY_ORDER = ("company_site", "professional_network", "aggregator")


def _normalize_source(value: str | None) -> str:
    return (value or "").strip().lower().replace("-", "_").replace(" ", "_")


@dataclass(frozen=True)
class SourceAuthority:
    """Ordered source ranking, most authoritative first.

    A record's rank is the position of its source name in ``order``, else
    the position of its source category, else ``len(order)`` (unranked
    sources tie after every ranked one). Names are compared case- and
    separator-insensitively ("Company-Site" == "company_site").

    Attributes
    ----------
    order : tuple[str, ...]
        Source names or categories, most authoritative first.
    """

    order: tuple[str, ...] = DEFAULT_AUTHORITY_ORDER

    def __post_init__(self) -> None:
        """Normalize entries once."""
        object.__setattr__(self, "order", tuple(_normalize_source(v) for v in self.order))

    @classmethod
    def from_list(cls, values: Sequence[str] | None) -> SourceAuthority:
        """Build from a config list (None → default order)."""
        return cls() if values is None else cls(order=tuple(values))

    def rank(self, record: Record) -> int:
        """Authority rank of a record's source (lower is better)."""
        for value in (record.source.name, record.source.category):
            normalized = _normalize_source(value)
            if normalized and normalized in self.order:
                return self.order.index(normalized)
        return len(self.order)


def _content_length(record: Record) -> int:
    attrs = record.attributes
    name = attrs.title if isinstance(attrs, JobAttributes) else attrs.name
    return len(attrs.description or "") + len(name or "")


def canonical_key(record: Record, authority: SourceAuthority) -> tuple[float, int, float, int, str]:
    """Ranking key of a cluster member; the smallest key wins."""
    return (
        -record.quality_score,
        authority.rank(record),
        -record.observed_at.timestamp(),
        -_content_length(record),
        record.record_id,
    )


def select_canonical(members: Iterable[Record], authority: SourceAuthority | None = None) -> str:
    """Select the canonical record of a cluster.

    Selection is based on lexicographic tuple ranking:
    1. quality_score (higher > lower)
    2. source authority rank (more authoritative first)
    3. observed_at (newer > older)
    4. description + name/title length (longer > shorter)
    5. tie-breaker: smallest record_id lexicographically

    The result depends only on the member set and attributes, never on
    iteration or insertion order.

    Parameters
    ----------
    members : Iterable[Record]
        Cluster members.
    authority : SourceAuthority | None, optional
        Source ranking, default company site > professional network >
        aggregator > others.

    Returns
    -------
    str
        Canonical record ID.

    Raises
    ------
    ValueError
        If members is empty.
    """
    ranking = authority or SourceAuthority()
    records = list(members)
    if not records:
        raise ValueError("Cannot select canonical member from an empty cluster")
    return min(records, key=lambda record: canonical_key(record, ranking)).record_id

"""Entity-kind profiles.

A ``KindProfile`` bundles everything the pipeline needs to know about one
entity kind: required fields, exact-hash key fields, the text to shingle,
similarity signals and default blockers. The fingerprint generator, blocking
index, scorer and match pipeline are written once against this interface.
"""

from __future__ import annotations

from collections.abc import Callable, Sequence
from dataclasses import dataclass
from typing import TYPE_CHECKING

from hhdedupe.errors import RecordValidationError
from hhdedupe.models.records import EntityKind, JobAttributes, OrganizationAttributes, Record
from hhdedupe.normalize.keys import MatchKeys, build_keys
from hhdedupe.scoring.comparators import (
    DEFAULT_WEIGHTS,
    JOB_SIGNALS,
    ORGANIZATION_SIGNALS,
    SignalConfig,
)

if TYPE_CHECKING:
    from hhdedupe.candidates.blockers import Blocker


@dataclass(frozen=True)
class KindProfile:
    """Per-kind behaviour of the resolution pipeline.

    Attributes
    ----------
    kind : EntityKind
        Entity kind described.
    required_fields : Callable[[Record], tuple[str, ...]]
        Returns the names of required fields that are missing or empty.
    exact_fields : Callable[[MatchKeys], tuple[str, ...]]
        Normalized key fields hashed into the exact fingerprint.
    shingle_text : Callable[[MatchKeys], str]
        Normalized text shingled into the MinHash sketch.
    signals : tuple[SignalConfig, ...]
        Similarity signals in scoring order.
    default_blockers : tuple[str, ...]
        Blocker registry names used when configuration names none.
    """

    kind: EntityKind
    required_fields: Callable[[Record], tuple[str, ...]]
    exact_fields: Callable[[MatchKeys], tuple[str, ...]]
    shingle_text: Callable[[MatchKeys], str]
    signals: tuple[SignalConfig, ...]
    default_blockers: tuple[str, ...]

    @property
    def default_weights(self) -> dict[str, float]:
        """Default signal weights of this kind."""
        return dict(DEFAULT_WEIGHTS[self.kind])

    def normalize(self, record: Record) -> MatchKeys:
        """Derive the record's match keys."""
        return build_keys(record)

    def validate(self, record: Record) -> None:
        """Check that a record carries this kind's required fields.

        Raises
        ------
        RecordValidationError
            If the kind differs or required fields are missing.
        """
        if record.kind is not self.kind:
            raise RecordValidationError(record.record_id, ("kind",))
        missing = self.required_fields(record)
        if missing:
            raise RecordValidationError(record.record_id, missing)

    def blocking_keys(self, record: Record, blockers: Sequence[Blocker]) -> set[str]:
        """Collect the block keys all ``blockers`` emit for ``record``."""
        keys: set[str] = set()
        for blocker in blockers:
            keys.update(blocker.block_keys(record))
        return keys

    def similarity_signals(self) -> tuple[SignalConfig, ...]:
        """Similarity signals of this kind, in scoring order."""
        return self.signals


def _job_missing(record: Record) -> tuple[str, ...]:
    attrs = record.attributes
    if not isinstance(attrs, JobAttributes):
        raise TypeError(f"Record {record.record_id!r} is not a job posting")
    missing: list[str] = []
    if not (attrs.title or "").strip():
        missing.append("title")
    if not (attrs.organization_name or "").strip() and not (attrs.organization_id or "").strip():
        missing.append("organization_name")
    return tuple(missing)


def _organization_missing(record: Record) -> tuple[str, ...]:
    attrs = record.attributes
    if not isinstance(attrs, OrganizationAttributes):
        raise TypeError(f"Record {record.record_id!r} is not an organization")
    return () if (attrs.name or "").strip() else ("name",)


JOB_PROFILE = KindProfile(
    kind=EntityKind.JOB,
    required_fields=_job_missing,
    exact_fields=lambda keys: (keys.name, keys.organization, keys.city),
    shingle_text=lambda keys: keys.description,
    signals=JOB_SIGNALS,
    default_blockers=("job_org_province_window",),
)

ORGANIZATION_PROFILE = KindProfile(
    kind=EntityKind.ORGANIZATION,
    required_fields=_organization_missing,
    exact_fields=lambda keys: (keys.name, keys.city),
    shingle_text=lambda keys: keys.description,
    signals=ORGANIZATION_SIGNALS,
    default_blockers=("org_initial_province", "org_initial_industry", "org_domain"),
)

KIND_PROFILES: dict[EntityKind, KindProfile] = {
    EntityKind.JOB: JOB_PROFILE,
    EntityKind.ORGANIZATION: ORGANIZATION_PROFILE,
}


def get_profile(kind: EntityKind | str) -> KindProfile:
    """Look up the profile of an entity kind.

    Raises
    ------
    ValueError
        If ``kind`` is not a known entity kind.
    """
    return KIND_PROFILES[EntityKind(kind)]

"""Normalized record data models for hhdedupe.

Records arrive from an external normalization stage. Every downstream module
consumes them in this format: an immutable identifier, the entity kind,
source provenance, a kind-specific attribute bag and a quality score.
"""

from __future__ import annotations

from dataclasses import asdict, dataclass, field, replace
from datetime import datetime
from enum import StrEnum
from typing import Any

from hhdedupe.utils.timestamps import parse_iso_timestamp, to_iso

SCHEMA_VERSION = "1.0.0"

QUALITY_MIN = 0.0
QUALITY_MAX = 100.0


class EntityKind(StrEnum):
    """Kinds of entity the engine resolves.

    Attributes
    ----------
    JOB : str
        A job posting.
    ORGANIZATION : str
        A hiring organization.
    """

    JOB = "job"
    ORGANIZATION = "organization"


@dataclass(frozen=True)
class SourceRef:
    """Provenance of a record.

    Attributes
    ----------
    name : str
        Source name (e.g., 'pnet', 'linkedin', 'acme-careers').
    source_id : str
        Source-local identifier.
    url : str | None
        URL the record was observed at.
    category : str | None
        Source category used for authority ranking
        (e.g., 'company_site', 'professional_network', 'aggregator').
    """

    name: str
    source_id: str
    url: str | None = None
    category: str | None = None


@dataclass(frozen=True)
class JobAttributes:
    """Attribute bag of a job posting.

    Attributes
    ----------
    title : str
        Posting title.
    organization_name : str | None
        Hiring organization as displayed by the source.
    organization_id : str | None
        Resolved organization identifier, when known.
    city : str | None
        City or 'remote'.
    province : str | None
        Province / region.
    description : str | None
        Plain-text posting body.
    organization_size : int | None
        Employee count of the hiring organization.
    """

    title: str
    organization_name: str | None = None
    organization_id: str | None = None
    city: str | None = None
    province: str | None = None
    description: str | None = None
    organization_size: int | None = None


@dataclass(frozen=True)
class OrganizationAttributes:
    """Attribute bag of an organization.

    Attributes
    ----------
    name : str
        Organization name.
    industry : str | None
        Industry label.
    city : str | None
        Head-office city.
    province : str | None
        Province / region.
    website : str | None
        Website URL or bare domain.
    description : str | None
        Free-text profile.
    emails : tuple[str, ...]
        Contact e-mail addresses.
    phones : tuple[str, ...]
        Contact phone numbers.
    employee_count : int | None
        Number of employees.
    """

    name: str
    industry: str | None = None
    city: str | None = None
    province: str | None = None
    website: str | None = None
    description: str | None = None
    emails: tuple[str, ...] = ()
    phones: tuple[str, ...] = ()
    employee_count: int | None = None


Attributes = JobAttributes | OrganizationAttributes

_ATTRIBUTE_TYPES: dict[EntityKind, type] = {
    EntityKind.JOB: JobAttributes,
    EntityKind.ORGANIZATION: OrganizationAttributes,
}


@dataclass(frozen=True)
class Record:
    """A normalized entity instance.

    Attributes
    ----------
    record_id : str
        Stable identifier (immutable once assigned).
    kind : EntityKind
        Entity kind.
    source : SourceRef
        Source provenance.
    attributes : JobAttributes | OrganizationAttributes
        Kind-specific attribute bag.
    observed_at : datetime
        Posting / observation timestamp (timezone-aware).
    quality_score : float
        Completeness-derived quality score (0-100).
    schema_version : str
        Record schema version.
    """

    record_id: str
    kind: EntityKind
    source: SourceRef
    attributes: Attributes
    observed_at: datetime
    quality_score: float = 0.0
    schema_version: str = field(default=SCHEMA_VERSION, compare=False)

    def __post_init__(self) -> None:
        """Validate structural consistency."""
        if not self.record_id:
            raise ValueError("record_id must be a non-empty string")
        # Plain strings ("job") are coerced so identity checks on kind hold
        object.__setattr__(self, "kind", EntityKind(self.kind))
        expected = _ATTRIBUTE_TYPES[self.kind]
        if not isinstance(self.attributes, expected):
            raise ValueError(
                f"Record {self.record_id!r} of kind {self.kind} "
                f"needs {expected.__name__}, got {type(self.attributes).__name__}"
            )
        if not QUALITY_MIN <= self.quality_score <= QUALITY_MAX:
            raise ValueError(
                f"quality_score must be in [{QUALITY_MIN:g}, {QUALITY_MAX:g}], "
                f"got {self.quality_score}"
            )
        if self.observed_at.tzinfo is None:
            raise ValueError(f"observed_at of {self.record_id!r} must be timezone-aware")

    def with_attributes(self, attributes: Attributes) -> Record:
        """Return a copy with the attribute bag replaced wholesale."""
        return replace(self, attributes=attributes)

    def with_quality(self, quality_score: float) -> Record:
        """Return a copy with a new quality score."""
        return replace(self, quality_score=quality_score)

    def to_dict(self) -> dict[str, Any]:
        """Convert to dictionary for JSON serialization.

        Returns
        -------
        dict[str, Any]
            JSON-compatible representation.
        """
        attributes = asdict(self.attributes)
        for key, value in attributes.items():
            if isinstance(value, tuple):
                attributes[key] = list(value)
        return {
            "schema_version": self.schema_version,
            "record_id": self.record_id,
            "kind": self.kind.value,
            "source": asdict(self.source),
            "attributes": attributes,
            "observed_at": to_iso(self.observed_at),
            "quality_score": self.quality_score,
        }

    @staticmethod
    def from_dict(data: dict[str, Any]) -> Record:
        """Deserialize a record from a dictionary.

        Parameters
        ----------
        data : dict[str, Any]
            Dictionary representation (e.g., one JSONL line).

        Returns
        -------
        Record
            Deserialized record.

        Raises
        ------
        ValueError
            If the kind is unknown, the timestamp is invalid or the
            attribute bag has unexpected fields.
        KeyError
            If a required top-level key is missing.
        """
        kind = EntityKind(data["kind"])
        raw_attributes = dict(data.get("attributes") or {})
        if kind is EntityKind.ORGANIZATION:
            raw_attributes["emails"] = tuple(raw_attributes.get("emails") or ())
            raw_attributes["phones"] = tuple(raw_attributes.get("phones") or ())

        try:
            attributes = _ATTRIBUTE_TYPES[kind](**raw_attributes)
        except TypeError as exc:
            raise ValueError(f"Invalid {kind} attributes: {exc}") from exc

        source = data.get("source") or {}
        return Record(
            record_id=str(data["record_id"]),
            kind=kind,
            source=SourceRef(
                name=source.get("name", "unknown"),
                source_id=str(source.get("source_id", data["record_id"])),
                url=source.get("url"),
                category=source.get("category"),
            ),
            attributes=attributes,
            observed_at=parse_iso_timestamp(data["observed_at"]),
            quality_score=float(data.get("quality_score", 0.0)),
            schema_version=data.get("schema_version", SCHEMA_VERSION),
        )

"""Match keys derived from a record's normalized fields.

Fingerprints, blockers and comparators all read the same ``MatchKeys`` so
that a field is normalized exactly once, the same way, everywhere.
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from functools import lru_cache

from hhdedupe.models.records import EntityKind, JobAttributes, OrganizationAttributes, Record
from hhdedupe.normalize._helpers import (
    normalize_email,
    normalize_location,
    normalize_phone,
    normalize_province,
    normalize_text,
    normalize_title,
    registrable_domain,
    strip_legal_suffixes,
)

KEY_CACHE_SIZE = 8192


@dataclass(frozen=True)
class MatchKeys:
    """Normalized comparison forms of one record.

    Attributes
    ----------
    record_id : str
        Owning record.
    kind : EntityKind
        Entity kind.
    name : str
        Job: title with the organization removed. Organization: name with
        legal suffixes stripped.
    organization : str
        Hiring organization (jobs) or the organization itself, suffix-stripped.
    organization_id : str
        Resolved organization id ('' when unknown).
    city : str
        Normalized city ('remote' for remote work).
    province : str
        Normalized province.
    industry : str
        Normalized industry label.
    domain : str
        Registrable website domain.
    description : str
        Normalized description text.
    name_tokens : frozenset[str]
        Token set of ``name``.
    description_tokens : frozenset[str]
        Token set of ``description``.
    contacts : frozenset[str]
        Normalized e-mails and phone numbers.
    observed_at : datetime
        Observation timestamp.
    size : int | None
        Organization employee count, when known.
    """

    record_id: str
    kind: EntityKind
    name: str
    organization: str
    organization_id: str
    city: str
    province: str
    industry: str
    domain: str
    description: str
    name_tokens: frozenset[str]
    description_tokens: frozenset[str]
    contacts: frozenset[str]
    observed_at: datetime
    size: int | None

    @property
    def initial(self) -> str:
        """First character of the normalized name ('' if empty)."""
        return self.name[:1]

    @property
    def organization_key(self) -> str:
        """Organization id when resolved, else the normalized name."""
        if self.organization_id:
            return self.organization_id
        return f"n:{self.organization}" if self.organization else ""


def job_keys(record: Record) -> MatchKeys:
    """Build match keys for a job posting."""
    attrs = record.attributes
    if not isinstance(attrs, JobAttributes):
        raise TypeError(f"Record {record.record_id!r} is not a job posting")
    title = normalize_title(attrs.title, attrs.organization_name)
    description = normalize_text(attrs.description)
    return MatchKeys(
        record_id=record.record_id,
        kind=EntityKind.JOB,
        name=title,
        organization=strip_legal_suffixes(attrs.organization_name),
        organization_id=(attrs.organization_id or "").strip(),
        city=normalize_location(attrs.city),
        province=normalize_province(attrs.province),
        industry="",
        domain="",
        description=description,
        name_tokens=frozenset(title.split()),
        description_tokens=frozenset(description.split()),
        contacts=frozenset(),
        observed_at=record.observed_at,
        size=attrs.organization_size,
    )


def organization_keys(record: Record) -> MatchKeys:
    """Build match keys for an organization."""
    attrs = record.attributes
    if not isinstance(attrs, OrganizationAttributes):
        raise TypeError(f"Record {record.record_id!r} is not an organization")
    name = strip_legal_suffixes(attrs.name)
    description = normalize_text(attrs.description)
    contacts = {normalize_email(e) for e in attrs.emails} | {
        normalize_phone(p) for p in attrs.phones
    }
    contacts.discard("")
    return MatchKeys(
        record_id=record.record_id,
        kind=EntityKind.ORGANIZATION,
        name=name,
        organization=name,
        organization_id="",
        city=normalize_location(attrs.city),
        province=normalize_province(attrs.province),
        industry=normalize_text(attrs.industry),
        domain=registrable_domain(attrs.website),
        description=description,
        name_tokens=frozenset(name.split()),
        description_tokens=frozenset(description.split()),
        contacts=frozenset(contacts),
        observed_at=record.observed_at,
        size=attrs.employee_count,
    )


@lru_cache(maxsize=KEY_CACHE_SIZE)
def build_keys(record: Record) -> MatchKeys:
    """Build (and memoize) match keys for any record kind.

    Records are immutable, so a cached entry stays valid until the record
    is replaced by a new instance with different attributes.

    Parameters
    ----------
    record : Record
        Record to key.

    Returns
    -------
    MatchKeys
        Normalized comparison forms.
    """
    if record.kind is EntityKind.JOB:
        return job_keys(record)
    return organization_keys(record)

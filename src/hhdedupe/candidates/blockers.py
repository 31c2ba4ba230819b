"""Blocker plug-ins for candidate generation.

Each blocker maps a record to block keys. Records sharing a key become
candidates for scoring. Blocking prioritises *recall* (catching all potential
duplicates) while deferring precision to the match pipeline; pairs that share
no key are never compared, which is the documented approximation.

Architecture
------------
* ``Blocker``: structural protocol (two attributes + one method).
* Keys are prefixed with the blocker name so blockers never collide.
* Blockers are pure: the same record always yields the same keys.
"""

from __future__ import annotations

from collections.abc import Iterable
from typing import Protocol, runtime_checkable

from hhdedupe.models.records import EntityKind, Record
from hhdedupe.normalize.keys import build_keys

# ============================================================================
# Constants
# ============================================================================

POSTING_WINDOW_DAYS = 30

WINDOW_OFFSETS = (-1, 0, 1)

MISSING = "_"


# ============================================================================
# Protocol
# ============================================================================


@runtime_checkable
class Blocker(Protocol):
    """Structural protocol every blocker must satisfy.

    Attributes
    ----------
    name : str
        Stable identifier used in audit logs and key prefixes.
    kind : EntityKind
        Entity kind the blocker keys.
    match_key : str
        Semantic label for the field(s) this blocker relies on.
    """

    name: str
    kind: EntityKind
    match_key: str

    def block_keys(self, record: Record) -> Iterable[str]:
        """Yield zero or more blocking keys for *record*.

        Returns an empty iterable when the record lacks the data this
        blocker needs.
        """
        ...


# ============================================================================
# Job blockers
# ============================================================================


class JobOrgProvinceWindowBlocker:
    """Block postings by (organization, province, posting window).

    Time is cut into fixed windows of ``window_days``. A posting emits a key
    for its own window and both neighbours, so any two postings of the same
    organization and province within ``window_days`` of each other share at
    least one key.

    Attributes
    ----------
    window_days : int
        Window width in days.
    """

    name: str = "job_org_province_window"
    kind: EntityKind = EntityKind.JOB
    match_key: str = "organization+province+observed_at"

    def __init__(self, window_days: int = POSTING_WINDOW_DAYS) -> None:
        if window_days <= 0:
            raise ValueError(f"window_days must be > 0, got {window_days}")
        self.window_days = window_days

    def window_of(self, record: Record) -> int:
        """Window bucket index of the record's posting date."""
        return record.observed_at.date().toordinal() // self.window_days

    def block_keys(self, record: Record) -> Iterable[str]:
        """Yield one key per neighbouring window."""
        keys = build_keys(record)
        organization = keys.organization_key
        if not organization:
            return
        province = keys.province or MISSING
        bucket = self.window_of(record)
        for offset in WINDOW_OFFSETS:
            yield f"{self.name}:{organization}|{province}|w{bucket + offset}"


# ============================================================================
# Organization blockers
# ============================================================================


class OrgInitialProvinceBlocker:
    """Block organizations by (name initial, province)."""

    name: str = "org_initial_province"
    kind: EntityKind = EntityKind.ORGANIZATION
    match_key: str = "name+province"

    def block_keys(self, record: Record) -> Iterable[str]:
        """Yield one key when both the name and province are present."""
        keys = build_keys(record)
        if keys.initial and keys.province:
            yield f"{self.name}:{keys.initial}|{keys.province}"


class OrgInitialIndustryBlocker:
    """Block organizations by (name initial, industry)."""

    name: str = "org_initial_industry"
    kind: EntityKind = EntityKind.ORGANIZATION
    match_key: str = "name+industry"

    def block_keys(self, record: Record) -> Iterable[str]:
        """Yield one key when both the name and industry are present."""
        keys = build_keys(record)
        if keys.initial and keys.industry:
            yield f"{self.name}:{keys.initial}|{keys.industry}"


class OrgDomainBlocker:
    """Block organizations by registrable website domain."""

    name: str = "org_domain"
    kind: EntityKind = EntityKind.ORGANIZATION
    match_key: str = "website"

    def block_keys(self, record: Record) -> Iterable[str]:
        """Yield the domain key when a website is present."""
        keys = build_keys(record)
        if keys.domain:
            yield f"{self.name}:{keys.domain}"

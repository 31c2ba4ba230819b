"""Shared data types for hhdedupe.

This package contains the record dataclasses consumed across the pipeline.

Domain-specific types live closer to their consumers:
- Fingerprint types → hhdedupe.fingerprint.models
- Edge types → hhdedupe.matching.models
- Cluster types → hhdedupe.clustering.models
- Audit types → hhdedupe.audit.models
"""

from hhdedupe.models.records import (
    SCHEMA_VERSION,
    Attributes,
    EntityKind,
    JobAttributes,
    OrganizationAttributes,
    Record,
    SourceRef,
)

__all__ = [
    "SCHEMA_VERSION",
    "Attributes",
    "EntityKind",
    "JobAttributes",
    "OrganizationAttributes",
    "Record",
    "SourceRef",
]

"""Candidate generation via blocking.

This module finds, for an incoming record, the already-indexed records that
share at least one blocking key with it.
"""

from hhdedupe.candidates.blockers import (
    Blocker,
    JobOrgProvinceWindowBlocker,
    OrgDomainBlocker,
    OrgInitialIndustryBlocker,
    OrgInitialProvinceBlocker,
)
from hhdedupe.candidates.factory import (
    BLOCKER_REGISTRY,
    BlockerConfig,
    create_blocker,
    create_blockers,
    default_blocker_configs,
)
from hhdedupe.candidates.index import BlockingIndex

__all__ = [
    "BLOCKER_REGISTRY",
    "Blocker",
    "BlockerConfig",
    "BlockingIndex",
    "JobOrgProvinceWindowBlocker",
    "OrgDomainBlocker",
    "OrgInitialIndustryBlocker",
    "OrgInitialProvinceBlocker",
    "create_blocker",
    "create_blockers",
    "default_blocker_configs",
]

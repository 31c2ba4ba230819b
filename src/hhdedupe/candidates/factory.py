"""Registry-based factory for blocker instantiation.

New blocker types are added by extending ``BLOCKER_REGISTRY``; no
``match``/``case`` cascade to maintain.
"""

from __future__ import annotations

from collections.abc import Mapping, Sequence
from dataclasses import dataclass, field
from typing import Any

from hhdedupe.candidates.blockers import (
    Blocker,
    JobOrgProvinceWindowBlocker,
    OrgDomainBlocker,
    OrgInitialIndustryBlocker,
    OrgInitialProvinceBlocker,
)
from hhdedupe.errors import ConfigError
from hhdedupe.kinds import KIND_PROFILES
from hhdedupe.models.records import EntityKind

# type → class that returns a Blocker
BLOCKER_REGISTRY: dict[str, type] = {
    "job_org_province_window": JobOrgProvinceWindowBlocker,
    "org_initial_province": OrgInitialProvinceBlocker,
    "org_initial_industry": OrgInitialIndustryBlocker,
    "org_domain": OrgDomainBlocker,
}


@dataclass(frozen=True)
class BlockerConfig:
    """Declarative configuration for a single blocker.

    Attributes
    ----------
    type : str
        Key in ``BLOCKER_REGISTRY``.
    enabled : bool
        Disabled configs are silently skipped by ``create_blockers``.
    params : dict[str, Any]
        Keyword arguments forwarded to the blocker constructor.
    """

    type: str
    enabled: bool = True
    params: dict[str, Any] = field(default_factory=dict)

    @classmethod
    def from_value(cls, value: str | Mapping[str, Any] | BlockerConfig) -> BlockerConfig:
        """Build a config from a bare type name or a JSON mapping."""
        if isinstance(value, BlockerConfig):
            return value
        if isinstance(value, str):
            return cls(type=value)
        return cls(
            type=value["type"],
            enabled=value.get("enabled", True),
            params=dict(value.get("params") or {}),
        )

    def to_dict(self) -> dict[str, Any]:
        """Convert to dictionary for JSON serialization."""
        return {"type": self.type, "enabled": self.enabled, "params": dict(self.params)}


def create_blocker(config: BlockerConfig, kind: EntityKind | None = None) -> Blocker:
    """Instantiate a single blocker from *config*.

    Parameters
    ----------
    config : BlockerConfig
        Blocker configuration.
    kind : EntityKind | None, optional
        When given, the blocker must key records of this kind.

    Returns
    -------
    Blocker
        Ready-to-use blocker instance.

    Raises
    ------
    ConfigError
        If ``config.type`` is not in the registry, its parameters are
        invalid, or it keys a different kind.
    """
    cls = BLOCKER_REGISTRY.get(config.type)
    if cls is None:
        valid = ", ".join(sorted(BLOCKER_REGISTRY))
        raise ConfigError(f"Unknown blocker type: {config.type!r}. Valid types: {valid}")
    try:
        blocker: Blocker = cls(**config.params)
    except (TypeError, ValueError) as exc:
        raise ConfigError(f"Invalid params for blocker {config.type!r}: {exc}") from exc
    if kind is not None and blocker.kind is not kind:
        raise ConfigError(f"Blocker {config.type!r} keys {blocker.kind} records, not {kind}")
    return blocker


def create_blockers(
    configs: Sequence[BlockerConfig],
    kind: EntityKind | None = None,
) -> list[Blocker]:
    """Instantiate all *enabled* blockers from a config list.

    Parameters
    ----------
    configs : Sequence[BlockerConfig]
        Blocker configurations (disabled entries are filtered out).
    kind : EntityKind | None, optional
        Kind every blocker must key.

    Returns
    -------
    list[Blocker]
        Instantiated blockers.
    """
    return [create_blocker(cfg, kind) for cfg in configs if cfg.enabled]


def default_blocker_configs(kind: EntityKind) -> list[BlockerConfig]:
    """Blocker configs a kind uses when configuration names none."""
    return [BlockerConfig(type=name) for name in KIND_PROFILES[kind].default_blockers]

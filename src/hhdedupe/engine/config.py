"""Engine configuration and result dataclasses."""

from __future__ import annotations

import json
from dataclasses import asdict, dataclass, field
from pathlib import Path
from typing import Any

import jsonschema

from hhdedupe.candidates.blockers import Blocker
from hhdedupe.candidates.factory import BlockerConfig, create_blockers, default_blocker_configs
from hhdedupe.canonical.selector import DEFAULT_AUTHORITY_ORDER, SourceAuthority
from hhdedupe.errors import ConfigError
from hhdedupe.matching.models import MatchThresholds
from hhdedupe.models.records import EntityKind
from hhdedupe.scoring.comparators import DEFAULT_WEIGHTS
from hhdedupe.scoring.scorer import validate_weights

CONFIG_SCHEMA_PATH = Path(__file__).with_name("config.schema.json")

WINDOWED_BLOCKERS = frozenset({"job_org_province_window"})


def _default_blocking() -> dict[EntityKind, list[BlockerConfig]]:
    return {kind: default_blocker_configs(kind) for kind in EntityKind}


def _default_weights() -> dict[EntityKind, dict[str, float]]:
    return {kind: dict(weights) for kind, weights in DEFAULT_WEIGHTS.items()}


@dataclass
class DedupConfig:
    """Configuration of the resolution engine.

    Validated at construction time: an invalid configuration raises
    ``ConfigError`` before any record is processed.

    Attributes
    ----------
    blocking : dict[EntityKind, list[BlockerConfig]]
        Blockers per kind; every kind needs at least one enabled blocker.
    weights : dict[EntityKind, dict[str, float]]
        Similarity weights per kind (cover the kind's signals, sum to 1.0).
    thresholds : MatchThresholds
        near / fuzzy_accept / possible thresholds.
    posting_window_days : int
        Window of the job blocker (when its params do not set one).
    temporal_window_days : float
        Distance at which the temporal signal reaches 0.
    reposting_window_days : float
        Job matches further apart become reposting links.
    merge_reposts : bool
        Whether reposting links merge clusters.
    large_employer_threshold : int
        Employee count above which job matches need a city match.
    source_authority : list[str]
        Source ranking for canonical selection, most authoritative first.
    minhash_num_perm : int
        MinHash sketch length K.
    shingle_size : int
        Words per description shingle.
    max_block_size : int
        Bucket size that triggers an ``oversized_block`` warning.
    timeout_seconds : float | None
        Per-record match pipeline timeout (None disables it).
    """

    blocking: dict[EntityKind, list[BlockerConfig]] = field(default_factory=_default_blocking)
    weights: dict[EntityKind, dict[str, float]] = field(default_factory=_default_weights)
    thresholds: MatchThresholds = field(default_factory=MatchThresholds)
    posting_window_days: int = 30
    temporal_window_days: float = 30.0
    reposting_window_days: float = 30.0
    merge_reposts: bool = False
    large_employer_threshold: int = 1000
    source_authority: list[str] = field(default_factory=lambda: list(DEFAULT_AUTHORITY_ORDER))
    minhash_num_perm: int = 128
    shingle_size: int = 5
    max_block_size: int = 1000
    timeout_seconds: float | None = None

    def __post_init__(self) -> None:
        """Normalize and validate."""
        blocking = _default_blocking()
        for kind, configs in self.blocking.items():
            blocking[EntityKind(kind)] = [BlockerConfig.from_value(c) for c in configs]
        self.blocking = blocking

        weights = _default_weights()
        for kind, kind_weights in self.weights.items():
            weights[EntityKind(kind)] = {name: float(w) for name, w in kind_weights.items()}
        self.weights = weights
        for kind, kind_weights in self.weights.items():
            validate_weights(kind, kind_weights)

        for name in ("posting_window_days", "minhash_num_perm", "shingle_size", "max_block_size"):
            value = getattr(self, name)
            if not isinstance(value, int) or value < 1:
                raise ConfigError(f"{name} must be a positive integer, got {value!r}")
        for name in ("temporal_window_days", "reposting_window_days"):
            if getattr(self, name) <= 0:
                raise ConfigError(f"{name} must be > 0, got {getattr(self, name)}")
        if self.large_employer_threshold < 0:
            raise ConfigError(
                f"large_employer_threshold must be >= 0, got {self.large_employer_threshold}"
            )
        if self.timeout_seconds is not None and self.timeout_seconds <= 0:
            raise ConfigError(f"timeout_seconds must be > 0, got {self.timeout_seconds}")

        # Instantiate once to surface unknown blockers or bad params now
        self.build_blockers()

    def build_blockers(self) -> dict[EntityKind, list[Blocker]]:
        """Instantiate the configured blockers per kind.

        Raises
        ------
        ConfigError
            If a blocker is unknown, misconfigured, keys another kind, or a
            kind ends up with no enabled blocker.
        """
        built: dict[EntityKind, list[Blocker]] = {}
        for kind, configs in self.blocking.items():
            resolved = []
            for cfg in configs:
                if cfg.type in WINDOWED_BLOCKERS and "window_days" not in cfg.params:
                    cfg = BlockerConfig(
                        type=cfg.type,
                        enabled=cfg.enabled,
                        params={**cfg.params, "window_days": self.posting_window_days},
                    )
                resolved.append(cfg)
            blockers = create_blockers(resolved, kind)
            if not blockers:
                raise ConfigError(f"No blocking key definition for kind {kind}")
            built[kind] = blockers
        return built

    @property
    def authority(self) -> SourceAuthority:
        """Source ranking for canonical selection."""
        return SourceAuthority.from_list(self.source_authority)

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> DedupConfig:
        """Build a config from a JSON-compatible mapping.

        Raises
        ------
        ConfigError
            If the mapping fails schema or semantic validation.
        """
        validate_config_dict(data)
        values = dict(data)
        if "thresholds" in values:
            values["thresholds"] = MatchThresholds(**values["thresholds"])
        if "blocking" in values:
            values["blocking"] = {
                EntityKind(kind): [BlockerConfig.from_value(c) for c in configs]
                for kind, configs in values["blocking"].items()
            }
        if "weights" in values:
            values["weights"] = {EntityKind(kind): w for kind, w in values["weights"].items()}
        return cls(**values)

    def to_dict(self) -> dict[str, Any]:
        """Convert to a JSON-compatible dictionary (round-trips via from_dict)."""
        return {
            "blocking": {
                kind.value: [cfg.to_dict() for cfg in configs]
                for kind, configs in self.blocking.items()
            },
            "weights": {kind.value: dict(w) for kind, w in self.weights.items()},
            "thresholds": self.thresholds.to_dict(),
            "posting_window_days": self.posting_window_days,
            "temporal_window_days": self.temporal_window_days,
            "reposting_window_days": self.reposting_window_days,
            "merge_reposts": self.merge_reposts,
            "large_employer_threshold": self.large_employer_threshold,
            "source_authority": list(self.source_authority),
            "minhash_num_perm": self.minhash_num_perm,
            "shingle_size": self.shingle_size,
            "max_block_size": self.max_block_size,
            "timeout_seconds": self.timeout_seconds,
        }


def load_schema() -> dict[str, Any]:
    """Load the bundled configuration JSON schema."""
    with CONFIG_SCHEMA_PATH.open(encoding="utf-8") as f:
        schema: dict[str, Any] = json.load(f)
    return schema


def validate_config_dict(data: dict[str, Any]) -> None:
    """Validate a raw configuration mapping against the bundled schema.

    Raises
    ------
    ConfigError
        With the JSON path of the first violation.
    """
    try:
        jsonschema.validate(instance=data, schema=load_schema())
    except jsonschema.ValidationError as exc:
        location = "/".join(str(p) for p in exc.absolute_path) or "<root>"
        raise ConfigError(f"Invalid configuration at {location}: {exc.message}") from exc


def load_config(path: Path | str) -> DedupConfig:
    """Load and validate a JSON configuration file.

    Parameters
    ----------
    path : Path | str
        JSON file path.

    Returns
    -------
    DedupConfig
        Validated configuration.

    Raises
    ------
    ConfigError
        If the file is missing, not JSON, or invalid.
    """
    path = Path(path)
    try:
        with path.open(encoding="utf-8") as f:
            data = json.load(f)
    except FileNotFoundError as exc:
        raise ConfigError(f"Config file not found: {path}") from exc
    except json.JSONDecodeError as exc:
        raise ConfigError(f"Config file {path} is not valid JSON: {exc}") from exc
    if not isinstance(data, dict):
        raise ConfigError(f"Config file {path} must contain a JSON object")
    return DedupConfig.from_dict(data)


@dataclass
class RunResult:
    """Results from a batch run.

    Attributes
    ----------
    success : bool
        Whether the run completed.
    total_records : int
        Records loaded from the input.
    rejected_records : int
        Records that failed validation (or parsing).
    total_clusters : int
        Clusters after the run.
    duplicate_clusters : int
        Clusters with two or more members.
    records_in_duplicates : int
        Records belonging to multi-member clusters.
    possible_matches : int
        Review-band pairs queued for review.
    reposts : int
        Reposting links recorded.
    dedup_rate : float
        Fraction of records that are non-canonical duplicates.
    output_files : dict[str, str]
        Map of artifact type to file path.
    error_message : str | None
        Error message if failed.
    """

    success: bool
    total_records: int = 0
    rejected_records: int = 0
    total_clusters: int = 0
    duplicate_clusters: int = 0
    records_in_duplicates: int = 0
    possible_matches: int = 0
    reposts: int = 0
    dedup_rate: float = 0.0
    output_files: dict[str, str] = field(default_factory=dict)
    error_message: str | None = None

    def to_dict(self) -> dict[str, Any]:
        """Convert to dictionary."""
        return asdict(self)

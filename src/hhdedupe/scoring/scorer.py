"""Weighted similarity scorer.

The scorer combines per-signal similarities into one score in [0, 1]:

    score = Σ weight_i · sim_i

Weights are configuration; each kind's weight set covers exactly that kind's
signals and sums to 1.0. Every comparator is symmetric, so the score is too.
"""

from __future__ import annotations

from collections.abc import Mapping

from hhdedupe.errors import ConfigError
from hhdedupe.models.records import EntityKind, Record
from hhdedupe.normalize.keys import MatchKeys, build_keys
from hhdedupe.scoring.comparators import (
    DEFAULT_WEIGHTS,
    SIGNALS_BY_KIND,
    TEMPORAL_WINDOW_DAYS,
    SignalConfig,
)
from hhdedupe.scoring.models import PairScore, SignalScore

SCORE_PRECISION = 6
TOP_CONTRIBUTIONS = 3
WEIGHT_TOLERANCE = 1e-6


def validate_weights(kind: EntityKind, weights: Mapping[str, float]) -> None:
    """Check a weight set against a kind's signal registry.

    Parameters
    ----------
    kind : EntityKind
        Entity kind the weights apply to.
    weights : Mapping[str, float]
        Signal name → weight.

    Raises
    ------
    ConfigError
        If signals are missing or unknown, a weight is negative, or the
        weights do not sum to 1.0.
    """
    expected = {signal.name for signal in SIGNALS_BY_KIND[kind]}
    given = set(weights)
    if given != expected:
        missing = sorted(expected - given)
        unknown = sorted(given - expected)
        raise ConfigError(
            f"Weights for {kind} must cover exactly {sorted(expected)} "
            f"(missing={missing}, unknown={unknown})"
        )
    negative = sorted(name for name, w in weights.items() if w < 0)
    if negative:
        raise ConfigError(f"Weights for {kind} must be non-negative: {negative}")
    total = sum(weights.values())
    if abs(total - 1.0) > WEIGHT_TOLERANCE:
        raise ConfigError(f"Weights for {kind} must sum to 1.0, got {total:.6f}")


class SimilarityScorer:
    """Score same-kind record pairs with configurable weights.

    Parameters
    ----------
    weights : Mapping[EntityKind, Mapping[str, float]] | None
        Per-kind weight sets. Kinds not given use ``DEFAULT_WEIGHTS``.
    temporal_window_days : float
        Distance at which temporal proximity reaches 0.
    """

    def __init__(
        self,
        weights: Mapping[EntityKind, Mapping[str, float]] | None = None,
        temporal_window_days: float = TEMPORAL_WINDOW_DAYS,
    ) -> None:
        if temporal_window_days <= 0:
            raise ConfigError(f"temporal_window_days must be > 0, got {temporal_window_days}")
        merged = {kind: dict(w) for kind, w in DEFAULT_WEIGHTS.items()}
        for kind, kind_weights in (weights or {}).items():
            merged[EntityKind(kind)] = dict(kind_weights)
        for kind, kind_weights in merged.items():
            validate_weights(kind, kind_weights)
        self.weights = merged
        self.temporal_window_days = temporal_window_days

        # Deferred: kinds imports the comparator registry of this package
        from hhdedupe.kinds import get_profile

        self._signal_configs = {kind: get_profile(kind).similarity_signals() for kind in EntityKind}

    def _signals(self, keys_a: MatchKeys, keys_b: MatchKeys) -> dict[str, SignalScore]:
        kind_weights = self.weights[keys_a.kind]
        signals: dict[str, SignalScore] = {}
        config: SignalConfig
        for config in self._signal_configs[keys_a.kind]:
            sim = config.compare(keys_a, keys_b, window_days=self.temporal_window_days)
            weight = kind_weights[config.name]
            signals[config.name] = SignalScore(
                sim=round(sim, SCORE_PRECISION),
                weight=weight,
                contribution=round(sim * weight, SCORE_PRECISION),
            )
        return signals

    @staticmethod
    def _check_kinds(record_a: Record, record_b: Record) -> None:
        if record_a.kind != record_b.kind:
            raise ValueError(
                f"Cannot score {record_a.kind} {record_a.record_id!r} "
                f"against {record_b.kind} {record_b.record_id!r}"
            )

    def score(self, record_a: Record, record_b: Record) -> float:
        """Score a record pair.

        Parameters
        ----------
        record_a : Record
            First record.
        record_b : Record
            Second record (same kind).

        Returns
        -------
        float
            Weighted similarity in [0, 1], symmetric in its arguments.

        Raises
        ------
        ValueError
            If the records are of different kinds.
        """
        self._check_kinds(record_a, record_b)
        signals = self._signals(build_keys(record_a), build_keys(record_b))
        total = sum(s.sim * s.weight for s in signals.values())
        return round(min(1.0, max(0.0, total)), SCORE_PRECISION)

    def score_pair(self, record_a: Record, record_b: Record) -> PairScore:
        """Score a record pair with a per-signal breakdown.

        Parameters
        ----------
        record_a : Record
            First record.
        record_b : Record
            Second record (same kind).

        Returns
        -------
        PairScore
            Score, signal breakdown and top contributions. Record ids are
            ordered so the result does not depend on argument order.
        """
        self._check_kinds(record_a, record_b)
        if record_b.record_id < record_a.record_id:
            record_a, record_b = record_b, record_a

        signals = self._signals(build_keys(record_a), build_keys(record_b))
        total = sum(s.sim * s.weight for s in signals.values())
        ranked = sorted(signals.items(), key=lambda item: (-item[1].contribution, item[0]))
        top = tuple(
            {"signal": name, "contribution": sig.contribution}
            for name, sig in ranked[:TOP_CONTRIBUTIONS]
            if sig.contribution > 0
        )
        return PairScore(
            pair_id=f"{record_a.record_id}|{record_b.record_id}",
            rid_a=record_a.record_id,
            rid_b=record_b.record_id,
            kind=record_a.kind.value,
            signals=signals,
            score=round(min(1.0, max(0.0, total)), SCORE_PRECISION),
            top_contributions=top,
        )

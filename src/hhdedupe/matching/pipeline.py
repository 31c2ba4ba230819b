"""Three-stage match pipeline: exact → near → fuzzy.

All stages run against one candidate set retrieved from the blocking index.
A stage that accepts at least one edge ends the pipeline, unless its accepted
candidates belong to two or more distinct existing clusters; that is logged
as a data-quality warning and the next stage runs over the candidates not
yet matched.

Nothing is committed here: the pipeline returns a ``MatchOutcome`` that the
coordinator hands to the cluster graph as one batch. Cancellation discards
everything scored so far.
"""

from __future__ import annotations

import threading
import time
from collections.abc import Callable, Iterable
from dataclasses import dataclass

from hhdedupe.audit.logger import AuditLogger
from hhdedupe.errors import PipelineCancelled, RecordValidationError
from hhdedupe.fingerprint.generator import sketch_similarity
from hhdedupe.fingerprint.models import Fingerprint
from hhdedupe.kinds import get_profile
from hhdedupe.matching.models import CandidateEdge, MatchOutcome, MatchThresholds, MatchType
from hhdedupe.models.records import EntityKind, Record
from hhdedupe.normalize.keys import build_keys
from hhdedupe.scoring.comparators import location_similarity
from hhdedupe.scoring.scorer import SimilarityScorer

REPOSTING_WINDOW_DAYS = 30
LARGE_EMPLOYER_THRESHOLD = 1000
SECONDS_PER_DAY = 86400.0

STAGE_EXACT = "exact"
STAGE_NEAR = "near"
STAGE_FUZZY = "fuzzy"


@dataclass(frozen=True)
class Candidate:
    """A candidate record with its fingerprint."""

    record: Record
    fingerprint: Fingerprint


CandidateLookup = Callable[[str], Candidate | None]
ClusterLookup = Callable[[str], str | None]
PairFilter = Callable[[str, str], bool]


class MatchPipeline:
    """Generic match pipeline, parameterized by entity-kind profiles.

    Parameters
    ----------
    scorer : SimilarityScorer
        Weighted similarity scorer for the fuzzy stage.
    thresholds : MatchThresholds
        Classification thresholds.
    reposting_window_days : float
        Job matches further apart than this become reposting links.
    merge_reposts : bool
        When True, reposting matches merge like any accepted edge.
    large_employer_threshold : int
        Employee count above which same-organization job matches need a
        city match to be accepted.
    logger : AuditLogger | None
        Optional audit logger.
    """

    def __init__(
        self,
        scorer: SimilarityScorer,
        thresholds: MatchThresholds | None = None,
        reposting_window_days: float = REPOSTING_WINDOW_DAYS,
        merge_reposts: bool = False,
        large_employer_threshold: int = LARGE_EMPLOYER_THRESHOLD,
        logger: AuditLogger | None = None,
    ) -> None:
        self.scorer = scorer
        self.thresholds = thresholds or MatchThresholds()
        self.reposting_window_days = reposting_window_days
        self.merge_reposts = merge_reposts
        self.large_employer_threshold = large_employer_threshold
        self.logger = logger

    # ------------------------------------------------------------------
    # Entry point
    # ------------------------------------------------------------------

    def run(
        self,
        record: Record,
        fingerprint: Fingerprint,
        candidate_ids: Iterable[str],
        lookup: CandidateLookup,
        cluster_of: ClusterLookup,
        is_invalidated: PairFilter | None = None,
        deadline: float | None = None,
        cancel_event: threading.Event | None = None,
    ) -> MatchOutcome:
        """Match one record against its candidate set.

        Parameters
        ----------
        record : Record
            Incoming (validated) record.
        fingerprint : Fingerprint
            Fingerprint of ``record``.
        candidate_ids : Iterable[str]
            Ids returned by the blocking index.
        lookup : CandidateLookup
            Resolves a candidate id to its record and fingerprint (None when
            the record is unknown).
        cluster_of : ClusterLookup
            Current cluster id of a record (None if unclustered).
        is_invalidated : PairFilter | None, optional
            Pairs for which it returns True are never matched again.
        deadline : float | None, optional
            ``time.monotonic()`` value after which the run is cancelled.
        cancel_event : threading.Event | None, optional
            Setting the event cancels the run.

        Returns
        -------
        MatchOutcome
            Accepted edges plus side outputs.

        Raises
        ------
        PipelineCancelled
            On timeout or cancellation. No partial outcome is returned.
        """
        outcome = MatchOutcome(record_id=record.record_id)
        candidates = self._resolve(
            record, len(fingerprint.sketch), candidate_ids, lookup, is_invalidated, outcome
        )
        outcome.candidates_seen = len(candidates) + len(outcome.skipped)

        def check() -> None:
            if cancel_event is not None and cancel_event.is_set():
                raise PipelineCancelled(record.record_id, "cancelled")
            if deadline is not None and time.monotonic() > deadline:
                raise PipelineCancelled(record.record_id, "timeout")

        remaining = dict(candidates)
        stages = (
            (STAGE_EXACT, self._exact_stage),
            (STAGE_NEAR, self._near_stage),
            (STAGE_FUZZY, self._fuzzy_stage),
        )
        for stage_name, stage in stages:
            if not remaining:
                break
            check()
            accepted = stage(record, fingerprint, remaining, outcome, check)
            # Candidates diverted to a side output are decided
            for edge in (*outcome.possible, *outcome.reposts):
                remaining.pop(edge.other(record.record_id), None)
            if not accepted:
                continue
            for edge in accepted:
                remaining.pop(edge.other(record.record_id), None)
            outcome.edges.extend(accepted)

            clusters = sorted(
                {
                    cluster_id
                    for edge in accepted
                    if (cluster_id := cluster_of(edge.other(record.record_id))) is not None
                }
            )
            if len(clusters) >= 2:
                message = (
                    f"{stage_name} matches of {record.record_id} span "
                    f"{len(clusters)} clusters: {', '.join(clusters)}"
                )
                outcome.warnings.append(message)
                if self.logger:
                    self.logger.warn(
                        f"{stage_name}_match_spans_clusters",
                        data={"clusters": clusters},
                        stage="match",
                        rid=record.record_id,
                    )
                continue
            outcome.terminal_stage = stage_name
            break

        self._drop_joined_reposts(record.record_id, outcome, cluster_of)
        return outcome

    # ------------------------------------------------------------------
    # Candidate resolution
    # ------------------------------------------------------------------

    def _resolve(
        self,
        record: Record,
        sketch_length: int,
        candidate_ids: Iterable[str],
        lookup: CandidateLookup,
        is_invalidated: PairFilter | None,
        outcome: MatchOutcome,
    ) -> dict[str, Candidate]:
        profile = get_profile(record.kind)
        resolved: dict[str, Candidate] = {}
        for candidate_id in sorted(set(candidate_ids)):
            if candidate_id == record.record_id:
                continue
            if is_invalidated is not None and is_invalidated(record.record_id, candidate_id):
                continue
            candidate = lookup(candidate_id)
            if candidate is None:
                self._skip(outcome, record.record_id, candidate_id, "not_found")
                continue
            if candidate.record.kind is not record.kind:
                self._skip(outcome, record.record_id, candidate_id, "kind_mismatch")
                continue
            try:
                profile.validate(candidate.record)
            except RecordValidationError as exc:
                self._skip(outcome, record.record_id, candidate_id, str(exc))
                continue
            if len(candidate.fingerprint.sketch) != sketch_length:
                self._skip(outcome, record.record_id, candidate_id, "sketch_length_mismatch")
                continue
            resolved[candidate_id] = candidate
        return resolved

    def _skip(self, outcome: MatchOutcome, record_id: str, candidate_id: str, reason: str) -> None:
        outcome.skipped.append(candidate_id)
        outcome.warnings.append(f"candidate {candidate_id} skipped: {reason}")
        if self.logger:
            self.logger.candidate_skipped(rid=record_id, candidate_id=candidate_id, reason=reason)

    # ------------------------------------------------------------------
    # Stages
    # ------------------------------------------------------------------

    def _exact_stage(
        self,
        record: Record,
        fingerprint: Fingerprint,
        remaining: dict[str, Candidate],
        outcome: MatchOutcome,
        check: Callable[[], None],
    ) -> list[CandidateEdge]:
        accepted: list[CandidateEdge] = []
        for candidate in remaining.values():
            if candidate.fingerprint.exact_hash != fingerprint.exact_hash:
                continue
            edge = self._accept(record, candidate, MatchType.EXACT, 1.0, outcome, guard=False)
            if edge is not None:
                accepted.append(edge)
        return accepted

    def _near_stage(
        self,
        record: Record,
        fingerprint: Fingerprint,
        remaining: dict[str, Candidate],
        outcome: MatchOutcome,
        check: Callable[[], None],
    ) -> list[CandidateEdge]:
        if fingerprint.is_empty_sketch:
            return []
        accepted: list[CandidateEdge] = []
        for candidate in remaining.values():
            check()
            similarity = sketch_similarity(fingerprint.sketch, candidate.fingerprint.sketch)
            if similarity < self.thresholds.near:
                continue
            edge = self._accept(record, candidate, MatchType.NEAR, similarity, outcome)
            if edge is not None:
                accepted.append(edge)
        return accepted

    def _fuzzy_stage(
        self,
        record: Record,
        fingerprint: Fingerprint,
        remaining: dict[str, Candidate],
        outcome: MatchOutcome,
        check: Callable[[], None],
    ) -> list[CandidateEdge]:
        accepted: list[CandidateEdge] = []
        for candidate_id, candidate in remaining.items():
            check()
            score = self.scorer.score(record, candidate.record)
            match_type = self.thresholds.classify(score)
            if match_type is None:
                continue
            if match_type is MatchType.POSSIBLE:
                self._possible(record.record_id, candidate_id, score, outcome, "review_band")
                continue
            edge = self._accept(record, candidate, MatchType.FUZZY, score, outcome)
            if edge is not None:
                accepted.append(edge)
        return accepted

    # ------------------------------------------------------------------
    # Acceptance policies
    # ------------------------------------------------------------------

    def _accept(
        self,
        record: Record,
        candidate: Candidate,
        match_type: MatchType,
        score: float,
        outcome: MatchOutcome,
        guard: bool = True,
    ) -> CandidateEdge | None:
        """Apply the large-employer guard and the reposting policy.

        Returns the accepted edge, or None when the match was diverted to a
        side output.
        """
        candidate_id = candidate.record.record_id
        if guard and self._large_employer_blocks(record, candidate.record):
            self._possible(record.record_id, candidate_id, score, outcome, "large_employer_guard")
            return None

        if self._is_repost(record, candidate.record):
            repost = CandidateEdge.create(
                record.record_id, candidate_id, MatchType.REPOSTING, score
            )
            outcome.reposts.append(repost)
            if self.logger:
                self.logger.event(
                    "reposting_detected",
                    data={
                        "candidate_id": candidate_id,
                        "days_apart": round(self._days_apart(record, candidate.record), 3),
                        "merged": self.merge_reposts,
                    },
                    stage="match",
                    rid=record.record_id,
                )
            if not self.merge_reposts:
                return None

        return CandidateEdge.create(record.record_id, candidate_id, match_type, score)

    def _possible(
        self,
        record_id: str,
        candidate_id: str,
        score: float,
        outcome: MatchOutcome,
        reason: str,
    ) -> None:
        outcome.possible.append(
            CandidateEdge.create(record_id, candidate_id, MatchType.POSSIBLE, score)
        )
        if self.logger:
            self.logger.event(
                "possible_match",
                data={"candidate_id": candidate_id, "score": score, "reason": reason},
                stage="match",
                rid=record_id,
            )

    @staticmethod
    def _days_apart(a: Record, b: Record) -> float:
        return abs((a.observed_at - b.observed_at).total_seconds()) / SECONDS_PER_DAY

    def _is_repost(self, a: Record, b: Record) -> bool:
        if a.kind is not EntityKind.JOB:
            return False
        return self._days_apart(a, b) > self.reposting_window_days

    def _large_employer_blocks(self, a: Record, b: Record) -> bool:
        """True when a same-organization job match lacks the required city match."""
        if a.kind is not EntityKind.JOB:
            return False
        keys_a, keys_b = build_keys(a), build_keys(b)
        if not keys_a.organization_key or keys_a.organization_key != keys_b.organization_key:
            return False
        sizes = [size for size in (keys_a.size, keys_b.size) if size is not None]
        if not sizes or max(sizes) <= self.large_employer_threshold:
            return False
        location = location_similarity(keys_a.city, keys_b.city, keys_a.province, keys_b.province)
        return location < 1.0

    @staticmethod
    def _drop_joined_reposts(
        record_id: str,
        outcome: MatchOutcome,
        cluster_of: ClusterLookup,
    ) -> None:
        """Reposting links into a cluster the record joins anyway are redundant."""
        if not outcome.reposts or not outcome.edges:
            return
        joined = {cluster_of(edge.other(record_id)) for edge in outcome.edges}
        joined.discard(None)
        joined_ids = {edge.other(record_id) for edge in outcome.edges}
        outcome.reposts = [
            repost
            for repost in outcome.reposts
            if repost.other(record_id) not in joined_ids
            and cluster_of(repost.other(record_id)) not in joined
        ]

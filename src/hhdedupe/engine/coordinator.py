"""Dedup coordinator: the per-record resolution loop.

``DedupCoordinator.process`` drives one record through
validate → fingerprint → blocking lookup → match pipeline → graph update →
canonical selection. Scoring runs outside any lock; the record's store
entry, index keys and graph edges are committed together under a single
commit lock.

Commits are optimistic: the blocking index version is read before scoring.
If other records were inserted meanwhile, the late candidates sharing a key
with the record are scored before the commit, so two duplicates processed
concurrently always see each other.
"""

from __future__ import annotations

import threading
import time
from collections.abc import Iterable
from concurrent.futures import ThreadPoolExecutor
from dataclasses import dataclass, field
from typing import Any

from hhdedupe.audit.logger import AuditLogger
from hhdedupe.candidates.index import BlockingIndex
from hhdedupe.clustering.graph import ClusterGraph
from hhdedupe.clustering.models import Cluster, ClusterAssignment
from hhdedupe.engine.config import DedupConfig
from hhdedupe.errors import PipelineCancelled, RecordValidationError
from hhdedupe.fingerprint.generator import fingerprint
from hhdedupe.fingerprint.models import Fingerprint
from hhdedupe.kinds import get_profile
from hhdedupe.matching.models import CandidateEdge, MatchOutcome
from hhdedupe.matching.pipeline import Candidate, MatchPipeline
from hhdedupe.models.records import EntityKind, Record
from hhdedupe.scoring.scorer import SimilarityScorer

STAGE_VALIDATE = "validate"
STAGE_MATCH = "match"


@dataclass(frozen=True)
class StageError:
    """Structured failure of one ``process`` call.

    Attributes
    ----------
    stage : str
        Stage that failed ("validate", "match").
    code : str
        Machine-readable reason ("missing_fields", "cancelled", "timeout").
    message : str
        Human-readable description.
    """

    stage: str
    code: str
    message: str

    def to_dict(self) -> dict[str, str]:
        """Convert to dictionary for JSON serialization."""
        return {"stage": self.stage, "code": self.code, "message": self.message}


@dataclass
class ProcessResult:
    """Result of processing one record.

    Attributes
    ----------
    record_id : str
        Processed record.
    assignment : ClusterAssignment | None
        Cluster assignment after the commit (None on error).
    edges : list[CandidateEdge]
        Accepted edges newly committed for the record.
    possible : list[CandidateEdge]
        Review-band pairs queued for external review.
    reposts : list[CandidateEdge]
        Reposting links recorded for the record.
    merged_from : list[str]
        Cluster ids merged by this record (empty if none).
    warnings : list[str]
        Skipped candidates and data-quality notices.
    error : StageError | None
        Set when the record was rejected or its run cancelled.
    """

    record_id: str
    assignment: ClusterAssignment | None = None
    edges: list[CandidateEdge] = field(default_factory=list)
    possible: list[CandidateEdge] = field(default_factory=list)
    reposts: list[CandidateEdge] = field(default_factory=list)
    merged_from: list[str] = field(default_factory=list)
    warnings: list[str] = field(default_factory=list)
    error: StageError | None = None

    @property
    def success(self) -> bool:
        """Whether the record was committed."""
        return self.error is None

    def to_dict(self) -> dict[str, Any]:
        """Convert to dictionary for JSON serialization."""
        return {
            "record_id": self.record_id,
            "success": self.success,
            "assignment": self.assignment.to_dict() if self.assignment else None,
            "edges": [edge.to_dict() for edge in self.edges],
            "possible": [edge.to_dict() for edge in self.possible],
            "reposts": [edge.to_dict() for edge in self.reposts],
            "merged_from": list(self.merged_from),
            "warnings": list(self.warnings),
            "error": self.error.to_dict() if self.error else None,
        }


class DedupCoordinator:
    """Incremental entity resolution over a stream of records.

    Parameters
    ----------
    config : DedupConfig | None, optional
        Engine configuration (defaults when None).
    logger : AuditLogger | None, optional
        Optional audit logger shared by every component.
    graph : ClusterGraph | None, optional
        Cluster state to drive. Built when None; an injected graph has its
        record lookup bound to this coordinator's record store.

    Examples
    --------
    >>> coordinator = DedupCoordinator()
    >>> result = coordinator.process(record)  # doctest: +SKIP
    >>> result.assignment.cluster_id  # doctest: +SKIP
    'c:0f3a9b2c41de'
    """

    def __init__(
        self,
        config: DedupConfig | None = None,
        logger: AuditLogger | None = None,
        graph: ClusterGraph | None = None,
    ) -> None:
        self.config = config or DedupConfig()
        self.logger = logger
        self._records: dict[str, Record] = {}
        self._fingerprints: dict[str, Fingerprint] = {}
        self._review: dict[tuple[str, str], CandidateEdge] = {}
        self._reposts: dict[tuple[str, str], CandidateEdge] = {}
        self._store_lock = threading.Lock()
        self._commit_lock = threading.Lock()

        self.index = BlockingIndex(
            self.config.build_blockers(),
            max_block_size=self.config.max_block_size,
            logger=logger,
        )
        self.scorer = SimilarityScorer(
            weights=self.config.weights,
            temporal_window_days=self.config.temporal_window_days,
        )
        self.pipeline = MatchPipeline(
            scorer=self.scorer,
            thresholds=self.config.thresholds,
            reposting_window_days=self.config.reposting_window_days,
            merge_reposts=self.config.merge_reposts,
            large_employer_threshold=self.config.large_employer_threshold,
            logger=logger,
        )
        if graph is None:
            graph = ClusterGraph(self.get_record, authority=self.config.authority, logger=logger)
        else:
            graph.record_lookup = self.get_record
        self.graph = graph

    def __len__(self) -> int:
        with self._store_lock:
            return len(self._records)

    def __contains__(self, record_id: object) -> bool:
        with self._store_lock:
            return record_id in self._records

    # ------------------------------------------------------------------
    # Record store
    # ------------------------------------------------------------------

    def get_record(self, record_id: str) -> Record | None:
        """Current version of a processed record (None if unknown)."""
        with self._store_lock:
            return self._records.get(record_id)

    def _kind_conflict(self, record: Record) -> StageError | None:
        """Error when ``record`` reuses the id of a record of another kind."""
        stored = self.get_record(record.record_id)
        if stored is None or stored.kind is record.kind:
            return None
        if self.logger:
            self.logger.warn(
                "record_rejected",
                data={"reason": "kind_changed", "registered_kind": stored.kind.value},
                stage=STAGE_VALIDATE,
                rid=record.record_id,
            )
        return StageError(
            STAGE_VALIDATE,
            "kind_changed",
            f"Record {record.record_id!r} is registered as {stored.kind.value}, "
            f"not {record.kind.value}",
        )

    def _candidate(self, record_id: str) -> Candidate | None:
        with self._store_lock:
            record = self._records.get(record_id)
            fp = self._fingerprints.get(record_id)
        if record is None or fp is None:
            return None
        return Candidate(record=record, fingerprint=fp)

    # ------------------------------------------------------------------
    # Processing
    # ------------------------------------------------------------------

    def process(
        self,
        record: Record,
        cancel_event: threading.Event | None = None,
    ) -> ProcessResult:
        """Resolve one record into the cluster graph.

        Re-processing a record with new attributes replaces its stored
        version, fingerprint and block keys; its existing edges are kept.
        Processing an unchanged record again is a no-op for the graph.

        Parameters
        ----------
        record : Record
            Normalized record.
        cancel_event : threading.Event | None, optional
            Setting the event cancels the run before anything is committed.

        Returns
        -------
        ProcessResult
            Assignment and committed edges, or a ``StageError``.

        Raises
        ------
        InvariantViolation
            If the cluster graph is found in an inconsistent state.
        """
        rid = record.record_id
        profile = get_profile(record.kind)
        try:
            profile.validate(record)
        except RecordValidationError as exc:
            if self.logger:
                self.logger.warn(
                    "record_rejected",
                    data={"missing": list(exc.missing)},
                    stage=STAGE_VALIDATE,
                    rid=rid,
                )
            return ProcessResult(
                record_id=rid,
                error=StageError(STAGE_VALIDATE, "missing_fields", str(exc)),
            )
        conflict = self._kind_conflict(record)
        if conflict is not None:
            return ProcessResult(record_id=rid, error=conflict)

        fp = fingerprint(
            record,
            num_perm=self.config.minhash_num_perm,
            shingle_size=self.config.shingle_size,
        )
        keys = self.index.keys_for(record)
        deadline = (
            time.monotonic() + self.config.timeout_seconds
            if self.config.timeout_seconds is not None
            else None
        )

        try:
            version = self.index.version
            seen = self.index.lookup(keys, exclude=rid)
            outcome = self._match(record, fp, seen, deadline, cancel_event)
            while True:
                with self._commit_lock:
                    late: set[str] = set()
                    if self.index.version != version:
                        late = self.index.lookup(keys, exclude=rid) - seen
                        version = self.index.version
                    if not late:
                        # The same id may have been committed with another kind meanwhile
                        conflict = self._kind_conflict(record)
                        if conflict is not None:
                            return ProcessResult(record_id=rid, error=conflict)
                        return self._commit(record, fp, keys, outcome)
                seen |= late
                outcome.merge(self._match(record, fp, late, deadline, cancel_event))
        except PipelineCancelled as exc:
            if self.logger:
                self.logger.warn(
                    "pipeline_cancelled",
                    data={"reason": exc.reason},
                    stage=STAGE_MATCH,
                    rid=rid,
                )
            return ProcessResult(
                record_id=rid,
                error=StageError(STAGE_MATCH, exc.reason, str(exc)),
            )

    def _match(
        self,
        record: Record,
        fp: Fingerprint,
        candidate_ids: Iterable[str],
        deadline: float | None,
        cancel_event: threading.Event | None,
    ) -> MatchOutcome:
        return self.pipeline.run(
            record,
            fp,
            candidate_ids,
            lookup=self._candidate,
            cluster_of=self.graph.cluster_id_of,
            is_invalidated=self.graph.is_invalidated,
            deadline=deadline,
            cancel_event=cancel_event,
        )

    def _commit(
        self,
        record: Record,
        fp: Fingerprint,
        keys: frozenset[str],
        outcome: MatchOutcome,
    ) -> ProcessResult:
        """Store, apply edges and index a record (commit lock held)."""
        rid = record.record_id
        with self._store_lock:
            previous = self._records.get(rid)
            previous_fp = self._fingerprints.get(rid)
            self._records[rid] = record
            self._fingerprints[rid] = fp
        try:
            applied = self.graph.apply(rid, record.kind, outcome.edges)
        except Exception:
            with self._store_lock:
                if previous is None:
                    self._records.pop(rid, None)
                    self._fingerprints.pop(rid, None)
                else:
                    self._records[rid] = previous
                    if previous_fp is not None:
                        self._fingerprints[rid] = previous_fp
            raise
        self.index.insert(record, keys)

        if applied.new_edges:
            self._prune_review()
        possible = [
            edge
            for edge in outcome.possible
            if edge.pair not in self._review and not self._same_cluster(*edge.pair)
        ]
        for edge in possible:
            self._review[edge.pair] = edge
        reposts = [edge for edge in outcome.reposts if edge.pair not in self._reposts]
        for edge in reposts:
            self._reposts[edge.pair] = edge

        assignment = applied.assignment
        if self.logger:
            self.logger.record_processed(
                rid=rid,
                cluster_id=assignment.cluster_id,
                is_canonical=assignment.is_canonical,
                edges=len(applied.new_edges),
            )

        warnings = list(outcome.warnings)
        warnings.extend(
            f"edge {edge.pair_id} dropped: pair invalidated" for edge in applied.dropped_edges
        )
        return ProcessResult(
            record_id=rid,
            assignment=assignment,
            edges=applied.new_edges,
            possible=possible,
            reposts=reposts,
            merged_from=applied.merged_from,
            warnings=warnings,
        )

    def _same_cluster(self, record_a_id: str, record_b_id: str) -> bool:
        cluster_id = self.graph.cluster_id_of(record_a_id)
        return cluster_id is not None and cluster_id == self.graph.cluster_id_of(record_b_id)

    def _prune_review(self) -> None:
        """Drop queued pairs whose records now share a cluster (commit lock held)."""
        for pair in [p for p in self._review if self._same_cluster(*p)]:
            del self._review[pair]

    def process_many(
        self,
        records: Iterable[Record],
        max_workers: int | None = None,
    ) -> list[ProcessResult]:
        """Process records on a thread pool.

        The final partition does not depend on the number of workers; only
        ids and canonical choices can differ in which record gets to merge
        first.

        Parameters
        ----------
        records : Iterable[Record]
            Records to process.
        max_workers : int | None, optional
            Thread pool size; 1 processes sequentially in input order.

        Returns
        -------
        list[ProcessResult]
            One result per record, in input order.
        """
        items = list(records)
        if max_workers == 1:
            return [self.process(record) for record in items]
        with ThreadPoolExecutor(max_workers=max_workers) as pool:
            return list(pool.map(self.process, items))

    # ------------------------------------------------------------------
    # Administrative operations
    # ------------------------------------------------------------------

    def invalidate_edge(self, record_a_id: str, record_b_id: str) -> list[ClusterAssignment]:
        """Remove an accepted edge and split its cluster if needed.

        Raises
        ------
        EdgeNotFoundError
            If no accepted edge joins the two records.
        """
        with self._commit_lock:
            assignments = self.graph.invalidate_edge(record_a_id, record_b_id)
            pair = (min(record_a_id, record_b_id), max(record_a_id, record_b_id))
            self._review.pop(pair, None)
            self._reposts.pop(pair, None)
            return assignments

    def update_quality(self, record_id: str, quality_score: float) -> ClusterAssignment:
        """Replace a record's quality score and recompute its cluster's canonical.

        Raises
        ------
        KeyError
            If the record was never processed.
        ValueError
            If the score is outside [0, 100].
        """
        with self._commit_lock:
            with self._store_lock:
                updated = self._records[record_id].with_quality(quality_score)
                self._records[record_id] = updated
            self.graph.refresh(record_id)
            return self.graph.assignment(record_id)

    # ------------------------------------------------------------------
    # Queries
    # ------------------------------------------------------------------

    def assignment(self, record_id: str) -> ClusterAssignment:
        """Cluster assignment of a processed record.

        Raises
        ------
        KeyError
            If the record was never processed.
        """
        return self.graph.assignment(record_id)

    def assignments(self) -> list[ClusterAssignment]:
        """Assignments of every processed record, sorted by record id."""
        return self.graph.assignments()

    def clusters(self, kind: EntityKind | None = None) -> list[Cluster]:
        """Current clusters, sorted by cluster id."""
        return self.graph.clusters(kind)

    def edges(self) -> list[CandidateEdge]:
        """Accepted edges, sorted by pair."""
        return self.graph.edges()

    def review_queue(self) -> list[CandidateEdge]:
        """Pairs in the ``possible`` band awaiting external review."""
        with self._commit_lock:
            return [self._review[pair] for pair in sorted(self._review)]

    def reposts(self) -> list[CandidateEdge]:
        """Reposting links between job clusters."""
        with self._commit_lock:
            return [self._reposts[pair] for pair in sorted(self._reposts)]

    def records(self) -> list[Record]:
        """Current version of every processed record, sorted by id."""
        with self._store_lock:
            return [self._records[rid] for rid in sorted(self._records)]

    def check_invariants(self) -> None:
        """Verify the cluster partition (raises ``InvariantViolation``)."""
        with self._commit_lock:
            self.graph.check_invariants()

    def snapshot(self) -> dict[str, list[dict[str, Any]]]:
        """Export the full state for an external storage layer.

        Returns
        -------
        dict[str, list[dict[str, Any]]]
            JSON-compatible ``records``, ``edges``, ``clusters``,
            ``assignments``, ``review_queue`` and ``reposts`` lists.
        """
        with self._commit_lock:
            return {
                "records": [record.to_dict() for record in self.records()],
                "edges": [edge.to_dict() for edge in self.graph.edges()],
                "clusters": [cluster.to_dict() for cluster in self.graph.clusters()],
                "assignments": [a.to_dict() for a in self.graph.assignments()],
                "review_queue": [self._review[p].to_dict() for p in sorted(self._review)],
                "reposts": [self._reposts[p].to_dict() for p in sorted(self._reposts)],
            }

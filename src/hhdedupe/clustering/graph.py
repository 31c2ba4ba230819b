"""Cluster graph engine.

Maintains the global partition of records into clusters as accepted edges
arrive, using union-find for merges. The only full component recomputation
is the split path (``invalidate_edge``), scoped to the affected cluster.

The graph is an explicitly owned, injected object: the coordinator builds
one and passes it around; there is no module-level state.
"""

from __future__ import annotations

import threading
from collections.abc import Callable, Iterable
from dataclasses import dataclass, field

from hhdedupe.audit.logger import AuditLogger
from hhdedupe.canonical.selector import SourceAuthority, select_canonical
from hhdedupe.clustering.models import Cluster, ClusterAssignment, compute_cluster_id
from hhdedupe.clustering.union_find import UnionFind
from hhdedupe.errors import EdgeNotFoundError, InvariantViolation
from hhdedupe.matching.models import CandidateEdge
from hhdedupe.models.records import EntityKind, Record

RecordLookup = Callable[[str], Record | None]
Pair = tuple[str, str]


def _pair(a: str, b: str) -> Pair:
    return (a, b) if a < b else (b, a)


@dataclass
class ApplyResult:
    """Outcome of applying one record's edge batch.

    Attributes
    ----------
    assignment : ClusterAssignment
        The record's assignment after the commit.
    new_edges : list[CandidateEdge]
        Edges that were not already present.
    dropped_edges : list[CandidateEdge]
        Edges refused because their pair was invalidated.
    merged_from : list[str]
        Previous cluster ids that were merged (empty if no merge).
    """

    assignment: ClusterAssignment
    new_edges: list[CandidateEdge] = field(default_factory=list)
    dropped_edges: list[CandidateEdge] = field(default_factory=list)
    merged_from: list[str] = field(default_factory=list)


class ClusterGraph:
    """Union-find backed cluster state, keyed by record id.

    Parameters
    ----------
    record_lookup : RecordLookup
        Resolves a record id to its current record (for canonical selection).
    authority : SourceAuthority | None
        Source ranking used by the canonical selector.
    logger : AuditLogger | None
        Optional audit logger.
    """

    def __init__(
        self,
        record_lookup: RecordLookup,
        authority: SourceAuthority | None = None,
        logger: AuditLogger | None = None,
    ) -> None:
        self.record_lookup = record_lookup
        self.authority = authority or SourceAuthority()
        self.logger = logger
        self._lock = threading.RLock()
        self._uf = UnionFind()
        self._kinds: dict[str, EntityKind] = {}
        self._members: dict[str, set[str]] = {}
        self._edges: dict[Pair, CandidateEdge] = {}
        self._adjacency: dict[str, set[str]] = {}
        self._invalidated: set[Pair] = set()
        self._clusters: dict[str, Cluster] = {}
        self._cluster_of: dict[str, str] = {}

    # ------------------------------------------------------------------
    # Queries
    # ------------------------------------------------------------------

    def __contains__(self, record_id: object) -> bool:
        with self._lock:
            return record_id in self._kinds

    def __len__(self) -> int:
        with self._lock:
            return len(self._kinds)

    def cluster_id_of(self, record_id: str) -> str | None:
        """Current cluster id of a record (None if unknown)."""
        with self._lock:
            return self._cluster_of.get(record_id)

    def cluster(self, cluster_id: str) -> Cluster | None:
        """Cluster by id (None if unknown)."""
        with self._lock:
            return self._clusters.get(cluster_id)

    def cluster_for(self, record_id: str) -> Cluster | None:
        """Cluster containing a record (None if unknown)."""
        with self._lock:
            cluster_id = self._cluster_of.get(record_id)
            return self._clusters.get(cluster_id) if cluster_id else None

    def assignment(self, record_id: str) -> ClusterAssignment:
        """Assignment of a registered record.

        Raises
        ------
        KeyError
            If the record is not registered.
        """
        with self._lock:
            cluster = self._clusters[self._cluster_of[record_id]]
            return ClusterAssignment(
                record_id=record_id,
                cluster_id=cluster.cluster_id,
                is_canonical=cluster.canonical_id == record_id,
            )

    def assignments(self) -> list[ClusterAssignment]:
        """Assignments of every registered record, sorted by record id."""
        with self._lock:
            return [self.assignment(record_id) for record_id in sorted(self._kinds)]

    def clusters(self, kind: EntityKind | None = None) -> list[Cluster]:
        """All clusters (optionally of one kind), sorted by cluster id."""
        with self._lock:
            found = [c for c in self._clusters.values() if kind is None or c.kind == kind.value]
            return sorted(found, key=lambda c: c.cluster_id)

    def edges(self) -> list[CandidateEdge]:
        """Accepted edges, sorted by pair."""
        with self._lock:
            return [self._edges[pair] for pair in sorted(self._edges)]

    def has_edge(self, record_a_id: str, record_b_id: str) -> bool:
        """Whether an accepted edge joins the two records."""
        with self._lock:
            return _pair(record_a_id, record_b_id) in self._edges

    def is_invalidated(self, record_a_id: str, record_b_id: str) -> bool:
        """Whether the pair was administratively invalidated."""
        with self._lock:
            return _pair(record_a_id, record_b_id) in self._invalidated

    def invalidated_pairs(self) -> list[Pair]:
        """Invalidated pairs, sorted."""
        with self._lock:
            return sorted(self._invalidated)

    # ------------------------------------------------------------------
    # Mutations
    # ------------------------------------------------------------------

    def apply(
        self,
        record_id: str,
        kind: EntityKind,
        edges: Iterable[CandidateEdge],
    ) -> ApplyResult:
        """Register a record and apply its accepted edges atomically.

        The whole batch is validated before anything changes, so a bad edge
        leaves the graph untouched. Re-applying an already applied batch is
        a no-op.

        Parameters
        ----------
        record_id : str
            Record the batch belongs to (registered if new).
        kind : EntityKind
            Entity kind of the record.
        edges : Iterable[CandidateEdge]
            Accepted (merging) edges produced for the record.

        Returns
        -------
        ApplyResult
            Assignment after the commit plus edge bookkeeping.

        Raises
        ------
        ValueError
            If an edge is not a merging type, names an unknown record, or
            joins records of different kinds.
        """
        batch = list(edges)
        with self._lock:
            known_kind = self._kinds.get(record_id)
            if known_kind is not None and known_kind is not kind:
                raise ValueError(f"Record {record_id!r} is registered as {known_kind}, not {kind}")
            for edge in batch:
                self._validate_edge(record_id, kind, edge)

            result_edges: list[CandidateEdge] = []
            dropped: list[CandidateEdge] = []
            if known_kind is None:
                self._register(record_id, kind)

            touched = {record_id}
            for edge in batch:
                pair = edge.pair
                if pair in self._invalidated:
                    dropped.append(edge)
                    continue
                if pair in self._edges:
                    continue
                self._edges[pair] = edge
                self._adjacency.setdefault(edge.record_a_id, set()).add(edge.record_b_id)
                self._adjacency.setdefault(edge.record_b_id, set()).add(edge.record_a_id)
                touched.update(pair)
                result_edges.append(edge)

            # A record registered by this batch has no prior cluster to merge
            prior = touched - {record_id} if known_kind is None else touched
            before = sorted({self._cluster_of[rid] for rid in prior})
            for edge in result_edges:
                self._union(edge.record_a_id, edge.record_b_id)

            for root in sorted({self._uf.find(rid) for rid in touched}):
                self._rebuild_cluster(root)
            cluster = self._clusters[self._cluster_of[record_id]]
            merged_from = before if len(before) > 1 else []
            if merged_from and self.logger:
                self.logger.clusters_merged(
                    cluster_id=cluster.cluster_id,
                    merged_from=merged_from,
                    size=cluster.size,
                )

            return ApplyResult(
                assignment=self.assignment(record_id),
                new_edges=result_edges,
                dropped_edges=dropped,
                merged_from=merged_from,
            )

    def invalidate_edge(self, record_a_id: str, record_b_id: str) -> list[ClusterAssignment]:
        """Remove an accepted edge and split its cluster if needed.

        The pair is remembered so later pipeline runs never recreate it.
        Components are recomputed for the affected cluster only.

        Parameters
        ----------
        record_a_id : str
            One endpoint.
        record_b_id : str
            Other endpoint.

        Returns
        -------
        list[ClusterAssignment]
            Assignments of every member of the former cluster, sorted by
            record id.

        Raises
        ------
        EdgeNotFoundError
            If no accepted edge joins the two records.
        """
        pair = _pair(record_a_id, record_b_id)
        with self._lock:
            edge = self._edges.pop(pair, None)
            if edge is None:
                raise EdgeNotFoundError(*pair)
            self._adjacency[pair[0]].discard(pair[1])
            self._adjacency[pair[1]].discard(pair[0])
            self._invalidated.add(pair)

            root = self._uf.find(pair[0])
            old_cluster_id = self._cluster_of[pair[0]]
            members = self._members.pop(root)
            self._clusters.pop(old_cluster_id, None)
            self._uf.reset(members)
            for member in members:
                self._members[member] = {member}
            for member in sorted(members):
                for neighbour in sorted(self._adjacency.get(member, ())):
                    self._union(member, neighbour)

            new_roots = sorted({self._uf.find(member) for member in members})
            new_clusters = [self._rebuild_cluster(r) for r in new_roots]

            if self.logger:
                self.logger.event(
                    "edge_invalidated",
                    data={"pair_id": edge.pair_id, "match_type": edge.match_type.value},
                    stage="cluster",
                )
                if len(new_clusters) > 1:
                    self.logger.event(
                        "cluster_split",
                        data={
                            "cluster_id": old_cluster_id,
                            "into": sorted(c.cluster_id for c in new_clusters),
                        },
                        stage="cluster",
                    )

            return [self.assignment(member) for member in sorted(members)]

    def refresh(self, record_id: str) -> Cluster:
        """Recompute the canonical member of a record's cluster.

        Called after a member's attributes or quality score change.

        Raises
        ------
        KeyError
            If the record is not registered.
        """
        with self._lock:
            if record_id not in self._kinds:
                raise KeyError(record_id)
            return self._rebuild_cluster(self._uf.find(record_id))

    # ------------------------------------------------------------------
    # Invariants
    # ------------------------------------------------------------------

    def check_invariants(self) -> None:
        """Verify the cluster partition.

        Raises
        ------
        InvariantViolation
            On a zero-member cluster, a record assigned to two clusters, a
            registered record without a cluster, or a cluster mixing kinds.
        """
        with self._lock:
            seen: dict[str, str] = {}
            for cluster in self._clusters.values():
                if not cluster.member_ids:
                    raise InvariantViolation(f"Cluster {cluster.cluster_id} has zero members")
                for member in cluster.member_ids:
                    if member in seen:
                        raise InvariantViolation(
                            f"Record {member!r} assigned to both {seen[member]} "
                            f"and {cluster.cluster_id}"
                        )
                    seen[member] = cluster.cluster_id
                    if self._kinds.get(member) != cluster.kind:
                        raise InvariantViolation(
                            f"Cluster {cluster.cluster_id} mixes kinds at record {member!r}"
                        )
            missing = set(self._kinds) - set(seen)
            if missing:
                raise InvariantViolation(f"Records without a cluster: {sorted(missing)}")

    # ------------------------------------------------------------------
    # Internals (lock held)
    # ------------------------------------------------------------------

    def _validate_edge(self, record_id: str, kind: EntityKind, edge: CandidateEdge) -> None:
        if not edge.match_type.merges:
            raise ValueError(f"Edge {edge.pair_id} of type {edge.match_type} does not merge")
        for endpoint in edge.pair:
            if endpoint == record_id:
                continue
            endpoint_kind = self._kinds.get(endpoint)
            if endpoint_kind is None:
                raise ValueError(f"Edge {edge.pair_id} names unregistered record {endpoint!r}")
            if endpoint_kind is not kind:
                raise ValueError(f"Edge {edge.pair_id} joins {kind} and {endpoint_kind} records")

    def _register(self, record_id: str, kind: EntityKind) -> None:
        self._kinds[record_id] = kind
        self._uf.make_set(record_id)
        self._members[record_id] = {record_id}
        self._rebuild_cluster(record_id)

    def _union(self, a: str, b: str) -> None:
        root_a, root_b = self._uf.find(a), self._uf.find(b)
        if root_a == root_b:
            return
        root = self._uf.union(root_a, root_b)
        absorbed = root_b if root == root_a else root_a
        for stale in (self._cluster_of[a], self._cluster_of[b]):
            self._clusters.pop(stale, None)
        self._members[root] |= self._members.pop(absorbed)

    def _rebuild_cluster(self, root: str) -> Cluster:
        members = sorted(self._members[root])
        records = []
        for member in members:
            record = self.record_lookup(member)
            if record is None:
                raise InvariantViolation(f"Cluster member {member!r} has no record")
            records.append(record)

        internal = [
            self._edges[_pair(a, b)]
            for a in members
            for b in self._adjacency.get(a, ())
            if a < b
        ]
        cluster = Cluster(
            cluster_id=compute_cluster_id(members),
            kind=self._kinds[members[0]].value,
            canonical_id=select_canonical(records, self.authority),
            member_ids=tuple(members),
            confidence=self._spanning_confidence(members, internal),
            edge_count=len(internal),
        )
        for member in members:
            old = self._cluster_of.get(member)
            if old is not None and old != cluster.cluster_id:
                self._clusters.pop(old, None)
            self._cluster_of[member] = cluster.cluster_id
        self._clusters[cluster.cluster_id] = cluster
        return cluster

    @staticmethod
    def _spanning_confidence(members: list[str], edges: list[CandidateEdge]) -> float:
        """Minimum edge score on a maximum spanning forest (Kruskal)."""
        if len(members) < 2:
            return 1.0
        forest = UnionFind()
        weakest = 1.0
        for edge in sorted(edges, key=lambda e: (-e.score, e.pair)):
            if forest.find(edge.record_a_id) != forest.find(edge.record_b_id):
                forest.union(edge.record_a_id, edge.record_b_id)
                weakest = min(weakest, edge.score)
        return round(weakest, 6)

"""Data models for clusters and cluster assignments."""

import hashlib
from collections.abc import Sequence
from dataclasses import dataclass
from typing import Any


@dataclass(frozen=True)
class Cluster:
    """A maximal set of linked records representing one real-world entity.

    Attributes
    ----------
    cluster_id : str
        Deterministic ID derived from the sorted member ids.
    kind : str
        Entity kind of every member.
    canonical_id : str
        Canonical member's record id.
    member_ids : tuple[str, ...]
        Sorted member record ids.
    confidence : float
        Weakest link holding the cluster together: the minimum edge score
        over a maximum spanning forest (1.0 for singletons).
    edge_count : int
        Accepted edges between members.
    """

    cluster_id: str
    kind: str
    canonical_id: str
    member_ids: tuple[str, ...]
    confidence: float
    edge_count: int

    @property
    def size(self) -> int:
        """Number of members."""
        return len(self.member_ids)

    def to_dict(self) -> dict[str, Any]:
        """Convert to dictionary for JSON serialization.

        Returns
        -------
        dict[str, Any]
            Dictionary representation.
        """
        return {
            "cluster_id": self.cluster_id,
            "kind": self.kind,
            "canonical_id": self.canonical_id,
            "member_ids": list(self.member_ids),
            "size": self.size,
            "confidence": self.confidence,
            "edge_count": self.edge_count,
        }

    @staticmethod
    def from_dict(data: dict[str, Any]) -> "Cluster":
        """Create Cluster from dictionary.

        Parameters
        ----------
        data : dict[str, Any]
            Dictionary representation.

        Returns
        -------
        Cluster
            Cluster object.
        """
        return Cluster(
            cluster_id=data["cluster_id"],
            kind=data["kind"],
            canonical_id=data["canonical_id"],
            member_ids=tuple(data["member_ids"]),
            confidence=data.get("confidence", 1.0),
            edge_count=data.get("edge_count", 0),
        )


@dataclass(frozen=True)
class ClusterAssignment:
    """Cluster membership of one record.

    Attributes
    ----------
    record_id : str
        Record identifier.
    cluster_id : str
        Cluster the record belongs to.
    is_canonical : bool
        Whether the record is the cluster's canonical member.
    """

    record_id: str
    cluster_id: str
    is_canonical: bool

    def to_dict(self) -> dict[str, Any]:
        """Convert to dictionary for JSON serialization."""
        return {
            "record_id": self.record_id,
            "cluster_id": self.cluster_id,
            "is_canonical": self.is_canonical,
        }


def compute_cluster_id(rids: Sequence[str]) -> str:
    """Compute deterministic cluster ID from sorted RIDs.

    Parameters
    ----------
    rids : Sequence[str]
        Record IDs in cluster.

    Returns
    -------
    str
        Cluster ID in format "c:{sha256_prefix}".
    """
    content = "\n".join(sorted(rids))
    hash_digest = hashlib.sha256(content.encode("utf-8")).hexdigest()
    return f"c:{hash_digest[:12]}"

"""Clustering module for hhdedupe.

This module maintains connected components of accepted match edges with a
union-find structure, derives deterministic cluster ids and keeps each
cluster's canonical member current.
"""

from hhdedupe.clustering.graph import ApplyResult, ClusterGraph
from hhdedupe.clustering.models import Cluster, ClusterAssignment, compute_cluster_id
from hhdedupe.clustering.union_find import UnionFind

__all__ = [
    "ApplyResult",
    "Cluster",
    "ClusterAssignment",
    "ClusterGraph",
    "UnionFind",
    "compute_cluster_id",
]

"""Graph construction and spanning tree utilities."""

from .builder import (
    SUPPORTED_METRICS,
    build_distance_graph,
    build_knn_graph,
    build_pairwise_graph,
    graph_from_adjacency,
)
from .models import HierarchyConsistencyError, LinkageDistance, SparseGraph, SpanningTree
from .mst import build_sorted_mst

__all__ = [
    "SUPPORTED_METRICS",
    "HierarchyConsistencyError",
    "LinkageDistance",
    "SparseGraph",
    "SpanningTree",
    "build_distance_graph",
    "build_knn_graph",
    "build_pairwise_graph",
    "build_sorted_mst",
    "graph_from_adjacency",
]

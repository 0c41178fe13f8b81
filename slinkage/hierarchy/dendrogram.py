"""Build the single-linkage dendrogram from sorted spanning tree edges."""
from __future__ import annotations

import logging

import numpy as np

from slinkage.graph.models import HierarchyConsistencyError, SpanningTree
from slinkage.hierarchy.models import Dendrogram

logger = logging.getLogger(__name__)


def _current_cluster(parent: list, point: int) -> int:
    """Follow merge pointers to the newest cluster containing ``point``."""
    while parent[point] != point:
        # Path halving
        parent[point] = parent[parent[point]]
        point = parent[point]
    return point


def build_dendrogram_from_edges(
    rows: np.ndarray,
    cols: np.ndarray,
    weights: np.ndarray,
    n_leaves: int,
) -> Dendrogram:
    """Merge clusters along edges already sorted ascending by weight.

    Each edge joins the current clusters of its two endpoints into a new
    internal node ``n_leaves + i``. An edge whose endpoints already share a
    cluster means the input was not a tree and raises
    ``HierarchyConsistencyError``.
    """
    rows = np.asarray(rows, dtype=np.int64)
    cols = np.asarray(cols, dtype=np.int64)
    weights = np.asarray(weights, dtype=np.float64)

    if n_leaves < 1:
        raise ValueError(f"n_leaves must be at least 1, got {n_leaves}")
    if not (rows.shape == cols.shape == weights.shape) or rows.ndim != 1:
        raise ValueError("rows, cols and weights must be 1-D arrays of equal length")
    n_merges = rows.shape[0]
    if n_merges != n_leaves - 1:
        raise HierarchyConsistencyError(
            f"{n_merges} edges cannot span {n_leaves} points; expected {n_leaves - 1}"
        )
    if n_merges and (min(rows.min(), cols.min()) < 0 or max(rows.max(), cols.max()) >= n_leaves):
        raise ValueError(f"edge endpoints must lie in [0, {n_leaves})")
    if np.any(np.diff(weights) < 0):
        raise ValueError("edges must be sorted ascending by weight")

    n_nodes = n_leaves + n_merges
    parent = list(range(n_nodes))
    node_size = [1] * n_nodes
    children = np.empty((n_merges, 2), dtype=np.int64)
    sizes = np.empty(n_merges, dtype=np.int64)

    for i, (u, v) in enumerate(zip(rows.tolist(), cols.tolist())):
        a = _current_cluster(parent, u)
        b = _current_cluster(parent, v)
        if a == b:
            raise HierarchyConsistencyError(
                f"edge {i} ({u}, {v}) closes a cycle: both endpoints already in cluster {a}"
            )
        node = n_leaves + i
        parent[a] = node
        parent[b] = node
        node_size[node] = node_size[a] + node_size[b]
        children[i] = (a, b) if a < b else (b, a)
        sizes[i] = node_size[node]

    if n_merges and sizes[-1] != n_leaves:
        raise HierarchyConsistencyError(
            f"dendrogram root covers {sizes[-1]} of {n_leaves} points"
        )

    logger.debug("Built dendrogram with %d merges over %d leaves", n_merges, n_leaves)
    return Dendrogram(
        children=children,
        deltas=weights.copy(),
        sizes=sizes,
        n_leaves=n_leaves,
    )


def build_dendrogram(tree: SpanningTree) -> Dendrogram:
    """Dendrogram for a spanning tree produced by ``build_sorted_mst``."""
    dendrogram = build_dendrogram_from_edges(tree.rows, tree.cols, tree.weights, tree.n_nodes)
    logger.info(
        "Built dendrogram: %d merges, root height %s",
        dendrogram.n_merges,
        f"{dendrogram.deltas[-1]:g}" if dendrogram.n_merges else "n/a",
    )
    return dendrogram

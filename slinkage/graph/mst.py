"""Minimum spanning tree construction with Boruvka rounds.

Edges are ranked once by the total order ``(weight, min(u, v), max(u, v))``.
Every round, each component picks its lowest-ranked outgoing edge and all
picks are contracted together. Because ranks are unique the picks never form
a cycle, and the same input always yields the same tree regardless of the
order in which candidate edges are scanned.

A graph that is still disconnected once its real edges are exhausted gets
bridge edges between component representatives so the output always spans
every node.
"""
from __future__ import annotations

import logging
from typing import Tuple

import numpy as np

from slinkage.graph.models import (
    HierarchyConsistencyError,
    SparseGraph,
    SpanningTree,
    unique_undirected_edges,
)

logger = logging.getLogger(__name__)


def _find(parent: np.ndarray, x: int) -> int:
    root = x
    while parent[root] != root:
        root = parent[root]
    # Path compression
    while parent[x] != root:
        parent[x], x = root, parent[x]
    return root


def _flatten(parent: np.ndarray) -> np.ndarray:
    """Point every slot straight at its root and return the root per node."""
    while True:
        grand = parent[parent]
        if np.array_equal(grand, parent):
            return parent.copy()
        parent[:] = grand


def _ranked_edges(graph: SparseGraph) -> Tuple[np.ndarray, np.ndarray, np.ndarray]:
    """Undirected edges as ``(lo, hi, weight)`` sorted by the tie-break order."""
    lo, hi, w = unique_undirected_edges(*graph.edges())
    order = np.lexsort((hi, lo, w))
    return lo[order], hi[order], w[order]


def bridge_weight_above(max_weight: float) -> float:
    """Smallest convenient weight strictly greater than ``max_weight``."""
    candidate = float(max_weight) + 1.0
    if candidate > max_weight:
        return candidate
    return float(np.nextafter(max_weight, np.inf))


def build_sorted_mst(graph: SparseGraph) -> SpanningTree:
    """Return the ``m - 1`` spanning tree edges sorted ascending by weight.

    ``n_connected_components`` on the result counts the components of the
    input graph before any bridge edges were added.
    """
    m = graph.n_nodes
    if m < 1:
        raise ValueError("cannot build a spanning tree over an empty graph")

    lo, hi, w = _ranked_edges(graph)
    n_edges = lo.shape[0]
    parent = np.arange(m, dtype=np.int64)
    selected = []
    n_components = m
    n_rounds = 0

    while n_components > 1 and n_edges:
        component = _flatten(parent)
        comp_lo, comp_hi = component[lo], component[hi]
        crossing = np.flatnonzero(comp_lo != comp_hi)
        if crossing.size == 0:
            break

        # Ranks are positions in the sorted edge list, so min rank == cheapest
        cheapest = np.full(m, n_edges, dtype=np.int64)
        np.minimum.at(cheapest, comp_lo[crossing], crossing)
        np.minimum.at(cheapest, comp_hi[crossing], crossing)
        chosen = np.unique(cheapest[cheapest < n_edges])

        for edge in chosen:
            a = _find(parent, int(lo[edge]))
            b = _find(parent, int(hi[edge]))
            if a == b:
                raise HierarchyConsistencyError(
                    f"Boruvka selected edge ({lo[edge]}, {hi[edge]}) inside a single component"
                )
            # Smaller id stays root so representatives are component minima
            if a < b:
                parent[b] = a
            else:
                parent[a] = b
            selected.append(int(edge))

        n_components -= chosen.shape[0]
        n_rounds += 1
        logger.debug(
            "Boruvka round %d: contracted %d edges, %d components remain",
            n_rounds, chosen.shape[0], n_components,
        )

    representatives = np.unique(_flatten(parent))
    n_connected_components = int(representatives.shape[0])

    order = np.sort(np.asarray(selected, dtype=np.int64))
    rows, cols, weights = lo[order], hi[order], w[order]

    bridge_weight = None
    if n_connected_components > 1:
        max_weight = float(w.max()) if n_edges else 0.0
        bridge_weight = bridge_weight_above(max_weight)
        logger.warning(
            "Graph has %d connected components; joining them with %d bridge edges at weight %g",
            n_connected_components, n_connected_components - 1, bridge_weight,
        )
        rows = np.concatenate([rows, representatives[:-1]])
        cols = np.concatenate([cols, representatives[1:]])
        weights = np.concatenate([weights, np.full(n_connected_components - 1, bridge_weight)])

    if rows.shape[0] != m - 1:
        raise HierarchyConsistencyError(
            f"spanning tree over {m} nodes has {rows.shape[0]} edges, expected {m - 1}"
        )

    logger.info(
        "Built spanning tree: %d nodes, %d edges, %d Boruvka rounds, %d components",
        m, rows.shape[0], n_rounds, n_connected_components,
    )
    return SpanningTree(
        rows=rows.astype(np.int64),
        cols=cols.astype(np.int64),
        weights=weights.astype(np.float64),
        n_nodes=m,
        n_connected_components=n_connected_components,
        bridge_weight=bridge_weight,
    )

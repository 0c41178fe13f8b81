"""Utilities to build weighted distance graphs from points or neighbor graphs."""
from __future__ import annotations

import logging
from typing import Hashable, Optional, Sequence, Union

import networkx as nx
import numpy as np
import scipy.sparse as sp
from sklearn.metrics import pairwise_distances
from sklearn.neighbors import NearestNeighbors

from slinkage.graph.models import LinkageDistance, SparseGraph, unique_undirected_edges

logger = logging.getLogger(__name__)

SUPPORTED_METRICS = (
    "euclidean",
    "l2",
    "sqeuclidean",
    "manhattan",
    "cityblock",
    "l1",
    "cosine",
    "chebyshev",
    "minkowski",
    "canberra",
    "braycurtis",
    "correlation",
)

AdjacencyLike = Union[SparseGraph, sp.spmatrix, nx.Graph]


def validate_points(points) -> np.ndarray:
    """Coerce input to a finite ``(m, n)`` float64 array or raise ``ValueError``."""
    X = np.asarray(points, dtype=np.float64)
    if X.ndim != 2:
        raise ValueError(f"points must be a 2-D array of shape (m, n), got {X.ndim}-D input")
    m, n = X.shape
    if m == 0:
        raise ValueError("points must contain at least one row")
    if n == 0:
        raise ValueError("points must have at least one feature column")
    if not np.all(np.isfinite(X)):
        raise ValueError("points must not contain NaN or infinite values")
    return X


def validate_metric(metric: str) -> str:
    normalized = str(metric).strip().lower()
    if normalized not in SUPPORTED_METRICS:
        raise ValueError(
            f"Unsupported metric '{metric}'; expected one of: {', '.join(SUPPORTED_METRICS)}"
        )
    return normalized


def symmetrize_edges(
    rows: np.ndarray,
    cols: np.ndarray,
    weights: np.ndarray,
    n_nodes: int,
) -> SparseGraph:
    """Turn edge triples into an undirected CSR graph.

    Self-loops are dropped, (i, j) and (j, i) collapse to one undirected edge
    keeping the smaller weight, and the result stores both directions.
    """
    lo, hi, w = unique_undirected_edges(rows, cols, weights)
    return SparseGraph.from_coo(
        np.concatenate([lo, hi]),
        np.concatenate([hi, lo]),
        np.concatenate([w, w]),
        n_nodes,
    )


def build_pairwise_graph(points, metric: str = "euclidean") -> SparseGraph:
    """All-pairs distance graph; every distinct pair gets an edge."""
    X = validate_points(points)
    metric = validate_metric(metric)
    m = X.shape[0]

    dists = pairwise_distances(X, metric=metric)
    if not np.all(np.isfinite(dists)):
        raise ValueError(f"metric '{metric}' produced non-finite distances for these points")
    # Floating point noise can break symmetry or dip just below zero
    dists = np.maximum(np.minimum(dists, dists.T), 0.0)

    off_diagonal = ~np.eye(m, dtype=bool)
    columns = np.broadcast_to(np.arange(m, dtype=np.int64), (m, m))
    graph = SparseGraph(
        indptr=np.arange(m + 1, dtype=np.int64) * (m - 1),
        indices=columns[off_diagonal],
        weights=dists[off_diagonal],
        n_nodes=m,
    )
    logger.info("Built pairwise %s graph: %d nodes, %d stored edges", metric, m, graph.nnz)
    return graph


def build_knn_graph(points, n_neighbors: int, metric: str = "euclidean") -> SparseGraph:
    """Symmetrized k-nearest-neighbor graph; may be disconnected."""
    X = validate_points(points)
    metric = validate_metric(metric)
    m = X.shape[0]
    if n_neighbors < 1:
        raise ValueError(f"n_neighbors must be at least 1, got {n_neighbors}")

    k = min(int(n_neighbors), m - 1)
    if k < n_neighbors:
        logger.debug("Clamping n_neighbors from %d to %d for %d points", n_neighbors, k, m)
    if k == 0:
        return SparseGraph.from_coo([], [], [], m)

    nn = NearestNeighbors(n_neighbors=k, metric=metric).fit(X)
    # Querying the fitted data excludes each point from its own neighbor list
    dists, neighbors = nn.kneighbors()
    if not np.all(np.isfinite(dists)):
        raise ValueError(f"metric '{metric}' produced non-finite distances for these points")

    rows = np.repeat(np.arange(m, dtype=np.int64), k)
    graph = symmetrize_edges(rows, neighbors.ravel(), np.maximum(dists.ravel(), 0.0), m)
    logger.info(
        "Built %d-NN %s graph: %d nodes, %d stored edges", k, metric, m, graph.nnz
    )
    return graph


def graph_from_adjacency(
    adjacency: AdjacencyLike,
    nodelist: Optional[Sequence[Hashable]] = None,
    weight: str = "weight",
) -> SparseGraph:
    """Accept a pre-built neighbor graph as SparseGraph, SciPy sparse or NetworkX.

    For NetworkX input, node ``nodelist[i]`` (default: graph iteration order)
    becomes point ``i`` and edges without a ``weight`` attribute count as 1.0.
    """
    if isinstance(adjacency, SparseGraph):
        rows, cols, weights = adjacency.edges()
        return symmetrize_edges(rows, cols, weights, adjacency.n_nodes)

    if isinstance(adjacency, nx.Graph):
        nodes = list(nodelist) if nodelist is not None else list(adjacency.nodes())
        index = {node: i for i, node in enumerate(nodes)}
        if len(index) != len(nodes):
            raise ValueError("nodelist contains duplicate nodes")
        rows, cols, weights = [], [], []
        for u, v, w in adjacency.edges(data=weight, default=1.0):
            if u not in index or v not in index:
                continue
            rows.append(index[u])
            cols.append(index[v])
            weights.append(w)
        weights = np.asarray(weights, dtype=np.float64)
        if weights.size and (not np.all(np.isfinite(weights)) or np.any(weights < 0)):
            raise ValueError("edge weights must be finite, non-negative distances")
        return symmetrize_edges(rows, cols, weights, len(nodes))

    if sp.issparse(adjacency):
        if adjacency.shape[0] != adjacency.shape[1]:
            raise ValueError(f"adjacency matrix must be square, got shape {adjacency.shape}")
        coo = adjacency.tocoo()
        data = np.asarray(coo.data, dtype=np.float64)
        if data.size and (not np.all(np.isfinite(data)) or np.any(data < 0)):
            raise ValueError("edge weights must be finite, non-negative distances")
        return symmetrize_edges(coo.row, coo.col, data, adjacency.shape[0])

    raise ValueError(
        f"Unsupported adjacency type {type(adjacency).__name__}; "
        "expected SparseGraph, a SciPy sparse matrix or a NetworkX graph"
    )


def build_distance_graph(
    points=None,
    *,
    mode: Union[str, LinkageDistance] = LinkageDistance.PAIRWISE,
    metric: str = "euclidean",
    n_neighbors: int = 15,
    adjacency: Optional[AdjacencyLike] = None,
) -> SparseGraph:
    """Build the similarity graph for whichever input the caller supplied."""
    if points is not None and adjacency is not None:
        raise ValueError("pass either points or a pre-built adjacency graph, not both")
    if adjacency is not None:
        graph = graph_from_adjacency(adjacency)
        logger.info("Using supplied neighbor graph: %d nodes, %d stored edges", graph.n_nodes, graph.nnz)
        return graph
    if points is None:
        raise ValueError("either points or a pre-built adjacency graph must be supplied")

    mode = LinkageDistance.parse(mode)
    if mode is LinkageDistance.PAIRWISE:
        return build_pairwise_graph(points, metric=metric)
    return build_knn_graph(points, n_neighbors=n_neighbors, metric=metric)

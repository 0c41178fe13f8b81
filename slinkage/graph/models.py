"""Data models for similarity graphs and spanning trees."""
from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import Optional, Tuple, Union

import numpy as np
import scipy.sparse as sp


class HierarchyConsistencyError(RuntimeError):
    """Raised when an upstream stage hands over structurally impossible data.

    Examples are a cycle while building the dendrogram or a spanning tree that
    does not cover every point. These point at a bug, not at bad user input.
    """


class LinkageDistance(str, Enum):
    """How the similarity graph is materialized from raw points."""

    PAIRWISE = "pairwise"
    KNN_GRAPH = "knn_graph"

    @classmethod
    def parse(cls, value: Union[str, "LinkageDistance"]) -> "LinkageDistance":
        if isinstance(value, cls):
            return value
        normalized = str(value).strip().lower().replace("-", "_")
        if normalized == "knn":
            normalized = cls.KNN_GRAPH.value
        for member in cls:
            if member.value == normalized:
                return member
        choices = ", ".join(member.value for member in cls)
        raise ValueError(f"Unknown linkage distance mode '{value}'; expected one of: {choices}")


def unique_undirected_edges(
    rows: np.ndarray,
    cols: np.ndarray,
    weights: np.ndarray,
) -> Tuple[np.ndarray, np.ndarray, np.ndarray]:
    """Collapse edge triples to one ``(lo, hi, weight)`` per unordered pair.

    Self-loops are dropped and the lightest copy of a repeated pair wins.
    The result is sorted by ``(lo, hi)``.
    """
    rows = np.asarray(rows, dtype=np.int64)
    cols = np.asarray(cols, dtype=np.int64)
    weights = np.asarray(weights, dtype=np.float64)

    mask = rows != cols
    lo = np.minimum(rows[mask], cols[mask])
    hi = np.maximum(rows[mask], cols[mask])
    w = weights[mask]
    if lo.size == 0:
        return lo, hi, w

    order = np.lexsort((w, hi, lo))
    lo, hi, w = lo[order], hi[order], w[order]
    keep = np.ones(lo.shape[0], dtype=bool)
    keep[1:] = (lo[1:] != lo[:-1]) | (hi[1:] != hi[:-1])
    return lo[keep], hi[keep], w[keep]


@dataclass
class SparseGraph:
    """Undirected weighted graph in compressed sparse row form.

    An edge (i, j) may be stored once or twice; consumers treat it as
    bidirectional. Self-loops are tolerated here and ignored downstream.
    """

    indptr: np.ndarray  # (n_nodes + 1,)
    indices: np.ndarray  # (nnz,)
    weights: np.ndarray  # (nnz,)
    n_nodes: int

    def __post_init__(self) -> None:
        self.indptr = np.ascontiguousarray(self.indptr, dtype=np.int64)
        self.indices = np.ascontiguousarray(self.indices, dtype=np.int64)
        self.weights = np.ascontiguousarray(self.weights, dtype=np.float64)
        self.n_nodes = int(self.n_nodes)
        self._validate()

    def _validate(self) -> None:
        if self.n_nodes < 0:
            raise ValueError(f"n_nodes must be non-negative, got {self.n_nodes}")
        if self.indptr.ndim != 1 or self.indptr.shape[0] != self.n_nodes + 1:
            raise ValueError(
                f"indptr must have length n_nodes + 1 = {self.n_nodes + 1}, "
                f"got shape {self.indptr.shape}"
            )
        if self.indptr[0] != 0:
            raise ValueError("indptr[0] must be 0")
        if np.any(np.diff(self.indptr) < 0):
            raise ValueError("indptr must be non-decreasing")
        nnz = int(self.indptr[-1])
        if self.indices.shape != (nnz,) or self.weights.shape != (nnz,):
            raise ValueError(
                f"indices and weights must both have length indptr[-1] = {nnz}, "
                f"got {self.indices.shape} and {self.weights.shape}"
            )
        if nnz and (self.indices.min() < 0 or self.indices.max() >= self.n_nodes):
            raise ValueError(f"column indices must lie in [0, {self.n_nodes})")
        if not np.all(np.isfinite(self.weights)):
            raise ValueError("edge weights must be finite")
        if np.any(self.weights < 0):
            raise ValueError("edge weights must be non-negative distances")

    @property
    def nnz(self) -> int:
        return int(self.indptr[-1])

    def edges(self) -> Tuple[np.ndarray, np.ndarray, np.ndarray]:
        """Return the stored edges as COO ``(rows, cols, weights)``."""
        rows = np.repeat(np.arange(self.n_nodes, dtype=np.int64), np.diff(self.indptr))
        return rows, self.indices.copy(), self.weights.copy()

    @classmethod
    def from_coo(
        cls,
        rows: np.ndarray,
        cols: np.ndarray,
        weights: np.ndarray,
        n_nodes: int,
    ) -> "SparseGraph":
        """Build a CSR graph from edge triples, sorted by (row, col)."""
        rows = np.asarray(rows, dtype=np.int64)
        cols = np.asarray(cols, dtype=np.int64)
        weights = np.asarray(weights, dtype=np.float64)
        order = np.lexsort((cols, rows))
        counts = np.bincount(rows, minlength=n_nodes) if rows.size else np.zeros(n_nodes, dtype=np.int64)
        indptr = np.concatenate(([0], np.cumsum(counts))).astype(np.int64)
        return cls(indptr=indptr, indices=cols[order], weights=weights[order], n_nodes=n_nodes)

    @classmethod
    def from_scipy(cls, matrix: sp.spmatrix) -> "SparseGraph":
        """Wrap a square SciPy sparse matrix, keeping explicitly stored zeros."""
        if matrix.shape[0] != matrix.shape[1]:
            raise ValueError(f"adjacency matrix must be square, got shape {matrix.shape}")
        csr = sp.csr_matrix(matrix)
        csr.sort_indices()
        return cls(indptr=csr.indptr, indices=csr.indices, weights=csr.data, n_nodes=csr.shape[0])

    def to_scipy(self) -> sp.csr_matrix:
        return sp.csr_matrix(
            (self.weights, self.indices, self.indptr),
            shape=(self.n_nodes, self.n_nodes),
        )


@dataclass
class SpanningTree:
    """Minimum spanning tree edges sorted ascending by (weight, min id, max id).

    Bridge edges added to join a disconnected graph come last and carry
    ``bridge_weight``, which is strictly above every real edge weight.
    """

    rows: np.ndarray  # (n_nodes - 1,)
    cols: np.ndarray  # (n_nodes - 1,)
    weights: np.ndarray  # (n_nodes - 1,)
    n_nodes: int
    n_connected_components: int
    bridge_weight: Optional[float] = None

    @property
    def n_edges(self) -> int:
        return int(self.rows.shape[0])

    @property
    def n_bridge_edges(self) -> int:
        return self.n_connected_components - 1 if self.n_nodes else 0

    def total_weight(self, include_bridges: bool = False) -> float:
        """Sum of edge weights, by default over the real edges only."""
        n_real = self.n_edges - self.n_bridge_edges
        weights = self.weights if include_bridges else self.weights[:n_real]
        return float(weights.sum())

    def as_array(self) -> np.ndarray:
        """``(n_edges, 3)`` float array of ``[row, col, weight]`` triples."""
        return np.column_stack([self.rows, self.cols, self.weights]).astype(np.float64)

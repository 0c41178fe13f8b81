"""Data model for the single-linkage merge tree."""
from __future__ import annotations

from dataclasses import dataclass
from typing import List, Optional, Tuple

import numpy as np


@dataclass
class Dendrogram:
    """Binary merge tree over ``n_leaves`` points.

    Leaves are ids ``[0, n_leaves)``. Row ``i`` describes internal node
    ``n_leaves + i``: its two children (ascending), the delta at which they
    were joined and the number of points it covers. Rows are in build order,
    so deltas are non-decreasing and the last row is the root.
    """

    children: np.ndarray  # (n_leaves - 1, 2)
    deltas: np.ndarray  # (n_leaves - 1,)
    sizes: np.ndarray  # (n_leaves - 1,)
    n_leaves: int

    @property
    def n_merges(self) -> int:
        return int(self.children.shape[0])

    @property
    def root(self) -> int:
        """Id of the node covering every point (leaf 0 for a single point)."""
        return self.n_leaves + self.n_merges - 1 if self.n_merges else 0

    def is_leaf(self, node: int) -> bool:
        return 0 <= node < self.n_leaves

    def children_of(self, node: int) -> Optional[Tuple[int, int]]:
        """Children of an internal node, or None for a leaf."""
        if self.is_leaf(node):
            return None
        row = node - self.n_leaves
        if row < 0 or row >= self.n_merges:
            raise IndexError(f"node {node} is not in this dendrogram")
        return int(self.children[row, 0]), int(self.children[row, 1])

    def size_of(self, node: int) -> int:
        if self.is_leaf(node):
            return 1
        return int(self.sizes[node - self.n_leaves])

    def delta_of(self, node: int) -> float:
        """Merge height of a node; leaves sit at 0."""
        if self.is_leaf(node):
            return 0.0
        return float(self.deltas[node - self.n_leaves])

    def leaves_under(self, node: int) -> List[int]:
        """All leaf ids in the subtree rooted at ``node``, in ascending order."""
        leaves = []
        stack = [node]
        while stack:
            current = stack.pop()
            pair = self.children_of(current)
            if pair is None:
                leaves.append(current)
            else:
                stack.extend(pair)
        return sorted(leaves)

    def to_linkage_matrix(self) -> np.ndarray:
        """SciPy-style ``(n_leaves - 1, 4)`` matrix ``[a, b, delta, size]``."""
        return np.column_stack([
            self.children.astype(np.float64),
            self.deltas.astype(np.float64),
            self.sizes.astype(np.float64),
        ]).reshape(self.n_merges, 4)

    @classmethod
    def from_linkage_matrix(cls, linkage_matrix: np.ndarray) -> "Dendrogram":
        Z = np.asarray(linkage_matrix, dtype=np.float64)
        if Z.ndim != 2 or Z.shape[1] != 4:
            raise ValueError(f"linkage matrix must have shape (k, 4), got {Z.shape}")
        return cls(
            children=np.sort(Z[:, :2].astype(np.int64), axis=1),
            deltas=Z[:, 2].copy(),
            sizes=Z[:, 3].astype(np.int64),
            n_leaves=Z.shape[0] + 1,
        )

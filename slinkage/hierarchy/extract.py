"""Flat cluster extraction by cutting the dendrogram."""
from __future__ import annotations

import logging
from typing import Tuple

import numpy as np

from slinkage.hierarchy.models import Dendrogram

logger = logging.getLogger(__name__)


def _label_kept_merges(dendrogram: Dendrogram, n_kept: int) -> Tuple[np.ndarray, np.ndarray]:
    """Label leaves after keeping only the first ``n_kept`` merges.

    Deltas are non-decreasing in build order, so dropping the trailing merges
    cuts the highest splits first. Returns dense labels per leaf and the
    subtree root id behind each label (labels follow ascending root id).
    """
    m = dendrogram.n_leaves
    parent = np.arange(m + dendrogram.n_merges, dtype=np.int64)
    if n_kept:
        kept = dendrogram.children[:n_kept]
        merged_into = m + np.arange(n_kept, dtype=np.int64)
        parent[kept[:, 0]] = merged_into
        parent[kept[:, 1]] = merged_into

    # Pointer doubling: every slot ends up at the top of its kept subtree
    while True:
        grand = parent[parent]
        if np.array_equal(grand, parent):
            break
        parent = grand

    roots, labels = np.unique(parent[:m], return_inverse=True)
    return labels.reshape(m).astype(np.int64), roots.astype(np.int64)


def extract_flattened_clusters(dendrogram: Dendrogram, n_clusters: int) -> np.ndarray:
    """Cut the ``n_clusters - 1`` highest merges and label every point.

    Labels lie in ``[0, n_clusters)``. ``n_clusters == n_leaves`` puts every
    point in its own cluster; ``n_clusters == 1`` puts all points together.
    """
    m = dendrogram.n_leaves
    if not 1 <= n_clusters <= m:
        raise ValueError(f"n_clusters must be in [1, {m}], got {n_clusters}")

    labels, _ = _label_kept_merges(dendrogram, m - n_clusters)
    logger.debug("Extracted %d flat clusters from %d points", n_clusters, m)
    return labels


def extract_cluster_roots(dendrogram: Dendrogram, n_clusters: int) -> np.ndarray:
    """Dendrogram node id behind each flat cluster label."""
    m = dendrogram.n_leaves
    if not 1 <= n_clusters <= m:
        raise ValueError(f"n_clusters must be in [1, {m}], got {n_clusters}")
    _, roots = _label_kept_merges(dendrogram, m - n_clusters)
    return roots


def extract_clusters_at_distance(dendrogram: Dendrogram, threshold: float) -> np.ndarray:
    """Label points after cutting every merge with delta above ``threshold``."""
    if not np.isfinite(threshold):
        raise ValueError(f"threshold must be finite, got {threshold}")
    n_kept = int(np.searchsorted(dendrogram.deltas, threshold, side="right"))
    labels, roots = _label_kept_merges(dendrogram, n_kept)
    logger.debug("Cut at distance %g leaves %d flat clusters", threshold, roots.shape[0])
    return labels

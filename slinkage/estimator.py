"""scikit-learn estimator wrapper around the single-linkage pipeline."""
from __future__ import annotations

import logging
from typing import Optional

from sklearn.base import BaseEstimator, ClusterMixin

from slinkage.linkage import LinkageOutput, single_linkage

logger = logging.getLogger(__name__)


class SingleLinkage(ClusterMixin, BaseEstimator):
    """Single-linkage agglomerative clustering.

    Parameters
    ----------
    n_clusters : int
        Number of flat clusters to extract.
    metric : str, optional
        Distance metric name; defaults to the configured metric.
    connectivity : {"pairwise", "knn_graph"}, optional
        Build an all-pairs graph or a k-nearest-neighbor graph.
    n_neighbors : int, optional
        Neighborhood size for ``connectivity="knn_graph"``.

    Attributes
    ----------
    labels_ : ndarray of shape (n_samples,)
    children_ : ndarray of shape (n_samples - 1, 2)
    distances_ : ndarray of shape (n_samples - 1,)
    n_leaves_ : int
    n_connected_components_ : int
    n_clusters_ : int
    """

    def __init__(
        self,
        n_clusters: int = 2,
        *,
        metric: Optional[str] = None,
        connectivity: Optional[str] = None,
        n_neighbors: Optional[int] = None,
    ):
        self.n_clusters = n_clusters
        self.metric = metric
        self.connectivity = connectivity
        self.n_neighbors = n_neighbors

    def fit(self, X, y=None):
        result = single_linkage(
            X,
            n_clusters=self.n_clusters,
            metric=self.metric,
            mode=self.connectivity,
            n_neighbors=self.n_neighbors,
        )
        self._store(result)
        return self

    def _store(self, result: LinkageOutput) -> None:
        self.result_ = result
        self.labels_ = result.labels
        self.children_ = result.children
        self.distances_ = result.deltas
        self.n_leaves_ = result.n_leaves
        self.n_connected_components_ = result.n_connected_components
        self.n_clusters_ = result.n_clusters

"""Single-linkage clustering pipeline: graph, spanning tree, dendrogram, labels."""
from __future__ import annotations

import json
import logging
from dataclasses import dataclass, field
from datetime import datetime, timezone
from pathlib import Path
from typing import Any, Dict, Optional, Union

import networkx as nx
import numpy as np
import pandas as pd
import scipy.sparse as sp

from slinkage.config import LinkageSettings, get_linkage_settings
from slinkage.graph.builder import AdjacencyLike, build_distance_graph, validate_metric, validate_points
from slinkage.graph.models import LinkageDistance, SparseGraph
from slinkage.graph.mst import build_sorted_mst
from slinkage.hierarchy.dendrogram import build_dendrogram
from slinkage.hierarchy.extract import extract_flattened_clusters
from slinkage.hierarchy.models import Dendrogram
from slinkage.performance_profiler import PerformanceProfiler, profile_operation, profile_phase

logger = logging.getLogger(__name__)

OPERATION = "single_linkage"


@dataclass
class LinkageOutput:
    """Result of a single-linkage run."""

    m: int
    n_clusters: int
    n_leaves: int
    n_connected_components: int
    labels: np.ndarray  # (m,)
    children: np.ndarray  # (m - 1, 2), merge order
    deltas: np.ndarray  # (m - 1,)
    sizes: np.ndarray  # (m - 1,)
    metadata: Dict[str, Any] = field(default_factory=dict)

    @property
    def dendrogram(self) -> Dendrogram:
        return Dendrogram(
            children=self.children,
            deltas=self.deltas,
            sizes=self.sizes,
            n_leaves=self.n_leaves,
        )

    def labels_for(self, n_clusters: int) -> np.ndarray:
        """Re-cut the stored dendrogram at a different cluster count."""
        return extract_flattened_clusters(self.dendrogram, n_clusters)

    def to_linkage_matrix(self) -> np.ndarray:
        """SciPy-compatible linkage matrix for plotting or ``fcluster``."""
        return self.dendrogram.to_linkage_matrix()

    def to_frame(self) -> pd.DataFrame:
        """One row per merge, in build order."""
        return pd.DataFrame({
            "node": np.arange(self.n_leaves, self.n_leaves + self.children.shape[0], dtype=np.int64),
            "child_a": self.children[:, 0],
            "child_b": self.children[:, 1],
            "delta": self.deltas,
            "size": self.sizes,
        })


def _count_points(points, adjacency: Optional[AdjacencyLike]) -> int:
    if points is not None and adjacency is not None:
        raise ValueError("pass either points or a pre-built adjacency graph, not both")
    if adjacency is None:
        if points is None:
            raise ValueError("either points or a pre-built adjacency graph must be supplied")
        return validate_points(points).shape[0]
    if isinstance(adjacency, SparseGraph):
        return adjacency.n_nodes
    if isinstance(adjacency, nx.Graph):
        return adjacency.number_of_nodes()
    if sp.issparse(adjacency):
        return int(adjacency.shape[0])
    raise ValueError(f"Unsupported adjacency type {type(adjacency).__name__}")


def _check_n_clusters(n_clusters, m: int) -> int:
    if isinstance(n_clusters, bool) or not isinstance(n_clusters, (int, np.integer)):
        raise ValueError(f"n_clusters must be an integer, got {n_clusters!r}")
    if not 1 <= n_clusters <= m:
        raise ValueError(
            f"n_clusters must be in [1, m] = [1, {m}]; got {n_clusters}"
        )
    return int(n_clusters)


def single_linkage(
    points=None,
    *,
    n_clusters: int,
    metric: Optional[str] = None,
    mode: Union[str, LinkageDistance, None] = None,
    n_neighbors: Optional[int] = None,
    adjacency: Optional[AdjacencyLike] = None,
    settings: Optional[LinkageSettings] = None,
) -> LinkageOutput:
    """Cluster ``points`` (or a pre-built neighbor graph) with single linkage.

    Runs the four stages strictly in order: distance graph, sorted minimum
    spanning tree (bridging disconnected components), dendrogram, and flat
    labels for ``n_clusters``. Omitted options fall back to environment
    settings. Precondition violations raise ``ValueError`` before any work.

    With ``settings.profile`` set, the stage timings of this call are added to
    ``get_profiler().get_all_reports()``; reports accumulate across calls
    until ``clear_reports()``.
    """
    cfg = settings or get_linkage_settings()
    metric = validate_metric(metric or cfg.metric)
    mode = LinkageDistance.parse(mode or cfg.mode)
    n_neighbors = int(n_neighbors if n_neighbors is not None else cfg.n_neighbors)

    m = _count_points(points, adjacency)
    if m == 0:
        raise ValueError("cannot cluster an empty point set")
    n_clusters = _check_n_clusters(n_clusters, m)

    # Enabled only for this call; an already enabled profiler is left alone
    scoped_profile = cfg.profile and not PerformanceProfiler.is_enabled()
    if scoped_profile:
        PerformanceProfiler.enable()
    try:
        result = _run_pipeline(points, adjacency, m, n_clusters, mode, metric, n_neighbors)
    finally:
        if scoped_profile:
            PerformanceProfiler.disable()
    return result


def _run_pipeline(
    points,
    adjacency: Optional[AdjacencyLike],
    m: int,
    n_clusters: int,
    mode: LinkageDistance,
    metric: str,
    n_neighbors: int,
) -> LinkageOutput:
    source = "adjacency" if adjacency is not None else mode.value
    logger.info(
        "Starting single linkage: %d points, %d clusters, source=%s, metric=%s",
        m, n_clusters, source, metric,
    )

    with profile_operation(OPERATION, {"m": m, "n_clusters": n_clusters, "source": source}, verbose=False):
        with profile_phase("build_graph", OPERATION):
            graph = build_distance_graph(
                points,
                mode=mode,
                metric=metric,
                n_neighbors=n_neighbors,
                adjacency=adjacency,
            )
        if graph.n_nodes != m:
            raise ValueError(f"graph has {graph.n_nodes} nodes but {m} points were supplied")

        with profile_phase("build_mst", OPERATION, {"nnz": graph.nnz}):
            tree = build_sorted_mst(graph)
        del graph

        with profile_phase("build_dendrogram", OPERATION):
            dendrogram = build_dendrogram(tree)
        n_connected_components = tree.n_connected_components
        bridge_weight = tree.bridge_weight
        del tree

        with profile_phase("extract_clusters", OPERATION):
            labels = extract_flattened_clusters(dendrogram, n_clusters)

    metadata: Dict[str, Any] = {
        "source": source,
        "metric": metric if adjacency is None else None,
        "n_neighbors": n_neighbors if source == LinkageDistance.KNN_GRAPH.value else None,
        "bridge_weight": bridge_weight,
    }
    logger.info(
        "Finished single linkage: %d clusters over %d points (%d connected components)",
        n_clusters, m, n_connected_components,
    )
    return LinkageOutput(
        m=m,
        n_clusters=n_clusters,
        n_leaves=m,
        n_connected_components=n_connected_components,
        labels=labels,
        children=dendrogram.children,
        deltas=dendrogram.deltas,
        sizes=dendrogram.sizes,
        metadata=metadata,
    )


def _output_path(base_path: Path, suffix: str) -> Path:
    """``<base_path><suffix>``, keeping any dots already in the base name."""
    return base_path.with_name(base_path.name + suffix)


def save_linkage_output(result: LinkageOutput, base_path: Path) -> None:
    """Persist result arrays and scalar fields next to ``base_path``."""
    base_path = Path(base_path)
    np.savez_compressed(
        _output_path(base_path, ".linkage.npz"),
        labels=result.labels,
        children=result.children,
        deltas=result.deltas,
        sizes=result.sizes,
    )
    meta = {
        "generated_at": datetime.now(timezone.utc).isoformat(),
        "m": result.m,
        "n_clusters": result.n_clusters,
        "n_leaves": result.n_leaves,
        "n_connected_components": result.n_connected_components,
        "metadata": result.metadata,
    }
    meta_path = _output_path(base_path, ".linkage_meta.json")
    meta_path.write_text(json.dumps(meta, indent=2))
    logger.info("Saved linkage result to %s(.linkage.*)", base_path)


def load_linkage_output(base_path: Path) -> LinkageOutput:
    """Load a result written by ``save_linkage_output``."""
    base_path = Path(base_path)
    data = np.load(_output_path(base_path, ".linkage.npz"))
    meta = json.loads(_output_path(base_path, ".linkage_meta.json").read_text())
    return LinkageOutput(
        m=meta["m"],
        n_clusters=meta["n_clusters"],
        n_leaves=meta["n_leaves"],
        n_connected_components=meta["n_connected_components"],
        labels=data["labels"],
        children=data["children"].reshape(-1, 2),
        deltas=data["deltas"],
        sizes=data["sizes"],
        metadata=meta.get("metadata", {}),
    )

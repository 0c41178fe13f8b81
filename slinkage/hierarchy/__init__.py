"""Dendrogram construction and flat cluster extraction."""
from slinkage.hierarchy.models import Dendrogram
from slinkage.hierarchy.dendrogram import (
    build_dendrogram,
    build_dendrogram_from_edges,
)
from slinkage.hierarchy.extract import (
    extract_cluster_roots,
    extract_clusters_at_distance,
    extract_flattened_clusters,
)

"""Single-linkage hierarchical clustering over sparse distance graphs."""

from .estimator import SingleLinkage
from .graph import HierarchyConsistencyError, LinkageDistance, SparseGraph, SpanningTree
from .hierarchy import Dendrogram
from .linkage import LinkageOutput, load_linkage_output, save_linkage_output, single_linkage

__all__ = [
    "Dendrogram",
    "HierarchyConsistencyError",
    "LinkageDistance",
    "LinkageOutput",
    "SingleLinkage",
    "SparseGraph",
    "SpanningTree",
    "load_linkage_output",
    "save_linkage_output",
    "single_linkage",
]

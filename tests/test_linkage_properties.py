"""Property-based tests for the single-linkage pipeline using Hypothesis.

Points are drawn on a small integer lattice so that duplicate points and
equal-weight edges show up often; the manhattan metric keeps every distance
exact.

To run: pytest tests/test_linkage_properties.py -v
"""
from __future__ import annotations

import networkx as nx
import numpy as np
import pytest
from hypothesis import given, settings, strategies as st
from hypothesis.extra.numpy import arrays

from slinkage.config import LinkageSettings
from slinkage.graph.builder import build_knn_graph, build_pairwise_graph
from slinkage.graph.mst import build_sorted_mst
from slinkage.hierarchy.dendrogram import build_dendrogram
from slinkage.linkage import single_linkage


# ==============================================================================
# Hypothesis Strategies
# ==============================================================================

lattice_points = st.integers(min_value=1, max_value=14).flatmap(
    lambda m: arrays(
        np.float64,
        shape=(m, 2),
        elements=st.integers(min_value=-4, max_value=4).map(float),
    )
)

SETTINGS = LinkageSettings(metric="manhattan", mode="pairwise", n_neighbors=3, profile=False)


def _tree_graph(tree) -> nx.Graph:
    g = nx.Graph()
    g.add_nodes_from(range(tree.n_nodes))
    g.add_edges_from(zip(tree.rows.tolist(), tree.cols.tolist()))
    return g


# ==============================================================================
# Spanning tree properties
# ==============================================================================

@pytest.mark.unit
@given(points=lattice_points)
@settings(max_examples=60, deadline=None)
def test_mst_is_a_spanning_tree(points):
    """Property: m-1 edges, every node reached, no cycle, weights ascending."""
    tree = build_sorted_mst(build_pairwise_graph(points, metric="manhattan"))
    m = points.shape[0]

    assert tree.n_edges == m - 1
    assert nx.is_tree(_tree_graph(tree))
    assert np.all(np.diff(tree.weights) >= 0)


@pytest.mark.unit
@given(points=lattice_points)
@settings(max_examples=60, deadline=None)
def test_mst_weight_matches_networkx(points):
    """Property: total weight equals a reference minimum spanning tree."""
    graph = build_pairwise_graph(points, metric="manhattan")
    tree = build_sorted_mst(graph)

    reference = nx.Graph()
    reference.add_nodes_from(range(graph.n_nodes))
    rows, cols, weights = graph.edges()
    reference.add_weighted_edges_from(zip(rows.tolist(), cols.tolist(), weights.tolist()))
    expected = nx.minimum_spanning_tree(reference).size(weight="weight")

    assert tree.total_weight() == pytest.approx(expected)


@pytest.mark.unit
@given(points=lattice_points, k=st.integers(min_value=1, max_value=4))
@settings(max_examples=60, deadline=None)
def test_knn_bridges_join_components(points, k):
    """Property: bridge edges make the tree span a possibly disconnected graph."""
    graph = build_knn_graph(points, n_neighbors=k, metric="manhattan")
    tree = build_sorted_mst(graph)

    reference = nx.Graph()
    reference.add_nodes_from(range(graph.n_nodes))
    rows, cols, _ = graph.edges()
    reference.add_edges_from(zip(rows.tolist(), cols.tolist()))

    assert tree.n_connected_components == nx.number_connected_components(reference)
    assert nx.is_tree(_tree_graph(tree))
    if tree.n_bridge_edges:
        real = tree.weights[: tree.n_edges - tree.n_bridge_edges]
        bridges = tree.weights[tree.n_edges - tree.n_bridge_edges:]
        assert np.all(bridges == tree.bridge_weight)
        if real.size:
            assert tree.bridge_weight > real.max()


# ==============================================================================
# Dendrogram and label properties
# ==============================================================================

@pytest.mark.unit
@given(points=lattice_points)
@settings(max_examples=60, deadline=None)
def test_dendrogram_invariants(points):
    """Property: children precede parents, sizes add up, deltas ascend."""
    dendrogram = build_dendrogram(build_sorted_mst(build_pairwise_graph(points, metric="manhattan")))
    m = points.shape[0]

    assert dendrogram.n_merges == m - 1
    assert np.all(np.diff(dendrogram.deltas) >= 0)
    seen = set()
    for i, (a, b) in enumerate(dendrogram.children.tolist()):
        assert a < b < m + i
        assert a not in seen and b not in seen
        seen.update((a, b))
        assert dendrogram.sizes[i] == dendrogram.size_of(a) + dendrogram.size_of(b)
    if m > 1:
        assert dendrogram.sizes[-1] == m


@pytest.mark.integration
@given(points=lattice_points, data=st.data())
@settings(max_examples=60, deadline=None)
def test_label_count_equals_requested_clusters(points, data):
    """Property: exactly n_clusters distinct labels, numbered 0..n_clusters-1."""
    m = points.shape[0]
    n_clusters = data.draw(st.integers(min_value=1, max_value=m))

    result = single_linkage(points, n_clusters=n_clusters, settings=SETTINGS)

    assert result.labels.shape == (m,)
    assert sorted(np.unique(result.labels).tolist()) == list(range(n_clusters))


@pytest.mark.integration
@given(points=lattice_points, data=st.data())
@settings(max_examples=40, deadline=None)
def test_coarser_cut_merges_finer_clusters(points, data):
    """Property: each cluster at k+1 lies inside one cluster at k."""
    m = points.shape[0]
    if m < 2:
        return
    k = data.draw(st.integers(min_value=1, max_value=m - 1))

    result = single_linkage(points, n_clusters=k + 1, settings=SETTINGS)
    coarse = result.labels_for(k)
    fine = result.labels

    for label in np.unique(fine):
        assert len(np.unique(coarse[fine == label])) == 1


@pytest.mark.integration
@given(points=lattice_points)
@settings(max_examples=40, deadline=None)
def test_row_permutation_keeps_merge_heights(points):
    """Property: reordering input rows changes ids but not the merge heights."""
    m = points.shape[0]
    perm = np.random.default_rng(m).permutation(m)

    first = single_linkage(points, n_clusters=1, settings=SETTINGS)
    second = single_linkage(points[perm], n_clusters=1, settings=SETTINGS)

    np.testing.assert_array_equal(first.deltas, second.deltas)


@pytest.mark.integration
@given(points=lattice_points)
@settings(max_examples=40, deadline=None)
def test_runs_are_deterministic(points):
    """Property: identical input gives identical output."""
    first = single_linkage(points, n_clusters=1, settings=SETTINGS)
    second = single_linkage(points.copy(), n_clusters=1, settings=SETTINGS)

    np.testing.assert_array_equal(first.children, second.children)
    np.testing.assert_array_equal(first.deltas, second.deltas)
    np.testing.assert_array_equal(first.labels, second.labels)

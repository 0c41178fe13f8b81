"""Tests for the scikit-learn SingleLinkage estimator."""
from __future__ import annotations

import os
from unittest.mock import patch

import numpy as np
import pytest
from sklearn.base import clone
from sklearn.metrics import adjusted_rand_score

from slinkage.estimator import SingleLinkage


@pytest.fixture(autouse=True)
def clean_env():
    """Keep SLINKAGE_* variables from the shell out of the defaults."""
    with patch.dict(os.environ, {}, clear=True):
        yield


@pytest.mark.integration
def test_fit_predict_recovers_blobs(blobs):
    labels = SingleLinkage(n_clusters=3).fit_predict(blobs)
    assert adjusted_rand_score(np.repeat([0, 1, 2], 10), labels) == pytest.approx(1.0)


@pytest.mark.integration
def test_fitted_attributes(two_pairs):
    model = SingleLinkage(n_clusters=2, metric="manhattan").fit(two_pairs)

    assert model.labels_.tolist() == [0, 0, 1, 1]
    assert model.children_.shape == (3, 2)
    assert model.distances_.tolist() == [1.0, 1.0, 19.0]
    assert model.n_leaves_ == 4
    assert model.n_clusters_ == 2
    assert model.n_connected_components_ == 1
    assert model.result_.metadata["metric"] == "manhattan"


@pytest.mark.integration
def test_knn_connectivity_reports_components(two_pairs):
    model = SingleLinkage(n_clusters=2, connectivity="knn_graph", n_neighbors=1).fit(two_pairs)
    assert model.n_connected_components_ == 2


@pytest.mark.unit
def test_params_round_trip_through_clone():
    model = SingleLinkage(n_clusters=4, metric="cosine", connectivity="knn_graph", n_neighbors=6)
    params = clone(model).get_params()

    assert params == {
        "n_clusters": 4,
        "metric": "cosine",
        "connectivity": "knn_graph",
        "n_neighbors": 6,
    }


@pytest.mark.unit
def test_invalid_n_clusters_raises(two_pairs):
    with pytest.raises(ValueError):
        SingleLinkage(n_clusters=10).fit(two_pairs)

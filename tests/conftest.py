"""Shared pytest configuration and fixtures for the test suite.

This module centralizes:
- Path setup (lets tests import slinkage/ and scripts/ without installing)
- Pytest markers for test categorization (unit, integration)
- Small point sets and graphs reused across the pipeline tests
"""
from __future__ import annotations

import sys
from pathlib import Path

import numpy as np
import pytest
import scipy.sparse as sp


# ==============================================================================
# Path Setup
# ==============================================================================

PROJECT_ROOT = Path(__file__).resolve().parents[1]
if str(PROJECT_ROOT) not in sys.path:
    sys.path.insert(0, str(PROJECT_ROOT))

from slinkage.config import LinkageSettings
from slinkage.performance_profiler import PerformanceProfiler, get_profiler


# ==============================================================================
# Pytest Configuration
# ==============================================================================

def pytest_configure(config):
    """Register custom markers for test categorization."""
    config.addinivalue_line(
        "markers",
        "unit: Fast tests of a single stage with no I/O",
    )
    config.addinivalue_line(
        "markers",
        "integration: End-to-end pipeline runs, file system or CLI",
    )


# ==============================================================================
# Fixtures
# ==============================================================================

@pytest.fixture
def default_settings() -> LinkageSettings:
    """Settings independent of whatever SLINKAGE_* variables the shell exports."""
    return LinkageSettings(metric="euclidean", mode="pairwise", n_neighbors=15, profile=False)


@pytest.fixture
def two_pairs() -> np.ndarray:
    """A=(0,0), B=(0,1), C=(10,10), D=(10,11): two tight, far-apart pairs."""
    return np.array([
        [0.0, 0.0],
        [0.0, 1.0],
        [10.0, 10.0],
        [10.0, 11.0],
    ])


@pytest.fixture
def two_component_adjacency() -> sp.csr_matrix:
    """Path 0-1-2 and path 3-4 with no edge between them.

    Edge weights: (0,1)=1.0, (1,2)=2.0, (3,4)=0.5
    """
    rows = [0, 1, 3]
    cols = [1, 2, 4]
    data = [1.0, 2.0, 0.5]
    return sp.csr_matrix((data, (rows, cols)), shape=(5, 5))


@pytest.fixture
def blobs() -> np.ndarray:
    """Three well separated Gaussian blobs, 10 points each."""
    rng = np.random.default_rng(7)
    centers = np.array([[0.0, 0.0], [20.0, 0.0], [0.0, 20.0]])
    return np.vstack([center + rng.normal(scale=0.5, size=(10, 2)) for center in centers])


@pytest.fixture
def profiler():
    """Enabled profiler with a clean report list; disabled again afterwards."""
    PerformanceProfiler.enable()
    get_profiler().clear_reports()
    yield get_profiler()
    get_profiler().clear_reports()
    PerformanceProfiler.disable()

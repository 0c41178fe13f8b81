"""Configuration helpers for the single-linkage pipeline."""
from __future__ import annotations

import os
from dataclasses import dataclass
from pathlib import Path
from typing import Optional

from dotenv import load_dotenv

from slinkage.graph.builder import validate_metric
from slinkage.graph.models import LinkageDistance

PROJECT_ROOT = Path(__file__).resolve().parents[1]
ENV_PATH = PROJECT_ROOT / ".env"

# Load environment variables early so downstream modules can rely on them.
load_dotenv(ENV_PATH, override=False)

METRIC_ENV = "SLINKAGE_METRIC"
MODE_ENV = "SLINKAGE_MODE"
N_NEIGHBORS_ENV = "SLINKAGE_N_NEIGHBORS"
PROFILE_ENV = "SLINKAGE_PROFILE"

DEFAULT_METRIC = "euclidean"
DEFAULT_MODE = "pairwise"
DEFAULT_N_NEIGHBORS = 15

_TRUTHY = {"1", "true", "yes", "on"}
_FALSY = {"0", "false", "no", "off"}


@dataclass(frozen=True)
class LinkageSettings:
    """Runtime defaults for graph construction and profiling."""

    metric: str
    mode: str
    n_neighbors: int
    profile: bool = False


def _get_env(name: str, default: Optional[str] = None) -> Optional[str]:
    value = os.getenv(name)
    if value is None or value == "":
        return default
    return value


def _parse_bool(name: str, raw: Optional[str]) -> bool:
    if raw is None:
        return False
    lowered = raw.strip().lower()
    if lowered in _TRUTHY:
        return True
    if lowered in _FALSY:
        return False
    raise RuntimeError(f"{name} must be a boolean flag; received '{raw}'.")


def get_linkage_settings() -> LinkageSettings:
    """Resolve pipeline defaults from the environment."""

    raw_metric = _get_env(METRIC_ENV, DEFAULT_METRIC)
    try:
        metric = validate_metric(raw_metric)
    except ValueError as exc:
        raise RuntimeError(f"{METRIC_ENV} is not a supported metric; received '{raw_metric}'.") from exc

    raw_mode = _get_env(MODE_ENV, DEFAULT_MODE)
    try:
        mode = LinkageDistance.parse(raw_mode).value
    except ValueError as exc:
        raise RuntimeError(
            f"{MODE_ENV} must be 'pairwise' or 'knn_graph'; received '{raw_mode}'."
        ) from exc

    raw_neighbors = _get_env(N_NEIGHBORS_ENV)
    try:
        n_neighbors = int(raw_neighbors) if raw_neighbors is not None else DEFAULT_N_NEIGHBORS
    except ValueError as exc:
        raise RuntimeError(
            f"{N_NEIGHBORS_ENV} must be an integer; received '{raw_neighbors}'."
        ) from exc
    if n_neighbors < 1:
        raise RuntimeError(f"{N_NEIGHBORS_ENV} must be at least 1; received {n_neighbors}.")

    profile = _parse_bool(PROFILE_ENV, _get_env(PROFILE_ENV))
    return LinkageSettings(metric=metric, mode=mode, n_neighbors=n_neighbors, profile=profile)

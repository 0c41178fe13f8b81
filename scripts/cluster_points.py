"""Run single-linkage clustering over a point file and save the hierarchy."""
from __future__ import annotations

import argparse
import logging
from pathlib import Path
from typing import Optional, Sequence

import numpy as np
import pandas as pd

from slinkage.config import get_linkage_settings
from slinkage.graph.builder import SUPPORTED_METRICS
from slinkage.graph.models import LinkageDistance
from slinkage.linkage import save_linkage_output, single_linkage
from slinkage.logging_utils import setup_logging
from slinkage.performance_profiler import PerformanceProfiler, get_profiler

logger = logging.getLogger(__name__)


def load_points(path: Path) -> np.ndarray:
    """Load an (m, n) point matrix from .npy or a CSV with a header row."""
    if path.suffix == ".npy":
        return np.load(path)
    if path.suffix == ".csv":
        frame = pd.read_csv(path)
        numeric = frame.select_dtypes(include=[np.number])
        if numeric.shape[1] == 0:
            raise ValueError(f"{path} has no numeric columns")
        return numeric.to_numpy(dtype=np.float64)
    raise ValueError(f"Unsupported input format '{path.suffix}'; use .npy or .csv")


def parse_args(argv: Optional[Sequence[str]] = None) -> argparse.Namespace:
    settings = get_linkage_settings()
    parser = argparse.ArgumentParser(description="Single-linkage clustering of a point set.")
    parser.add_argument("input", type=Path, help="Points as .npy or .csv (numeric columns)")
    parser.add_argument("--n-clusters", type=int, required=True)
    parser.add_argument("--metric", choices=SUPPORTED_METRICS, default=settings.metric)
    parser.add_argument(
        "--mode",
        choices=[mode.value for mode in LinkageDistance],
        default=settings.mode,
        help="pairwise (all pairs) or knn_graph (k-nearest-neighbor graph)",
    )
    parser.add_argument("--n-neighbors", type=int, default=settings.n_neighbors, help="Neighborhood size for knn_graph")
    parser.add_argument("--output-prefix", type=Path, default=None, help="Base path for outputs (default: next to input)")
    parser.add_argument("--profile", action="store_true", help="Log a per-stage timing report")
    parser.add_argument("--log-file", type=Path, default=None)
    parser.add_argument("--quiet", action="store_true")
    return parser.parse_args(argv)


def main(argv: Optional[Sequence[str]] = None) -> None:
    args = parse_args(argv)
    setup_logging(log_file=args.log_file, quiet=args.quiet)
    if args.profile:
        PerformanceProfiler.enable()

    points = load_points(args.input)
    result = single_linkage(
        points,
        n_clusters=args.n_clusters,
        metric=args.metric,
        mode=args.mode,
        n_neighbors=args.n_neighbors,
    )

    out_prefix = args.output_prefix or args.input.with_suffix("")
    save_linkage_output(result, out_prefix)
    labels_path = out_prefix.with_name(out_prefix.name + ".labels.csv")
    pd.DataFrame({"point": np.arange(result.m), "label": result.labels}).to_csv(labels_path, index=False)
    logger.info("Saved labels to %s", labels_path)

    if args.profile:
        for report in get_profiler().get_all_reports():
            logger.info(report.format_report())


if __name__ == "__main__":
    main()

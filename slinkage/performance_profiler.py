"""Stage timing for the linkage pipeline.

Provides context managers for timing a pipeline run and each of its stages,
and collects the results as structured performance reports.
"""
from __future__ import annotations

import logging
import time
from collections import defaultdict
from contextlib import contextmanager
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional

logger = logging.getLogger(__name__)


@dataclass
class TimingMetric:
    """Container for a single stage timing."""

    name: str
    duration_ms: float
    timestamp: float
    metadata: Dict[str, Any] = field(default_factory=dict)

    def __str__(self) -> str:
        meta_str = ", ".join(f"{k}={v}" for k, v in self.metadata.items()) if self.metadata else ""
        return f"{self.name}: {self.duration_ms:.2f}ms" + (f" ({meta_str})" if meta_str else "")


@dataclass
class PerformanceReport:
    """Aggregated stage timings for one pipeline run."""

    operation: str
    total_duration_ms: float
    phases: List[TimingMetric] = field(default_factory=list)
    metadata: Dict[str, Any] = field(default_factory=dict)

    def add_phase(self, phase: TimingMetric) -> None:
        self.phases.append(phase)

    def phase_names(self) -> List[str]:
        """Stage names in execution order."""
        return [phase.name for phase in self.phases]

    def get_phase_breakdown(self) -> Dict[str, float]:
        """Percentage of the total run spent in each stage."""
        if self.total_duration_ms == 0:
            return {}
        return {
            phase.name: (phase.duration_ms / self.total_duration_ms) * 100
            for phase in self.phases
        }

    def format_report(self, verbose: bool = False) -> str:
        lines = [
            f"\n{'=' * 60}",
            f"PERFORMANCE REPORT: {self.operation}",
            f"{'=' * 60}",
            f"Total Duration: {self.total_duration_ms:.2f}ms ({self.total_duration_ms / 1000:.3f}s)",
        ]

        if self.metadata:
            lines.append("\nMetadata:")
            for key, value in self.metadata.items():
                lines.append(f"  {key}: {value}")

        if self.phases:
            lines.append("\nStage Breakdown:")
            breakdown = self.get_phase_breakdown()
            # Stages run strictly in sequence, so keep execution order
            for phase in self.phases:
                pct = breakdown.get(phase.name, 0)
                lines.append(f"  [{pct:5.1f}%] {phase.name}: {phase.duration_ms:.2f}ms")
                if verbose and phase.metadata:
                    for key, value in phase.metadata.items():
                        lines.append(f"         {key}: {value}")

        lines.append("=" * 60)
        return "\n".join(lines)


class PerformanceProfiler:
    """Singleton collecting pipeline reports across calls."""

    _instance = None
    _enabled = False

    def __new__(cls):
        if cls._instance is None:
            cls._instance = super().__new__(cls)
            cls._instance._reports = []
            cls._instance._active_reports = {}
        return cls._instance

    @classmethod
    def enable(cls) -> None:
        cls._enabled = True

    @classmethod
    def disable(cls) -> None:
        cls._enabled = False

    @classmethod
    def is_enabled(cls) -> bool:
        return cls._enabled

    def start_report(self, operation: str, metadata: Optional[Dict[str, Any]] = None) -> PerformanceReport:
        report = PerformanceReport(
            operation=operation,
            total_duration_ms=0.0,
            metadata=metadata or {},
        )
        self._active_reports[operation] = {
            "report": report,
            "start_time": time.perf_counter(),
        }
        return report

    def finish_report(self, operation: str) -> Optional[PerformanceReport]:
        if operation not in self._active_reports:
            logger.warning("No active report found for operation: %s", operation)
            return None

        active = self._active_reports.pop(operation)
        report = active["report"]
        report.total_duration_ms = (time.perf_counter() - active["start_time"]) * 1000
        self._reports.append(report)
        return report

    def add_phase_to_report(self, operation: str, phase: TimingMetric) -> None:
        if operation in self._active_reports:
            self._active_reports[operation]["report"].add_phase(phase)

    def get_all_reports(self) -> List[PerformanceReport]:
        return self._reports.copy()

    def clear_reports(self) -> None:
        self._reports.clear()
        self._active_reports.clear()

    def get_summary(self) -> Dict[str, Dict[str, float]]:
        """Per-stage duration statistics across every collected run."""
        by_stage = defaultdict(list)
        for report in self._reports:
            by_stage[report.operation].append(report.total_duration_ms)
            for phase in report.phases:
                by_stage[f"{report.operation}.{phase.name}"].append(phase.duration_ms)

        return {
            name: {
                "count": len(durations),
                "total_ms": sum(durations),
                "avg_ms": sum(durations) / len(durations),
                "max_ms": max(durations),
            }
            for name, durations in by_stage.items()
        }


_profiler = PerformanceProfiler()


@contextmanager
def profile_operation(operation: str, metadata: Optional[Dict[str, Any]] = None, verbose: bool = True):
    """Time a complete pipeline run.

    Usage:
        with profile_operation("single_linkage", {"m": 1000}):
            ...
    """
    if not PerformanceProfiler.is_enabled():
        yield None
        return

    report = _profiler.start_report(operation, metadata)
    try:
        yield report
    finally:
        final_report = _profiler.finish_report(operation)
        if final_report and verbose:
            logger.info(final_report.format_report())


@contextmanager
def profile_phase(phase_name: str, operation: Optional[str] = None, metadata: Optional[Dict[str, Any]] = None):
    """Time one stage inside an operation started with ``profile_operation``."""
    if not PerformanceProfiler.is_enabled():
        yield
        return

    start_time = time.perf_counter()
    try:
        yield
    finally:
        duration_ms = (time.perf_counter() - start_time) * 1000
        metric = TimingMetric(
            name=phase_name,
            duration_ms=duration_ms,
            timestamp=time.time(),
            metadata=metadata or {},
        )
        if operation:
            _profiler.add_phase_to_report(operation, metric)
        logger.debug("Phase [%s]: %.2fms", phase_name, duration_ms)


def get_profiler() -> PerformanceProfiler:
    """Get the global profiler instance."""
    return _profiler

from __future__ import annotations

"""Timing and resource usage of pipeline stages."""

from dataclasses import dataclass
from typing import Any, Dict, Iterable
import time

import psutil


@dataclass
class StageMetrics:
    name: str
    ms: float
    cpu_percent: float
    rss_bytes: int


def measure(fn, name: str):
    """Run ``fn`` and record how long it took and how much memory it added.

    Parameters
    ----------
    fn:
        Callable with no arguments.
    name:
        Stage name reported in the metrics.
    """

    proc = psutil.Process()
    cpu_before = proc.cpu_percent(interval=None)
    rss_before = proc.memory_info().rss
    start = time.perf_counter()
    result = fn()
    end = time.perf_counter()
    cpu_after = proc.cpu_percent(interval=None)
    rss_after = proc.memory_info().rss
    metrics = StageMetrics(
        name=name,
        ms=(end - start) * 1000.0,
        cpu_percent=max(0.0, cpu_after - cpu_before),
        rss_bytes=max(0, rss_after - rss_before),
    )
    return result, metrics


def describe_runtime(cfg) -> Dict[str, Any]:
    return {
        "parallel_config": dict(cfg.__dict__),
        "hw": {"cpu_count": psutil.cpu_count(), "ram_gb": psutil.virtual_memory().total / 1e9},
    }


def embed_report_metrics(report: Dict[str, Any], stages: Iterable[StageMetrics], runtime: Dict[str, Any] | None = None):
    stages = list(stages)
    report["metrics"] = {
        "total_ms": sum(s.ms for s in stages),
        "stages": [s.__dict__ for s in stages],
    }
    if runtime:
        report["runtime"] = runtime
    return report

"""Copy-move candidate detection: partition, extract, sort, scan."""

from __future__ import annotations

import concurrent.futures as cf
import logging
from dataclasses import dataclass, field, fields
from pathlib import Path
from typing import Any, Callable, Dict, List, Optional, Sequence, Union

from .blocks import block_count
from .dct import resolve_features
from .detect import PREDICATES, MatchCandidate, find_candidates
from .execution import ParallelConfig, apply_thread_env
from .features import build_index
from .metrics import StageMetrics, describe_runtime, embed_report_metrics, measure
from .preproc import PixelSource, PixelSourceError, load_pixel_source

logger = logging.getLogger(__name__)


class InvalidConfiguration(ValueError):
    """Raised before any stage runs when the detector settings are unusable."""


@dataclass
class DetectorConfig:
    block_size: int = 4
    threshold: float = 10.0
    step: int = 1
    predicate: Union[str, Callable[[float, float], bool]] = "below"
    features: Optional[List[str]] = None
    max_side: Optional[int] = None

    def validate(self) -> "DetectorConfig":
        if not _is_int(self.block_size) or self.block_size <= 0:
            raise InvalidConfiguration(f"block_size must be a positive integer, got {self.block_size!r}")
        if not _is_int(self.step) or self.step <= 0:
            raise InvalidConfiguration(f"step must be a positive integer, got {self.step!r}")
        if isinstance(self.threshold, bool) or not isinstance(self.threshold, (int, float)) or not self.threshold > 0:
            raise InvalidConfiguration(f"threshold must be a positive number, got {self.threshold!r}")
        if not callable(self.predicate) and (not isinstance(self.predicate, str) or self.predicate not in PREDICATES):
            raise InvalidConfiguration(
                f"predicate must be one of {sorted(PREDICATES)} or a callable, got {self.predicate!r}"
            )
        if self.max_side is not None and (not _is_int(self.max_side) or self.max_side <= 0):
            raise InvalidConfiguration(f"max_side must be a positive integer, got {self.max_side!r}")
        try:
            resolve_features(self.features)
        except (TypeError, ValueError) as e:
            raise InvalidConfiguration(str(e)) from e
        return self

    @classmethod
    def from_dict(cls, d: Dict[str, Any]) -> "DetectorConfig":
        known = {f.name for f in fields(cls)}
        unknown = sorted(set(d) - known)
        if unknown:
            raise InvalidConfiguration(f"unknown detector option(s): {unknown}")
        return cls(**d)


def _is_int(v) -> bool:
    return isinstance(v, int) and not isinstance(v, bool)


@dataclass
class DetectionResult:
    width: int
    height: int
    block_count: int
    feature_count: int
    candidates: List[MatchCandidate]
    metrics: List[StageMetrics] = field(default_factory=list)

    def to_dict(self, limit: Optional[int] = None) -> Dict[str, Any]:
        cands = self.candidates if limit is None else self.candidates[:limit]
        report = {
            "width": self.width,
            "height": self.height,
            "blocks": self.block_count,
            "features": self.feature_count,
            "candidate_count": len(self.candidates),
            "candidates": [
                {
                    "a": {"x": c.first.x, "y": c.first.y, "value": c.first.value},
                    "b": {"x": c.second.x, "y": c.second.y, "value": c.second.value},
                    "distance": c.distance,
                }
                for c in cands
            ],
        }
        return embed_report_metrics(report, self.metrics)


def detect_copy_move(source: PixelSource, cfg: Optional[DetectorConfig] = None) -> DetectionResult:
    """Run the full pipeline over an already decoded image."""

    cfg = (cfg or DetectorConfig()).validate()
    if source is None:
        raise PixelSourceError("no pixel source to analyze")

    W, H = source.width(), source.height()
    n_blocks = block_count(W, H, cfg.block_size, cfg.step)
    if n_blocks == 0:
        logger.info("image %dx%d is smaller than block size %d: nothing to compare", W, H, cfg.block_size)

    stages: List[StageMetrics] = []
    index, m = measure(lambda: build_index(source, cfg.block_size, cfg.step, cfg.features), "extract")
    stages.append(m)
    _, m = measure(index.sort, "sort")
    stages.append(m)
    candidates, m = measure(lambda: find_candidates(index, cfg.threshold, cfg.predicate), "scan")
    stages.append(m)

    logger.info(
        "image %dx%d: %d blocks, %d features, %d candidates (%.1f ms)",
        W, H, n_blocks, len(index), len(candidates), sum(s.ms for s in stages),
    )
    return DetectionResult(
        width=W,
        height=H,
        block_count=n_blocks,
        feature_count=len(index),
        candidates=candidates,
        metrics=stages,
    )


def analyze_image(image_path: Union[str, Path, bytes], cfg: Optional[DetectorConfig] = None) -> DetectionResult:
    """Decode ``image_path`` and run :func:`detect_copy_move` on it."""

    cfg = (cfg or DetectorConfig()).validate()
    source, m = measure(lambda: load_pixel_source(image_path, max_side=cfg.max_side), "decode")
    res = detect_copy_move(source, cfg)
    res.metrics.insert(0, m)
    return res


def _analyze_worker(image_path: str, cfg: DetectorConfig, pcfg: ParallelConfig) -> DetectionResult:
    with apply_thread_env(pcfg):
        return analyze_image(image_path, cfg)


def analyze_images(
    image_paths: Sequence[Union[str, Path]],
    cfg: Optional[DetectorConfig] = None,
    parallel: ParallelConfig = ParallelConfig(),
) -> List[DetectionResult]:
    """Analyze several images, optionally one per worker process.

    Results follow the order of ``image_paths``. The first failure is raised.
    """

    cfg = (cfg or DetectorConfig()).validate()
    paths = [str(p) for p in image_paths]
    if parallel.max_parallel_images <= 1 or len(paths) <= 1:
        return [analyze_image(p, cfg) for p in paths]

    # custom predicates must be picklable to reach the workers
    with cf.ProcessPoolExecutor(max_workers=parallel.max_parallel_images) as ex:
        futures = [ex.submit(_analyze_worker, p, cfg, parallel) for p in paths]
        return [f.result() for f in futures]


def runtime_report(result: DetectionResult, parallel: ParallelConfig, limit: Optional[int] = None) -> Dict[str, Any]:
    """``result.to_dict`` plus a description of the host and parallel settings."""

    report = result.to_dict(limit)
    report["runtime"] = describe_runtime(parallel)
    return report

"""Public convenience API for running the pipeline."""

from __future__ import annotations

from typing import List, Optional

from .pipeline import DetectionResult, DetectorConfig, analyze_image, analyze_images
from .execution import ParallelConfig
from .profiles import config_from_profile, load_profile

__all__ = ["analyze", "analyze_batch"]


def _resolve(profile: Optional[str], cfg: Optional[DetectorConfig]) -> DetectorConfig:
    if cfg is not None:
        return cfg
    if profile is not None:
        return config_from_profile(load_profile(profile))
    return DetectorConfig()


def analyze(
    image_path: str,
    profile: Optional[str] = None,
    *,
    config: Optional[DetectorConfig] = None,
) -> DetectionResult:
    """Analyze a single image with an explicit config, a named profile, or the defaults."""
    return analyze_image(image_path, _resolve(profile, config))


def analyze_batch(
    image_paths: List[str],
    profile: Optional[str] = None,
    *,
    config: Optional[DetectorConfig] = None,
    parallel_config: Optional[ParallelConfig] = None,
) -> List[DetectionResult]:
    """Analyze multiple images, one per worker process when ``parallel_config`` allows it."""
    pc = parallel_config or ParallelConfig()
    return analyze_images(image_paths, _resolve(profile, config), pc)

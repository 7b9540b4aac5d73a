"""Public package interface for cmdct."""

from .pipeline import (
    DetectionResult,
    DetectorConfig,
    InvalidConfiguration,
    analyze_image,
    analyze_images,
    detect_copy_move,
)
from .preproc import ArrayPixelSource, PixelSource, PixelSourceError, Sample, load_pixel_source
from .execution import ParallelConfig
from .features import FeatureEntry, FeatureIndex
from .detect import MatchCandidate

__all__ = [
    "DetectionResult",
    "DetectorConfig",
    "InvalidConfiguration",
    "analyze_image",
    "analyze_images",
    "detect_copy_move",
    "ArrayPixelSource",
    "PixelSource",
    "PixelSourceError",
    "Sample",
    "load_pixel_source",
    "ParallelConfig",
    "FeatureEntry",
    "FeatureIndex",
    "MatchCandidate",
]

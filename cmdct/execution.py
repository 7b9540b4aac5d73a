from __future__ import annotations

"""Execution utilities for batch runs over several images."""

from dataclasses import dataclass
import contextlib
import os
from typing import Dict, Iterator


@dataclass
class ParallelConfig:
    """Configuration for parallel execution.

    Attributes
    ----------
    max_parallel_images:
        Maximum number of images processed at the same time, one per worker
        process. A single image is always processed sequentially.
    env_thread_caps:
        If ``True`` cap BLAS/OpenMP thread pools inside workers (see
        :func:`apply_thread_env`) to avoid oversubscription.
    blas_threads:
        Value written to the thread related environment variables.
    """

    max_parallel_images: int = 1
    env_thread_caps: bool = True
    blas_threads: int = 1


_THREAD_VARS = [
    "OMP_NUM_THREADS",
    "OPENBLAS_NUM_THREADS",
    "MKL_NUM_THREADS",
    "NUMEXPR_NUM_THREADS",
]


@contextlib.contextmanager
def apply_thread_env(config: ParallelConfig) -> Iterator[None]:
    """Context manager to set/restore environment thread variables."""

    old: Dict[str, str] = {}
    if config.env_thread_caps:
        for v in _THREAD_VARS:
            old[v] = os.environ.get(v, "")
            os.environ[v] = str(config.blas_threads)
    try:
        yield
    finally:
        if config.env_thread_caps:
            for v, val in old.items():
                if val:
                    os.environ[v] = val
                else:
                    os.environ.pop(v, None)

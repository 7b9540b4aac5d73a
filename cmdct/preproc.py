"""Decoded-image access for the block pipeline."""

from __future__ import annotations

from abc import ABC, abstractmethod
from pathlib import Path
from typing import NamedTuple, Optional, Union
import io

import numpy as np
from PIL import Image


class PixelSourceError(IOError):
    """Raised when an image cannot be decoded into a pixel source."""


class Sample(NamedTuple):
    red: float
    green: float
    blue: float
    luma: float


class PixelSource(ABC):
    """Read-only access to decoded samples.

    Implementations only need ``width``, ``height`` and ``sample_at``.
    ``window`` has a generic implementation on top of ``sample_at`` and can
    be overridden by array-backed sources.
    """

    @abstractmethod
    def width(self) -> int: ...

    @abstractmethod
    def height(self) -> int: ...

    @abstractmethod
    def sample_at(self, x: int, y: int) -> Sample: ...

    def window(self, x: int, y: int, size: int) -> np.ndarray:
        """Return the ``size`` x ``size`` window at ``(x, y)``.

        The array is indexed ``[row, col, channel]`` with channels ordered
        red, green, blue, luma.
        """
        out = np.empty((size, size, 4), dtype=np.float64)
        for dy in range(size):
            for dx in range(size):
                out[dy, dx] = self.sample_at(x + dx, y + dy)
        return out


class ArrayPixelSource(PixelSource):
    """Pixel source backed by an ``H x W x 3`` uint8 RGB array."""

    def __init__(self, rgb: np.ndarray):
        rgb = np.asarray(rgb)
        if rgb.ndim != 3 or rgb.shape[2] != 3:
            raise ValueError(f"expected an HxWx3 RGB array, got shape {rgb.shape}")
        rgb = rgb.astype(np.uint8, copy=False)
        luma = np.asarray(Image.fromarray(rgb).convert("YCbCr"), dtype=np.float64)[..., 0]
        self._planes = np.dstack([rgb.astype(np.float64), luma])
        self._planes.setflags(write=False)

    @classmethod
    def from_image(cls, pil: Image.Image) -> "ArrayPixelSource":
        return cls(np.asarray(pil.convert("RGB"), dtype=np.uint8))

    @property
    def planes(self) -> np.ndarray:
        return self._planes

    def width(self) -> int:
        return int(self._planes.shape[1])

    def height(self) -> int:
        return int(self._planes.shape[0])

    def sample_at(self, x: int, y: int) -> Sample:
        r, g, b, l = self._planes[y, x]
        return Sample(float(r), float(g), float(b), float(l))

    def window(self, x: int, y: int, size: int) -> np.ndarray:
        return self._planes[y : y + size, x : x + size]


def load_pixel_source(
    src: Union[str, Path, bytes],
    max_side: Optional[int] = None,
) -> ArrayPixelSource:
    """Decode ``src`` (a path or raw bytes) into an :class:`ArrayPixelSource`.

    Any read or decode failure raises :class:`PixelSourceError`.
    """

    try:
        if isinstance(src, (bytes, bytearray)):
            pil = Image.open(io.BytesIO(src))
        else:
            pil = Image.open(src)
        pil.load()
        pil = pil.convert("RGB")
    except (OSError, ValueError, Image.DecompressionBombError) as e:
        name = "<bytes>" if isinstance(src, (bytes, bytearray)) else str(src)
        raise PixelSourceError(f"cannot decode image {name}: {e}") from e

    W, H = pil.size
    if max_side and max(W, H) > max_side:
        scale = max_side / float(max(W, H))
        pil = pil.resize((max(1, int(W * scale)), max(1, int(H * scale))), Image.BILINEAR)

    return ArrayPixelSource.from_image(pil)

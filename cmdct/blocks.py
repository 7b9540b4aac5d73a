"""Overlapping block partitioning."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Iterator, Tuple

import numpy as np

from .preproc import PixelSource


@dataclass(frozen=True)
class Block:
    """A ``size`` x ``size`` window whose top-left pixel is ``(x, y)``.

    ``x`` and ``y`` are pixel origins, so with ``step > 1`` neighbouring
    blocks differ by ``step`` rather than by one.
    """

    x: int
    y: int
    size: int

    @property
    def rect(self) -> Tuple[int, int, int, int]:
        return (self.x, self.y, self.x + self.size, self.y + self.size)

    def pixels(self, source: PixelSource) -> np.ndarray:
        return source.window(self.x, self.y, self.size)


def grid_shape(width: int, height: int, size: int, step: int = 1) -> Tuple[int, int]:
    """Number of block origins along x and y. Zero if the image is smaller than a block."""

    if width < size or height < size:
        return 0, 0
    return (width - size) // step + 1, (height - size) // step + 1


def block_count(width: int, height: int, size: int, step: int = 1) -> int:
    cols, rows = grid_shape(width, height, size, step)
    return cols * rows


def iter_blocks(width: int, height: int, size: int, step: int = 1) -> Iterator[Block]:
    """Yield blocks column by column: ``x`` in the outer loop, ``y`` in the inner one.

    Block coordinates are pixel origins (multiples of ``step``).
    """

    cols, rows = grid_shape(width, height, size, step)
    for i in range(cols):
        for j in range(rows):
            yield Block(i * step, j * step, size)

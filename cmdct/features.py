"""Global feature sequence: collect, then sort once."""

from __future__ import annotations

import logging
from typing import Iterator, List, NamedTuple, Sequence

import numpy as np

from .blocks import iter_blocks
from .dct import _features_of, extract_grid, resolve_features
from .preproc import ArrayPixelSource, PixelSource

logger = logging.getLogger(__name__)


class FeatureEntry(NamedTuple):
    """One feature value of the block whose top-left pixel is (x, y).

    Coordinates are pixel origins; with a stride above 1 they are not
    consecutive block indices.
    """

    x: int
    y: int
    value: float


class FeatureIndex:
    """Ordered ``(x, y, value)`` records.

    Appends are only allowed before :meth:`sort`; sorting is stable on
    ``value`` so ties keep their insertion order.
    """

    def __init__(self):
        self._chunks: List[np.ndarray] = []
        self._data = np.zeros(0, dtype=[("x", np.int64), ("y", np.int64), ("value", np.float64)])
        self._sorted = False

    def add(self, x: int, y: int, values: Sequence[float]) -> None:
        """Append one record per value for the block at ``(x, y)``."""
        vals = np.asarray(values, dtype=np.float64).ravel()
        self.add_many(np.full(vals.size, x), np.full(vals.size, y), vals)

    def add_many(self, xs, ys, values) -> None:
        if self._sorted:
            raise RuntimeError("cannot append to a sorted FeatureIndex")
        chunk = np.empty(len(values), dtype=self._data.dtype)
        chunk["x"] = xs
        chunk["y"] = ys
        chunk["value"] = values
        self._chunks.append(chunk)

    def _flush(self) -> np.ndarray:
        if self._chunks:
            self._data = np.concatenate([self._data, *self._chunks])
            self._chunks = []
        return self._data

    def sort(self) -> "FeatureIndex":
        data = self._flush()
        if not self._sorted:
            order = np.argsort(data["value"], kind="stable")
            self._data = data[order]
            self._sorted = True
        return self

    @property
    def is_sorted(self) -> bool:
        return self._sorted

    @property
    def xs(self) -> np.ndarray:
        return self._view("x")

    @property
    def ys(self) -> np.ndarray:
        return self._view("y")

    @property
    def values(self) -> np.ndarray:
        return self._view("value")

    def _view(self, field: str) -> np.ndarray:
        v = self._flush()[field].view()
        v.setflags(write=False)
        return v

    def __len__(self) -> int:
        return len(self._data) + sum(len(c) for c in self._chunks)

    def __getitem__(self, i: int) -> FeatureEntry:
        rec = self._flush()[i]
        return FeatureEntry(int(rec["x"]), int(rec["y"]), float(rec["value"]))

    def __iter__(self) -> Iterator[FeatureEntry]:
        data = self._flush()
        for x, y, v in zip(data["x"].tolist(), data["y"].tolist(), data["value"].tolist()):
            yield FeatureEntry(x, y, v)

    def entries(self) -> List[FeatureEntry]:
        return list(self)


def build_index(
    source: PixelSource,
    size: int,
    step: int = 1,
    names: Sequence[str] | None = None,
) -> FeatureIndex:
    """Partition ``source``, extract every block's features and collect them.

    Array-backed sources go through the vectorised extractor; any other
    :class:`PixelSource` is walked block by block.
    """

    names = resolve_features(names)
    index = FeatureIndex()
    if isinstance(source, ArrayPixelSource):
        xs, ys, feats = extract_grid(source.planes, size, step, names)
        n = len(names)
        index.add_many(np.repeat(xs, n), np.repeat(ys, n), feats.ravel())
    else:
        for block in iter_blocks(source.width(), source.height(), size, step):
            index.add(block.x, block.y, _features_of(block.pixels(source), names))
    logger.debug("collected %d feature entries (%d per block)", len(index), len(names))
    return index

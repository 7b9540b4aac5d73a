"""2-D DCT and per-block feature extraction.

Conventions
-----------
Pixel planes and windows are indexed ``[row, col]`` i.e. ``[y, x]``.
Coefficient arrays are indexed ``[u, v]`` where ``u`` is the frequency
along ``x`` and ``v`` the frequency along ``y``::

    C(u, v) = a(u) a(v) sum_{x,y} p(x, y) cos((2x+1) u pi / 2K) cos((2y+1) v pi / 2K)

with ``a(0) = sqrt(1/K)`` and ``a(k>0) = sqrt(2/K)``. This is the
orthonormal type-II DCT; :func:`idct2` is its type-III inverse.
"""

from __future__ import annotations

from functools import lru_cache
from typing import Dict, Sequence, Tuple
import math

import numpy as np

# channel positions inside a window (see PixelSource.window)
RED, GREEN, BLUE, LUMA = 0, 1, 2, 3

FEATURE_NAMES: Tuple[str, ...] = (
    "luma_dc",
    "luma_01",
    "luma_10",
    "red_dc",
    "green_dc",
    "blue_dc",
    "avg_red",
    "avg_blue",
    "avg_green",
)

# name -> (kind, channel, u, v)
_FEATURES: Dict[str, Tuple[str, int, int, int]] = {
    "luma_dc": ("coef", LUMA, 0, 0),
    "luma_01": ("coef", LUMA, 0, 1),
    "luma_10": ("coef", LUMA, 1, 0),
    "red_dc": ("coef", RED, 0, 0),
    "green_dc": ("coef", GREEN, 0, 0),
    "blue_dc": ("coef", BLUE, 0, 0),
    "avg_red": ("mean", RED, 0, 0),
    "avg_blue": ("mean", BLUE, 0, 0),
    "avg_green": ("mean", GREEN, 0, 0),
}


def alpha(a: int, k: int) -> float:
    return math.sqrt(1.0 / k) if a == 0 else math.sqrt(2.0 / k)


@lru_cache(maxsize=32)
def dct_matrix(k: int) -> np.ndarray:
    """Orthonormal type-II DCT basis ``T[u, x] = a(u) cos((2x+1) u pi / 2k)``."""

    if k < 1:
        raise ValueError(f"transform size must be >= 1, got {k}")
    u = np.arange(k)[:, None]
    x = np.arange(k)[None, :]
    T = np.cos((2 * x + 1) * u * np.pi / (2 * k))
    T[0, :] *= math.sqrt(1.0 / k)
    T[1:, :] *= math.sqrt(2.0 / k)
    T.setflags(write=False)
    return T


def dct_coefficient(plane: np.ndarray, u: int, v: int) -> float:
    """Evaluate one coefficient of a square plane directly from the definition."""

    k = plane.shape[0]
    acc = 0.0
    for x in range(k):
        cx = math.cos((2 * x + 1) * u * math.pi / (2 * k))
        for y in range(k):
            cy = math.cos((2 * y + 1) * v * math.pi / (2 * k))
            acc += float(plane[y, x]) * cx * cy
    return alpha(u, k) * alpha(v, k) * acc


def dct2(block: np.ndarray) -> np.ndarray:
    """Forward 2-D DCT of a ``(K, K)`` plane or a ``(K, K, C)`` window."""

    T = dct_matrix(block.shape[0])
    return np.einsum("ux,vy,yx...->uv...", T, T, block)


def idct2(coeffs: np.ndarray) -> np.ndarray:
    """Inverse of :func:`dct2`."""

    T = dct_matrix(coeffs.shape[0])
    return np.einsum("ux,vy,uv...->yx...", T, T, coeffs)


def coefficient_matrix(window: np.ndarray) -> np.ndarray:
    """``(K, K, 4)`` coefficients of a window, indexed ``[u, v, channel]``."""

    return dct2(np.asarray(window, dtype=np.float64))


def resolve_features(names: Sequence[str] | None) -> Tuple[str, ...]:
    """Validate a feature selection and return it in canonical order."""

    if names is None:
        return FEATURE_NAMES
    if not isinstance(names, (list, tuple)) or not all(isinstance(n, str) for n in names):
        raise ValueError(f"features must be a list of feature names, got {names!r}")
    unknown = [n for n in names if n not in _FEATURES]
    if unknown:
        raise ValueError(f"unknown feature(s) {unknown}; available: {list(FEATURE_NAMES)}")
    if len(set(names)) != len(names):
        raise ValueError(f"duplicated feature names in {list(names)}")
    if not names:
        raise ValueError("at least one feature is required")
    return tuple(n for n in FEATURE_NAMES if n in names)


def block_features(window: np.ndarray, names: Sequence[str] | None = None) -> np.ndarray:
    """Feature vector of one block window.

    The coefficient matrix only lives for the duration of this call.
    Frequencies that do not exist for the block size (``K == 1``) give 0.0.
    """

    return _features_of(window, resolve_features(names))


def _features_of(window: np.ndarray, names: Tuple[str, ...]) -> np.ndarray:
    # names must already be resolved
    window = np.asarray(window, dtype=np.float64)
    k = window.shape[0]
    coeffs = coefficient_matrix(window)
    out = np.empty(len(names), dtype=np.float64)
    for i, name in enumerate(names):
        kind, ch, u, v = _FEATURES[name]
        if kind == "mean":
            out[i] = window[..., ch].mean()
        elif u < k and v < k:
            out[i] = coeffs[u, v, ch]
        else:
            out[i] = 0.0
    return out


def extract_grid(planes: np.ndarray, size: int, step: int = 1, names: Sequence[str] | None = None):
    """Vectorised :func:`block_features` over every block of an ``H x W x 4`` array.

    Returns ``(xs, ys, feats)`` with blocks in partitioner order (``x``
    outer, ``y`` inner). ``xs``/``ys`` are pixel origins, i.e. multiples of
    ``step`` and ``feats`` shaped ``(n_blocks, n_features)``.
    Only the basis functions that are actually needed are evaluated.
    """

    names = resolve_features(names)
    H, W = planes.shape[:2]
    if W < size or H < size:
        empty = np.zeros(0, dtype=np.int64)
        return empty, empty.copy(), np.zeros((0, len(names)), dtype=np.float64)

    T = dct_matrix(size)
    # [y0, x0, c, dy, dx] -> [x0, y0, c, dy, dx]
    win = np.lib.stride_tricks.sliding_window_view(planes, (size, size), axis=(0, 1))
    win = win[::step, ::step].swapaxes(0, 1)
    cols, rows = win.shape[:2]

    feats = np.empty((cols, rows, len(names)), dtype=np.float64)
    for i, name in enumerate(names):
        kind, ch, u, v = _FEATURES[name]
        plane = win[:, :, ch]
        if kind == "mean":
            feats[:, :, i] = plane.mean(axis=(-2, -1))
        elif u < size and v < size:
            basis = np.outer(T[v], T[u])  # [y, x]
            feats[:, :, i] = np.einsum("abyx,yx->ab", plane, basis)
        else:
            feats[:, :, i] = 0.0

    xs = np.repeat(np.arange(cols) * step, rows)
    ys = np.tile(np.arange(rows) * step, cols)
    return xs, ys, feats.reshape(cols * rows, len(names))

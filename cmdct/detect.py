"""Scan a sorted feature sequence for duplicate-block candidates."""

from __future__ import annotations

from typing import Callable, Dict, List, NamedTuple, Optional, Union

import numpy as np

from .features import FeatureEntry, FeatureIndex

Predicate = Callable[[float, float], bool]


def _below(distance: float, threshold: float) -> bool:
    return distance < threshold


def _above(distance: float, threshold: float) -> bool:
    return distance >= threshold


# "below" keeps spatially close pairs, "above" keeps distant ones
PREDICATES: Dict[str, Predicate] = {"below": _below, "above": _above}


class MatchCandidate(NamedTuple):
    first: FeatureEntry
    second: FeatureEntry
    distance: float


def resolve_predicate(predicate: Union[str, Predicate]) -> Predicate:
    if callable(predicate):
        return predicate
    try:
        return PREDICATES[predicate]
    except KeyError:
        raise ValueError(f"unknown predicate {predicate!r}; expected one of {sorted(PREDICATES)}") from None


def pair_distances(index: FeatureIndex) -> np.ndarray:
    """Euclidean block distance between each entry and the next one."""

    xs = index.xs.astype(np.float64)
    ys = index.ys.astype(np.float64)
    if xs.size < 2:
        return np.zeros(0, dtype=np.float64)
    return np.hypot(np.diff(xs), np.diff(ys))


def find_candidates(
    index: FeatureIndex,
    threshold: float,
    predicate: Union[str, Predicate] = "below",
    limit: Optional[int] = None,
) -> List[MatchCandidate]:
    """Compare neighbouring entries of a sorted index.

    A pair becomes a :class:`MatchCandidate` when
    ``predicate(distance, threshold)`` holds. Candidates keep sequence order;
    ``limit`` stops the scan once that many have been found.
    """

    if not index.is_sorted:
        raise RuntimeError("FeatureIndex must be sorted before scanning")

    dist = pair_distances(index)
    if predicate in ("below", "above"):
        hits = np.flatnonzero(dist < threshold if predicate == "below" else dist >= threshold)
    else:
        fn = resolve_predicate(predicate)
        hits = [i for i, d in enumerate(dist.tolist()) if fn(d, threshold)]
    if limit is not None:
        hits = hits[: max(0, int(limit))]

    out = []
    for i in hits:
        i = int(i)
        out.append(MatchCandidate(index[i], index[i + 1], float(dist[i])))
    return out

import math

import pytest

from cmdct.detect import MatchCandidate, find_candidates, pair_distances, resolve_predicate
from cmdct.features import FeatureEntry, FeatureIndex


def _index(*entries):
    idx = FeatureIndex()
    for x, y, v in entries:
        idx.add(x, y, [v])
    return idx.sort()


def test_pair_distances():
    idx = _index((0, 0, 1.0), (3, 4, 2.0), (3, 4, 3.0), (30, 4, 4.0))
    assert list(pair_distances(idx)) == pytest.approx([5.0, 0.0, 27.0])


def test_below_threshold_default():
    idx = _index((0, 0, 1.0), (3, 4, 2.0), (30, 4, 3.0), (30, 10, 4.0))
    out = find_candidates(idx, 10.0)
    assert out == [
        MatchCandidate(FeatureEntry(0, 0, 1.0), FeatureEntry(3, 4, 2.0), 5.0),
        MatchCandidate(FeatureEntry(30, 4, 3.0), FeatureEntry(30, 10, 4.0), 6.0),
    ]


def test_threshold_is_strict_for_below():
    idx = _index((0, 0, 1.0), (6, 8, 2.0))
    assert find_candidates(idx, 10.0) == []
    assert len(find_candidates(idx, 10.0001)) == 1


def test_above_and_callable_predicates():
    idx = _index((0, 0, 1.0), (3, 4, 2.0), (30, 4, 3.0))
    above = find_candidates(idx, 10.0, predicate="above")
    assert [c.distance for c in above] == pytest.approx([math.hypot(27, 0)])
    custom = find_candidates(idx, 10.0, predicate=lambda d, t: 1.0 < d < 2 * t)
    assert [c.distance for c in custom] == pytest.approx([5.0])


def test_limit():
    idx = _index(*[(i, 0, float(i)) for i in range(6)])
    assert len(find_candidates(idx, 10.0)) == 5
    assert len(find_candidates(idx, 10.0, limit=2)) == 2
    assert find_candidates(idx, 10.0, limit=0) == []


def test_degenerate_sequences():
    assert find_candidates(_index(), 10.0) == []
    assert find_candidates(_index((1, 1, 1.0)), 10.0) == []


def test_unsorted_index_rejected():
    idx = FeatureIndex()
    idx.add(0, 0, [1.0, 2.0])
    with pytest.raises(RuntimeError):
        find_candidates(idx, 10.0)


def test_unknown_predicate():
    with pytest.raises(ValueError):
        resolve_predicate("sideways")
    with pytest.raises(ValueError):
        find_candidates(_index((0, 0, 1.0)), 1.0, predicate="sideways")


if __name__ == "__main__":
    test_below_threshold_default()
    print(True)

import math

import numpy as np
import pytest
from PIL import Image

from cmdct.pipeline import (
    DetectorConfig,
    InvalidConfiguration,
    analyze_image,
    detect_copy_move,
)
from cmdct.preproc import ArrayPixelSource, PixelSource, PixelSourceError, Sample


class FloatSource(PixelSource):
    def __init__(self, planes):
        self._p = planes

    def width(self):
        return self._p.shape[1]

    def height(self):
        return self._p.shape[0]

    def sample_at(self, x, y):
        return Sample(*(float(v) for v in self._p[y, x]))


def _pair_coords(c):
    return {(c.first.x, c.first.y), (c.second.x, c.second.y)}


@pytest.mark.parametrize(
    "kwargs",
    [
        {"block_size": 0},
        {"block_size": -4},
        {"block_size": 2.5},
        {"threshold": 0},
        {"threshold": -1.0},
        {"threshold": "10"},
        {"step": 0},
        {"predicate": "nearby"},
        {"features": ["luma_dc", "bogus"]},
        {"predicate": ["above"]},
        {"predicate": {"a": 1}},
        {"features": 5},
        {"features": "luma_dc"},
        {"features": [1, 2]},
        {"max_side": 0},
    ],
)
def test_invalid_configuration(kwargs):
    with pytest.raises(InvalidConfiguration):
        DetectorConfig(**kwargs).validate()


def test_invalid_configuration_is_checked_before_running():
    with pytest.raises(InvalidConfiguration):
        detect_copy_move(None, DetectorConfig(threshold=0))


def test_missing_source_is_an_error():
    with pytest.raises(PixelSourceError):
        detect_copy_move(None, DetectorConfig())


def test_from_dict_rejects_unknown_keys():
    assert DetectorConfig.from_dict({"block_size": 8}).block_size == 8
    with pytest.raises(InvalidConfiguration):
        DetectorConfig.from_dict({"blocksize": 8})


def test_image_smaller_than_block():
    src = ArrayPixelSource(np.zeros((3, 10, 3), dtype=np.uint8))
    res = detect_copy_move(src, DetectorConfig(block_size=4))
    assert res.block_count == 0
    assert res.feature_count == 0
    assert res.candidates == []


def test_duplicated_patch_float_source():
    rng = np.random.default_rng(42)
    planes = rng.uniform(0, 255, size=(8, 8, 4))
    planes[4:8, 4:8] = planes[0:4, 0:4]
    res = detect_copy_move(FloatSource(planes), DetectorConfig(block_size=4, threshold=10))
    assert res.block_count == 25
    assert res.feature_count == 225

    from cmdct.features import build_index

    idx = build_index(FloatSource(planes), 4)
    unsorted = idx.entries()
    original, copy = unsorted[0], unsorted[-9]
    assert (original.x, original.y, copy.x, copy.y) == (0, 0, 4, 4)
    assert original.value == copy.value
    ordered = idx.sort().entries()
    pos = ordered.index(original)
    assert ordered[pos + 1] == copy

    hits = [c for c in res.candidates if _pair_coords(c) == {(0, 0), (4, 4)}]
    assert hits
    assert all(c.distance == pytest.approx(math.sqrt(32)) for c in hits)
    # every feature of the copy sits next to its original
    assert len(hits) >= 9


def test_duplicated_patch_end_to_end():
    rng = np.random.default_rng(7)
    rgb = np.zeros((8, 8, 3), dtype=np.uint8)
    patch = rng.integers(150, 201, size=(4, 4), dtype=np.uint8)
    rgb[0:4, 0:4] = patch[..., None]
    rgb[4:8, 4:8] = rgb[0:4, 0:4]
    src = ArrayPixelSource(rgb)

    from cmdct.features import build_index

    idx = build_index(src, 4)
    assert len(idx) == 225
    entries = idx.entries()
    # entries 0..8 belong to block (0,0), the last nine to block (4,4)
    assert (entries[0].x, entries[0].y) == (0, 0)
    assert (entries[-9].x, entries[-9].y) == (4, 4)
    assert entries[0].value == entries[-9].value

    res = detect_copy_move(src, DetectorConfig(block_size=4, threshold=10))
    hits = [c for c in res.candidates if _pair_coords(c) == {(0, 0), (4, 4)}]
    assert hits
    assert hits[0].distance == pytest.approx(math.sqrt(32))

    res_far = detect_copy_move(src, DetectorConfig(block_size=4, threshold=5))
    assert not any(_pair_coords(c) == {(0, 0), (4, 4)} for c in res_far.candidates)
    res_above = detect_copy_move(src, DetectorConfig(block_size=4, threshold=5, predicate="above"))
    assert any(_pair_coords(c) == {(0, 0), (4, 4)} for c in res_above.candidates)


def test_deterministic():
    rng = np.random.default_rng(1)
    rgb = rng.integers(0, 4, size=(16, 12, 3), dtype=np.uint8)
    src = ArrayPixelSource(rgb)
    cfg = DetectorConfig(block_size=3, threshold=6)
    r1 = detect_copy_move(src, cfg)
    r2 = detect_copy_move(ArrayPixelSource(rgb.copy()), cfg)
    assert r1.candidates == r2.candidates
    assert r1.candidates


def test_stride_and_feature_subset():
    rgb = np.random.default_rng(3).integers(0, 256, size=(20, 20, 3), dtype=np.uint8)
    res = detect_copy_move(
        ArrayPixelSource(rgb),
        DetectorConfig(block_size=4, step=4, features=["luma_dc", "luma_01", "luma_10"]),
    )
    assert res.block_count == 25
    assert res.feature_count == 75


def test_analyze_image_reports(tmp_path):
    rgb = np.random.default_rng(4).integers(0, 256, size=(12, 10, 3), dtype=np.uint8)
    p = tmp_path / "img.png"
    Image.fromarray(rgb).save(p)
    res = analyze_image(str(p), DetectorConfig())
    assert (res.width, res.height) == (10, 12)
    assert res.block_count == 7 * 9
    rep = res.to_dict(limit=3)
    assert rep["blocks"] == 63
    assert rep["features"] == 567
    assert rep["candidate_count"] == len(res.candidates)
    assert len(rep["candidates"]) == min(3, len(res.candidates))
    stages = [s["name"] for s in rep["metrics"]["stages"]]
    assert stages == ["decode", "extract", "sort", "scan"]
    assert rep["metrics"]["total_ms"] >= 0


def test_analyze_image_propagates_decode_errors(tmp_path):
    p = tmp_path / "broken.png"
    p.write_bytes(b"\x89PNG garbage")
    with pytest.raises(PixelSourceError):
        analyze_image(str(p))
    with pytest.raises(PixelSourceError):
        analyze_image(b"")


if __name__ == "__main__":
    test_duplicated_patch_end_to_end()
    print(True)

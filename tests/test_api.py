def test_analyze_and_batch(tmp_path):
    import numpy as np
    from PIL import Image
    from cmdct.api import analyze, analyze_batch
    from cmdct import DetectorConfig, ParallelConfig

    rng = np.random.default_rng(8)
    paths = []
    for i in range(2):
        p = tmp_path / f"{i}.png"
        Image.fromarray(rng.integers(0, 256, size=(18, 18, 3), dtype=np.uint8)).save(p)
        paths.append(str(p))

    default = analyze(paths[0])
    assert default.block_count == 15 * 15

    by_profile = analyze(paths[0], "distant")
    # 8x8 blocks on a stride-2 grid
    assert by_profile.block_count == 6 * 6
    assert all(c.distance >= 16.0 for c in by_profile.candidates)

    explicit = analyze(paths[0], "distant", config=DetectorConfig(block_size=6))
    assert explicit.block_count == 13 * 13

    batch = analyze_batch(paths, config=DetectorConfig(block_size=3), parallel_config=ParallelConfig())
    assert [r.block_count for r in batch] == [16 * 16, 16 * 16]


if __name__ == "__main__":
    import tempfile
    from pathlib import Path
    with tempfile.TemporaryDirectory() as d:
        test_analyze_and_batch(Path(d))
    print(True)

#!/usr/bin/env python3
"""Benchmark serial vs per-image parallel execution of the detector."""
import argparse
import json
import statistics
import time
from pathlib import Path

import numpy as np

from cmdct.pipeline import analyze_images
from cmdct.execution import ParallelConfig
from cmdct.metrics import describe_runtime
from cmdct.profiles import config_from_profile, load_profile


def run(dataset: Path, cfg, pcfg: ParallelConfig, runs: int):
    imgs = [str(p) for p in sorted(dataset.glob("*")) if p.suffix.lower() in {".png", ".jpg", ".jpeg"}]
    if not imgs:
        raise SystemExit("no images found in dataset")
    latencies = []
    blocks = 0
    t_all_start = time.perf_counter()
    for _ in range(runs):
        t0 = time.perf_counter()
        results = analyze_images(imgs, cfg, pcfg)
        latencies.append((time.perf_counter() - t0) * 1000.0 / len(imgs))
        blocks = sum(r.block_count for r in results)
    total = time.perf_counter() - t_all_start
    imgs_per_s = (len(imgs) * runs) / total
    median_ms = statistics.median(latencies)
    p95_ms = float(np.percentile(latencies, 95)) if len(latencies) > 1 else latencies[0]
    return {
        "images_per_s": imgs_per_s,
        "median_ms_per_img": median_ms,
        "p95_ms_per_img": p95_ms,
        "blocks_per_run": blocks,
        "runtime": describe_runtime(pcfg),
    }


def main():
    ap = argparse.ArgumentParser()
    ap.add_argument("--dataset", required=True, type=Path, help="directory with images")
    ap.add_argument("--profile", default="default")
    ap.add_argument("--runs", type=int, default=1)
    ap.add_argument("--workers", type=int, default=2)
    mode = ap.add_mutually_exclusive_group(required=True)
    mode.add_argument("--serial", action="store_true")
    mode.add_argument("--parallel", action="store_true")
    args = ap.parse_args()

    cfg = config_from_profile(load_profile(args.profile))
    if args.serial:
        pcfg = ParallelConfig(max_parallel_images=1, env_thread_caps=False)
    else:
        pcfg = ParallelConfig(max_parallel_images=args.workers)

    print(json.dumps(run(args.dataset, cfg, pcfg, args.runs), indent=2))


if __name__ == "__main__":
    main()

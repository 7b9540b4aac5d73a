#!/usr/bin/env python3
import argparse, json, logging, sys
from cmdct.pipeline import analyze_image, InvalidConfiguration, runtime_report
from cmdct.preproc import PixelSourceError
from cmdct.profiles import load_profile, config_from_profile
from cmdct.execution import ParallelConfig

def main(argv=None):
    ap = argparse.ArgumentParser(description="List copy-move candidates of an image")
    ap.add_argument("image")
    ap.add_argument("--profile", default="default")
    ap.add_argument("--block-size", type=int, default=None)
    ap.add_argument("--threshold", type=float, default=None)
    ap.add_argument("--step", type=int, default=None)
    ap.add_argument("--predicate", choices=["below", "above"], default=None)
    ap.add_argument("--features", default=None, help="comma separated feature names")
    ap.add_argument("--limit", type=int, default=None, help="max candidates to print")
    ap.add_argument("-v", "--verbose", action="count", default=0)
    args = ap.parse_args(argv)

    logging.basicConfig(
        level=logging.WARNING - 10 * min(args.verbose, 2),
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )

    overrides = {
        "block_size": args.block_size,
        "threshold": args.threshold,
        "step": args.step,
        "predicate": args.predicate,
        "features": args.features.split(",") if args.features else None,
    }
    try:
        cfg = config_from_profile(load_profile(args.profile), overrides)
        res = analyze_image(args.image, cfg)
    except (FileNotFoundError, InvalidConfiguration, PixelSourceError) as e:
        print(f"error: {e}", file=sys.stderr)
        return 2

    print(json.dumps(runtime_report(res, ParallelConfig(), args.limit), ensure_ascii=False, indent=2))
    return 0

if __name__ == "__main__":
    sys.exit(main())

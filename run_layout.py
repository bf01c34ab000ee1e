"""
run_layout.py
=============
CLI entrypoint for the tweet band layout engine.

Lays out every tweet, prints acceptance checks and writes the placed points
to OUT_DIR/points.csv plus the parameters used to OUT_DIR/params.json.

Quick start
-----------
    python run_layout.py tweets.json

With custom parameters::

    python run_layout.py tweets.json \\
        --bands March,April,May \\
        --iterations 300 \\
        --collide_radius 8 \\
        --seed 7 \\
        --out_dir output

Then render the result::

    python plot_bands.py tweets.json --out_dir output
"""

import argparse
import json
import logging
import os
import sys
import time

from bandlayout import LayoutConfig, layout_bands
from logging_config import setup_logging
from records import load_records


def build_parser() -> argparse.ArgumentParser:
    p = argparse.ArgumentParser(
        prog="run_layout.py",
        description=(
            "Band layout for labelled tweets.\n"
            "Produces points.csv and params.json in OUT_DIR."
        ),
        formatter_class=argparse.ArgumentDefaultsHelpFormatter,
    )
    p.add_argument("input", help="JSON file holding the tweet array.")

    # ── Bands ─────────────────────────────────────────────────────────────
    p.add_argument(
        "--bands", type=str, default=",".join(LayoutConfig.bands),
        metavar="A,B,C",
        help="Comma-separated band labels, top to bottom.",
    )

    # ── Simulation ────────────────────────────────────────────────────────
    p.add_argument(
        "--iterations", type=int, default=LayoutConfig.iterations,
        metavar="N",
        help="Fixed number of relaxation ticks per band.",
    )
    p.add_argument(
        "--collide_radius", type=float, default=LayoutConfig.collide_radius,
        metavar="R",
        help="Collision radius per point; centres stay at least 2R apart.",
    )
    p.add_argument(
        "--seed", type=int, default=LayoutConfig.seed,
        metavar="S",
        help="Seed for the jiggle that separates coincident points.",
    )

    # ── Output ────────────────────────────────────────────────────────────
    p.add_argument(
        "--out_dir", type=str, default="output",
        metavar="DIR",
        help="Directory to write output files (created if absent).",
    )
    p.add_argument(
        "--no_csv", action="store_true",
        help="Skip writing points.csv.",
    )
    p.add_argument(
        "-v", "--verbose", action="store_true",
        help="Log per-stage timings.",
    )
    return p


def _run_checks(layout, cfg: LayoutConfig, n_input: int) -> None:
    """Print acceptance test results to stdout."""
    sep = "─" * 52
    print(f"\n{sep}")
    print("  ACCEPTANCE TESTS")
    print(sep)

    n_placed = len(layout.points)
    ok = n_placed + len(layout.dropped) == n_input
    print(f"  Points     : {n_placed:>6,}  (+{len(layout.dropped):,} dropped "
          f"of {n_input:,})  {'✓' if ok else '✗ FAIL'}")

    for band in cfg.bands:
        count = layout.counts[band]
        center = layout.band_scale.center(band)
        if count == 0:
            print(f"  {band:<10} : empty (label only, centre y={center:.1f})")
            continue
        if count < 2:
            print(f"  {band:<10} : {count:>4} point   centre y={center:.1f}")
            continue
        d_min = layout.min_pair_distance(band)
        ok_sep = d_min >= cfg.min_separation - 1e-6
        print(f"  {band:<10} : {count:>4} points  min dist {d_min:>7.2f}  "
              f">= {cfg.min_separation:g}  {'✓' if ok_sep else '✗ overlap'}")

    print(sep + "\n")


def main() -> None:
    parser = build_parser()
    args = parser.parse_args()

    setup_logging(level=logging.DEBUG if args.verbose else logging.WARNING)

    cfg = LayoutConfig(
        bands          = tuple(b.strip() for b in args.bands.split(",") if b.strip()),
        iterations     = args.iterations,
        collide_radius = args.collide_radius,
        seed           = args.seed,
    )

    print("Configuration")
    print("─" * 40)
    for field in cfg.__dataclass_fields__:
        print(f"  {field:<22} = {getattr(cfg, field)}")
    print()

    try:
        records = load_records(args.input)
    except (FileNotFoundError, ValueError) as exc:
        print(f"Error: {exc}", file=sys.stderr)
        sys.exit(1)

    print(f"Laying out {len(records):,} tweets …")
    t0 = time.perf_counter()
    layout = layout_bands(records, cfg)
    print(f"  done in {time.perf_counter() - t0:.2f}s")

    _run_checks(layout, cfg, len(records))

    os.makedirs(args.out_dir, exist_ok=True)
    if not args.no_csv:
        points_path = os.path.join(args.out_dir, "points.csv")
        layout.to_frame().to_csv(points_path, index=False)
        print(f"Wrote {points_path}")

    # Persist parameters so plot_bands.py picks them up automatically
    params_path = os.path.join(args.out_dir, "params.json")
    params = {field: getattr(cfg, field) for field in cfg.__dataclass_fields__}
    with open(params_path, "w") as f:
        json.dump(params, f, indent=2)
    print(f"Wrote {params_path}")

    print(
        f"\nNext step:\n"
        f"  • Render : python plot_bands.py {args.input} --out_dir {args.out_dir}"
    )


if __name__ == "__main__":
    main()

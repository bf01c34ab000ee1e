"""
plot_bands.py
=============
Matplotlib painter for tweet band scenes, plus a render / export CLI.

Draws:
  • one filled circle per tweet, coloured by the chosen scheme
  • a black outline on every selected tweet
  • a text label at the centre of every band (empty bands included)
  • a vertical gradient legend with its two boundary labels

The axes work in canvas pixels with y pointing down, so the figure matches
the scene coordinates one to one.

Usage
-----
    # Colour by sentiment (default) and open an interactive window
    python plot_bands.py tweets.json

    # Colour by subjectivity
    python plot_bands.py tweets.json --color_by subjectivity

    # Pre-select tweets 12 then 40 (most recent first in the list)
    python plot_bands.py tweets.json --select 12 40

    # Save to PNG / SVG instead of displaying
    python plot_bands.py tweets.json --save bands.png
    python plot_bands.py tweets.json --svg

Layout parameters are read from OUT_DIR/params.json when present (written
by run_layout.py); explicit flags always take precedence.
"""

from __future__ import annotations

import argparse
import logging
import os
import sys
from typing import Optional

import matplotlib.pyplot as plt
import numpy as np
from matplotlib.collections import PatchCollection
from matplotlib.patches import Circle, Rectangle

from bandlayout import LayoutConfig, config_from_params
from colorscales import ColorScheme, scale_for
from logging_config import setup_logging
from records import load_records
from scene import BandScene, Scene

POINTS_GID = "points"

_HALIGN = {"start": "left", "middle": "center", "end": "right"}


# ---------------------------------------------------------------------------
# Argument parsing
# ---------------------------------------------------------------------------

def build_parser() -> argparse.ArgumentParser:
    p = argparse.ArgumentParser(
        prog="plot_bands.py",
        description="Render the tweet band visualisation.",
        formatter_class=argparse.ArgumentDefaultsHelpFormatter,
    )
    p.add_argument("input", help="JSON file holding the tweet array.")
    p.add_argument("--out_dir", default="output",
                   help="Directory searched for params.json.")
    p.add_argument("--color_by", default=ColorScheme.SENTIMENT.value,
                   choices=[s.value for s in ColorScheme],
                   help="Metric used to colour the points.")
    p.add_argument("--select", nargs="*", default=[], metavar="ID",
                   help="Tweet ids to click, in order.")
    p.add_argument("--save", default=None, metavar="FILE",
                   help="Save figure to FILE (png/pdf/svg) instead of displaying.")
    p.add_argument("--svg", nargs="?", const="bands.svg", default=None,
                   metavar="FILE",
                   help="Save figure as SVG.  FILE defaults to 'bands.svg'.  "
                        "Overrides --save when both are given.")
    p.add_argument("--dpi", type=float, default=100.0,
                   help="Pixels per inch; the figure is width/dpi inches wide.")

    # Layout overrides – None means "use params.json or the default".
    p.add_argument("--iterations",     type=int,   default=None)
    p.add_argument("--collide_radius", type=float, default=None)
    p.add_argument("--seed",           type=int,   default=None)
    p.add_argument("-v", "--verbose", action="store_true",
                   help="Log rebuild timings as well as warnings.")
    return p


# ---------------------------------------------------------------------------
# Painting
# ---------------------------------------------------------------------------

def _edge_style(scene: Scene) -> tuple[list, list]:
    edgecolors = [c.stroke if c.stroke else "none" for c in scene.circles]
    linewidths = [c.stroke_width for c in scene.circles]
    return edgecolors, linewidths


def _draw_legend(ax: plt.Axes, scene: Scene) -> None:
    lg = scene.legend
    cmap = scale_for(lg.scheme).cmap()
    # Row 0 is drawn at the top with origin="upper", so flip the ramp to
    # put low values at the bottom of the bar.
    ramp = np.linspace(1.0, 0.0, 256).reshape(-1, 1)
    ax.imshow(
        ramp, cmap=cmap, vmin=0.0, vmax=1.0, aspect="auto",
        extent=(lg.x, lg.x + lg.width, lg.y + lg.height, lg.y),
        origin="upper", interpolation="bilinear", zorder=2,
    )
    ax.add_patch(Rectangle((lg.x, lg.y), lg.width, lg.height,
                           fill=False, edgecolor="#999999",
                           linewidth=0.5, zorder=3))
    for label in lg.labels:
        ax.text(label.x, label.y, label.text,
                ha=_HALIGN[label.anchor], va="center",
                fontsize=label.font_size, zorder=4)


def draw_scene(scene: Scene, dpi: float = 100.0) -> plt.Figure:
    """Paint *scene* onto a new figure sized to the canvas.

    Returns
    -------
    matplotlib Figure.  The circles live in a single PatchCollection with
    gid ``"points"`` so ``restyle_figure`` can update outlines in place.
    """
    fig = plt.figure(figsize=(scene.width / dpi, scene.height / dpi), dpi=dpi)
    ax = fig.add_axes((0.0, 0.0, 1.0, 1.0))
    ax.set_xlim(0.0, scene.width)
    ax.set_ylim(scene.height, 0.0)     # SVG-style: y grows downward
    # The figure already has the canvas aspect ratio; imshow's aspect="auto"
    # below must not fight an "equal" setting here.
    ax.autoscale(False)
    ax.axis("off")

    # ── Points ────────────────────────────────────────────────────────────
    patches = [Circle((c.x, c.y), c.r) for c in scene.circles]
    edgecolors, linewidths = _edge_style(scene)
    points = PatchCollection(
        patches,
        facecolors=[c.fill for c in scene.circles],
        edgecolors=edgecolors,
        linewidths=linewidths or None,
        alpha=scene.circles[0].opacity if scene.circles else 1.0,
        zorder=6,
    )
    points.set_gid(POINTS_GID)
    ax.add_collection(points)

    # ── Band labels ───────────────────────────────────────────────────────
    for label in scene.band_labels:
        ax.text(label.x, label.y, label.text,
                ha=_HALIGN[label.anchor], va="center",
                fontsize=label.font_size, zorder=5)

    _draw_legend(ax, scene)
    return fig


def points_collection(fig: plt.Figure) -> Optional[PatchCollection]:
    for ax in fig.axes:
        for coll in ax.collections:
            if coll.get_gid() == POINTS_GID:
                return coll
    return None


def restyle_figure(fig: plt.Figure, scene: Scene) -> None:
    """Apply the scene's outline state to an already drawn figure.

    Only edge colours and widths change; positions and fills are untouched.
    """
    points = points_collection(fig)
    if points is None:
        return
    edgecolors, linewidths = _edge_style(scene)
    points.set_edgecolors(edgecolors)
    points.set_linewidths(linewidths)
    fig.canvas.draw_idle()


# ---------------------------------------------------------------------------
# Entry point
# ---------------------------------------------------------------------------

def _resolve_ids(state: BandScene, raw_ids: list[str]) -> list:
    """Map CLI id strings onto dataset ids (which may be ints)."""
    lookup = {str(r.id): r.id for r in state.records}
    resolved = []
    for raw in raw_ids:
        if raw in lookup:
            resolved.append(lookup[raw])
        else:
            print(f"WARNING: no tweet with id '{raw}' – ignored.", file=sys.stderr)
    return resolved


def main() -> None:
    parser = build_parser()
    args = parser.parse_args()

    setup_logging(level=logging.DEBUG if args.verbose else logging.WARNING)

    cfg: LayoutConfig = config_from_params(
        os.path.join(args.out_dir, "params.json"),
        iterations=args.iterations,
        collide_radius=args.collide_radius,
        seed=args.seed,
    )

    try:
        records = load_records(args.input)
    except (FileNotFoundError, ValueError) as exc:
        print(f"Error: {exc}", file=sys.stderr)
        sys.exit(1)

    state = BandScene(cfg, scheme=args.color_by)
    state.set_dataset(records)
    for rid in _resolve_ids(state, args.select):
        state.click(rid)

    scene = state.scene
    print(f"{len(scene.circles):,} tweets drawn"
          + (f", {scene.dropped:,} dropped (unknown month)" if scene.dropped else ""))
    for entry in scene.selected:
        print(f"  [{entry.id}] {entry.text}")

    fig = draw_scene(scene, dpi=args.dpi)

    if args.svg:
        fig.savefig(args.svg, format="svg")
        print(f"Saved figure to {args.svg}")
    elif args.save:
        fig.savefig(args.save, dpi=args.dpi)
        print(f"Saved figure to {args.save}")
    else:
        plt.show()


if __name__ == "__main__":
    main()

"""
bandlayout.py
=============
Band layout engine for the tweet visualisation.

Records are grouped into fixed horizontal bands (one per month) and, within
each band, jittered into non-overlapping positions by a particle-relaxation
simulation that mirrors d3-force:

  • forceX       – pull each point toward its evenly spaced slot (strength 1)
  • forceY       – pull each point toward the band's vertical centre (strength 1)
  • forceCollide – push apart any pair whose centres are closer than
                   2 × collide_radius, using predicted positions (x + vx)

The simulation always runs a fixed number of ticks (300 by default) with an
exponentially decaying alpha; there is no convergence check, so the same
input always yields the same coordinates.  A crowded band can still leave
the soft forces in a stalemate short of 2 × collide_radius, so a final
``settle_overlaps`` sweep lifts any remaining overlaps off the centre line.

Geometry
--------
Canvas coordinates follow SVG conventions: origin top-left, y grows down.
Bands are placed with d3 ``scaleBand`` semantics (paddingInner = paddingOuter
= band_padding, align = 0.5).  Within a band, rank *i* of *n* records maps to
the slot ``x = x0 + i / n × (x1 − x0)``.

Usage (importable)
------------------
    from bandlayout import LayoutConfig, layout_bands
    layout = layout_bands(records, LayoutConfig(iterations=300))
    for p in layout.points:
        print(p.id, p.x, p.y)
"""

from __future__ import annotations

import dataclasses
import json
import logging
import math
import os
import time
from typing import Optional, Sequence

import numpy as np
import pandas as pd
from scipy.spatial import cKDTree

from records import LayoutPoint, Record, records_frame

logger = logging.getLogger("tweetbands.layout")


# ---------------------------------------------------------------------------
# Configuration dataclass
# ---------------------------------------------------------------------------

@dataclasses.dataclass
class LayoutConfig:
    """All tunable geometry and simulation parameters.

    Defaults reproduce the original 2000 × 900 px visualisation.
    """

    # ---- canvas ----
    width: float = 2000.0
    height: float = 900.0
    margin_top: float = 100.0     # room above the first band for controls
    margin_right: float = 20.0
    margin_bottom: float = 50.0
    margin_left: float = 250.0    # band labels live in this strip

    # ---- horizontal slot range (relative to the plot area) ----
    slot_inset_left: float = 100.0
    slot_inset_right: float = 300.0   # keeps points clear of the legend

    # ---- bands ----
    bands: tuple[str, ...] = ("March", "April", "May")
    band_padding: float = 0.5

    # ---- marks ----
    mark_radius: float = 8.0
    mark_opacity: float = 0.7
    selected_stroke: str = "black"
    selected_stroke_width: float = 2.0
    label_font_size: float = 14.0

    # ---- simulation ----
    collide_radius: float = 8.0
    collide_strength: float = 1.0
    collide_iterations: int = 2   # collide passes per tick
    x_strength: float = 1.0
    y_strength: float = 1.0
    iterations: int = 300
    velocity_decay: float = 0.4
    alpha_min: float = 0.001
    seed: int = 7                 # only feeds the coincident-point jiggle

    # ---- legend ----
    legend_width: float = 20.0
    legend_height: float = 200.0
    legend_inset: float = 100.0   # distance from the right plot edge

    @property
    def min_separation(self) -> float:
        """Smallest allowed distance between two point centres."""
        return 2.0 * self.collide_radius

    @property
    def slot_range(self) -> tuple[float, float]:
        return (self.margin_left + self.slot_inset_left,
                self.width - self.margin_right - self.slot_inset_right)


def config_from_params(path: Optional[str], **overrides) -> LayoutConfig:
    """Build a LayoutConfig from a saved ``params.json`` plus overrides.

    Explicit (non-None) overrides take precedence over saved values; keys
    that are not LayoutConfig fields are ignored.
    """
    saved: dict = {}
    if path and os.path.exists(path):
        with open(path, encoding="utf-8") as f:
            saved = json.load(f)

    names = {f.name for f in dataclasses.fields(LayoutConfig)}
    kwargs = {k: v for k, v in saved.items() if k in names}
    kwargs.update({k: v for k, v in overrides.items()
                   if k in names and v is not None})
    if "bands" in kwargs:
        kwargs["bands"] = tuple(str(b) for b in kwargs["bands"])
    return LayoutConfig(**kwargs)


# ---------------------------------------------------------------------------
# Scale builder
# ---------------------------------------------------------------------------

@dataclasses.dataclass(frozen=True)
class BandScale:
    """Categorical scale: band label → top edge / centre of its row."""

    domain: tuple[str, ...]
    start: float
    step: float
    bandwidth: float

    def __contains__(self, label: object) -> bool:
        return label in self.domain

    def band(self, label: str) -> float:
        return self.start + self.step * self.domain.index(label)

    def center(self, label: str) -> float:
        return self.band(label) + self.bandwidth / 2.0


@dataclasses.dataclass(frozen=True)
class LinearScale:
    """Linear map from ``domain`` onto ``range`` (no clamping)."""

    domain: tuple[float, float]
    range: tuple[float, float]

    def __call__(self, value):
        d0, d1 = self.domain
        r0, r1 = self.range
        t = (np.asarray(value, dtype=np.float64) - d0) / (d1 - d0)
        return r0 + t * (r1 - r0)


def build_band_scale(cfg: LayoutConfig) -> BandScale:
    """Vertical band scale over ``cfg.bands`` between the top/bottom margins."""
    n = len(cfg.bands)
    r0 = cfg.margin_top
    r1 = cfg.height - cfg.margin_bottom
    pad = cfg.band_padding

    step = (r1 - r0) / max(1.0, n - pad + pad * 2.0)
    start = r0 + (r1 - r0 - step * (n - pad)) * 0.5
    return BandScale(
        domain=tuple(cfg.bands),
        start=start,
        step=step,
        bandwidth=step * (1.0 - pad),
    )


def build_slot_scale(count: int, cfg: LayoutConfig) -> LinearScale:
    """Horizontal scale from within-band rank 0..count to the slot range.

    An empty band gets the domain [0, 1] so the scale never divides by zero.
    """
    return LinearScale(domain=(0.0, float(max(count, 1))), range=cfg.slot_range)


# ---------------------------------------------------------------------------
# Force relaxation
# ---------------------------------------------------------------------------

class ForceRelaxation:
    """Fixed-tick particle simulation for one band.

    Parameters
    ----------
    targets : (N, 2) array of slot x / band-centre y per particle; also used
              as the initial positions.
    cfg     : LayoutConfig – strengths, radius, decay and tick count.
    rng     : numpy Generator used only to separate exactly coincident pairs.
    """

    def __init__(self, targets: np.ndarray, cfg: LayoutConfig,
                 rng: np.random.Generator) -> None:
        self.cfg = cfg
        self.targets = np.asarray(targets, dtype=np.float64).reshape(-1, 2)
        self.pos = self.targets.copy()
        self.vel = np.zeros_like(self.pos)
        self.alpha = 1.0
        self.alpha_decay = 1.0 - cfg.alpha_min ** (1.0 / max(cfg.iterations, 1))
        self._rng = rng

    def _jiggle(self) -> float:
        return (self._rng.random() - 0.5) * 1e-6

    def _apply_position_forces(self) -> None:
        cfg = self.cfg
        self.vel[:, 0] += (self.targets[:, 0] - self.pos[:, 0]) * cfg.x_strength * self.alpha
        self.vel[:, 1] += (self.targets[:, 1] - self.pos[:, 1]) * cfg.y_strength * self.alpha

    def _apply_collide(self) -> None:
        """Resolve overlaps pair by pair, updating velocities in place.

        Candidate pairs come from a KD-tree over predicted positions; each
        pair is then re-tested against the live velocities, so corrections
        made earlier in the sweep are seen by later pairs.
        """
        n = len(self.pos)
        if n < 2:
            return
        r = 2.0 * self.cfg.collide_radius
        r2 = r * r
        strength = self.cfg.collide_strength

        pred = self.pos + self.vel
        pairs = cKDTree(pred).query_pairs(r, output_type="ndarray")
        if len(pairs) == 0:
            return
        pairs = pairs[np.lexsort((pairs[:, 1], pairs[:, 0]))]

        pos = self.pos
        vel = self.vel
        for i, j in pairs.tolist():
            dx = pos[i, 0] + vel[i, 0] - pos[j, 0] - vel[j, 0]
            dy = pos[i, 1] + vel[i, 1] - pos[j, 1] - vel[j, 1]
            l = dx * dx + dy * dy
            if l >= r2:
                continue
            if dx == 0.0:
                dx = self._jiggle()
                l += dx * dx
            if dy == 0.0:
                dy = self._jiggle()
                l += dy * dy
            l = math.sqrt(l)
            # Equal radii: each particle absorbs half the correction.
            k = (r - l) / l * strength * 0.5
            vel[i, 0] += dx * k
            vel[i, 1] += dy * k
            vel[j, 0] -= dx * k
            vel[j, 1] -= dy * k

    def tick(self) -> None:
        self.alpha += (0.0 - self.alpha) * self.alpha_decay
        self._apply_position_forces()
        for _ in range(max(self.cfg.collide_iterations, 1)):
            self._apply_collide()
        self.vel *= 1.0 - self.cfg.velocity_decay
        self.pos += self.vel

    def run(self) -> np.ndarray:
        for _ in range(self.cfg.iterations):
            self.tick()
        return self.pos.copy()


def settle_overlaps(xy: np.ndarray, min_dist: float) -> np.ndarray:
    """Move points vertically until no two centres are closer than *min_dist*.

    Points are visited left to right.  A point that clears every point
    already visited keeps its position; otherwise it takes the free y
    closest to where the simulation left it, keeping its x.  Points the
    simulation already separated are never touched.

    Returns a new (N, 2) array.
    """
    out = np.array(xy, dtype=np.float64).reshape(-1, 2)
    if len(out) < 2:
        return out
    r2 = min_dist * min_dist
    # Candidates land just outside the ring so rounding cannot re-create
    # an overlap.
    pad = min_dist * 1e-6

    order = np.argsort(out[:, 0], kind="stable")
    placed: list[int] = []
    lo = 0
    moved = 0
    for i in order.tolist():
        x, y0 = out[i]
        while lo < len(placed) and x - out[placed[lo], 0] >= min_dist:
            lo += 1
        near = out[placed[lo:]]
        dx2 = (near[:, 0] - x) ** 2

        def clear(y: float) -> bool:
            return bool(np.all(dx2 + (near[:, 1] - y) ** 2 >= r2))

        if not clear(y0):
            reach = np.sqrt(np.maximum(r2 - dx2, 0.0)) + pad
            candidates = np.concatenate([near[:, 1] - reach, near[:, 1] + reach])
            candidates = candidates[np.lexsort((candidates, np.abs(candidates - y0)))]
            # The highest candidate always clears, so the loop finds one.
            for y in candidates.tolist():
                if clear(y):
                    out[i, 1] = y
                    moved += 1
                    break
        placed.append(i)

    if moved:
        logger.debug("Settled %d overlapping point(s).", moved)
    return out


def layout_band(records: Sequence[Record], center_y: float,
                cfg: LayoutConfig, rng: np.random.Generator) -> np.ndarray:
    """Return an (N, 2) array of settled positions for one band's records."""
    n = len(records)
    if n == 0:
        return np.empty((0, 2), dtype=np.float64)

    xscale = build_slot_scale(n, cfg)
    targets = np.column_stack([
        xscale(np.arange(n)),
        np.full(n, center_y, dtype=np.float64),
    ])
    if n == 1:
        return targets
    relaxed = ForceRelaxation(targets, cfg, rng).run()
    return settle_overlaps(relaxed, cfg.min_separation)


# ---------------------------------------------------------------------------
# Whole-dataset layout
# ---------------------------------------------------------------------------

@dataclasses.dataclass
class BandLayout:
    """Output of ``layout_bands``.

    ``points`` are ordered band by band (configured order), then by input
    order within each band.  ``dropped`` holds records whose category is not
    one of the configured bands.
    """

    points: list[LayoutPoint]
    band_scale: BandScale
    dropped: list[Record]
    counts: dict[str, int]

    def band_points(self, band: str) -> list[LayoutPoint]:
        return [p for p in self.points if p.category == band]

    def min_pair_distance(self, band: str) -> float:
        """Smallest centre-to-centre distance within *band* (inf if < 2 points)."""
        pts = self.band_points(band)
        if len(pts) < 2:
            return math.inf
        xy = np.array([[p.x, p.y] for p in pts])
        dist, _ = cKDTree(xy).query(xy, k=2)
        return float(dist[:, 1].min())

    def to_frame(self) -> pd.DataFrame:
        return records_frame(self.points)


def layout_bands(records: Sequence[Record],
                 cfg: Optional[LayoutConfig] = None) -> BandLayout:
    """Lay out every band independently and collect the placed points.

    Each band gets its own generator seeded from ``(cfg.seed, band_index)``,
    so one band's record count can never perturb another band's layout.
    """
    cfg = cfg or LayoutConfig()
    t0 = time.perf_counter()
    band_scale = build_band_scale(cfg)

    by_band: dict[str, list[Record]] = {band: [] for band in cfg.bands}
    dropped: list[Record] = []
    for rec in records:
        if rec.category in by_band:
            by_band[rec.category].append(rec)
        else:
            dropped.append(rec)

    if dropped:
        unknown = sorted({r.category for r in dropped})
        logger.warning("Dropped %d record(s) with unknown category %s; "
                       "known bands are %s.", len(dropped), unknown, list(cfg.bands))

    points: list[LayoutPoint] = []
    for band_idx, band in enumerate(cfg.bands):
        members = by_band[band]
        rng = np.random.default_rng([cfg.seed, band_idx])
        xy = layout_band(members, band_scale.center(band), cfg, rng)
        points.extend(
            LayoutPoint(rec, float(x), float(y))
            for rec, (x, y) in zip(members, xy)
        )

    logger.debug("Laid out %d point(s) in %d band(s) in %.3fs",
                 len(points), len(cfg.bands), time.perf_counter() - t0)
    return BandLayout(
        points=points,
        band_scale=band_scale,
        dropped=dropped,
        counts={band: len(members) for band, members in by_band.items()},
    )

"""
scene.py
========
Render surface: turns records, a colour scheme and a selection into an
explicit, paint-agnostic scene description.

Two update paths
----------------
Full rebuild      – dataset replaced or colour scheme changed.  Scales are
                    rebuilt, every band is re-laid out, every point is
                    recoloured and the legend is regenerated from scratch.
Lightweight update – selection changed.  Only the outline (stroke / width)
                    of the circles and the selected-text list change; no
                    layout or scale work is done.

``BandScene`` owns the only mutable state (dataset, scheme, selection).
Full rebuilds carry a generation token so that a caller running them off
the UI thread can discard any result that was superseded before it
finished (last writer wins).
"""

from __future__ import annotations

import dataclasses
import logging
import time
from typing import Any, Callable, Hashable, Iterable, Optional, Sequence

import pandas as pd

from bandlayout import LayoutConfig, layout_bands
from colorscales import ColorScheme, LegendSpec, TextMark, color_for, legend_for
from records import Record, normalize_records
from selection import SelectedTweet, SelectionSet

logger = logging.getLogger("tweetbands.scene")


# ---------------------------------------------------------------------------
# Scene description
# ---------------------------------------------------------------------------

@dataclasses.dataclass(frozen=True)
class CircleMark:
    id: Hashable
    category: str
    x: float
    y: float
    r: float
    fill: str
    opacity: float
    stroke: Optional[str]       # None = no outline
    stroke_width: float


@dataclasses.dataclass(frozen=True)
class Scene:
    width: float
    height: float
    scheme: ColorScheme
    circles: tuple[CircleMark, ...]
    band_labels: tuple[TextMark, ...]
    legend: LegendSpec
    selected: tuple[SelectedTweet, ...]
    dropped: int = 0            # records left out for an unknown category

    def circle(self, record_id: Hashable) -> Optional[CircleMark]:
        for c in self.circles:
            if c.id == record_id:
                return c
        return None

    def positions(self) -> list[tuple[float, float]]:
        return [(c.x, c.y) for c in self.circles]


def _outline(record_id: Hashable, selection: SelectionSet,
             cfg: LayoutConfig) -> tuple[Optional[str], float]:
    if record_id in selection:
        return cfg.selected_stroke, cfg.selected_stroke_width
    return None, 0.0


def build_scene(records: Sequence[Record],
                scheme: "ColorScheme | str",
                selection: SelectionSet,
                cfg: Optional[LayoutConfig] = None) -> Scene:
    """Full rebuild: layout, colour, band labels and legend.

    Pure with respect to its arguments; the same records, scheme, selection
    and config always produce an equal Scene.
    """
    cfg = cfg or LayoutConfig()
    scheme = ColorScheme.parse(scheme)
    layout = layout_bands(records, cfg)

    circles = []
    for p in layout.points:
        stroke, width = _outline(p.id, selection, cfg)
        circles.append(CircleMark(
            id           = p.id,
            category     = p.category,
            x            = p.x,
            y            = p.y,
            r            = cfg.mark_radius,
            fill         = color_for(p.record, scheme),
            opacity      = cfg.mark_opacity,
            stroke       = stroke,
            stroke_width = width,
        ))

    # Every configured band keeps its label, even with no points.
    band_labels = tuple(
        TextMark(band, cfg.margin_left / 2.0, layout.band_scale.center(band),
                 anchor="middle", font_size=cfg.label_font_size)
        for band in cfg.bands
    )

    return Scene(
        width       = cfg.width,
        height      = cfg.height,
        scheme      = scheme,
        circles     = tuple(circles),
        band_labels = band_labels,
        legend      = legend_for(scheme, cfg),
        selected    = tuple(selection),
        dropped     = len(layout.dropped),
    )


def restyle_selection(scene: Scene, selection: SelectionSet,
                      cfg: Optional[LayoutConfig] = None) -> Scene:
    """Lightweight update: refresh outlines and the selected-text list only."""
    cfg = cfg or LayoutConfig()
    circles = []
    for c in scene.circles:
        stroke, width = _outline(c.id, selection, cfg)
        if stroke != c.stroke or width != c.stroke_width:
            c = dataclasses.replace(c, stroke=stroke, stroke_width=width)
        circles.append(c)
    return dataclasses.replace(scene, circles=tuple(circles),
                               selected=tuple(selection))


def scene_frame(scene: Scene) -> pd.DataFrame:
    """One row per drawn circle, for export and inspection."""
    return pd.DataFrame({
        "id":       [c.id for c in scene.circles],
        "category": [c.category for c in scene.circles],
        "x":        [c.x for c in scene.circles],
        "y":        [c.y for c in scene.circles],
        "fill":     [c.fill for c in scene.circles],
        "selected": [c.stroke is not None for c in scene.circles],
    }, columns=["id", "category", "x", "y", "fill", "selected"])


# ---------------------------------------------------------------------------
# State container
# ---------------------------------------------------------------------------

class BandScene:
    """Holds the dataset, colour scheme and selection, and the current Scene.

    Synchronous use::

        state = BandScene()
        state.set_dataset(items)            # full rebuild, selection cleared
        state.set_color_scheme("subjectivity")   # full rebuild
        state.click(42)                     # lightweight update

    Asynchronous use (e.g. from a GUI worker thread)::

        state.set_dataset(items, rebuild=False)
        token, job = state.begin_rebuild()
        scene = job()                       # on the worker
        state.finish_rebuild(token, scene)  # back on the UI thread
    """

    def __init__(self, cfg: Optional[LayoutConfig] = None,
                 scheme: "ColorScheme | str" = ColorScheme.SENTIMENT) -> None:
        self.cfg = cfg or LayoutConfig()
        self.selection = SelectionSet()
        self.rebuild_count = 0
        self._records: list[Record] = []
        self._by_id: dict[Hashable, Record] = {}
        self._scheme = ColorScheme.parse(scheme)
        self._scene: Optional[Scene] = None
        self._generation = 0

    # ── Read-only views ───────────────────────────────────────────────────

    @property
    def records(self) -> list[Record]:
        return list(self._records)

    @property
    def scheme(self) -> ColorScheme:
        return self._scheme

    @property
    def scene(self) -> Optional[Scene]:
        return self._scene

    # ── External triggers ─────────────────────────────────────────────────

    def set_dataset(self, items: Iterable[Any],
                    rebuild: bool = True) -> Optional[Scene]:
        """Replace the dataset and clear the selection."""
        items = list(items)
        if all(isinstance(it, Record) for it in items):
            records = items
        else:
            records = normalize_records(items)

        self._records = records
        self._by_id = {}
        for rec in records:
            self._by_id.setdefault(rec.id, rec)
        self.selection.clear()
        # Points of the previous dataset are no longer clickable, and any
        # rebuild still running for it must not be installed.
        self._scene = None
        self._generation += 1
        logger.info("Dataset replaced: %d record(s).", len(records))
        return self._rebuild() if rebuild else self._scene

    def set_color_scheme(self, scheme: "ColorScheme | str",
                         rebuild: bool = True) -> Optional[Scene]:
        self._scheme = ColorScheme.parse(scheme)
        self._generation += 1
        return self._rebuild() if rebuild else self._scene

    def click(self, record_id: Hashable) -> Optional[Scene]:
        """Toggle selection of a drawn point and restyle outlines only."""
        record = self._by_id.get(record_id)
        if (record is None or self._scene is None
                or self._scene.circle(record_id) is None):
            logger.warning("Click on unknown point %r ignored.", record_id)
            return self._scene
        selected = self.selection.toggle(record)
        logger.debug("Point %r %s.", record_id,
                     "selected" if selected else "deselected")
        self._scene = restyle_selection(self._scene, self.selection, self.cfg)
        return self._scene

    # ── Full rebuild ──────────────────────────────────────────────────────

    def begin_rebuild(self) -> tuple[int, Callable[[], Scene]]:
        """Start a rebuild; returns its token and a self-contained job.

        The job works on snapshots, so it is safe to run on another thread
        while the state keeps changing.
        """
        self._generation += 1
        token = self._generation
        records = list(self._records)
        scheme = self._scheme
        selection = self.selection.copy()
        cfg = self.cfg

        def job() -> Scene:
            return build_scene(records, scheme, selection, cfg)

        return token, job

    def finish_rebuild(self, token: int, scene: Scene) -> Optional[Scene]:
        """Install *scene* if *token* is still the latest; otherwise discard it."""
        if token != self._generation:
            logger.debug("Discarding stale rebuild %d (latest is %d).",
                         token, self._generation)
            return None
        # The selection may have moved on while the job ran.
        self._scene = restyle_selection(scene, self.selection, self.cfg)
        self.rebuild_count += 1
        return self._scene

    def _rebuild(self) -> Scene:
        t0 = time.perf_counter()
        token, job = self.begin_rebuild()
        scene = self.finish_rebuild(token, job())
        logger.debug("Full rebuild %d took %.3fs", token, time.perf_counter() - t0)
        return scene

"""
colorscales.py
==============
Colour encoding for tweet points and the matching gradient legend.

Two continuous scales are available, selected by ``ColorScheme``:

  • sentiment     – domain [-1, 0, 1] → red, #ECECEC, green
  • subjectivity  – domain [0, 1]     → #ECECEC, #4467C4

Interpolation is piecewise-linear in RGB space between the stops; values
outside the domain are clamped to the end colours and NaN maps to the
neutral colour.  Colours come back as lowercase ``#rrggbb`` strings.
"""

from __future__ import annotations

import dataclasses
import enum
import math

import numpy as np
from matplotlib.colors import LinearSegmentedColormap, to_hex, to_rgb

from records import Record


class ColorScheme(str, enum.Enum):
    SENTIMENT = "sentiment"
    SUBJECTIVITY = "subjectivity"

    @classmethod
    def parse(cls, value: "ColorScheme | str") -> "ColorScheme":
        if isinstance(value, cls):
            return value
        key = str(value).strip().lower()
        for scheme in cls:
            if scheme.value == key:
                return scheme
        choices = ", ".join(s.value for s in cls)
        raise ValueError(f"Unknown colour scheme {value!r}; choose one of: {choices}")


# ---------------------------------------------------------------------------
# Scene primitives shared with the legend
# ---------------------------------------------------------------------------

@dataclasses.dataclass(frozen=True)
class TextMark:
    text: str
    x: float
    y: float
    anchor: str = "start"       # start | middle | end
    font_size: float = 10.0


@dataclasses.dataclass(frozen=True)
class GradientStop:
    offset: float               # 0 = bottom of the legend bar, 1 = top
    color: str


@dataclasses.dataclass(frozen=True)
class LegendSpec:
    """Vertical gradient bar plus its two boundary labels."""

    scheme: ColorScheme
    x: float
    y: float
    width: float
    height: float
    stops: tuple[GradientStop, ...]
    labels: tuple[TextMark, TextMark]   # (low/bottom, high/top)


# ---------------------------------------------------------------------------
# Scales
# ---------------------------------------------------------------------------

@dataclasses.dataclass(frozen=True)
class ColorScale:
    name: str
    attribute: str                  # Record field the scale reads
    domain: tuple[float, ...]
    colors: tuple[str, ...]
    neutral: str
    low_label: str
    high_label: str

    def __call__(self, value: float) -> str:
        if value is None or math.isnan(value):
            return to_hex(self.neutral)
        rgb = np.array([to_rgb(c) for c in self.colors])
        v = float(np.clip(value, self.domain[0], self.domain[-1]))
        mixed = [float(np.interp(v, self.domain, rgb[:, ch])) for ch in range(3)]
        return to_hex(mixed)

    def gradient_stops(self) -> tuple[GradientStop, ...]:
        lo, hi = self.domain[0], self.domain[-1]
        return tuple(
            GradientStop(offset=(d - lo) / (hi - lo), color=to_hex(c))
            for d, c in zip(self.domain, self.colors)
        )

    def cmap(self) -> LinearSegmentedColormap:
        return LinearSegmentedColormap.from_list(
            self.name, [(s.offset, s.color) for s in self.gradient_stops()]
        )


SCALES: dict[ColorScheme, ColorScale] = {
    ColorScheme.SENTIMENT: ColorScale(
        name="sentiment",
        attribute="sentiment",
        domain=(-1.0, 0.0, 1.0),
        colors=("red", "#ECECEC", "green"),
        neutral="#ECECEC",
        low_label="negative",
        high_label="positive",
    ),
    ColorScheme.SUBJECTIVITY: ColorScale(
        name="subjectivity",
        attribute="subjectivity",
        domain=(0.0, 1.0),
        colors=("#ECECEC", "#4467C4"),
        neutral="#ECECEC",
        low_label="objective",
        high_label="subjective",
    ),
}


def scale_for(scheme: "ColorScheme | str") -> ColorScale:
    return SCALES[ColorScheme.parse(scheme)]


def color_for(record: Record, scheme: "ColorScheme | str") -> str:
    """Fill colour of *record* under *scheme*."""
    scale = scale_for(scheme)
    return scale(getattr(record, scale.attribute))


def legend_for(scheme: "ColorScheme | str", cfg) -> LegendSpec:
    """Build a fresh legend for *scheme*.

    The bar sits ``cfg.legend_inset`` px inside the right plot edge, top
    aligned with the first band area; the low label sits at the bar's
    bottom, the high label at its top.
    """
    scale = scale_for(scheme)
    x = cfg.width - cfg.margin_right - cfg.legend_inset
    y = cfg.margin_top
    label_x = x + cfg.legend_width + 5.0
    return LegendSpec(
        scheme=ColorScheme.parse(scheme),
        x=x,
        y=y,
        width=cfg.legend_width,
        height=cfg.legend_height,
        stops=scale.gradient_stops(),
        labels=(
            TextMark(scale.low_label, label_x, y + cfg.legend_height),
            TextMark(scale.high_label, label_x, y),
        ),
    )

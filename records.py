"""
records.py
==========
Data model and input normalisation for the tweet band visualisation.

A dataset arrives as a JSON array of tweet objects, typically shaped like::

    {"id": 17, "Month": "April", "Sentiment": -0.4,
     "Subjectivity": 0.8, "Text": "..."}

``normalize_records`` turns such mappings into immutable ``Record`` objects.
Records are never rejected here: a missing ``Text`` becomes an empty string,
a missing or non-numeric metric becomes NaN, and a missing ``id`` falls back
to the record's position in the input so that selection identity stays
stable across re-renders.

Usage
-----
    from records import load_records
    records = load_records("tweets.json")
"""

from __future__ import annotations

import dataclasses
import json
import logging
import math
import os
from collections import Counter
from typing import Any, Hashable, Iterable, Mapping, Sequence

import pandas as pd

logger = logging.getLogger("tweetbands.records")


# ---------------------------------------------------------------------------
# Data model
# ---------------------------------------------------------------------------

@dataclasses.dataclass(frozen=True)
class Record:
    """One input tweet.

    ``sentiment`` is the primary metric in [-1, 1]; ``subjectivity`` is the
    secondary metric in [0, 1].  Either may be NaN when the input lacked it.
    """

    id: Hashable
    category: str
    sentiment: float
    subjectivity: float
    text: str = ""


@dataclasses.dataclass(frozen=True)
class LayoutPoint:
    """A Record placed on the canvas by the band layout engine."""

    record: Record
    x: float
    y: float

    @property
    def id(self) -> Hashable:
        return self.record.id

    @property
    def category(self) -> str:
        return self.record.category

    @property
    def text(self) -> str:
        return self.record.text


# Accepted spellings per field, first match wins.
FIELD_ALIASES: dict[str, tuple[str, ...]] = {
    "id":           ("id", "ID", "Id"),
    "category":     ("Month", "month", "category"),
    "sentiment":    ("Sentiment", "sentiment", "primary_metric"),
    "subjectivity": ("Subjectivity", "subjectivity", "secondary_metric"),
    "text":         ("Text", "text"),
}


def _pick(item: Mapping[str, Any], field: str) -> Any:
    for key in FIELD_ALIASES[field]:
        if key in item:
            return item[key]
    return None


def _as_float(value: Any) -> float:
    if value is None or isinstance(value, bool):
        return math.nan
    try:
        return float(value)
    except (TypeError, ValueError):
        return math.nan


# ---------------------------------------------------------------------------
# Normalisation
# ---------------------------------------------------------------------------

def normalize_records(items: Iterable[Any]) -> list[Record]:
    """Convert raw tweet mappings into ``Record`` objects.

    Parameters
    ----------
    items : iterable of mappings (already-parsed JSON objects)

    Returns
    -------
    list of Record, in input order.  Non-mapping items are skipped.
    """
    records: list[Record] = []
    for position, item in enumerate(items):
        if not isinstance(item, Mapping):
            logger.warning("Skipping item %d: expected an object, got %s",
                           position, type(item).__name__)
            continue

        rid = _pick(item, "id")
        if rid is None or isinstance(rid, (list, dict)):
            rid = position

        category = _pick(item, "category")
        text = _pick(item, "text")

        records.append(Record(
            id           = rid,
            category     = "" if category is None else str(category),
            sentiment    = _as_float(_pick(item, "sentiment")),
            subjectivity = _as_float(_pick(item, "subjectivity")),
            text         = "" if text is None else str(text),
        ))

    dupes = [rid for rid, n in Counter(r.id for r in records).items() if n > 1]
    if dupes:
        logger.warning("%d duplicate record id(s) in dataset, e.g. %r; "
                       "selection will treat them as one tweet.",
                       len(dupes), dupes[0])
    return records


def load_records(path: str) -> list[Record]:
    """Read a JSON tweet document from *path* and normalise it.

    The document is either a list of tweet objects or an object holding that
    list under ``records``, ``tweets`` or ``data``.
    """
    if not os.path.exists(path):
        raise FileNotFoundError(f"Tweet file not found: '{path}'")

    with open(path, encoding="utf-8") as f:
        try:
            doc = json.load(f)
        except json.JSONDecodeError as exc:
            raise ValueError(f"'{path}' is not valid JSON: {exc}") from exc

    if isinstance(doc, Mapping):
        for key in ("records", "tweets", "data"):
            if isinstance(doc.get(key), list):
                doc = doc[key]
                break
        else:
            raise ValueError(
                f"'{path}' holds an object without a 'records', 'tweets' "
                "or 'data' list."
            )
    if not isinstance(doc, list):
        raise ValueError(f"'{path}' must hold a JSON array of tweets.")

    return normalize_records(doc)


def records_frame(points: Sequence[LayoutPoint]) -> pd.DataFrame:
    """Tabulate laid-out points (one row per point) for CSV export."""
    return pd.DataFrame({
        "id":           [p.record.id for p in points],
        "category":     [p.record.category for p in points],
        "sentiment":    [p.record.sentiment for p in points],
        "subjectivity": [p.record.subjectivity for p in points],
        "x":            [p.x for p in points],
        "y":            [p.y for p in points],
        "text":         [p.record.text for p in points],
    }, columns=["id", "category", "sentiment", "subjectivity", "x", "y", "text"])

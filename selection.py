"""
selection.py
============
Click-driven selection state for tweet points.

The selection is an ordered list, most recently selected first.  Each entry
snapshots the tweet text at click time, so later dataset mutation cannot
change text that is already on display.
"""

from __future__ import annotations

import dataclasses
from typing import Hashable, Iterator

from records import Record


@dataclasses.dataclass(frozen=True)
class SelectedTweet:
    id: Hashable
    text: str


class SelectionSet:
    """Ordered set of selected tweet ids with their captured text."""

    def __init__(self) -> None:
        self._entries: list[SelectedTweet] = []

    def __contains__(self, record_id: object) -> bool:
        return any(e.id == record_id for e in self._entries)

    def __iter__(self) -> Iterator[SelectedTweet]:
        return iter(list(self._entries))

    def __len__(self) -> int:
        return len(self._entries)

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, SelectionSet):
            return NotImplemented
        return self._entries == other._entries

    def __repr__(self) -> str:
        return f"SelectionSet({self.ids()!r})"

    def ids(self) -> list[Hashable]:
        return [e.id for e in self._entries]

    def texts(self) -> list[str]:
        return [e.text for e in self._entries]

    def toggle(self, record: Record) -> bool:
        """Flip *record*'s membership; return True if it is now selected."""
        if record.id in self:
            self._entries = [e for e in self._entries if e.id != record.id]
            return False
        self._entries.insert(0, SelectedTweet(id=record.id, text=record.text))
        return True

    def clear(self) -> None:
        """Drop every entry.  Only a dataset replacement should call this."""
        self._entries = []

    def copy(self) -> "SelectionSet":
        dup = SelectionSet()
        dup._entries = list(self._entries)
        return dup

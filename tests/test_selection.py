from __future__ import annotations

from records import Record
from selection import SelectedTweet, SelectionSet


def _rec(rid, text="") -> Record:
    return Record(id=rid, category="March", sentiment=0.0, subjectivity=0.0, text=text)


def test_toggle_twice_restores_previous_state() -> None:
    sel = SelectionSet()
    sel.toggle(_rec(1, "one"))
    before = sel.copy()

    assert sel.toggle(_rec(2, "two")) is True
    assert sel.toggle(_rec(2, "two")) is False
    assert sel == before


def test_most_recent_selection_comes_first() -> None:
    sel = SelectionSet()
    for rid in (1, 2, 3):
        sel.toggle(_rec(rid, f"text {rid}"))
    assert sel.ids() == [3, 2, 1]
    assert sel.texts() == ["text 3", "text 2", "text 1"]

    sel.toggle(_rec(2))
    assert sel.ids() == [3, 1]
    assert 2 not in sel
    assert len(sel) == 2


def test_membership_is_by_id_and_text_is_taken_per_click() -> None:
    sel = SelectionSet()
    sel.toggle(_rec(5, "original"))
    sel.toggle(_rec(6, "other"))

    # A newer record with the same id deselects rather than replacing text.
    assert sel.toggle(_rec(5, "edited")) is False
    assert list(sel) == [SelectedTweet(id=6, text="other")]

    assert sel.toggle(_rec(5, "edited")) is True
    assert list(sel) == [SelectedTweet(id=5, text="edited"),
                         SelectedTweet(id=6, text="other")]


def test_copy_is_independent() -> None:
    sel = SelectionSet()
    sel.toggle(_rec(1))
    dup = sel.copy()
    dup.toggle(_rec(2))
    assert sel.ids() == [1]
    assert dup.ids() == [2, 1]


def test_clear_empties_selection() -> None:
    sel = SelectionSet()
    sel.toggle(_rec("x"))
    sel.clear()
    assert len(sel) == 0
    assert list(sel) == []

from __future__ import annotations

import logging

import pytest

import scene as scene_mod
from colorscales import ColorScheme
from records import normalize_records
from scene import BandScene, build_scene, scene_frame
from selection import SelectionSet


@pytest.fixture
def state(three_tweets) -> BandScene:
    st = BandScene()
    st.set_dataset(three_tweets)
    return st


def test_full_rebuild_is_idempotent(mixed_tweets, cfg) -> None:
    records = normalize_records(mixed_tweets)
    sel = SelectionSet()
    assert build_scene(records, "sentiment", sel, cfg) == \
           build_scene(records, "sentiment", sel, cfg)


def test_scene_contents(state) -> None:
    scene = state.scene
    assert [c.id for c in scene.circles] == ["a", "b", "c"]
    assert [c.fill for c in scene.circles] == ["#ff0000", "#ececec", "#008000"]
    assert all(c.r == 8.0 and c.opacity == 0.7 for c in scene.circles)
    assert all(c.stroke is None for c in scene.circles)
    assert [t.text for t in scene.band_labels] == ["March", "April", "May"]
    assert all(t.x == 125.0 and t.font_size == 14.0 for t in scene.band_labels)
    assert scene.circle("c").y == pytest.approx(475.0)


def test_scheme_switch_recolours_but_keeps_positions(state) -> None:
    before = state.scene
    after = state.set_color_scheme("subjectivity")

    assert state.scheme is ColorScheme.SUBJECTIVITY
    assert after.positions() == before.positions()
    assert [c.fill for c in after.circles] != [c.fill for c in before.circles]
    assert [t.text for t in after.legend.labels] == ["objective", "subjective"]
    assert state.rebuild_count == 2


def test_click_restyles_without_layout(state, monkeypatch) -> None:
    def _no_layout(*args, **kwargs):
        raise AssertionError("selection change must not re-run the layout")

    monkeypatch.setattr(scene_mod, "layout_bands", _no_layout)
    positions = state.scene.positions()
    fills = [c.fill for c in state.scene.circles]

    scene = state.click("b")
    scene = state.click("a")

    assert state.rebuild_count == 1
    assert scene.positions() == positions
    assert [c.fill for c in scene.circles] == fills
    assert scene.circle("a").stroke == "black"
    assert scene.circle("a").stroke_width == 2.0
    assert scene.circle("c").stroke is None
    assert [s.text for s in scene.selected] == ["awful", "meh"]

    scene = state.click("a")
    assert scene.circle("a").stroke is None
    assert [s.id for s in scene.selected] == ["b"]


def test_selection_survives_scheme_change(state) -> None:
    state.click("c")
    scene = state.set_color_scheme("subjectivity")
    assert scene.circle("c").stroke == "black"
    assert [s.text for s in scene.selected] == ["great"]


def test_new_dataset_clears_selection(state, mixed_tweets) -> None:
    state.click("a")
    scene = state.set_dataset(mixed_tweets)
    assert len(state.selection) == 0
    assert scene.selected == ()
    assert all(c.stroke is None for c in scene.circles)
    assert scene.dropped == 1


def test_unknown_click_is_ignored(state, caplog) -> None:
    before = state.scene
    with caplog.at_level(logging.WARNING, logger="tweetbands.scene"):
        after = state.click("nope")
    assert after is before
    assert len(state.selection) == 0
    assert "nope" in caplog.text


def test_click_before_pending_rebuild_finishes_is_ignored(three_tweets) -> None:
    state = BandScene()
    state.set_dataset(three_tweets, rebuild=False)
    assert state.click("a") is None
    assert len(state.selection) == 0


def test_stale_rebuild_is_discarded(three_tweets, mixed_tweets) -> None:
    state = BandScene()
    state.set_dataset(three_tweets, rebuild=False)
    old_token, old_job = state.begin_rebuild()
    state.set_dataset(mixed_tweets, rebuild=False)
    new_token, new_job = state.begin_rebuild()

    new_scene = new_job()
    assert state.finish_rebuild(new_token, new_scene) is not None
    # The older job finishes last but must not win.
    assert state.finish_rebuild(old_token, old_job()) is None
    assert len(state.scene.circles) == 30
    assert state.rebuild_count == 1


def test_finish_rebuild_applies_selection_made_meanwhile(state) -> None:
    token, job = state.begin_rebuild()
    built = job()
    state.click("b")
    scene = state.finish_rebuild(token, built)
    assert scene.circle("b").stroke == "black"


def test_empty_dataset_draws_labels_and_legend_only() -> None:
    state = BandScene()
    scene = state.set_dataset([])
    assert scene.circles == ()
    assert len(scene.band_labels) == 3
    assert [t.text for t in scene.legend.labels] == ["negative", "positive"]


def test_scene_frame_flags_selected_rows(state) -> None:
    state.click("b")
    df = scene_frame(state.scene)
    assert list(df["id"]) == ["a", "b", "c"]
    assert list(df["selected"]) == [False, True, False]


def test_rebuild_started_before_dataset_swap_is_discarded() -> None:
    state = BandScene()
    state.set_dataset([{"id": "old", "Month": "March", "Text": "before"}],
                      rebuild=False)
    token, job = state.begin_rebuild()
    state.set_dataset([{"id": "new", "Month": "March", "Text": "after"}],
                      rebuild=False)

    assert state.finish_rebuild(token, job()) is None
    assert state.scene is None

    token, job = state.begin_rebuild()
    scene = state.finish_rebuild(token, job())
    assert [c.id for c in scene.circles] == ["new"]
    assert [s.text for s in state.click("new").selected] == ["after"]


def test_rebuild_started_before_scheme_change_is_discarded(state) -> None:
    token, job = state.begin_rebuild()
    state.set_color_scheme("subjectivity", rebuild=False)
    assert state.finish_rebuild(token, job()) is None
    assert state.scene.scheme is ColorScheme.SENTIMENT

    token, job = state.begin_rebuild()
    assert state.finish_rebuild(token, job()).scheme is ColorScheme.SUBJECTIVITY


def test_reloaded_text_only_shows_after_a_new_click(state, three_tweets) -> None:
    state.click("a")
    assert state.selection.texts() == ["awful"]

    edited = [dict(t) for t in three_tweets]
    edited[0]["Text"] = "awful, edited"
    state.set_dataset(edited)
    assert state.selection.texts() == []

    assert [s.text for s in state.click("a").selected] == ["awful, edited"]

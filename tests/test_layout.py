from __future__ import annotations

import logging

import numpy as np
import pytest

from bandlayout import (ForceRelaxation, LayoutConfig, build_slot_scale,
                        layout_band, layout_bands, settle_overlaps)
from records import Record, normalize_records


def _band_records(category: str, n: int, start: int = 0) -> list[Record]:
    return [Record(id=start + i, category=category, sentiment=0.0,
                   subjectivity=0.0, text=f"t{start + i}") for i in range(n)]


def test_every_known_band_record_is_placed_once(mixed_tweets, caplog) -> None:
    records = normalize_records(mixed_tweets)
    with caplog.at_level(logging.WARNING, logger="tweetbands.layout"):
        layout = layout_bands(records)

    assert len(layout.points) == 30
    assert sorted(p.id for p in layout.points) == list(range(100, 130))
    assert [r.id for r in layout.dropped] == [999]
    assert "June" in caplog.text
    assert layout.counts == {"March": 10, "April": 10, "May": 10}


def test_points_stay_in_their_band_order(mixed_tweets) -> None:
    layout = layout_bands(normalize_records(mixed_tweets))
    categories = [p.category for p in layout.points]
    assert categories == ["March"] * 10 + ["April"] * 10 + ["May"] * 10


def test_sparse_band_settles_on_its_slots(cfg) -> None:
    records = _band_records("March", 40)
    layout = layout_bands(records, cfg)

    xscale = build_slot_scale(40, cfg)
    center = layout.band_scale.center("March")
    xs = np.array([p.x for p in layout.points])
    ys = np.array([p.y for p in layout.points])
    np.testing.assert_allclose(xs, xscale(np.arange(40)))
    np.testing.assert_allclose(ys, center)
    assert layout.min_pair_distance("March") >= cfg.min_separation


def test_layout_is_deterministic(mixed_tweets) -> None:
    records = normalize_records(mixed_tweets)
    first = layout_bands(records)
    second = layout_bands(records)
    assert [(p.id, p.x, p.y) for p in first.points] == \
           [(p.id, p.x, p.y) for p in second.points]


def test_single_record_sits_at_slot_zero_and_band_centre(cfg) -> None:
    layout = layout_bands(_band_records("May", 1), cfg)
    (point,) = layout.points
    assert point.x == pytest.approx(350.0)
    assert point.y == pytest.approx(layout.band_scale.center("May"))


def test_empty_band_yields_no_points(cfg) -> None:
    layout = layout_bands(_band_records("March", 3), cfg)
    assert layout.counts["April"] == 0
    assert layout.band_points("April") == []
    assert layout.min_pair_distance("April") == float("inf")
    assert layout_band([], 475.0, cfg, np.random.default_rng(0)).shape == (0, 2)


def test_dense_band_relaxes_without_nan_and_repeats(cfg) -> None:
    records = _band_records("April", 200)
    first = layout_bands(records, cfg)
    second = layout_bands(records, cfg)

    xy = np.array([[p.x, p.y] for p in first.points])
    assert xy.shape == (200, 2)
    assert np.isfinite(xy).all()
    assert first.min_pair_distance("April") >= cfg.min_separation
    # Crowded slots push points off the centre line.
    assert np.ptp(xy[:, 1]) > 0.0
    assert [(p.x, p.y) for p in first.points] == [(p.x, p.y) for p in second.points]


def test_bands_are_laid_out_independently(cfg) -> None:
    march = _band_records("March", 60)
    alone = layout_bands(march, cfg)
    crowded = layout_bands(march + _band_records("April", 150, start=1000), cfg)
    assert [(p.x, p.y) for p in alone.band_points("March")] == \
           [(p.x, p.y) for p in crowded.band_points("March")]


def test_two_march_one_april_scenario(three_tweets, cfg) -> None:
    layout = layout_bands(normalize_records(three_tweets), cfg)
    april = layout.band_points("April")
    assert len(april) == 1
    assert april[0].y == pytest.approx(475.0)
    assert layout.min_pair_distance("March") >= 16.0


def test_coincident_particles_are_separated(cfg) -> None:
    targets = np.array([[500.0, 300.0]] * 4)
    sim = ForceRelaxation(targets, cfg, np.random.default_rng(3))
    pos = sim.run()
    assert np.isfinite(pos).all()
    assert len({(round(x, 6), round(y, 6)) for x, y in pos}) == 4


def test_iterations_setting_bounds_the_run() -> None:
    cfg = LayoutConfig(iterations=5)
    targets = np.array([[500.0, 300.0], [505.0, 300.0]])
    sim = ForceRelaxation(targets, cfg, np.random.default_rng(0))
    sim.run()
    assert sim.alpha == pytest.approx((1.0 - sim.alpha_decay) ** 5)


@pytest.mark.parametrize("n", [83, 84, 90, 120, 300])
def test_crowded_band_keeps_minimum_separation(cfg, n: int) -> None:
    layout = layout_bands(_band_records("March", n), cfg)
    assert len(layout.points) == n
    assert layout.min_pair_distance("March") >= cfg.min_separation


def test_crowded_band_stays_near_its_centre(cfg) -> None:
    layout = layout_bands(_band_records("March", 84), cfg)
    ys = np.array([p.y for p in layout.points])
    center = layout.band_scale.center("March")
    assert np.abs(ys - center).max() <= layout.band_scale.bandwidth / 2.0


def test_settle_overlaps_leaves_separated_points_alone() -> None:
    xy = np.array([[0.0, 0.0], [20.0, 0.0], [40.0, 5.0]])
    np.testing.assert_array_equal(settle_overlaps(xy, 16.0), xy)


def test_settle_overlaps_lifts_a_collinear_row() -> None:
    xy = np.column_stack([np.arange(10) * 10.0, np.zeros(10)])
    out = settle_overlaps(xy, 16.0)

    np.testing.assert_array_equal(out[:, 0], xy[:, 0])
    d = np.hypot(out[:, None, 0] - out[None, :, 0], out[:, None, 1] - out[None, :, 1])
    d[np.diag_indices(10)] = np.inf
    assert d.min() >= 16.0
    assert np.array_equal(out, settle_overlaps(xy, 16.0))

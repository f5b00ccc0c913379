# tests/test_declutter_peaks.py
"""
Proximity rank-and-suppress for point labels: greedy keep/drop by importance,
radius counting, label-grid ranking at the deepest zoom, decode failures.
"""

from __future__ import annotations

import math

import numpy as np
import pytest
from shapely.geometry import LineString, Point

from tileprofile.core.declutter import RankConfig, rank_and_suppress
from tileprofile.core.errors import MOUNTAIN_PEAK_DECODE, Stats
from tileprofile.core.types import CandidateFeature, GeometryKind

ZOOM = 10
MAX_ZOOM = 14


def _peak(x: float, y: float, importance: float, sid: int, group: int | None = None) -> CandidateFeature:
    return CandidateFeature(
        layer="mountain_peak",
        kind=GeometryKind.POINT,
        geometry=Point(x, y),
        attrs={"class": "peak"},
        importance=importance,
        group=group,
        source_id=sid,
    )


def _ids(features: list[CandidateFeature]) -> list[int | None]:
    return [f.source_id for f in features]


def _ranks(features: list[CandidateFeature]) -> list[int | None]:
    return [f.attrs.get("rank") for f in features]


def _triangle() -> list[CandidateFeature]:
    """A-C 3 px apart, B 40 px from both; importance A > B > C."""
    a = _peak(100.0, 100.0, 3.0, 1)
    c = _peak(103.0, 100.0, 1.0, 3)
    b = _peak(101.5, 100.0 + math.sqrt(40.0 ** 2 - 1.5 ** 2), 2.0, 2)
    return [c, b, a]


def test_triangle_scenario_keeps_a_and_b() -> None:
    out = rank_and_suppress(_triangle(), ZOOM, MAX_ZOOM)
    assert _ids(out) == [1, 2]
    assert _ranks(out) == [1, 1]


def test_rank_counts_kept_neighbours_within_radius() -> None:
    # 10 px apart on a line, decreasing importance
    peaks = [_peak(100.0 + 10 * i, 100.0, 10.0 - i, i) for i in range(5)]
    out = rank_and_suppress(peaks, ZOOM, MAX_ZOOM)
    # p3 has three kept peaks within 30 px (inclusive) and is dropped;
    # p4 sees only p2 and p3 within 30 px, so rank 3 appears twice
    assert _ids(out) == [0, 1, 2, 4]
    assert _ranks(out) == [1, 2, 3, 3]


def test_max_rank_override() -> None:
    peaks = [_peak(100.0 + 10 * i, 100.0, 10.0 - i, i) for i in range(3)]
    out = rank_and_suppress(peaks, ZOOM, MAX_ZOOM, RankConfig(max_rank=1))
    assert _ids(out) == [0]


def test_very_close_is_inclusive() -> None:
    peaks = [_peak(100.0, 100.0, 2.0, 1), _peak(105.0, 100.0, 1.0, 2)]
    assert _ids(rank_and_suppress(peaks, ZOOM, MAX_ZOOM)) == [1]
    peaks = [_peak(100.0, 100.0, 2.0, 1), _peak(105.5, 100.0, 1.0, 2)]
    out = rank_and_suppress(peaks, ZOOM, MAX_ZOOM)
    assert _ids(out) == [1, 2]
    assert _ranks(out) == [1, 2]


def test_ties_keep_input_order() -> None:
    peaks = [_peak(100.0, 100.0, 5.0, 1), _peak(102.0, 100.0, 5.0, 2)]
    assert _ids(rank_and_suppress(peaks, ZOOM, MAX_ZOOM)) == [1]
    peaks = [_peak(102.0, 100.0, 5.0, 2), _peak(100.0, 100.0, 5.0, 1)]
    assert _ids(rank_and_suppress(peaks, ZOOM, MAX_ZOOM)) == [2]


def test_points_outside_buffer_are_dropped() -> None:
    peaks = [
        _peak(-100.0, 50.0, 9.0, 1),
        _peak(-64.0, 50.0, 8.0, 2),
        _peak(256.0 + 64.0, 200.0, 7.0, 3),
        _peak(256.0 + 64.5, 200.0, 6.0, 4),
    ]
    assert _ids(rank_and_suppress(peaks, ZOOM, MAX_ZOOM)) == [2, 3]


def test_deepest_zoom_ranks_by_label_grid_without_suppression() -> None:
    peaks = [
        _peak(100.0, 100.0, 1.0, 1, group=7),
        _peak(101.0, 100.0, 3.0, 2, group=7),
        _peak(102.0, 100.0, 2.0, 3, group=8),
        _peak(103.0, 100.0, 9.0, 4, group=7),
        _peak(400.0, 100.0, 9.0, 5, group=7),
    ]
    out = rank_and_suppress(peaks, MAX_ZOOM, MAX_ZOOM)
    # outside the buffer goes; everything else stays in input order
    assert _ids(out) == [1, 2, 3, 4]
    assert _ranks(out) == [1, 2, 1, 3]


def test_deepest_zoom_keeps_existing_rank() -> None:
    peak = _peak(100.0, 100.0, 1.0, 1, group=1)
    peak.attrs["rank"] = 9
    out = rank_and_suppress([peak], MAX_ZOOM, MAX_ZOOM)
    assert _ranks(out) == [9]


def test_deepest_zoom_ranks_lines_in_their_bucket() -> None:
    ridge = CandidateFeature("mountain_peak", GeometryKind.LINE, LineString([(0, 0), (300, 300)]), {"class": "ridge"})
    peaks = [_peak(100.0, 100.0, 5.0, 1), ridge, _peak(120.0, 100.0, 4.0, 2)]
    out = rank_and_suppress(peaks, MAX_ZOOM, MAX_ZOOM)
    assert out == peaks
    assert _ranks(out) == [1, 2, 3]


def _expected_rank(feature: CandidateFeature, earlier: list[CandidateFeature], radius: float) -> int:
    x, y = feature.geometry.x, feature.geometry.y
    close = [f for f in earlier if math.hypot(f.geometry.x - x, f.geometry.y - y) <= radius]
    return len(close) + 1


@pytest.mark.parametrize("seed", [4, 5, 6, 7])
def test_rank_counts_more_important_survivors_within_radius(seed: int) -> None:
    rng = np.random.default_rng(seed)
    n = 150
    xy = rng.uniform(0, 256, size=(n, 2))
    # distinct importances so "more important" is unambiguous
    importance = rng.permutation(n)
    peaks = [_peak(float(x), float(y), float(i), k) for k, ((x, y), i) in enumerate(zip(xy, importance))]
    cfg = RankConfig()
    out = rank_and_suppress(peaks, ZOOM, MAX_ZOOM, cfg)
    assert out
    for i, feature in enumerate(out):
        rank = _expected_rank(feature, out[:i], cfg.radius_px)
        assert feature.attrs["rank"] == rank
        assert rank - 1 < cfg.max_rank


def test_undecodable_point_is_dropped_and_counted() -> None:
    stats = Stats()
    broken = CandidateFeature("mountain_peak", GeometryKind.POINT, None, {}, 99.0, None, 5)
    wrong = CandidateFeature("mountain_peak", GeometryKind.POINT, LineString([(0, 0), (1, 1)]), {}, 98.0, None, 6)
    out = rank_and_suppress([broken, wrong, _peak(50.0, 50.0, 1.0, 1)], ZOOM, MAX_ZOOM, stats=stats)
    assert _ids(out) == [1]
    assert stats.data_errors()[MOUNTAIN_PEAK_DECODE] == 2


def test_non_points_pass_through_after_points() -> None:
    line = CandidateFeature("mountain_peak", GeometryKind.LINE, LineString([(0, 0), (300, 300)]), {"class": "ridge"})
    out = rank_and_suppress([line] + _triangle(), ZOOM, MAX_ZOOM)
    assert out[-1] is line
    assert "rank" not in line.attrs
    assert _ids(out[:-1]) == [1, 2]


def test_empty_input() -> None:
    assert rank_and_suppress([], ZOOM, MAX_ZOOM) == []


def _random_peaks(seed: int, n: int = 200) -> list[CandidateFeature]:
    rng = np.random.default_rng(seed)
    xy = rng.uniform(0, 256, size=(n, 2))
    importance = rng.integers(0, 50, size=n)
    return [_peak(float(x), float(y), float(i), k) for k, ((x, y), i) in enumerate(zip(xy, importance))]


@pytest.mark.parametrize("seed", [1, 2, 3])
def test_survivors_respect_radii(seed: int) -> None:
    out = rank_and_suppress(_random_peaks(seed), ZOOM, MAX_ZOOM)
    coords = np.array([(f.geometry.x, f.geometry.y) for f in out])
    d = np.hypot(coords[:, None, 0] - coords[None, :, 0], coords[:, None, 1] - coords[None, :, 1])
    np.fill_diagonal(d, np.inf)
    assert d.min() > 5.0
    assert all(1 <= r <= 3 for r in _ranks(out))
    # survivors come out in decreasing importance
    assert [f.importance for f in out] == sorted((f.importance for f in out), reverse=True)


def test_deterministic_and_idempotent() -> None:
    first = rank_and_suppress(_random_peaks(11), ZOOM, MAX_ZOOM)
    second = rank_and_suppress(_random_peaks(11), ZOOM, MAX_ZOOM)
    assert _ids(first) == _ids(second)
    assert _ranks(first) == _ranks(second)
    again = rank_and_suppress(list(first), ZOOM, MAX_ZOOM)
    assert _ids(again) == _ids(first)
    assert _ranks(again) == _ranks(first)

# tests/test_zoom_range.py
"""
Zoom-range assignment: area threshold boundary, clamping, overrides,
peak elevation zooms, way_pixels and max-zoom threshold tables.
"""

from __future__ import annotations

import pytest

from tileprofile.core.config import WORLD_AREA_FOR_50K_SQUARE_METERS
from tileprofile.core.zoom import ZoomFunction, clamp_zoom, min_zoom_for_area, peak_min_zoom, way_pixels
from tileprofile.layers.landcover import min_zoom_for_landcover_area

T = WORLD_AREA_FOR_50K_SQUARE_METERS


def test_area_equal_to_threshold_is_base_zoom() -> None:
    assert min_zoom_for_area(T, T, 0, 24) == 20


@pytest.mark.parametrize("doublings, expected", [(1, 19), (3, 17), (10, 10)])
def test_each_doubling_is_one_zoom_earlier(doublings: int, expected: int) -> None:
    assert min_zoom_for_area(T * 2 ** doublings, T, 0, 24) == expected


def test_just_below_boundary_rounds_down() -> None:
    assert min_zoom_for_area(T * 8 * 0.999, T, 0, 24) == 17
    assert min_zoom_for_area(T * 8 * 1.001, T, 0, 24) == 16


def test_clamped_for_extreme_areas() -> None:
    assert min_zoom_for_area(1e-30, T, 3, 7) == 7
    assert min_zoom_for_area(0.0, T, 3, 7) == 7
    assert min_zoom_for_area(-1.0, T, 3, 7) == 7
    assert min_zoom_for_area(1.0, T, 3, 7) == 3


def test_override_bypasses_formula() -> None:
    assert min_zoom_for_area(1.0, T, 3, 7, subclass="glacier", overrides={"glacier": 7}) == 7
    assert min_zoom_for_area(1.0, T, 3, 7, subclass="wood", overrides={"glacier": 7}) == 3


def test_landcover_area_zooms() -> None:
    assert min_zoom_for_landcover_area(1e-12, "wood") == 7
    assert min_zoom_for_landcover_area(1.0, "glacier") == 7
    assert min_zoom_for_landcover_area(T * 2 ** 15, "wood") == 5


def test_clamp_zoom() -> None:
    assert clamp_zoom(-3, 0, 14) == 0
    assert clamp_zoom(20, 0, 14) == 14
    assert clamp_zoom(9, 0, 14) == 9


@pytest.mark.parametrize("meters, expected", [(0, 10), (999, 10), (1000, 9), (4500, 6), (8848, 2), (12000, 2)])
def test_peak_min_zoom(meters: int, expected: int) -> None:
    assert peak_min_zoom(meters) == expected


def test_way_pixels() -> None:
    assert way_pixels(None, 10) is None
    assert way_pixels(0.0, 10) is None
    assert way_pixels(1.0, 1) == 256 * 256
    assert way_pixels(1.0, 2) == 512 * 512


def test_zoom_function_from_max_zoom_thresholds() -> None:
    fn = ZoomFunction.from_max_zoom_thresholds({13: 4, 7: 2, 6: 1})
    assert fn(0) == 1
    assert fn(6) == 1
    assert fn(7) == 2
    assert fn(10) == 4
    assert fn(13) == 4
    assert fn(14) is None

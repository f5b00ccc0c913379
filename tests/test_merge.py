# tests/test_merge.py
"""Tests for tileprofile.core.merge primitives."""

from __future__ import annotations

import pytest
from shapely.geometry import LineString, Point, Polygon, box

from tileprofile.core.merge import (
    extract_polygons,
    merge_line_strings,
    merge_multipolygon,
    merge_nearby_polygons,
    merge_overlapping_polygons,
)
from tileprofile.core.types import CandidateFeature, GeometryKind


def _poly(geom, **attrs) -> CandidateFeature:
    return CandidateFeature("landuse", GeometryKind.POLYGON, geom, dict(attrs))


def _line(coords, **attrs) -> CandidateFeature:
    return CandidateFeature("route", GeometryKind.LINE, LineString(coords), dict(attrs))


def test_extract_polygons_repairs_bowtie() -> None:
    bowtie = Polygon([(0, 0), (2, 2), (2, 0), (0, 2)])
    assert not bowtie.is_valid
    parts = extract_polygons(bowtie)
    assert parts
    assert all(p.is_valid for p in parts)


def test_overlapping_same_attrs_union() -> None:
    out = merge_overlapping_polygons([_poly(box(0, 0, 10, 10), c="a"), _poly(box(5, 0, 15, 10), c="a")], 0)
    assert len(out) == 1
    assert out[0].geometry.area == pytest.approx(150.0)


def test_overlapping_different_attrs_kept_apart() -> None:
    out = merge_overlapping_polygons([_poly(box(0, 0, 10, 10), c="a"), _poly(box(5, 0, 15, 10), c="b")], 0)
    assert len(out) == 2


def test_overlapping_leaves_points_alone() -> None:
    point = CandidateFeature("landuse", GeometryKind.POINT, Point(1, 1), {"c": "a"})
    out = merge_overlapping_polygons([point, _poly(box(0, 0, 10, 10), c="a")], 0)
    assert point in out
    assert len(out) == 2


def test_nearby_polygons_close_gap() -> None:
    a = _poly(box(0, 0, 10, 10), c="residential")
    b = _poly(box(10.05, 0, 20, 10), c="residential")
    out = merge_nearby_polygons([a, b], 1, 1, 0.1, 0.1)
    assert len(out) == 1
    assert out[0].geometry.geom_type == "Polygon"


def test_nearby_polygons_far_apart_stay_separate_parts() -> None:
    a = _poly(box(0, 0, 10, 10), c="residential")
    b = _poly(box(30, 0, 40, 10), c="residential")
    out = merge_nearby_polygons([a, b], 1, 1, 0.1, 0.1)
    assert len(out) == 1
    assert out[0].geometry.geom_type == "MultiPolygon"
    assert len(out[0].geometry.geoms) == 2


def test_nearby_polygons_buffer_does_not_widen_min_dist() -> None:
    a = _poly(box(0, 0, 10, 10), c="residential")
    b = _poly(box(10.5, 0, 20, 10), c="residential")
    # a 1 px buffer would bridge the 0.5 px gap, but the gap exceeds min_dist
    apart = merge_nearby_polygons([a, b], 1, 1, 0.1, 1.0)
    assert len(apart) == 1
    assert apart[0].geometry.geom_type == "MultiPolygon"
    assert len(apart[0].geometry.geoms) == 2
    joined = merge_nearby_polygons([a, b], 1, 1, 0.5, 1.0)
    assert joined[0].geometry.geom_type == "Polygon"
    assert joined[0].geometry.area == pytest.approx(200.0, rel=0.01)


def test_nearby_polygons_drop_small_parts() -> None:
    out = merge_nearby_polygons([_poly(box(0, 0, 0.5, 0.5), c="x")], 1, 1, 0.1, 0.1)
    assert out == []


def test_multipolygon_coalesces_without_union() -> None:
    out = merge_multipolygon([_poly(box(0, 0, 10, 10), c="a"), _poly(box(5, 0, 15, 10), c="a"), _poly(box(0, 0, 1, 1), c="b")])
    assert len(out) == 2
    merged = next(f for f in out if f.attrs["c"] == "a")
    assert merged.geometry.geom_type == "MultiPolygon"
    assert len(merged.geometry.geoms) == 2


def test_line_strings_join_end_to_end() -> None:
    out = merge_line_strings(
        [_line([(0, 0), (50, 0)], osmid=1), _line([(50, 0), (100, 0)], osmid=1)],
        lambda attrs: 0.0,
        0.0,
        4,
    )
    assert len(out) == 1
    assert out[0].geometry.geom_type == "LineString"
    assert out[0].geometry.length == pytest.approx(100.0)


def test_line_strings_clip_to_buffer_and_length_limit() -> None:
    out = merge_line_strings(
        [_line([(-100, 10), (300, 10)], osmid=1), _line([(0, 50), (2, 50)], osmid=2)],
        lambda attrs: 5.0,
        0.0,
        4,
    )
    assert len(out) == 1
    assert out[0].attrs["osmid"] == 1
    minx, _, maxx, _ = out[0].geometry.bounds
    assert minx == pytest.approx(-4)
    assert maxx == pytest.approx(260)

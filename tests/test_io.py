# tests/test_io.py
"""GeoJSON loading: tag layouts, projection, relations, skipped features and input errors."""

from __future__ import annotations

import json
from pathlib import Path

import pytest

from tileprofile.core.geometry import lonlat_to_world
from tileprofile.core.io import load_source, record_from_feature
from tileprofile.core.types import GeometryKind


def _write(tmp_path: Path, data: dict, name: str = "src.geojson") -> Path:
    path = tmp_path / name
    path.write_text(json.dumps(data), encoding="utf-8")
    return path


def test_record_tags_from_tags_dict() -> None:
    feature = {
        "type": "Feature",
        "properties": {"id": 42, "tags": {"natural": "peak", "ele": "3000"}, "source": "osm"},
        "geometry": {"type": "Point", "coordinates": [7.0, 46.0]},
    }
    record = record_from_feature(feature, fallback_id=0)
    assert record.id == 42
    assert record.tags == {"natural": "peak", "ele": "3000"}
    assert record.kind is GeometryKind.POINT
    assert (record.geometry.x, record.geometry.y) == pytest.approx(lonlat_to_world(7.0, 46.0))


def test_record_tags_from_flat_properties() -> None:
    feature = {
        "type": "Feature",
        "properties": {"natural": "wood", "source": "natural_earth", "table": "ne_50m_glaciated_areas"},
        "geometry": {"type": "Polygon", "coordinates": [[[7, 46], [7.1, 46], [7.1, 46.1], [7, 46]]]},
    }
    record = record_from_feature(feature, fallback_id=5)
    assert record.id == 5
    assert record.tags == {"natural": "wood"}
    assert record.kind is GeometryKind.POLYGON
    assert record.source == "natural_earth"
    assert record.table == "ne_50m_glaciated_areas"


def test_record_without_geometry_is_none() -> None:
    assert record_from_feature({"type": "Feature", "properties": {}, "geometry": None}, 0) is None
    collection = {"type": "Feature", "properties": {}, "geometry": {"type": "GeometryCollection", "geometries": []}}
    assert record_from_feature(collection, 0) is None


def test_load_source_records_and_relations(tmp_path: Path) -> None:
    data = {
        "type": "FeatureCollection",
        "features": [
            {"type": "Feature", "properties": {"id": 1, "highway": "path"},
             "geometry": {"type": "LineString", "coordinates": [[7, 46], [7.01, 46.01]]}},
            {"type": "Feature", "properties": {"id": 2}, "geometry": None},
            {"type": "Feature", "properties": {"id": "not-a-number"},
             "geometry": {"type": "Point", "coordinates": [7, 46]}},
        ],
        "relations": [
            {"id": 100, "tags": {"type": "route", "route": "hiking"}, "members": [1, "3"]},
        ],
    }
    records, relations = load_source(_write(tmp_path, data))
    assert [r.id for r in records] == [1]
    assert records[0].kind is GeometryKind.LINE
    (relation,) = relations
    assert relation.id == 100
    assert relation.member_ids == [1, 3]
    assert relation.has_tag("route", "hiking")


def test_load_source_relative_to_repo_root(tmp_path: Path) -> None:
    _write(tmp_path, {"type": "FeatureCollection", "features": []}, name="empty.geojson")
    records, relations = load_source("empty.geojson", repo_root=tmp_path)
    assert records == []
    assert relations == []


def test_load_source_missing_file(tmp_path: Path) -> None:
    with pytest.raises(FileNotFoundError):
        load_source(tmp_path / "nope.geojson")


def test_load_source_rejects_non_collection(tmp_path: Path) -> None:
    path = _write(tmp_path, {"type": "Feature", "properties": {}, "geometry": None})
    with pytest.raises(ValueError):
        load_source(path)

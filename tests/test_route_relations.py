# tests/test_route_relations.py
"""Route relations: preprocessing, member way emission, concurrent aggregate table, post_process."""

from __future__ import annotations

from concurrent.futures import ThreadPoolExecutor

import pytest
from shapely.geometry import LineString, Point

from tileprofile.core.config import Arguments, TileConfig
from tileprofile.core.engine import FeatureCollector
from tileprofile.core.errors import Stats
from tileprofile.core.relations import RouteRelationTable
from tileprofile.core.types import CandidateFeature, GeometryKind, OsmRelation, SourceRecord
from tileprofile.layers.route import Route, RouteRelation, format_extent, network_type, route_min_zoom

HIKING_TAGS = {
    "type": "route",
    "route": "hiking",
    "network": "rwn",
    "alt_name": "TMR",
    "osmc:ref": "T1",
    "ascent": "1,250 m",
    "osmc:symbol": "red:red:white_bar",
}


def _route() -> Route:
    return Route(TileConfig(), Arguments(), Stats())


def _way(rid: int, coords, relations) -> SourceRecord:
    return SourceRecord(id=rid, tags={"highway": "path"}, kind=GeometryKind.LINE, geometry=LineString(coords), relations=relations)


def test_network_type_and_min_zoom() -> None:
    assert network_type("iwn") == 1
    assert network_type("ncn") == 2
    assert network_type("rwn") == 3
    assert network_type("lwn") == 4
    assert network_type(None) == 4
    assert route_min_zoom(1, True) == 5
    assert route_min_zoom(1, False) == 6
    assert route_min_zoom(2, False) == 8
    assert route_min_zoom(3, True) == 9
    assert route_min_zoom(4, True) == 10


def test_preprocess_route_relation() -> None:
    (info,) = _route().preprocess_osm_relation(OsmRelation(9, HIKING_TAGS, [1, 2]))
    assert isinstance(info, RouteRelation)
    assert info.id == 9
    assert info.name == "TMR"
    assert info.ref == "T1"
    assert info.network_type == 3
    assert info.ascent == 1250.0
    assert info.distance is None
    assert info.symbol == "red:red:white_bar"


def test_preprocess_converts_length_units() -> None:
    tags = {"type": "route", "route": "bicycle", "distance": "12 km", "ascent": "3280 ft", "descent": "1.5 mi"}
    (info,) = _route().preprocess_osm_relation(OsmRelation(3, tags, []))
    assert info.distance == pytest.approx(12_000.0)
    assert info.ascent == pytest.approx(999.744)
    assert info.descent == pytest.approx(2414.016)


@pytest.mark.parametrize(
    "tags",
    [
        {"type": "route", "route": "bus"},
        {"type": "multipolygon", "route": "hiking"},
        {"route": "hiking"},
    ],
)
def test_preprocess_ignores_other_relations(tags: dict) -> None:
    assert _route().preprocess_osm_relation(OsmRelation(1, tags, [])) is None


def test_member_way_emits_line_and_accumulates() -> None:
    layer = _route()
    (info,) = layer.preprocess_osm_relation(OsmRelation(9, HIKING_TAGS, [1]))
    record = _way(1, [(0.5, 0.5), (0.5, 0.5001)], [info, info])
    collector = FeatureCollector(record)
    layer.process(record, collector)
    (draft,) = collector.drafts
    assert draft.attrs == {
        "ref": "T1",
        "osmid": 9,
        "network": 3,
        "ascent": 1250,
        "symbol": "red:red:white_bar",
        "class": "hiking",
        "name": "TMR",
    }
    assert draft.min_zoom == 9
    data = layer.relations.get(9)
    assert data is not None
    assert data.computed_distance == pytest.approx(0.0001 * 40075 / 2)
    assert data.bounds == pytest.approx((0.5, 0.5, 0.5, 0.5001))


def test_way_without_relations_or_not_a_line_emits_nothing() -> None:
    layer = _route()
    info = RouteRelation(id=3, route="foot")
    record = _way(1, [(0.1, 0.1), (0.2, 0.2)], [])
    collector = FeatureCollector(record)
    layer.process(record, collector)
    point = SourceRecord(id=2, tags={}, kind=GeometryKind.POINT, geometry=Point(0.1, 0.1), relations=[info])
    layer.process(point, collector)
    assert collector.drafts == []


def test_relation_distance_tag_is_not_recomputed() -> None:
    layer = _route()
    info = RouteRelation(id=4, route="bicycle", distance=42.4)
    record = _way(1, [(0.1, 0.1), (0.2, 0.2)], [info])
    collector = FeatureCollector(record)
    layer.process(record, collector)
    assert collector.drafts[0].attrs["distance"] == 42
    assert layer.relations.get(4).computed_distance == 0.0


def test_table_is_safe_under_concurrent_writers() -> None:
    table = RouteRelationTable(shards=4)

    def add(i: int) -> None:
        for _ in range(500):
            table.add_segment(i % 3, (i, -i, i + 1, -i + 1), 1.0)

    with ThreadPoolExecutor(max_workers=8) as pool:
        list(pool.map(add, range(24)))
    assert len(table) == 3
    for rel in range(3):
        data = table.get(rel)
        assert data.computed_distance == pytest.approx(8 * 500)
    assert table.get(0).bounds == (0, -21, 22, 1)
    table.clear()
    assert len(table) == 0
    assert table.get(0) is None


def test_post_process_fills_extent_and_distance_then_merges() -> None:
    layer = _route()
    layer.relations.add_segment(9, (0.5, 0.25, 0.75, 0.5), 12.6)
    attrs = {"osmid": 9, "class": "hiking"}
    items = [
        CandidateFeature("route", GeometryKind.LINE, LineString([(0, 10), (100, 10)]), dict(attrs)),
        CandidateFeature("route", GeometryKind.LINE, LineString([(100, 10), (200, 10)]), dict(attrs)),
        CandidateFeature("route", GeometryKind.LINE, LineString([(0, 50), (100, 50)]), {"osmid": 77, "class": "foot"}),
    ]
    out = layer.post_process(10, items)
    assert len(out) == 2
    merged = next(f for f in out if f.attrs["osmid"] == 9)
    assert merged.geometry.length == pytest.approx(200.0)
    assert merged.attrs["distance"] == 13
    assert merged.attrs["extent"] == format_extent((0.5, 0.25, 0.75, 0.5))
    assert merged.attrs["extent"].startswith("0.000,0.000,90.000,")
    other = next(f for f in out if f.attrs["osmid"] == 77)
    assert "extent" not in other.attrs


def test_release_clears_table() -> None:
    layer = _route()
    layer.relations.add_segment(1, None, 1.0)
    layer.release()
    assert len(layer.relations) == 0

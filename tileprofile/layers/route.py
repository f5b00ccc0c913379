# tileprofile/layers/route.py
"""
route layer: hiking, foot and bicycle route relations drawn along their member ways.

Relations are read once up front into RouteRelation infos. While member ways are
processed (possibly on many threads) each one folds its length and extent into
the shared RouteRelationTable; post_process() reads the table back to fill in
the whole-route extent and a computed distance when the relation had none.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass

from tileprofile.core.config import WORLD_CIRCUMFERENCE_KM, Arguments, TileConfig
from tileprofile.core.engine import FeatureCollector
from tileprofile.core.errors import ROUTE_DECODE, GeometryError, Stats
from tileprofile.core.geometry import world_bounds_to_lonlat
from tileprofile.core.merge import merge_line_strings
from tileprofile.core.relations import RouteRelationTable
from tileprofile.core.types import (
    CandidateFeature,
    GeometryKind,
    OsmRelation,
    RelationInfo,
    SourceRecord,
)
from tileprofile.layers.base import Layer
from tileprofile.layers.util import coalesce, null_if_empty, null_if_int, parse_meters

logger = logging.getLogger(__name__)

LAYER_NAME = "route"
BUFFER_SIZE = 4

NETWORK_TYPES = {"iwn": 1, "icn": 1, "nwn": 2, "ncn": 2, "rwn": 3, "rcn": 3}
DEFAULT_NETWORK_TYPE = 4


@dataclass(frozen=True)
class RouteRelation(RelationInfo):
    """What member ways need to know about their route relation."""
    type: str | None = None
    name: str | None = None
    route: str | None = None
    ref: str | None = None
    network_type: int = DEFAULT_NETWORK_TYPE
    ascent: float | None = None
    descent: float | None = None
    distance: float | None = None
    symbol: str | None = None


def network_type(network: str | None) -> int:
    """1 international, 2 national, 3 regional, 4 anything else."""
    return NETWORK_TYPES.get(network or "", DEFAULT_NETWORK_TYPE)


def route_min_zoom(net_type: int, has_name: bool) -> int:
    if net_type == 1:
        return 5 if has_name else 6
    if net_type == 2:
        return 8
    if net_type == 3:
        return 9
    return 10


def _rounded(value: float | None) -> int | None:
    if value is None:
        return None
    return null_if_int(int(round(value)), 0)


def format_extent(bounds: tuple[float, float, float, float]) -> str:
    """'west,south,east,north' in degrees with 3 decimals."""
    return ",".join(f"{v:.3f}" for v in world_bounds_to_lonlat(bounds))


def route_relations(record: SourceRecord) -> list[RouteRelation]:
    """Route relations of a record, duplicates removed, first-seen order."""
    out: list[RouteRelation] = []
    for info in record.relations:
        if isinstance(info, RouteRelation) and info not in out:
            out.append(info)
    return out


class Route(Layer):
    name = LAYER_NAME
    buffer_size = BUFFER_SIZE

    def __init__(self, config: TileConfig, args: Arguments, stats: Stats) -> None:
        super().__init__(config, args, stats)
        self.relations = RouteRelationTable()

    def preprocess_osm_relation(self, relation: OsmRelation) -> list[RelationInfo] | None:
        if not (
            relation.has_tag("type", "route", "superroute")
            and relation.has_tag("route", "bicycle", "hiking", "foot")
        ):
            return None
        tags = relation.tags
        return [
            RouteRelation(
                id=relation.id,
                type=relation.get_tag("type"),
                name=coalesce(null_if_empty(tags.get("name")), null_if_empty(tags.get("alt_name"))),
                route=relation.get_tag("route"),
                ref=coalesce(null_if_empty(tags.get("ref")), null_if_empty(tags.get("osmc:ref"))),
                network_type=network_type(relation.get_tag("network")),
                ascent=parse_meters(tags.get("ascent")),
                descent=parse_meters(tags.get("descent")),
                distance=parse_meters(tags.get("distance")),
                symbol=relation.get_tag("osmc:symbol"),
            )
        ]

    def process(self, record: SourceRecord, features: FeatureCollector) -> None:
        # every OSM line, whatever table it came from
        if record.source != "osm" or record.kind is not GeometryKind.LINE:
            return
        for relation in route_relations(record):
            try:
                distance = None
                if relation.distance is None:
                    distance = record.world_length() * WORLD_CIRCUMFERENCE_KM / 2.0
                self.relations.add_segment(relation.id, record.geometry.bounds, distance)
            except GeometryError as e:
                e.log(self.stats, ROUTE_DECODE, f"Unable to get route length for {record.id}")
            (
                features.line(LAYER_NAME)
                .set_buffer_pixels(BUFFER_SIZE)
                .set_attr("ref", relation.ref)
                .set_attr("osmid", relation.id)
                .set_attr("network", relation.network_type)
                .set_attr("ascent", _rounded(relation.ascent))
                .set_attr("descent", _rounded(relation.descent))
                .set_attr("distance", _rounded(relation.distance))
                .set_attr("symbol", null_if_empty(relation.symbol))
                .set_attr("class", relation.route)
                .set_attr("name", relation.name)
                .set_min_zoom(route_min_zoom(relation.network_type, relation.name is not None))
                .set_sort_key(relation.network_type)
                .set_min_pixel_size(0)
            )

    def post_process(self, zoom: int, items: list[CandidateFeature]) -> list[CandidateFeature]:
        for item in items:
            data = self.relations.get(item.attrs.get("osmid"))
            if data is None:
                continue
            if data.has_extent:
                item.attrs["extent"] = format_extent(data.bounds)
            if item.attrs.get("distance") is None:
                distance = _rounded(data.computed_distance)
                if distance is not None:
                    item.attrs["distance"] = distance
        tolerance = self.config.tolerance(zoom) * 0.5
        return merge_line_strings(items, lambda attrs: 0.0, tolerance, BUFFER_SIZE)

    def release(self) -> None:
        if len(self.relations):
            logger.debug("route: releasing %d relation aggregates", len(self.relations))
        self.relations.clear()

# tileprofile/layers/landuse.py
"""
landuse layer: man-made land use polygons like cemeteries, zoos and hospitals.

Low zooms use Natural Earth urban areas; OSM polygons start at z6 for
residential-like classes and z9 otherwise. post_process() merges nearby
polygons up to z12 and coalesces multipolygons above that.
"""

from __future__ import annotations

from tileprofile.core.classify import Rule, coalesce_tags, first_match, tag_in
from tileprofile.core.engine import FeatureCollector, SimplifyMethod
from tileprofile.core.merge import merge_multipolygon, merge_nearby_polygons
from tileprofile.core.types import CandidateFeature, SourceRecord
from tileprofile.core.zoom import ZoomFunction
from tileprofile.layers.base import Layer

LAYER_NAME = "landuse"
BUFFER_SIZE = 4

CLASS_RESIDENTIAL = "residential"
CLASS_CEMETERY = "cemetery"

CLASS_KEYS = ("landuse", "amenity", "leisure", "tourism", "place", "waterway", "highway")

# OSM key/value pairs that make a polygon a landuse feature
ACCEPT_RULES = [
    Rule(
        tag_in(
            "landuse", "railway", "cemetery", "military", "quarry", "residential",
            "commercial", "industrial", "garages", "retail",
        ),
        "landuse",
    ),
    Rule(
        tag_in(
            "amenity", "bus_station", "school", "university", "kindergarten", "college",
            "library", "hospital", "grave_yard",
        ),
        "amenity",
    ),
    Rule(tag_in("leisure", "stadium", "pitch", "playground", "track"), "leisure"),
    Rule(tag_in("tourism", "theme_park", "zoo"), "tourism"),
    Rule(tag_in("place", "suburb", "quarter", "neighbourhood"), "place"),
    Rule(tag_in("waterway", "dam"), "waterway"),
    Rule(tag_in("highway", "pedestrian"), "highway"),
]

CLASS_ALIASES = {"grave_yard": CLASS_CEMETERY}

Z6_CLASSES = frozenset({CLASS_RESIDENTIAL, "suburb", "quarter", "neighbourhood"})

MIN_PIXEL_SIZE_THRESHOLDS = ZoomFunction.from_max_zoom_thresholds({13: 4, 7: 2, 6: 1})


def landuse_class(tags) -> str | None:
    """First non-empty of the class keys, for polygons carrying an accepted tag."""
    if first_match(ACCEPT_RULES, tags) is None:
        return None
    clazz = coalesce_tags(tags, CLASS_KEYS)
    if clazz is None:
        return None
    return CLASS_ALIASES.get(clazz, clazz)


def _scalerank(value) -> float | None:
    try:
        return float(value)
    except (TypeError, ValueError):
        return None


class Landuse(Layer):
    name = LAYER_NAME
    buffer_size = BUFFER_SIZE

    def process_natural_earth(self, table: str, record: SourceRecord, features: FeatureCollector) -> None:
        if table != "ne_50m_urban_areas":
            return
        scalerank = _scalerank(record.tags.get("scalerank"))
        if scalerank is not None and scalerank <= 2:
            (
                features.polygon(LAYER_NAME)
                .set_buffer_pixels(BUFFER_SIZE)
                .set_attr("class", CLASS_RESIDENTIAL)
                .set_zoom_range(4, 5)
            )

    def process_polygon(self, record: SourceRecord, features: FeatureCollector) -> None:
        clazz = landuse_class(record.tags)
        if clazz is None:
            return
        feature = (
            features.polygon(LAYER_NAME)
            .set_buffer_pixels(BUFFER_SIZE)
            .set_attr("class", clazz)
            .set_simplify_method(SimplifyMethod.VISVALINGAM_WHYATT)
            .set_min_zoom(6 if clazz in Z6_CLASSES else 9)
        )
        if clazz == CLASS_RESIDENTIAL:
            feature.set_min_pixel_size(0.1).set_pixel_tolerance(0.25)
        else:
            feature.set_min_pixel_size_overrides(MIN_PIXEL_SIZE_THRESHOLDS)

    def post_process(self, zoom: int, items: list[CandidateFeature]) -> list[CandidateFeature]:
        if zoom <= 12:
            return merge_nearby_polygons(items, 1, 1, 0.1, 0.1)
        # many small polygons make z13-14 tiles heavy
        return merge_multipolygon(items)

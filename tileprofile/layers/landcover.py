# tileprofile/layers/landcover.py
"""
landcover layer: natural land cover polygons like ice, sand and forest.

Large ice areas come from Natural Earth; everything else comes from OSM at higher
zooms. post_process() merges polygons into larger connected areas grouped by the
number of points the source polygon had; process() passes that count through the
temporary "_numpoints" attribute because post_process() only sees one tile.
"""

from __future__ import annotations

from tileprofile.core.classify import Classifier, Rule, subclass_in, tag_in, tag_value
from tileprofile.core.config import WORLD_AREA_FOR_50K_SQUARE_METERS
from tileprofile.core.declutter import group_and_merge
from tileprofile.core.engine import FeatureCollector, SimplifyMethod
from tileprofile.core.errors import LANDCOVER_POLY, GeometryError
from tileprofile.core.types import CandidateFeature, SourceRecord
from tileprofile.core.zoom import min_zoom_for_area
from tileprofile.layers.base import Layer

LAYER_NAME = "landcover"
BUFFER_SIZE = 4

TEMP_NUM_POINTS_ATTR = "_numpoints"

SUBCLASS_GLACIER = "glacier"
MERGEABLE_CLASSES = frozenset({"farmland", "wood", "grass"})

WETLAND_VALUES = (
    "bog", "swamp", "wet_meadow", "marsh", "reedbed", "saltern", "tidalflat", "saltmarsh", "mangrove",
)
NATURAL_VALUES = (
    "wood", "wetland", "fell", "grassland", "heath", "scrub", "shrubbery", "tundra",
    "glacier", "bare_rock", "scree", "beach", "sand", "dune",
)
LANDUSE_VALUES = (
    "allotments", "farm", "farmland", "orchard", "plant_nursery", "vineyard",
    "grass", "grassland", "meadow", "forest", "village_green", "recreation_ground",
)
LEISURE_VALUES = ("park", "garden", "golf_course")

SUBCLASS_RULES = [
    Rule(tag_in("wetland", *WETLAND_VALUES), tag_value("wetland")),
    Rule(tag_in("natural", *NATURAL_VALUES), tag_value("natural")),
    Rule(tag_in("landuse", *LANDUSE_VALUES), tag_value("landuse")),
    Rule(tag_in("leisure", *LEISURE_VALUES), tag_value("leisure")),
]

CLASS_RULES = [
    Rule(subclass_in("farmland", "farm", "orchard", "vineyard", "plant_nursery"), "farmland"),
    Rule(subclass_in("glacier", "ice_shelf"), "ice"),
    Rule(subclass_in("wood", "forest"), "wood"),
    Rule(subclass_in("bare_rock", "scree"), "rock"),
    Rule(
        subclass_in(
            "fell", "flowerbed", "grassland", "heath", "scrub", "shrubbery", "tundra", "grass",
            "meadow", "allotments", "park", "village_green", "recreation_ground", "garden", "golf_course",
        ),
        "grass",
    ),
    Rule(
        subclass_in(
            "wetland", "bog", "swamp", "wet_meadow", "marsh", "reedbed", "saltern", "tidalflat",
            "saltmarsh", "mangrove",
        ),
        "wetland",
    ),
    Rule(subclass_in("beach", "sand", "dune"), "sand"),
]

CLASSIFIER = Classifier(SUBCLASS_RULES, CLASS_RULES)

# (subclass, min zoom, max zoom) per Natural Earth table
NATURAL_EARTH_TABLES: dict[str, tuple[str, int, int]] = {
    "ne_110m_glaciated_areas": (SUBCLASS_GLACIER, 0, 1),
    "ne_50m_glaciated_areas": (SUBCLASS_GLACIER, 2, 4),
    "ne_10m_glaciated_areas": (SUBCLASS_GLACIER, 5, 6),
    "ne_50m_antarctic_ice_shelves_polys": ("ice_shelf", 2, 4),
    "ne_10m_antarctic_ice_shelves_polys": ("ice_shelf", 5, 6),
}

MIN_ZOOM_OVERRIDES = {SUBCLASS_GLACIER: 7}
AREA_MIN_ZOOM = 3
AREA_MAX_ZOOM = 7

def classify(tags) -> tuple[str | None, str | None]:
    """(class, subclass) for OSM landcover tags."""
    return CLASSIFIER.classify(tags)

def class_from_subclass(subclass: str | None) -> str | None:
    return CLASSIFIER.class_of_subclass(subclass)

def min_zoom_for_landcover_area(area: float, subclass: str | None) -> int:
    """Glaciers at z7; otherwise area > 50 000 m² * 2^(20 - z), clamped to [3, 7]."""
    return min_zoom_for_area(
        area,
        WORLD_AREA_FOR_50K_SQUARE_METERS,
        AREA_MIN_ZOOM,
        AREA_MAX_ZOOM,
        subclass=subclass,
        overrides=MIN_ZOOM_OVERRIDES,
    )

class Landcover(Layer):
    name = LAYER_NAME
    buffer_size = BUFFER_SIZE

    def process_natural_earth(self, table: str, record: SourceRecord, features: FeatureCollector) -> None:
        info = NATURAL_EARTH_TABLES.get(table)
        if info is None:
            return
        subclass, min_zoom, max_zoom = info
        clazz = class_from_subclass(subclass)
        if clazz is None:
            return
        (
            features.polygon(LAYER_NAME)
            .set_buffer_pixels(BUFFER_SIZE)
            .set_attr("class", clazz)
            .set_attr("subclass", CLASSIFIER.emitted_subclass(subclass))
            .set_zoom_range(min_zoom, max_zoom)
        )

    def process_polygon(self, record: SourceRecord, features: FeatureCollector) -> None:
        clazz, subclass = classify(record.tags)
        if clazz is None:
            return
        try:
            area = record.world_area()
            (
                features.polygon(LAYER_NAME)
                .set_buffer_pixels(BUFFER_SIZE)
                .set_simplify_method(SimplifyMethod.VISVALINGAM_WHYATT)
                .set_pixel_tolerance_factor(2.5)
                # default is 0.1, this helps reduce size of some heavy z7-10 tiles
                .set_pixel_tolerance_below_zoom(10, 0.25)
                .set_min_pixel_size_factor(1.8)
                .set_attr("class", clazz)
                .set_attr("subclass", subclass)
                .set_num_points_attr(TEMP_NUM_POINTS_ATTR)
                .set_min_zoom(min_zoom_for_landcover_area(area, subclass))
            )
        except GeometryError as e:
            e.log(self.stats, LANDCOVER_POLY, f"Unable to get area for OSM landcover polygon {record.id}")

    def process_line(self, record: SourceRecord, features: FeatureCollector) -> None:
        clazz, subclass = classify(record.tags)
        if clazz is None:
            return
        (
            features.line(LAYER_NAME)
            .set_min_zoom(14)
            .set_attr("class", clazz)
            .set_attr("subclass", subclass)
        )

    def post_process(self, zoom: int, items: list[CandidateFeature]) -> list[CandidateFeature]:
        return group_and_merge(items, zoom, MERGEABLE_CLASSES, TEMP_NUM_POINTS_ATTR)

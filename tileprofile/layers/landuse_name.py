# tileprofile/layers/landuse_name.py
"""landuse_name layer: label points for named quarries, military areas, railway yards and similar."""

from __future__ import annotations

from functools import partial

from tileprofile.core.config import WORLD_AREA_FOR_70K_SQUARE_METERS
from tileprofile.core.engine import FeatureCollector
from tileprofile.core.errors import LANDUSE_POLY, GeometryError
from tileprofile.core.types import SourceRecord
from tileprofile.core.zoom import min_zoom_for_area, way_pixels
from tileprofile.layers.base import Layer
from tileprofile.layers.landuse import landuse_class
from tileprofile.layers.util import name_attrs

LAYER_NAME = "landuse_name"
BUFFER_SIZE = 64

NAMED_CLASSES = frozenset({
    "quarry", "military", "railway", "commercial", "industrial", "retail", "track", "playground", "dam",
})


class LanduseName(Layer):
    name = LAYER_NAME
    buffer_size = BUFFER_SIZE

    def process_polygon(self, record: SourceRecord, features: FeatureCollector) -> None:
        clazz = landuse_class(record.tags)
        if clazz not in NAMED_CLASSES or not record.has_tag("name"):
            return
        try:
            area = record.world_area()
            (
                features.point_on_surface(LAYER_NAME)
                .set_buffer_pixels(BUFFER_SIZE)
                .set_attr("class", clazz)
                .set_attr("way_pixels", partial(way_pixels, area))
                .put_attrs(name_attrs(record.tags))
                .set_min_zoom(min_zoom_for_area(area, WORLD_AREA_FOR_70K_SQUARE_METERS, 5, 14))
            )
        except GeometryError as e:
            e.log(self.stats, LANDUSE_POLY, f"Unable to get area for OSM landuse polygon {record.id}")

# tileprofile/layers/landcover_name.py
"""landcover_name layer: label points for named landcover polygons."""

from __future__ import annotations

from functools import partial

from tileprofile.core.config import WORLD_AREA_FOR_50K_SQUARE_METERS
from tileprofile.core.engine import FeatureCollector
from tileprofile.core.errors import LANDCOVER_POLY, GeometryError
from tileprofile.core.types import SourceRecord
from tileprofile.core.zoom import min_zoom_for_area, way_pixels
from tileprofile.layers import landcover
from tileprofile.layers.base import Layer
from tileprofile.layers.util import name_attrs

LAYER_NAME = "landcover_name"
BUFFER_SIZE = 64

IGNORED_SUBCLASSES = frozenset({
    "recreation_ground", "garden", "golf_course", "allotments", "plant_nursery",
    "farm", "farmland", "orchard", "vineyard", "village_green",
})


class LandcoverName(Layer):
    name = LAYER_NAME
    buffer_size = BUFFER_SIZE

    def process_polygon(self, record: SourceRecord, features: FeatureCollector) -> None:
        if not record.has_tag("name"):
            return
        clazz, subclass = landcover.classify(record.tags)
        if clazz is None or subclass in IGNORED_SUBCLASSES:
            return
        try:
            area = record.world_area()
            (
                features.point_on_surface(LAYER_NAME)
                .set_buffer_pixels(BUFFER_SIZE)
                .set_attr("class", clazz)
                .set_attr("subclass", None if subclass == clazz else subclass)
                .set_attr("way_pixels", partial(way_pixels, area))
                .put_attrs(name_attrs(record.tags))
                .set_min_zoom(min_zoom_for_area(area, WORLD_AREA_FOR_50K_SQUARE_METERS, 6, 14))
            )
        except GeometryError as e:
            e.log(self.stats, LANDCOVER_POLY, f"Unable to get area for OSM landcover polygon {record.id}")

# tileprofile/core/geometry.py
"""
Geometry helpers: world <-> lon/lat projection, world -> tile pixels,
world area/length, point decoding, pixel distance, tile buffer checks.
World coordinates are Web Mercator normalized to [0, 1] with y growing south.
"""

from __future__ import annotations

import math

import numpy as np
import shapely
from shapely.geometry import MultiPolygon, Point, Polygon, box
from shapely.geometry.base import BaseGeometry

from tileprofile.core.config import TILE_EXTENT_PX
from tileprofile.core.errors import GeometryError
from tileprofile.core.types import CandidateFeature, GeometryKind

MAX_LATITUDE: float = 85.0511287798


def lonlat_to_world(lon: float, lat: float) -> tuple[float, float]:
    """Project WGS84 lon/lat (degrees) to normalized world coordinates."""
    lat = max(-MAX_LATITUDE, min(MAX_LATITUDE, lat))
    x = (lon + 180.0) / 360.0
    sin_lat = math.sin(math.radians(lat))
    y = 0.5 - math.log((1 + sin_lat) / (1 - sin_lat)) / (4 * math.pi)
    return x, y


def world_to_lonlat(x: float, y: float) -> tuple[float, float]:
    """Inverse of lonlat_to_world."""
    lon = x * 360.0 - 180.0
    lat = math.degrees(math.atan(math.sinh(math.pi * (1 - 2 * y))))
    return lon, lat


def project_lonlat(geom: BaseGeometry) -> BaseGeometry:
    """Project a lon/lat geometry into world coordinates."""
    def fn(coords: np.ndarray) -> np.ndarray:
        lat = np.clip(coords[:, 1], -MAX_LATITUDE, MAX_LATITUDE)
        sin_lat = np.sin(np.radians(lat))
        x = (coords[:, 0] + 180.0) / 360.0
        y = 0.5 - np.log((1 + sin_lat) / (1 - sin_lat)) / (4 * np.pi)
        return np.column_stack((x, y))
    return shapely.transform(geom, fn)


def world_to_tile(geom: BaseGeometry, zoom: int, x: int, y: int, extent: int = TILE_EXTENT_PX) -> BaseGeometry:
    """Scale world geometry into pixel coordinates of tile (zoom, x, y)."""
    n = 2 ** zoom
    return shapely.transform(
        geom,
        lambda c: np.column_stack(((c[:, 0] * n - x) * extent, (c[:, 1] * n - y) * extent)),
    )


def tile_to_world(geom: BaseGeometry, zoom: int, x: int, y: int, extent: int = TILE_EXTENT_PX) -> BaseGeometry:
    """Inverse of world_to_tile."""
    n = 2 ** zoom
    return shapely.transform(
        geom,
        lambda c: np.column_stack(((c[:, 0] / extent + x) / n, (c[:, 1] / extent + y) / n)),
    )


def tile_bounds_with_buffer(buffer_px: float, extent: int = TILE_EXTENT_PX) -> Polygon:
    """Tile square expanded by buffer_px on every side, in tile pixels."""
    return box(-buffer_px, -buffer_px, extent + buffer_px, extent + buffer_px)


def _require(geom: BaseGeometry | None) -> BaseGeometry:
    if geom is None or geom.is_empty:
        raise GeometryError("geometry is empty")
    return geom


def world_area(geom: BaseGeometry | None, kind: GeometryKind) -> float:
    """Area in world units; raises GeometryError for non-polygons or invalid shapes."""
    if kind is not GeometryKind.POLYGON:
        raise GeometryError(f"cannot measure area of a {kind.value}")
    geom = _require(geom)
    if not geom.is_valid:
        geom = geom.buffer(0)
        if geom.is_empty:
            raise GeometryError("polygon is invalid and could not be repaired")
    area = float(geom.area)
    if not math.isfinite(area):
        raise GeometryError("polygon area is not finite")
    return area


def world_length(geom: BaseGeometry | None, kind: GeometryKind) -> float:
    """Length in world units; polygons measure their boundary."""
    if kind is GeometryKind.POINT:
        raise GeometryError("cannot measure length of a point")
    length = float(_require(geom).length)
    if not math.isfinite(length):
        raise GeometryError("line length is not finite")
    return length


def num_points(geom: BaseGeometry | None) -> int:
    """Number of vertices in geom (0 for missing geometry)."""
    if geom is None or geom.is_empty:
        return 0
    return int(shapely.get_num_coordinates(geom))


def decode_point(feature: CandidateFeature) -> tuple[float, float]:
    """Pixel coordinate of a point candidate; raises GeometryError if it has none."""
    geom = _require(feature.geometry)
    if geom.geom_type == "Point":
        return float(geom.x), float(geom.y)
    if geom.geom_type == "MultiPoint":
        first = geom.geoms[0]
        return float(first.x), float(first.y)
    raise GeometryError(f"expected a point, got {geom.geom_type}")


def pixel_distance(a: tuple[float, float], b: tuple[float, float]) -> float:
    return math.hypot(a[0] - b[0], a[1] - b[1])


def inside_tile_buffer(coord: tuple[float, float], buffer_px: float, extent: int = TILE_EXTENT_PX) -> bool:
    """True if coord lies within the tile expanded by buffer_px (inclusive)."""
    x, y = coord
    return -buffer_px <= x <= extent + buffer_px and -buffer_px <= y <= extent + buffer_px


def point_on_surface(geom: BaseGeometry) -> Point:
    """Label point guaranteed to be inside a polygon."""
    geom = _require(geom)
    if isinstance(geom, (Polygon, MultiPolygon)) and not geom.is_valid:
        geom = geom.buffer(0)
    return _require(geom).representative_point()


def world_bounds_to_lonlat(bounds: tuple[float, float, float, float]) -> tuple[float, float, float, float]:
    """World (minx, miny, maxx, maxy) to (west, south, east, north)."""
    minx, miny, maxx, maxy = bounds
    west, north = world_to_lonlat(minx, miny)
    east, south = world_to_lonlat(maxx, maxy)
    return west, south, east, north

# tileprofile/core/declutter.py
"""
Per-tile declutter: proximity rank-and-suppress for labelled points, and
attribute-grouped conditional merge for polygons.

Rank-and-suppress visits candidates by decreasing importance and keeps a growing
set of survivors. A candidate is dropped when a survivor lies within the
very-close radius, or when max_rank survivors already lie within the radius;
otherwise it is ranked 1 + (survivors within the radius). At the deepest zoom
nothing is suppressed and ranks follow insertion order inside each label-grid bucket.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Callable, Collection

import numpy as np

from tileprofile.core.config import (
    DECLUTTER_DEBUG,
    LANDCOVER_MERGE_MAX_ZOOM,
    LANDCOVER_MERGE_MIN_AREA_PX,
    LANDCOVER_MERGE_MIN_ZOOM,
    LANDCOVER_MERGE_VERTEX_THRESHOLD,
    PEAK_MAX_RANK,
    PEAK_RADIUS_DISTANCE_PX,
    PEAK_RADIUS_VERY_CLOSE_DISTANCE_PX,
    TILE_EXTENT_PX,
)
from tileprofile.core.errors import MOUNTAIN_PEAK_DECODE, GeometryError, Stats
from tileprofile.core.geometry import decode_point, inside_tile_buffer
from tileprofile.core.merge import merge_overlapping_polygons
from tileprofile.core.types import CandidateFeature, GeometryKind

logger = logging.getLogger(__name__)

RANK_ATTR = "rank"
GROUP_KEY_ATTR = "_group"


@dataclass(frozen=True)
class RankConfig:
    """Radii in tile pixels; buffer_px bounds which points are considered at all."""
    radius_px: float = PEAK_RADIUS_DISTANCE_PX
    very_close_px: float = PEAK_RADIUS_VERY_CLOSE_DISTANCE_PX
    max_rank: int = PEAK_MAX_RANK
    buffer_px: float = 64.0
    tile_extent: int = TILE_EXTENT_PX


@dataclass
class _KeptPoints:
    """Survivor coordinates, grown one at a time."""
    coords: list[tuple[float, float]] = field(default_factory=list)

    def distances(self, coord: tuple[float, float]) -> np.ndarray:
        if not self.coords:
            return np.zeros(0)
        arr = np.asarray(self.coords, dtype=float)
        return np.hypot(arr[:, 0] - coord[0], arr[:, 1] - coord[1])

    def add(self, coord: tuple[float, float]) -> None:
        self.coords.append(coord)


def _decode_inside(
    feature: CandidateFeature,
    cfg: RankConfig,
    stats: Stats | None,
    context: str,
) -> tuple[float, float] | None:
    """Pixel coordinate if the point lies inside the tile buffer; None when outside or undecodable."""
    try:
        coord = decode_point(feature)
    except GeometryError as e:
        e.log(stats, MOUNTAIN_PEAK_DECODE, f"{context}: error decoding point {feature.source_id} {feature.attrs}")
        return None
    if not inside_tile_buffer(coord, cfg.buffer_px, cfg.tile_extent):
        return None
    return coord


def rank_by_label_grid(
    candidates: list[CandidateFeature],
    cfg: RankConfig,
    stats: Stats | None = None,
    context: str = "",
    rank_attr: str = RANK_ATTR,
) -> list[CandidateFeature]:
    """
    Deepest-zoom pass: drop points outside the buffer, then rank everything left,
    lines included, by 1-based insertion position within its label-grid bucket.
    Existing ranks are kept.
    """
    counts: dict[int | None, int] = {}
    out: list[CandidateFeature] = []
    for feature in candidates:
        if feature.kind is GeometryKind.POINT and _decode_inside(feature, cfg, stats, context) is None:
            continue
        position = counts.get(feature.group, 0) + 1
        counts[feature.group] = position
        feature.attrs.setdefault(rank_attr, position)
        out.append(feature)
    return out


def rank_and_suppress(
    candidates: list[CandidateFeature],
    zoom: int,
    max_zoom: int,
    cfg: RankConfig | None = None,
    stats: Stats | None = None,
    context: str = "",
    rank_attr: str = RANK_ATTR,
) -> list[CandidateFeature]:
    """
    Keep, rank or drop point candidates of one tile. Below max_zoom, non-point
    candidates pass through untouched after the points, in input order.
    """
    cfg = cfg or RankConfig()
    if zoom >= max_zoom:
        return rank_by_label_grid(candidates, cfg, stats, context, rank_attr)

    points: list[tuple[int, CandidateFeature, tuple[float, float]]] = []
    others: list[CandidateFeature] = []
    for index, feature in enumerate(candidates):
        if feature.kind is not GeometryKind.POINT:
            others.append(feature)
            continue
        coord = _decode_inside(feature, cfg, stats, context)
        if coord is not None:
            points.append((index, feature, coord))

    # decreasing importance, ties by input order
    points.sort(key=lambda item: (-item[1].importance, item[0]))

    kept = _KeptPoints()
    survivors: list[CandidateFeature] = []
    for _, feature, coord in points:
        d = kept.distances(coord)
        close_count = int(np.count_nonzero(d <= cfg.radius_px))
        very_close = bool(np.any(d <= cfg.very_close_px))
        if very_close or close_count >= cfg.max_rank:
            if DECLUTTER_DEBUG:
                logger.debug(
                    "%s: drop %s at (%.1f, %.1f) very_close=%s close=%d",
                    context, feature.source_id, coord[0], coord[1], very_close, close_count,
                )
            continue
        feature.attrs[rank_attr] = close_count + 1
        kept.add(coord)
        survivors.append(feature)
    return survivors + others


def vertex_bucket(num_points: int, threshold: int = LANDCOVER_MERGE_VERTEX_THRESHOLD) -> str:
    return f"<{threshold}" if num_points < threshold else f">={threshold}"


def group_and_merge(
    candidates: list[CandidateFeature],
    zoom: int,
    mergeable_classes: Collection[str],
    num_points_attr: str,
    min_zoom: int = LANDCOVER_MERGE_MIN_ZOOM,
    max_zoom: int = LANDCOVER_MERGE_MAX_ZOOM,
    vertex_threshold: int = LANDCOVER_MERGE_VERTEX_THRESHOLD,
    min_area: float = LANDCOVER_MERGE_MIN_AREA_PX,
    class_attr: str = "class",
    merge: Callable[[list[CandidateFeature], float], list[CandidateFeature]] = merge_overlapping_polygons,
) -> list[CandidateFeature]:
    """
    Inside [min_zoom, max_zoom], polygons whose class is mergeable are tagged with a
    vertex-count bucket and merged in one pass (merge groups by identical attributes,
    the bucket included). Everything else passes through. The bucket and the
    vertex-count attribute are removed from every returned feature.
    """
    if zoom < min_zoom or zoom > max_zoom:
        for item in candidates:
            item.attrs.pop(num_points_attr, None)
            item.strip_temp_attrs()
        return candidates

    result: list[CandidateFeature] = []
    to_merge: list[CandidateFeature] = []
    for item in candidates:
        count = item.attrs.pop(num_points_attr, None)
        clazz = item.attrs.get(class_attr)
        if (
            item.kind is GeometryKind.POLYGON
            and isinstance(count, (int, float))
            and clazz in mergeable_classes
        ):
            item.attrs[GROUP_KEY_ATTR] = vertex_bucket(int(count), vertex_threshold)
            to_merge.append(item)
        else:
            result.append(item)

    merged = merge(to_merge, min_area) if to_merge else []
    result.extend(merged)
    for item in result:
        item.attrs.pop(GROUP_KEY_ATTR, None)
        item.strip_temp_attrs()
    return result

# tileprofile/core/merge.py
"""
Merge primitives over candidate features in tile pixel space.
Features merge only with others of the same layer and identical attributes.
"Nearby" merging clusters polygons by distance, then buffers each cluster out, unions and buffers back in.
"""

from __future__ import annotations

import logging
from typing import Any, Callable, Iterable

from shapely import STRtree
from shapely.geometry import LineString, MultiLineString, MultiPolygon, Polygon
from shapely.geometry.base import BaseGeometry
from shapely.ops import linemerge, unary_union

from tileprofile.core.geometry import tile_bounds_with_buffer
from tileprofile.core.types import CandidateFeature, GeometryKind

logger = logging.getLogger(__name__)


def _attrs_key(attrs: dict[str, Any]) -> tuple:
    return tuple(sorted((k, repr(v)) for k, v in attrs.items()))


def _group_by_attrs(
    features: Iterable[CandidateFeature],
    kind: GeometryKind,
) -> tuple[list[list[CandidateFeature]], list[CandidateFeature]]:
    """Split into groups of same layer+attrs for kind, preserving first-seen order; others returned as-is."""
    groups: dict[tuple, list[CandidateFeature]] = {}
    others: list[CandidateFeature] = []
    for feature in features:
        if feature.kind is not kind:
            others.append(feature)
            continue
        key = (feature.layer, _attrs_key(feature.attrs))
        groups.setdefault(key, []).append(feature)
    return list(groups.values()), others


def extract_polygons(geom: BaseGeometry | None) -> list[Polygon]:
    """Polygon parts of geom, repaired with buffer(0) when invalid."""
    if geom is None or geom.is_empty:
        return []
    if geom.geom_type == "Polygon":
        if geom.is_valid:
            return [geom]
        fixed = geom.buffer(0)
        if fixed.geom_type == "Polygon":
            return [] if fixed.is_empty else [fixed]
        return extract_polygons(fixed)
    if hasattr(geom, "geoms"):
        out: list[Polygon] = []
        for g in geom.geoms:
            out.extend(extract_polygons(g))
        return out
    return []


def extract_lines(geom: BaseGeometry | None) -> list[LineString]:
    if geom is None or geom.is_empty:
        return []
    if geom.geom_type == "LineString":
        return [geom]
    if hasattr(geom, "geoms"):
        out: list[LineString] = []
        for g in geom.geoms:
            out.extend(extract_lines(g))
        return out
    return []


def _polygonal(polys: list[Polygon]) -> BaseGeometry | None:
    if not polys:
        return None
    if len(polys) == 1:
        return polys[0]
    return MultiPolygon(polys)


def _without_small_holes(poly: Polygon, min_hole_area: float) -> Polygon:
    if min_hole_area <= 0 or not poly.interiors:
        return poly
    holes = [ring for ring in poly.interiors if Polygon(ring).area >= min_hole_area]
    return Polygon(poly.exterior, holes)


def merge_overlapping_polygons(features: list[CandidateFeature], min_area: float) -> list[CandidateFeature]:
    """
    Union polygons sharing identical attributes into one feature per group.
    Parts smaller than min_area (px²) are dropped; groups left empty vanish.
    Non-polygon features are returned untouched.
    """
    groups, others = _group_by_attrs(features, GeometryKind.POLYGON)
    result = list(others)
    for group in groups:
        if len(group) == 1 and min_area <= 0:
            result.append(group[0])
            continue
        merged = unary_union([g for f in group for g in extract_polygons(f.geometry)])
        polys = [p for p in extract_polygons(merged) if p.area >= min_area]
        geom = _polygonal(polys)
        if geom is not None:
            result.append(group[0].with_geometry(geom))
    return result


def _clusters_within(polys: list[Polygon], min_dist: float) -> list[list[Polygon]]:
    """Connected components of polys where an edge means 'within min_dist'."""
    parent = list(range(len(polys)))

    def find(i: int) -> int:
        while parent[i] != i:
            parent[i] = parent[parent[i]]
            i = parent[i]
        return i

    tree = STRtree(polys)
    left, right = tree.query(polys, predicate="dwithin", distance=min_dist)
    for a, b in zip(left.tolist(), right.tolist()):
        root_a, root_b = find(a), find(b)
        if root_a != root_b:
            parent[max(root_a, root_b)] = min(root_a, root_b)
    clusters: dict[int, list[Polygon]] = {}
    for i, poly in enumerate(polys):
        clusters.setdefault(find(i), []).append(poly)
    return list(clusters.values())


def merge_nearby_polygons(
    features: list[CandidateFeature],
    min_area: float,
    min_hole_area: float,
    min_dist: float,
    buffer: float,
) -> list[CandidateFeature]:
    """
    Merge same-attribute polygons that lie within min_dist of each other. Each
    cluster is buffered out by buffer, unioned and buffered back in; buffer only
    smooths the join and never pulls in polygons farther apart than min_dist.
    Holes below min_hole_area are filled; parts below min_area are dropped.
    """
    groups, others = _group_by_attrs(features, GeometryKind.POLYGON)
    result = list(others)
    for group in groups:
        polys = [g for f in group for g in extract_polygons(f.geometry)]
        if not polys:
            continue
        parts: list[Polygon] = []
        for cluster in _clusters_within(polys, min_dist):
            if len(cluster) == 1:
                parts.extend(cluster)
                continue
            try:
                merged = unary_union([p.buffer(buffer) for p in cluster]).buffer(-buffer)
                if merged.is_empty:
                    merged = unary_union(cluster)
            except Exception as e:
                logger.warning("merge_nearby_polygons: %s: %s; keeping union", type(e).__name__, e)
                merged = unary_union(cluster)
            parts.extend(extract_polygons(merged))
        kept = [
            _without_small_holes(p, min_hole_area)
            for p in parts
            if p.area >= min_area
        ]
        geom = _polygonal(kept)
        if geom is not None:
            result.append(group[0].with_geometry(geom))
    return result


def merge_multipolygon(features: list[CandidateFeature]) -> list[CandidateFeature]:
    """Coalesce same-attribute polygons into one multipolygon feature without unioning them."""
    groups, others = _group_by_attrs(features, GeometryKind.POLYGON)
    result = list(others)
    for group in groups:
        if len(group) == 1:
            result.append(group[0])
            continue
        geom = _polygonal([p for f in group for p in extract_polygons(f.geometry)])
        if geom is not None:
            result.append(group[0].with_geometry(geom))
    return result


def merge_line_strings(
    features: list[CandidateFeature],
    length_limit: Callable[[dict[str, Any]], float],
    tolerance: float,
    buffer: float,
) -> list[CandidateFeature]:
    """
    Join touching same-attribute lines end to end, simplify by tolerance (px),
    drop parts shorter than length_limit(attrs), clip to the tile plus buffer.
    """
    groups, others = _group_by_attrs(features, GeometryKind.LINE)
    result = list(others)
    clip = tile_bounds_with_buffer(buffer)
    for group in groups:
        lines = [line for f in group for line in extract_lines(f.geometry)]
        if not lines:
            continue
        merged = linemerge(lines) if len(lines) > 1 else lines[0]
        limit = length_limit(group[0].attrs)
        parts: list[LineString] = []
        for line in extract_lines(merged):
            if tolerance > 0:
                line = line.simplify(tolerance, preserve_topology=False)
            if line.length < limit:
                continue
            parts.extend(extract_lines(line.intersection(clip)))
        if not parts:
            continue
        geom = parts[0] if len(parts) == 1 else MultiLineString(parts)
        result.append(group[0].with_geometry(geom))
    return result

# tileprofile/core/engine.py
"""
Reference tile engine: feature emission API used by layers, and per-tile
assembly (zoom filter, projection to tile pixels, simplification, clipping,
label-grid buckets, per-bucket limits, importance ordering).
"""

from __future__ import annotations

import logging
import math
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Callable, Iterable, Mapping

import shapely
from shapely.geometry.base import BaseGeometry

from tileprofile.core.config import MAX_ZOOM, TILE_EXTENT_PX, TileConfig
from tileprofile.core.errors import GeometryError
from tileprofile.core.geometry import (
    inside_tile_buffer,
    num_points,
    point_on_surface,
    world_to_tile,
)
from tileprofile.core.types import CandidateFeature, GeometryKind, SourceRecord

logger = logging.getLogger(__name__)

AttrValue = Any
ZoomValue = Callable[[int], Any]


class SimplifyMethod(Enum):
    DOUGLAS_PEUCKER = "douglas_peucker"
    VISVALINGAM_WHYATT = "visvalingam_whyatt"


@dataclass(frozen=True)
class LabelGrid:
    """Bucket points into size_px cells up to max_zoom; keep at most limit per cell (0 = unlimited)."""
    max_zoom: int
    size_px: float
    limit: int


@dataclass
class FeatureDraft:
    """One emitted feature in world coordinates, before any tile is rendered."""
    layer: str
    kind: GeometryKind
    geometry: BaseGeometry
    source_id: int | None = None
    attrs: dict[str, AttrValue] = field(default_factory=dict)
    importance: float = 0.0
    min_zoom: int = 0
    max_zoom: int = MAX_ZOOM
    buffer_px: float = 4.0
    label_grid: LabelGrid | None = None
    simplify_method: SimplifyMethod = SimplifyMethod.DOUGLAS_PEUCKER
    pixel_tolerance: float | None = None
    pixel_tolerance_factor: float = 1.0
    pixel_tolerance_below_zoom: tuple[int, float] | None = None
    min_pixel_size: float | None = None
    min_pixel_size_factor: float = 1.0
    min_pixel_size_overrides: Callable[[int], float | None] | None = None
    num_points_attr: str | None = None

    def tolerance_at(self, zoom: int, config: TileConfig) -> float:
        if self.pixel_tolerance_below_zoom is not None and zoom < self.pixel_tolerance_below_zoom[0]:
            return self.pixel_tolerance_below_zoom[1]
        base = self.pixel_tolerance if self.pixel_tolerance is not None else config.tolerance(zoom)
        return base * self.pixel_tolerance_factor

    def min_size_at(self, zoom: int, config: TileConfig) -> float:
        if self.min_pixel_size_overrides is not None:
            override = self.min_pixel_size_overrides(zoom)
            if override is not None:
                return float(override)
        base = self.min_pixel_size if self.min_pixel_size is not None else config.min_feature_size(zoom)
        return base * self.min_pixel_size_factor

    def attrs_at(self, zoom: int) -> dict[str, Any]:
        """Resolve zoom-dependent attribute values; drop None."""
        out: dict[str, Any] = {}
        for key, value in self.attrs.items():
            if callable(value):
                value = value(zoom)
            if value is not None:
                out[key] = value
        return out


class FeatureBuilder:
    """Chained setters over one FeatureDraft."""

    def __init__(self, draft: FeatureDraft) -> None:
        self.draft = draft

    def set_buffer_pixels(self, buffer_px: float) -> "FeatureBuilder":
        self.draft.buffer_px = float(buffer_px)
        return self

    def set_min_zoom(self, zoom: int) -> "FeatureBuilder":
        self.draft.min_zoom = int(zoom)
        return self

    def set_max_zoom(self, zoom: int) -> "FeatureBuilder":
        self.draft.max_zoom = int(zoom)
        return self

    def set_zoom_range(self, min_zoom: int, max_zoom: int) -> "FeatureBuilder":
        return self.set_min_zoom(min_zoom).set_max_zoom(max_zoom)

    def set_attr(self, key: str, value: AttrValue | ZoomValue) -> "FeatureBuilder":
        if value is None:
            self.draft.attrs.pop(key, None)
        else:
            self.draft.attrs[key] = value
        return self

    def put_attrs(self, attrs: Mapping[str, AttrValue]) -> "FeatureBuilder":
        for key, value in attrs.items():
            self.set_attr(key, value)
        return self

    def set_sort_key(self, key: float) -> "FeatureBuilder":
        """Lower keys come first."""
        self.draft.importance = -float(key)
        return self

    def set_sort_key_descending(self, key: float) -> "FeatureBuilder":
        """Higher keys come first."""
        self.draft.importance = float(key)
        return self

    def set_point_label_grid_size_and_limit(self, max_zoom: int, size_px: float, limit: int) -> "FeatureBuilder":
        self.draft.label_grid = LabelGrid(max_zoom, float(size_px), int(limit))
        return self

    def set_simplify_method(self, method: SimplifyMethod) -> "FeatureBuilder":
        self.draft.simplify_method = method
        return self

    def set_pixel_tolerance(self, tolerance: float) -> "FeatureBuilder":
        self.draft.pixel_tolerance = float(tolerance)
        return self

    def set_pixel_tolerance_factor(self, factor: float) -> "FeatureBuilder":
        self.draft.pixel_tolerance_factor = float(factor)
        return self

    def set_pixel_tolerance_below_zoom(self, zoom: int, tolerance: float) -> "FeatureBuilder":
        self.draft.pixel_tolerance_below_zoom = (int(zoom), float(tolerance))
        return self

    def set_min_pixel_size(self, size: float) -> "FeatureBuilder":
        self.draft.min_pixel_size = float(size)
        return self

    def set_min_pixel_size_factor(self, factor: float) -> "FeatureBuilder":
        self.draft.min_pixel_size_factor = float(factor)
        return self

    def set_min_pixel_size_overrides(self, fn: Callable[[int], float | None]) -> "FeatureBuilder":
        self.draft.min_pixel_size_overrides = fn
        return self

    def set_num_points_attr(self, key: str) -> "FeatureBuilder":
        """Store the source vertex count under key (a temporary attribute)."""
        self.draft.num_points_attr = key
        return self


class FeatureCollector:
    """Collects drafts emitted by layers for one source record."""

    def __init__(self, record: SourceRecord) -> None:
        self.record = record
        self.drafts: list[FeatureDraft] = []

    def _add(self, layer: str, kind: GeometryKind, geometry: BaseGeometry) -> FeatureBuilder:
        draft = FeatureDraft(layer=layer, kind=kind, geometry=geometry, source_id=self.record.id)
        self.drafts.append(draft)
        return FeatureBuilder(draft)

    def point(self, layer: str) -> FeatureBuilder:
        return self._add(layer, GeometryKind.POINT, self._require_geometry())

    def line(self, layer: str) -> FeatureBuilder:
        return self._add(layer, GeometryKind.LINE, self._require_geometry())

    def polygon(self, layer: str) -> FeatureBuilder:
        return self._add(layer, GeometryKind.POLYGON, self._require_geometry())

    def point_on_surface(self, layer: str) -> FeatureBuilder:
        """Label point inside the record's polygon."""
        return self._add(layer, GeometryKind.POINT, point_on_surface(self._require_geometry()))

    def _require_geometry(self) -> BaseGeometry:
        geom = self.record.geometry
        if geom is None or geom.is_empty:
            raise GeometryError(f"source feature {self.record.id} has no geometry")
        return geom


def _label_group(geom: BaseGeometry, zoom: int, x: int, y: int, grid: LabelGrid) -> int | None:
    if zoom > grid.max_zoom:
        return None
    # world pixel position at this zoom, so buckets agree across neighbouring tiles
    px = geom.x + x * TILE_EXTENT_PX
    py = geom.y + y * TILE_EXTENT_PX
    gx = math.floor(px / grid.size_px)
    gy = math.floor(py / grid.size_px)
    return (gx << 32) | (gy & 0xFFFFFFFF)


def _simplify(geom: BaseGeometry, draft: FeatureDraft, tolerance: float) -> BaseGeometry:
    if tolerance <= 0:
        return geom
    if draft.simplify_method is SimplifyMethod.VISVALINGAM_WHYATT and draft.kind is GeometryKind.POLYGON:
        return shapely.coverage_simplify(geom, tolerance)
    return geom.simplify(tolerance, preserve_topology=draft.kind is GeometryKind.POLYGON)


def _render_draft(
    draft: FeatureDraft,
    zoom: int,
    x: int,
    y: int,
    config: TileConfig,
) -> CandidateFeature | None:
    geom = world_to_tile(draft.geometry, zoom, x, y)
    attrs = draft.attrs_at(zoom)
    if draft.num_points_attr:
        attrs[draft.num_points_attr] = num_points(draft.geometry)
    group = None
    if draft.kind is GeometryKind.POINT:
        if not inside_tile_buffer((geom.x, geom.y), draft.buffer_px):
            return None
        if draft.label_grid is not None:
            group = _label_group(geom, zoom, x, y, draft.label_grid)
    else:
        geom = _simplify(geom, draft, draft.tolerance_at(zoom, config))
        b = draft.buffer_px
        geom = shapely.clip_by_rect(geom, -b, -b, TILE_EXTENT_PX + b, TILE_EXTENT_PX + b)
        if geom.is_empty:
            return None
        min_size = draft.min_size_at(zoom, config)
        if draft.kind is GeometryKind.POLYGON and geom.area < min_size * min_size:
            return None
        if draft.kind is GeometryKind.LINE and geom.length < min_size:
            return None
    return CandidateFeature(
        layer=draft.layer,
        kind=draft.kind,
        geometry=geom,
        attrs=attrs,
        importance=draft.importance,
        group=group,
        source_id=draft.source_id,
    )


def render_tile(
    drafts: Iterable[FeatureDraft],
    zoom: int,
    x: int,
    y: int,
    config: TileConfig | None = None,
) -> dict[str, list[CandidateFeature]]:
    """
    Candidates per layer for tile (zoom, x, y), ordered by decreasing importance
    (stable), with label-grid limits applied.
    """
    config = config or TileConfig()
    by_layer: dict[str, list[CandidateFeature]] = {}
    limits: dict[str, dict[int | None, int]] = {}
    for draft in drafts:
        if not (draft.min_zoom <= zoom <= draft.max_zoom):
            continue
        try:
            candidate = _render_draft(draft, zoom, x, y, config)
        except Exception as e:
            logger.warning(
                "render_tile %d/%d/%d: dropping %s feature %s: %s: %s",
                zoom, x, y, draft.layer, draft.source_id, type(e).__name__, e,
            )
            continue
        if candidate is None:
            continue
        by_layer.setdefault(draft.layer, []).append(candidate)
        if draft.label_grid is not None and draft.label_grid.limit > 0 and candidate.group is not None:
            limits.setdefault(draft.layer, {})[candidate.group] = draft.label_grid.limit

    out: dict[str, list[CandidateFeature]] = {}
    for layer, items in by_layer.items():
        items = sorted(items, key=lambda c: -c.importance)
        group_limits = limits.get(layer, {})
        counts: dict[int | None, int] = {}
        kept: list[CandidateFeature] = []
        for item in items:
            limit = group_limits.get(item.group) if item.group is not None else None
            if limit is not None:
                counts[item.group] = counts.get(item.group, 0) + 1
                if counts[item.group] > limit:
                    continue
            kept.append(item)
        out[layer] = kept
    return out

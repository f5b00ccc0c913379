# tileprofile/core/types.py
"""
Dataclasses for source records, candidate features and per-tile context.
Geometry kinds are an enum; callers branch on the enum, not on geometry classes.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Mapping

from shapely.geometry.base import BaseGeometry

from tileprofile.core.config import TEMP_ATTR_PREFIX, TileConfig


class GeometryKind(Enum):
    POINT = "point"
    LINE = "line"
    POLYGON = "polygon"


@dataclass(frozen=True)
class RelationInfo:
    """Marker base for information a layer extracts from an upstream relation."""
    id: int


@dataclass
class OsmRelation:
    """Upstream relation: tags plus the ids of its member ways."""
    id: int
    tags: Mapping[str, Any]
    member_ids: list[int] = field(default_factory=list)

    def has_tag(self, key: str, *values: str) -> bool:
        value = self.tags.get(key)
        if value is None or value == "":
            return False
        return not values or value in values

    def get_tag(self, key: str) -> str | None:
        value = self.tags.get(key)
        if value is None or value == "":
            return None
        return str(value)


@dataclass
class SourceRecord:
    """
    One raw input feature: tags plus geometry in normalized world coordinates
    (Web Mercator scaled to [0, 1], y grows southward).
    """
    id: int
    tags: Mapping[str, Any]
    kind: GeometryKind
    geometry: BaseGeometry | None
    source: str = "osm"
    table: str | None = None
    relations: list[RelationInfo] = field(default_factory=list)

    def has_tag(self, key: str, *values: str) -> bool:
        value = self.tags.get(key)
        if value is None or value == "":
            return False
        return not values or value in values

    def get_tag(self, key: str) -> str | None:
        value = self.tags.get(key)
        if value is None or value == "":
            return None
        return str(value)

    def world_area(self) -> float:
        from tileprofile.core.geometry import world_area
        return world_area(self.geometry, self.kind)

    def world_length(self) -> float:
        from tileprofile.core.geometry import world_length
        return world_length(self.geometry, self.kind)


@dataclass
class CandidateFeature:
    """
    One output geometry in tile pixel coordinates (0..256 plus buffer) with its attributes.
    importance: higher survives first. group: label-grid bucket assigned by the engine.
    """
    layer: str
    kind: GeometryKind
    geometry: BaseGeometry | None
    attrs: dict[str, Any] = field(default_factory=dict)
    importance: float = 0.0
    group: int | None = None
    source_id: int | None = None

    def strip_temp_attrs(self) -> "CandidateFeature":
        for key in [k for k in self.attrs if k.startswith(TEMP_ATTR_PREFIX)]:
            del self.attrs[key]
        return self

    def with_geometry(self, geometry: BaseGeometry) -> "CandidateFeature":
        """Copy with a new geometry; attributes are copied, not shared."""
        return CandidateFeature(
            layer=self.layer,
            kind=self.kind,
            geometry=geometry,
            attrs=dict(self.attrs),
            importance=self.importance,
            group=self.group,
            source_id=self.source_id,
        )


@dataclass
class TileContext:
    """All candidates of one (layer, zoom, tile) render call. Never shared between tiles."""
    layer: str
    zoom: int
    x: int
    y: int
    candidates: list[CandidateFeature]
    config: TileConfig = field(default_factory=TileConfig)

    @property
    def label(self) -> str:
        return f"{self.layer}@{self.zoom}/{self.x}/{self.y}"

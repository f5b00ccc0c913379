# tileprofile/core/io.py
"""
Load source records from GeoJSON (lon/lat, EPSG:4326).

Each feature's properties may carry "id", "tags" (dict), "source"
("osm" | "natural_earth") and "table"; without "tags", the remaining
properties are used as tags. A top-level "relations" list holds
{"id", "tags", "members": [way ids]} for route relations.
"""

from __future__ import annotations

import json
import logging
from pathlib import Path
from typing import Any

from shapely.errors import ShapelyError
from shapely.geometry import shape
from shapely.geometry.base import BaseGeometry

from tileprofile.core.geometry import project_lonlat
from tileprofile.core.types import GeometryKind, OsmRelation, SourceRecord

logger = logging.getLogger(__name__)

_KINDS = {
    "Point": GeometryKind.POINT,
    "MultiPoint": GeometryKind.POINT,
    "LineString": GeometryKind.LINE,
    "MultiLineString": GeometryKind.LINE,
    "Polygon": GeometryKind.POLYGON,
    "MultiPolygon": GeometryKind.POLYGON,
}

_RESERVED = ("id", "tags", "source", "table")


def _resolve_path(path: str | Path, repo_root: Path | None) -> Path:
    """Resolve path; if relative, against repo_root (or cwd if repo_root is None)."""
    p = Path(path)
    if not p.is_absolute() and repo_root is not None:
        p = repo_root / p
    return p.resolve()


def load_geojson(path: str | Path, repo_root: Path | None = None) -> dict:
    resolved = _resolve_path(path, repo_root)
    if not resolved.exists():
        raise FileNotFoundError(f"Input file not found: {resolved}")
    data = json.loads(resolved.read_text(encoding="utf-8"))
    if not isinstance(data, dict) or data.get("type") != "FeatureCollection":
        raise ValueError(f"{resolved}: expected a GeoJSON FeatureCollection")
    return data


def geometry_kind(geom: BaseGeometry) -> GeometryKind | None:
    return _KINDS.get(geom.geom_type)


def record_from_feature(feature: dict[str, Any], fallback_id: int) -> SourceRecord | None:
    """One SourceRecord in world coordinates, or None when the geometry is unusable."""
    props = feature.get("properties") or {}
    raw_geom = feature.get("geometry")
    if not raw_geom:
        return None
    geom = shape(raw_geom)
    kind = geometry_kind(geom)
    if kind is None or geom.is_empty:
        return None
    tags = props.get("tags")
    if not isinstance(tags, dict):
        tags = {k: v for k, v in props.items() if k not in _RESERVED}
    raw_id = props.get("id", feature.get("id", fallback_id))
    return SourceRecord(
        id=int(raw_id),
        tags=tags,
        kind=kind,
        geometry=project_lonlat(geom),
        source=props.get("source", "osm"),
        table=props.get("table"),
    )


def relations_from_geojson(data: dict) -> list[OsmRelation]:
    out: list[OsmRelation] = []
    for raw in data.get("relations") or []:
        out.append(
            OsmRelation(
                id=int(raw["id"]),
                tags=dict(raw.get("tags") or {}),
                member_ids=[int(m) for m in raw.get("members") or []],
            )
        )
    return out


def load_source(path: str | Path, repo_root: Path | None = None) -> tuple[list[SourceRecord], list[OsmRelation]]:
    """
    Records and relations from a GeoJSON file.
    Raises FileNotFoundError if path is missing, ValueError if it is not a FeatureCollection.
    """
    data = load_geojson(path, repo_root)
    records: list[SourceRecord] = []
    skipped = 0
    for i, feature in enumerate(data.get("features") or []):
        try:
            record = record_from_feature(feature, fallback_id=i)
        except (ShapelyError, ValueError, TypeError, KeyError) as e:
            logger.warning("load_source: skipping feature %d: %s: %s", i, type(e).__name__, e)
            record = None
        if record is None:
            skipped += 1
            continue
        records.append(record)
    if skipped:
        logger.info("load_source: %d features skipped", skipped)
    return records, relations_from_geojson(data)

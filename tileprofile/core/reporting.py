# tileprofile/core/reporting.py
"""
Create reports/<run_name>/ and write tile.json (rendered features) and run_metadata.json.
"""

from __future__ import annotations

import json
from datetime import datetime, timezone
from pathlib import Path
from typing import Any, Mapping

from shapely.geometry import mapping

from tileprofile.core.config import (
    LANDCOVER_MERGE_MAX_ZOOM,
    LANDCOVER_MERGE_MIN_AREA_PX,
    LANDCOVER_MERGE_MIN_ZOOM,
    LANDCOVER_MERGE_VERTEX_THRESHOLD,
    MAX_ZOOM,
    PEAK_MAX_RANK,
    PEAK_RADIUS_DISTANCE_PX,
    PEAK_RADIUS_VERY_CLOSE_DISTANCE_PX,
    REPORTS_DIR,
    TILE_EXTENT_PX,
)
from tileprofile.core.types import CandidateFeature


def _json_value(value: Any) -> Any:
    if isinstance(value, (str, int, float, bool)) or value is None:
        return value
    return str(value)


def feature_to_dict(feature: CandidateFeature) -> dict:
    """GeoJSON-like feature in tile pixel coordinates."""
    return {
        "type": "Feature",
        "geometry": mapping(feature.geometry) if feature.geometry is not None else None,
        "properties": {k: _json_value(v) for k, v in sorted(feature.attrs.items())},
        "kind": feature.kind.value,
        "source_id": feature.source_id,
    }


def tile_to_dict(zoom: int, x: int, y: int, layers: Mapping[str, list[CandidateFeature]]) -> dict:
    """Exact structure for tile.json."""
    return {
        "tile": {"z": zoom, "x": x, "y": y, "extent": TILE_EXTENT_PX},
        "layers": {
            name: {
                "count": len(features),
                "features": [feature_to_dict(f) for f in features],
            }
            for name, features in layers.items()
        },
    }


def run_metadata_dict(
    run_name: str,
    input_path: str,
    tile: tuple[int, int, int],
    args: Mapping[str, str],
    data_errors: Mapping[str, int],
    counts: Mapping[str, int],
) -> dict:
    """Timestamp and config snapshot for run_metadata.json."""
    z, x, y = tile
    return {
        "run_name": run_name,
        "timestamp_utc": datetime.now(timezone.utc).isoformat(),
        "input_path": input_path,
        "tile": {"z": z, "x": x, "y": y},
        "args": dict(args),
        "feature_counts": dict(counts),
        "data_errors": dict(data_errors),
        "config": {
            "TILE_EXTENT_PX": TILE_EXTENT_PX,
            "MAX_ZOOM": MAX_ZOOM,
            "PEAK_RADIUS_DISTANCE_PX": PEAK_RADIUS_DISTANCE_PX,
            "PEAK_RADIUS_VERY_CLOSE_DISTANCE_PX": PEAK_RADIUS_VERY_CLOSE_DISTANCE_PX,
            "PEAK_MAX_RANK": PEAK_MAX_RANK,
            "LANDCOVER_MERGE_MIN_ZOOM": LANDCOVER_MERGE_MIN_ZOOM,
            "LANDCOVER_MERGE_MAX_ZOOM": LANDCOVER_MERGE_MAX_ZOOM,
            "LANDCOVER_MERGE_VERTEX_THRESHOLD": LANDCOVER_MERGE_VERTEX_THRESHOLD,
            "LANDCOVER_MERGE_MIN_AREA_PX": LANDCOVER_MERGE_MIN_AREA_PX,
        },
    }


def ensure_report_dir(
    repo_root: Path,
    run_name: str,
    output_dir: str | None = None,
) -> Path:
    """Create output_dir/<run_name>/ under repo_root; return path. Default output_dir from config."""
    base = output_dir if output_dir is not None else REPORTS_DIR
    out = (repo_root / base).resolve() / run_name
    out.mkdir(parents=True, exist_ok=True)
    return out


def write_tile_json(
    report_dir: Path,
    zoom: int,
    x: int,
    y: int,
    layers: Mapping[str, list[CandidateFeature]],
) -> Path:
    """Write tile.json to report_dir. Returns path to file."""
    path = report_dir / "tile.json"
    path.write_text(json.dumps(tile_to_dict(zoom, x, y, layers), indent=2), encoding="utf-8")
    return path


def write_run_metadata_json(
    report_dir: Path,
    run_name: str,
    input_path: str,
    tile: tuple[int, int, int],
    args: Mapping[str, str],
    data_errors: Mapping[str, int],
    counts: Mapping[str, int],
) -> Path:
    """Write run_metadata.json to report_dir."""
    path = report_dir / "run_metadata.json"
    data = run_metadata_dict(run_name, input_path, tile, args, data_errors, counts)
    path.write_text(json.dumps(data, indent=2), encoding="utf-8")
    return path

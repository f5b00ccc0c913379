# tileprofile/core/config.py
"""
Central configuration for tile rendering and per-layer post-processing.
All tunable values live here; layers read named overrides through Arguments.
"""

from __future__ import annotations

import math
import os
from dataclasses import dataclass, field
from typing import Mapping

# ----- Paths (repo-relative) -----
REPORTS_DIR: str = "reports"

# ----- Tiles -----
TILE_EXTENT_PX: int = 256
"""Width/height of a tile in pixel space used by post-processors."""

MAX_ZOOM: int = 14
"""Maximum zoom level rendered; the deepest level keeps full label density."""

MIN_FEATURE_SIZE_AT_MAX_ZOOM_PX: float = 256 / 4096
MIN_FEATURE_SIZE_BELOW_MAX_ZOOM_PX: float = 1.0
SIMPLIFY_TOLERANCE_AT_MAX_ZOOM_PX: float = 256 / 4096
SIMPLIFY_TOLERANCE_BELOW_MAX_ZOOM_PX: float = 0.1

# ----- World -----
WORLD_CIRCUMFERENCE_METERS: float = 40075016.685578488
WORLD_CIRCUMFERENCE_KM: float = 40075.0

WORLD_AREA_FOR_50K_SQUARE_METERS: float = 50_000 / WORLD_CIRCUMFERENCE_METERS ** 2
"""50 000 m² at the equator expressed in normalized world units (world = 1x1)."""

WORLD_AREA_FOR_70K_SQUARE_METERS: float = 70_000 / WORLD_CIRCUMFERENCE_METERS ** 2

AREA_BASE_ZOOM: int = 20
"""Zoom at which the area threshold applies unscaled: area > T * 2^(20 - z)."""

# ----- Label grid -----
LABEL_GRID_DEFAULT_LIMIT: int = 0
"""0 disables the per-bucket limit."""

# ----- Mountain peak declutter -----
PEAK_RADIUS_DISTANCE_PX: float = 30.0
"""Neighbourhood radius (px) used to count nearby kept peaks for ranking."""

PEAK_RADIUS_VERY_CLOSE_DISTANCE_PX: float = 5.0
"""A peak this close (px) to an already kept one is dropped."""

PEAK_MAX_RANK: int = 3
"""At most this many peaks survive inside one neighbourhood radius."""

# ----- Landcover grouped merge -----
LANDCOVER_MERGE_MIN_ZOOM: int = 7
LANDCOVER_MERGE_MAX_ZOOM: int = 13
LANDCOVER_MERGE_VERTEX_THRESHOLD: int = 300
LANDCOVER_MERGE_MIN_AREA_PX: float = 2.0

# ----- Temporary attributes -----
TEMP_ATTR_PREFIX: str = "_"
"""Attributes starting with this prefix are bookkeeping and never reach a tile."""

# ----- Debug flags -----
DECLUTTER_DEBUG: bool = os.environ.get("DECLUTTER_DEBUG", "").lower() in ("1", "true", "yes")
"""Log every keep/drop decision of the peak declutter pass. Set env DECLUTTER_DEBUG=1."""


@dataclass(frozen=True)
class TileConfig:
    """Per-zoom engine settings shared by every layer of a run."""
    max_zoom: int = MAX_ZOOM
    buffer_px: float = 4.0

    def min_feature_size(self, zoom: int) -> float:
        """Minimum feature size in pixels at zoom."""
        if zoom >= self.max_zoom:
            return MIN_FEATURE_SIZE_AT_MAX_ZOOM_PX
        return MIN_FEATURE_SIZE_BELOW_MAX_ZOOM_PX

    def tolerance(self, zoom: int) -> float:
        """Simplification tolerance in pixels at zoom."""
        if zoom >= self.max_zoom:
            return SIMPLIFY_TOLERANCE_AT_MAX_ZOOM_PX
        return SIMPLIFY_TOLERANCE_BELOW_MAX_ZOOM_PX


@dataclass
class Arguments:
    """
    Named numeric overrides, e.g. {"mountain_peak_radius": "40"}.
    Unknown or unparseable values fall back to the documented default.
    """
    values: Mapping[str, str] = field(default_factory=dict)
    described: dict[str, str] = field(default_factory=dict)

    def get_float(self, key: str, description: str, default: float) -> float:
        self.described[key] = f"{description} (default {default})"
        raw = self.values.get(key)
        if raw is None:
            return float(default)
        try:
            out = float(raw)
        except (TypeError, ValueError):
            return float(default)
        return out if math.isfinite(out) else float(default)

    def get_int(self, key: str, description: str, default: int) -> int:
        return int(self.get_float(key, description, default))

    @classmethod
    def parse(cls, pairs: list[str] | None) -> "Arguments":
        """Parse ['key=value', ...] from the CLI."""
        out: dict[str, str] = {}
        for pair in pairs or []:
            key, sep, value = pair.partition("=")
            if sep and key.strip():
                out[key.strip()] = value.strip()
        return cls(values=out)

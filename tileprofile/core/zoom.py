# tileprofile/core/zoom.py
"""
Zoom-range assignment: closed-form inverse of the area threshold rule,
threshold tables keyed by max zoom, and elevation-based peak zooms.
"""

from __future__ import annotations

import math
from dataclasses import dataclass
from typing import Generic, Mapping, TypeVar

from tileprofile.core.config import AREA_BASE_ZOOM, TILE_EXTENT_PX

T = TypeVar("T")


def clamp_zoom(zoom: int, min_zoom: int, max_zoom: int) -> int:
    return max(min_zoom, min(max_zoom, zoom))


def min_zoom_for_area(
    area: float,
    threshold: float,
    min_zoom: int,
    max_zoom: int,
    base_zoom: int = AREA_BASE_ZOOM,
    subclass: str | None = None,
    overrides: Mapping[str, int] | None = None,
) -> int:
    """
    Smallest zoom z with area > threshold * 2^(base_zoom - z):
    floor(base_zoom - log2(area / threshold)), clamped to [min_zoom, max_zoom].
    A subclass listed in overrides returns its fixed zoom. area <= 0 yields max_zoom.
    """
    if overrides and subclass is not None and subclass in overrides:
        return overrides[subclass]
    if area <= 0 or threshold <= 0:
        return max_zoom
    zoom = math.floor(base_zoom - math.log2(area / threshold))
    return clamp_zoom(zoom, min_zoom, max_zoom)


def peak_min_zoom(meters: int) -> int:
    """One zoom earlier per full 1000 m of elevation, never before z2."""
    thousands = int(meters / 1000)
    return max(2, 10 - thousands)


def way_pixels(area: float | None, zoom: int) -> int | None:
    """Approximate area in square pixels at zoom; None when missing or zero."""
    if area is None:
        return None
    pixels = round(area * (TILE_EXTENT_PX * 2 ** (zoom - 1)) ** 2)
    return pixels if pixels != 0 else None


@dataclass(frozen=True)
class ZoomFunction(Generic[T]):
    """
    Value per zoom from {max_zoom: value}: the entry with the smallest key >= zoom.
    Zooms above every key return default.
    """
    thresholds: tuple[tuple[int, T], ...]
    default: T | None = None

    @classmethod
    def from_max_zoom_thresholds(cls, thresholds: Mapping[int, T], default: T | None = None) -> "ZoomFunction[T]":
        return cls(tuple(sorted(thresholds.items())), default)

    def __call__(self, zoom: int) -> T | None:
        for max_zoom, value in self.thresholds:
            if zoom <= max_zoom:
                return value
        return self.default

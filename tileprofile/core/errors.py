# tileprofile/core/errors.py
"""
Recoverable geometry errors and a per-subsystem error counter.
Use the subsystem keys below when logging; a failure drops one feature, never a tile.
"""

from __future__ import annotations

import logging
import threading
from collections import Counter

logger = logging.getLogger(__name__)

# Known subsystem keys
LANDCOVER_POLY = "omt_landcover_poly"
LANDUSE_POLY = "omt_landuse_poly"
MOUNTAIN_PEAK_DECODE = "mountain_peak_decode_point"
ROUTE_DECODE = "route_decode"
LAYER_PROCESS = "layer_process"
LAYER_POST_PROCESS = "layer_post_process"

DESCRIPTIONS: dict[str, str] = {
    LANDCOVER_POLY: "Landcover polygon area could not be measured.",
    LANDUSE_POLY: "Landuse polygon area could not be measured.",
    MOUNTAIN_PEAK_DECODE: "Mountain peak point could not be decoded.",
    ROUTE_DECODE: "Route member length could not be measured.",
    LAYER_PROCESS: "Layer raised while processing a source feature.",
    LAYER_POST_PROCESS: "Layer raised while post-processing a tile.",
}


class GeometryError(Exception):
    """Geometry is missing, empty, invalid or otherwise unmeasurable."""

    def log(self, stats: "Stats | None", subsystem: str, message: str) -> None:
        """Count the failure under subsystem and log message with the cause."""
        if stats is not None:
            stats.data_error(subsystem)
        logger.warning("[%s] %s: %s", subsystem, message, self)


class Stats:
    """Thread-safe counter of recoverable data errors keyed by subsystem."""

    def __init__(self) -> None:
        self._lock = threading.Lock()
        self._errors: Counter[str] = Counter()

    def data_error(self, subsystem: str) -> None:
        with self._lock:
            self._errors[subsystem] += 1

    def data_errors(self) -> dict[str, int]:
        with self._lock:
            return dict(self._errors)


def describe(subsystem: str | None, fallback: str = "Unknown failure.") -> str:
    """Return a short description for the given subsystem key."""
    if not subsystem:
        return fallback
    return DESCRIPTIONS.get(subsystem, fallback)

# tileprofile/layers/mountain_peak.py
"""
mountain_peak layer: labelled peak points ranked by importance, plus ridge/cliff lines.

Peaks are ordered by importance (named, peak/volcano kind, then elevation). The
engine keeps the top 5 per 100x100 px label-grid cell with a 100 px buffer so
that grid cells are never cut at tile edges; post_process() then drops anything
outside the 64 px layer buffer and runs the proximity rank-and-suppress pass.
"""

from __future__ import annotations

from tileprofile.core.classify import Rule, first_match, tag_in, tag_value
from tileprofile.core.config import (
    PEAK_MAX_RANK,
    PEAK_RADIUS_DISTANCE_PX,
    PEAK_RADIUS_VERY_CLOSE_DISTANCE_PX,
    Arguments,
    TileConfig,
)
from tileprofile.core.declutter import RankConfig, rank_and_suppress
from tileprofile.core.engine import FeatureCollector
from tileprofile.core.errors import Stats
from tileprofile.core.types import CandidateFeature, SourceRecord
from tileprofile.core.zoom import peak_min_zoom
from tileprofile.layers.base import Layer
from tileprofile.layers.util import (
    FEET_TO_METERS,
    elevation_tags,
    name_attrs,
    null_if_int,
    parse_meters,
)

LAYER_NAME = "mountain_peak"
BUFFER_SIZE = 64
EMIT_BUFFER_PX = 100
LABEL_GRID_MAX_ZOOM = 13
LABEL_GRID_SIZE_PX = 100
LABEL_GRID_LIMIT = 5

MAX_PLAUSIBLE_METERS = 9_000

PEAK_KIND_RULES = [Rule(tag_in("natural", "peak", "volcano", "saddle"), tag_value("natural"))]
LINE_KIND_RULES = [Rule(tag_in("natural", "ridge", "cliff", "arete"), tag_value("natural"))]

KIND_BOOST = {"peak": 10_000, "volcano": 12_000}
NAMED_BOOST = 10_000


def peak_importance(meters: int, natural: str | None, named: bool) -> int:
    """Sort score: elevation plus boosts for peak/volcano kind and for having a name."""
    return meters + KIND_BOOST.get(natural or "", 0) + (NAMED_BOOST if named else 0)


def normalize_peak_meters(meters: float | None) -> int:
    """Integer meters; values at or above 9000 can only be feet and are converted."""
    value = int(meters) if meters is not None else 0
    if value >= MAX_PLAUSIBLE_METERS:
        value = int(value * FEET_TO_METERS)
    return value


class MountainPeak(Layer):
    name = LAYER_NAME
    buffer_size = BUFFER_SIZE

    def __init__(self, config: TileConfig, args: Arguments, stats: Stats) -> None:
        super().__init__(config, args, stats)
        self.rank_config = RankConfig(
            radius_px=args.get_float(
                "mountain_peak_radius",
                "mountain_peak layer: radius for clustering in pixels",
                PEAK_RADIUS_DISTANCE_PX,
            ),
            very_close_px=args.get_float(
                "mountain_peak_radius_close",
                "mountain_peak layer: close radius for clustering in pixels",
                PEAK_RADIUS_VERY_CLOSE_DISTANCE_PX,
            ),
            max_rank=args.get_int(
                "mountain_peak_max_rank",
                "mountain_peak layer: max peaks kept within the clustering radius",
                PEAK_MAX_RANK,
            ),
            buffer_px=BUFFER_SIZE,
        )

    def process_point(self, record: SourceRecord, features: FeatureCollector) -> None:
        natural = first_match(PEAK_KIND_RULES, record.tags)
        if natural is None:
            return
        meters = parse_meters(record.tags.get("ele"))
        named = record.has_tag("name")
        if not (named or (meters is not None and abs(meters) < MAX_PLAUSIBLE_METERS)):
            return
        meters_int = normalize_peak_meters(meters)
        summit_cross = record.tags.get("summit:cross") == "yes"
        (
            features.point(LAYER_NAME)
            .set_attr("class", natural)
            .set_attr("summitcross", null_if_int(1 if summit_cross else 0, 0))
            .put_attrs(name_attrs(record.tags))
            .put_attrs(elevation_tags(meters))
            .set_sort_key_descending(peak_importance(meters_int, natural, named))
            .set_min_zoom(peak_min_zoom(meters_int))
            .set_buffer_pixels(EMIT_BUFFER_PX)
            .set_point_label_grid_size_and_limit(LABEL_GRID_MAX_ZOOM, LABEL_GRID_SIZE_PX, LABEL_GRID_LIMIT)
        )

    def process_line(self, record: SourceRecord, features: FeatureCollector) -> None:
        clazz = first_match(LINE_KIND_RULES, record.tags)
        if clazz is None:
            return
        (
            features.line(LAYER_NAME)
            .set_attr("class", clazz)
            .put_attrs(name_attrs(record.tags))
            .set_min_zoom(12 if clazz == "cliff" else 10)
            .set_buffer_pixels(EMIT_BUFFER_PX)
        )

    def post_process(self, zoom: int, items: list[CandidateFeature]) -> list[CandidateFeature]:
        return rank_and_suppress(
            items,
            zoom,
            self.config.max_zoom,
            self.rank_config,
            stats=self.stats,
            context=f"{LAYER_NAME} z{zoom}",
        )

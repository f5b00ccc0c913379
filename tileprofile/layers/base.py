# tileprofile/layers/base.py
"""
Layer callback surface: process() per source record, optional relation
preprocessing, optional post_process() per rendered tile.
"""

from __future__ import annotations

from tileprofile.core.config import Arguments, TileConfig
from tileprofile.core.engine import FeatureCollector
from tileprofile.core.errors import Stats
from tileprofile.core.types import (
    CandidateFeature,
    GeometryKind,
    OsmRelation,
    RelationInfo,
    SourceRecord,
)


class Layer:
    """
    Base for one output layer. Subclasses override the handlers they need;
    process() routes a record by source and geometry kind.
    """
    name: str = ""
    buffer_size: float = 4.0

    def __init__(self, config: TileConfig, args: Arguments, stats: Stats) -> None:
        self.config = config
        self.args = args
        self.stats = stats

    def process(self, record: SourceRecord, features: FeatureCollector) -> None:
        if record.source == "natural_earth":
            self.process_natural_earth(record.table or "", record, features)
            return
        handler = {
            GeometryKind.POINT: self.process_point,
            GeometryKind.LINE: self.process_line,
            GeometryKind.POLYGON: self.process_polygon,
        }[record.kind]
        handler(record, features)

    def process_natural_earth(self, table: str, record: SourceRecord, features: FeatureCollector) -> None:
        pass

    def process_point(self, record: SourceRecord, features: FeatureCollector) -> None:
        pass

    def process_line(self, record: SourceRecord, features: FeatureCollector) -> None:
        pass

    def process_polygon(self, record: SourceRecord, features: FeatureCollector) -> None:
        pass

    def preprocess_osm_relation(self, relation: OsmRelation) -> list[RelationInfo] | None:
        return None

    def post_process(self, zoom: int, items: list[CandidateFeature]) -> list[CandidateFeature]:
        return items

    def release(self) -> None:
        """Drop any per-run state once every tile has been rendered."""

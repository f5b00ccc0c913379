# tileprofile/core/profile.py
"""
Profile: the set of layers for one run. Routes source records to every layer,
renders tiles and hands each layer's candidates to its post_process().

A layer that raises while processing a record loses that record only; a layer
that raises in post_process() gets its input back unchanged. Either way the
error is counted in Stats and logged. Temporary "_" attributes never leave here.
"""

from __future__ import annotations

import logging
from concurrent.futures import ThreadPoolExecutor
from typing import Iterable, Sequence

from tileprofile.core.config import Arguments, TileConfig
from tileprofile.core.engine import FeatureCollector, FeatureDraft, render_tile
from tileprofile.core.errors import LAYER_POST_PROCESS, LAYER_PROCESS, Stats
from tileprofile.core.types import CandidateFeature, OsmRelation, RelationInfo, SourceRecord, TileContext

logger = logging.getLogger(__name__)


def default_layer_classes() -> list[type]:
    """Layer classes of the default profile, in output order."""
    from tileprofile.layers.landcover import Landcover
    from tileprofile.layers.landcover_name import LandcoverName
    from tileprofile.layers.landuse import Landuse
    from tileprofile.layers.landuse_name import LanduseName
    from tileprofile.layers.mountain_peak import MountainPeak
    from tileprofile.layers.route import Route
    return [Landcover, Landuse, MountainPeak, Route, LandcoverName, LanduseName]


class Profile:
    """Layers plus the shared config, arguments and error counter of one run."""

    def __init__(
        self,
        layer_classes: Sequence[type] | None = None,
        config: TileConfig | None = None,
        args: Arguments | None = None,
        stats: Stats | None = None,
    ) -> None:
        self.config = config or TileConfig()
        self.args = args or Arguments()
        self.stats = stats or Stats()
        classes = layer_classes if layer_classes is not None else default_layer_classes()
        self.layers = [cls(self.config, self.args, self.stats) for cls in classes]
        self.layers_by_name = {layer.name: layer for layer in self.layers}
        self.relation_members: dict[int, list[RelationInfo]] = {}

    def preprocess_relations(self, relations: Iterable[OsmRelation]) -> int:
        """
        Let every layer extract infos from each relation; remember them per member way id.
        Returns the number of relations some layer kept.
        """
        kept = 0
        for relation in relations:
            infos: list[RelationInfo] = []
            for layer in self.layers:
                infos.extend(layer.preprocess_osm_relation(relation) or [])
            if not infos:
                continue
            kept += 1
            for member_id in relation.member_ids:
                self.relation_members.setdefault(member_id, []).extend(infos)
        logger.info("preprocess_relations: %d relations kept", kept)
        return kept

    def process_feature(self, record: SourceRecord, collector: FeatureCollector | None = None) -> list[FeatureDraft]:
        """Run every layer's process() over one record; returns the emitted drafts."""
        collector = collector or FeatureCollector(record)
        if record.source == "osm" and not record.relations:
            record.relations = list(self.relation_members.get(record.id, ()))
        for layer in self.layers:
            try:
                layer.process(record, collector)
            except Exception as e:
                self.stats.data_error(LAYER_PROCESS)
                logger.warning(
                    "[%s] %s: error processing feature %s: %s: %s",
                    LAYER_PROCESS, layer.name, record.id, type(e).__name__, e,
                )
        return collector.drafts

    def process_all(self, records: Iterable[SourceRecord], workers: int = 1) -> list[FeatureDraft]:
        """process_feature() over all records, optionally on a thread pool. Draft order follows record order."""
        records = list(records)
        if workers <= 1:
            return [draft for record in records for draft in self.process_feature(record)]
        with ThreadPoolExecutor(max_workers=workers) as pool:
            per_record = list(pool.map(self.process_feature, records))
        return [draft for drafts in per_record for draft in drafts]

    def post_process(self, layer: str, zoom: int, candidates: list[CandidateFeature]) -> list[CandidateFeature]:
        """Layer's post_process() for one tile; on failure the input is returned unchanged."""
        handler = self.layers_by_name.get(layer)
        result = candidates
        if handler is not None:
            try:
                result = handler.post_process(zoom, list(candidates))
            except Exception as e:
                self.stats.data_error(LAYER_POST_PROCESS)
                logger.warning(
                    "[%s] %s z%d: error post-processing %d features: %s: %s",
                    LAYER_POST_PROCESS, layer, zoom, len(candidates), type(e).__name__, e,
                )
                result = candidates
        for feature in result:
            feature.strip_temp_attrs()
        return result

    def post_process_tile(self, context: TileContext) -> list[CandidateFeature]:
        return self.post_process(context.layer, context.zoom, context.candidates)

    def render(self, drafts: Iterable[FeatureDraft], zoom: int, x: int, y: int) -> dict[str, list[CandidateFeature]]:
        """Final features per layer for tile (zoom, x, y), in layer order."""
        by_layer = render_tile(drafts, zoom, x, y, self.config)
        out: dict[str, list[CandidateFeature]] = {}
        for layer in self.layers:
            candidates = by_layer.get(layer.name)
            if not candidates:
                continue
            context = TileContext(layer.name, zoom, x, y, candidates, self.config)
            features = self.post_process_tile(context)
            logger.debug("%s: %d candidates -> %d features", context.label, len(candidates), len(features))
            if features:
                out[layer.name] = features
        return out

    def release(self) -> None:
        """Tear down per-run state (relation tables) after all tiles are rendered."""
        for layer in self.layers:
            layer.release()
        self.relation_members.clear()

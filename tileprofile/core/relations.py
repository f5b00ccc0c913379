# tileprofile/core/relations.py
"""
Route relation aggregates (computed length, world extent) keyed by relation id.
Written by concurrent source workers, read during post-processing. Each key maps
to one of a fixed number of shards; every read-modify-write holds its shard lock.
"""

from __future__ import annotations

import threading
from dataclasses import dataclass

DEFAULT_SHARDS: int = 64


@dataclass
class RouteRelationData:
    """Aggregate of every member way seen so far for one relation."""
    relation_id: int
    computed_distance: float = 0.0
    minx: float = float("inf")
    miny: float = float("inf")
    maxx: float = float("-inf")
    maxy: float = float("-inf")

    @property
    def has_extent(self) -> bool:
        return self.minx <= self.maxx and self.miny <= self.maxy

    def expand(self, bounds: tuple[float, float, float, float]) -> None:
        minx, miny, maxx, maxy = bounds
        self.minx = min(self.minx, minx)
        self.miny = min(self.miny, miny)
        self.maxx = max(self.maxx, maxx)
        self.maxy = max(self.maxy, maxy)

    @property
    def bounds(self) -> tuple[float, float, float, float]:
        return (self.minx, self.miny, self.maxx, self.maxy)


class RouteRelationTable:
    """Sharded-lock mapping relation id -> RouteRelationData for one processing run."""

    def __init__(self, shards: int = DEFAULT_SHARDS) -> None:
        self._shards = max(1, shards)
        self._locks = [threading.Lock() for _ in range(self._shards)]
        self._data: list[dict[int, RouteRelationData]] = [{} for _ in range(self._shards)]

    def _shard(self, relation_id: int) -> int:
        return hash(relation_id) % self._shards

    def add_segment(
        self,
        relation_id: int,
        bounds: tuple[float, float, float, float] | None,
        distance: float | None = None,
    ) -> None:
        """Fold one member way into its relation; distance None leaves the length unchanged."""
        i = self._shard(relation_id)
        with self._locks[i]:
            data = self._data[i].get(relation_id)
            if data is None:
                data = RouteRelationData(relation_id)
                self._data[i][relation_id] = data
            if distance is not None:
                data.computed_distance += distance
            if bounds is not None:
                data.expand(bounds)

    def get(self, relation_id: int) -> RouteRelationData | None:
        """Snapshot copy of the aggregate, or None when the relation was never seen."""
        i = self._shard(relation_id)
        with self._locks[i]:
            data = self._data[i].get(relation_id)
            if data is None:
                return None
            return RouteRelationData(
                relation_id=data.relation_id,
                computed_distance=data.computed_distance,
                minx=data.minx,
                miny=data.miny,
                maxx=data.maxx,
                maxy=data.maxy,
            )

    def __len__(self) -> int:
        total = 0
        for lock, shard in zip(self._locks, self._data):
            with lock:
                total += len(shard)
        return total

    def clear(self) -> None:
        """Tear down after every tile referencing the run has been rendered."""
        for lock, shard in zip(self._locks, self._data):
            with lock:
                shard.clear()

"""Atomically swappable dataset snapshots.

A ``DatasetSnapshot`` bundles a store, the index built from it and a
resolver over both. ``ProximityService`` holds the current snapshot;
``reload`` builds the replacement completely before swapping the single
reference under a lock, so a reader sees either the old or the new
snapshot and never a mix of the two.
"""
from __future__ import annotations

import threading
import time
from dataclasses import dataclass
from typing import Any, Mapping, Optional

from loguru import logger

from .config import ResolverSettings
from .errors import IndexNotBuiltError
from .kdbush import KDBushIndex
from .resolver import ProximityResolver, ProximityResult, QueryPoint
from .store import FeatureStore


@dataclass(frozen=True)
class DatasetSnapshot:
    """Read-only store/index/resolver triple for one loaded dataset."""

    store: FeatureStore
    index: KDBushIndex
    resolver: ProximityResolver
    version: int = 0

    @classmethod
    def build(cls, raw: Mapping[str, Any], settings: Optional[ResolverSettings] = None,
              version: int = 0) -> "DatasetSnapshot":
        """Load, index and wrap a FeatureCollection."""
        settings = settings or ResolverSettings()
        started = time.perf_counter()
        store = FeatureStore.load(raw, name_keys=settings.name_keys,
                                  large_reach=settings.large_feature_reach_deg)
        index = store.build_index(settings.node_capacity)
        resolver = ProximityResolver(store, index, settings.degrees_per_km)
        logger.info(
            f"Built dataset v{version}: {len(store)} features indexed "
            f"(node capacity {settings.node_capacity}) in {time.perf_counter() - started:.3f}s"
        )
        return cls(store=store, index=index, resolver=resolver, version=version)


class ProximityService:
    """Entry point that owns the current dataset snapshot.

    Usage:
        service = ProximityService()
        service.load(geojson)
        result = service.resolve(QueryPoint(lat=30.88, lng=30.62))
    """

    def __init__(self, settings: Optional[ResolverSettings] = None):
        self.settings = settings or ResolverSettings()
        self._snapshot: Optional[DatasetSnapshot] = None
        self._lock = threading.Lock()
        self._version = 0

    @property
    def snapshot(self) -> DatasetSnapshot:
        """The current snapshot.

        Raises:
            IndexNotBuiltError: If no dataset has been loaded yet.
        """
        snapshot = self._snapshot
        if snapshot is None:
            raise IndexNotBuiltError("No dataset loaded. Call .load() first.")
        return snapshot

    @property
    def loaded(self) -> bool:
        return self._snapshot is not None

    def load(self, raw: Mapping[str, Any]) -> DatasetSnapshot:
        """Build a snapshot from ``raw`` and make it current.

        The previous snapshot stays current until the new one is complete.
        If building fails the previous snapshot is kept. Each call takes the
        next version number when it starts; a build that finishes after a
        newer one has been swapped in is discarded.

        Returns:
            The snapshot that is current once this call completes.
        """
        with self._lock:
            self._version += 1
            version = self._version
        snapshot = DatasetSnapshot.build(raw, self.settings, version=version)
        with self._lock:
            current = self._snapshot
            if current is not None and current.version > version:
                logger.info(f"Discarding dataset v{version}; v{current.version} is newer")
                return current
            self._snapshot = snapshot
        return snapshot

    reload = load

    def resolve(self, query: QueryPoint, max_distance_km: Optional[float] = None) -> ProximityResult:
        """Resolve against whichever snapshot is current when the call starts."""
        snapshot = self.snapshot
        threshold = self.settings.max_distance_km if max_distance_km is None else max_distance_km
        return snapshot.resolver.resolve(query, threshold)

"""Spatial proximity engine for GeoJSON feature collections.

Loads a FeatureCollection into an immutable store, indexes each feature's
representative point in a static k-d index, and resolves which feature
contains or lies nearest to a moving query point.
"""
from __future__ import annotations

from dataclasses import replace

from proximity.config import DEGREES_PER_KM, ResolverSettings, default_config, load_config
from proximity.errors import IndexNotBuiltError, InvalidQueryError, ProximityError
from proximity.kdbush import DEFAULT_NODE_CAPACITY, IndexEntry, KDBushIndex
from proximity.resolver import (
    MatchKind,
    ProximityResolver,
    ProximityResult,
    QueryPoint,
    search_rectangle,
)
from proximity.scheduler import UpdateScheduler
from proximity.search import SearchHit, find_all_by_name, find_by_name
from proximity.snapshot import DatasetSnapshot, ProximityService
from proximity.store import Feature, FeatureStore, GeometryType, MalformedFeature


def make_service(geojson: dict | None = None, config_path: str | None = None,
                 **overrides) -> ProximityService:
    """Factory function to create a configured proximity service.

    Args:
        geojson: Optional FeatureCollection to load immediately.
        config_path: Optional JSON configuration file merged over defaults.
        **overrides: ResolverSettings fields that win over the configuration.

    Returns:
        ProximityService, loaded when ``geojson`` is given.

    Raises:
        InvalidQueryError: If a setting is out of range.

    Examples:
        >>> service = make_service(max_distance_km=5.0)
        >>> service = make_service(geojson, node_capacity=16)
    """
    settings = ResolverSettings.from_config(load_config(config_path))
    if overrides:
        settings = replace(settings, **overrides)
    service = ProximityService(settings)
    if geojson is not None:
        service.load(geojson)
    return service


__all__ = [
    "DEGREES_PER_KM",
    "DEFAULT_NODE_CAPACITY",
    "ResolverSettings",
    "default_config",
    "load_config",
    "ProximityError",
    "InvalidQueryError",
    "IndexNotBuiltError",
    "IndexEntry",
    "KDBushIndex",
    "Feature",
    "FeatureStore",
    "GeometryType",
    "MalformedFeature",
    "MatchKind",
    "QueryPoint",
    "ProximityResult",
    "ProximityResolver",
    "search_rectangle",
    "DatasetSnapshot",
    "ProximityService",
    "UpdateScheduler",
    "SearchHit",
    "find_by_name",
    "find_all_by_name",
    "make_service",
]

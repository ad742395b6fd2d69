"""Search loaded features by name."""
from __future__ import annotations

from dataclasses import dataclass
from typing import List, Optional

from .store import Feature, FeatureStore


@dataclass(frozen=True)
class SearchHit:
    """A matching feature and where to center on it.

    ``lat``/``lng`` are the feature's first coordinate, converted from
    GeoJSON (lng, lat) order.
    """

    feature: Feature
    lat: float
    lng: float


def _hit(feature: Feature) -> SearchHit:
    lng, lat = feature.first_coordinate
    return SearchHit(feature=feature, lat=lat, lng=lng)


def find_all_by_name(store: FeatureStore, term: str) -> List[SearchHit]:
    """Every feature whose name contains ``term``, case-insensitively, in id order."""
    needle = (term or "").strip().lower()
    if not needle:
        return []
    return [_hit(f) for f in store if f.named and needle in f.name.lower()]


def find_by_name(store: FeatureStore, term: str) -> Optional[SearchHit]:
    """First feature whose name contains ``term``, or None.

    Example:
        >>> hit = find_by_name(store, "tram")
        >>> hit.feature.name if hit else None
        'Tramway Line 1'
    """
    needle = (term or "").strip().lower()
    if not needle:
        return None
    for feature in store:
        if feature.named and needle in feature.name.lower():
            return _hit(feature)
    return None

"""Feature store for a loaded GeoJSON dataset.

Parses a FeatureCollection once, assigns each feature its input position
as a stable id, and derives the per-feature data the resolver needs:
normalized coordinates, bounding box, representative point and area.
Features that cannot be used are skipped and recorded as
``MalformedFeature`` diagnostics. A store is never mutated after load.
"""
from __future__ import annotations

import math
import time
from dataclasses import dataclass, field
from enum import Enum
from types import MappingProxyType
from typing import Any, Dict, Iterator, List, Mapping, Optional, Sequence, Tuple

from loguru import logger

from src.geography.polygons import (
    bounding_box,
    polygon_area,
    strip_closing_vertex,
    vertex_centroid,
)
from src.geography.validation import CoordinateError, first_position, normalize_coordinates

from .errors import InvalidQueryError
from .kdbush import DEFAULT_NODE_CAPACITY, IndexEntry, KDBushIndex
from .schema import collection_error, feature_error

Position = Tuple[float, float]
BBox = Tuple[float, float, float, float]

DEFAULT_NAME_KEYS = ("Name", "name", "NAME", "title")
UNNAMED = "unnamed"
# Features reaching further than this (degrees) from their representative
# point are kept out of the index padding and always tested by bbox.
DEFAULT_LARGE_REACH_DEG = 0.25


class GeometryType(str, Enum):
    POINT = "Point"
    LINE_STRING = "LineString"
    MULTI_LINE_STRING = "MultiLineString"
    POLYGON = "Polygon"
    MULTI_POLYGON = "MultiPolygon"

    @property
    def is_polygon(self) -> bool:
        return self in (GeometryType.POLYGON, GeometryType.MULTI_POLYGON)

    @property
    def is_line(self) -> bool:
        return self in (GeometryType.LINE_STRING, GeometryType.MULTI_LINE_STRING)


@dataclass(frozen=True)
class MalformedFeature:
    """Diagnostic for a feature skipped at load time."""

    index: int
    name: Optional[str]
    reason: str


@dataclass(frozen=True)
class Feature:
    """One loaded GeoJSON feature.

    Attributes:
        id: Position of the feature in the input collection.
        geometry_type: Tagged geometry kind.
        coordinates: Normalized ``(lng, lat)`` coordinates, nested per type.
        name: Resolved name, ``"unnamed"`` when no name property is present.
        properties: Read-only view of the raw properties.
        bbox: (min_lng, min_lat, max_lng, max_lat).
        representative_point: (lng, lat) used as the feature's index entry.
        representative_source: ``"point"``, ``"centroid"`` or ``"first_vertex"``.
        area: Planar area in square degrees, 0.0 for non-polygons.
        named: False when the name fell back to ``"unnamed"``.
    """

    id: int
    geometry_type: GeometryType
    coordinates: Any
    name: str
    properties: Mapping[str, Any] = field(repr=False)
    bbox: BBox = field(repr=False)
    representative_point: Position = field(repr=False)
    representative_source: str = field(default="centroid", repr=False)
    area: float = field(default=0.0, repr=False)
    named: bool = field(default=True, repr=False)

    @property
    def paths(self) -> Tuple[Tuple[Position, ...], ...]:
        """Polylines of a LineString/MultiLineString, empty otherwise."""
        if self.geometry_type is GeometryType.LINE_STRING:
            return (self.coordinates,)
        if self.geometry_type is GeometryType.MULTI_LINE_STRING:
            return self.coordinates
        return ()

    @property
    def polygons(self) -> Tuple[Tuple[Tuple[Position, ...], ...], ...]:
        """Ring lists of a Polygon/MultiPolygon, empty otherwise."""
        if self.geometry_type is GeometryType.POLYGON:
            return (self.coordinates,)
        if self.geometry_type is GeometryType.MULTI_POLYGON:
            return self.coordinates
        return ()

    @property
    def first_coordinate(self) -> Position:
        return first_position(self.geometry_type.value, self.coordinates)

    @property
    def reach(self) -> float:
        """Largest distance in degrees from the representative point to a bbox edge."""
        x, y = self.representative_point
        min_lng, min_lat, max_lng, max_lat = self.bbox
        return max(x - min_lng, max_lng - x, y - min_lat, max_lat - y, 0.0)


def feature_name(properties: Optional[Mapping[str, Any]],
                 name_keys: Sequence[str] = DEFAULT_NAME_KEYS) -> Optional[str]:
    """Return the first non-empty name property, or None."""
    if not properties:
        return None
    for key in name_keys:
        value = properties.get(key)
        if value is not None and str(value).strip():
            return str(value)
    return None


def _all_vertices(geometry_type: GeometryType, coordinates: Any) -> List[Position]:
    if geometry_type is GeometryType.POINT:
        return [coordinates]
    if geometry_type is GeometryType.LINE_STRING:
        return list(coordinates)
    if geometry_type is GeometryType.MULTI_LINE_STRING:
        return [p for path in coordinates for p in path]
    if geometry_type is GeometryType.POLYGON:
        return [p for ring in coordinates for p in strip_closing_vertex(ring)]
    return [p for rings in coordinates for ring in rings for p in strip_closing_vertex(ring)]


def representative_point(
    geometry_type: GeometryType, coordinates: Any
) -> Tuple[Optional[Position], str]:
    """Choose the point that stands in for a feature in the index.

    Points use their own coordinate. Other geometries use the mean of their
    vertices; when that mean is not finite the first vertex (the first
    ring's first vertex for polygons) is used instead.

    Returns:
        Tuple of (point, source) where source is ``"point"``, ``"centroid"``
        or ``"first_vertex"``. The point is None if no fallback is usable.
    """
    if geometry_type is GeometryType.POINT:
        return coordinates, "point"

    centroid = vertex_centroid(_all_vertices(geometry_type, coordinates))
    if math.isfinite(centroid[0]) and math.isfinite(centroid[1]):
        return centroid, "centroid"

    first = first_position(geometry_type.value, coordinates)
    if first is not None and math.isfinite(first[0]) and math.isfinite(first[1]):
        return first, "first_vertex"
    return None, "first_vertex"


def _area(geometry_type: GeometryType, coordinates: Any) -> float:
    if geometry_type is GeometryType.POLYGON:
        return polygon_area(coordinates)
    if geometry_type is GeometryType.MULTI_POLYGON:
        return sum(polygon_area(rings) for rings in coordinates)
    return 0.0


class FeatureStore:
    """Immutable collection of loaded features keyed by id.

    Attributes:
        diagnostics: MalformedFeature records for every skipped input feature.
        source_count: Number of features in the input collection.
        large_ids: Ids of features whose reach exceeds ``large_reach``.
        max_reach: Largest reach among the remaining features, in degrees.
    """

    def __init__(self, features: Sequence[Feature],
                 diagnostics: Sequence[MalformedFeature] = (),
                 source_count: Optional[int] = None,
                 large_reach: float = DEFAULT_LARGE_REACH_DEG):
        if not large_reach >= 0:
            raise InvalidQueryError(f"large_reach must be >= 0, got {large_reach!r}")
        self._features: Dict[int, Feature] = {f.id: f for f in features}
        self._order: Tuple[int, ...] = tuple(f.id for f in features)
        self.diagnostics: Tuple[MalformedFeature, ...] = tuple(diagnostics)
        self.source_count = len(features) if source_count is None else source_count
        self.large_reach = large_reach
        self.large_ids: Tuple[int, ...] = tuple(f.id for f in features if f.reach > large_reach)
        self.max_reach = max((f.reach for f in features if f.reach <= large_reach), default=0.0)

    @classmethod
    def load(cls, raw: Mapping[str, Any],
             name_keys: Sequence[str] = DEFAULT_NAME_KEYS,
             large_reach: float = DEFAULT_LARGE_REACH_DEG) -> "FeatureStore":
        """Parse a GeoJSON FeatureCollection into a store.

        Args:
            raw: Parsed FeatureCollection, ``{"features": [...]}``.
            name_keys: Property names tried in order to resolve a feature name.
            large_reach: Reach in degrees above which a feature is listed in
                ``large_ids`` instead of widening ``max_reach``.

        Returns:
            FeatureStore holding every usable feature. Skipped features are
            listed in ``store.diagnostics``.

        Raises:
            InvalidQueryError: If ``raw`` is not a FeatureCollection-shaped mapping.
        """
        error = collection_error(raw)
        if error is not None:
            raise InvalidQueryError(f"Not a GeoJSON FeatureCollection: {error}")

        started = time.perf_counter()
        raw_features = raw["features"]
        features: List[Feature] = []
        diagnostics: List[MalformedFeature] = []

        for index, raw_feature in enumerate(raw_features):
            properties = raw_feature.get("properties") if isinstance(raw_feature, dict) else None
            name = feature_name(properties if isinstance(properties, dict) else None, name_keys)

            def skip(reason: str) -> None:
                logger.warning(f"Skipping feature {index} ({name or UNNAMED}): {reason}")
                diagnostics.append(MalformedFeature(index=index, name=name, reason=reason))

            error = feature_error(raw_feature)
            if error is not None:
                skip(error)
                continue

            geometry = raw_feature["geometry"]
            geometry_type = GeometryType(geometry["type"])
            try:
                coordinates = normalize_coordinates(geometry_type.value, geometry["coordinates"])
            except CoordinateError as e:
                skip(str(e))
                continue

            point, source = representative_point(geometry_type, coordinates)
            if point is None:
                skip("no finite representative point")
                continue
            if source == "first_vertex":
                logger.warning(
                    f"Centroid not finite for feature {index} ({name or UNNAMED}); "
                    f"using first vertex {point}"
                )

            features.append(Feature(
                id=index,
                geometry_type=geometry_type,
                coordinates=coordinates,
                name=name or UNNAMED,
                properties=MappingProxyType(dict(properties or {})),
                bbox=bounding_box(coordinates),
                representative_point=point,
                representative_source=source,
                area=_area(geometry_type, coordinates),
                named=name is not None,
            ))

        store = cls(features, diagnostics, source_count=len(raw_features),
                    large_reach=large_reach)
        logger.info(
            f"Loaded {len(features)} of {len(raw_features)} features "
            f"({len(diagnostics)} skipped) in {time.perf_counter() - started:.3f}s"
        )
        return store

    def get(self, feature_id: int) -> Feature:
        """Return the feature with the given id.

        Raises:
            KeyError: If no loaded feature has that id.
        """
        return self._features[feature_id]

    def __len__(self) -> int:
        return len(self._order)

    def __iter__(self) -> Iterator[Feature]:
        return (self._features[i] for i in self._order)

    def __contains__(self, feature_id: object) -> bool:
        return feature_id in self._features

    @property
    def ids(self) -> Tuple[int, ...]:
        return self._order

    def index_entries(self) -> List[IndexEntry]:
        """One index entry per feature at its representative point."""
        return [
            IndexEntry(x=f.representative_point[0], y=f.representative_point[1], ref_id=f.id)
            for f in self
        ]

    def build_index(self, node_capacity: int = DEFAULT_NODE_CAPACITY) -> KDBushIndex:
        """Bulk-build a finished spatial index over this store."""
        return KDBushIndex.build(self.index_entries(), node_capacity)

"""Proximity resolver: nearest or containing feature for a query point.

A resolve call narrows the dataset to candidates with one index range
query, then runs exact geometry on those candidates only. Matches are
ranked in three tiers:

    1. polygon containment (smallest containing polygon wins)
    2. nearest Point feature within the threshold
    3. nearest LineString/MultiLineString within the threshold

The resolver holds no state between calls.
"""
from __future__ import annotations

import math
from dataclasses import asdict, dataclass
from enum import Enum
from typing import List, Optional, Tuple

from loguru import logger

from src.geography.distance import (
    EARTH_RADIUS_KM,
    cumulative_distance_along_line,
    nearest_point_on_path,
    position_distance,
)
from src.geography.polygons import bbox_intersects, point_in_multipolygon

from .config import DEGREES_PER_KM
from .errors import IndexNotBuiltError, InvalidQueryError
from .kdbush import KDBushIndex
from .store import Feature, FeatureStore, GeometryType

BBox = Tuple[float, float, float, float]

# Widening applied to the degree conversion so the search rectangle never
# falls short of the haversine threshold.
COVER_MARGIN = 1.05


@dataclass(frozen=True)
class QueryPoint:
    lat: float
    lng: float

    @property
    def position(self) -> Tuple[float, float]:
        """The point as a GeoJSON-ordered (lng, lat) tuple."""
        return (self.lng, self.lat)


class MatchKind(str, Enum):
    CONTAINS = "contains"
    NEAR_POINT = "nearPoint"
    NEAR_LINE = "nearLine"
    NONE = "none"


@dataclass(frozen=True)
class ProximityResult:
    """Outcome of one resolve call."""

    feature_id: Optional[int]
    name: Optional[str]
    distance_km: Optional[float]
    distance_along_line_km: Optional[float]
    match_kind: MatchKind

    @classmethod
    def none(cls) -> "ProximityResult":
        return cls(None, None, None, None, MatchKind.NONE)

    def to_dict(self) -> dict:
        out = asdict(self)
        out["match_kind"] = self.match_kind.value
        return out


def validate_query(query: QueryPoint, max_distance_km: float) -> Tuple[float, float, float]:
    """Check a query at the call boundary.

    Returns:
        Tuple of (lat, lng, max_distance_km) as floats.

    Raises:
        InvalidQueryError: If the threshold is not a finite number > 0 or the
            point has a non-finite coordinate.
    """
    if isinstance(max_distance_km, bool):
        raise InvalidQueryError(f"max_distance_km must be a number, got {max_distance_km!r}")
    try:
        threshold = float(max_distance_km)
        lat = float(query.lat)
        lng = float(query.lng)
    except (AttributeError, TypeError, ValueError) as e:
        raise InvalidQueryError(f"Invalid query {query!r} / {max_distance_km!r}: {e}") from e
    if not math.isfinite(threshold) or threshold <= 0:
        raise InvalidQueryError(f"max_distance_km must be a finite number > 0, got {max_distance_km!r}")
    if not (math.isfinite(lat) and math.isfinite(lng)):
        raise InvalidQueryError(f"Query point must have finite lat/lng, got ({lat}, {lng})")
    return lat, lng, threshold


def search_rectangle(
    lat: float,
    lng: float,
    max_distance_km: float,
    degrees_per_km: float = DEGREES_PER_KM,
    pad: float = 0.0,
) -> BBox:
    """Axis-aligned (lng, lat) rectangle around a point.

    The half-height is the larger of ``max_distance_km * degrees_per_km``
    and the arc the threshold spans on the sphere. The half-width is the
    widest longitude offset reached by the great circle of that radius,
    ``asin(sin(d / R) / cos(lat))``. Both are widened by ``COVER_MARGIN``.
    When the circle reaches a pole, or no longitude bound exists, the
    rectangle spans every longitude (infinite bounds). Finite bounds may
    run past +-180 degrees; see ``wrapped_rectangles``.

    Args:
        lat: Query latitude in degrees
        lng: Query longitude in degrees
        max_distance_km: Search radius in kilometers
        degrees_per_km: Degrees of latitude per kilometer
        pad: Extra degrees added on every side

    Returns:
        Tuple (min_lng, min_lat, max_lng, max_lat)
    """
    arc = min(max_distance_km / EARTH_RADIUS_KM, math.pi)
    half_height = max(max_distance_km * degrees_per_km, math.degrees(arc)) * COVER_MARGIN
    cos_lat = math.cos(math.radians(lat))
    if lat + half_height >= 90.0 or lat - half_height <= -90.0 or cos_lat <= 0:
        half_width = math.inf
    else:
        ratio = math.sin(arc) / cos_lat
        if ratio >= 1.0:
            half_width = math.inf
        else:
            half_width = math.degrees(math.asin(ratio)) * COVER_MARGIN
    return (
        lng - half_width - pad,
        lat - half_height - pad,
        lng + half_width + pad,
        lat + half_height + pad,
    )


def wrapped_rectangles(rect: BBox) -> List[BBox]:
    """The rectangle plus copies shifted across the antimeridian.

    Returns the rectangle itself plus a copy shifted by 360 degrees for
    each side that crosses -180/+180, so longitudes on the other side of
    the antimeridian are covered too.
    """
    min_lng, min_lat, max_lng, max_lat = rect
    rects = [rect]
    if not (math.isfinite(min_lng) and math.isfinite(max_lng)):
        return rects
    if min_lng < -180.0:
        rects.append((min_lng + 360.0, min_lat, max_lng + 360.0, max_lat))
    if max_lng > 180.0:
        rects.append((min_lng - 360.0, min_lat, max_lng - 360.0, max_lat))
    return rects


class ProximityResolver:
    """Resolves query points against one store/index pair.

    Attributes:
        store: Loaded features.
        index: Finished spatial index over the store's representative points.
        degrees_per_km: Degree conversion used to size the search rectangle.
    """

    def __init__(self, store: FeatureStore, index: KDBushIndex,
                 degrees_per_km: float = DEGREES_PER_KM):
        if store is None or index is None or not index.finished:
            raise IndexNotBuiltError("Resolver needs a loaded store and a finished index.")
        if not math.isfinite(degrees_per_km) or degrees_per_km <= 0:
            raise InvalidQueryError(f"degrees_per_km must be > 0, got {degrees_per_km!r}")
        self.store = store
        self.index = index
        self.degrees_per_km = degrees_per_km

    def candidates(self, query: QueryPoint, max_distance_km: float) -> List[Feature]:
        """Features whose bounding box reaches the search rectangle, in id order.

        The index is searched with the rectangle padded by the store's
        ``max_reach``; features too large for that padding are always
        considered. Both sides of the antimeridian are searched.
        """
        lat, lng, threshold = validate_query(query, max_distance_km)
        rects = wrapped_rectangles(search_rectangle(lat, lng, threshold, self.degrees_per_km))
        padded = search_rectangle(lat, lng, threshold, self.degrees_per_km,
                                  pad=self.store.max_reach)
        ids = set(self.store.large_ids)
        for part in wrapped_rectangles(padded):
            ids.update(self.index.range(*part))
        found = [self.store.get(i) for i in sorted(ids)]
        return [f for f in found if any(bbox_intersects(f.bbox, r) for r in rects)]

    def resolve(self, query: QueryPoint, max_distance_km: float) -> ProximityResult:
        """Find the feature containing or nearest to ``query``.

        Args:
            query: Point to resolve
            max_distance_km: Proximity threshold for point and line matches

        Returns:
            ProximityResult. ``match_kind`` is ``none`` and every other field
            is None when no feature qualifies.

        Raises:
            InvalidQueryError: For a non-positive threshold or non-finite point.
        """
        lat, lng, threshold = validate_query(query, max_distance_km)
        query = QueryPoint(lat, lng)
        candidates = self.candidates(query, threshold)
        if not candidates:
            return ProximityResult.none()

        p = query.position

        contained = self._containing(p, candidates)
        if contained is not None:
            return ProximityResult(contained.id, contained.name, 0.0, None, MatchKind.CONTAINS)

        point, point_distance = self._nearest_point(p, candidates, threshold)
        if point is not None:
            return ProximityResult(point.id, point.name, point_distance, None, MatchKind.NEAR_POINT)

        line, line_distance, path = self._nearest_line(p, candidates, threshold)
        if line is not None:
            along = cumulative_distance_along_line(path, p)
            return ProximityResult(line.id, line.name, line_distance, along, MatchKind.NEAR_LINE)

        return ProximityResult.none()

    def distance_to_feature(self, query: QueryPoint, feature_id: int) -> float:
        """Haversine km from the query to the feature's first coordinate."""
        feature = self.store.get(feature_id)
        return position_distance(query.position, feature.first_coordinate)

    def _containing(self, p, candidates: List[Feature]) -> Optional[Feature]:
        best: Optional[Feature] = None
        for feature in candidates:
            if not feature.geometry_type.is_polygon:
                continue
            try:
                inside = point_in_multipolygon(p, feature.polygons)
            except (ArithmeticError, TypeError, ValueError) as e:
                logger.warning(f"Skipping polygon {feature.id} ({feature.name}): {e}")
                continue
            if inside and (best is None or feature.area < best.area):
                best = feature
        return best

    def _nearest_point(self, p, candidates: List[Feature], threshold: float):
        best, best_distance = None, math.inf
        for feature in candidates:
            if feature.geometry_type is not GeometryType.POINT:
                continue
            distance = position_distance(p, feature.coordinates)
            if not math.isfinite(distance):
                logger.warning(f"Skipping point {feature.id} ({feature.name}): non-finite distance")
                continue
            if distance <= threshold and distance < best_distance:
                best, best_distance = feature, distance
        return best, best_distance

    def _nearest_line(self, p, candidates: List[Feature], threshold: float):
        best, best_distance, best_path = None, math.inf, None
        for feature in candidates:
            if not feature.geometry_type.is_line:
                continue
            for path in feature.paths:
                distance, _, _ = nearest_point_on_path(p, path)
                if not math.isfinite(distance):
                    logger.warning(f"Skipping line {feature.id} ({feature.name}): non-finite distance")
                    break
                if distance <= threshold and distance < best_distance:
                    best, best_distance, best_path = feature, distance, path
        return best, best_distance, best_path

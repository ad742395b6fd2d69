"""Distance calculation utilities for geographic coordinates.

This module contains the point, segment and polyline distance functions
used by the proximity resolver. Positions are ``(lng, lat)`` tuples in
GeoJSON order; the scalar functions take latitude first and say so in
their signatures.
"""

import math
from typing import Optional, Sequence, Tuple

Position = Tuple[float, float]

EARTH_RADIUS_KM = 6371.0


def haversine_distance(lat1: float, lon1: float, lat2: float, lon2: float) -> float:
    """
    Calculate the great circle distance between two points on Earth.

    Uses the Haversine formula to compute the shortest distance between
    two points on a sphere (Earth) given their latitude and longitude.

    Args:
        lat1 (float): Latitude of first point in decimal degrees
        lon1 (float): Longitude of first point in decimal degrees
        lat2 (float): Latitude of second point in decimal degrees
        lon2 (float): Longitude of second point in decimal degrees

    Returns:
        float: Distance in kilometers

    Example:
        >>> dist = haversine_distance(30.885, 30.625, 30.895, 30.625)
        >>> 1.0 < dist < 1.2
        True

    Formula:
        a = sin²(Δφ/2) + cos φ1 ⋅ cos φ2 ⋅ sin²(Δλ/2)
        c = 2 ⋅ atan2( √a, √(1−a) )
        d = R ⋅ c

    Where:
        φ is latitude, λ is longitude, R is earth's radius (6371 km)

    Performance:
        - Time Complexity: O(1)
        - Space Complexity: O(1)
    """
    lat1_rad = math.radians(lat1)
    lat2_rad = math.radians(lat2)

    dlat = lat2_rad - lat1_rad
    dlon = math.radians(lon2 - lon1)

    a = (math.sin(dlat / 2) ** 2 +
         math.cos(lat1_rad) * math.cos(lat2_rad) * math.sin(dlon / 2) ** 2)
    # Rounding can push a a hair past 1.0 for antipodal points
    a = min(1.0, a)

    c = 2 * math.atan2(math.sqrt(a), math.sqrt(1 - a))

    return EARTH_RADIUS_KM * c


def position_distance(p1: Position, p2: Position) -> float:
    """Haversine distance in km between two ``(lng, lat)`` positions."""
    return haversine_distance(p1[1], p1[0], p2[1], p2[0])


def bearing(lat1: float, lon1: float, lat2: float, lon2: float) -> float:
    """
    Calculate the initial great-circle bearing from point 1 to point 2.

    Args:
        lat1: Latitude of the start point in decimal degrees
        lon1: Longitude of the start point in decimal degrees
        lat2: Latitude of the end point in decimal degrees
        lon2: Longitude of the end point in decimal degrees

    Returns:
        float: Bearing in degrees clockwise from north, in [0, 360)

    Example:
        >>> round(bearing(0.0, 0.0, 1.0, 0.0))
        0
        >>> round(bearing(0.0, 0.0, 0.0, 1.0))
        90
    """
    phi1 = math.radians(lat1)
    phi2 = math.radians(lat2)
    dlon = math.radians(lon2 - lon1)

    y = math.sin(dlon) * math.cos(phi2)
    x = math.cos(phi1) * math.sin(phi2) - math.sin(phi1) * math.cos(phi2) * math.cos(dlon)

    return (math.degrees(math.atan2(y, x)) + 360.0) % 360.0


def closest_point_on_segment(p: Position, a: Position, b: Position) -> Position:
    """
    Project a point onto a segment in planar (lng, lat) space.

    The projection treats degrees as Cartesian units, which is adequate for
    segments spanning up to tens of kilometers. Callers that need a distance
    must measure it with ``haversine_distance`` on the returned point.

    Args:
        p: Point to project as (lng, lat)
        a: Segment start as (lng, lat)
        b: Segment end as (lng, lat)

    Returns:
        Position: ``a`` when the segment is degenerate or t < 0, ``b`` when
            t > 1, otherwise the interpolated point

    Example:
        >>> closest_point_on_segment((5.0, 2.0), (0.0, 0.0), (10.0, 0.0))
        (5.0, 0.0)
        >>> closest_point_on_segment((-5.0, 0.0), (0.0, 0.0), (10.0, 0.0))
        (0.0, 0.0)
    """
    ax, ay = a[0], a[1]
    dx = b[0] - ax
    dy = b[1] - ay

    length_sq = dx * dx + dy * dy
    if length_sq == 0:
        return (ax, ay)

    t = ((p[0] - ax) * dx + (p[1] - ay) * dy) / length_sq

    if t <= 0:
        return (ax, ay)
    if t >= 1:
        return (b[0], b[1])
    return (ax + t * dx, ay + t * dy)


def point_to_segment_distance(p: Position, a: Position, b: Position) -> float:
    """Distance in km from ``p`` to its planar projection on segment a→b."""
    return position_distance(p, closest_point_on_segment(p, a, b))


def nearest_point_on_path(
    p: Position, path: Sequence[Position]
) -> Tuple[float, int, Optional[Position]]:
    """
    Find the nearest projection of a point onto a polyline.

    Segments are scanned in path order and only a strictly smaller distance
    replaces the current best, so a projection landing on a shared vertex is
    attributed to the earlier segment.

    Args:
        p: Query point as (lng, lat)
        path: Ordered polyline vertices as (lng, lat)

    Returns:
        Tuple of (distance_km, segment_index, projection). For an empty path
        this is ``(math.inf, -1, None)``; for a single vertex the segment
        index is 0 and the projection is that vertex.
    """
    if not path:
        return math.inf, -1, None
    if len(path) == 1:
        only = (path[0][0], path[0][1])
        return position_distance(p, only), 0, only

    best_distance = math.inf
    best_index = -1
    best_point: Optional[Position] = None

    for i in range(len(path) - 1):
        projected = closest_point_on_segment(p, path[i], path[i + 1])
        distance = position_distance(p, projected)
        if distance < best_distance:
            best_distance = distance
            best_index = i
            best_point = projected

    return best_distance, best_index, best_point


def point_to_line_distance(p: Position, line: Sequence[Position]) -> float:
    """
    Calculate the minimum distance from a point to a polyline.

    Args:
        p: Query point as (lng, lat)
        line: Ordered polyline vertices as (lng, lat)

    Returns:
        float: Minimum over all segments of the haversine distance to the
            segment projection, in kilometers. ``math.inf`` for an empty line.
    """
    distance, _, _ = nearest_point_on_path(p, line)
    return distance


def cumulative_distance_along_line(path: Sequence[Position], target: Position) -> float:
    """
    Measure how far along a polyline the projection of ``target`` lies.

    Sums the haversine lengths of every segment before the one holding the
    closest projection, then adds the distance from that segment's start to
    the projection.

    Args:
        path: Ordered polyline vertices as (lng, lat)
        target: Point to project as (lng, lat)

    Returns:
        float: Distance in kilometers from the first vertex. ``math.inf`` for
            an empty path, 0.0 for a single vertex.

    Example:
        >>> path = [(0.0, 0.0), (0.01, 0.0), (0.03, 0.0)]
        >>> round(cumulative_distance_along_line(path, (0.02, 0.001)), 3)
        2.224

    Performance:
        - Time Complexity: O(n) where n is number of vertices
        - Space Complexity: O(1)
    """
    _, segment_index, projection = nearest_point_on_path(target, path)
    if projection is None:
        return math.inf
    if len(path) == 1:
        return 0.0

    travelled = 0.0
    for i in range(segment_index):
        travelled += position_distance(path[i], path[i + 1])

    return travelled + position_distance(path[segment_index], projection)

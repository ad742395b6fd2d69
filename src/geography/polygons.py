"""
Containment and extent utilities for GeoJSON polygon geometries.

This module contains the ray-casting containment test, planar polygon
area and bounding box helpers used to rank and pre-filter features.
Rings are sequences of ``(lng, lat)`` positions; a Polygon is a sequence
of rings where the first ring is the exterior and the rest are holes.
"""

import math
from typing import Any, Iterator, Optional, Sequence, Tuple

import numpy as np

Position = Tuple[float, float]
Ring = Sequence[Position]
BBox = Tuple[float, float, float, float]


def point_in_ring(p: Position, ring: Ring) -> bool:
    """
    Ray-casting point-in-ring test.

    Casts a horizontal ray from the point towards +lng and counts how many
    ring edges it crosses. An odd count means the point is inside. The ring
    may be open or closed; the closing edge is always considered.

    Args:
        p: Query point as (lng, lat)
        ring: Ring vertices as (lng, lat)

    Returns:
        bool: True if the point is inside the ring. Rings with fewer than
            three vertices never contain anything.

    Example:
        >>> square = [(0, 0), (1, 0), (1, 1), (0, 1), (0, 0)]
        >>> point_in_ring((0.5, 0.5), square)
        True
        >>> point_in_ring((1.5, 0.5), square)
        False
    """
    n = len(ring)
    if n < 3:
        return False

    px, py = p[0], p[1]
    inside = False
    j = n - 1
    for i in range(n):
        xi, yi = ring[i][0], ring[i][1]
        xj, yj = ring[j][0], ring[j][1]
        if ((yi > py) != (yj > py)) and (
            px < (xj - xi) * (py - yi) / (yj - yi) + xi
        ):
            inside = not inside
        j = i
    return inside


def point_in_polygon(p: Position, rings: Sequence[Ring]) -> bool:
    """
    Test containment against a Polygon's rings.

    The point must fall inside the exterior ring and outside every hole.

    Args:
        p: Query point as (lng, lat)
        rings: Polygon rings, exterior first

    Returns:
        bool: True if the point is inside the polygon area
    """
    if not rings or not point_in_ring(p, rings[0]):
        return False
    return not any(point_in_ring(p, hole) for hole in rings[1:])


def point_in_multipolygon(p: Position, polygons: Sequence[Sequence[Ring]]) -> bool:
    """True if the point lies inside any member polygon."""
    return any(point_in_polygon(p, rings) for rings in polygons)


def ring_area(ring: Ring) -> float:
    """Unsigned shoelace area of a ring in square degrees."""
    n = len(ring)
    if n < 3:
        return 0.0
    total = 0.0
    for i in range(n):
        x1, y1 = ring[i][0], ring[i][1]
        x2, y2 = ring[(i + 1) % n][0], ring[(i + 1) % n][1]
        total += x1 * y2 - x2 * y1
    return abs(total) / 2.0


def polygon_area(rings: Sequence[Ring]) -> float:
    """
    Planar area of a polygon in square degrees, holes subtracted.

    Only used to compare polygons that all contain the same query point,
    so the planar degree approximation ranks them consistently.
    """
    if not rings:
        return 0.0
    area = ring_area(rings[0]) - sum(ring_area(hole) for hole in rings[1:])
    return max(area, 0.0)


def iter_positions(coordinates: Any) -> Iterator[Position]:
    """Yield every (lng, lat) pair reachable in a nested coordinate array."""
    if not coordinates:
        return
    first = coordinates[0]
    if isinstance(first, (int, float)):
        yield (coordinates[0], coordinates[1])
        return
    for child in coordinates:
        yield from iter_positions(child)


def bounding_box(coordinates: Any) -> Optional[BBox]:
    """
    Compute the bounding box of a (possibly nested) coordinate structure.

    Args:
        coordinates: A position, or any nesting of positions as found in
            GeoJSON ``coordinates`` members

    Returns:
        Tuple (min_lng, min_lat, max_lng, max_lat), or None when the
        structure holds no positions.

    Example:
        >>> bounding_box([[0, 1], [2, -1], [1, 3]])
        (0, -1, 2, 3)
    """
    min_lng = min_lat = math.inf
    max_lng = max_lat = -math.inf
    found = False
    for lng, lat in iter_positions(coordinates):
        found = True
        if lng < min_lng:
            min_lng = lng
        if lng > max_lng:
            max_lng = lng
        if lat < min_lat:
            min_lat = lat
        if lat > max_lat:
            max_lat = lat
    if not found:
        return None
    return (min_lng, min_lat, max_lng, max_lat)


def bbox_intersects(a: BBox, b: BBox) -> bool:
    """True if two closed bounding boxes overlap or touch."""
    return a[0] <= b[2] and b[0] <= a[2] and a[1] <= b[3] and b[1] <= a[3]


def vertex_centroid(positions: Sequence[Position]) -> Position:
    """
    Mean of a set of vertices.

    Overflow is not raised: an overflowing sum yields a non-finite result
    that callers check with ``math.isfinite``.

    Returns:
        Position: (lng, lat) mean, or (nan, nan) for an empty input
    """
    if not positions:
        return (math.nan, math.nan)
    arr = np.asarray(positions, dtype=np.float64)
    with np.errstate(over="ignore", invalid="ignore"):
        mean = arr.mean(axis=0)
    return (float(mean[0]), float(mean[1]))


def strip_closing_vertex(ring: Ring) -> Ring:
    """Drop the repeated closing vertex of a closed ring."""
    if len(ring) > 1 and ring[0][0] == ring[-1][0] and ring[0][1] == ring[-1][1]:
        return ring[:-1]
    return ring

"""Geographic validation utilities for GeoJSON coordinates.

This module contains functions for checking that raw GeoJSON coordinate
arrays are well formed and finite, and for normalizing them into nested
tuples of ``(lng, lat)`` positions. Altitude and any further members of
a position are dropped.
"""

import math
from typing import Any, List, Optional, Tuple

Position = Tuple[float, float]


class CoordinateError(ValueError):
    """Raised when a coordinate array is empty, mis-nested or non-finite."""


def is_number(value: Any) -> bool:
    """True for int/float values that are not booleans."""
    return isinstance(value, (int, float)) and not isinstance(value, bool)


def is_finite_position(value: Any) -> bool:
    """Determine if a value is a GeoJSON position with finite lng and lat.

    Args:
        value: Candidate position, e.g. ``[30.62, 30.88]``

    Returns:
        True if the value is a sequence of at least two finite numbers

    Example:
        >>> is_finite_position([30.62, 30.88])
        True
        >>> is_finite_position([float("nan"), 30.88])
        False
    """
    if not isinstance(value, (list, tuple)) or len(value) < 2:
        return False
    lng, lat = value[0], value[1]
    return (is_number(lng) and is_number(lat)
            and math.isfinite(lng) and math.isfinite(lat))


def normalize_position(value: Any) -> Position:
    if (not isinstance(value, (list, tuple)) or len(value) < 2
            or not (is_number(value[0]) and is_number(value[1]))):
        raise CoordinateError(f"expected a position, got {value!r}")
    if not is_finite_position(value):
        raise CoordinateError(f"non-finite position {list(value[:2])!r}")
    return (float(value[0]), float(value[1]))


def normalize_path(value: Any, min_positions: int = 1) -> Tuple[Position, ...]:
    """Normalize a sequence of positions (a LineString or a ring).

    Args:
        value: Raw coordinate array
        min_positions: Minimum number of positions required

    Returns:
        Tuple of (lng, lat) positions

    Raises:
        CoordinateError: If the array is not a list of positions, is shorter
            than ``min_positions`` or holds a non-finite value
    """
    if not isinstance(value, (list, tuple)):
        raise CoordinateError(f"expected an array of positions, got {type(value).__name__}")
    if len(value) < min_positions:
        if not value:
            raise CoordinateError("empty coordinates")
        raise CoordinateError(
            f"expected at least {min_positions} positions, got {len(value)}"
        )
    return tuple(normalize_position(item) for item in value)


def normalize_multi(value: Any, min_positions: int = 1) -> Tuple[Tuple[Position, ...], ...]:
    """Normalize an array of paths, dropping empty members.

    Raises:
        CoordinateError: If no non-empty member remains or a member is invalid
    """
    if not isinstance(value, (list, tuple)):
        raise CoordinateError(f"expected an array of arrays, got {type(value).__name__}")
    parts: List[Tuple[Position, ...]] = []
    for item in value:
        if isinstance(item, (list, tuple)) and not item:
            continue
        parts.append(normalize_path(item, min_positions))
    if not parts:
        raise CoordinateError("empty coordinates")
    return tuple(parts)


def normalize_polygon(value: Any) -> Tuple[Tuple[Position, ...], ...]:
    """Normalize Polygon rings. The exterior ring needs three vertices."""
    if isinstance(value, (list, tuple)) and value \
            and isinstance(value[0], (list, tuple)) and not value[0]:
        raise CoordinateError("empty exterior ring")
    rings = normalize_multi(value, min_positions=1)
    if len(rings[0]) < 3:
        raise CoordinateError(
            f"exterior ring needs at least 3 positions, got {len(rings[0])}"
        )
    return rings


def normalize_coordinates(geometry_type: str, coordinates: Any) -> Any:
    """Normalize raw coordinates for one of the supported geometry types.

    Args:
        geometry_type: GeoJSON geometry type string
        coordinates: Raw ``coordinates`` member

    Returns:
        Position for Point, tuple of positions for LineString, tuple of
        paths for MultiLineString, tuple of rings for Polygon and tuple of
        polygons for MultiPolygon

    Raises:
        CoordinateError: If the coordinates are empty, mis-nested or non-finite
    """
    if geometry_type == "Point":
        if isinstance(coordinates, (list, tuple)) and not coordinates:
            raise CoordinateError("empty coordinates")
        return normalize_position(coordinates)
    if geometry_type == "LineString":
        return normalize_path(coordinates)
    if geometry_type == "MultiLineString":
        return normalize_multi(coordinates)
    if geometry_type == "Polygon":
        return normalize_polygon(coordinates)
    if geometry_type == "MultiPolygon":
        if not isinstance(coordinates, (list, tuple)):
            raise CoordinateError(f"expected an array of polygons, got {type(coordinates).__name__}")
        polygons = []
        for item in coordinates:
            if isinstance(item, (list, tuple)) and not item:
                continue
            polygons.append(normalize_polygon(item))
        if not polygons:
            raise CoordinateError("empty coordinates")
        return tuple(polygons)
    raise CoordinateError(f"unsupported geometry type {geometry_type!r}")


def first_position(geometry_type: str, coordinates: Any) -> Optional[Position]:
    """First vertex of normalized coordinates (first ring's first vertex for polygons)."""
    if geometry_type == "Point":
        return coordinates
    if geometry_type == "LineString":
        return coordinates[0] if coordinates else None
    if geometry_type in ("MultiLineString", "Polygon"):
        return coordinates[0][0] if coordinates and coordinates[0] else None
    if geometry_type == "MultiPolygon":
        if coordinates and coordinates[0] and coordinates[0][0]:
            return coordinates[0][0][0]
    return None

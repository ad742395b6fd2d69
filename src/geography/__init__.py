"""Geography module for proximity resolution.

This module contains the geometric primitives used to resolve which
GeoJSON feature is nearest to, or contains, a query point.

Modules:
    distance: Haversine, segment projection and polyline distance functions
    polygons: Ray-casting containment, polygon area and bounding boxes
    validation: Coordinate validation and normalization

Functions:
    haversine_distance: Great circle distance in kilometers
    bearing: Initial great circle bearing in degrees
    closest_point_on_segment: Planar projection clamped to a segment
    point_to_line_distance: Minimum distance from a point to a polyline
    cumulative_distance_along_line: Path length up to a point's projection
    point_in_polygon: Hole-aware ray-casting containment
    bounding_box: Extent of a nested coordinate structure
"""

from .distance import (
    haversine_distance,
    position_distance,
    bearing,
    closest_point_on_segment,
    point_to_segment_distance,
    nearest_point_on_path,
    point_to_line_distance,
    cumulative_distance_along_line,
)

from .polygons import (
    point_in_ring,
    point_in_polygon,
    point_in_multipolygon,
    polygon_area,
    bounding_box,
    bbox_intersects,
    vertex_centroid,
)

from .validation import (
    CoordinateError,
    is_finite_position,
    normalize_coordinates,
    first_position,
)

__all__ = [
    'haversine_distance',
    'position_distance',
    'bearing',
    'closest_point_on_segment',
    'point_to_segment_distance',
    'nearest_point_on_path',
    'point_to_line_distance',
    'cumulative_distance_along_line',
    'point_in_ring',
    'point_in_polygon',
    'point_in_multipolygon',
    'polygon_area',
    'bounding_box',
    'bbox_intersects',
    'vertex_centroid',
    'CoordinateError',
    'is_finite_position',
    'normalize_coordinates',
    'first_position',
]

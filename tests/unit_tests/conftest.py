"""Pytest fixtures for proximity unit tests.

This module provides shared fixtures for testing geometry primitives,
the spatial index, the feature store and the resolver in isolation.
"""

import math

import pytest
from loguru import logger


# Kilometers per degree of arc on a 6371 km sphere
KM_PER_DEG = 6371.0 * math.pi / 180.0


def square(min_lng, min_lat, max_lng, max_lat):
    """Closed counter-clockwise ring for an axis-aligned rectangle."""
    return [
        [min_lng, min_lat],
        [max_lng, min_lat],
        [max_lng, max_lat],
        [min_lng, max_lat],
        [min_lng, min_lat],
    ]


def feature(geometry_type, coordinates, **properties):
    return {
        "type": "Feature",
        "properties": properties,
        "geometry": {"type": geometry_type, "coordinates": coordinates},
    }


@pytest.fixture
def km_per_deg():
    """Kilometers per degree of arc used by the haversine functions."""
    return KM_PER_DEG


@pytest.fixture
def sample_geojson():
    """Small dataset around (30.88N, 30.62E) with every geometry type.

    Ids (input order):
        0 District A   Polygon, lng 30.60-30.64, lat 30.87-30.90
        1 Block A1     Polygon inside District A
        2 Canal B      LineString along lng 30.645
        3 Station C    Point at (30.95N, 30.70E)
        4 Road D       LineString along lat 30.94 under Station C
        5 Long Rail E  LineString along lat 31.5 from 29E to 32E
        6 Twin Lakes   MultiPolygon of two squares
        7 Tram Lines   MultiLineString of two parallel lines
    """
    return {
        "type": "FeatureCollection",
        "features": [
            feature("Polygon", [square(30.60, 30.87, 30.64, 30.90)], name="District A"),
            feature("Polygon", [square(30.615, 30.880, 30.625, 30.885)], name="Block A1"),
            feature("LineString", [[30.645, 30.86], [30.645, 30.91]], Name="Canal B"),
            feature("Point", [30.70, 30.95], name="Station C"),
            feature("LineString", [[30.69, 30.94], [30.71, 30.94]], name="Road D"),
            feature("LineString",
                    [[29.0, 31.5], [30.0, 31.5], [31.0, 31.5], [32.0, 31.5]],
                    title="Long Rail E"),
            feature("MultiPolygon", [
                [square(30.80, 30.80, 30.81, 30.81)],
                [square(30.83, 30.80, 30.84, 30.81)],
            ], NAME="Twin Lakes"),
            feature("MultiLineString", [
                [[30.50, 30.70], [30.52, 30.70]],
                [[30.50, 30.72], [30.52, 30.72]],
            ], name="Tram Lines"),
        ],
    }


@pytest.fixture
def polygon_with_hole():
    """Polygon rings: 10x10 square with a 2x2 hole in the middle."""
    return [
        [(0.0, 0.0), (10.0, 0.0), (10.0, 10.0), (0.0, 10.0), (0.0, 0.0)],
        [(4.0, 4.0), (6.0, 4.0), (6.0, 6.0), (4.0, 6.0), (4.0, 4.0)],
    ]


@pytest.fixture
def log_messages():
    """Capture loguru messages at WARNING and above."""
    messages = []
    handler_id = logger.add(lambda m: messages.append(m.record["message"]), level="WARNING")
    yield messages
    logger.remove(handler_id)

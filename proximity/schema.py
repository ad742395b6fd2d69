"""JSON Schema for the structure of GeoJSON features.

Only the shape needed to dispatch on geometry type is checked here;
coordinate finiteness and nesting depth are checked by
``src.geography.validation``.
"""

from __future__ import annotations

from jsonschema import Draft202012Validator
from jsonschema.exceptions import best_match

GEOMETRY_TYPES = ("Point", "LineString", "MultiLineString", "Polygon", "MultiPolygon")

FEATURE_SCHEMA = {
    "$schema": "https://json-schema.org/draft/2020-12/schema",
    "title": "GeoJSON Feature",
    "type": "object",
    "required": ["geometry"],
    "properties": {
        "properties": {"type": ["object", "null"]},
        "geometry": {
            "type": "object",
            "required": ["type", "coordinates"],
            "properties": {
                "type": {"enum": list(GEOMETRY_TYPES)},
                "coordinates": {"type": "array"},
            },
        },
    },
}

FEATURE_COLLECTION_SCHEMA = {
    "$schema": "https://json-schema.org/draft/2020-12/schema",
    "title": "GeoJSON FeatureCollection",
    "type": "object",
    "required": ["features"],
    "properties": {"features": {"type": "array"}},
}

_feature_validator = Draft202012Validator(FEATURE_SCHEMA)
_collection_validator = Draft202012Validator(FEATURE_COLLECTION_SCHEMA)


def feature_error(feature) -> str | None:
    """Return the most relevant schema error message for a feature, or None."""
    error = best_match(_feature_validator.iter_errors(feature))
    if error is None:
        return None
    location = "/".join(str(part) for part in error.absolute_path)
    return f"{location}: {error.message}" if location else error.message


def collection_error(collection) -> str | None:
    """Return the schema error message for a FeatureCollection, or None."""
    error = best_match(_collection_validator.iter_errors(collection))
    return None if error is None else error.message

"""Error taxonomy for proximity resolution.

Malformed features are never raised; they are recorded as
``proximity.store.MalformedFeature`` diagnostics.
"""


class ProximityError(Exception):
    """Base class for proximity resolution errors."""


class InvalidQueryError(ProximityError, ValueError):
    """A caller passed an unusable threshold, query point or setting."""


class IndexNotBuiltError(ProximityError, RuntimeError):
    """A spatial index or dataset was used before it was fully built."""

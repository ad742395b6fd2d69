"""Configuration management for proximity resolution.

Provides default resolver, index and scheduler settings and loading
utilities that merge a JSON file over them.
"""
from __future__ import annotations

import copy
import json
import math
import pathlib
from dataclasses import dataclass

from .errors import InvalidQueryError

DEGREES_PER_KM = 1 / 111.32

_DEFAULT = {
    "resolver": {
        "max_distance_km": 20.0,
        "degrees_per_km": DEGREES_PER_KM,
    },
    "index": {"node_capacity": 64, "large_feature_reach_deg": 0.25},
    "scheduler": {"quiet_period_s": 0.15},
    "search": {"name_keys": ["Name", "name", "NAME", "title"]},
}


def default_config() -> dict:
    """Return a fresh copy of the default configuration."""
    return copy.deepcopy(_DEFAULT)


def load_config(path: str | pathlib.Path | None = None) -> dict:
    """Load proximity configuration from JSON file.

    Loads user configuration file and merges with default configuration.
    User values override defaults for matching keys; nested sections are
    updated, not replaced.

    Args:
        path: Path to configuration JSON file. If None or file doesn't exist,
            returns default configuration.

    Returns:
        dict: Merged configuration dictionary.
    """
    merged = default_config()
    p = pathlib.Path(path) if path else None
    if p and p.exists():
        with p.open("r", encoding="utf-8") as f:
            user = json.load(f)
        for k, v in user.items():
            if isinstance(v, dict) and isinstance(merged.get(k), dict):
                merged[k].update(v)
            else:
                merged[k] = v
    return merged


def _positive(name: str, value) -> float:
    try:
        number = float(value)
    except (TypeError, ValueError):
        raise InvalidQueryError(f"{name} must be a number, got {value!r}")
    if not math.isfinite(number) or number <= 0:
        raise InvalidQueryError(f"{name} must be a finite number > 0, got {value!r}")
    return number


@dataclass(frozen=True)
class ResolverSettings:
    """Validated settings consumed by the index and resolver."""

    max_distance_km: float = 20.0
    degrees_per_km: float = DEGREES_PER_KM
    node_capacity: int = 64
    quiet_period_s: float = 0.15
    large_feature_reach_deg: float = 0.25
    name_keys: tuple = ("Name", "name", "NAME", "title")

    def __post_init__(self):
        _positive("max_distance_km", self.max_distance_km)
        _positive("degrees_per_km", self.degrees_per_km)
        if isinstance(self.node_capacity, bool) or not isinstance(self.node_capacity, int) \
                or self.node_capacity < 1:
            raise InvalidQueryError(
                f"node_capacity must be an integer >= 1, got {self.node_capacity!r}"
            )
        if self.quiet_period_s < 0:
            raise InvalidQueryError(
                f"quiet_period_s must be >= 0, got {self.quiet_period_s!r}"
            )
        reach = self.large_feature_reach_deg
        if isinstance(reach, bool) or not isinstance(reach, (int, float)) or not reach >= 0:
            raise InvalidQueryError(
                f"large_feature_reach_deg must be a number >= 0, got {reach!r}"
            )

    @classmethod
    def from_config(cls, cfg: dict | None = None) -> "ResolverSettings":
        """Build settings from a configuration dict as returned by load_config."""
        cfg = cfg or default_config()
        resolver = cfg.get("resolver", {})
        index = cfg.get("index", {})
        scheduler = cfg.get("scheduler", {})
        search = cfg.get("search", {})
        return cls(
            max_distance_km=_positive(
                "max_distance_km", resolver.get("max_distance_km", 20.0)
            ),
            degrees_per_km=_positive(
                "degrees_per_km", resolver.get("degrees_per_km", DEGREES_PER_KM)
            ),
            node_capacity=index.get("node_capacity", 64),
            large_feature_reach_deg=index.get("large_feature_reach_deg", 0.25),
            quiet_period_s=float(scheduler.get("quiet_period_s", 0.15)),
            name_keys=tuple(search.get("name_keys", ("Name", "name", "NAME", "title"))),
        )

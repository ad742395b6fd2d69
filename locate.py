#!/usr/bin/env python3
"""Resolve points against a GeoJSON dataset from the command line.

Loads a FeatureCollection, builds the spatial index, and prints the
feature that contains or lies nearest to each query point as JSON.

Usage:
    # One point
    python locate.py --geojson d_wgs84.json --lat 30.885 --lng 30.625

    # A batch of points, one {"lat": .., "lng": ..} object per line
    python locate.py --geojson d_wgs84.json --points points.jsonl

    # Search by name instead of resolving
    python locate.py --geojson d_wgs84.json --search "tram"
"""

import argparse
import json
import sys
from typing import List, Optional

from proximity import (
    InvalidQueryError,
    QueryPoint,
    find_all_by_name,
    make_service,
)


def _read_json(path: str):
    with open(path, "r", encoding="utf-8") as f:
        return json.load(f)


def _read_points(path: str) -> List[QueryPoint]:
    points = []
    with open(path, "r", encoding="utf-8") as f:
        for line in f:
            line = line.strip()
            if not line:
                continue
            row = json.loads(line)
            points.append(QueryPoint(lat=row["lat"], lng=row["lng"]))
    return points


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        description="Find the GeoJSON feature containing or nearest to a point"
    )
    parser.add_argument("--geojson", required=True,
                        help="Path to a GeoJSON FeatureCollection file")
    parser.add_argument("--lat", type=float, help="Query latitude in degrees")
    parser.add_argument("--lng", type=float, help="Query longitude in degrees")
    parser.add_argument("--points",
                        help="Path to a JSONL file of {\"lat\": .., \"lng\": ..} query points")
    parser.add_argument("--search", help="Print features whose name contains this text")
    parser.add_argument("--max-distance-km", type=float, default=None,
                        help="Proximity threshold in km (default: from config, 20.0)")
    parser.add_argument("--config", default=None,
                        help="Optional JSON configuration file")
    return parser


def main(argv: Optional[List[str]] = None) -> int:
    """Run the command line tool.

    Returns:
        Process exit code: 0 on success, 1 on unreadable input, 2 on bad
        arguments.
    """
    parser = build_parser()
    args = parser.parse_args(argv)

    if args.search is None and args.points is None and (args.lat is None or args.lng is None):
        parser.error("give --lat and --lng, --points, or --search")

    try:
        geojson = _read_json(args.geojson)
    except (OSError, json.JSONDecodeError) as e:
        print(f"[ERROR] Failed to load GeoJSON: {e}", file=sys.stderr)
        return 1

    try:
        service = make_service(geojson, config_path=args.config)
    except (InvalidQueryError, json.JSONDecodeError) as e:
        print(f"[ERROR] Failed to build dataset: {e}", file=sys.stderr)
        return 1

    store = service.snapshot.store
    print(f"[INFO] Loaded {len(store)} features ({len(store.diagnostics)} skipped)",
          file=sys.stderr)
    for diag in store.diagnostics:
        print(f"[WARN] feature {diag.index}: {diag.reason}", file=sys.stderr)

    if args.search is not None:
        for hit in find_all_by_name(store, args.search):
            print(json.dumps({
                "feature_id": hit.feature.id,
                "name": hit.feature.name,
                "lat": hit.lat,
                "lng": hit.lng,
            }, ensure_ascii=False))
        return 0

    if args.points is not None:
        try:
            points = _read_points(args.points)
        except (OSError, json.JSONDecodeError, KeyError) as e:
            print(f"[ERROR] Failed to load points: {e}", file=sys.stderr)
            return 1
    else:
        points = [QueryPoint(lat=args.lat, lng=args.lng)]

    for point in points:
        try:
            result = service.resolve(point, args.max_distance_km)
        except InvalidQueryError as e:
            print(f"[ERROR] {e}", file=sys.stderr)
            return 2
        print(json.dumps(result.to_dict(), ensure_ascii=False))
    return 0


if __name__ == "__main__":
    sys.exit(main())

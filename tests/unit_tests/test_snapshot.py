"""Unit tests for proximity.snapshot module and the make_service factory."""

import json
import threading

import pytest

import proximity.snapshot as snapshot_module
from proximity import make_service
from proximity.config import ResolverSettings
from proximity.errors import IndexNotBuiltError, InvalidQueryError
from proximity.resolver import MatchKind, QueryPoint
from proximity.snapshot import DatasetSnapshot, ProximityService


def point_dataset(name, lng, lat):
    return {"type": "FeatureCollection", "features": [{
        "properties": {"name": name},
        "geometry": {"type": "Point", "coordinates": [lng, lat]},
    }]}


class TestDatasetSnapshot:
    """Test suite for DatasetSnapshot.build."""

    def test_build(self, sample_geojson):
        """Test a snapshot bundles a store, a finished index and a resolver."""
        snapshot = DatasetSnapshot.build(sample_geojson, ResolverSettings(node_capacity=4), version=3)

        assert snapshot.version == 3
        assert snapshot.index.finished
        assert len(snapshot.index) == len(snapshot.store) == 8
        assert snapshot.resolver.store is snapshot.store

    def test_uses_name_keys(self):
        """Test configured name keys reach the store."""
        raw = {"features": [{"properties": {"label": "L"},
                             "geometry": {"type": "Point", "coordinates": [0, 0]}}]}

        snapshot = DatasetSnapshot.build(raw, ResolverSettings(name_keys=("label",)))

        assert snapshot.store.get(0).name == "L"


class TestProximityService:
    """Test suite for ProximityService.

    Tests load/reload, default thresholds, and that a reader never sees a
    half-built dataset.
    """

    def test_resolve_before_load(self):
        """Test resolving without a dataset raises IndexNotBuiltError."""
        service = ProximityService()

        assert service.loaded is False
        with pytest.raises(IndexNotBuiltError):
            service.resolve(QueryPoint(0.0, 0.0))

    def test_default_threshold(self, sample_geojson):
        """Test the configured max distance is used when none is given."""
        service = ProximityService(ResolverSettings(max_distance_km=0.5))
        service.load(sample_geojson)

        result = service.resolve(QueryPoint(lat=30.942, lng=30.70))

        assert result.match_kind is MatchKind.NEAR_LINE
        assert result.name == "Road D"
        assert service.resolve(QueryPoint(lat=30.942, lng=30.70), 2.0).name == "Station C"

    def test_reload_replaces_dataset(self):
        """Test reload swaps in the new dataset and bumps the version."""
        service = ProximityService()
        first = service.load(point_dataset("Old", 0.0, 0.0))

        second = service.reload(point_dataset("New", 0.0, 0.0))

        assert (first.version, second.version) == (1, 2)
        assert service.snapshot is second
        assert service.resolve(QueryPoint(0.0, 0.0), 1.0).name == "New"

    def test_failed_reload_keeps_previous(self):
        """Test a rejected dataset leaves the current snapshot in place."""
        service = ProximityService()
        service.load(point_dataset("Old", 0.0, 0.0))

        with pytest.raises(InvalidQueryError):
            service.reload({"features": "not a list"})

        assert service.resolve(QueryPoint(0.0, 0.0), 1.0).name == "Old"

    def test_readers_see_old_until_swap(self, monkeypatch):
        """Test queries during a reload are answered from the old snapshot."""
        service = ProximityService()
        service.load(point_dataset("Old", 0.0, 0.0))

        building = threading.Event()
        release = threading.Event()
        original_load = snapshot_module.FeatureStore.load

        def slow_load(raw, **kwargs):
            building.set()
            release.wait(timeout=5)
            return original_load(raw, **kwargs)

        monkeypatch.setattr(snapshot_module.FeatureStore, "load", staticmethod(slow_load))

        worker = threading.Thread(target=service.reload, args=(point_dataset("New", 0.0, 0.0),))
        worker.start()
        assert building.wait(timeout=5)

        during = service.resolve(QueryPoint(0.0, 0.0), 1.0)
        release.set()
        worker.join(timeout=5)
        after = service.resolve(QueryPoint(0.0, 0.0), 1.0)

        assert during.name == "Old"
        assert after.name == "New"

    def test_stale_build_does_not_overwrite_newer(self, monkeypatch):
        """Test a reload that started first but finished last is discarded."""
        service = ProximityService()
        service.load(point_dataset("Initial", 0.0, 0.0))
        stale = point_dataset("Stale", 0.0, 0.0)

        building = threading.Event()
        release = threading.Event()
        original_load = snapshot_module.FeatureStore.load

        def slow_load(raw, **kwargs):
            if raw is stale:
                building.set()
                release.wait(timeout=5)
            return original_load(raw, **kwargs)

        monkeypatch.setattr(snapshot_module.FeatureStore, "load", staticmethod(slow_load))

        outcome = {}
        worker = threading.Thread(target=lambda: outcome.update(snapshot=service.reload(stale)))
        worker.start()
        assert building.wait(timeout=5)

        newer = service.reload(point_dataset("Fresh", 0.0, 0.0))
        release.set()
        worker.join(timeout=5)

        assert (newer.version, service.snapshot.version) == (3, 3)
        assert outcome["snapshot"] is newer
        assert service.resolve(QueryPoint(0.0, 0.0), 1.0).name == "Fresh"

    def test_large_feature_setting_reaches_store(self, sample_geojson):
        """Test the large-feature threshold is passed to the store."""
        service = ProximityService(ResolverSettings(large_feature_reach_deg=2.0))

        snapshot = service.load(sample_geojson)

        assert snapshot.store.large_ids == ()


class TestMakeService:
    """Test suite for the make_service factory."""

    def test_unloaded(self):
        """Test a service without a dataset."""
        service = make_service()

        assert service.loaded is False
        assert service.settings == ResolverSettings()

    def test_loaded_with_overrides(self, sample_geojson):
        """Test keyword overrides win over defaults."""
        service = make_service(sample_geojson, node_capacity=2, max_distance_km=1.0)

        assert service.settings.node_capacity == 2
        assert service.settings.max_distance_km == 1.0
        assert service.resolve(QueryPoint(lat=30.88, lng=30.65)).name == "Canal B"

    def test_config_file(self, tmp_path):
        """Test settings are read from a config file."""
        config_file = tmp_path / "proximity.json"
        config_file.write_text(json.dumps({"resolver": {"max_distance_km": 3.0}}), encoding="utf-8")

        service = make_service(config_path=str(config_file))

        assert service.settings.max_distance_km == 3.0

    def test_invalid_override(self):
        """Test a bad override is rejected."""
        with pytest.raises(InvalidQueryError):
            make_service(max_distance_km=-1.0)

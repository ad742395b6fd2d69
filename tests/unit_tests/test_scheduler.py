"""Unit tests for proximity.scheduler module."""

import pytest

from proximity.resolver import MatchKind, ProximityResult, QueryPoint
from proximity.scheduler import DEFAULT_QUIET_PERIOD_S, UpdateScheduler


class FakeClock:
    """Manually advanced monotonic clock."""

    def __init__(self):
        self.now = 100.0

    def __call__(self):
        return self.now

    def advance(self, seconds):
        self.now += seconds


@pytest.fixture
def clock():
    return FakeClock()


@pytest.fixture
def calls():
    return []


@pytest.fixture
def scheduler(clock, calls):
    def resolve(point):
        calls.append(point)
        return ProximityResult(len(calls), f"hit {len(calls)}", 0.0, None, MatchKind.CONTAINS)

    return UpdateScheduler(resolve, quiet_period_s=0.15, clock=clock)


class TestUpdateScheduler:
    """Test suite for UpdateScheduler.

    Uses a fake clock so debounce timing is deterministic.
    """

    def test_default_quiet_period(self):
        """Test the default quiet period."""
        assert DEFAULT_QUIET_PERIOD_S == 0.15
        assert UpdateScheduler(lambda p: None).quiet_period_s == 0.15

    def test_no_resolve_while_moving(self, scheduler, clock, calls):
        """Test moves closer together than the quiet period never resolve."""
        points = [QueryPoint(30.0 + i * 0.001, 31.0) for i in range(10)]
        for point in points:
            scheduler.move(point)
            clock.advance(0.05)
            assert scheduler.poll() is None

        assert calls == []
        assert scheduler.pending == points[-1]

    def test_resolves_latest_after_quiet_period(self, scheduler, clock, calls):
        """Test only the most recent point is resolved once movement pauses."""
        scheduler.move(QueryPoint(30.0, 31.0))
        clock.advance(0.05)
        scheduler.move(QueryPoint(30.1, 31.1))
        clock.advance(0.15)

        result = scheduler.poll()

        assert calls == [QueryPoint(30.1, 31.1)]
        assert result.feature_id == 1
        assert scheduler.latest is result
        assert scheduler.pending is None

    def test_poll_without_pending(self, scheduler, clock, calls):
        """Test polling after a resolution does not resolve again."""
        scheduler.move(QueryPoint(30.0, 31.0))
        clock.advance(1.0)
        scheduler.poll()

        clock.advance(1.0)

        assert scheduler.poll() is None
        assert scheduler.resolved_count == 1

    def test_move_end_flushes_immediately(self, scheduler, clock, calls):
        """Test movement end resolves the final point without waiting."""
        scheduler.move(QueryPoint(30.0, 31.0))

        result = scheduler.move_end(QueryPoint(30.2, 31.2))

        assert calls == [QueryPoint(30.2, 31.2)]
        assert result.name == "hit 1"
        assert scheduler.pending is None

        clock.advance(1.0)
        assert scheduler.poll() is None

    def test_zero_quiet_period(self, clock, calls):
        """Test a zero quiet period resolves on the next poll."""
        scheduler = UpdateScheduler(lambda p: calls.append(p), quiet_period_s=0.0, clock=clock)

        scheduler.move(QueryPoint(1.0, 2.0))
        scheduler.poll()

        assert calls == [QueryPoint(1.0, 2.0)]

    def test_negative_quiet_period(self):
        """Test a negative quiet period is rejected."""
        with pytest.raises(ValueError):
            UpdateScheduler(lambda p: None, quiet_period_s=-1.0)

    def test_with_resolver(self, sample_geojson, clock):
        """Test the scheduler drives a real service."""
        from proximity import make_service

        service = make_service(sample_geojson)
        scheduler = UpdateScheduler(service.resolve, clock=clock)

        scheduler.move(QueryPoint(lat=30.882, lng=30.62))
        clock.advance(0.2)

        assert scheduler.poll().name == "Block A1"

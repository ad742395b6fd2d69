"""Rate limiting for resolve calls driven by continuous map movement.

While the view moves, only the most recent point is kept and it is
resolved once no new movement has arrived for ``quiet_period_s``. When
movement ends the final point is resolved immediately. The scheduler
owns no timers; the host loop calls ``poll`` and the clock is
injectable.
"""
from __future__ import annotations

import time
from typing import Callable, Optional

from .resolver import ProximityResult, QueryPoint

DEFAULT_QUIET_PERIOD_S = 0.15


class UpdateScheduler:
    """Debounces move events and flushes on move end.

    Attributes:
        latest: Result of the most recent resolution, or None.
        resolved_count: Number of resolve calls actually issued.
    """

    def __init__(
        self,
        resolve_fn: Callable[[QueryPoint], ProximityResult],
        quiet_period_s: float = DEFAULT_QUIET_PERIOD_S,
        clock: Callable[[], float] = time.monotonic,
    ):
        if quiet_period_s < 0:
            raise ValueError(f"quiet_period_s must be >= 0, got {quiet_period_s}")
        self._resolve = resolve_fn
        self.quiet_period_s = quiet_period_s
        self._clock = clock
        self._pending: Optional[QueryPoint] = None
        self._last_move = 0.0
        self.latest: Optional[ProximityResult] = None
        self.resolved_count = 0

    @property
    def pending(self) -> Optional[QueryPoint]:
        return self._pending

    def move(self, point: QueryPoint) -> None:
        """Record a movement sample, superseding any pending one."""
        self._pending = point
        self._last_move = self._clock()

    def poll(self) -> Optional[ProximityResult]:
        """Resolve the pending point if the quiet period has elapsed.

        Returns:
            The new result, or None if nothing was resolved.
        """
        if self._pending is None:
            return None
        if self._clock() - self._last_move < self.quiet_period_s:
            return None
        return self._run(self._pending)

    def move_end(self, point: QueryPoint) -> ProximityResult:
        """Resolve the final point now and drop any pending point."""
        return self._run(point)

    def _run(self, point: QueryPoint) -> ProximityResult:
        self._pending = None
        result = self._resolve(point)
        self.resolved_count += 1
        self.latest = result
        return result

"""Static k-d index over 2D points.

The index is bulk-loaded: entries are added, ``finish()`` partitions them
once, and from then on the index only answers axis-aligned range queries.
Entries are kept in flat numpy arrays rather than tree nodes. A run of
entries ``[left, right]`` larger than the node capacity is split at its
median on the current axis (x, then y, alternating) with a selection
step, so the median entry separates smaller-or-equal values on its left
from greater-or-equal values on its right.
"""
from __future__ import annotations

import math
from dataclasses import dataclass
from typing import Iterable, List

import numpy as np

from .errors import IndexNotBuiltError, InvalidQueryError

DEFAULT_NODE_CAPACITY = 64


@dataclass(frozen=True)
class IndexEntry:
    """One indexed point: x is longitude, y is latitude."""

    x: float
    y: float
    ref_id: int


class KDBushIndex:
    """Bulk-built, read-only k-d index answering rectangle queries.

    Attributes:
        node_capacity: Largest run of entries that is left unpartitioned.
        num_items: Number of entries declared at construction.

    Usage:
        index = KDBushIndex(len(entries))
        for e in entries:
            index.add(e.x, e.y, e.ref_id)
        index.finish()
        ids = index.range(min_lng, min_lat, max_lng, max_lat)
    """

    def __init__(self, num_items: int, node_capacity: int = DEFAULT_NODE_CAPACITY):
        if num_items < 0:
            raise InvalidQueryError(f"num_items must be >= 0, got {num_items}")
        if isinstance(node_capacity, bool) or not isinstance(node_capacity, int) \
                or node_capacity < 1:
            raise InvalidQueryError(
                f"node_capacity must be an integer >= 1, got {node_capacity!r}"
            )
        self.num_items = num_items
        self.node_capacity = node_capacity
        self._coords = np.zeros((num_items, 2), dtype=np.float64)
        self._refs = np.zeros(num_items, dtype=np.int64)
        self._pos = 0
        self._finished = False

    @classmethod
    def build(
        cls,
        entries: Iterable[IndexEntry],
        node_capacity: int = DEFAULT_NODE_CAPACITY,
    ) -> "KDBushIndex":
        """Create, fill and finish an index in one call."""
        entries = list(entries)
        index = cls(len(entries), node_capacity)
        for entry in entries:
            index.add(entry.x, entry.y, entry.ref_id)
        return index.finish()

    @property
    def finished(self) -> bool:
        return self._finished

    def __len__(self) -> int:
        return self._pos

    def add(self, x: float, y: float, ref_id: int) -> int:
        """Add one point and return its insertion position.

        Raises:
            IndexNotBuiltError: If the index is already finished or full.
            InvalidQueryError: If a coordinate is not finite.
        """
        if self._finished:
            raise IndexNotBuiltError("Index already finished; build a new one to change entries.")
        if self._pos >= self.num_items:
            raise IndexNotBuiltError(
                f"Index declared for {self.num_items} items; cannot add more."
            )
        if not (math.isfinite(x) and math.isfinite(y)):
            raise InvalidQueryError(f"Cannot index non-finite point ({x}, {y}).")
        i = self._pos
        self._coords[i, 0] = x
        self._coords[i, 1] = y
        self._refs[i] = ref_id
        self._pos += 1
        return i

    def finish(self) -> "KDBushIndex":
        """Partition the added entries and freeze the index.

        Raises:
            IndexNotBuiltError: If fewer entries were added than declared.
        """
        if self._finished:
            return self
        if self._pos != self.num_items:
            raise IndexNotBuiltError(
                f"Added {self._pos} items, expected {self.num_items}."
            )
        self._partition()
        self._coords.flags.writeable = False
        self._refs.flags.writeable = False
        self._finished = True
        return self

    def _partition(self) -> None:
        coords, refs = self._coords, self._refs
        stack = [(0, self.num_items - 1, 0)]
        while stack:
            left, right, axis = stack.pop()
            if right - left + 1 <= self.node_capacity:
                continue
            median = (left + right) >> 1
            run = slice(left, right + 1)
            order = np.argpartition(coords[run, axis], median - left)
            coords[run] = coords[run][order]
            refs[run] = refs[run][order]
            stack.append((left, median - 1, 1 - axis))
            stack.append((median + 1, right, 1 - axis))

    def range(self, min_x: float, min_y: float, max_x: float, max_y: float) -> List[int]:
        """Return the ref ids of every entry inside the closed rectangle.

        Returns:
            List of ref ids, empty when nothing matches. Order follows the
            index layout and is stable for a given build.

        Raises:
            IndexNotBuiltError: If ``finish()`` has not been called.
        """
        if not self._finished:
            raise IndexNotBuiltError("Index not finished. Call .finish() first.")

        coords, refs = self._coords, self._refs
        results: List[int] = []
        stack = [(0, self.num_items - 1, 0)]

        while stack:
            left, right, axis = stack.pop()

            if right - left + 1 <= self.node_capacity:
                xs = coords[left:right + 1, 0]
                ys = coords[left:right + 1, 1]
                mask = (xs >= min_x) & (xs <= max_x) & (ys >= min_y) & (ys <= max_y)
                results.extend(refs[left:right + 1][mask].tolist())
                continue

            median = (left + right) >> 1
            x = coords[median, 0]
            y = coords[median, 1]

            if min_x <= x <= max_x and min_y <= y <= max_y:
                results.append(int(refs[median]))

            if (min_x <= x) if axis == 0 else (min_y <= y):
                stack.append((left, median - 1, 1 - axis))
            if (max_x >= x) if axis == 0 else (max_y >= y):
                stack.append((median + 1, right, 1 - axis))

        return results

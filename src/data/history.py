"""
Bounded rolling history of metric snapshots.

The buffer is both the isolation forest's training source (its oldest ticks)
and the attribution engine's baseline window. Append order defines both, so
out-of-order ticks are rejected instead of being inserted.
"""

from __future__ import annotations

from collections import deque
from typing import Deque, Iterator, List, Optional, Sequence, overload

from src.core.exceptions import OutOfOrderTickError

from .schema import MetricSnapshot

DEFAULT_CAPACITY = 144  # 12 minutes at a 5s cadence


class HistoryBuffer(Sequence[MetricSnapshot]):
    """
    FIFO buffer of MetricSnapshot with a fixed capacity.

    Supports len(), indexing, slicing and iteration like a read-only list.
    """

    def __init__(self, capacity: int = DEFAULT_CAPACITY) -> None:
        if capacity < 1:
            raise ValueError("capacity must be >= 1")
        self.capacity = capacity
        self._items: Deque[MetricSnapshot] = deque(maxlen=capacity)
        self._last_tick: Optional[int] = None

    def append(self, snapshot: MetricSnapshot) -> None:
        """
        Append a snapshot, evicting the oldest one when full.

        Raises:
            OutOfOrderTickError: If tick_index is not strictly after the last one
        """
        if self._last_tick is not None and snapshot.tick_index <= self._last_tick:
            raise OutOfOrderTickError(
                f"Tick {snapshot.tick_index} arrived after tick {self._last_tick}"
            )
        self._items.append(snapshot)
        self._last_tick = snapshot.tick_index

    def oldest(self, n: int) -> List[MetricSnapshot]:
        """Return up to n snapshots from the start of the buffer."""
        return list(self._items)[: max(n, 0)]

    def latest(self, n: int) -> List[MetricSnapshot]:
        """Return up to n snapshots from the end of the buffer, oldest first."""
        if n <= 0:
            return []
        return list(self._items)[-n:]

    @property
    def last(self) -> Optional[MetricSnapshot]:
        return self._items[-1] if self._items else None

    @property
    def is_full(self) -> bool:
        return len(self._items) == self.capacity

    def clear(self) -> None:
        self._items.clear()
        self._last_tick = None

    def __len__(self) -> int:
        return len(self._items)

    def __iter__(self) -> Iterator[MetricSnapshot]:
        return iter(self._items)

    @overload
    def __getitem__(self, index: int) -> MetricSnapshot: ...

    @overload
    def __getitem__(self, index: slice) -> List[MetricSnapshot]: ...

    def __getitem__(self, index):
        if isinstance(index, slice):
            return list(self._items)[index]
        return self._items[index]

    def __repr__(self) -> str:
        return f"HistoryBuffer(len={len(self)}, capacity={self.capacity})"

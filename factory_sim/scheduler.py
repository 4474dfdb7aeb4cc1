"""Simulation-time event queue replacing wall-clock timers."""

from __future__ import annotations

import heapq
import logging
from typing import Callable, Hashable

logger = logging.getLogger(__name__)


class EventQueue:
    """Callbacks keyed by simulation time, run once per tick by the World.

    Scheduling with a *key* replaces any event still pending under that key,
    so an agent never has more than one queued task assignment.
    """

    def __init__(self) -> None:
        self._heap: list[tuple[float, int, Callable[[], None], Hashable | None]] = []
        self._seq: int = 0
        self._live: dict[Hashable, int] = {}
        self.now: float = 0.0

    def schedule(
        self,
        delay: float,
        callback: Callable[[], None],
        key: Hashable | None = None,
    ) -> int:
        """Run *callback* at ``now + delay``. Returns the event sequence number."""
        self._seq += 1
        heapq.heappush(self._heap, (self.now + max(delay, 0.0), self._seq, callback, key))
        if key is not None:
            self._live[key] = self._seq
        return self._seq

    def cancel(self, key: Hashable) -> bool:
        """Drop the pending event under *key*. Returns ``True`` if one existed."""
        return self._live.pop(key, None) is not None

    def pending(self, key: Hashable) -> bool:
        return key in self._live

    def run_due(self, now: float) -> int:
        """Advance to *now* and run every event due at or before it, in order.

        Events scheduled by a callback with zero delay run in the same call.
        Returns the number of callbacks run.
        """
        self.now = now
        ran = 0
        while self._heap and self._heap[0][0] <= now:
            _, seq, callback, key = heapq.heappop(self._heap)
            if key is not None:
                if self._live.get(key) != seq:
                    continue
                del self._live[key]
            callback()
            ran += 1
        return ran

    def clear(self) -> None:
        dropped = len(self)
        self._heap.clear()
        self._live.clear()
        if dropped:
            logger.debug("Discarded %d pending events", dropped)

    def __len__(self) -> int:
        return sum(
            1 for _, seq, _, key in self._heap
            if key is None or self._live.get(key) == seq
        )

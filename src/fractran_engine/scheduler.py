"""Cancellable delayed callbacks.

The animation controller only ever suspends through ``call_later``. ``Scheduler``
runs timers against the wall clock; ``ManualScheduler`` runs them against a
virtual clock that only moves when ``advance`` is called.
"""

from __future__ import annotations

import heapq
import itertools
import time
from dataclasses import dataclass, field
from typing import Callable, List, Optional

# Rebuild the heap once cancelled entries outnumber live ones past this size.
_COMPACT_MIN = 32


@dataclass(order=True)
class TimerHandle:
    when: float
    seq: int
    callback: Callable[[], None] = field(compare=False)
    cancelled: bool = field(default=False, compare=False)
    _owner: Optional["Scheduler"] = field(default=None, compare=False, repr=False)

    def cancel(self) -> None:
        if self.cancelled:
            return
        self.cancelled = True
        owner, self._owner = self._owner, None
        if owner is not None:
            owner._forget(self)


class Scheduler:
    def __init__(
        self,
        clock: Callable[[], float] = time.perf_counter,
        sleep: Callable[[float], None] = time.sleep,
    ) -> None:
        self._clock = clock
        self._sleep = sleep
        self._queue: List[TimerHandle] = []
        self._seq = itertools.count()
        self._live = 0

    def now(self) -> float:
        return self._clock()

    def call_later(self, delay: float, callback: Callable[[], None]) -> TimerHandle:
        handle = TimerHandle(self.now() + max(0.0, delay), next(self._seq), callback, _owner=self)
        heapq.heappush(self._queue, handle)
        self._live += 1
        return handle

    def _forget(self, handle: TimerHandle) -> None:
        # Called once per handle, from TimerHandle.cancel.
        self._live -= 1
        dead = len(self._queue) - self._live
        if dead > _COMPACT_MIN and dead > self._live:
            self._queue = [h for h in self._queue if not h.cancelled]
            heapq.heapify(self._queue)

    def _drop_cancelled(self) -> None:
        while self._queue and self._queue[0].cancelled:
            heapq.heappop(self._queue)

    @property
    def pending(self) -> int:
        return self._live

    @property
    def queued(self) -> int:
        """Heap entries, cancelled ones included."""
        return len(self._queue)

    def next_due(self) -> Optional[float]:
        self._drop_cancelled()
        return self._queue[0].when if self._queue else None

    def run_due(self, now: Optional[float] = None) -> int:
        """Fire every live timer due at ``now``; returns how many fired."""
        if now is None:
            now = self.now()
        fired = 0
        while True:
            self._drop_cancelled()
            if not self._queue or self._queue[0].when > now:
                return fired
            handle = heapq.heappop(self._queue)
            handle.cancelled = True
            handle._owner = None
            self._live -= 1
            handle.callback()
            fired += 1

    def run_until(
        self,
        predicate: Callable[[], bool],
        on_idle: Optional[Callable[[], None]] = None,
        timeout: Optional[float] = None,
    ) -> bool:
        """Fire timers until ``predicate()`` holds. Returns False on timeout."""
        deadline = None if timeout is None else self.now() + timeout
        while not predicate():
            now = self.now()
            if deadline is not None and now >= deadline:
                return False
            self.run_due(now)
            if on_idle is not None:
                on_idle()
            nxt = self.next_due()
            wait = 0.002 if nxt is None else min(0.002, max(0.0, nxt - self.now()))
            if wait > 0:
                self._sleep(wait)
        return True


class ManualScheduler(Scheduler):
    def __init__(self, start: float = 0.0) -> None:
        self._time = start
        super().__init__(clock=self._virtual_now, sleep=self.advance)

    def _virtual_now(self) -> float:
        return self._time

    def advance(self, seconds: float) -> int:
        """Move the virtual clock forward, firing timers in due order."""
        target = self._time + max(0.0, seconds)
        fired = 0
        while True:
            nxt = self.next_due()
            if nxt is None or nxt > target:
                break
            self._time = max(self._time, nxt)
            fired += self.run_due(self._time)
        self._time = target
        return fired

    def run_all(self, max_callbacks: int = 100000) -> int:
        """Fire timers (jumping the clock) until the queue is empty."""
        fired = 0
        while fired < max_callbacks:
            nxt = self.next_due()
            if nxt is None:
                break
            self._time = max(self._time, nxt)
            fired += self.run_due(self._time)
        return fired

    def run_next(self) -> bool:
        """Jump the clock to the earliest live timer and fire what is due then."""
        nxt = self.next_due()
        if nxt is None:
            return False
        self._time = max(self._time, nxt)
        self.run_due(self._time)
        return True

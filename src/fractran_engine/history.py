"""Bounded, scrubbable run history.

The log is a deque of states plus a cursor. ``evicted`` counts states dropped
from the front when the log outgrows its capacity, so ``evicted + i`` is the
position of log entry ``i`` in the full run. The step-0 root is pinned apart
from the log; ``reset_to_root`` brings it back even after it was evicted.
"""

from __future__ import annotations

import logging
from collections import deque
from typing import Deque, Iterator, Tuple

from .config import MAX_HISTORY_DEFAULT
from .machine import MachineState

_logger = logging.getLogger(__name__)


class History:
    def __init__(self, root: MachineState, capacity: int = MAX_HISTORY_DEFAULT) -> None:
        if capacity < 1:
            raise ValueError("capacity must be at least 1")
        self.capacity = capacity
        self._root = root
        self._log: Deque[MachineState] = deque([root])
        self._cursor = 0
        self.evicted = 0

    # ---------- views ----------
    @property
    def root(self) -> MachineState:
        return self._root

    @property
    def cursor(self) -> int:
        return self._cursor

    @property
    def current(self) -> MachineState:
        return self._log[self._cursor]

    @property
    def is_at_start(self) -> bool:
        return self._cursor == 0

    @property
    def is_at_end(self) -> bool:
        return self._cursor == len(self._log) - 1

    def states(self) -> Tuple[MachineState, ...]:
        return tuple(self._log)

    def __len__(self) -> int:
        return len(self._log)

    def __getitem__(self, index: int) -> MachineState:
        return self._log[index]

    def __iter__(self) -> Iterator[MachineState]:
        return iter(self._log)

    # ---------- mutation ----------
    def push(self, state: MachineState) -> None:
        """Record ``state`` after the cursor, dropping any recorded future."""
        while len(self._log) > self._cursor + 1:
            self._log.pop()
        self._log.append(state)
        self._cursor = len(self._log) - 1

        if len(self._log) > self.capacity:
            self._log.popleft()
            self._cursor -= 1
            self.evicted += 1
            if self.evicted == 1:
                _logger.debug("history: capacity %d reached, evicting oldest states", self.capacity)

    def scrub_to(self, index: int) -> MachineState:
        self._cursor = max(0, min(index, len(self._log) - 1))
        return self.current

    def reset_to_root(self) -> MachineState:
        self._log = deque([self._root])
        self._cursor = 0
        self.evicted = 0
        return self._root

    def replace_root(self, state: MachineState) -> None:
        if state.step != 0:
            raise ValueError("root state must be at step 0")
        self._root = state
        self.reset_to_root()

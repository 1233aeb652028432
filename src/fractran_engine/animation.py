"""Step animation as an explicit phase machine.

One logical step is shown as ``idle -> scanning -> selecting -> consuming ->
producing -> idle``. Every phase boundary is a single pending timer owned by
the controller; ``stop`` cancels it. The transition that gets published always
comes from ``machine.step`` on the authoritative state, never from the phase
bookkeeping.
"""

from __future__ import annotations

import logging
from enum import Enum
from typing import Callable, Optional, Sequence, Tuple

from .config import DEFAULT_SPEED, INSTANT_SPEED_THRESHOLD, clamp_speed
from .machine import MachineState, find_rule, step
from .program import Rule
from .scheduler import Scheduler, TimerHandle

_logger = logging.getLogger(__name__)

StateSource = Callable[[], Tuple[MachineState, Sequence[Rule]]]


class AnimationPhase(str, Enum):
    IDLE = "idle"
    SCANNING = "scanning"
    SELECTING = "selecting"
    CONSUMING = "consuming"
    PRODUCING = "producing"


def phase_delay(phase: AnimationPhase, speed: float, *, instant: bool = False) -> float:
    """Seconds to wait before leaving ``phase``. Shrinks with speed, never below a floor."""
    if phase is AnimationPhase.IDLE:
        ms = max(10, 200 - speed * 2) if instant else 50
    elif phase is AnimationPhase.SCANNING:
        ms = max(20, 150 - speed)
    elif phase is AnimationPhase.SELECTING:
        ms = max(50, 400 - speed * 3)
    elif phase in (AnimationPhase.CONSUMING, AnimationPhase.PRODUCING):
        ms = max(50, 500 - speed * 4)
    else:
        raise ValueError(f"unknown phase: {phase!r}")
    return ms / 1000.0


class AnimationController:
    def __init__(
        self,
        scheduler: Scheduler,
        source: StateSource,
        publish: Callable[[MachineState], None],
        *,
        speed: float = DEFAULT_SPEED,
        instant_threshold: float = INSTANT_SPEED_THRESHOLD,
        on_phase: Optional[Callable[[AnimationPhase], None]] = None,
    ) -> None:
        self._scheduler = scheduler
        self._source = source
        self._publish = publish
        self.instant_threshold = instant_threshold
        self.on_phase = on_phase

        self._speed = clamp_speed(speed)
        self._playing = False
        self._phase = AnimationPhase.IDLE
        self._pending: Optional[TimerHandle] = None

        self.active_rule_index: Optional[int] = None
        self.scanning_index: Optional[int] = None
        self.target_rule_index: Optional[int] = None

    # ---------- observable state ----------
    @property
    def phase(self) -> AnimationPhase:
        return self._phase

    @property
    def playing(self) -> bool:
        return self._playing

    @property
    def speed(self) -> float:
        return self._speed

    @property
    def is_instant(self) -> bool:
        return self._speed > self.instant_threshold

    @property
    def has_pending(self) -> bool:
        return self._pending is not None and not self._pending.cancelled

    # ---------- commands ----------
    def set_speed(self, speed: float) -> None:
        self._speed = clamp_speed(speed)

    def set_playing(self, playing: bool) -> bool:
        if not playing:
            self.stop()
            return False
        if self._playing:
            return True
        state, _ = self._source()
        if state.halted:
            _logger.debug("play ignored: state at step %d is halted", state.step)
            return False
        self._playing = True
        self._schedule()
        return True

    def stop(self) -> None:
        """Cancel any pending phase and fall back to idle. Safe from any phase."""
        self._playing = False
        if self._pending is not None:
            self._pending.cancel()
            self._pending = None
        self.active_rule_index = None
        self.scanning_index = None
        self.target_rule_index = None
        self._set_phase(AnimationPhase.IDLE)

    # ---------- phase machine ----------
    def _set_phase(self, phase: AnimationPhase) -> None:
        if phase is self._phase:
            return
        self._phase = phase
        if self.on_phase is not None:
            self.on_phase(phase)

    def _schedule(self) -> None:
        if self._pending is not None:
            self._pending.cancel()
        delay = phase_delay(self._phase, self._speed, instant=self.is_instant)
        self._pending = self._scheduler.call_later(delay, self._advance)

    def _halt(self, state: MachineState, program: Sequence[Rule]) -> None:
        self._publish(step(state, program))
        self.stop()

    def _advance(self) -> None:
        self._pending = None
        if not self._playing:
            return

        state, program = self._source()
        if state.halted:
            self.stop()
            return

        phase = self._phase
        if phase is AnimationPhase.IDLE:
            found = find_rule(state.registers, program)
            if self.is_instant:
                if found is None:
                    self._halt(state, program)
                    return
                self._publish(step(state, program))
            else:
                self.target_rule_index = found
                self.scanning_index = 0
                self._set_phase(AnimationPhase.SCANNING)

        elif phase is AnimationPhase.SCANNING:
            if self.scanning_index is not None and self.scanning_index == self.target_rule_index:
                self.active_rule_index = self.target_rule_index
                self.scanning_index = None
                self._set_phase(AnimationPhase.SELECTING)
            elif self.scanning_index is None or self.scanning_index >= len(program) - 1:
                self._halt(state, program)
                return
            else:
                self.scanning_index += 1

        elif phase is AnimationPhase.SELECTING:
            self._set_phase(AnimationPhase.CONSUMING)

        elif phase is AnimationPhase.CONSUMING:
            self._set_phase(AnimationPhase.PRODUCING)

        elif phase is AnimationPhase.PRODUCING:
            nxt = step(state, program)
            self.active_rule_index = None
            self.scanning_index = None
            self.target_rule_index = None
            self._set_phase(AnimationPhase.IDLE)
            self._publish(nxt)

        if self._playing:
            self._schedule()

"""Event detection over published transitions.

A detector is a pure function ``(previous, next) -> SimulationEvent | None``.
Detectors live in a registry keyed by event kind; the log evaluates the kinds
enabled for the current program, in the order they were enabled.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, replace
from enum import Enum
from typing import Any, Callable, Dict, Iterable, Iterator, List, Optional, Tuple, Union

from .machine import MachineState

_logger = logging.getLogger(__name__)


class EventKind(str, Enum):
    INFO = "info"
    HALTED = "halted"
    POWER_OF_TWO = "power-of-two"
    FIBONACCI_PAIR = "fibonacci-pair"


Kind = Union[EventKind, str]


def as_kind(kind: Kind) -> Kind:
    """Built-in kinds normalize to ``EventKind``; anything else stays a plain string."""
    if isinstance(kind, EventKind):
        return kind
    try:
        return EventKind(kind)
    except ValueError:
        return str(kind)


@dataclass(frozen=True)
class SimulationEvent:
    step: int
    kind: Kind
    message: str
    data: Any = None


Detector = Callable[[MachineState, MachineState], Optional[SimulationEvent]]


# ---------- built-in detectors ----------
def detect_halt(prev: MachineState, nxt: MachineState) -> Optional[SimulationEvent]:
    if not prev.halted and nxt.halted:
        return SimulationEvent(nxt.step, EventKind.HALTED, "Program Halted")
    return None


def detect_power_of_two(prev: MachineState, nxt: MachineState) -> Optional[SimulationEvent]:
    # PRIMEGAME: whenever the value is 2^p with p > 1, p is the next prime.
    if list(nxt.registers) == [2]:
        exponent = nxt.registers[2]
        if exponent > 1:
            return SimulationEvent(
                nxt.step,
                EventKind.POWER_OF_TWO,
                f"2^{exponent} (Prime found: {exponent})",
                exponent,
            )
    return None


def detect_fibonacci_pair(prev: MachineState, nxt: MachineState) -> Optional[SimulationEvent]:
    # Only registers 2 and 3 may be occupied, and at least one of them is.
    if any(p >= 5 for p in nxt.registers):
        return None
    a = nxt.exponent(2)
    b = nxt.exponent(3)
    if a > 0 or b > 0:
        return SimulationEvent(
            nxt.step,
            EventKind.FIBONACCI_PAIR,
            f"Sequence: ({a}, {b})",
            {"a": a, "b": b},
        )
    return None


class DetectorRegistry:
    def __init__(self, detectors: Optional[Dict[Kind, Detector]] = None) -> None:
        self._detectors: Dict[Kind, Detector] = {}
        for kind, detector in (detectors or {}).items():
            self._detectors[as_kind(kind)] = detector

    def register(self, kind: Kind, detector: Optional[Detector] = None):
        """Add or replace the detector for ``kind``. Usable as a decorator."""
        kind = as_kind(kind)
        if detector is None:
            def deco(fn: Detector) -> Detector:
                self._detectors[kind] = fn
                return fn
            return deco
        self._detectors[kind] = detector
        return detector

    def get(self, kind: Kind) -> Optional[Detector]:
        return self._detectors.get(as_kind(kind))

    def kinds(self) -> Tuple[Kind, ...]:
        return tuple(self._detectors)

    def __contains__(self, kind: object) -> bool:
        return as_kind(kind) in self._detectors

    def copy(self) -> "DetectorRegistry":
        return DetectorRegistry(self._detectors)


def default_registry() -> DetectorRegistry:
    return DetectorRegistry(
        {
            EventKind.HALTED: detect_halt,
            EventKind.POWER_OF_TWO: detect_power_of_two,
            EventKind.FIBONACCI_PAIR: detect_fibonacci_pair,
        }
    )


def parse_event_kinds(names: Iterable[str], registry: Optional[DetectorRegistry] = None) -> List[Kind]:
    registry = registry if registry is not None else default_registry()
    kinds: List[Kind] = []
    for name in names:
        name = name.strip().lower()
        if not name:
            continue
        kind = as_kind(name)
        if kind not in registry:
            choices = ", ".join(str(getattr(k, "value", k)) for k in registry.kinds())
            raise ValueError(f"unknown event kind {name!r} (choose from {choices})")
        kinds.append(kind)
    return kinds


class EventLog:
    def __init__(
        self,
        registry: Optional[DetectorRegistry] = None,
        enabled: Iterable[Kind] = (EventKind.HALTED,),
        *,
        initial_message: str = "Loaded.",
        on_event: Optional[Callable[[SimulationEvent], None]] = None,
    ) -> None:
        self.registry = registry if registry is not None else default_registry()
        self.on_event = on_event
        self._enabled: Tuple[Kind, ...] = ()
        self._events: List[SimulationEvent] = []
        self.set_enabled(enabled)
        self.reset(initial_message)

    @property
    def enabled(self) -> Tuple[Kind, ...]:
        return self._enabled

    @property
    def events(self) -> Tuple[SimulationEvent, ...]:
        return tuple(self._events)

    def __len__(self) -> int:
        return len(self._events)

    def __iter__(self) -> Iterator[SimulationEvent]:
        return iter(self._events)

    def set_enabled(self, kinds: Iterable[Kind]) -> None:
        ordered: List[Kind] = []
        for kind in kinds:
            kind = as_kind(kind)
            if kind not in ordered:
                ordered.append(kind)
        self._enabled = tuple(ordered)

    def reset(self, message: str = "Reset.") -> None:
        self._events = [SimulationEvent(0, EventKind.INFO, message)]

    def info(self, step: int, message: str) -> SimulationEvent:
        event = SimulationEvent(step, EventKind.INFO, message)
        self._events.append(event)
        return event

    def check(self, prev: MachineState, nxt: MachineState) -> List[SimulationEvent]:
        """Run the enabled detectors over one transition and append what they find."""
        found: List[SimulationEvent] = []
        for kind in self._enabled:
            detector = self.registry.get(kind)
            if detector is None:
                continue
            event = detector(prev, nxt)
            if event is None:
                continue
            if event.step != nxt.step:
                event = replace(event, step=nxt.step)
            found.append(event)

        for event in found:
            self._events.append(event)
            _logger.debug("event at step %d: %s", event.step, event.message)
            if self.on_event is not None:
                self.on_event(event)
        return found

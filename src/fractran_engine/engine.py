"""One running FRACTRAN program: history, animation, events and forecast.

All three ways of advancing (manual ``step``, instant playback, animated
playback) end in ``_publish``, which is the only place the history grows and
detectors run.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Callable, Iterable, List, Mapping, Optional, Sequence, Tuple, Union

from .animation import AnimationController, AnimationPhase
from .config import EngineConfig
from .errors import RegisterError
from .events import DetectorRegistry, EventKind, EventLog, Kind, SimulationEvent
from .forecast import forecast_halt_step
from .history import History
from .machine import MachineState, root_state, step as step_state
from .primes import format_prime_factors, is_prime, used_primes as collect_primes
from .program import Program, Rule, parse, parse_registers, program_primes
from .scheduler import Scheduler

_logger = logging.getLogger(__name__)

ProgramSource = Union[Iterable[str], Program]
RegisterSource = Union[int, Mapping[int, int], None]


@dataclass
class LoadOptions:
    editable_primes: Sequence[int] = ()
    enabled_event_kinds: Sequence[Kind] = (EventKind.HALTED,)


def _as_program(source: ProgramSource) -> Program:
    items = tuple(source)
    if items and all(isinstance(r, Rule) for r in items):
        return items
    return parse(items)


class FractranEngine:
    def __init__(
        self,
        program: ProgramSource = (),
        initial_registers: RegisterSource = None,
        options: Optional[LoadOptions] = None,
        *,
        config: Optional[EngineConfig] = None,
        scheduler: Optional[Scheduler] = None,
        registry: Optional[DetectorRegistry] = None,
        on_event: Optional[Callable[[SimulationEvent], None]] = None,
        on_phase: Optional[Callable[[AnimationPhase], None]] = None,
    ) -> None:
        self.config = config if config is not None else EngineConfig()
        self.scheduler = scheduler if scheduler is not None else Scheduler()

        self._program: Program = ()
        self._editable: Tuple[int, ...] = ()
        self.history = History(root_state({}), self.config.history_capacity)
        self.events = EventLog(registry, on_event=on_event)
        self.total_steps: Optional[int] = 0
        self.animation = AnimationController(
            self.scheduler,
            self._source,
            self._publish,
            speed=self.config.initial_speed,
            instant_threshold=self.config.instant_threshold,
            on_phase=on_phase,
        )

        self.load(program, initial_registers, options)

    # ---------- wiring ----------
    def _source(self) -> Tuple[MachineState, Program]:
        return self.history.current, self._program

    def _publish(self, nxt: MachineState) -> None:
        prev = self.history.current
        self.history.push(nxt)
        self.events.check(prev, nxt)
        if nxt.halted:
            _logger.info("halted at step %d: n = %s", nxt.step, format_prime_factors(nxt.registers))
            self.animation.stop()

    def _forecast(self) -> Optional[int]:
        return forecast_halt_step(self.history.root.registers, self._program, self.config.forecast_limit)

    # ---------- commands ----------
    def load(
        self,
        program: ProgramSource,
        initial_registers: RegisterSource = None,
        options: Optional[LoadOptions] = None,
    ) -> None:
        """Replace the program and start a fresh history and event log.

        Raises ``ParseError`` / ``RegisterError`` before anything is touched.
        """
        options = options if options is not None else LoadOptions()
        parsed = _as_program(program)
        registers = parse_registers(initial_registers)
        for p in options.editable_primes:
            if not is_prime(p):
                raise RegisterError(f"editable register must be a prime (got {p!r})")

        self.animation.stop()
        self._program = parsed
        self._editable = tuple(options.editable_primes)
        self.history.replace_root(root_state(registers))
        self.events.set_enabled(options.enabled_event_kinds)
        self.events.reset("Loaded.")
        self.total_steps = self._forecast()
        _logger.info(
            "loaded %d rules, n = %s, forecast = %s",
            len(parsed),
            format_prime_factors(registers),
            "unknown" if self.total_steps is None else self.total_steps,
        )

    def step(self) -> MachineState:
        self.animation.stop()
        current = self.history.current
        if current.halted:
            return current
        nxt = step_state(current, self._program)
        self._publish(nxt)
        return nxt

    def run(self, max_steps: int) -> MachineState:
        """Single-step until halted or ``max_steps`` transitions were published."""
        for _ in range(max_steps):
            if self.history.current.halted:
                break
            self.step()
        return self.history.current

    def reset(self) -> None:
        self.animation.stop()
        self.history.reset_to_root()
        self.events.reset("Reset.")

    def scrub(self, index: int) -> MachineState:
        self.animation.stop()
        return self.history.scrub_to(index)

    def edit_register(self, prime: int, delta: int) -> bool:
        """Add ``delta`` beads to an editable register of the initial state.

        Only legal at step 0; anything else is ignored and returns False.
        """
        current = self.history.current
        if current.step != 0:
            _logger.debug("edit of %s ignored: at step %d", prime, current.step)
            return False
        if prime not in self._editable:
            _logger.debug("edit of %s ignored: register not editable", prime)
            return False

        self.animation.stop()
        regs = dict(current.registers)
        count = max(0, regs.get(prime, 0) + delta)
        if count:
            regs[prime] = count
        else:
            regs.pop(prime, None)
        self.history.replace_root(root_state(regs))
        self.total_steps = self._forecast()
        return True

    def set_speed(self, speed: float) -> None:
        self.animation.set_speed(speed)

    def set_playing(self, playing: bool) -> bool:
        return self.animation.set_playing(playing)

    def stop(self) -> None:
        self.animation.stop()

    # ---------- observable state ----------
    @property
    def program(self) -> Program:
        return self._program

    @property
    def editable_primes(self) -> Tuple[int, ...]:
        return self._editable

    @property
    def state(self) -> MachineState:
        return self.history.current

    @property
    def cursor(self) -> int:
        return self.history.cursor

    @property
    def phase(self) -> AnimationPhase:
        return self.animation.phase

    @property
    def active_rule_index(self) -> Optional[int]:
        return self.animation.active_rule_index

    @property
    def scanning_index(self) -> Optional[int]:
        return self.animation.scanning_index

    @property
    def playing(self) -> bool:
        return self.animation.playing

    @property
    def speed(self) -> float:
        return self.animation.speed

    @property
    def value(self) -> int:
        return self.state.value

    @property
    def value_text(self) -> str:
        return format_prime_factors(self.state.registers)

    @property
    def used_primes(self) -> List[int]:
        return collect_primes(program_primes(self._program), self.state.registers, self._editable)

    @property
    def active_rule(self) -> Optional[Rule]:
        anim = self.animation
        if anim.phase is AnimationPhase.SCANNING and anim.scanning_index is not None:
            if anim.scanning_index < len(self._program):
                return self._program[anim.scanning_index]
        if anim.active_rule_index is not None:
            return self._program[anim.active_rule_index]
        return None

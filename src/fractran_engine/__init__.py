"""FRACTRAN execution engine."""

from .animation import AnimationController, AnimationPhase, phase_delay
from .config import EngineConfig
from .engine import FractranEngine, LoadOptions
from .errors import FractranError, ParseError, RegisterError
from .events import (
    DetectorRegistry,
    EventKind,
    EventLog,
    SimulationEvent,
    default_registry,
)
from .forecast import forecast_halt_step
from .history import History
from .machine import MachineState, apply_rule, can_apply, find_rule, root_state, step
from .primes import factorize, format_prime_factors, value
from .program import Program, Rule, parse, parse_registers
from .scheduler import ManualScheduler, Scheduler

__all__ = [
    "AnimationController",
    "AnimationPhase",
    "DetectorRegistry",
    "EngineConfig",
    "EventKind",
    "EventLog",
    "FractranEngine",
    "FractranError",
    "History",
    "LoadOptions",
    "MachineState",
    "ManualScheduler",
    "ParseError",
    "Program",
    "RegisterError",
    "Rule",
    "Scheduler",
    "SimulationEvent",
    "apply_rule",
    "can_apply",
    "default_registry",
    "factorize",
    "find_rule",
    "forecast_halt_step",
    "format_prime_factors",
    "parse",
    "parse_registers",
    "phase_delay",
    "root_state",
    "step",
    "value",
]

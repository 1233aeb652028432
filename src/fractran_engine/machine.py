"""Pure FRACTRAN transition function.

Control decisions only ever look at prime maps; the integer value is
materialized for display.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from types import MappingProxyType
from typing import Mapping, Optional, Sequence

from .primes import PrimeMap, format_prime_factors, value
from .program import Rule


@dataclass(frozen=True)
class MachineState:
    registers: Mapping[int, int] = field(default_factory=dict)
    step: int = 0
    last_rule_index: Optional[int] = None
    halted: bool = False

    def __post_init__(self) -> None:
        regs = {p: e for p, e in self.registers.items() if e > 0}
        object.__setattr__(self, "registers", MappingProxyType(regs))
        if self.step < 0:
            raise ValueError("step must be non-negative")

    def __hash__(self) -> int:
        return hash((frozenset(self.registers.items()), self.step, self.last_rule_index, self.halted))

    def exponent(self, prime: int) -> int:
        return self.registers.get(prime, 0)

    @property
    def value(self) -> int:
        return value(self.registers)

    def __str__(self) -> str:
        tag = " HALT" if self.halted else ""
        return f"step={self.step} n={format_prime_factors(self.registers)}{tag}"


def root_state(registers: Mapping[int, int]) -> MachineState:
    return MachineState(registers=dict(registers), step=0, last_rule_index=None, halted=False)


def can_apply(registers: Mapping[int, int], rule: Rule) -> bool:
    """True iff the registers cover every prime power of the denominator."""
    for prime, need in rule.denominator_factors.items():
        if registers.get(prime, 0) < need:
            return False
    return True


def apply_rule(registers: Mapping[int, int], rule: Rule) -> PrimeMap:
    """Multiply by the rule. Caller must have checked ``can_apply``."""
    out = dict(registers)
    for prime, count in rule.denominator_factors.items():
        left = out.get(prime, 0) - count
        if left <= 0:
            out.pop(prime, None)
        else:
            out[prime] = left
    for prime, count in rule.numerator_factors.items():
        out[prime] = out.get(prime, 0) + count
    return out


def find_rule(registers: Mapping[int, int], program: Sequence[Rule]) -> Optional[int]:
    for i, rule in enumerate(program):
        if can_apply(registers, rule):
            return i
    return None


def step(state: MachineState, program: Sequence[Rule]) -> MachineState:
    idx = find_rule(state.registers, program)
    if idx is None:
        return MachineState(
            registers=state.registers,
            step=state.step,
            last_rule_index=None,
            halted=True,
        )
    return MachineState(
        registers=apply_rule(state.registers, program[idx]),
        step=state.step + 1,
        last_rule_index=idx,
        halted=False,
    )

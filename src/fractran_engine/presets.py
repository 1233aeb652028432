from __future__ import annotations

from dataclasses import dataclass, field
from typing import Dict, List, Tuple

from .events import EventKind


@dataclass(frozen=True)
class Preset:
    name: str
    description: str
    fractions: Tuple[str, ...]
    initial_registers: Dict[int, int]
    editable_primes: Tuple[int, ...] = ()
    events: Tuple[EventKind, ...] = (EventKind.HALTED,)
    notes: str = field(default="", compare=False)


PRIMEGAME = (
    "17/91", "78/85", "19/51", "23/38", "29/33", "77/29", "95/23",
    "77/19", "1/17", "11/13", "13/11", "15/14", "15/2", "55/1",
)

PRESETS: List[Preset] = [
    Preset(
        name="two-fractions",
        description="The opening game: 3/2 then 5/3, starting from 6",
        fractions=("3/2", "5/3"),
        initial_registers={2: 1, 3: 1},
        editable_primes=(2, 3),
    ),
    Preset(
        name="addition",
        description="Moves every dot in column 2 into column 3",
        fractions=("3/2",),
        initial_registers={2: 4},
        editable_primes=(2,),
    ),
    Preset(
        name="doubling",
        description="Column 2 doubled into column 5 (75 = 3 x 5^2)",
        fractions=("75/2", "2/5"),
        initial_registers={2: 3},
        editable_primes=(2,),
        notes="Never halts: 2/5 hands every new 5 back to column 2.",
    ),
    Preset(
        name="multiply",
        description="Computes column 2 x column 3 into column 5",
        fractions=("455/33", "11/13", "1/11", "3/7", "11/2", "1/3"),
        initial_registers={2: 3, 3: 4},
        editable_primes=(2, 3),
    ),
    Preset(
        name="swap",
        description="The naive swap of columns 2 and 3 through column 5",
        fractions=("5/2", "2/3", "3/5"),
        initial_registers={2: 4, 3: 2},
        editable_primes=(2, 3),
        notes="Never halts: 3/5 feeds 2/3, which feeds 5/2 again.",
    ),
    Preset(
        name="fibonacci",
        description="Columns 2 and 3 cycle through Fibonacci pairs",
        fractions=("39/55", "33/65", "78/77", "66/91", "1/11", "1/13", "5/2", "7/3", "11/1"),
        initial_registers={3: 1},
        events=(EventKind.FIBONACCI_PAIR,),
        notes="Never halts.",
    ),
    Preset(
        name="primegame",
        description="Conway's PRIMEGAME: powers of two with prime exponents",
        fractions=PRIMEGAME,
        initial_registers={2: 1},
        events=(EventKind.POWER_OF_TWO,),
        notes="Never halts; many steps between primes.",
    ),
]


def get_preset(name: str) -> Preset:
    for preset in PRESETS:
        if preset.name == name:
            return preset
    raise KeyError(f"unknown preset {name!r} (choose from {', '.join(p.name for p in PRESETS)})")

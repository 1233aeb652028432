"""Program source parsing.

A program is an ordered tuple of rules; order decides which rule fires, so it
is never sorted or deduplicated. Fractions are kept as authored (``6/4`` is not
reduced to ``3/2``).
"""

from __future__ import annotations

import itertools
import logging
import re
from dataclasses import dataclass, field
from types import MappingProxyType
from typing import Iterable, Mapping, Optional, Tuple, Union

from .errors import ParseError, RegisterError
from .primes import PrimeMap, factorize, is_prime

_logger = logging.getLogger(__name__)

_FRACTION_RE = re.compile(r"\s*(\d+)\s*/\s*(\d+)\s*", re.ASCII)
_ids = itertools.count()


@dataclass(frozen=True)
class Rule:
    numerator: int
    denominator: int
    numerator_factors: Mapping[int, int]
    denominator_factors: Mapping[int, int]
    # UI keying only.
    id: str = field(default="", compare=False)

    def __post_init__(self) -> None:
        object.__setattr__(self, "numerator_factors", MappingProxyType(dict(self.numerator_factors)))
        object.__setattr__(self, "denominator_factors", MappingProxyType(dict(self.denominator_factors)))

    @classmethod
    def from_ints(cls, numerator: int, denominator: int, *, index: int = 0) -> "Rule":
        return cls(
            numerator=numerator,
            denominator=denominator,
            numerator_factors=factorize(numerator),
            denominator_factors=factorize(denominator),
            id=f"rule-{index}-{next(_ids)}",
        )

    def __hash__(self) -> int:
        # Factor maps are derived from these two.
        return hash((self.numerator, self.denominator))

    @property
    def primes(self) -> Tuple[int, ...]:
        return tuple(sorted(set(self.numerator_factors) | set(self.denominator_factors)))

    def __str__(self) -> str:
        return f"{self.numerator}/{self.denominator}"


Program = Tuple[Rule, ...]


def parse_fraction(text: str, index: int = 0) -> Rule:
    if not isinstance(text, str):
        raise ParseError(f"expected a string, got {type(text).__name__}", index=index, text=repr(text))
    m = _FRACTION_RE.fullmatch(text)
    if m is None:
        raise ParseError("not of the form N/D", index=index, text=text)
    num, den = int(m.group(1)), int(m.group(2))
    if num <= 0 or den <= 0:
        raise ParseError("numerator and denominator must be positive", index=index, text=text)
    return Rule.from_ints(num, den, index=index)


def parse(fractions: Iterable[str]) -> Program:
    """Parse ``"N/D"`` strings into a program.

    Any malformed entry rejects the whole program.
    """
    program = tuple(parse_fraction(text, i) for i, text in enumerate(fractions))
    _logger.debug("parsed program: %s", ", ".join(str(r) for r in program))
    return program


def parse_registers(source: Union[int, Mapping[int, int], None]) -> PrimeMap:
    """Normalize an initial configuration into a prime map.

    Accepts a positive integer (factorized) or a sparse ``{prime: exponent}``
    mapping; zero exponents are dropped.
    """
    if source is None:
        return {}
    if isinstance(source, bool):
        raise RegisterError(f"invalid initial value: {source!r}")
    if isinstance(source, int):
        if source < 1:
            raise RegisterError(f"initial value must be a positive integer (got {source})")
        return factorize(source)

    regs: PrimeMap = {}
    for prime, exp in source.items():
        if isinstance(prime, bool) or not isinstance(prime, int) or not is_prime(prime):
            raise RegisterError(f"register key must be a prime (got {prime!r})")
        if isinstance(exp, bool) or not isinstance(exp, int) or exp < 0:
            raise RegisterError(f"exponent for {prime} must be a non-negative integer (got {exp!r})")
        if exp:
            regs[prime] = exp
    return regs


def parse_register_text(text: str) -> PrimeMap:
    """``"2:3,3:2"`` -> ``{2: 3, 3: 2}``."""
    regs = {}
    for chunk in text.split(","):
        chunk = chunk.strip()
        if not chunk:
            continue
        prime_s, sep, exp_s = chunk.partition(":")
        if not sep:
            raise RegisterError(f"expected PRIME:EXPONENT, got {chunk!r}")
        try:
            regs[int(prime_s)] = int(exp_s)
        except ValueError:
            raise RegisterError(f"expected PRIME:EXPONENT, got {chunk!r}") from None
    return parse_registers(regs)


def program_primes(program: Program) -> Tuple[int, ...]:
    out = set()
    for rule in program:
        out.update(rule.primes)
    return tuple(sorted(out))


def format_program(program: Program, *, active: Optional[int] = None) -> str:
    return " ".join(f"[{r}]" if i == active else str(r) for i, r in enumerate(program))

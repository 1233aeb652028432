"""Prime-exponent maps: the canonical representation of a FRACTRAN integer.

A map ``{prime: exponent}`` holds only strictly positive exponents; a missing
prime means exponent 0 and the empty map is the integer 1.
"""

from __future__ import annotations

import math
from typing import Dict, Iterable, List, Mapping

PrimeMap = Dict[int, int]

# First 50 primes, used to lay out register columns.
PRIMES: List[int] = [
    2, 3, 5, 7, 11, 13, 17, 19, 23, 29, 31, 37, 41, 43, 47, 53, 59, 61, 67, 71,
    73, 79, 83, 89, 97, 101, 103, 107, 109, 113, 127, 131, 137, 139, 149, 151,
    157, 163, 167, 173, 179, 181, 191, 193, 197, 199, 211, 223, 227, 229,
]

_SUPERSCRIPTS = str.maketrans("0123456789", "⁰¹²³⁴⁵⁶⁷⁸⁹")


def is_prime(n: int) -> bool:
    if n < 2:
        return False
    if n < 4:
        return True
    if n % 2 == 0:
        return False
    d = 3
    while d * d <= n:
        if n % d == 0:
            return False
        d += 2
    return True


def factorize(n: int) -> PrimeMap:
    """Trial-division factorization of a positive integer."""
    if isinstance(n, bool) or not isinstance(n, int):
        raise TypeError(f"expected int, got {type(n).__name__}")
    if n < 1:
        raise ValueError(f"can only factorize positive integers (got {n})")

    factors: PrimeMap = {}
    temp = n
    d = 2
    while d * d <= temp:
        while temp % d == 0:
            factors[d] = factors.get(d, 0) + 1
            temp //= d
        d += 1 if d == 2 else 2
    if temp > 1:
        factors[temp] = factors.get(temp, 0) + 1
    return factors


def value(registers: Mapping[int, int]) -> int:
    """Materialize the integer a prime map stands for. Display only."""
    return math.prod(p ** e for p, e in registers.items())


def format_prime_factors(registers: Mapping[int, int]) -> str:
    """Render as ``2³ × 3²``; an exponent of 1 is implicit and ``{}`` is ``1``."""
    parts = []
    for p in sorted(registers):
        e = registers[p]
        if e <= 0:
            continue
        parts.append(f"{p}" if e == 1 else f"{p}{str(e).translate(_SUPERSCRIPTS)}")
    return " × ".join(parts) if parts else "1"


def used_primes(*sources: Iterable[int]) -> List[int]:
    """Union of primes, widened to the contiguous run of primes up to the largest.

    Primes beyond the tabulated range are appended as-is.
    """
    seen = set()
    for src in sources:
        seen.update(int(p) for p in src)
    if not seen:
        return []

    top = max(seen)
    out = [p for p in PRIMES if p <= top]
    for p in seen:
        if p not in out:
            out.append(p)
    return sorted(out)

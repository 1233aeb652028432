from __future__ import annotations

import logging
from typing import Mapping, Optional, Sequence

from .config import FORECAST_LIMIT
from .machine import apply_rule, find_rule
from .program import Rule

_logger = logging.getLogger(__name__)


def forecast_halt_step(
    registers: Mapping[int, int],
    program: Sequence[Rule],
    limit: int = FORECAST_LIMIT,
) -> Optional[int]:
    """Dry-run ``program`` from ``registers`` and return the step it halts at.

    ``None`` means no halt within ``limit`` transitions. That is a lower bound,
    not a proof the program runs forever.
    """
    if limit < 0:
        raise ValueError("limit must be non-negative")

    regs = dict(registers)
    steps = 0
    while True:
        idx = find_rule(regs, program)
        if idx is None:
            _logger.debug("forecast: halts at step %d", steps)
            return steps
        if steps >= limit:
            _logger.debug("forecast: no halt within %d steps", limit)
            return None
        regs = apply_rule(regs, program[idx])
        steps += 1

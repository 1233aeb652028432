from __future__ import annotations

from dataclasses import dataclass

# Simulation constants
MAX_HISTORY_DEFAULT = 2000  # states kept for scrubbing
INSTANT_SPEED_THRESHOLD = 90  # speed above which a step skips the phase cycle
FORECAST_LIMIT = 5000  # transitions simulated when forecasting a halt

DEFAULT_SPEED = 10
SPEED_MIN = 1
SPEED_MAX = 100


def clamp_speed(speed: float) -> float:
    return max(SPEED_MIN, min(SPEED_MAX, speed))


@dataclass
class EngineConfig:
    history_capacity: int = MAX_HISTORY_DEFAULT
    forecast_limit: int = FORECAST_LIMIT
    instant_threshold: float = INSTANT_SPEED_THRESHOLD
    initial_speed: float = DEFAULT_SPEED

    def __post_init__(self) -> None:
        if self.history_capacity < 1:
            raise ValueError("history_capacity must be at least 1")
        if self.forecast_limit < 0:
            raise ValueError("forecast_limit must be non-negative")
        if not SPEED_MIN <= self.initial_speed <= SPEED_MAX:
            raise ValueError(f"initial_speed must be in [{SPEED_MIN}, {SPEED_MAX}]")

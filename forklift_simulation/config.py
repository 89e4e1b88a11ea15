"""Simulation configuration with environment-backed defaults.

Environment variables use the ``FORKLIFT_SIM_`` prefix, e.g.
``FORKLIFT_SIM_SPEED=2`` or ``FORKLIFT_SIM_COLLISION_AVOIDANCE=false``.
"""

from __future__ import annotations

import os
from dataclasses import asdict, dataclass, fields, replace

from .constants import MIN_TICK_INTERVAL_MS, BASE_TICK_INTERVAL_MS

ENV_PREFIX = "FORKLIFT_SIM_"

# field -> (min, max); None means unbounded
RANGES: dict[str, tuple[float | None, float | None]] = {
    "learning_rate": (0.01, 1.0),
    "exploration_rate": (0.01, 1.0),
    "discount_factor": (0.1, 0.99),
    "speed": (0.1, 3.0),
    "max_tasks": (1, None),
    "forklift_count": (1, 5),
}


def _bool_env(name: str, default: bool) -> bool:
    """Parse a boolean env var (1/true/yes/on) with a fallback."""
    raw = os.getenv(name, "")
    if raw == "":
        return default
    return raw.strip().lower() in ("1", "true", "yes", "on")


def _float_env(name: str, default: float) -> float:
    raw = os.getenv(name, "")
    if raw == "":
        return default
    return float(raw)


def _int_env(name: str, default: int) -> int:
    raw = os.getenv(name, "")
    if raw == "":
        return default
    return int(raw)


@dataclass
class SimulationConfig:
    """Tunable parameters of the scheduler and the value estimator."""
    learning_rate: float = 0.1
    exploration_rate: float = 0.3
    discount_factor: float = 0.9
    speed: float = 1.0
    max_tasks: int = 15
    forklift_count: int = 5
    collision_avoidance: bool = True
    emergency_response: bool = True
    weight_management: bool = True
    real_time_updates: bool = True

    @classmethod
    def from_env(cls) -> SimulationConfig:
        """Build a config from ``FORKLIFT_SIM_*`` variables, falling back to defaults."""
        base = cls()
        values = {}
        for f in fields(cls):
            name = ENV_PREFIX + f.name.upper()
            default = getattr(base, f.name)
            if isinstance(default, bool):
                values[f.name] = _bool_env(name, default)
            elif isinstance(default, int):
                values[f.name] = _int_env(name, default)
            else:
                values[f.name] = _float_env(name, default)
        config = cls(**values)
        config.validate()
        return config

    def validate(self) -> None:
        """Raise ``ValueError`` naming the first field outside its allowed range."""
        for name, (lo, hi) in RANGES.items():
            value = getattr(self, name)
            if lo is not None and value < lo:
                raise ValueError(f"{name}={value} is below the minimum {lo}")
            if hi is not None and value > hi:
                raise ValueError(f"{name}={value} is above the maximum {hi}")

    def updated(self, **changes) -> SimulationConfig:
        """Return a validated copy with *changes* applied."""
        known = {f.name for f in fields(self)}
        unknown = set(changes) - known
        if unknown:
            raise ValueError(f"unknown config option(s): {', '.join(sorted(unknown))}")
        config = replace(self, **changes)
        config.validate()
        return config

    @property
    def tick_interval_ms(self) -> float:
        return max(MIN_TICK_INTERVAL_MS, BASE_TICK_INTERVAL_MS / self.speed)

    def to_dict(self) -> dict:
        return asdict(self)

"""Headless (no-UI) simulation runner."""

from __future__ import annotations

import logging
import time as _time

from .enums import ForkliftStatus
from .models import EmergencyAlert, Forklift, Material, Task
from .config import SimulationConfig
from .scheduler import Simulation

logger = logging.getLogger(__name__)


def _reset_id_counters() -> None:
    """Reset class-level ID counters so each headless run starts fresh."""
    Forklift._next_id = 1
    Task._next_id = 1
    Material._next_id = 1
    EmergencyAlert._next_id = 1


class _SimClock:
    """Millisecond clock that only moves when the runner advances it."""

    def __init__(self, start: int = 0) -> None:
        self.now = start

    def __call__(self) -> int:
        return self.now


def run_headless(
    num_forklifts: int = 5,
    num_tasks: int = 12,
    ticks: int = 1000,
    seed: int | None = None,
    config: SimulationConfig | None = None,
    top_up: bool = True,
) -> dict:
    """Run the scheduler for a fixed number of ticks on a simulated clock.

    The whole fleet is logged in before the first tick. With *top_up* the
    task pool is refilled with random tasks up to ``max_tasks`` after every
    tick. Returns a dict of performance metrics.
    """
    if ticks < 0:
        raise ValueError(f"ticks must be >= 0, got {ticks}")
    if num_tasks < 0:
        raise ValueError(f"num_tasks must be >= 0, got {num_tasks}")
    config = (config or SimulationConfig()).updated(forklift_count=num_forklifts)

    _reset_id_counters()
    wall_start = _time.monotonic()
    clock = _SimClock()
    sim = Simulation.create(config, seed=seed, clock=clock, num_tasks=num_tasks)
    for forklift in sim.registry.forklifts:
        sim.login_forklift(forklift.id)

    step_ms = int(config.tick_interval_ms)
    idle_ticks: dict[str, int] = {f.id: 0 for f in sim.registry.forklifts}
    blocked_ticks: dict[str, int] = {f.id: 0 for f in sim.registry.forklifts}

    # Movement is gated by the run flag; no timer is started here.
    sim.is_running = True
    for _ in range(ticks):
        clock.now += step_ms
        sim.tick(include_grid=False)
        for forklift in sim.registry.forklifts:
            if forklift.status == ForkliftStatus.IDLE:
                idle_ticks[forklift.id] += 1
            if forklift.is_blocked:
                blocked_ticks[forklift.id] += 1
        if top_up:
            while sim.add_random_task() is not None:
                pass
    sim.is_running = False

    wall_elapsed = _time.monotonic() - wall_start
    metrics = sim.metrics
    sim_seconds = sim.total_time
    hours = sim_seconds / 3600.0
    total_tracked = ticks * len(idle_ticks)

    return {
        "num_forklifts": num_forklifts,
        "num_tasks": num_tasks,
        "seed": seed,
        "completed_tasks": metrics.completed_tasks,
        "tasks_per_hour": metrics.completed_tasks / hours if hours > 0 else 0.0,
        "avg_task_time": metrics.average_time,
        "total_weight_moved": metrics.total_weight_moved,
        "fuel_efficiency": metrics.fuel_efficiency,
        "collision_count": metrics.collision_count,
        "blocked_paths": metrics.blocked_paths,
        "alerts": len(sim.alerts.alerts),
        "forklift_utilization": (
            1.0 - sum(idle_ticks.values()) / total_tracked if total_tracked else 0.0
        ),
        "forklift_blocked_fraction": (
            sum(blocked_ticks.values()) / total_tracked if total_tracked else 0.0
        ),
        "exploration_rate": sim.estimator.exploration_rate,
        "sim_duration": sim_seconds,
        "wall_clock_seconds": wall_elapsed,
        "total_ticks": sim.tick_count,
    }

"""Simulation scheduler: the per-tick assignment, movement and alerting loop."""

from __future__ import annotations

import logging
import random
import threading
import time
from typing import Callable

from .enums import AlertSeverity, AlertType, ForkliftStatus, TaskStatus
from .constants import (
    STUCK_THRESHOLD_MS, BLOCKED_BACKDATE_MS, LOW_FUEL_THRESHOLD,
    EXPLORATION_DECAY_EVERY, SIM_SECONDS_PER_TICK, INITIAL_TASK_COUNT,
    STEP_COST, PICKUP_STEP_COST, DROPOFF_STEP_COST, MANUAL_STEP_COST,
)
from .alerts import AlertCenter, FleetMetrics, SYSTEM_SOURCE
from .config import SimulationConfig
from .generators import generate_fleet, generate_random_tasks
from .grid import WarehouseGrid
from .map_builder import build_grid
from .models import Forklift, Position, Task
from .pathfinding import find_path, find_alternate_path
from .persistence import (
    GridStore, PersistenceStrategy, FORKLIFTS, TASKS, TASK_HISTORY, WAREHOUSE_CONFIG,
)
from .qlearning import QLearningEstimator, ValueEstimator
from .registry import Registry

logger = logging.getLogger(__name__)


def wall_clock_ms() -> int:
    return int(time.time() * 1000)


def _id_number(record_id: str) -> int:
    """Numeric suffix of ids like ``task-12``; 0 when there is none."""
    suffix = record_id.rsplit("-", 1)[-1]
    return int(suffix) if suffix.isdigit() else 0


class PeriodicTimer:
    """Background thread calling *callback* every *interval* seconds until cancelled."""

    def __init__(self, interval: float, callback: Callable[[], object]) -> None:
        self.interval = interval
        self.callback = callback
        self._stop = threading.Event()
        self._thread = threading.Thread(target=self._run, name="forklift-sim-tick", daemon=True)

    def start(self) -> None:
        self._thread.start()

    def cancel(self) -> None:
        self._stop.set()
        if self._thread.is_alive() and threading.current_thread() is not self._thread:
            self._thread.join(timeout=self.interval + 1.0)

    def _run(self) -> None:
        while not self._stop.wait(self.interval):
            try:
                self.callback()
            except Exception:
                logger.exception("[Scheduler] Tick failed, stopping the timer")
                self._stop.set()


class Simulation:
    """Owns the grid, the registry and the alert/metric state of one warehouse run.

    Every state change (automatic tick or operator command) runs under one
    re-entrant lock, so manual commands never interleave with a tick.
    """

    def __init__(
        self,
        config: SimulationConfig | None = None,
        grid: WarehouseGrid | None = None,
        forklifts: list[Forklift] | None = None,
        tasks: list[Task] | None = None,
        estimator: ValueEstimator | None = None,
        persistence: PersistenceStrategy | None = None,
        clock: Callable[[], int] = wall_clock_ms,
        rng: random.Random | None = None,
        alerts: AlertCenter | None = None,
    ) -> None:
        self.config: SimulationConfig = config or SimulationConfig()
        self.config.validate()
        self.clock = clock
        self.rng = rng or random.Random()
        self.grid: WarehouseGrid = grid or build_grid()
        self.registry = Registry(forklifts, tasks)
        self.estimator: ValueEstimator = estimator or QLearningEstimator(
            self.config.learning_rate,
            self.config.discount_factor,
            self.config.exploration_rate,
            rng=self.rng,
        )
        self.alerts = alerts or AlertCenter()
        self.metrics = FleetMetrics()
        self.metrics.total_tasks = len(self.registry.tasks)
        self.persistence = persistence
        self.grid_store = GridStore(persistence) if persistence is not None else None
        self.tick_count: int = 0
        self.total_time: float = 0.0
        self.is_running: bool = False
        self.is_paused: bool = False
        self._lock = threading.RLock()
        self._timer: PeriodicTimer | None = None

    @classmethod
    def create(
        cls,
        config: SimulationConfig | None = None,
        seed: int | None = None,
        persistence: PersistenceStrategy | None = None,
        clock: Callable[[], int] = wall_clock_ms,
        num_tasks: int = INITIAL_TASK_COUNT,
    ) -> Simulation:
        """Build the standard warehouse with a generated fleet and task pool."""
        config = config or SimulationConfig()
        rng = random.Random(seed)
        now = clock()
        grid = None
        if persistence is not None:
            grid = GridStore(persistence).load()
        if grid is None:
            grid = build_grid()
        sim = cls(
            config,
            grid,
            generate_fleet(config.forklift_count, now),
            generate_random_tasks(num_tasks, grid, rng, now),
            persistence=persistence,
            clock=clock,
            rng=rng,
        )
        sim._save_grid()
        return sim

    @classmethod
    def restore(
        cls,
        persistence: PersistenceStrategy,
        config: SimulationConfig | None = None,
        seed: int | None = None,
        clock: Callable[[], int] = wall_clock_ms,
    ) -> Simulation:
        """Rebuild a run from the records written behind by a previous one.

        Falls back to :meth:`create` when the store holds no forklifts.
        """
        records = persistence.load_all(FORKLIFTS)
        if not records:
            return cls.create(config, seed=seed, persistence=persistence, clock=clock)
        tasks = [Task.from_dict(r) for r in persistence.load_all(TASKS)]
        Task._next_id = max([Task._next_id] + [_id_number(t.id) + 1 for t in tasks])
        grid = GridStore(persistence).load() or build_grid()
        sim = cls(
            config,
            grid,
            [Forklift.from_dict(r) for r in records],
            tasks,
            persistence=persistence,
            clock=clock,
            rng=random.Random(seed),
        )
        completed = [t for t in sim.registry.tasks if t.status == TaskStatus.COMPLETED]
        for task in completed:
            sim.metrics.record_completion(task.actual_time or 0.0, task.material.weight)
        logger.info(
            "[Scheduler] Restored %d forklifts and %d tasks (%d completed)",
            len(sim.registry.forklifts), len(sim.registry.tasks), len(completed),
        )
        return sim

    # -- timer ------------------------------------------------------------

    def start(self) -> None:
        """Start ticking every ``config.tick_interval_ms``."""
        with self._lock:
            if self.is_running:
                return
            self.is_running = True
            self.is_paused = False
            self._start_timer()
        logger.info(
            "[Scheduler] Started (%d forklifts, tick every %.0f ms)",
            len(self.registry.forklifts), self.config.tick_interval_ms,
        )

    def stop(self) -> None:
        """Pause the run and cancel the periodic timer."""
        with self._lock:
            if self.is_running:
                self.is_running = False
                self.is_paused = True
                logger.info("[Scheduler] Paused at tick %d", self.tick_count)
            timer, self._timer = self._timer, None
        if timer is not None:
            timer.cancel()

    def _start_timer(self) -> None:
        self._timer = PeriodicTimer(self.config.tick_interval_ms / 1000.0, self.tick)
        self._timer.start()

    def reset(self, regenerate: bool = True) -> None:
        """Stop and rebuild fleet, tasks and counters.

        With ``regenerate=False`` a layout saved in the persistence store is reused.
        """
        self.stop()
        with self._lock:
            now = self.clock()
            grid = None
            if self.grid_store is not None:
                if regenerate:
                    self.grid_store.clear()
                else:
                    grid = self.grid_store.load()
            self.grid = grid or build_grid(self.grid.width, self.grid.height)
            self.registry.clear()
            for forklift in generate_fleet(self.config.forklift_count, now):
                self.registry.add_forklift(forklift)
            for task in generate_random_tasks(INITIAL_TASK_COUNT, self.grid, self.rng, now):
                self.registry.add_task(task)
            self.alerts.clear()
            self.metrics = FleetMetrics()
            self.metrics.total_tasks = len(self.registry.tasks)
            self.estimator.reset(self.config)
            self.tick_count = 0
            self.total_time = 0.0
            self.is_paused = False
            self._save_grid()
        logger.info("[Scheduler] Reset (%s layout)", "new" if regenerate else "stored")

    # -- tick -------------------------------------------------------------

    def tick(self, now: int | None = None, include_grid: bool = True) -> dict:
        """Run one scheduler cycle and return the resulting snapshot.

        The snapshot carries the grid rows unless *include_grid* is false.
        """
        with self._lock:
            now = self.clock() if now is None else now
            for forklift in self.registry.forklifts:
                self._update_forklift(forklift, now)
            self.reconcile_tasks(now)
            self._detect_collisions(now)
            self.metrics.refresh(self.registry.forklifts)
            self.alerts.age_out(now)
            self.grid.mark_occupancy(self.registry.positions())

            self.tick_count += 1
            self.total_time += SIM_SECONDS_PER_TICK
            if self.tick_count % EXPLORATION_DECAY_EVERY == 0:
                self.estimator.decay_exploration()
            self._write_behind()
            return self.snapshot(include_grid)

    def _update_forklift(self, forklift: Forklift, now: int) -> None:
        if not forklift.is_logged_in:
            forklift.status = ForkliftStatus.OFFLINE
            return

        if self.config.emergency_response and self.is_stuck(forklift, now):
            self.alerts.raise_alert(
                AlertType.STUCK, forklift.id, forklift.position,
                f"{forklift.id} has been stuck for too long", now, AlertSeverity.HIGH,
            )
            self.metrics.blocked_paths += 1
            forklift.status = ForkliftStatus.STUCK
            forklift.is_blocked = True
            forklift.blockage_reason = "Path blocked or no valid moves"
            return

        if self.config.emergency_response:
            self._check_resources(forklift, now)

        if forklift.status == ForkliftStatus.IDLE and forklift.current_task_id is None:
            self._auto_assign(forklift, now)
            return

        if self.is_running and forklift.is_routed and len(forklift.path) > 1:
            self._step(forklift, now)
            return

        if len(forklift.path) <= 1 and forklift.status != ForkliftStatus.IDLE:
            self._route_exhausted(forklift, now)

    def is_stuck(self, forklift: Forklift, now: int) -> bool:
        return (
            forklift.is_routed
            and len(forklift.path) > 0
            and now - forklift.last_move_time > STUCK_THRESHOLD_MS
        )

    def _check_resources(self, forklift: Forklift, now: int) -> None:
        if forklift.fuel_level < LOW_FUEL_THRESHOLD:
            self.alerts.raise_alert(
                AlertType.LOW_FUEL, forklift.id, forklift.position,
                f"{forklift.id} has low fuel: {forklift.fuel_level:.1f}%", now, AlertSeverity.HIGH,
            )
        if forklift.current_load > forklift.capacity:
            self.alerts.raise_alert(
                AlertType.OVERLOAD, forklift.id, forklift.position,
                f"{forklift.id} is overloaded: {forklift.current_load}kg > {forklift.capacity}kg",
                now, AlertSeverity.CRITICAL,
            )

    # -- assignment ---------------------------------------------------------

    def _plan(self, forklift: Forklift, goal: Position, blocked: list[Position] | None = None) -> list[Position]:
        """Primary search, then the alternate strategies."""
        fleet = self.registry.forklifts
        if not blocked:
            path = find_path(forklift.position, goal, self.grid, fleet, forklift.id)
            if path:
                return path
        return find_alternate_path(
            forklift.position, goal, self.grid, fleet, forklift.id, blocked or (),
        )

    def _auto_assign(self, forklift: Forklift, now: int) -> bool:
        candidates = [
            t for t in self.registry.pending_tasks()
            if forklift.can_carry(t.material)
        ]
        candidates.sort(key=lambda t: (-t.priority, forklift.position.manhattan(t.pickup)))
        for task in candidates:
            path = self._plan(forklift, task.pickup)
            if not path:
                continue
            self._assign(task, forklift, path, now)
            logger.info(
                "[Scheduler] %s assigned %s (priority %d) -> pickup %s (%d cells)",
                forklift.id, task.id, task.priority, tuple(task.pickup), len(path),
            )
            return True
        return False

    def _assign(self, task: Task, forklift: Forklift, path: list[Position], now: int) -> None:
        self.registry.assign(task, forklift)
        task.assigned_at = now
        forklift.path = path
        forklift.status = ForkliftStatus.MOVING
        forklift.last_move_time = now
        forklift.is_blocked = False
        forklift.blockage_reason = None

    # -- movement -----------------------------------------------------------

    def _occupant(self, forklift: Forklift, cell: Position) -> Forklift | None:
        for other in self.registry.forklifts:
            if other is not forklift and other.position == cell:
                return other
        return None

    def _step(
        self,
        forklift: Forklift,
        now: int,
        manual: bool = False,
    ) -> bool:
        """Advance *forklift* one cell along its path. Returns ``True`` if it moved.

        Manual steps always check for collisions and use the operator step cost.
        A cell edited into a shelf or obstacle after planning is never entered.
        """
        nxt = forklift.path[1]
        task = self.registry.task_of(forklift)

        check = manual or self.config.collision_avoidance
        blocker = self._occupant(forklift, nxt) if check else None
        if blocker is not None:
            reason = f"occupied by {blocker.id}"
        elif not self.grid.is_traversable(nxt):
            kind = self.grid.kind(nxt)
            reason = f"is now {kind.value}" if kind is not None else "is off the grid"
        else:
            reason = None

        if reason is not None:
            if task is not None:
                target = task.pickup if task.started_at is None else task.dropoff
                alternate = self._plan(forklift, target, blocked=[nxt])
                if alternate:
                    forklift.path = alternate
                    forklift.last_move_time = now
                    logger.info(
                        "[Collision] %s re-routed: cell %s %s (%d cells)",
                        forklift.id, tuple(nxt), reason, len(alternate),
                    )
                    return False
            forklift.last_move_time = now - BLOCKED_BACKDATE_MS
            forklift.is_blocked = True
            forklift.blockage_reason = f"Cell {tuple(nxt)} {reason}"
            logger.debug("[Collision] %s held at %s: cell %s %s", forklift.id, tuple(forklift.position), tuple(nxt), reason)
            return False

        forklift.is_blocked = False
        forklift.blockage_reason = None

        if task is not None and forklift.status == ForkliftStatus.MOVING and nxt == task.pickup:
            forklift.advance(MANUAL_STEP_COST if manual else PICKUP_STEP_COST, now)
            self._pick_up(forklift, task, now)
        elif task is not None and forklift.status == ForkliftStatus.CARRYING and nxt == task.dropoff:
            # Unloading happens in the next reconciliation pass.
            forklift.advance(MANUAL_STEP_COST if manual else DROPOFF_STEP_COST, now)
            logger.info("[Scheduler] %s reached dropoff for %s", forklift.id, task.id)
        else:
            forklift.advance(MANUAL_STEP_COST if manual else STEP_COST, now)
        return True

    def _pick_up(self, forklift: Forklift, task: Task, now: int) -> None:
        forklift.current_load += task.material.weight
        task.started_at = now
        forklift.status = ForkliftStatus.CARRYING
        path = self._plan(forklift, task.dropoff)
        forklift.path = path or [forklift.position]
        logger.info(
            "[Scheduler] %s picked up %s (%s, %skg) -> dropoff %s (%d cells)",
            forklift.id, task.id, task.material.name, task.material.weight,
            tuple(task.dropoff), len(path),
        )

    def _route_exhausted(self, forklift: Forklift, now: int) -> None:
        """Handle a forklift whose path has run out."""
        task = self.registry.task_of(forklift)
        if task is None:
            forklift.status = ForkliftStatus.IDLE
            forklift.clear_route()
            return

        if task.started_at is None:
            if forklift.position == task.pickup:
                self._pick_up(forklift, task, now)
                return
            forklift.status = ForkliftStatus.IDLE
            forklift.clear_route()
            self.registry.release(forklift, requeue=True)
            return

        if forklift.position == task.dropoff:
            # Keeps current_task_id so reconciliation can complete the delivery.
            forklift.status = ForkliftStatus.IDLE
            forklift.clear_route()
            return

        # Loaded but away from the dropoff: re-plan and keep trying each tick.
        path = self._plan(forklift, task.dropoff)
        forklift.status = ForkliftStatus.CARRYING
        if len(path) > 1:
            forklift.path = path
            forklift.is_blocked = False
            forklift.blockage_reason = None
        else:
            forklift.path = [forklift.position]
            forklift.is_blocked = True
            forklift.blockage_reason = f"No route to dropoff {tuple(task.dropoff)}"

    # -- reconciliation -------------------------------------------------------

    def reconcile_tasks(self, now: int) -> None:
        """Derive task status from the status of the forklift holding it."""
        for task in self.registry.tasks:
            holder = self.registry.holder_of(task)
            if holder is None:
                continue
            if holder.status == ForkliftStatus.IDLE and task.status != TaskStatus.COMPLETED:
                self._complete(task, holder, now)
            elif holder.status == ForkliftStatus.CARRYING and task.status != TaskStatus.CARRYING:
                task.status = TaskStatus.CARRYING
                task.assigned_forklift = holder.id
            elif task.status == TaskStatus.PENDING:
                task.status = TaskStatus.ASSIGNED
                task.assigned_forklift = holder.id
                if task.assigned_at is None:
                    task.assigned_at = now

    def _complete(self, task: Task, forklift: Forklift, now: int) -> None:
        weight = task.material.weight
        started = task.assigned_at if task.assigned_at is not None else task.created_at
        task.status = TaskStatus.COMPLETED
        task.completed_at = now
        task.actual_time = max(0, now - started) / 1000.0
        task.assigned_forklift = forklift.id
        forklift.current_load = max(0.0, forklift.current_load - weight)
        forklift.tasks_completed += 1
        forklift.total_time += task.actual_time
        self.registry.release(forklift)
        self.metrics.record_completion(task.actual_time, weight)
        logger.info(
            "[Scheduler] %s completed %s (%skg, %.1fs) - total completed: %d",
            forklift.id, task.id, weight, task.actual_time, self.metrics.completed_tasks,
        )
        if self.persistence is not None:
            self.persistence.save(TASK_HISTORY, task.id, {
                "task_id": task.id,
                "forklift_id": forklift.id,
                "material": task.material.name,
                "weight": weight,
                "completed_at": now,
                "actual_time": task.actual_time,
            })

    def _detect_collisions(self, now: int) -> None:
        fleet = self.registry.forklifts
        pairs = [
            (a, b)
            for i, a in enumerate(fleet)
            for b in fleet[i + 1:]
            if a.position == b.position
        ]
        if not pairs:
            return
        self.metrics.collision_count += 1
        if not self.config.emergency_response:
            return
        for a, b in pairs:
            for forklift in (a, b):
                self.alerts.raise_alert(
                    AlertType.COLLISION, forklift.id, forklift.position,
                    f"Collision detected at ({forklift.position.x}, {forklift.position.y})",
                    now, AlertSeverity.CRITICAL,
                )

    # -- operator commands ----------------------------------------------------

    def accept_task(self, task_id: str, forklift_id: str) -> bool:
        """Operator takes *task_id* with *forklift_id*. Returns ``False`` if rejected."""
        with self._lock:
            task = self.registry.find_task(task_id)
            forklift = self.registry.find_forklift(forklift_id)
            if task is None or forklift is None or task.status != TaskStatus.PENDING:
                logger.info("[Scheduler] accept_task(%s, %s) rejected: not available", task_id, forklift_id)
                return False
            if forklift.current_task_id is not None:
                logger.info("[Scheduler] %s already holds %s", forklift_id, forklift.current_task_id)
                return False
            if not forklift.can_carry(task.material):
                logger.info(
                    "[Scheduler] %s cannot carry %s (weight: %skg, capacity: %skg)",
                    forklift_id, task_id, task.material.weight, forklift.capacity,
                )
                return False
            path = find_path(forklift.position, task.pickup, self.grid, self.registry.forklifts, forklift.id)
            if not path:
                logger.info("[Scheduler] No path found for %s to %s", forklift_id, task_id)
                return False
            now = self.clock()
            self._assign(task, forklift, path, now)
            task.status = TaskStatus.ASSIGNED
            logger.info("[Scheduler] %s accepted by %s", task_id, forklift_id)
            return True

    def complete_current_step(self, forklift_id: str) -> bool:
        """Advance *forklift_id* one cell on operator request. Returns ``True`` if it moved."""
        with self._lock:
            forklift = self.registry.find_forklift(forklift_id)
            if forklift is None or len(forklift.path) <= 1:
                return False
            moved = self._step(forklift, self.clock(), manual=True)
            if not moved:
                logger.info("[Collision] Manual step prevented for %s", forklift_id)
            return moved

    def set_config(self, **changes) -> SimulationConfig:
        """Apply validated config changes; raises ``ValueError`` on bad values."""
        with self._lock:
            old = self.config
            self.config = old.updated(**changes)
            self.estimator.configure(self.config)
            if (
                self.config.forklift_count != old.forklift_count
                and not self.is_running and not self.is_paused
            ):
                for forklift in self.registry.forklifts:
                    self.registry.remove_forklift(forklift.id)
                for forklift in generate_fleet(self.config.forklift_count, self.clock()):
                    self.registry.add_forklift(forklift)
            restart = self.is_running and self.config.speed != old.speed
            if self.persistence is not None:
                for key, value in self.config.to_dict().items():
                    self.persistence.save(WAREHOUSE_CONFIG, key, {"value": value})
        if restart:
            timer, self._timer = self._timer, None
            if timer is not None:
                timer.cancel()
            with self._lock:
                if self.is_running:
                    self._start_timer()
        return self.config

    def add_random_task(self) -> Task | None:
        """Generate one task unless ``max_tasks`` open tasks already exist."""
        with self._lock:
            if self.registry.open_task_count() >= self.config.max_tasks:
                logger.info("[Scheduler] Task limit reached (%d open)", self.config.max_tasks)
                return None
            tasks = generate_random_tasks(1, self.grid, self.rng, self.clock())
            if not tasks:
                return None
            task = self.registry.add_task(tasks[0])
            self.metrics.total_tasks += 1
            logger.info("[Scheduler] Added task %s", task.id)
            return task

    def add_manual_task(self, task: Task) -> Task:
        with self._lock:
            self.registry.add_task(task)
            self.metrics.total_tasks += 1
            logger.info("[Scheduler] Added manual task %s", task.id)
            return task

    def add_forklift(
        self,
        position: tuple[int, int],
        operator_name: str = "",
        capacity: float = 1000.0,
    ) -> Forklift:
        with self._lock:
            forklift = Forklift(
                position,
                operator_name=operator_name,
                capacity=capacity,
                forklift_id=self.registry.next_forklift_id(),
                last_move_time=self.clock(),
            )
            self.registry.add_forklift(forklift)
            logger.info("[Scheduler] Added %s at %s", forklift.id, tuple(forklift.position))
            return forklift

    def update_forklift(self, forklift_id: str, **updates) -> Forklift | None:
        """Overwrite attributes of *forklift_id*; unknown attributes raise ``AttributeError``."""
        with self._lock:
            forklift = self.registry.find_forklift(forklift_id)
            if forklift is None:
                return None
            for name, value in updates.items():
                if not hasattr(forklift, name):
                    raise AttributeError(f"Forklift has no attribute {name!r}")
                if name == "position":
                    value = Position(*value)
                setattr(forklift, name, value)
            return forklift

    def remove_forklift(self, forklift_id: str) -> bool:
        with self._lock:
            removed = self.registry.remove_forklift(forklift_id)
            if removed is not None:
                logger.info("[Scheduler] Removed %s", forklift_id)
            return removed is not None

    def login_forklift(self, forklift_id: str) -> bool:
        with self._lock:
            forklift = self.registry.find_forklift(forklift_id)
            if forklift is None:
                return False
            now = self.clock()
            forklift.is_logged_in = True
            forklift.last_login_time = now
            forklift.last_move_time = now
            # A forklift that still holds a task resumes it.
            task = self.registry.task_of(forklift)
            if task is None:
                forklift.status = ForkliftStatus.IDLE
            elif task.started_at is None:
                forklift.status = ForkliftStatus.MOVING
            else:
                forklift.status = ForkliftStatus.CARRYING
            logger.info("[Scheduler] %s logged in (%s)", forklift_id, forklift.operator_name)
            return True

    def logout_forklift(self, forklift_id: str) -> bool:
        with self._lock:
            forklift = self.registry.find_forklift(forklift_id)
            if forklift is None:
                return False
            task = self.registry.task_of(forklift)
            if task is not None and task.started_at is None:
                self.registry.release(forklift, requeue=True)
            forklift.is_logged_in = False
            forklift.status = ForkliftStatus.OFFLINE
            forklift.clear_route()
            logger.info("[Scheduler] %s logged out", forklift_id)
            return True

    def add_obstacle(self, pos: tuple[int, int]) -> bool:
        with self._lock:
            if not self.grid.add_obstacle(pos):
                return False
            self.alerts.raise_alert(
                AlertType.PATH_BLOCKED, SYSTEM_SOURCE, pos,
                f"New obstacle added at ({pos[0]}, {pos[1]})", self.clock(), AlertSeverity.MEDIUM,
            )
            self.metrics.blocked_paths += 1
            self._save_grid()
            return True

    def add_shelf(self, pos: tuple[int, int]) -> bool:
        with self._lock:
            changed = self.grid.add_shelf(pos, item=f"Shelf-{pos[0]}-{pos[1]}")
            if changed:
                self._save_grid()
            return changed

    def remove_shelf(self, pos: tuple[int, int]) -> bool:
        with self._lock:
            changed = self.grid.remove_shelf(pos)
            if changed:
                self._save_grid()
            return changed

    # -- output ---------------------------------------------------------------

    def snapshot(self, include_grid: bool = False) -> dict:
        """Read-only view of the run for rendering or persistence."""
        with self._lock:
            data = {
                "tick": self.tick_count,
                "total_time": self.total_time,
                "is_running": self.is_running,
                "is_paused": self.is_paused,
                "exploration_rate": self.estimator.exploration_rate,
                "forklifts": [f.to_dict() for f in self.registry.forklifts],
                "tasks": [t.to_dict() for t in self.registry.tasks],
                "alerts": [a.to_dict() for a in self.alerts.alerts],
                "metrics": self.metrics.to_dict(),
            }
            if include_grid:
                data["grid"] = self.grid.to_rows()
            return data

    def _save_grid(self) -> None:
        if self.grid_store is not None:
            self.grid_store.save(self.grid)

    def _write_behind(self) -> None:
        if self.persistence is None or not self.config.real_time_updates:
            return
        for forklift in self.registry.forklifts:
            self.persistence.save(FORKLIFTS, forklift.id, forklift.to_dict())
        for task in self.registry.tasks:
            self.persistence.save(TASKS, task.id, task.to_dict())

"""
Tests for the simulation tick: assignment, movement, reconciliation,
collision handling, alerts and operator commands.
Every test drives ticks by hand with an injected millisecond clock.
"""

import random

import pytest

from forklift_simulation import (
    AlertSeverity, AlertType, CellType, Forklift, ForkliftStatus,
    InMemoryPersistence, Material, MaterialPriority, Position, Simulation,
    SimulationConfig, Task, TaskStatus, build_grid,
)
from forklift_simulation.grid import TRAVERSABLE
from forklift_simulation.persistence import TASK_HISTORY


START = 100_000


# -- Helpers ----------------------------------------------------------

class _Clock:
    def __init__(self, now=START):
        self.now = now

    def __call__(self):
        return self.now


def _online(pos, fid, capacity=1000.0):
    f = Forklift(pos, operator_name="Test", capacity=capacity, forklift_id=fid, last_move_time=START)
    f.is_logged_in = True
    f.status = ForkliftStatus.IDLE
    return f


def _task(pickup, dropoff, weight=100, priority=MaterialPriority.MEDIUM, tid=None):
    return Task(pickup, dropoff, Material("Steel Pipes", weight, priority=priority), task_id=tid)


def _sim(forklifts=(), tasks=(), persistence=None, **config):
    clock = _Clock()
    sim = Simulation(
        SimulationConfig(**config),
        build_grid(),
        list(forklifts),
        list(tasks),
        persistence=persistence,
        clock=clock,
        rng=random.Random(1),
    )
    return sim, clock


def _hold(sim, forklift, task, path, status=ForkliftStatus.MOVING):
    sim.registry.assign(task, forklift)
    forklift.path = [Position(*p) for p in path]
    forklift.status = status


# -- Resource alerts --------------------------------------------------

def test_low_fuel_alert_is_deduplicated():
    f = _online((3, 4), "forklift-1")
    f.fuel_level = 10
    sim, clock = _sim([f])

    sim.tick()
    assert sim.alerts.count(AlertType.LOW_FUEL, f.id) == 1
    alert = sim.alerts.alerts[0]
    assert alert.severity == AlertSeverity.HIGH

    clock.now += 1000
    sim.tick()
    assert sim.alerts.count(AlertType.LOW_FUEL, f.id) == 1


def test_overload_alert_raised_every_tick():
    f = _online((3, 4), "forklift-1")
    f.current_load = 1500
    sim, clock = _sim([f])
    sim.tick()
    clock.now += 1000
    sim.tick()
    assert sim.alerts.count(AlertType.OVERLOAD, f.id) == 2


def test_overload_alert_ignores_weight_management():
    f = _online((3, 4), "forklift-1", capacity=100)
    f.current_load = 500
    sim, _ = _sim([f], weight_management=False)
    sim.tick()
    assert sim.alerts.count(AlertType.OVERLOAD, f.id) == 1


def test_no_resource_alerts_without_emergency_response():
    f = _online((3, 4), "forklift-1")
    f.fuel_level = 5
    f.current_load = 1500
    sim, _ = _sim([f], emergency_response=False)
    sim.tick()
    assert sim.alerts.alerts == []


# -- Stuck detection --------------------------------------------------

def test_stuck_detection():
    f = _online((1, 5), "forklift-1")
    f.status = ForkliftStatus.MOVING
    f.path = [Position(1, 5), Position(1, 6)]
    f.last_move_time = START - 15001
    sim, _ = _sim([f])

    sim.tick()
    assert f.status == ForkliftStatus.STUCK
    assert f.is_blocked
    assert sim.alerts.count(AlertType.STUCK, f.id) == 1
    assert sim.metrics.blocked_paths == 1


def test_not_stuck_at_threshold():
    f = _online((1, 5), "forklift-1")
    f.status = ForkliftStatus.MOVING
    f.path = [Position(1, 5), Position(1, 6)]
    f.last_move_time = START - 15000
    sim, _ = _sim([f])
    sim.tick()
    assert f.status == ForkliftStatus.MOVING


# -- Auto-assignment --------------------------------------------------

def test_auto_assign_prefers_priority():
    f = _online((3, 4), "forklift-1")
    near = _task((3, 3), (5, 4), priority=MaterialPriority.LOW)
    far = _task((30, 3), (5, 4), priority=MaterialPriority.URGENT)
    sim, _ = _sim([f], [near, far])

    sim.tick()
    assert f.current_task_id == far.id
    assert f.status == ForkliftStatus.MOVING
    assert f.path[0] == (3, 4)
    assert f.path[-1] == (30, 3)
    assert far.status == TaskStatus.ASSIGNED
    assert far.assigned_forklift == f.id
    assert near.status == TaskStatus.PENDING


def test_auto_assign_breaks_ties_by_distance():
    f = _online((3, 4), "forklift-1")
    far = _task((12, 3), (5, 4))
    near = _task((3, 3), (5, 4))
    sim, _ = _sim([f], [far, near])
    sim.tick()
    assert f.current_task_id == near.id


def test_auto_assign_respects_capacity():
    f = _online((3, 4), "forklift-1", capacity=800)
    heavy = _task((3, 3), (5, 4), weight=900)
    sim, _ = _sim([f], [heavy])
    sim.tick()
    assert f.current_task_id is None
    assert f.status == ForkliftStatus.IDLE
    assert heavy.status == TaskStatus.PENDING


def test_auto_assign_skips_unreachable_task():
    f = _online((3, 4), "forklift-1")
    walled = _task((0, 0), (5, 4), priority=MaterialPriority.URGENT)
    ok = _task((3, 3), (5, 4), priority=MaterialPriority.LOW)
    sim, _ = _sim([f], [walled, ok])
    sim.tick()
    assert f.current_task_id == ok.id


def test_offline_forklift_is_skipped():
    f = Forklift((3, 4), forklift_id="forklift-1")
    task = _task((3, 3), (5, 4))
    sim, _ = _sim([f], [task])
    sim.tick()
    assert f.status == ForkliftStatus.OFFLINE
    assert f.current_task_id is None
    assert task.status == TaskStatus.PENDING


def test_second_forklift_does_not_take_held_task():
    a = _online((3, 4), "forklift-1")
    b = _online((6, 4), "forklift-2")
    task = _task((3, 3), (5, 4))
    sim, _ = _sim([a, b], [task])
    sim.tick()
    assert a.current_task_id == task.id
    assert b.current_task_id is None


# -- Movement ---------------------------------------------------------

def test_movement_requires_run_flag():
    f = _online((3, 4), "forklift-1")
    task = _task((12, 3), (5, 4))
    sim, _ = _sim([f], [task])
    sim.tick()
    path_before = list(f.path)

    sim.tick()
    assert f.position == (3, 4)
    assert f.path == path_before


def test_automatic_delivery_completes_one_tick_after_arrival():
    f = _online((3, 4), "forklift-1")
    task = _task((3, 3), (5, 4), weight=250)
    sim, clock = _sim([f], [task])
    sim.is_running = True

    sim.tick()                      # assign
    clock.now += 1000
    sim.tick()                      # pickup arrival
    assert f.status == ForkliftStatus.CARRYING
    assert f.current_load == 250
    assert task.status == TaskStatus.CARRYING
    assert f.path[0] == (3, 3)
    assert f.path[-1] == (5, 4)

    for _ in range(20):
        clock.now += 1000
        sim.tick()
        if task.status == TaskStatus.COMPLETED:
            break

    assert task.status == TaskStatus.COMPLETED
    assert f.position == (5, 4)
    assert f.tasks_completed == 1
    assert f.current_load == 0
    assert f.current_task_id is None
    assert f.status == ForkliftStatus.IDLE
    assert f.fuel_level < 100
    assert sim.metrics.completed_tasks == 1
    assert sim.metrics.total_weight_moved == 250


def test_path_exhausted_before_pickup_requeues_task():
    f = _online((3, 4), "forklift-1")
    task = _task((30, 3), (5, 4))
    sim, _ = _sim([f], [task])
    _hold(sim, f, task, [(3, 4)])

    sim.tick()
    assert f.status == ForkliftStatus.IDLE
    assert f.current_task_id is None
    assert task.status == TaskStatus.PENDING
    assert task.assigned_forklift is None


def test_blocked_step_reroutes_around_forklift():
    mover = _online((1, 5), "forklift-1")
    blocker = _online((1, 6), "forklift-2")
    task = _task((1, 7), (1, 20))
    sim, clock = _sim([mover, blocker], [task])
    _hold(sim, mover, task, [(1, 5), (1, 6), (1, 7)])
    sim.is_running = True

    sim.tick()
    assert mover.position == (1, 5)
    assert mover.path[0] == (1, 5)
    assert mover.path[-1] == (1, 7)
    assert (1, 6) not in mover.path
    assert mover.last_move_time == clock.now


def test_blocked_step_without_task_backdates_last_move():
    mover = _online((1, 5), "forklift-1")
    blocker = _online((1, 6), "forklift-2")
    mover.status = ForkliftStatus.MOVING
    mover.path = [Position(1, 5), Position(1, 6), Position(1, 7)]
    sim, clock = _sim([mover, blocker])
    sim.is_running = True

    sim.tick()
    assert mover.position == (1, 5)
    assert mover.last_move_time == clock.now - 5000
    assert mover.is_blocked


def test_step_reroutes_around_new_obstacle():
    mover = _online((1, 5), "forklift-1")
    task = _task((1, 7), (1, 20))
    sim, clock = _sim([mover], [task])
    _hold(sim, mover, task, [(1, 5), (1, 6), (1, 7)])
    sim.is_running = True
    assert sim.add_obstacle((1, 6))

    sim.tick()
    assert mover.position == (1, 5)
    assert (1, 6) not in mover.path
    assert mover.path[-1] == (1, 7)
    assert mover.last_move_time == clock.now


def test_step_never_enters_new_shelf():
    mover = _online((1, 5), "forklift-1")
    mover.status = ForkliftStatus.MOVING
    mover.path = [Position(1, 5), Position(1, 6), Position(1, 7)]
    sim, clock = _sim([mover])
    sim.is_running = True
    assert sim.add_shelf((1, 6))

    sim.tick()
    assert mover.position == (1, 5)
    assert mover.last_move_time == clock.now - 5000
    assert mover.is_blocked
    assert "shelf" in mover.blockage_reason
    assert not sim.complete_current_step(mover.id)
    assert mover.position == (1, 5)


def test_collision_avoidance_off_allows_shared_cell():
    mover = _online((1, 5), "forklift-1")
    parked = _online((1, 6), "forklift-2")
    mover.status = ForkliftStatus.MOVING
    mover.path = [Position(1, 5), Position(1, 6), Position(1, 7)]
    sim, _ = _sim([mover, parked], collision_avoidance=False)
    sim.is_running = True

    sim.tick()
    assert mover.position == (1, 6)
    assert sim.metrics.collision_count == 1
    assert sim.alerts.count(AlertType.COLLISION) == 2


# -- Collision detection ----------------------------------------------

def test_collision_alert_per_pair():
    fleet = [_online((1, 5), f"forklift-{i}") for i in range(1, 4)]
    sim, _ = _sim(fleet)
    sim.tick()
    assert sim.metrics.collision_count == 1
    for f in fleet:
        assert sim.alerts.count(AlertType.COLLISION, f.id) == 2
    assert all(a.severity == AlertSeverity.CRITICAL for a in sim.alerts.alerts)


# -- Manual stepping --------------------------------------------------

def test_manual_walk_completes_on_next_tick():
    f = _online((3, 4), "forklift-1")
    task = _task((3, 3), (5, 4), weight=300)
    sim, _ = _sim([f], [task])

    assert sim.accept_task(task.id, f.id)
    assert task.status == TaskStatus.ASSIGNED
    assert f.status == ForkliftStatus.MOVING
    assert f.path == [(3, 4), (3, 3)]

    steps = 0
    while len(f.path) > 1:
        assert sim.complete_current_step(f.id)
        steps += 1
        assert steps < 50
    assert f.position == (5, 4)
    assert f.current_load == 300
    assert task.status == TaskStatus.ASSIGNED

    sim.tick()
    assert task.status == TaskStatus.COMPLETED
    assert f.tasks_completed == 1
    assert f.current_load == 0
    assert f.current_task_id is None


def test_manual_step_cost():
    f = _online((1, 5), "forklift-1")
    f.status = ForkliftStatus.MOVING
    f.path = [Position(1, 5), Position(1, 6), Position(1, 7)]
    sim, _ = _sim([f])
    assert sim.complete_current_step(f.id)
    assert f.position == (1, 6)
    assert f.fuel_level == pytest.approx(99.8)
    assert f.battery_level == pytest.approx(99.85)


def test_manual_step_refuses_occupied_cell():
    f = _online((1, 5), "forklift-1")
    other = _online((1, 6), "forklift-2")
    f.status = ForkliftStatus.MOVING
    f.path = [Position(1, 5), Position(1, 6), Position(1, 7)]
    sim, _ = _sim([f, other])
    assert not sim.complete_current_step(f.id)
    assert f.position == (1, 5)


def test_manual_step_on_stuck_forklift_reroutes_to_pickup():
    f = _online((1, 5), "forklift-1")
    other = _online((1, 6), "forklift-2")
    task = _task((1, 7), (1, 20))
    sim, _ = _sim([f, other], [task])
    _hold(sim, f, task, [(1, 5), (1, 6), (1, 7)], status=ForkliftStatus.STUCK)

    assert not sim.complete_current_step(f.id)
    assert f.path[-1] == (1, 7)
    assert (1, 6) not in f.path


def test_manual_step_without_route():
    f = _online((3, 4), "forklift-1")
    sim, _ = _sim([f])
    assert not sim.complete_current_step(f.id)
    assert not sim.complete_current_step("forklift-99")


def test_accept_task_rejections():
    f = _online((3, 4), "forklift-1", capacity=500)
    heavy = _task((3, 3), (5, 4), weight=600)
    walled = _task((0, 0), (5, 4))
    done = _task((3, 3), (5, 4))
    done.status = TaskStatus.COMPLETED
    sim, _ = _sim([f], [heavy, walled, done])

    assert not sim.accept_task(heavy.id, f.id)
    assert not sim.accept_task(walled.id, f.id)
    assert not sim.accept_task(done.id, f.id)
    assert not sim.accept_task("task-missing", f.id)
    assert not sim.accept_task(heavy.id, "forklift-missing")
    assert f.current_task_id is None
    assert f.status == ForkliftStatus.IDLE


# -- Tick bookkeeping -------------------------------------------------

def test_tick_counters_and_exploration_decay():
    sim, clock = _sim(exploration_rate=0.3)
    for _ in range(10):
        clock.now += 1000
        sim.tick()
    assert sim.tick_count == 10
    assert sim.total_time == pytest.approx(5.0)
    assert sim.estimator.exploration_rate == pytest.approx(0.3 * 0.995)


def test_alerts_age_out_during_tick():
    f = _online((3, 4), "forklift-1")
    f.fuel_level = 10
    sim, clock = _sim([f])
    sim.tick()
    clock.now += 30000
    sim.tick()
    assert sim.alerts.alerts[0].resolved
    clock.now += 1000
    sim.tick()
    assert sim.alerts.count(AlertType.LOW_FUEL, f.id) == 2


def test_load_utilization_metric():
    a = _online((3, 4), "forklift-1", capacity=1000)
    b = _online((6, 4), "forklift-2", capacity=1000)
    a.current_load = 500
    sim, _ = _sim([a, b])
    sim.tick()
    assert sim.metrics.average_load_utilization == pytest.approx(25.0)


def test_generated_run_keeps_invariants():
    clock = _Clock()
    sim = Simulation.create(seed=3, clock=clock)
    for f in sim.registry.forklifts:
        sim.login_forklift(f.id)
    sim.is_running = True

    for _ in range(400):
        clock.now += 1000
        sim.tick()
        held = [f.current_task_id for f in sim.registry.forklifts if f.current_task_id]
        assert len(held) == len(set(held))
        for f in sim.registry.forklifts:
            assert f.current_load <= f.capacity
            for cell in f.path:
                assert sim.grid.kind(cell) in TRAVERSABLE

    assert sim.metrics.collision_count == 0
    assert sim.metrics.completed_tasks > 0


# -- Operator commands ------------------------------------------------

def test_add_obstacle_raises_system_alert():
    sim, _ = _sim()
    assert sim.add_obstacle((1, 10))
    assert sim.grid.kind((1, 10)) == CellType.OBSTACLE
    alert = sim.alerts.alerts[0]
    assert alert.type == AlertType.PATH_BLOCKED
    assert alert.forklift_id == "system"
    assert alert.severity == AlertSeverity.MEDIUM
    assert sim.metrics.blocked_paths == 1
    assert not sim.add_obstacle((1, 10))
    assert sim.metrics.blocked_paths == 1


def test_shelf_edits():
    sim, _ = _sim()
    assert sim.add_shelf((1, 10))
    assert not sim.add_shelf((3, 3))
    assert sim.remove_shelf((1, 10))
    assert not sim.remove_shelf((1, 10))


def test_add_random_task_respects_max_tasks():
    sim, _ = _sim(max_tasks=2)
    assert sim.add_random_task() is not None
    assert sim.add_random_task() is not None
    assert sim.add_random_task() is None
    assert len(sim.registry.tasks) == 2
    assert sim.metrics.total_tasks == 2


def test_add_manual_task():
    sim, _ = _sim()
    task = sim.add_manual_task(_task((3, 3), (5, 4)))
    assert sim.registry.get_task(task.id) is task
    assert sim.metrics.total_tasks == 1


def test_add_forklift_gets_fresh_id():
    sim, _ = _sim([_online((3, 4), "forklift-1")])
    added = sim.add_forklift((6, 4), operator_name="Ana", capacity=1200)
    assert added.id == "forklift-2"
    assert added.status == ForkliftStatus.OFFLINE
    assert sim.registry.get_forklift("forklift-2") is added


def test_update_forklift():
    f = _online((3, 4), "forklift-1")
    sim, _ = _sim([f])
    sim.update_forklift(f.id, fuel_level=50.0, position=(6, 4))
    assert f.fuel_level == 50.0
    assert f.position == Position(6, 4)
    assert sim.update_forklift("forklift-9", fuel_level=1.0) is None
    with pytest.raises(AttributeError):
        sim.update_forklift(f.id, wings=2)


def test_remove_forklift_requeues_task():
    f = _online((3, 4), "forklift-1")
    task = _task((3, 3), (5, 4))
    sim, _ = _sim([f], [task])
    sim.tick()
    assert task.status == TaskStatus.ASSIGNED
    assert sim.remove_forklift(f.id)
    assert task.status == TaskStatus.PENDING
    assert task.assigned_forklift is None
    assert not sim.remove_forklift(f.id)


def test_logout_and_login():
    f = _online((3, 4), "forklift-1")
    task = _task((30, 3), (5, 4))
    sim, clock = _sim([f], [task])
    sim.tick()
    assert f.current_task_id == task.id

    assert sim.logout_forklift(f.id)
    assert f.status == ForkliftStatus.OFFLINE
    assert not f.is_logged_in
    assert f.path == []
    assert task.status == TaskStatus.PENDING

    clock.now += 1000
    assert sim.login_forklift(f.id)
    assert f.status == ForkliftStatus.IDLE
    assert f.last_login_time == clock.now


def test_set_config_validates_and_forwards():
    sim, _ = _sim()
    sim.set_config(exploration_rate=0.5, learning_rate=0.2)
    assert sim.config.exploration_rate == 0.5
    assert sim.estimator.exploration_rate == 0.5
    assert sim.estimator.learning_rate == 0.2
    with pytest.raises(ValueError):
        sim.set_config(speed=10)
    with pytest.raises(ValueError):
        sim.set_config(bogus=1)
    assert sim.config.speed == 1.0


def test_set_config_regenerates_idle_fleet():
    sim = Simulation.create(seed=1, clock=_Clock())
    sim.set_config(forklift_count=2)
    assert [f.id for f in sim.registry.forklifts] == ["forklift-1", "forklift-2"]


def test_completion_writes_task_history():
    store = InMemoryPersistence()
    f = _online((3, 4), "forklift-1")
    task = _task((3, 3), (5, 4), weight=120)
    sim, _ = _sim([f], [task], persistence=store)
    assert sim.accept_task(task.id, f.id)
    while len(f.path) > 1:
        sim.complete_current_step(f.id)
    sim.tick()
    record = store.load(TASK_HISTORY, task.id)
    assert record["forklift_id"] == f.id
    assert record["weight"] == 120


def test_reset_keeps_or_discards_edited_layout():
    store = InMemoryPersistence()
    sim = Simulation.create(seed=1, persistence=store, clock=_Clock())
    sim.add_obstacle((1, 10))

    sim.reset(regenerate=False)
    assert sim.grid.kind((1, 10)) == CellType.OBSTACLE
    assert sim.tick_count == 0
    assert sim.alerts.alerts == []

    sim.reset(regenerate=True)
    assert sim.grid.kind((1, 10)) == CellType.EMPTY
    assert len(sim.registry.forklifts) == 5
    assert len(sim.registry.tasks) == 12


def test_start_and_stop():
    sim, _ = _sim(speed=3.0)
    sim.start()
    assert sim.is_running
    sim.stop()
    assert not sim.is_running
    assert sim.is_paused


def test_snapshot_contents():
    f = _online((3, 4), "forklift-1")
    sim, _ = _sim([f], [_task((3, 3), (5, 4))])
    snap = sim.tick()
    assert snap["tick"] == 1
    assert snap["forklifts"][0]["id"] == "forklift-1"
    assert len(snap["tasks"]) == 1
    assert len(snap["grid"]) == 30
    assert len(snap["grid"][0]) == 42
    assert "grid" not in sim.tick(include_grid=False)
    assert "grid" not in sim.snapshot()


def test_restore_from_write_behind_records():
    store = InMemoryPersistence()
    clock = _Clock()
    sim = Simulation.create(seed=2, persistence=store, clock=clock)
    for f in sim.registry.forklifts:
        sim.login_forklift(f.id)
    sim.is_running = True
    for _ in range(30):
        clock.now += 1000
        sim.tick()

    restored = Simulation.restore(store, clock=clock)
    assert [f.id for f in restored.registry.forklifts] == [f.id for f in sim.registry.forklifts]
    for before, after in zip(sim.registry.forklifts, restored.registry.forklifts):
        assert after.position == before.position
        assert after.current_task_id == before.current_task_id
    assert len(restored.registry.tasks) == len(sim.registry.tasks)
    assert restored.add_random_task() is not None


def test_restore_from_empty_store_generates_run():
    sim = Simulation.restore(InMemoryPersistence(), seed=1, clock=_Clock())
    assert len(sim.registry.forklifts) == 5
    assert len(sim.registry.tasks) == 12


def test_login_resumes_loaded_delivery():
    f = _online((3, 4), "forklift-1")
    task = _task((3, 3), (5, 4), weight=200)
    sim, clock = _sim([f], [task])
    assert sim.accept_task(task.id, f.id)
    assert sim.complete_current_step(f.id)
    assert f.current_load == 200

    sim.logout_forklift(f.id)
    assert f.current_task_id == task.id
    assert f.path == []

    sim.login_forklift(f.id)
    assert f.status == ForkliftStatus.CARRYING
    sim.tick()
    assert f.path[0] == (3, 3)
    assert f.path[-1] == (5, 4)

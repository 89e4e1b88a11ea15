"""Seeded generation of materials, tasks and the starting fleet."""

from __future__ import annotations

import random

from .enums import CellType, MaterialPriority, TaskCategory
from .constants import (
    MATERIAL_CATALOGUE, FORKLIFT_START_POSITIONS, OPERATOR_NAMES, FORKLIFT_CAPACITIES,
)
from .grid import WarehouseGrid
from .models import Forklift, Material, Position, Task

MAX_PLACEMENT_ATTEMPTS = 100


def generate_material(rng: random.Random) -> Material:
    """Pick a catalogue material with 0.5x-1.5x weight variation."""
    name = rng.choice(list(MATERIAL_CATALOGUE))
    base_weight, fragile = MATERIAL_CATALOGUE[name]
    variation = 0.5 + rng.random()
    return Material(
        name,
        round(base_weight * variation),
        (
            round(50 + rng.random() * 100),
            round(30 + rng.random() * 70),
            round(20 + rng.random() * 80),
        ),
        fragile=fragile,
        priority=rng.choice(list(MaterialPriority)),
    )


def random_valid_position(
    grid: WarehouseGrid,
    rng: random.Random,
    kinds: tuple[CellType, ...] | None = None,
    near_shelves: bool = False,
) -> Position | None:
    """Random interior cell of one of *kinds* (any traversable type by default).

    With *near_shelves*, empty cells must touch a shelf. After 100 misses the
    first empty/receiving/shipping cell in row-major order is returned.
    """
    for _ in range(MAX_PLACEMENT_ATTEMPTS):
        pos = Position(rng.randrange(1, grid.width - 1), rng.randrange(1, grid.height - 1))
        kind = grid.kind(pos)
        if kinds is not None:
            valid = kind in kinds and kind != CellType.OBSTACLE
        else:
            valid = grid.is_traversable(pos)
        if valid and near_shelves and kind == CellType.EMPTY:
            valid = grid.has_adjacent(pos, CellType.SHELF)
        if valid:
            return pos

    fallback = grid.positions_of(CellType.EMPTY, CellType.RECEIVING, CellType.SHIPPING)
    interior = [
        p for p in fallback
        if 0 < p.x < grid.width - 1 and 0 < p.y < grid.height - 1
    ]
    return interior[0] if interior else None


def generate_random_tasks(
    count: int,
    grid: WarehouseGrid,
    rng: random.Random,
    now: int = 0,
) -> list[Task]:
    """Create up to *count* inbound/outbound/internal tasks on valid cells."""
    tasks: list[Task] = []
    for _ in range(count):
        material = generate_material(rng)
        category = rng.choice(list(TaskCategory))

        if category == TaskCategory.INBOUND:
            pickup = random_valid_position(grid, rng, (CellType.RECEIVING,))
            dropoff = random_valid_position(grid, rng, (CellType.EMPTY,), near_shelves=True)
        elif category == TaskCategory.OUTBOUND:
            pickup = random_valid_position(grid, rng, (CellType.EMPTY,), near_shelves=True)
            dropoff = random_valid_position(grid, rng, (CellType.SHIPPING,))
        else:
            pickup = random_valid_position(grid, rng, (CellType.EMPTY,), near_shelves=True)
            dropoff = random_valid_position(grid, rng, (CellType.EMPTY,), near_shelves=True)

        if pickup is None or dropoff is None:
            continue

        tasks.append(Task(
            pickup,
            dropoff,
            material,
            created_at=now,
            category=category,
            pickup_zone="receiving" if category == TaskCategory.INBOUND else "shelf",
            dropoff_zone="shipping" if category == TaskCategory.OUTBOUND else "shelf",
            pickup_shelf_id=(
                f"S{rng.randrange(100)}" if category != TaskCategory.INBOUND else None
            ),
            dropoff_shelf_id=(
                f"S{rng.randrange(100)}" if category != TaskCategory.OUTBOUND else None
            ),
        ))
    return tasks


def generate_fleet(count: int, now: int = 0) -> list[Forklift]:
    """Create *count* logged-out forklifts on the fixed starting cells."""
    fleet: list[Forklift] = []
    for i in range(count):
        fleet.append(Forklift(
            FORKLIFT_START_POSITIONS[i % len(FORKLIFT_START_POSITIONS)],
            operator_name=OPERATOR_NAMES[i % len(OPERATOR_NAMES)],
            capacity=FORKLIFT_CAPACITIES[i % len(FORKLIFT_CAPACITIES)],
            forklift_id=f"forklift-{i + 1}",
            last_move_time=now,
        ))
    return fleet

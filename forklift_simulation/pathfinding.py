"""Contention-aware A* pathfinding on the warehouse grid."""

from __future__ import annotations

import heapq
import logging
from typing import TYPE_CHECKING, Iterable

from .constants import (
    OCCUPIED_PENALTY, NEARBY_PENALTY, PLANNED_PENALTY, DETOUR_OFFSET,
)
from .models import Position

if TYPE_CHECKING:
    from .grid import WarehouseGrid
    from .models import Forklift

logger = logging.getLogger(__name__)


def _others(forklifts: Iterable[Forklift], forklift_id: str | None) -> list[Forklift]:
    return [f for f in forklifts if f.id != forklift_id]


def step_cost(
    cell: Position,
    occupied: set[Position],
    planned: set[Position],
) -> int:
    """Cost of stepping onto *cell* given other forklifts' current and next cells."""
    cost = 1
    if cell in occupied:
        cost += OCCUPIED_PENALTY
    if any(p != cell and p.chebyshev(cell) <= 1 for p in occupied):
        cost += NEARBY_PENALTY
    if cell in planned:
        cost += PLANNED_PENALTY
    return cost


def find_path(
    start: tuple[int, int],
    goal: tuple[int, int],
    grid: WarehouseGrid,
    forklifts: Iterable[Forklift] = (),
    forklift_id: str | None = None,
    blocked: set[Position] | None = None,
) -> list[Position]:
    """A* with Manhattan heuristic and contention-weighted edge costs.

    Cells occupied by other forklifts cost +1000, cells next to them +10 and
    cells they are about to step onto +50, so they are avoided but never
    forbidden. *blocked* cells are impassable.
    Returns ``[start, ..., goal]``, or ``[]`` if no route exists.
    """
    start = Position(*start)
    goal = Position(*goal)
    others = _others(forklifts, forklift_id)
    occupied = {f.position for f in others}
    planned = {f.path[1] for f in others if len(f.path) > 1}

    def h(node: Position) -> int:
        return node.manhattan(goal)

    counter = 0
    open_set: list[tuple[int, int, Position]] = [(h(start), counter, start)]
    came_from: dict[Position, Position] = {}
    g_score: dict[Position, int] = {start: 0}
    closed: set[Position] = set()

    while open_set:
        _, _, current = heapq.heappop(open_set)
        if current in closed:
            continue

        if current == goal:
            path: list[Position] = [current]
            while current in came_from:
                current = came_from[current]
                path.append(current)
            path.reverse()
            return path

        closed.add(current)
        for neighbor in grid.neighbors(current):
            if neighbor in closed:
                continue
            if blocked and neighbor in blocked:
                continue
            tentative_g = g_score[current] + step_cost(neighbor, occupied, planned)
            if tentative_g < g_score.get(neighbor, float("inf")):
                came_from[neighbor] = current
                g_score[neighbor] = tentative_g
                counter += 1
                heapq.heappush(open_set, (tentative_g + h(neighbor), counter, neighbor))

    return []


def _path_with_detour(
    start: Position,
    goal: Position,
    grid: WarehouseGrid,
    forklifts: list[Forklift],
    forklift_id: str | None,
    blocked: set[Position],
) -> list[Position]:
    """Route through the first reachable point 2 cells off the start-goal midpoint."""
    mx = (start.x + goal.x) // 2
    my = (start.y + goal.y) // 2
    detours = [
        Position(mx + DETOUR_OFFSET, my),
        Position(mx - DETOUR_OFFSET, my),
        Position(mx, my + DETOUR_OFFSET),
        Position(mx, my - DETOUR_OFFSET),
    ]
    for via in detours:
        if not grid.is_traversable(via) or via in blocked:
            continue
        first = find_path(start, via, grid, forklifts, forklift_id, blocked)
        second = find_path(via, goal, grid, forklifts, forklift_id, blocked)
        if first and second:
            return first + second[1:]
    return []


def _path_avoiding_forklifts(
    start: Position,
    goal: Position,
    grid: WarehouseGrid,
    forklifts: list[Forklift],
    forklift_id: str | None,
    blocked: set[Position],
) -> list[Position]:
    """Plain search with every other forklift's cell treated as a wall."""
    walls = set(blocked) | {f.position for f in _others(forklifts, forklift_id)}
    return find_path(start, goal, grid, (), forklift_id, walls)


def find_alternate_path(
    start: tuple[int, int],
    goal: tuple[int, int],
    grid: WarehouseGrid,
    forklifts: Iterable[Forklift],
    forklift_id: str | None,
    blocked_positions: Iterable[tuple[int, int]] = (),
) -> list[Position]:
    """Escalating fallback search: blocked cells, then a detour, then avoiding forklifts.

    The first non-empty route wins; ``[]`` when all three strategies fail.
    """
    start = Position(*start)
    goal = Position(*goal)
    fleet = list(forklifts)
    blocked = {Position(*p) for p in blocked_positions}

    strategies = (
        lambda: find_path(start, goal, grid, fleet, forklift_id, blocked),
        lambda: _path_with_detour(start, goal, grid, fleet, forklift_id, blocked),
        lambda: _path_avoiding_forklifts(start, goal, grid, fleet, forklift_id, blocked),
    )
    for strategy in strategies:
        path = strategy()
        if path:
            return path
    logger.debug("No alternate path %s -> %s for %s", start, goal, forklift_id)
    return []

"""Deterministic warehouse layout builder."""

from __future__ import annotations

import logging

from .enums import CellType
from .constants import (
    GRID_WIDTH, GRID_HEIGHT, AISLE_MODULUS, INNER_AISLE_OFFSET, MAIN_AISLE_ROW,
    FORKLIFT_START_POSITIONS,
)
from .grid import WarehouseGrid
from .models import Cell
from .pathfinding import find_path

logger = logging.getLogger(__name__)


def _layout_type(x: int, y: int, width: int, height: int) -> CellType:
    """Cell type for ``(x, y)`` before the corridor passes are applied."""
    # Perimeter walls
    if y in (0, height - 1) or x in (0, width - 1):
        return CellType.OBSTACLE
    # Left / right access corridors
    if x in (1, width - 2):
        return CellType.EMPTY
    # Receiving block (top-left) with a cross-shaped aisle
    if 2 <= y <= 5 and 3 <= x <= 12:
        return CellType.EMPTY if (x == 7 or y == 4) else CellType.RECEIVING
    # Shipping block (top-right) with a cross-shaped aisle
    if 2 <= y <= 5 and width - 13 <= x <= width - 3:
        return CellType.EMPTY if (x == width - 8 or y == 4) else CellType.SHIPPING
    # Charging band (bottom)
    if height - 6 <= y <= height - 3 and 3 <= x <= width - 4:
        return CellType.CHARGING
    # Main aisles
    if y in (MAIN_AISLE_ROW, height - 7) or (2 < x < width - 2 and x % AISLE_MODULUS == 0):
        return CellType.EMPTY
    # Shelf blocks, split by an inner aisle
    if MAIN_AISLE_ROW < y < height - 7 and 2 < x < width - 2:
        if (x - 3) % AISLE_MODULUS == INNER_AISLE_OFFSET:
            return CellType.EMPTY
        return CellType.SHELF
    return CellType.EMPTY


def build_grid(width: int = GRID_WIDTH, height: int = GRID_HEIGHT) -> WarehouseGrid:
    """Create the warehouse layout. The same size always yields the same grid."""
    if width < 5 or height < 5:
        raise ValueError(f"grid too small: {width}x{height}")

    cells: list[list[Cell]] = []
    for y in range(height):
        row: list[Cell] = []
        for x in range(width):
            kind = _layout_type(x, y, width, height)
            row.append(Cell(kind, occupied=kind == CellType.OBSTACLE))
        cells.append(row)

    # Cross corridor through the middle row, every 4th column
    mid = height // 2
    for x in range(2, width - 2, 4):
        cells[mid][x] = Cell(CellType.EMPTY)

    # Extra access columns into the receiving and shipping blocks
    for y in range(1, min(5, height)):
        for x in (6, width - 6):
            if 0 <= x < width:
                cells[y][x] = Cell(CellType.EMPTY)

    return WarehouseGrid(cells)


def verify_grid(grid: WarehouseGrid) -> None:
    """Log layout stats and test a few key routes at startup."""
    logger.info("--- Grid verification ---")
    logger.info("Grid size: %dx%d", grid.width, grid.height)
    for kind in CellType:
        count = len(grid.positions_of(kind))
        if count:
            logger.info("  %-10s %d cells", kind.value, count)

    receiving = grid.positions_of(CellType.RECEIVING)
    shipping = grid.positions_of(CellType.SHIPPING)
    charging = grid.positions_of(CellType.CHARGING)
    start = FORKLIFT_START_POSITIONS[0]
    tests = []
    if receiving and shipping:
        tests.append(("Receiving -> Shipping", receiving[0], shipping[-1]))
    if charging and grid.is_traversable(start):
        tests.append(("Start -> Charging", start, charging[len(charging) // 2]))
    for desc, src, dst in tests:
        path = find_path(src, dst, grid)
        if path:
            logger.info("  %s: %d cells", desc, len(path))
        else:
            logger.info("  %s: NO PATH FOUND!", desc)
    logger.info("--- End verification ---")

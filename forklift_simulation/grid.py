"""Fixed-size warehouse grid with guarded in-place edits."""

from __future__ import annotations

import logging

from .enums import CellType
from .models import Cell, Position

logger = logging.getLogger(__name__)

TRAVERSABLE: frozenset[CellType] = frozenset({
    CellType.EMPTY, CellType.DOCKING, CellType.CHARGING,
    CellType.RECEIVING, CellType.SHIPPING,
})

# Up, right, down, left
DIRECTIONS: list[tuple[int, int]] = [(0, -1), (1, 0), (0, 1), (-1, 0)]


class WarehouseGrid:
    """A ``height`` x ``width`` array of cells, indexed ``cells[y][x]``."""

    def __init__(self, cells: list[list[Cell]]) -> None:
        if not cells or not cells[0]:
            raise ValueError("grid must have at least one cell")
        self.cells: list[list[Cell]] = cells
        self.height: int = len(cells)
        self.width: int = len(cells[0])

    def in_bounds(self, pos: tuple[int, int]) -> bool:
        x, y = pos
        return 0 <= x < self.width and 0 <= y < self.height

    def cell(self, pos: tuple[int, int]) -> Cell:
        x, y = pos
        return self.cells[y][x]

    def kind(self, pos: tuple[int, int]) -> CellType | None:
        """Cell type at *pos*, or ``None`` outside the grid."""
        if not self.in_bounds(pos):
            return None
        return self.cell(pos).kind

    def is_traversable(self, pos: tuple[int, int]) -> bool:
        return self.kind(pos) in TRAVERSABLE

    def neighbors(self, pos: tuple[int, int]) -> list[Position]:
        """Traversable 4-connected neighbours of *pos*."""
        x, y = pos
        result: list[Position] = []
        for dx, dy in DIRECTIONS:
            nxt = Position(x + dx, y + dy)
            if self.is_traversable(nxt):
                result.append(nxt)
        return result

    def positions_of(self, *kinds: CellType) -> list[Position]:
        """Every cell position whose type is one of *kinds*, row-major."""
        return [
            Position(x, y)
            for y in range(self.height)
            for x in range(self.width)
            if self.cells[y][x].kind in kinds
        ]

    def has_adjacent(self, pos: tuple[int, int], kind: CellType) -> bool:
        x, y = pos
        return any(self.kind((x + dx, y + dy)) == kind for dx, dy in DIRECTIONS)

    # -- edits ----------------------------------------------------------

    def add_obstacle(self, pos: tuple[int, int]) -> bool:
        """Turn *pos* into an obstacle. Returns ``False`` if it already was one."""
        if not self.in_bounds(pos) or self.cell(pos).kind == CellType.OBSTACLE:
            return False
        x, y = pos
        self.cells[y][x] = Cell(CellType.OBSTACLE, occupied=True)
        logger.info("[Grid] Added obstacle at %s", tuple(pos))
        return True

    def add_shelf(self, pos: tuple[int, int], item: str | None = None) -> bool:
        """Place a shelf on an empty cell. Returns ``True`` if the grid changed."""
        if not self.in_bounds(pos) or self.cell(pos).kind != CellType.EMPTY:
            return False
        x, y = pos
        self.cells[y][x] = Cell(CellType.SHELF, item=item, weight=0)
        logger.info("[Grid] Added shelf at %s", tuple(pos))
        return True

    def remove_shelf(self, pos: tuple[int, int]) -> bool:
        """Clear a shelf cell back to empty. Returns ``True`` if the grid changed."""
        if not self.in_bounds(pos) or self.cell(pos).kind != CellType.SHELF:
            return False
        x, y = pos
        self.cells[y][x] = Cell(CellType.EMPTY)
        logger.info("[Grid] Removed shelf at %s", tuple(pos))
        return True

    def mark_occupancy(self, occupants: dict[Position, str]) -> None:
        """Refresh the per-cell ``occupied_by`` bookkeeping from forklift positions."""
        for row in self.cells:
            for cell in row:
                cell.occupied_by = None
        for pos, forklift_id in occupants.items():
            if self.in_bounds(pos):
                self.cell(pos).occupied_by = forklift_id

    # -- (de)serialisation ---------------------------------------------

    def to_rows(self) -> list[list[dict]]:
        return [[cell.to_dict() for cell in row] for row in self.cells]

    @classmethod
    def from_rows(cls, rows: list[list[dict]]) -> WarehouseGrid:
        return cls([[Cell.from_dict(c) for c in row] for row in rows])

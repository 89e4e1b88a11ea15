"""Data models: Position, Cell, Material, Task, Forklift and EmergencyAlert."""

from __future__ import annotations

from typing import NamedTuple

from .enums import (
    AlertSeverity, AlertType, CellType, ForkliftStatus, MaintenanceStatus,
    MaterialPriority, TaskCategory, TaskStatus,
)
from .constants import REQUIRED_CAPACITY_MARGIN


class Position(NamedTuple):
    """Integer grid coordinate."""

    x: int
    y: int

    def manhattan(self, other: tuple[int, int]) -> int:
        return abs(self.x - other[0]) + abs(self.y - other[1])

    def chebyshev(self, other: tuple[int, int]) -> int:
        return max(abs(self.x - other[0]), abs(self.y - other[1]))

    def to_dict(self) -> dict:
        return {"x": self.x, "y": self.y}

    @classmethod
    def from_dict(cls, data: dict) -> Position:
        return cls(int(data["x"]), int(data["y"]))


class Cell:
    """One tile of the warehouse grid."""

    def __init__(
        self,
        kind: CellType,
        occupied: bool = False,
        item: str | None = None,
        weight: float | None = None,
    ) -> None:
        self.kind: CellType = kind
        self.occupied: bool = occupied
        self.item: str | None = item
        self.weight: float | None = weight
        self.occupied_by: str | None = None

    def to_dict(self) -> dict:
        data: dict = {"type": self.kind.value, "occupied": self.occupied}
        if self.item is not None:
            data["item"] = self.item
        if self.weight is not None:
            data["weight"] = self.weight
        return data

    @classmethod
    def from_dict(cls, data: dict) -> Cell:
        return cls(
            CellType(data["type"]),
            occupied=bool(data.get("occupied", False)),
            item=data.get("item"),
            weight=data.get("weight"),
        )

    def __repr__(self) -> str:
        return f"Cell({self.kind.value})"


class Material:
    """Payload carried by a task."""

    _next_id: int = 1

    def __init__(
        self,
        name: str,
        weight: float,
        dimensions: tuple[float, float, float] = (0.0, 0.0, 0.0),
        fragile: bool = False,
        priority: MaterialPriority = MaterialPriority.MEDIUM,
        material_id: str | None = None,
    ) -> None:
        if material_id is None:
            material_id = f"mat-{Material._next_id}"
            Material._next_id += 1
        self.id: str = material_id
        self.name: str = name
        self.weight: float = weight
        self.dimensions: tuple[float, float, float] = dimensions
        self.fragile: bool = fragile
        self.priority: MaterialPriority = priority

    def to_dict(self) -> dict:
        length, width, height = self.dimensions
        return {
            "id": self.id,
            "name": self.name,
            "weight": self.weight,
            "dimensions": {"length": length, "width": width, "height": height},
            "fragile": self.fragile,
            "priority": self.priority.value,
        }

    @classmethod
    def from_dict(cls, data: dict) -> Material:
        dims = data.get("dimensions") or {}
        return cls(
            data["name"],
            data["weight"],
            (dims.get("length", 0.0), dims.get("width", 0.0), dims.get("height", 0.0)),
            fragile=bool(data.get("fragile", False)),
            priority=MaterialPriority(data.get("priority", "medium")),
            material_id=data.get("id"),
        )


class Task:
    """A material movement from a pickup cell to a dropoff cell."""

    _next_id: int = 1

    def __init__(
        self,
        pickup: tuple[int, int],
        dropoff: tuple[int, int],
        material: Material,
        created_at: int = 0,
        category: TaskCategory | None = None,
        pickup_zone: str | None = None,
        dropoff_zone: str | None = None,
        pickup_shelf_id: str | None = None,
        dropoff_shelf_id: str | None = None,
        priority: int | None = None,
        estimated_time: float | None = None,
        task_id: str | None = None,
    ) -> None:
        if task_id is None:
            task_id = f"task-{Task._next_id}"
            Task._next_id += 1
        self.id: str = task_id
        self.pickup: Position = Position(*pickup)
        self.dropoff: Position = Position(*dropoff)
        self.pickup_zone: str | None = pickup_zone
        self.dropoff_zone: str | None = dropoff_zone
        self.pickup_shelf_id: str | None = pickup_shelf_id
        self.dropoff_shelf_id: str | None = dropoff_shelf_id
        self.material: Material = material
        self.priority: int = material.priority.weight if priority is None else priority
        self.status: TaskStatus = TaskStatus.PENDING
        self.estimated_time: float = (
            self.pickup.manhattan(self.dropoff) * 2
            if estimated_time is None
            else estimated_time
        )
        self.actual_time: float | None = None
        self.assigned_forklift: str | None = None
        self.created_at: int = created_at
        self.assigned_at: int | None = None
        self.started_at: int | None = None
        self.completed_at: int | None = None
        self.required_capacity: float = round(material.weight * REQUIRED_CAPACITY_MARGIN)
        self.category: TaskCategory | None = category

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "pickup_location": {
                **self.pickup.to_dict(),
                "type": self.pickup_zone,
                "shelf_id": self.pickup_shelf_id,
            },
            "dropoff_location": {
                **self.dropoff.to_dict(),
                "type": self.dropoff_zone,
                "shelf_id": self.dropoff_shelf_id,
            },
            "material": self.material.to_dict(),
            "priority": self.priority,
            "status": self.status.value,
            "estimated_time": self.estimated_time,
            "actual_time": self.actual_time,
            "assigned_forklift": self.assigned_forklift,
            "created_at": self.created_at,
            "assigned_at": self.assigned_at,
            "started_at": self.started_at,
            "completed_at": self.completed_at,
            "required_capacity": self.required_capacity,
            "task_type": self.category.value if self.category else None,
        }

    @classmethod
    def from_dict(cls, data: dict) -> Task:
        pickup = data["pickup_location"]
        dropoff = data["dropoff_location"]
        task = cls(
            (pickup["x"], pickup["y"]),
            (dropoff["x"], dropoff["y"]),
            Material.from_dict(data["material"]),
            created_at=data.get("created_at", 0),
            category=TaskCategory(data["task_type"]) if data.get("task_type") else None,
            pickup_zone=pickup.get("type"),
            dropoff_zone=dropoff.get("type"),
            pickup_shelf_id=pickup.get("shelf_id"),
            dropoff_shelf_id=dropoff.get("shelf_id"),
            priority=data.get("priority"),
            estimated_time=data.get("estimated_time"),
            task_id=data["id"],
        )
        task.status = TaskStatus(data.get("status", "pending"))
        task.actual_time = data.get("actual_time")
        task.assigned_forklift = data.get("assigned_forklift")
        task.assigned_at = data.get("assigned_at")
        task.started_at = data.get("started_at")
        task.completed_at = data.get("completed_at")
        return task

    def __repr__(self) -> str:
        return f"Task({self.id}, {self.status.value}, {self.pickup}->{self.dropoff})"


class Forklift:
    """A mobile agent that carries materials between cells."""

    _next_id: int = 1

    def __init__(
        self,
        pos: tuple[int, int],
        operator_name: str = "",
        capacity: float = 1000.0,
        forklift_id: str | None = None,
        last_move_time: int = 0,
    ) -> None:
        if forklift_id is None:
            forklift_id = f"forklift-{Forklift._next_id}"
            Forklift._next_id += 1
        self.id: str = forklift_id
        self.operator_name: str = operator_name
        self.position: Position = Position(*pos)
        self.current_task_id: str | None = None
        self.fuel_level: float = 100.0
        self.battery_level: float = 100.0
        self.capacity: float = capacity
        self.current_load: float = 0.0
        self.status: ForkliftStatus = ForkliftStatus.OFFLINE
        self.path: list[Position] = []
        self.total_distance: int = 0
        self.total_time: float = 0.0
        self.tasks_completed: int = 0
        self.last_move_time: int = last_move_time
        self.is_blocked: bool = False
        self.blockage_reason: str | None = None
        self.speed: float = 1.0
        self.maintenance_status: MaintenanceStatus = MaintenanceStatus.GOOD
        self.is_logged_in: bool = False
        self.last_login_time: int | None = None

    def can_carry(self, material: Material) -> bool:
        """Return ``True`` if *material* fits within the remaining capacity."""
        return self.current_load + material.weight <= self.capacity

    @property
    def is_routed(self) -> bool:
        return self.status in (ForkliftStatus.MOVING, ForkliftStatus.CARRYING)

    def consume(self, cost: tuple[float, float]) -> None:
        """Burn fuel and battery for one step, floored at zero."""
        fuel, battery = cost
        self.fuel_level = max(0.0, self.fuel_level - fuel)
        self.battery_level = max(0.0, self.battery_level - battery)

    def advance(self, cost: tuple[float, float], now: int) -> None:
        """Move onto ``path[1]`` and drop the consumed head of the route."""
        self.position = self.path[1]
        self.path = self.path[1:]
        self.total_distance += 1
        self.consume(cost)
        self.last_move_time = now

    def clear_route(self) -> None:
        self.path = []
        self.is_blocked = False
        self.blockage_reason = None

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "operator_name": self.operator_name,
            "position": self.position.to_dict(),
            "current_task_id": self.current_task_id,
            "fuel_level": round(self.fuel_level, 3),
            "battery_level": round(self.battery_level, 3),
            "capacity": self.capacity,
            "current_load": self.current_load,
            "status": self.status.value,
            "path": [p.to_dict() for p in self.path],
            "total_distance": self.total_distance,
            "total_time": self.total_time,
            "tasks_completed": self.tasks_completed,
            "last_move_time": self.last_move_time,
            "is_blocked": self.is_blocked,
            "blockage_reason": self.blockage_reason,
            "speed": self.speed,
            "maintenance_status": self.maintenance_status.value,
            "is_logged_in": self.is_logged_in,
            "last_login_time": self.last_login_time,
        }

    @classmethod
    def from_dict(cls, data: dict) -> Forklift:
        forklift = cls(
            Position.from_dict(data["position"]),
            operator_name=data.get("operator_name", ""),
            capacity=data.get("capacity", 1000.0),
            forklift_id=data["id"],
            last_move_time=data.get("last_move_time", 0),
        )
        forklift.current_task_id = data.get("current_task_id")
        forklift.fuel_level = data.get("fuel_level", 100.0)
        forklift.battery_level = data.get("battery_level", 100.0)
        forklift.current_load = data.get("current_load", 0.0)
        forklift.status = ForkliftStatus(data.get("status", "offline"))
        forklift.path = [Position.from_dict(p) for p in data.get("path", [])]
        forklift.total_distance = data.get("total_distance", 0)
        forklift.total_time = data.get("total_time", 0.0)
        forklift.tasks_completed = data.get("tasks_completed", 0)
        forklift.is_blocked = data.get("is_blocked", False)
        forklift.blockage_reason = data.get("blockage_reason")
        forklift.speed = data.get("speed", 1.0)
        forklift.maintenance_status = MaintenanceStatus(data.get("maintenance_status", "good"))
        forklift.is_logged_in = data.get("is_logged_in", False)
        forklift.last_login_time = data.get("last_login_time")
        return forklift

    def __repr__(self) -> str:
        return f"Forklift({self.id}, {self.status.value}, {self.position})"


class EmergencyAlert:
    """An operational alert raised by the scheduler."""

    _next_id: int = 1

    def __init__(
        self,
        alert_type: AlertType,
        forklift_id: str,
        position: tuple[int, int],
        message: str,
        timestamp: int,
        severity: AlertSeverity = AlertSeverity.MEDIUM,
    ) -> None:
        self.id: str = f"alert-{EmergencyAlert._next_id}"
        EmergencyAlert._next_id += 1
        self.type: AlertType = alert_type
        self.forklift_id: str = forklift_id
        self.position: Position = Position(*position)
        self.message: str = message
        self.timestamp: int = timestamp
        self.resolved: bool = False
        self.severity: AlertSeverity = severity

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "type": self.type.value,
            "forklift_id": self.forklift_id,
            "position": self.position.to_dict(),
            "message": self.message,
            "timestamp": self.timestamp,
            "resolved": self.resolved,
            "severity": self.severity.value,
        }

    def __repr__(self) -> str:
        return f"EmergencyAlert({self.type.value}, {self.forklift_id}, resolved={self.resolved})"

"""
Warehouse forklift fleet simulation package.

Public API re-exports.
"""

from .enums import (
    CellType, ForkliftStatus, TaskStatus, TaskCategory, MaterialPriority,
    AlertType, AlertSeverity, MaintenanceStatus,
)
from .models import Position, Cell, Material, Task, Forklift, EmergencyAlert
from .grid import WarehouseGrid
from .map_builder import build_grid, verify_grid
from .pathfinding import find_path, find_alternate_path
from .qlearning import ValueEstimator, QLearningEstimator, calculate_reward
from .config import SimulationConfig
from .registry import Registry
from .alerts import AlertCenter, FleetMetrics
from .persistence import PersistenceStrategy, InMemoryPersistence, JsonPersistence, GridStore
from .scheduler import Simulation
from .headless import run_headless

__all__ = [
    "CellType", "ForkliftStatus", "TaskStatus", "TaskCategory", "MaterialPriority",
    "AlertType", "AlertSeverity", "MaintenanceStatus",
    "Position", "Cell", "Material", "Task", "Forklift", "EmergencyAlert",
    "WarehouseGrid",
    "build_grid", "verify_grid",
    "find_path", "find_alternate_path",
    "ValueEstimator", "QLearningEstimator", "calculate_reward",
    "SimulationConfig",
    "Registry",
    "AlertCenter", "FleetMetrics",
    "PersistenceStrategy", "InMemoryPersistence", "JsonPersistence", "GridStore",
    "Simulation",
    "run_headless",
]

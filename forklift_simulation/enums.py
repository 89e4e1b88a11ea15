from enum import Enum


class CellType(Enum):
    EMPTY      = "empty"
    SHELF      = "shelf"        # storage racking, never traversable
    OBSTACLE   = "obstacle"     # walls and operator-placed blockers
    DOCKING    = "docking"
    CHARGING   = "charging"     # bottom band
    RESTRICTED = "restricted"
    RECEIVING  = "receiving"    # top-left inbound zone
    SHIPPING   = "shipping"     # top-right outbound zone


class ForkliftStatus(Enum):
    IDLE      = "idle"
    MOVING    = "moving"        # heading to pickup
    PICKING   = "picking"
    CARRYING  = "carrying"      # loaded, heading to dropoff
    DROPPING  = "dropping"
    STUCK     = "stuck"
    EMERGENCY = "emergency"
    OFFLINE   = "offline"       # operator logged out


class TaskStatus(Enum):
    PENDING     = "pending"
    ASSIGNED    = "assigned"
    IN_PROGRESS = "in-progress"
    PICKING     = "picking"
    CARRYING    = "carrying"
    DROPPING    = "dropping"
    COMPLETED   = "completed"


class TaskCategory(Enum):
    INBOUND  = "inbound"        # receiving -> shelf
    OUTBOUND = "outbound"       # shelf -> shipping
    INTERNAL = "internal"       # shelf -> shelf


class MaterialPriority(Enum):
    LOW    = "low"
    MEDIUM = "medium"
    HIGH   = "high"
    URGENT = "urgent"

    @property
    def weight(self) -> int:
        """Numeric task priority for this label."""
        return {"low": 2, "medium": 5, "high": 8, "urgent": 10}[self.value]


class AlertType(Enum):
    COLLISION            = "collision"
    STUCK                = "stuck"
    LOW_FUEL             = "low_fuel"
    PATH_BLOCKED         = "path_blocked"
    OVERLOAD             = "overload"
    MAINTENANCE_REQUIRED = "maintenance_required"


class AlertSeverity(Enum):
    LOW      = "low"
    MEDIUM   = "medium"
    HIGH     = "high"
    CRITICAL = "critical"


class MaintenanceStatus(Enum):
    GOOD     = "good"
    WARNING  = "warning"
    CRITICAL = "critical"

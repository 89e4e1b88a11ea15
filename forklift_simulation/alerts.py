"""Emergency alert bookkeeping and running fleet metrics."""

from __future__ import annotations

import logging
from typing import Iterable

from .enums import AlertSeverity, AlertType
from .constants import ALERT_MAX_AGE_MS
from .models import EmergencyAlert, Forklift

logger = logging.getLogger(__name__)

SYSTEM_SOURCE = "system"

# Alert types suppressed while an unresolved alert of the same type exists
# for the same forklift.
DEFAULT_DEDUP_TYPES: frozenset[AlertType] = frozenset({AlertType.LOW_FUEL})


class AlertCenter:
    """Creates, deduplicates and ages out :class:`EmergencyAlert` records."""

    def __init__(
        self,
        dedup_types: Iterable[AlertType] = DEFAULT_DEDUP_TYPES,
        max_age_ms: int = ALERT_MAX_AGE_MS,
    ) -> None:
        self.dedup_types: frozenset[AlertType] = frozenset(dedup_types)
        self.max_age_ms: int = max_age_ms
        self.alerts: list[EmergencyAlert] = []

    def has_open(self, alert_type: AlertType, forklift_id: str) -> bool:
        return any(
            a.type == alert_type and a.forklift_id == forklift_id and not a.resolved
            for a in self.alerts
        )

    def raise_alert(
        self,
        alert_type: AlertType,
        forklift_id: str,
        position: tuple[int, int],
        message: str,
        now: int,
        severity: AlertSeverity = AlertSeverity.MEDIUM,
    ) -> EmergencyAlert | None:
        """Record a new alert. Returns ``None`` when the dedup policy suppresses it."""
        if alert_type in self.dedup_types and self.has_open(alert_type, forklift_id):
            return None
        alert = EmergencyAlert(alert_type, forklift_id, position, message, now, severity)
        self.alerts.append(alert)
        logger.info("[Alert] %s/%s %s: %s", alert_type.value, severity.value, forklift_id, message)
        return alert

    def age_out(self, now: int) -> int:
        """Resolve every open alert at least ``max_age_ms`` old. Returns how many."""
        resolved = 0
        for alert in self.alerts:
            if not alert.resolved and now - alert.timestamp >= self.max_age_ms:
                alert.resolved = True
                resolved += 1
        if resolved:
            logger.debug("[Alert] Auto-resolved %d alert(s)", resolved)
        return resolved

    def open_alerts(self) -> list[EmergencyAlert]:
        return [a for a in self.alerts if not a.resolved]

    def count(self, alert_type: AlertType, forklift_id: str | None = None) -> int:
        return sum(
            1 for a in self.alerts
            if a.type == alert_type and (forklift_id is None or a.forklift_id == forklift_id)
        )

    def clear(self) -> None:
        self.alerts.clear()


class FleetMetrics:
    """Running counters derived from scheduler observations."""

    def __init__(self) -> None:
        self.total_tasks: int = 0
        self.completed_tasks: int = 0
        self.average_time: float = 0.0
        self.fuel_efficiency: float = 0.0
        self.collision_count: int = 0
        self.blocked_paths: int = 0
        self.total_weight_moved: float = 0.0
        self.average_load_utilization: float = 0.0
        self._completion_times: list[float] = []

    def record_completion(self, actual_time: float, weight: float) -> None:
        self.completed_tasks += 1
        self.total_weight_moved += weight
        self._completion_times.append(actual_time)
        self.average_time = sum(self._completion_times) / len(self._completion_times)

    def refresh(self, forklifts: list[Forklift]) -> None:
        """Recompute fleet-wide load utilisation and fuel efficiency."""
        total_capacity = sum(f.capacity for f in forklifts)
        total_load = sum(f.current_load for f in forklifts)
        self.average_load_utilization = (
            total_load / total_capacity * 100 if total_capacity > 0 else 0.0
        )
        distance = sum(f.total_distance for f in forklifts)
        fuel_used = sum(100.0 - f.fuel_level for f in forklifts)
        self.fuel_efficiency = distance / fuel_used if fuel_used > 0 else 0.0

    def to_dict(self) -> dict:
        return {
            "total_tasks": self.total_tasks,
            "completed_tasks": self.completed_tasks,
            "average_time": self.average_time,
            "fuel_efficiency": self.fuel_efficiency,
            "collision_count": self.collision_count,
            "blocked_paths": self.blocked_paths,
            "total_weight_moved": self.total_weight_moved,
            "average_load_utilization": self.average_load_utilization,
        }

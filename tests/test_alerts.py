"""
Tests for alert creation, the dedup policy, aging, and fleet metrics.
"""

import pytest

from forklift_simulation import AlertCenter, AlertSeverity, AlertType, FleetMetrics, Forklift


def test_dedup_applies_to_configured_types_only():
    center = AlertCenter()
    assert center.raise_alert(AlertType.LOW_FUEL, "forklift-1", (1, 1), "low", 0) is not None
    assert center.raise_alert(AlertType.LOW_FUEL, "forklift-1", (1, 1), "low", 10) is None
    assert center.raise_alert(AlertType.LOW_FUEL, "forklift-2", (1, 1), "low", 10) is not None
    assert center.raise_alert(AlertType.OVERLOAD, "forklift-1", (1, 1), "heavy", 0) is not None
    assert center.raise_alert(AlertType.OVERLOAD, "forklift-1", (1, 1), "heavy", 0) is not None
    assert center.count(AlertType.OVERLOAD) == 2


def test_custom_dedup_policy():
    center = AlertCenter(dedup_types={AlertType.COLLISION})
    center.raise_alert(AlertType.COLLISION, "forklift-1", (1, 1), "hit", 0, AlertSeverity.CRITICAL)
    center.raise_alert(AlertType.COLLISION, "forklift-1", (1, 1), "hit", 0, AlertSeverity.CRITICAL)
    center.raise_alert(AlertType.LOW_FUEL, "forklift-1", (1, 1), "low", 0)
    center.raise_alert(AlertType.LOW_FUEL, "forklift-1", (1, 1), "low", 0)
    assert center.count(AlertType.COLLISION) == 1
    assert center.count(AlertType.LOW_FUEL) == 2


def test_aging_resolves_after_thirty_seconds():
    center = AlertCenter()
    alert = center.raise_alert(AlertType.STUCK, "forklift-1", (1, 1), "stuck", 1000)
    assert center.age_out(30999) == 0
    assert not alert.resolved
    assert center.age_out(31000) == 1
    assert alert.resolved
    assert center.open_alerts() == []


def test_resolved_alert_no_longer_blocks_dedup():
    center = AlertCenter()
    center.raise_alert(AlertType.LOW_FUEL, "forklift-1", (1, 1), "low", 0)
    center.age_out(30000)
    assert center.raise_alert(AlertType.LOW_FUEL, "forklift-1", (1, 1), "low", 30000) is not None


def test_metrics_refresh_and_completion():
    a = Forklift((1, 1), capacity=1000, forklift_id="forklift-1")
    b = Forklift((2, 1), capacity=1000, forklift_id="forklift-2")
    a.current_load = 250
    a.total_distance = 40
    a.fuel_level = 96
    metrics = FleetMetrics()
    metrics.refresh([a, b])
    assert metrics.average_load_utilization == pytest.approx(12.5)
    assert metrics.fuel_efficiency == pytest.approx(10.0)

    metrics.record_completion(10.0, 100)
    metrics.record_completion(20.0, 50)
    assert metrics.completed_tasks == 2
    assert metrics.average_time == pytest.approx(15.0)
    assert metrics.total_weight_moved == 150


def test_metrics_empty_fleet():
    metrics = FleetMetrics()
    metrics.refresh([])
    assert metrics.average_load_utilization == 0.0
    assert metrics.fuel_efficiency == 0.0

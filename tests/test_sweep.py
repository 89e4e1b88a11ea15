"""
Tests for the fleet sizing sweep.
"""

import pytest

import sweep


def _result(fleet, avoidance, weight, collisions):
    return {
        "num_forklifts": fleet,
        "collision_avoidance": avoidance,
        "completed_tasks": 2,
        "total_weight_moved": weight,
        "collision_count": collisions,
        "blocked_paths": 0,
        "forklift_blocked_fraction": 0.1,
        "fuel_efficiency": 5.0,
    }


def test_summarise_averages_over_seeds():
    rows = sweep.summarise([
        _result(2, True, 1000, 0),
        _result(2, True, 3000, 0),
        _result(2, False, 4000, 3),
        _result(1, True, 500, 0),
    ])
    assert [(r["num_forklifts"], r["collision_avoidance"]) for r in rows] == [
        (1, True), (2, False), (2, True),
    ]
    on = rows[2]
    assert on["runs"] == 2
    assert on["total_weight_moved"] == pytest.approx(2000)
    assert on["weight_per_forklift"] == pytest.approx(1000)
    assert rows[1]["collision_count"] == pytest.approx(3)


def test_single_run_carries_avoidance_setting():
    result = sweep._run((2, False, 3, 50, 4))
    assert result["collision_avoidance"] is False
    assert result["num_forklifts"] == 2
    assert result["total_ticks"] == 50

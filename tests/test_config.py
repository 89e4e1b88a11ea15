"""
Tests for configuration defaults, env parsing and range validation.
"""

import pytest

from forklift_simulation import SimulationConfig


def test_defaults_are_valid():
    config = SimulationConfig()
    config.validate()
    assert config.tick_interval_ms == 1000


def test_tick_interval_has_floor():
    assert SimulationConfig(speed=2.0).tick_interval_ms == 500
    assert SimulationConfig(speed=3.0).tick_interval_ms == pytest.approx(1000 / 3)
    assert SimulationConfig(speed=0.5).tick_interval_ms == 2000


@pytest.mark.parametrize("field,value", [
    ("learning_rate", 0.0),
    ("exploration_rate", 1.5),
    ("discount_factor", 0.995),
    ("speed", 3.5),
    ("max_tasks", 0),
    ("forklift_count", 6),
])
def test_out_of_range_rejected(field, value):
    with pytest.raises(ValueError, match=field):
        SimulationConfig(**{field: value}).validate()


def test_updated_returns_validated_copy():
    base = SimulationConfig()
    changed = base.updated(speed=2.0, collision_avoidance=False)
    assert changed.speed == 2.0
    assert not changed.collision_avoidance
    assert base.speed == 1.0
    with pytest.raises(ValueError):
        base.updated(forklift_count=0)


def test_from_env(monkeypatch):
    monkeypatch.setenv("FORKLIFT_SIM_SPEED", "2.5")
    monkeypatch.setenv("FORKLIFT_SIM_FORKLIFT_COUNT", "3")
    monkeypatch.setenv("FORKLIFT_SIM_COLLISION_AVOIDANCE", "false")
    config = SimulationConfig.from_env()
    assert config.speed == 2.5
    assert config.forklift_count == 3
    assert config.collision_avoidance is False
    assert config.emergency_response is True


def test_from_env_validates(monkeypatch):
    monkeypatch.setenv("FORKLIFT_SIM_FORKLIFT_COUNT", "9")
    with pytest.raises(ValueError):
        SimulationConfig.from_env()

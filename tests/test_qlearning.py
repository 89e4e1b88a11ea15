"""
Tests for the tabular Q-learning value estimator.
"""

import random

import pytest

from forklift_simulation import Position, QLearningEstimator, SimulationConfig, calculate_reward
from forklift_simulation.qlearning import state_key


def test_rewards():
    assert calculate_reward((5, 5), (5, 6), (5, 9), task_completed=True) == 100
    assert calculate_reward((5, 5), (5, 6), (5, 9)) == 10
    assert calculate_reward((5, 5), (5, 4), (5, 9)) == -5
    assert calculate_reward((5, 5), (5, 5), (5, 9)) == -1


def test_state_key_format():
    assert state_key((3, 4), (10, 2)) == "3,4->10,2"


def test_greedy_selection_prefers_best_value():
    est = QLearningEstimator(exploration_rate=0.0, rng=random.Random(0))
    actions = [Position(5, 4), Position(6, 5), Position(5, 6)]
    assert est.select_action((5, 5), (9, 9), actions) == Position(5, 4)
    est.update_q_value((5, 5), (6, 5), 10, (6, 5), (9, 9), [])
    assert est.select_action((5, 5), (9, 9), actions) == Position(6, 5)


def test_full_exploration_picks_valid_actions():
    est = QLearningEstimator(exploration_rate=1.0, rng=random.Random(4))
    actions = [Position(1, 1), Position(2, 2)]
    for _ in range(20):
        assert est.select_action((0, 0), (3, 3), actions) in actions


def test_select_action_needs_actions():
    est = QLearningEstimator()
    with pytest.raises(ValueError):
        est.select_action((0, 0), (3, 3), [])


def test_td_update():
    est = QLearningEstimator(learning_rate=0.5, discount_factor=0.9)
    est.q_table[state_key((6, 5), (9, 9))] = {"7,5": 20.0}
    value = est.update_q_value((5, 5), (6, 5), 10, (6, 5), (9, 9), [Position(7, 5), Position(6, 6)])
    # 0 + 0.5 * (10 + 0.9 * 20 - 0)
    assert value == pytest.approx(14.0)
    assert est.q_value((5, 5), (9, 9), (6, 5)) == pytest.approx(14.0)


def test_decay_has_floor():
    est = QLearningEstimator(exploration_rate=0.3)
    assert est.decay_exploration() == pytest.approx(0.2985)
    est.exploration_rate = 0.0100001
    assert est.decay_exploration() == 0.01


def test_reset_clears_table_and_applies_config():
    est = QLearningEstimator()
    est.update_q_value((5, 5), (6, 5), 10, (6, 5), (9, 9), [])
    est.reset(SimulationConfig(exploration_rate=0.7, learning_rate=0.2))
    assert est.q_table == {}
    assert est.exploration_rate == 0.7
    assert est.learning_rate == 0.2

"""Tabular Q-learning value estimator.

The scheduler only drives :meth:`ValueEstimator.decay_exploration`; movement
decisions come from A*. Action selection and updates are available to
callers that want to experiment with a learned policy.
"""

from __future__ import annotations

import random
from abc import ABC, abstractmethod
from typing import Sequence

from .constants import (
    EXPLORATION_DECAY, EXPLORATION_FLOOR,
    REWARD_TASK_COMPLETED, REWARD_CLOSER, REWARD_FARTHER, REWARD_TIME,
)
from .config import SimulationConfig
from .models import Position


def state_key(position: tuple[int, int], goal: tuple[int, int]) -> str:
    return f"{position[0]},{position[1]}->{goal[0]},{goal[1]}"


def action_key(action: tuple[int, int]) -> str:
    return f"{action[0]},{action[1]}"


def calculate_reward(
    current: tuple[int, int],
    nxt: tuple[int, int],
    goal: tuple[int, int],
    task_completed: bool = False,
) -> float:
    """Reward for moving from *current* to *nxt* while heading for *goal*."""
    if task_completed:
        return REWARD_TASK_COMPLETED
    before = Position(*current).manhattan(goal)
    after = Position(*nxt).manhattan(goal)
    if after < before:
        return REWARD_CLOSER
    if after > before:
        return REWARD_FARTHER
    return REWARD_TIME


class ValueEstimator(ABC):
    """Strategy interface the scheduler holds for learned action values."""

    exploration_rate: float

    @abstractmethod
    def select_action(
        self,
        position: tuple[int, int],
        goal: tuple[int, int],
        valid_actions: Sequence[Position],
    ) -> Position:
        ...

    @abstractmethod
    def update_q_value(
        self,
        position: tuple[int, int],
        action: tuple[int, int],
        reward: float,
        next_position: tuple[int, int],
        goal: tuple[int, int],
        valid_next_actions: Sequence[Position],
    ) -> float:
        ...

    @abstractmethod
    def decay_exploration(self) -> float:
        ...

    def configure(self, config: SimulationConfig) -> None:
        """Pick up changed rates. No-op by default."""

    def reset(self, config: SimulationConfig) -> None:
        """Forget learned values. No-op by default."""


class QLearningEstimator(ValueEstimator):
    """Epsilon-greedy tabular Q-learning keyed by ``"x,y->gx,gy"`` states."""

    def __init__(
        self,
        learning_rate: float = 0.1,
        discount_factor: float = 0.9,
        exploration_rate: float = 0.3,
        rng: random.Random | None = None,
    ) -> None:
        self.learning_rate = learning_rate
        self.discount_factor = discount_factor
        self.exploration_rate = exploration_rate
        self.q_table: dict[str, dict[str, float]] = {}
        self._rng = rng or random.Random()

    def q_value(self, position: tuple[int, int], goal: tuple[int, int], action: tuple[int, int]) -> float:
        return self.q_table.get(state_key(position, goal), {}).get(action_key(action), 0.0)

    def select_action(
        self,
        position: tuple[int, int],
        goal: tuple[int, int],
        valid_actions: Sequence[Position],
    ) -> Position:
        """Random action with probability ``exploration_rate``, else the best known one.

        Unseen actions score 0; ties keep the first action in *valid_actions*.
        """
        if not valid_actions:
            raise ValueError("select_action needs at least one valid action")
        if self._rng.random() < self.exploration_rate:
            return valid_actions[self._rng.randrange(len(valid_actions))]
        values = self.q_table.get(state_key(position, goal), {})
        best = valid_actions[0]
        best_value = float("-inf")
        for action in valid_actions:
            value = values.get(action_key(action), 0.0)
            if value > best_value:
                best_value = value
                best = action
        return best

    def update_q_value(
        self,
        position: tuple[int, int],
        action: tuple[int, int],
        reward: float,
        next_position: tuple[int, int],
        goal: tuple[int, int],
        valid_next_actions: Sequence[Position],
    ) -> float:
        """One-step TD update. Returns the new value."""
        values = self.q_table.setdefault(state_key(position, goal), {})
        current = values.get(action_key(action), 0.0)
        next_values = self.q_table.get(state_key(next_position, goal), {})
        max_next = max(
            (next_values.get(action_key(a), 0.0) for a in valid_next_actions),
            default=0.0,
        )
        new_value = current + self.learning_rate * (
            reward + self.discount_factor * max_next - current
        )
        values[action_key(action)] = new_value
        return new_value

    def decay_exploration(self) -> float:
        self.exploration_rate = max(EXPLORATION_FLOOR, self.exploration_rate * EXPLORATION_DECAY)
        return self.exploration_rate

    def configure(self, config: SimulationConfig) -> None:
        self.learning_rate = config.learning_rate
        self.discount_factor = config.discount_factor
        self.exploration_rate = config.exploration_rate

    def reset(self, config: SimulationConfig) -> None:
        self.q_table.clear()
        self.configure(config)

"""Configuration objects for learning, search and planning runs."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Optional


def _check_unit_interval(name: str, value: float) -> None:
    if not (0.0 <= value <= 1.0):
        raise ValueError(f"{name} must be in [0, 1], got {value}.")


@dataclass(frozen=True)
class LearningConfig:
    """
    Hyperparameters shared by the episodic learning algorithms.

    Args:
        gamma: Discount factor in [0, 1].
        alpha: Constant TD step size. Must be positive. Monte Carlo methods
            ignore it and use incremental means instead.
        epsilon: Soft-policy exploration mass in [0, 1]. Zero means greedy.
        max_episode_steps: Cap on generated episode length. ``None`` disables
            the cap, which can hang on environments that never terminate.
    """

    gamma: float = 1.0
    alpha: float = 0.5
    epsilon: float = 0.2
    max_episode_steps: Optional[int] = 10_000

    def __post_init__(self) -> None:
        """Validate LearningConfig invariants."""
        _check_unit_interval("gamma", self.gamma)
        _check_unit_interval("epsilon", self.epsilon)
        if self.alpha <= 0.0:
            raise ValueError(f"alpha must be positive, got {self.alpha}.")
        if self.max_episode_steps is not None and self.max_episode_steps < 1:
            raise ValueError(
                f"max_episode_steps must be >= 1 or None, got {self.max_episode_steps}."
            )


@dataclass(frozen=True)
class SearchConfig:
    """
    Monte Carlo Tree Search parameters.

    Args:
        exploration: UCB exploration constant ``c``. Must be non-negative.
        max_depth: Cap on transitions per simulation (selection plus rollout).
    """

    exploration: float = 0.01
    max_depth: Optional[int] = 10_000

    def __post_init__(self) -> None:
        """Validate SearchConfig invariants."""
        if self.exploration < 0.0:
            raise ValueError(
                f"exploration must be non-negative, got {self.exploration}."
            )
        if self.max_depth is not None and self.max_depth < 1:
            raise ValueError(f"max_depth must be >= 1 or None, got {self.max_depth}.")


@dataclass(frozen=True)
class PlanningConfig:
    """
    Dynamic-programming parameters.

    Args:
        gamma: Discount factor in [0, 1].
        theta: Convergence threshold on the largest value change of a sweep.
        max_sweeps: Cap on sweeps per evaluation / value-iteration call.
        max_iterations: Cap on evaluate/improve rounds of policy iteration.
    """

    gamma: float = 1.0
    theta: float = 1e-6
    max_sweeps: int = 10_000
    max_iterations: int = 100

    def __post_init__(self) -> None:
        """Validate PlanningConfig invariants."""
        _check_unit_interval("gamma", self.gamma)
        if self.theta <= 0.0:
            raise ValueError(f"theta must be positive, got {self.theta}.")
        if self.max_sweeps < 1:
            raise ValueError(f"max_sweeps must be >= 1, got {self.max_sweeps}.")
        if self.max_iterations < 1:
            raise ValueError(
                f"max_iterations must be >= 1, got {self.max_iterations}."
            )

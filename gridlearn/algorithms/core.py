"""Result containers and shared helpers for the learning algorithms."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import List, Optional, Tuple

import numpy as np

from ..config import LearningConfig
from ..utils import seed_rng


@dataclass
class TrainingResult:
    """
    Summary of one learning call.

    Attributes:
        num_episodes: Episodes (or tree-search simulations) processed.
        total_steps: Environment transitions consumed.
        episode_returns: Undiscounted reward sum of every episode.
        early_stops: Backward passes cut short (off-policy control only).
    """

    num_episodes: int = 0
    total_steps: int = 0
    episode_returns: List[float] = field(default_factory=list)
    early_stops: int = 0

    def record(self, rewards_total: float, steps: int) -> None:
        self.num_episodes += 1
        self.total_steps += steps
        self.episode_returns.append(rewards_total)

    @property
    def mean_return(self) -> float:
        if not self.episode_returns:
            return float("nan")
        return float(np.mean(self.episode_returns))


@dataclass
class PlanningResult:
    """
    Summary of a dynamic-programming run.

    Attributes:
        iterations: Evaluate/improve rounds (1 for value iteration).
        sweeps: Total sweeps over the state space.
        stable: Whether the greedy policy stopped changing.
    """

    iterations: int
    sweeps: int
    stable: bool


def prepare(
    num_episodes: int,
    config: Optional[LearningConfig],
    rng: Optional[np.random.Generator],
) -> Tuple[LearningConfig, np.random.Generator]:
    """Validate the episode budget and fill in default config / RNG."""
    if num_episodes < 0:
        raise ValueError(f"num_episodes must be >= 0, got {num_episodes}")
    return (config or LearningConfig()), (rng if rng is not None else seed_rng(0))


__all__ = ["TrainingResult", "PlanningResult", "prepare"]

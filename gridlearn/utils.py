"""Utility functions for the learning algorithms.

This module provides RNG seeding, return computation, greedy-policy
extraction from exported Q arrays and a simple policy evaluation loop.
"""

from collections.abc import Callable, Sequence
from typing import Any, Optional

import numpy as np


def seed_rng(seed: Optional[int] = None) -> np.random.Generator:
    """Create a seeded NumPy random number generator.

    Args:
        seed: Random seed. If None, defaults to 0 for reproducibility.

    Returns:
        Seeded NumPy random generator.

    Examples:
        >>> rng = seed_rng(42)
        >>> bool(0 <= rng.integers(10) < 10)
        True
    """
    if seed is None:
        seed = 0
    return np.random.default_rng(seed)


def check_gamma(gamma: float) -> None:
    if gamma < 0 or gamma > 1:
        raise ValueError(f"gamma must be in [0, 1], got {gamma}")


def discounted_returns(
    rewards: Sequence[float],
    gamma: float,
) -> np.ndarray:
    """Compute discounted returns G_t for Monte Carlo methods.

    Returns G_t = sum_{k=0}^{T-t-1} gamma^k * r_{t+k+1}
    computed backwards from terminal state.

    Args:
        rewards: Sequence of rewards [r_1, r_2, ..., r_T].
        gamma: Discount factor in [0, 1].

    Returns:
        Array of returns [G_0, G_1, ..., G_{T-1}], shape (T,).

    Examples:
        >>> rewards = [1.0, 2.0, 3.0]
        >>> returns = discounted_returns(rewards, gamma=0.9)
        >>> bool(np.isclose(returns[0], 1.0 + 0.9*2.0 + 0.9**2*3.0))
        True
    """
    check_gamma(gamma)

    rewards = np.asarray(rewards, dtype=np.float64)
    T = len(rewards)
    returns = np.zeros(T, dtype=np.float64)

    # Compute backwards: G_t = r_{t+1} + gamma * G_{t+1}
    G = 0.0
    for t in range(T - 1, -1, -1):
        G = rewards[t] + gamma * G
        returns[t] = G

    return returns


def greedy_policy_from_Q(Q: np.ndarray) -> Callable[[int], int]:
    """Build deterministic greedy policy from an exported Q array.

    NaN entries (illegal or unset actions) are ignored; ties go to the first
    maximal column.

    Args:
        Q: Q array, shape (n_states, n_actions), e.g. ``PolicyTable.q_values()``.

    Returns:
        Policy function mapping state id -> action index.

    Examples:
        >>> Q = np.array([[0.1, 0.9], [0.8, np.nan]])
        >>> policy = greedy_policy_from_Q(Q)
        >>> policy(0), policy(1)
        (1, 0)
    """
    Q = np.asarray(Q, dtype=np.float64)
    if Q.ndim != 2:
        raise ValueError(f"Q must be 2D array, got shape {Q.shape}")

    def policy(state: int) -> int:
        row = Q[state]
        if np.all(np.isnan(row)):
            raise KeyError(f"state {state} has no valued actions")
        return int(np.nanargmax(row))

    return policy


def evaluate_policy(
    env: Any,  # Env type, but avoid circular import
    policy: Callable[[Any], Any],
    num_episodes: int,
    rng: np.random.Generator,
    max_steps: int = 1_000,
) -> tuple[float, float]:
    """Evaluate a policy by running episodes and computing average return.

    Episodes start at ``env.start_state`` when the environment has one and at
    a uniformly drawn non-terminal state otherwise. Episodes that hit
    ``max_steps`` are cut and scored with the rewards collected so far.

    Args:
        env: Environment implementing the ``Env`` contract.
        policy: Function mapping State -> Action.
        num_episodes: Number of episodes to run.
        rng: Random number generator for start states.
        max_steps: Step cap per episode.

    Returns:
        Tuple of (average_return, std_return) across episodes.
    """
    try:
        start = env.start_state
    except NotImplementedError:
        start = None
    candidates = env.states()

    episode_returns = []
    for _ in range(num_episodes):
        state = start if start is not None else candidates[int(rng.integers(len(candidates)))]
        episode_reward = 0.0
        for _ in range(max_steps):
            state, reward = env.get_reward(state, policy(state))
            episode_reward += reward
            if state.is_terminal:
                break
        episode_returns.append(episode_reward)

    returns_array = np.array(episode_returns, dtype=np.float64)
    return float(np.mean(returns_array)), float(np.std(returns_array))

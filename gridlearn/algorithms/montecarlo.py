"""Monte Carlo prediction and control.

This module implements episodic Monte Carlo methods over a policy table:
- First-visit prediction of state values for a fixed policy
- Control with exploring starts (batch greedy improvement)
- On-policy first-visit control with soft-epsilon policies
- Off-policy every-visit control with weighted importance sampling

All methods average complete-episode returns, so they need no model of the
environment and no step size.
"""

from __future__ import annotations

import math
from typing import List, Optional

import numpy as np

from ..config import LearningConfig
from ..episode import Step, generate_episode
from ..logging import get_logger
from ..policy import PolicyTable
from ..utils import discounted_returns
from .core import TrainingResult, prepare

logger = get_logger(__name__)


def _run_episode(env, policy, rng, config: LearningConfig, exploring_start: bool) -> List[Step]:
    return list(
        generate_episode(
            env,
            policy,
            rng,
            exploring_start=exploring_start,
            max_steps=config.max_episode_steps,
        )
    )


def mc_prediction(
    env,
    table: PolicyTable,
    num_episodes: int,
    config: Optional[LearningConfig] = None,
    rng: Optional[np.random.Generator] = None,
) -> TrainingResult:
    """First-visit Monte Carlo prediction of state values.

    Episodes follow the table's current policy, which is not changed. For the
    first occurrence of every state in an episode:

        N(s) += 1
        V(s) += (G - V(s)) / N(s)

    Later occurrences in the same episode are ignored. Estimates keep
    accumulating across calls.

    Args:
        env: Environment implementing the ``Env`` contract.
        table: Eager policy table holding the policy to evaluate.
        num_episodes: Number of episodes to run.
        config: Learning parameters (``gamma``, ``max_episode_steps`` used).
        rng: Random number generator. If None, uses seed_rng(0).

    Returns:
        Training summary.

    Examples:
        >>> from gridlearn.envs import GridWorld
        >>> env = GridWorld()
        >>> table = PolicyTable(env)
        >>> result = mc_prediction(env, table, num_episodes=10)
        >>> result.num_episodes
        10
    """
    config, rng = prepare(num_episodes, config, rng)
    result = TrainingResult()

    for _ in range(num_episodes):
        episode = _run_episode(env, table, rng, config, exploring_start=False)
        returns = discounted_returns([step.reward for step in episode], config.gamma)

        visited = set()
        for step, G in zip(episode, returns):
            if step.state in visited:
                continue
            visited.add(step.state)
            record = table[step.state]
            record.visits += 1
            record.value += (G - record.value) / record.visits

        result.record(sum(step.reward for step in episode), len(episode))

    logger.debug(
        "mc_prediction: %d episodes, %d steps", result.num_episodes, result.total_steps
    )
    return result


def _first_visit_update(table: PolicyTable, episode: List[Step], gamma: float, epsilon=None) -> None:
    returns = discounted_returns([step.reward for step in episode], gamma)
    visited = set()
    for step, G in zip(episode, returns):
        key = (step.state, step.action)
        if key in visited:
            continue
        visited.add(key)
        record = table[step.state]
        sap = record[step.action]
        sap.visits += 1
        sap.value = sap.value + (G - sap.value) / sap.visits
        if epsilon is not None:
            record.rebalance(epsilon)


def mc_exploring_starts(
    env,
    table: PolicyTable,
    num_episodes: int,
    config: Optional[LearningConfig] = None,
    rng: Optional[np.random.Generator] = None,
) -> TrainingResult:
    """Monte Carlo control with exploring starts.

    Every episode starts from a uniformly drawn (state, action) pair and then
    follows the table's policy. First visits of (state, action) pairs update
    the incremental mean of their returns. Once all episodes are processed,
    every non-terminal state is rebalanced greedily.

    Algorithm (Sutton & Barto, 2018, Ch. 5.3):
    1. Generate episode from random (S0, A0), following pi
    2. For the first visit of each (s, a), Q(s, a) += (G - Q(s, a)) / N(s, a)
    3. After the batch, pi(s) = argmax_a Q(s, a) with ties split evenly

    Args:
        env: Environment implementing the ``Env`` contract.
        table: Eager policy table, improved in place.
        num_episodes: Number of episodes before the greedy improvement.
        config: Learning parameters (``gamma``, ``max_episode_steps`` used).
        rng: Random number generator. If None, uses seed_rng(0).

    Returns:
        Training summary.
    """
    config, rng = prepare(num_episodes, config, rng)
    result = TrainingResult()

    for _ in range(num_episodes):
        episode = _run_episode(env, table, rng, config, exploring_start=True)
        _first_visit_update(table, episode, config.gamma)
        result.record(sum(step.reward for step in episode), len(episode))

    table.rebalance_all(0.0)
    logger.debug(
        "mc_exploring_starts: %d episodes, %d steps", result.num_episodes, result.total_steps
    )
    return result


def mc_control_on_policy(
    env,
    table: PolicyTable,
    num_episodes: int,
    config: Optional[LearningConfig] = None,
    rng: Optional[np.random.Generator] = None,
) -> TrainingResult:
    """On-policy first-visit Monte Carlo control with soft policies.

    Episodes are generated by the table's own policy. After each first-visit
    update of a (state, action) pair the state is rebalanced with
    ``config.epsilon``, so prediction and improvement interleave within the
    episode.

    Args:
        env: Environment implementing the ``Env`` contract.
        table: Eager policy table, improved in place.
        num_episodes: Number of episodes to run.
        config: Learning parameters (``gamma``, ``epsilon``,
            ``max_episode_steps`` used).
        rng: Random number generator. If None, uses seed_rng(0).

    Returns:
        Training summary.
    """
    config, rng = prepare(num_episodes, config, rng)
    result = TrainingResult()

    for _ in range(num_episodes):
        episode = _run_episode(env, table, rng, config, exploring_start=False)
        _first_visit_update(table, episode, config.gamma, epsilon=config.epsilon)
        result.record(sum(step.reward for step in episode), len(episode))

    logger.debug(
        "mc_control_on_policy: %d episodes, %d steps, epsilon=%s",
        result.num_episodes,
        result.total_steps,
        config.epsilon,
    )
    return result


def mc_control_off_policy(
    env,
    target: PolicyTable,
    behavior: PolicyTable,
    num_episodes: int,
    config: Optional[LearningConfig] = None,
    rng: Optional[np.random.Generator] = None,
) -> TrainingResult:
    """Off-policy every-visit Monte Carlo control with importance sampling.

    Episodes come from the fixed ``behavior`` table; the ``target`` table is
    kept greedy. Cumulative weights C of the target are reset at the start of
    the call. For every step of the reversed episode, in this order:

        G = r + gamma * G
        C(s, a) += W
        Q(s, a) += W / C(s, a) * (G - Q(s, a))
        greedy rebalance of s
        stop the pass if a is no longer in the target policy at s
        W *= pi(a|s) / b(a|s)

    The ratio uses the target probability as it stands after the rebalance of
    that same step. A non-finite weight also stops the pass.

    Args:
        env: Environment implementing the ``Env`` contract.
        target: Policy table being learned.
        behavior: Soft policy table generating the episodes. Not modified.
        num_episodes: Number of episodes to run.
        config: Learning parameters (``gamma``, ``max_episode_steps`` used).
        rng: Random number generator. If None, uses seed_rng(0).

    Returns:
        Training summary; ``early_stops`` counts passes cut before reaching
        the first step of their episode.
    """
    config, rng = prepare(num_episodes, config, rng)
    result = TrainingResult()

    target.reset_weights()

    for _ in range(num_episodes):
        episode = _run_episode(env, behavior, rng, config, exploring_start=False)

        G = 0.0
        W = 1.0
        for t in range(len(episode) - 1, -1, -1):
            state, action, reward = episode[t]
            G = reward + config.gamma * G

            record = target[state]
            sap = record[action]
            sap.weight_sum += W
            sap.value = sap.value + W / sap.weight_sum * (G - sap.value)
            sap.visits += 1

            record.rebalance(0.0)

            if not sap.in_policy:
                if t > 0:
                    result.early_stops += 1
                break

            W = W * sap.probability / behavior[state][action].probability
            if not math.isfinite(W):
                logger.warning(
                    "importance weight overflow at %r, truncating backward pass", state
                )
                if t > 0:
                    result.early_stops += 1
                break

        result.record(sum(step.reward for step in episode), len(episode))

    logger.debug(
        "mc_control_off_policy: %d episodes, %d steps, %d early stops",
        result.num_episodes,
        result.total_steps,
        result.early_stops,
    )
    return result


__all__ = [
    "mc_prediction",
    "mc_exploring_starts",
    "mc_control_on_policy",
    "mc_control_off_policy",
]

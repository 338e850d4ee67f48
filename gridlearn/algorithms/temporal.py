"""Temporal-difference control.

This module implements bootstrapping control algorithms over a policy table:
- SARSA (on-policy one-step TD control)
- Q-learning (off-policy one-step TD control)
- Expected SARSA
- n-step SARSA

Episodes are consumed lazily: the algorithms pull the next step from the
episode generator before updating the current one, so the action sampled for
the next step comes from the policy as it was before the update.
"""

from enum import Enum
from typing import Optional, Union

import numpy as np

from ..bank import ReturnBank
from ..config import LearningConfig
from ..episode import generate_episode
from ..logging import get_logger
from ..model import Action
from ..policy import PolicyState, PolicyTable
from .core import TrainingResult, prepare

logger = get_logger(__name__)


class TDMethod(str, Enum):
    """Bootstrap target of one-step TD control."""

    SARSA = "sarsa"
    Q_LEARNING = "q_learning"
    EXPECTED_SARSA = "expected_sarsa"


def _max_value(record: PolicyState) -> float:
    values = [sap.value for sap in record.actions.values() if sap.is_set]
    return max(values) if values else 0.0


def _expected_value(record: PolicyState) -> float:
    return sum(sap.probability * sap.value for sap in record.actions.values())


def _bootstrap(method: TDMethod, record: PolicyState, action: Action) -> float:
    if method is TDMethod.SARSA:
        return record[action].value
    if method is TDMethod.Q_LEARNING:
        return _max_value(record)
    return _expected_value(record)


def td_control(
    env,
    table: PolicyTable,
    num_episodes: int,
    method: Union[TDMethod, str] = TDMethod.SARSA,
    config: Optional[LearningConfig] = None,
    rng: Optional[np.random.Generator] = None,
) -> TrainingResult:
    """One-step TD control.

    Updates every visited (state, action) pair with

        Q(s, a) += alpha * (r + gamma * target - Q(s, a))

    where the target is Q(s', a') for SARSA, max_a'' Q(s', a'') for
    Q-learning and sum_a'' pi(a''|s') Q(s', a'') for Expected SARSA. On the
    last step of an episode s' is terminal and the target is 0. Each update
    increments the visit count and rebalances the state with
    ``config.epsilon``.

    Algorithm (Sutton & Barto, 2018, Ch. 6):
    For each step in episode:
        1. Pull the next step (s', a', r') from the episode
        2. Update Q(s, a) from r and the bootstrap target at (s', a')
        3. Rebalance pi(s) epsilon-greedily
        4. Slide the window: (s, a, r) <- (s', a', r')

    Args:
        env: Environment implementing the ``Env`` contract.
        table: Eager policy table, learned in place.
        num_episodes: Number of episodes to run.
        method: Bootstrap target, a ``TDMethod`` or its string value.
        config: Learning parameters.
        rng: Random number generator. If None, uses seed_rng(0).

    Returns:
        Training summary.

    Examples:
        >>> from gridlearn.envs import ChainMDP
        >>> env = ChainMDP(n_states=4, seed=0)
        >>> table = PolicyTable(env)
        >>> result = td_control(env, table, num_episodes=20, method="q_learning")
        >>> result.num_episodes
        20
    """
    config, rng = prepare(num_episodes, config, rng)
    method = TDMethod(method)
    result = TrainingResult()

    for _ in range(num_episodes):
        episode = generate_episode(env, table, rng, max_steps=config.max_episode_steps)
        current = next(episode)
        total_reward = 0.0
        steps = 0

        while current is not None:
            following = next(episode, None)

            record = table[current.state]
            sap = record[current.action]
            if following is None:
                target = 0.0
            else:
                target = _bootstrap(method, table[following.state], following.action)
            sap.value = sap.value + config.alpha * (
                current.reward + config.gamma * target - sap.value
            )
            sap.visits += 1
            record.rebalance(config.epsilon)

            total_reward += current.reward
            steps += 1
            current = following

        result.record(total_reward, steps)

    logger.debug(
        "td_control(%s): %d episodes, %d steps",
        method.value,
        result.num_episodes,
        result.total_steps,
    )
    return result


def n_step_sarsa(
    env,
    table: PolicyTable,
    num_episodes: int,
    n: int = 4,
    config: Optional[LearningConfig] = None,
    rng: Optional[np.random.Generator] = None,
) -> TrainingResult:
    """n-step SARSA.

    The update target of the pair visited at time tau is

        G = sum_{i<n} gamma^i r_{tau+i} + gamma^n Q(s_{tau+n}, a_{tau+n})

    with the bootstrap term dropped once tau + n reaches the episode length
    T. Pending steps wait in a :class:`ReturnBank` of capacity ``n``. With
    ``n == 1`` the updates are those of ``td_control`` with SARSA.

    Args:
        env: Environment implementing the ``Env`` contract.
        table: Eager policy table, learned in place.
        num_episodes: Number of episodes to run.
        n: Number of rewards before bootstrapping (>= 1).
        config: Learning parameters.
        rng: Random number generator. If None, uses seed_rng(0).

    Returns:
        Training summary.

    Raises:
        ValueError: If ``n < 1``.
    """
    if n < 1:
        raise ValueError(f"n must be >= 1, got {n}")
    config, rng = prepare(num_episodes, config, rng)
    result = TrainingResult()
    discount_n = config.gamma**n

    for _ in range(num_episodes):
        bank = ReturnBank(n)
        episode = generate_episode(env, table, rng, max_steps=config.max_episode_steps)
        current = next(episode)
        following = None
        T = float("inf")
        t = 0
        total_reward = 0.0

        while True:
            if t < T:
                bank.push(current)
                total_reward += current.reward
                following = next(episode, None)
                if following is None:
                    T = t + 1

            tau = t - n + 1
            if tau >= 0:
                state, action, G = bank.pop_return(config.gamma)
                if tau + n < T:
                    # s_{tau+n} is the step just pulled
                    G += discount_n * table.value(following.state, following.action)
                record = table[state]
                sap = record[action]
                sap.value = sap.value + config.alpha * (G - sap.value)
                sap.visits += 1
                record.rebalance(config.epsilon)

            if tau == T - 1:
                break
            current = following
            t += 1

        result.record(total_reward, int(T))

    logger.debug(
        "n_step_sarsa(n=%d): %d episodes, %d steps",
        n,
        result.num_episodes,
        result.total_steps,
    )
    return result


__all__ = ["TDMethod", "td_control", "n_step_sarsa"]

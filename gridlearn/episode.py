"""Episode generation.

An episode is produced lazily: the next action is sampled from the policy
only when the consumer asks for the next step, so on-policy learners that
update the table between steps see their own updates.
"""

from __future__ import annotations

from typing import Iterator, NamedTuple, Optional

import numpy as np

from .model import Action, State
from .policy import Policy


class Step(NamedTuple):
    """One transition of an episode: reward is the one received after acting."""

    state: State
    action: Action
    reward: float


class EpisodeTruncatedError(RuntimeError):
    """Raised when an episode does not reach a terminal state within its step cap."""

    def __init__(self, max_steps: int, state: Optional[State] = None):
        self.max_steps = max_steps
        self.state = state
        super().__init__(
            f"episode did not terminate within {max_steps} steps"
            + (f" (last state {state!r})" if state is not None else "")
        )


def generate_episode(
    env,
    policy: Policy,
    rng: np.random.Generator,
    exploring_start: bool = False,
    max_steps: Optional[int] = 10_000,
    start: Optional[State] = None,
) -> Iterator[Step]:
    """Generate an episode lazily.

    The start state is drawn uniformly from ``env.states()`` unless ``start``
    is given. With ``exploring_start`` the first action is drawn uniformly
    from the start state's legal actions, ignoring the policy; every other
    action comes from ``policy.sample_action``.

    Args:
        env: Environment implementing the ``Env`` contract.
        policy: Policy used to pick actions.
        rng: Random number generator for start choices and policy sampling.
        exploring_start: Pick the first action uniformly at random.
        max_steps: Step cap. None disables it.
        start: Fixed start state.

    Yields:
        ``Step(state, action, reward)`` until a terminal state is reached.

    Raises:
        EpisodeTruncatedError: If the cap is reached before termination.

    Examples:
        >>> from gridlearn.envs import GridWorld
        >>> from gridlearn.policy import PolicyTable
        >>> from gridlearn.utils import seed_rng
        >>> env = GridWorld()
        >>> steps = list(generate_episode(env, PolicyTable(env), seed_rng(0)))
        >>> steps[-1].reward
        1.0
    """
    if start is None:
        candidates = env.states()
        if not candidates:
            raise ValueError("environment has no non-terminal start state")
        state = candidates[int(rng.integers(len(candidates)))]
    else:
        state = start
    if state.is_terminal:
        raise ValueError(f"cannot start an episode in terminal state {state!r}")

    if exploring_start:
        action = state.actions[int(rng.integers(len(state.actions)))]
    else:
        action = policy.sample_action(state, rng)

    steps = 0
    while True:
        if max_steps is not None and steps >= max_steps:
            raise EpisodeTruncatedError(max_steps, state)
        next_state, reward = env.get_reward(state, action)
        steps += 1
        yield Step(state, action, float(reward))

        if next_state.is_terminal:
            return
        state = next_state
        action = policy.sample_action(state, rng)


__all__ = ["Step", "EpisodeTruncatedError", "generate_episode"]

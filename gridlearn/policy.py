"""Policy tables: per-state and per-state-action statistics.

A :class:`PolicyTable` is an arena of :class:`PolicyState` records indexed by
``State.sid``. Each record owns one :class:`StateActionPolicy` per legal
action and turns their values into an action-selection distribution through
:meth:`PolicyState.rebalance`.
"""

from __future__ import annotations

import math
from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import Dict, Iterator, List, Optional

import numpy as np

from .model import ALL_ACTIONS, Action, State


class Policy(ABC):
    """Interface for stochastic action selection.

    Used by the episode generator and by tree-search rollouts.
    """

    @abstractmethod
    def action_probs(self, state: State) -> Dict[Action, float]:
        """Get action probabilities for given state.

        Args:
            state: Current non-terminal state.

        Returns:
            Mapping of legal action -> probability, summing to 1.0.
        """
        raise NotImplementedError

    @abstractmethod
    def sample_action(self, state: State, rng: np.random.Generator) -> Action:
        """Sample action from policy for given state.

        Args:
            state: Current non-terminal state.
            rng: Random number generator.

        Returns:
            Sampled action.
        """
        raise NotImplementedError


@dataclass
class StateActionPolicy:
    """
    Statistics of one (state, action) pair.

    Attributes:
        estimate: Value estimate, or None while unset.
        visits: Number of updates applied (N).
        probability: Probability of choosing the action (P).
        weight_sum: Cumulative importance weight (C) for off-policy control.
        wins: Number of positive backed-up rewards (W) for tree search.
    """

    estimate: Optional[float] = 0.0
    visits: int = 0
    probability: float = 0.0
    weight_sum: float = 0.0
    wins: int = 0

    @property
    def value(self) -> float:
        """Value for arithmetic; an unset estimate reads as 0.0."""
        return 0.0 if self.estimate is None else self.estimate

    @value.setter
    def value(self, v: float) -> None:
        self.estimate = float(v)

    @property
    def is_set(self) -> bool:
        return self.estimate is not None

    @property
    def rank(self) -> float:
        """Value for max/argmax comparisons; an unset estimate ranks as -inf."""
        return -math.inf if self.estimate is None else self.estimate

    @property
    def in_policy(self) -> bool:
        return self.probability > 0.0


class PolicyState:
    """
    Policy record of a single state.

    The action mapping is fixed at creation to the state's legal actions, in
    their declared order, with uniform probabilities.

    Args:
        state: State the record belongs to.
        initial_value: Initial estimate of every action (None for unset).
    """

    def __init__(self, state: State, initial_value: Optional[float] = 0.0):
        self.state = state
        self.visits = 0
        self.value = 0.0
        size = len(state.actions)
        self.actions: Dict[Action, StateActionPolicy] = {
            a: StateActionPolicy(estimate=initial_value, probability=1.0 / size)
            for a in state.actions
        }

    def __getitem__(self, action: Action) -> StateActionPolicy:
        try:
            return self.actions[action]
        except KeyError:
            raise KeyError(f"action {action!r} is not legal in {self.state!r}") from None

    def __iter__(self) -> Iterator[Action]:
        return iter(self.actions)

    def __len__(self) -> int:
        return len(self.actions)

    def probabilities(self) -> Dict[Action, float]:
        return {a: sap.probability for a, sap in self.actions.items()}

    def in_policy_actions(self) -> List[Action]:
        return [a for a, sap in self.actions.items() if sap.in_policy]

    def max_actions(self) -> List[Action]:
        """Actions whose value ties for the maximum (unset ranks lowest)."""
        if not self.actions:
            return []
        best = max(sap.rank for sap in self.actions.values())
        return [a for a, sap in self.actions.items() if sap.rank == best]

    def greedy_action(self) -> Action:
        """First maximal action in declaration order."""
        best = self.max_actions()
        if not best:
            raise KeyError(f"{self.state!r} has no actions")
        return best[0]

    def _split(self, best: List[Action], epsilon: float) -> None:
        k = len(best)
        n = len(self.actions)
        if epsilon == 0:
            # greedy: ties share all the mass
            for a, sap in self.actions.items():
                sap.probability = 1.0 / k if a in best else 0.0
        else:
            floor = epsilon / n
            top = (1.0 - epsilon) / k + floor
            for a, sap in self.actions.items():
                sap.probability = top if a in best else floor

    def rebalance(self, epsilon: float = 0.2) -> None:
        """Recompute action probabilities from the current values.

        Max-value actions share ``1 - epsilon`` evenly; every action gets
        ``epsilon / |A|`` on top. With ``epsilon == 0`` the policy is greedy
        and only the max-value actions stay in policy.

        Args:
            epsilon: Exploration mass in [0, 1].
        """
        if not (0.0 <= epsilon <= 1.0):
            raise ValueError(f"epsilon must be in [0, 1], got {epsilon}")
        if not self.actions:
            return
        self._split(self.max_actions(), epsilon)

    def ucb_scores(self, exploration: float) -> Dict[Action, float]:
        """Upper-confidence scores; untried actions score +inf."""
        scores = {}
        for a, sap in self.actions.items():
            if sap.visits == 0:
                scores[a] = math.inf
            else:
                bonus = exploration * math.sqrt(math.log(self.visits) / sap.visits)
                scores[a] = sap.wins / sap.visits + bonus
        return scores

    def rebalance_ucb(self, exploration: float) -> None:
        """Greedy rebalance over UCB scores instead of raw values.

        Also refreshes every tried action's value to its win rate.
        """
        if not self.actions:
            return
        for sap in self.actions.values():
            if sap.visits > 0:
                sap.value = sap.wins / sap.visits
        scores = self.ucb_scores(exploration)
        best = max(scores.values())
        self._split([a for a, score in scores.items() if score == best], 0.0)

    def sample_action(self, rng: np.random.Generator) -> Action:
        """Draw an action with one uniform draw and a cumulative scan.

        If rounding keeps the accumulated probability from ever exceeding the
        draw, the last in-policy action is returned.
        """
        draw = rng.random()
        accumulator = 0.0
        last = None
        for a, sap in self.actions.items():
            if not sap.in_policy:
                continue
            accumulator += sap.probability
            last = a
            if draw < accumulator:
                return a
        if last is None:
            raise KeyError(f"{self.state!r} has no action in policy")
        return last

    def __repr__(self) -> str:
        return f"PolicyState({self.state!r}, visits={self.visits})"


class PolicyTable(Policy):
    """
    Arena of policy records indexed by state id.

    Eager tables create a record for every state of the environment up front
    (terminal states get an empty record). Lazy tables start empty and grow
    through :meth:`add_state`; tree search uses them as its tree policy.

    Args:
        env: Environment whose ``states_plus()`` seeds an eager table. May be
            None for a lazy table.
        eager: Pre-create every record.
        initial_value: Initial action value (None for unset).

    Examples:
        >>> from gridlearn.envs import GridWorld
        >>> env = GridWorld()
        >>> table = PolicyTable(env)
        >>> probs = table.action_probs(env.state_at(1, 1))
        >>> sorted(set(probs.values()))
        [0.25]
    """

    def __init__(
        self,
        env=None,
        eager: bool = True,
        initial_value: Optional[float] = 0.0,
    ):
        if eager and env is None:
            raise ValueError("an eager PolicyTable needs an environment")
        self.initial_value = initial_value
        self._records: List[Optional[PolicyState]] = []
        if env is not None:
            self._records = [None] * env.n_states
            if eager:
                for s in env.states_plus():
                    self.add_state(s)

    def add_state(self, state: State) -> PolicyState:
        """Create the record of ``state`` (uniform probabilities) if missing."""
        if state.sid < 0:
            raise KeyError(f"sentinel state {state!r} cannot enter a policy table")
        if state.sid >= len(self._records):
            self._records.extend([None] * (state.sid + 1 - len(self._records)))
        record = self._records[state.sid]
        if record is None:
            record = PolicyState(state, self.initial_value)
            self._records[state.sid] = record
        return record

    def __contains__(self, state: State) -> bool:
        return 0 <= state.sid < len(self._records) and self._records[state.sid] is not None

    def __getitem__(self, state: State) -> PolicyState:
        if state not in self:
            raise KeyError(f"{state!r} is not in the policy table")
        return self._records[state.sid]

    def __iter__(self) -> Iterator[PolicyState]:
        return (r for r in self._records if r is not None)

    def __len__(self) -> int:
        return sum(1 for _ in self)

    @property
    def size(self) -> int:
        """Arena capacity (highest id + 1)."""
        return len(self._records)

    def action_probs(self, state: State) -> Dict[Action, float]:
        return self[state].probabilities()

    def sample_action(self, state: State, rng: np.random.Generator) -> Action:
        if state.is_terminal:
            raise KeyError(f"terminal state {state!r} has no actions to sample")
        return self[state].sample_action(rng)

    def value(self, state: State, action: Action) -> float:
        return self[state][action].value

    def rebalance_all(self, epsilon: float = 0.0) -> None:
        """Rebalance every non-terminal record."""
        for record in self:
            if not record.state.is_terminal:
                record.rebalance(epsilon)

    def reset_weights(self) -> None:
        """Zero every cumulative importance weight."""
        for record in self:
            for sap in record.actions.values():
                sap.weight_sum = 0.0

    def q_values(self) -> np.ndarray:
        """Export action values as an (n_states, n_actions) array.

        Columns follow ``Action`` values. Illegal, unset and absent entries
        are NaN.
        """
        Q = np.full((len(self._records), len(ALL_ACTIONS)), np.nan, dtype=np.float64)
        for record in self:
            for a, sap in record.actions.items():
                if sap.is_set:
                    Q[record.state.sid, int(a)] = sap.estimate
        return Q

    def probabilities(self) -> np.ndarray:
        """Export action probabilities as an (n_states, n_actions) array."""
        P = np.zeros((len(self._records), len(ALL_ACTIONS)), dtype=np.float64)
        for record in self:
            for a, sap in record.actions.items():
                P[record.state.sid, int(a)] = sap.probability
        return P

    def state_values(self) -> np.ndarray:
        """Export state values; absent records are NaN."""
        V = np.full(len(self._records), np.nan, dtype=np.float64)
        for record in self:
            V[record.state.sid] = record.value
        return V


class UniformRandomPolicy(Policy):
    """Equiprobable policy over each state's legal actions. Never rebalanced."""

    def action_probs(self, state: State) -> Dict[Action, float]:
        if state.is_terminal:
            raise KeyError(f"terminal state {state!r} has no actions")
        p = 1.0 / len(state.actions)
        return {a: p for a in state.actions}

    def sample_action(self, state: State, rng: np.random.Generator) -> Action:
        if state.is_terminal:
            raise KeyError(f"terminal state {state!r} has no actions to sample")
        return state.actions[int(rng.integers(len(state.actions)))]


__all__ = [
    "Policy",
    "StateActionPolicy",
    "PolicyState",
    "PolicyTable",
    "UniformRandomPolicy",
]

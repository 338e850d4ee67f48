"""Monte Carlo Tree Search over a fixed root state.

The tree is a lazily grown :class:`PolicyTable` whose records hold visit and
win counts. Each simulation walks the tree with its UCB-greedy distribution,
adds one new state, finishes the trajectory with a uniform random rollout and
backs the final reward up the walked path.
"""

from typing import Dict, List, Optional, Tuple

import numpy as np

from ..config import SearchConfig
from ..envs import VisitedStateGuard
from ..episode import EpisodeTruncatedError
from ..logging import get_logger
from ..model import Action, State
from ..policy import Policy, PolicyTable, UniformRandomPolicy
from ..utils import seed_rng
from .core import TrainingResult

logger = get_logger(__name__)


class MonteCarloTreeSearch:
    """
    UCB tree search rooted at a single state.

    Backpropagation updates, for every (state, action) on the path,

        N(s) += 1, N(s, a) += 1, W(s, a) += 1 if reward > 0
        value(s, a) = W(s, a) / N(s, a)

    and then rebalances s greedily over

        UCB(s, a) = W/N + c * sqrt(ln N(s) / N(s, a))

    with untried actions scoring +inf, so a tried action is never preferred
    to an untried one.

    Probabilities only change during backpropagation. If an in-tree
    transition leads back to a state already on the path (a wall bump, a
    two-state cycle), selection keeps repeating it until ``max_depth``
    raises :class:`EpisodeTruncatedError`. Environments with such
    transitions must be wrapped in :class:`VisitedStateGuard`.

    Args:
        env: Environment implementing the ``Env`` contract. Wrap it in
            :class:`VisitedStateGuard` to cut cyclic trajectories.
        root: Non-terminal state the search starts from.
        config: Exploration constant and depth cap.
        rng: Random number generator. If None, uses seed_rng(0).
        rollout_policy: Policy for the simulation phase. Default: uniform.

    Examples:
        >>> from gridlearn.envs import ChainMDP, VisitedStateGuard
        >>> env = VisitedStateGuard(ChainMDP(n_states=4, seed=0))
        >>> search = MonteCarloTreeSearch(env, env.start_state)
        >>> result = search.update_policy(50)
        >>> result.num_episodes
        50
    """

    def __init__(
        self,
        env,
        root: State,
        config: Optional[SearchConfig] = None,
        rng: Optional[np.random.Generator] = None,
        rollout_policy: Optional[Policy] = None,
    ):
        if root.is_terminal:
            raise ValueError(f"cannot search from terminal state {root!r}")
        self.env = env
        self.root = root
        self.config = config or SearchConfig()
        self.rng = rng if rng is not None else seed_rng(0)
        self.rollout_policy = rollout_policy or UniformRandomPolicy()
        self.tree = PolicyTable(env, eager=False)
        self.tree.add_state(root)

    def _step(self, state: State, action: Action, depth: int) -> Tuple[State, float]:
        if self.config.max_depth is not None and depth >= self.config.max_depth:
            raise EpisodeTruncatedError(self.config.max_depth, state)
        return self.env.get_reward(state, action)

    def _select(self, path: List[Tuple[State, Action]]) -> Tuple[State, Optional[float]]:
        """Walk the tree. Returns the first state outside it, or the terminal reward."""
        state = self.root
        while state in self.tree:
            action = self.tree.sample_action(state, self.rng)
            path.append((state, action))
            state, reward = self._step(state, action, len(path) - 1)
            if state.is_terminal:
                return state, reward
        return state, None

    def _simulate(self, state: State, depth: int) -> Tuple[float, int]:
        """Uniform rollout to a terminal state. Returns (final reward, depth)."""
        reward = 0.0
        while not state.is_terminal:
            action = self.rollout_policy.sample_action(state, self.rng)
            state, reward = self._step(state, action, depth)
            depth += 1
        return reward, depth

    def _backpropagate(self, path: List[Tuple[State, Action]], reward: float) -> None:
        win = reward > 0
        while path:
            state, action = path.pop()
            record = self.tree[state]
            record.visits += 1
            sap = record[action]
            sap.visits += 1
            if win:
                sap.wins += 1
            record.rebalance_ucb(self.config.exploration)

    def update_policy(self, n: int) -> TrainingResult:
        """Run ``n`` simulations from the root.

        Args:
            n: Number of simulations (>= 0).

        Returns:
            Training summary; each simulation counts as one episode and its
            return is the backed-up final reward.

        Raises:
            EpisodeTruncatedError: If a trajectory exceeds ``max_depth``.
        """
        if n < 0:
            raise ValueError(f"n must be >= 0, got {n}")
        result = TrainingResult()

        for _ in range(n):
            if isinstance(self.env, VisitedStateGuard):
                self.env.reset()
            path: List[Tuple[State, Action]] = []
            state, reward = self._select(path)
            depth = len(path)
            if reward is None:
                self.tree.add_state(state)
                reward, depth = self._simulate(state, depth)
            self._backpropagate(path, reward)
            result.record(reward, depth)

        logger.debug(
            "mcts: %d simulations, %d tree states, %d steps",
            result.num_episodes,
            len(self.tree),
            result.total_steps,
        )
        return result

    def action_probs(self, state: Optional[State] = None) -> Dict[Action, float]:
        """Tree-policy distribution at ``state`` (default: the root)."""
        return self.tree.action_probs(self.root if state is None else state)

    def best_action(self, state: Optional[State] = None) -> Action:
        """Action with the highest win rate at ``state`` (default: the root)."""
        return self.tree[self.root if state is None else state].greedy_action()


__all__ = ["MonteCarloTreeSearch"]

"""Environment contract and reference grid environments.

The learning core only talks to an environment through :class:`Env`:
``states_plus``, ``states``, ``start_state`` and ``get_reward``. Planning
additionally needs the model capability ``transitions``. Everything else here
(grid geometry, rewards, wind) is fixture material for tests and examples.
"""

from typing import Dict, List, Optional, Sequence, Set, Tuple

from .model import Action, State, StateType
from .utils import seed_rng

Transition = Tuple[State, float, float]

_MOVES: Dict[Action, Tuple[int, int]] = {
    Action.UP: (-1, 0),
    Action.DOWN: (1, 0),
    Action.LEFT: (0, -1),
    Action.RIGHT: (0, 1),
}


class Env:
    """Minimal environment interface for tabular control.

    States carry arena ids ``0 .. n_states - 1``; ``states_plus()`` lists them
    in id order.
    """

    def states_plus(self) -> List[State]:
        """Return every state, terminal ones included, ordered by id."""
        raise NotImplementedError

    def states(self) -> List[State]:
        """Return the non-terminal states (episode start candidates)."""
        return [s for s in self.states_plus() if not s.is_terminal]

    @property
    def n_states(self) -> int:
        return len(self.states_plus())

    @property
    def start_state(self) -> State:
        """Designated start state, for environments that have one."""
        raise NotImplementedError(f"{type(self).__name__} has no designated start state")

    def state(self, sid: int) -> State:
        """Look up a state by id."""
        return self.states_plus()[sid]

    def get_reward(self, state: State, action: Action) -> Tuple[State, float]:
        """Apply one transition.

        Args:
            state: Current non-terminal state.
            action: One of ``state.actions``.

        Returns:
            Tuple of (next_state, reward).
        """
        raise NotImplementedError

    def transitions(self, state: State, action: Action) -> List[Transition]:
        """Full transition model, for planning.

        Returns:
            List of (next_state, probability, reward) with probabilities
            summing to 1.
        """
        raise NotImplementedError(f"{type(self).__name__} exposes no transition model")

    def seed(self, seed: Optional[int]) -> None:
        """Set random seed for stochastic transitions."""
        self.rng = seed_rng(seed)


def _check_action(state: State, action: Action) -> None:
    if state.is_terminal:
        raise KeyError(f"terminal state {state!r} has no actions")
    if action not in state.actions:
        raise KeyError(f"action {action!r} is not legal in {state!r}")


class GridEnv(Env):
    """Rectangular grid of states. State id is ``row * cols + col``.

    Args:
        rows: Number of rows (>= 1).
        cols: Number of columns (>= 1).
        terminals: Cells that are terminal.
        seed: Random seed (grids are deterministic; kept for the interface).
    """

    def __init__(
        self,
        rows: int,
        cols: int,
        terminals: Sequence[Tuple[int, int]] = (),
        seed: Optional[int] = None,
    ):
        if rows < 1 or cols < 1:
            raise ValueError(f"grid must be at least 1x1, got {rows}x{cols}")
        terminal_cells = set(terminals)
        for i, j in terminal_cells:
            if not (0 <= i < rows and 0 <= j < cols):
                raise ValueError(f"terminal cell {(i, j)} is outside the {rows}x{cols} grid")

        self.rows = rows
        self.cols = cols
        self.rng = seed_rng(seed)
        self._states: List[State] = []
        for i in range(rows):
            for j in range(cols):
                sid = i * cols + j
                if (i, j) in terminal_cells:
                    self._states.append(State.terminal(sid, (i, j)))
                else:
                    self._states.append(State(sid, (i, j), StateType.NON_TERMINAL))

    def states_plus(self) -> List[State]:
        return list(self._states)

    @property
    def n_states(self) -> int:
        return len(self._states)

    def state(self, sid: int) -> State:
        return self._states[sid]

    def state_at(self, i: int, j: int) -> State:
        """Return the state in row ``i``, column ``j``."""
        if not (0 <= i < self.rows and 0 <= j < self.cols):
            raise KeyError(f"cell {(i, j)} is outside the {self.rows}x{self.cols} grid")
        return self._states[i * self.cols + j]

    def _clamp(self, i: int, j: int) -> Tuple[int, int]:
        return min(max(i, 0), self.rows - 1), min(max(j, 0), self.cols - 1)

    def next_state(self, state: State, action: Action) -> State:
        _check_action(state, action)
        di, dj = _MOVES[action]
        i, j = state.position
        return self.state_at(*self._clamp(i + di, j + dj))

    def reward(self, state: State, action: Action, next_state: State) -> float:
        raise NotImplementedError

    def get_reward(self, state: State, action: Action) -> Tuple[State, float]:
        ns = self.next_state(state, action)
        return ns, self.reward(state, action, ns)

    def transitions(self, state: State, action: Action) -> List[Transition]:
        ns = self.next_state(state, action)
        return [(ns, 1.0, self.reward(state, action, ns))]


class GridWorld(GridEnv):
    """Grid with two exits in opposite corners.

    Moving into a wall leaves the agent in place and costs ``bump_reward``.

    Args:
        rows: Number of rows.
        cols: Number of columns.
        terminals: Terminal cells. Default: top-left and bottom-right.
        step_reward: Reward for an ordinary move.
        bump_reward: Reward for a move that hits a wall.
        terminal_reward: Reward for entering a terminal cell.
        seed: Random seed.

    Examples:
        >>> env = GridWorld()
        >>> s = env.state_at(0, 1)
        >>> ns, r = env.get_reward(s, Action.LEFT)
        >>> ns.is_terminal, r
        (True, 1.0)
    """

    def __init__(
        self,
        rows: int = 4,
        cols: int = 4,
        terminals: Optional[Sequence[Tuple[int, int]]] = None,
        step_reward: float = -1.0,
        bump_reward: float = -2.0,
        terminal_reward: float = 1.0,
        seed: Optional[int] = None,
    ):
        if terminals is None:
            terminals = ((0, 0), (rows - 1, cols - 1))
        super().__init__(rows, cols, terminals, seed)
        self.step_reward = step_reward
        self.bump_reward = bump_reward
        self.terminal_reward = terminal_reward

    def reward(self, state: State, action: Action, next_state: State) -> float:
        if next_state.is_terminal:
            return self.terminal_reward
        if next_state == state:
            return self.bump_reward
        return self.step_reward


class WindyGrid(GridEnv):
    """Gridworld with an upward crosswind through the middle columns.

    After a move the agent is pushed up by ``wind[column]`` cells, where the
    column is the one it moved into.

    Args:
        rows: Number of rows.
        wind: Upward push per column; its length sets the number of columns.
        start: Start cell.
        goal: Terminal cell.
        step_reward: Reward for a non-terminal move.
        goal_reward: Reward for reaching the goal.
        seed: Random seed.
    """

    def __init__(
        self,
        rows: int = 7,
        wind: Sequence[int] = (0, 0, 0, 1, 1, 1, 2, 2, 1, 0),
        start: Tuple[int, int] = (3, 0),
        goal: Tuple[int, int] = (3, 7),
        step_reward: float = -1.0,
        goal_reward: float = 3.0,
        seed: Optional[int] = None,
    ):
        super().__init__(rows, len(wind), (goal,), seed)
        if any(w < 0 for w in wind):
            raise ValueError(f"wind strengths must be non-negative, got {tuple(wind)}")
        self.wind = tuple(int(w) for w in wind)
        self._start = self.state_at(*start)
        if self._start.is_terminal:
            raise ValueError("start cell must not be the goal")
        self.step_reward = step_reward
        self.goal_reward = goal_reward

    @property
    def start_state(self) -> State:
        return self._start

    def next_state(self, state: State, action: Action) -> State:
        _check_action(state, action)
        di, dj = _MOVES[action]
        i, j = state.position
        i, j = self._clamp(i + di, j + dj)
        return self.state_at(*self._clamp(i - self.wind[j], j))

    def reward(self, state: State, action: Action, next_state: State) -> float:
        return self.goal_reward if next_state.is_terminal else self.step_reward


class ChainMDP(Env):
    """Simple n-state chain with a terminal state at the right end.

    States are 0, 1, ..., n_states-1; state n_states-1 is terminal. LEFT moves
    left with probability ``p_left`` (right otherwise), RIGHT moves right with
    probability ``p_right`` (left otherwise). State 0 bounces back on itself.

    Args:
        n_states: Number of states (>= 2).
        p_left: Probability that LEFT really moves left.
        p_right: Probability that RIGHT really moves right.
        reward_goal: Reward for entering the terminal state.
        reward_step: Reward for every other transition.
        actions: Legal actions of the non-terminal states.
        seed: Random seed for transitions.

    Examples:
        >>> env = ChainMDP(n_states=3, seed=0)
        >>> s = env.state(1)
        >>> env.get_reward(s, Action.RIGHT)
        (State(2, 2, T), 1.0)
    """

    def __init__(
        self,
        n_states: int = 5,
        p_left: float = 1.0,
        p_right: float = 1.0,
        reward_goal: float = 1.0,
        reward_step: float = -0.01,
        actions: Sequence[Action] = (Action.LEFT, Action.RIGHT),
        seed: Optional[int] = None,
    ):
        if n_states < 2:
            raise ValueError(f"n_states must be >= 2, got {n_states}")
        if not (0 <= p_left <= 1):
            raise ValueError(f"p_left must be in [0, 1], got {p_left}")
        if not (0 <= p_right <= 1):
            raise ValueError(f"p_right must be in [0, 1], got {p_right}")
        actions = tuple(actions)
        if not actions or any(a not in (Action.LEFT, Action.RIGHT) for a in actions):
            raise ValueError(f"chain actions must be a non-empty subset of LEFT/RIGHT, got {actions}")

        self.p_left = p_left
        self.p_right = p_right
        self.reward_goal = reward_goal
        self.reward_step = reward_step
        self.rng = seed_rng(seed)
        self._states = [State(i, i, StateType.NON_TERMINAL, actions) for i in range(n_states - 1)]
        self._states.append(State.terminal(n_states - 1, n_states - 1))

    def states_plus(self) -> List[State]:
        return list(self._states)

    @property
    def n_states(self) -> int:
        return len(self._states)

    def state(self, sid: int) -> State:
        return self._states[sid]

    @property
    def start_state(self) -> State:
        return self._states[0]

    def _neighbours(self, state: State) -> Tuple[State, State]:
        left = self._states[max(0, state.sid - 1)]
        right = self._states[min(len(self._states) - 1, state.sid + 1)]
        return left, right

    def _reward(self, next_state: State) -> float:
        return self.reward_goal if next_state.is_terminal else self.reward_step

    def get_reward(self, state: State, action: Action) -> Tuple[State, float]:
        _check_action(state, action)
        left, right = self._neighbours(state)
        if action == Action.LEFT:
            ns = left if self.rng.random() < self.p_left else right
        else:
            ns = right if self.rng.random() < self.p_right else left
        return ns, self._reward(ns)

    def transitions(self, state: State, action: Action) -> List[Transition]:
        _check_action(state, action)
        left, right = self._neighbours(state)
        p = self.p_left if action == Action.LEFT else 1.0 - self.p_right
        outcomes = [(left, p), (right, 1.0 - p)]
        return [(ns, prob, self._reward(ns)) for ns, prob in outcomes if prob > 0.0]


class VisitedStateGuard(Env):
    """Wrap an environment and cut trajectories that revisit a state.

    Every state the wrapped environment is asked to act from is remembered.
    When a transition leads back to a remembered state, the trajectory is
    force-terminated: the guard returns its own terminal sentinel (id -1,
    never part of any table) with ``penalty`` as reward. Memory is cleared on
    every terminal transition and by :meth:`reset`.

    Args:
        env: Environment to wrap.
        penalty: Reward reported for a forced termination.
    """

    def __init__(self, env: Env, penalty: float = -1.0):
        self.env = env
        self.penalty = penalty
        self.sentinel = State.terminal(-1, None)
        self._visited: Set[State] = set()

    def states_plus(self) -> List[State]:
        return self.env.states_plus()

    def states(self) -> List[State]:
        return self.env.states()

    @property
    def n_states(self) -> int:
        return self.env.n_states

    @property
    def start_state(self) -> State:
        return self.env.start_state

    def state(self, sid: int) -> State:
        return self.env.state(sid)

    def reset(self) -> None:
        """Forget the current trajectory."""
        self._visited.clear()

    def get_reward(self, state: State, action: Action) -> Tuple[State, float]:
        self._visited.add(state)
        ns, reward = self.env.get_reward(state, action)
        if ns in self._visited:
            self._visited.clear()
            return self.sentinel, self.penalty
        if ns.is_terminal:
            self._visited.clear()
        return ns, reward

    def seed(self, seed: Optional[int]) -> None:
        self.env.seed(seed)


__all__ = [
    "Env",
    "GridEnv",
    "GridWorld",
    "WindyGrid",
    "ChainMDP",
    "VisitedStateGuard",
    "Transition",
]

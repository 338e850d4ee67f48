"""States and actions of a finite MDP.

A :class:`State` is identified by a small integer id handed out by its
environment. Policy tables are arenas indexed by that id, so equality and
hashing look at the id alone.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum, IntEnum
from typing import Hashable, Tuple


class Action(IntEnum):
    """Grid moves. The integer value is the column in exported Q arrays."""

    UP = 0
    DOWN = 1
    LEFT = 2
    RIGHT = 3


ALL_ACTIONS: Tuple[Action, ...] = tuple(Action)


class StateType(Enum):
    TERMINAL = "terminal"
    NON_TERMINAL = "non_terminal"


@dataclass(frozen=True)
class State:
    """
    Immutable environment state.

    Attributes:
        sid: Stable arena id, unique within the owning environment. Negative
            ids are reserved for sentinel states that never enter a table.
        position: Environment-specific coordinates, for display only.
        kind: Terminal or non-terminal.
        actions: Legal actions. Always empty for terminal states.

    Examples:
        >>> s = State(0, (0, 1))
        >>> s.is_terminal, len(s.actions)
        (False, 4)
        >>> State(0, (9, 9)) == s
        True
    """

    sid: int
    position: Hashable = field(default=None, compare=False)
    kind: StateType = field(default=StateType.NON_TERMINAL, compare=False)
    actions: Tuple[Action, ...] = field(default=ALL_ACTIONS, compare=False)

    def __post_init__(self) -> None:
        if self.kind is StateType.TERMINAL and self.actions:
            # terminal states own no actions
            object.__setattr__(self, "actions", ())
        elif self.kind is StateType.NON_TERMINAL and not self.actions:
            raise ValueError(f"non-terminal state {self.sid} must have legal actions")

    @property
    def is_terminal(self) -> bool:
        return self.kind is StateType.TERMINAL

    @classmethod
    def terminal(cls, sid: int, position: Hashable = None) -> "State":
        """Build a terminal state."""
        return cls(sid, position, StateType.TERMINAL, ())

    def __hash__(self) -> int:
        return hash(self.sid)

    def __repr__(self) -> str:
        tag = "T" if self.is_terminal else "N"
        return f"State({self.sid}, {self.position!r}, {tag})"

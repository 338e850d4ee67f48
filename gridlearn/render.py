"""Text rendering of grid policies and values.

These helpers are for human inspection in examples and notebooks; the
learning and planning code never calls them.
"""

from __future__ import annotations

import sys
from typing import IO, Dict, Optional

from .envs import GridEnv
from .model import Action
from .policy import PolicyTable

_ARROWS: Dict[Action, str] = {
    Action.UP: "^",
    Action.DOWN: "v",
    Action.LEFT: "<",
    Action.RIGHT: ">",
}


def _check_grid(env) -> GridEnv:
    if not isinstance(env, GridEnv):
        raise TypeError(f"rendering needs a GridEnv, got {type(env).__name__}")
    return env


def format_policy(env: GridEnv, table: PolicyTable) -> str:
    """
    Render the in-policy actions of every cell as arrows.

    Terminal cells show ``T`` and cells missing from the table show ``?``.

    Parameters
    ----------
    env:
        Grid environment whose layout is drawn.
    table:
        Policy table to render.

    Returns
    -------
    str
        One line per grid row, cells separated by ``|``.
    """
    env = _check_grid(env)
    cells = []
    for state in env.states_plus():
        if state.is_terminal:
            cells.append("T")
        elif state not in table:
            cells.append("?")
        else:
            cells.append("".join(_ARROWS[a] for a in table[state].in_policy_actions()))
    width = max(len(c) for c in cells)
    lines = []
    for i in range(env.rows):
        row = cells[i * env.cols : (i + 1) * env.cols]
        lines.append("|".join(c.center(width) for c in row))
    return "\n".join(lines)


def format_values(env: GridEnv, table: PolicyTable, precision: int = 2) -> str:
    """
    Render the state values of every cell.

    Parameters
    ----------
    env:
        Grid environment whose layout is drawn.
    table:
        Policy table holding ``PolicyState.value`` estimates.
    precision:
        Digits after the decimal point.

    Returns
    -------
    str
        One line per grid row with right-aligned values.
    """
    env = _check_grid(env)
    cells = []
    for state in env.states_plus():
        if state in table:
            cells.append(f"{table[state].value:.{precision}f}")
        else:
            cells.append("-")
    width = max(len(c) for c in cells)
    lines = []
    for i in range(env.rows):
        row = cells[i * env.cols : (i + 1) * env.cols]
        lines.append(" ".join(c.rjust(width) for c in row))
    return "\n".join(lines)


def print_policy(env: GridEnv, table: PolicyTable, file: Optional[IO[str]] = None) -> None:
    """
    Pretty-print the policy grid to stdout or a file.

    Parameters
    ----------
    env:
        Grid environment.
    table:
        Policy table to render.
    file:
        File-like object to write to. If None, writes to sys.stdout.
    """
    if file is None:
        file = sys.stdout
    print(format_policy(env, table), file=file)


def print_values(
    env: GridEnv,
    table: PolicyTable,
    precision: int = 2,
    file: Optional[IO[str]] = None,
) -> None:
    """Pretty-print the value grid to stdout or a file."""
    if file is None:
        file = sys.stdout
    print(format_values(env, table, precision), file=file)


__all__ = ["format_policy", "format_values", "print_policy", "print_values"]

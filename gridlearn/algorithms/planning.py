"""Dynamic-programming planning with a known transition model.

Requires environments exposing ``transitions(state, action)``. Values live in
the ``PolicyState.value`` of an eager policy table; action values and the
greedy policy live in its ``StateActionPolicy`` records, so planned tables can
be rendered, sampled or refined further by the learning algorithms.
"""

from typing import Optional

from ..config import PlanningConfig
from ..logging import get_logger
from ..model import Action, State
from ..policy import PolicyTable
from .core import PlanningResult

logger = get_logger(__name__)


def _backup(env, table: PolicyTable, state: State, action: Action, gamma: float) -> float:
    """Expected one-step return sum_s' p * (r + gamma * V(s'))."""
    return sum(
        p * (reward + gamma * table[ns].value)
        for ns, p, reward in env.transitions(state, action)
    )


def policy_evaluation(env, table: PolicyTable, config: Optional[PlanningConfig] = None) -> int:
    """Iterative evaluation of the table's current policy.

    Sweeps are synchronous: every state value of a sweep is computed from the
    values of the previous sweep,

        V(s) = sum_a pi(a|s) sum_s' p(s'|s, a) * (r + gamma * V(s'))

    Terminal states keep their value. Evaluation starts from the values
    already stored in the table.

    Args:
        env: Model-capable environment.
        table: Eager policy table.
        config: Discount, tolerance and sweep cap.

    Returns:
        Number of sweeps performed.
    """
    config = config or PlanningConfig()
    records = [r for r in table if not r.state.is_terminal]

    for sweep in range(1, config.max_sweeps + 1):
        new_values = [
            sum(
                sap.probability * _backup(env, table, record.state, a, config.gamma)
                for a, sap in record.actions.items()
                if sap.in_policy
            )
            for record in records
        ]
        delta = 0.0
        for record, v in zip(records, new_values):
            delta = max(delta, abs(v - record.value))
            record.value = v
        if delta < config.theta:
            logger.debug("policy_evaluation converged after %d sweeps", sweep)
            return sweep

    logger.warning(
        "policy_evaluation did not converge within %d sweeps (last delta %.3g)",
        config.max_sweeps,
        delta,
    )
    return config.max_sweeps


def policy_improvement(env, table: PolicyTable, config: Optional[PlanningConfig] = None) -> bool:
    """Greedy improvement from the current state values.

    Writes q(s, a) = sum_s' p * (r + gamma * V(s')) into every action record,
    rebalances greedily and compares the in-policy action sets.

    Returns:
        True if no state's greedy action set changed.
    """
    config = config or PlanningConfig()
    stable = True
    for record in table:
        if record.state.is_terminal:
            continue
        before = set(record.in_policy_actions())
        for a, sap in record.actions.items():
            sap.value = _backup(env, table, record.state, a, config.gamma)
        record.rebalance(0.0)
        if set(record.in_policy_actions()) != before:
            stable = False
    return stable


def policy_iteration(
    env, table: PolicyTable, config: Optional[PlanningConfig] = None
) -> PlanningResult:
    """Alternate evaluation and greedy improvement until the policy is stable.

    Args:
        env: Model-capable environment.
        table: Eager policy table, usually starting from the uniform policy.
        config: Planning parameters.

    Returns:
        PlanningResult with the number of rounds and sweeps.

    Examples:
        >>> from gridlearn.envs import GridWorld
        >>> env = GridWorld()
        >>> table = PolicyTable(env)
        >>> policy_iteration(env, table).stable
        True
        >>> table[env.state_at(0, 1)].greedy_action()
        <Action.LEFT: 2>
    """
    config = config or PlanningConfig()
    sweeps = 0
    for iteration in range(1, config.max_iterations + 1):
        sweeps += policy_evaluation(env, table, config)
        if policy_improvement(env, table, config):
            logger.info(
                "policy_iteration converged: %d iterations, %d sweeps", iteration, sweeps
            )
            return PlanningResult(iterations=iteration, sweeps=sweeps, stable=True)

    logger.warning(
        "policy_iteration stopped after %d iterations without a stable policy",
        config.max_iterations,
    )
    return PlanningResult(iterations=config.max_iterations, sweeps=sweeps, stable=False)


def value_iteration(
    env, table: PolicyTable, config: Optional[PlanningConfig] = None
) -> PlanningResult:
    """Bellman optimality sweeps followed by one greedy improvement.

        V(s) = max_a sum_s' p(s'|s, a) * (r + gamma * V(s'))

    Returns:
        PlanningResult with ``iterations == 1``; ``stable`` reports whether
        the sweeps converged below ``theta``.
    """
    config = config or PlanningConfig()
    records = [r for r in table if not r.state.is_terminal]
    converged = False
    sweeps = 0

    while sweeps < config.max_sweeps:
        sweeps += 1
        new_values = [
            max(_backup(env, table, record.state, a, config.gamma) for a in record.actions)
            for record in records
        ]
        delta = 0.0
        for record, v in zip(records, new_values):
            delta = max(delta, abs(v - record.value))
            record.value = v
        if delta < config.theta:
            converged = True
            break

    policy_improvement(env, table, config)
    if converged:
        logger.info("value_iteration converged after %d sweeps", sweeps)
    else:
        logger.warning("value_iteration did not converge within %d sweeps", config.max_sweeps)
    return PlanningResult(iterations=1, sweeps=sweeps, stable=converged)


__all__ = ["policy_evaluation", "policy_improvement", "policy_iteration", "value_iteration"]

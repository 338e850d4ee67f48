"""Learning, search and planning algorithms over policy tables.

- Monte Carlo: prediction, exploring starts, on-policy and off-policy control
- Temporal difference: SARSA, Q-learning, Expected SARSA, n-step SARSA
- Monte Carlo Tree Search with UCB selection
- Dynamic programming: policy evaluation/improvement/iteration, value iteration

All algorithms are deterministic when RNG seeds are fixed and follow standard
textbook formulations (Sutton & Barto, 2018).
"""

from .core import PlanningResult, TrainingResult
from .mcts import MonteCarloTreeSearch
from .montecarlo import (
    mc_control_off_policy,
    mc_control_on_policy,
    mc_exploring_starts,
    mc_prediction,
)
from .planning import (
    policy_evaluation,
    policy_improvement,
    policy_iteration,
    value_iteration,
)
from .temporal import TDMethod, n_step_sarsa, td_control

__all__ = [
    # Results
    "TrainingResult",
    "PlanningResult",
    # Monte Carlo
    "mc_prediction",
    "mc_exploring_starts",
    "mc_control_on_policy",
    "mc_control_off_policy",
    # Temporal difference
    "TDMethod",
    "td_control",
    "n_step_sarsa",
    # Tree search
    "MonteCarloTreeSearch",
    # Planning
    "policy_evaluation",
    "policy_improvement",
    "policy_iteration",
    "value_iteration",
]

"""gridlearn - tabular reinforcement learning control over finite grid MDPs."""

__version__ = "0.1.0"

# Algorithms
from .algorithms import (
    MonteCarloTreeSearch,
    PlanningResult,
    TDMethod,
    TrainingResult,
    mc_control_off_policy,
    mc_control_on_policy,
    mc_exploring_starts,
    mc_prediction,
    n_step_sarsa,
    policy_evaluation,
    policy_improvement,
    policy_iteration,
    td_control,
    value_iteration,
)
from .bank import ReturnBank

# Configuration
from .config import LearningConfig, PlanningConfig, SearchConfig

# Environments
from .envs import ChainMDP, Env, GridEnv, GridWorld, VisitedStateGuard, WindyGrid
from .episode import EpisodeTruncatedError, Step, generate_episode

# Logging
from .logging import configure_logging, get_logger, set_log_level
from .model import ALL_ACTIONS, Action, State, StateType
from .policy import (
    Policy,
    PolicyState,
    PolicyTable,
    StateActionPolicy,
    UniformRandomPolicy,
)
from .render import format_policy, format_values, print_policy, print_values
from .utils import discounted_returns, evaluate_policy, greedy_policy_from_Q, seed_rng

__all__ = [
    "__version__",
    # Model
    "Action",
    "ALL_ACTIONS",
    "State",
    "StateType",
    # Environments
    "Env",
    "GridEnv",
    "GridWorld",
    "WindyGrid",
    "ChainMDP",
    "VisitedStateGuard",
    # Policies
    "Policy",
    "StateActionPolicy",
    "PolicyState",
    "PolicyTable",
    "UniformRandomPolicy",
    # Episodes
    "Step",
    "EpisodeTruncatedError",
    "generate_episode",
    "ReturnBank",
    # Configuration
    "LearningConfig",
    "SearchConfig",
    "PlanningConfig",
    # Algorithms
    "TrainingResult",
    "PlanningResult",
    "mc_prediction",
    "mc_exploring_starts",
    "mc_control_on_policy",
    "mc_control_off_policy",
    "TDMethod",
    "td_control",
    "n_step_sarsa",
    "MonteCarloTreeSearch",
    "policy_evaluation",
    "policy_improvement",
    "policy_iteration",
    "value_iteration",
    # Rendering
    "format_policy",
    "format_values",
    "print_policy",
    "print_values",
    # Utilities
    "seed_rng",
    "discounted_returns",
    "greedy_policy_from_Q",
    "evaluate_policy",
    # Logging
    "get_logger",
    "set_log_level",
    "configure_logging",
]

"""
Example: Tabular control on the 4x4 two-exit gridworld

This example runs every control method of gridlearn on the same small grid
and prints the resulting greedy policies. Dynamic programming gives the
reference answer; the sampling-based methods should agree with it on most
cells.
"""

from gridlearn import (
    GridWorld,
    LearningConfig,
    PolicyTable,
    TDMethod,
    mc_control_off_policy,
    mc_control_on_policy,
    mc_exploring_starts,
    n_step_sarsa,
    policy_iteration,
    print_policy,
    print_values,
    seed_rng,
    td_control,
)


def header(title):
    print("=" * 60)
    print(title)
    print("=" * 60)


def example_planning(env):
    """Example: Policy iteration with the known model."""
    header("Example 1: Policy Iteration")
    table = PolicyTable(env)
    result = policy_iteration(env, table)
    print(f"Stable: {result.stable} after {result.iterations} iterations "
          f"({result.sweeps} sweeps)")
    print_values(env, table)
    print()
    print_policy(env, table)
    print()


def example_monte_carlo(env):
    """Example: Monte Carlo control, on- and off-policy."""
    header("Example 2: Monte Carlo Control")
    config = LearningConfig(gamma=1.0, epsilon=0.1)

    table = PolicyTable(env)
    mc_exploring_starts(env, table, num_episodes=500, config=config, rng=seed_rng(0))
    print("Exploring starts:")
    print_policy(env, table)
    print()

    table = PolicyTable(env)
    result = mc_control_on_policy(env, table, num_episodes=1000, config=config, rng=seed_rng(1))
    print(f"On-policy (mean return {result.mean_return:.2f}):")
    print_policy(env, table)
    print()

    target = PolicyTable(env)
    behavior = PolicyTable(env)
    result = mc_control_off_policy(
        env, target, behavior, num_episodes=1000, config=config, rng=seed_rng(2)
    )
    print(f"Off-policy ({result.early_stops} truncated backward passes):")
    print_policy(env, target)
    print()


def example_temporal_difference(env):
    """Example: One-step and n-step TD control."""
    header("Example 3: Temporal-Difference Control")
    config = LearningConfig(gamma=1.0, alpha=0.5, epsilon=0.1)

    for method in TDMethod:
        table = PolicyTable(env)
        result = td_control(env, table, 500, method=method, config=config, rng=seed_rng(3))
        table.rebalance_all(0.0)
        print(f"{method.value} (mean return {result.mean_return:.2f}):")
        print_policy(env, table)
        print()

    table = PolicyTable(env)
    n_step_sarsa(env, table, 500, n=3, config=config, rng=seed_rng(4))
    table.rebalance_all(0.0)
    print("3-step SARSA:")
    print_policy(env, table)
    print()


if __name__ == "__main__":
    env = GridWorld()
    example_planning(env)
    example_monte_carlo(env)
    example_temporal_difference(env)
    print("All gridworld examples completed")

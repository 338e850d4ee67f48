"""
Example: Tree search and TD control on the windy gridworld

The windy grid pushes the agent upward in its middle columns, so the
shortest path to the goal is not a straight line. SARSA learns it from
experience; tree search evaluates moves from the start state only.
"""

from gridlearn import (
    LearningConfig,
    MonteCarloTreeSearch,
    PolicyTable,
    SearchConfig,
    VisitedStateGuard,
    WindyGrid,
    evaluate_policy,
    print_policy,
    seed_rng,
    td_control,
)


def example_sarsa(env):
    """Example: SARSA on the windy grid."""
    print("=" * 60)
    print("Example 1: SARSA on the Windy Gridworld")
    print("=" * 60)

    table = PolicyTable(env)
    config = LearningConfig(gamma=1.0, alpha=0.5, epsilon=0.1, max_episode_steps=50_000)
    result = td_control(env, table, num_episodes=300, config=config, rng=seed_rng(0))
    print(f"Average episode length: {result.total_steps / result.num_episodes:.1f} steps")

    table.rebalance_all(0.0)
    avg_return, _ = evaluate_policy(
        env, lambda s: table[s].greedy_action(), num_episodes=1, rng=seed_rng(0)
    )
    print(f"Greedy return from start: {avg_return:.1f}")
    print_policy(env, table)
    print()


def example_tree_search(env):
    """Example: Monte Carlo Tree Search from the start state."""
    print("=" * 60)
    print("Example 2: Monte Carlo Tree Search")
    print("=" * 60)

    guarded = VisitedStateGuard(env)
    search = MonteCarloTreeSearch(
        guarded, env.start_state, config=SearchConfig(exploration=0.5), rng=seed_rng(1)
    )
    result = search.update_policy(2000)
    wins = sum(1 for r in result.episode_returns if r > 0)
    print(f"Simulations: {result.num_episodes}, reached goal: {wins}")
    print(f"Tree size: {len(search.tree)} states")
    for action, p in search.action_probs().items():
        print(f"  {action.name:<5} P={p:.2f}")
    print(f"Best first move: {search.best_action().name}")
    print()


if __name__ == "__main__":
    env = WindyGrid()
    example_sarsa(env)
    example_tree_search(env)
    print("All windy gridworld examples completed")

"""Tests for Monte Carlo Tree Search."""

import pytest

from gridlearn.algorithms.mcts import MonteCarloTreeSearch
from gridlearn.config import SearchConfig
from gridlearn.envs import ChainMDP, GridWorld, VisitedStateGuard
from gridlearn.episode import EpisodeTruncatedError
from gridlearn.model import Action
from gridlearn.utils import seed_rng


class TestMonteCarloTreeSearch:
    """Tests for MonteCarloTreeSearch."""

    def test_untried_actions_first(self, gridworld):
        """Test that the root tries every action before repeating one."""
        root = gridworld.state_at(1, 1)
        search = MonteCarloTreeSearch(gridworld, root, rng=seed_rng(0))
        record = search.tree[root]

        for n in range(1, 4):
            search.update_policy(1)
            untried = {a for a, sap in record.actions.items() if sap.visits == 0}
            assert len(untried) == 4 - n
            assert set(record.in_policy_actions()) == untried

        search.update_policy(1)
        assert all(sap.visits == 1 for sap in record.actions.values())

    def test_backpropagated_counts(self, gridworld):
        """Test N(s), N(s, a), W(s, a) and value = W / N at the root."""
        env = VisitedStateGuard(gridworld)
        root = gridworld.state_at(1, 2)
        search = MonteCarloTreeSearch(env, root, rng=seed_rng(0))
        result = search.update_policy(60)

        record = search.tree[root]
        # the guard cuts any path that comes back to the root
        assert record.visits == 60
        assert sum(sap.visits for sap in record.actions.values()) == 60
        for sap in record.actions.values():
            assert sap.wins <= sap.visits
            assert sap.value == pytest.approx(sap.wins / sap.visits)
        # an exit pays +1, a forced termination pays the guard penalty
        assert set(result.episode_returns) <= {1.0, -1.0}
        wins = sum(sap.wins for sap in record.actions.values())
        assert wins == sum(1 for r in result.episode_returns if r > 0)

    def test_tree_grows_one_state_per_simulation(self, gridworld):
        """Test expansion of at most one state per simulation."""
        env = VisitedStateGuard(gridworld)
        search = MonteCarloTreeSearch(env, gridworld.state_at(2, 1), rng=seed_rng(0))
        for n in range(1, 30):
            search.update_policy(1)
            assert len(search.tree) <= n + 1
        assert len(search.tree) > 1

    def test_prefers_winning_move(self):
        """Test that the guarded chain learns to move away from the wall."""
        env = VisitedStateGuard(ChainMDP(n_states=3, seed=0))
        search = MonteCarloTreeSearch(env, env.state(0), rng=seed_rng(0))
        search.update_policy(200)

        record = search.tree[env.state(0)]
        assert record[Action.LEFT].wins == 0
        assert record[Action.RIGHT].wins > 0
        assert search.best_action() == Action.RIGHT
        assert search.action_probs() == {Action.LEFT: 0.0, Action.RIGHT: 1.0}

    def test_ucb_distribution_is_greedy(self, gridworld):
        """Test that root probabilities split evenly over the UCB maximizers."""
        search = MonteCarloTreeSearch(
            VisitedStateGuard(gridworld),
            gridworld.state_at(1, 1),
            SearchConfig(exploration=1.0),
            seed_rng(0),
        )
        search.update_policy(25)
        probs = search.action_probs()
        assert sum(probs.values()) == pytest.approx(1.0)
        k = sum(1 for p in probs.values() if p > 0)
        assert all(p in (0.0, pytest.approx(1.0 / k)) for p in probs.values())

    def test_depth_cap(self):
        """Test that a trajectory longer than max_depth raises."""
        env = ChainMDP(n_states=3, actions=(Action.LEFT,), seed=0)
        search = MonteCarloTreeSearch(env, env.state(1), SearchConfig(max_depth=20), seed_rng(0))
        with pytest.raises(EpisodeTruncatedError) as excinfo:
            search.update_policy(1)
        assert excinfo.value.max_steps == 20

    def test_unguarded_self_loop_hits_depth_cap(self):
        """Test that an untried in-tree self-loop is repeated until the cap."""
        env = ChainMDP(n_states=4, seed=0)
        search = MonteCarloTreeSearch(env, env.start_state, rng=seed_rng(0))
        with pytest.raises(EpisodeTruncatedError):
            search.update_policy(50)

    def test_guarded_self_loop_completes(self):
        """Test that the same search finishes once the chain is guarded."""
        env = VisitedStateGuard(ChainMDP(n_states=4, seed=0))
        search = MonteCarloTreeSearch(env, env.start_state, rng=seed_rng(0))
        result = search.update_policy(50)
        assert result.num_episodes == 50
        assert search.tree[env.start_state].visits == 50

    def test_terminal_root_rejected(self, gridworld):
        """Test ValueError for a terminal root."""
        with pytest.raises(ValueError):
            MonteCarloTreeSearch(gridworld, gridworld.state_at(0, 0))

    def test_negative_simulations_rejected(self, gridworld):
        """Test ValueError for n < 0."""
        search = MonteCarloTreeSearch(gridworld, gridworld.state_at(1, 1))
        with pytest.raises(ValueError):
            search.update_policy(-1)

    def test_deterministic_under_seed(self):
        """Test reproducibility."""
        grid = GridWorld(rows=5, cols=5)
        root = grid.state_at(2, 2)
        counts = []
        for _ in range(2):
            search = MonteCarloTreeSearch(VisitedStateGuard(grid), root, rng=seed_rng(3))
            search.update_policy(40)
            counts.append({a: (s.visits, s.wins) for a, s in search.tree[root].actions.items()})
        assert counts[0] == counts[1]

"""Tests for Monte Carlo prediction and control."""

import numpy as np
import pytest

from gridlearn.algorithms.montecarlo import (
    mc_control_off_policy,
    mc_control_on_policy,
    mc_exploring_starts,
    mc_prediction,
)
from gridlearn.config import LearningConfig
from gridlearn.envs import ChainMDP, GridWorld
from gridlearn.episode import EpisodeTruncatedError, generate_episode
from gridlearn.model import Action
from gridlearn.policy import PolicyTable
from gridlearn.utils import evaluate_policy, seed_rng


def neighbours_of_exits(env):
    """Cells next to a terminal corner and the move that enters it."""
    return {
        env.state_at(0, 1): Action.LEFT,
        env.state_at(1, 0): Action.UP,
        env.state_at(3, 2): Action.RIGHT,
        env.state_at(2, 3): Action.DOWN,
    }


class TestMonteCarloPrediction:
    """Tests for first-visit prediction."""

    def test_two_state_chain(self):
        """Test convergence to hand-computed values under a uniform policy.

        V(0) = -1 + (V(0) + V(1)) / 2 and V(1) = -1 + V(0) / 2 give
        V(0) = -6, V(1) = -4.
        """
        env = ChainMDP(n_states=3, reward_goal=-1.0, reward_step=-1.0, seed=0)
        table = PolicyTable(env)
        mc_prediction(env, table, num_episodes=5000, config=LearningConfig(gamma=1.0), rng=seed_rng(0))

        assert table[env.state(0)].value == pytest.approx(-6.0, abs=0.5)
        assert table[env.state(1)].value == pytest.approx(-4.0, abs=0.5)

    def test_first_visit_counts(self):
        """Test that a state counts at most once per episode."""
        env = ChainMDP(n_states=4, seed=0)
        table = PolicyTable(env)
        result = mc_prediction(env, table, num_episodes=100, rng=seed_rng(1))

        for s in env.states():
            assert 0 < table[s].visits <= 100
        assert sum(table[s].visits for s in env.states()) < result.total_steps

    def test_policy_unchanged(self, gridworld):
        """Test that prediction leaves probabilities alone."""
        table = PolicyTable(gridworld)
        before = table.probabilities()
        mc_prediction(gridworld, table, num_episodes=20, rng=seed_rng(0))
        np.testing.assert_array_equal(table.probabilities(), before)

    def test_estimates_accumulate_across_calls(self):
        """Test that a second call continues the running means."""
        env = ChainMDP(n_states=3, seed=0)
        table = PolicyTable(env)
        mc_prediction(env, table, num_episodes=10, rng=seed_rng(0))
        first = sum(table[s].visits for s in env.states())
        mc_prediction(env, table, num_episodes=10, rng=seed_rng(1))
        assert sum(table[s].visits for s in env.states()) > first

    def test_result(self, gridworld):
        """Test the training summary."""
        result = mc_prediction(gridworld, PolicyTable(gridworld), num_episodes=7, rng=seed_rng(0))
        assert result.num_episodes == 7
        assert len(result.episode_returns) == 7
        assert result.total_steps >= 7
        assert result.early_stops == 0

    def test_negative_episodes_rejected(self, gridworld):
        """Test ValueError for a negative episode count."""
        with pytest.raises(ValueError):
            mc_prediction(gridworld, PolicyTable(gridworld), num_episodes=-1)


class TestExploringStarts:
    """Tests for Monte Carlo control with exploring starts."""

    def test_greedy_after_batch(self, gridworld):
        """Test that cells next to an exit learn to step into it."""
        table = PolicyTable(gridworld)
        mc_exploring_starts(gridworld, table, num_episodes=2000, rng=seed_rng(0))

        for state, action in neighbours_of_exits(gridworld).items():
            assert table[state][action].value == 1.0
            assert table[state].in_policy_actions() == [action]

    def test_all_states_greedy(self, gridworld):
        """Test that every non-terminal state ends up greedy."""
        table = PolicyTable(gridworld)
        mc_exploring_starts(gridworld, table, num_episodes=200, rng=seed_rng(0))
        for s in gridworld.states():
            probs = list(table[s].probabilities().values())
            assert sum(probs) == pytest.approx(1.0)
            k = len(table[s].in_policy_actions())
            assert all(p in (0.0, pytest.approx(1.0 / k)) for p in probs)


class TestOnPolicyControl:
    """Tests for on-policy first-visit control."""

    def test_chain_learns_right(self):
        """Test that the greedy policy walks to the goal."""
        env = ChainMDP(n_states=5, seed=0)
        table = PolicyTable(env)
        config = LearningConfig(gamma=0.9, epsilon=0.1)
        mc_control_on_policy(env, table, num_episodes=500, config=config, rng=seed_rng(0))

        for s in env.states():
            assert table[s].greedy_action() == Action.RIGHT
        avg_return, _ = evaluate_policy(
            env, lambda s: table[s].greedy_action(), num_episodes=5, rng=seed_rng(0)
        )
        assert avg_return == pytest.approx(0.97)

    def test_policy_stays_soft(self, gridworld):
        """Test that visited states keep epsilon / |A| on every action."""
        table = PolicyTable(gridworld)
        config = LearningConfig(epsilon=0.2)
        mc_control_on_policy(gridworld, table, num_episodes=100, config=config, rng=seed_rng(0))
        for s in gridworld.states():
            probs = np.array(list(table[s].probabilities().values()))
            assert probs.sum() == pytest.approx(1.0)
            assert probs.min() >= 0.05 - 1e-12

    def test_truncation_propagates(self):
        """Test that a non-terminating episode raises."""
        env = ChainMDP(n_states=3, actions=(Action.LEFT,), seed=0)
        with pytest.raises(EpisodeTruncatedError):
            mc_control_on_policy(
                env,
                PolicyTable(env),
                num_episodes=1,
                config=LearningConfig(max_episode_steps=50),
                rng=seed_rng(0),
            )


class TestOffPolicyControl:
    """Tests for off-policy every-visit control."""

    def test_weight_stays_one_for_identical_policies(self):
        """Test that C equals N when target and behavior coincide."""
        env = ChainMDP(n_states=4, actions=(Action.RIGHT,), seed=0)
        target = PolicyTable(env)
        behavior = PolicyTable(env)
        result = mc_control_off_policy(env, target, behavior, num_episodes=50, rng=seed_rng(0))

        assert result.early_stops == 0
        for s in env.states():
            sap = target[s][Action.RIGHT]
            assert sap.visits > 0
            assert sap.weight_sum == sap.visits
        assert target[env.state(0)][Action.RIGHT].value == pytest.approx(0.98)
        assert target[env.state(2)][Action.RIGHT].value == pytest.approx(1.0)

    def test_weight_stays_one_for_identical_greedy_tables(self):
        """Test C == N when both tables are the same greedy two-action policy."""
        env = ChainMDP(n_states=4, seed=0)
        target = PolicyTable(env)
        behavior = PolicyTable(env)
        for table in (target, behavior):
            for s in env.states():
                table[s][Action.RIGHT].value = 1.0
            table.rebalance_all(0.0)

        result = mc_control_off_policy(env, target, behavior, num_episodes=50, rng=seed_rng(0))

        assert result.early_stops == 0
        for s in env.states():
            right = target[s][Action.RIGHT]
            assert right.visits > 0
            assert right.weight_sum == right.visits
            assert target[s][Action.LEFT].visits == 0
            assert target[s].in_policy_actions() == [Action.RIGHT]
        assert target[env.state(0)][Action.RIGHT].value == pytest.approx(0.98)
        assert target[env.state(1)][Action.RIGHT].value == pytest.approx(0.99)

    @staticmethod
    def _two_step_seed(env, behavior):
        """First seed whose behavior episode on ``env`` has exactly two steps."""
        for seed in range(500):
            episode = list(generate_episode(env, behavior, seed_rng(seed)))
            if len(episode) == 2:
                return seed, episode
        pytest.fail("no two-step episode found")

    def test_importance_weight_recurrence(self, gridworld):
        """Test C(s, a) += W with W = 1 / b(a|s) carried to the earlier step."""
        behavior = PolicyTable(gridworld)
        seed, episode = self._two_step_seed(gridworld, behavior)
        (s0, a0, r0), (s1, a1, r1) = episode
        assert r1 == 1.0

        target = PolicyTable(gridworld)
        result = mc_control_off_policy(gridworld, target, behavior, 1, rng=seed_rng(seed))

        # last step: C = 1, Q = G = 1 is the unique max, so pi(a1|s1) = 1
        assert target[s1][a1].weight_sum == 1.0
        assert target[s1][a1].value == pytest.approx(1.0)
        assert target[s1].in_policy_actions() == [a1]
        # W = 1 * 1 / 0.25 reaches the first step
        assert target[s0][a0].weight_sum == pytest.approx(4.0)
        assert target[s0][a0].value == pytest.approx(r0 + 1.0)
        assert target[s0][a0].visits == 1
        assert result.early_stops == 0

    def test_diverging_step_stops_pass(self, gridworld):
        """Test that a non-greedy action ends the pass before earlier steps."""
        behavior = PolicyTable(gridworld)
        seed, episode = self._two_step_seed(gridworld, behavior)
        (s0, a0, _), (s1, a1, _) = episode

        target = PolicyTable(gridworld)
        other = next(a for a in s1.actions if a != a1)
        target[s1][other].value = 100.0
        result = mc_control_off_policy(gridworld, target, behavior, 1, rng=seed_rng(seed))

        # the last step is still updated before the policy check
        assert target[s1][a1].weight_sum == 1.0
        assert target[s1][a1].visits == 1
        assert target[s1].in_policy_actions() == [other]
        assert target[s0][a0].weight_sum == 0.0
        assert target[s0][a0].visits == 0
        assert result.early_stops == 1

    def test_learns_exit_moves(self, gridworld):
        """Test that the greedy target steps into adjacent exits."""
        target = PolicyTable(gridworld)
        behavior = PolicyTable(gridworld)
        result = mc_control_off_policy(
            gridworld, target, behavior, num_episodes=2000, rng=seed_rng(0)
        )

        assert result.early_stops > 0
        for state, action in neighbours_of_exits(gridworld).items():
            assert target[state].in_policy_actions() == [action]

    def test_behavior_untouched(self, gridworld):
        """Test that the behavior table is not modified."""
        target = PolicyTable(gridworld)
        behavior = PolicyTable(gridworld)
        mc_control_off_policy(gridworld, target, behavior, num_episodes=50, rng=seed_rng(0))
        assert np.all(behavior.probabilities()[[s.sid for s in gridworld.states()]] == 0.25)
        assert all(sap.visits == 0 for r in behavior for sap in r.actions.values())

    def test_weights_reset_at_start(self, gridworld):
        """Test that cumulative weights are zeroed on every call."""
        target = PolicyTable(gridworld)
        target[gridworld.state_at(1, 1)][Action.UP].weight_sum = 42.0
        mc_control_off_policy(gridworld, target, PolicyTable(gridworld), 0, rng=seed_rng(0))
        assert target[gridworld.state_at(1, 1)][Action.UP].weight_sum == 0.0

    def test_deterministic_under_seed(self, gridworld):
        """Test reproducibility."""
        tables = []
        for _ in range(2):
            target = PolicyTable(gridworld)
            mc_control_off_policy(gridworld, target, PolicyTable(gridworld), 100, rng=seed_rng(5))
            tables.append(target.q_values())
        np.testing.assert_array_equal(tables[0], tables[1])

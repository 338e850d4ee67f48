"""Tests for configuration objects."""

import dataclasses

import pytest

from gridlearn.config import LearningConfig, PlanningConfig, SearchConfig


class TestLearningConfig:
    """Tests for LearningConfig."""

    def test_defaults(self):
        """Test default hyperparameters."""
        config = LearningConfig()
        assert config.gamma == 1.0
        assert config.alpha == 0.5
        assert config.epsilon == 0.2
        assert config.max_episode_steps == 10_000

    def test_frozen(self):
        """Test immutability."""
        with pytest.raises(dataclasses.FrozenInstanceError):
            LearningConfig().gamma = 0.5

    @pytest.mark.parametrize(
        "kwargs",
        [
            {"gamma": -0.1},
            {"gamma": 1.1},
            {"epsilon": -0.5},
            {"epsilon": 2.0},
            {"alpha": 0.0},
            {"max_episode_steps": 0},
        ],
    )
    def test_invalid(self, kwargs):
        """Test __post_init__ validation."""
        with pytest.raises(ValueError):
            LearningConfig(**kwargs)

    def test_uncapped(self):
        """Test that the episode cap can be disabled."""
        assert LearningConfig(max_episode_steps=None).max_episode_steps is None


class TestSearchConfig:
    """Tests for SearchConfig."""

    def test_defaults(self):
        """Test default exploration constant."""
        assert SearchConfig().exploration == 0.01

    def test_invalid(self):
        """Test validation."""
        with pytest.raises(ValueError):
            SearchConfig(exploration=-1.0)
        with pytest.raises(ValueError):
            SearchConfig(max_depth=0)


class TestPlanningConfig:
    """Tests for PlanningConfig."""

    @pytest.mark.parametrize(
        "kwargs",
        [{"gamma": 2.0}, {"theta": 0.0}, {"max_sweeps": 0}, {"max_iterations": 0}],
    )
    def test_invalid(self, kwargs):
        """Test validation."""
        with pytest.raises(ValueError):
            PlanningConfig(**kwargs)

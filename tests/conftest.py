"""Pytest configuration and shared fixtures for gridlearn tests.

This module provides:
- Deterministic RNG fixtures for numpy
- Small reference environments shared across test modules
"""

import os

import numpy as np
import pytest

from gridlearn.envs import ChainMDP, GridWorld


@pytest.fixture(scope="function")
def rng() -> np.random.Generator:
    """Provide a deterministic numpy RNG for tests.

    Uses seed from TEST_RNG_SEED environment variable (default: 0).
    This ensures tests are reproducible while allowing override for debugging.

    Returns:
        A seeded numpy.random.Generator instance.
    """
    seed = int(os.environ.get("TEST_RNG_SEED", "0"))
    return np.random.default_rng(seed)


@pytest.fixture(scope="function")
def gridworld() -> GridWorld:
    """4x4 grid with exits in the top-left and bottom-right corners."""
    return GridWorld()


@pytest.fixture(scope="function")
def chain() -> ChainMDP:
    """Deterministic 5-state chain."""
    return ChainMDP(n_states=5, seed=0)

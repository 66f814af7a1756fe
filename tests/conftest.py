"""
Pytest configuration and shared fixtures for the ACC-UCB scheduler tests.
"""

import sys
from pathlib import Path

import pytest

# Add project root to path
PROJECT_ROOT = Path(__file__).parent.parent
sys.path.insert(0, str(PROJECT_ROOT))

from accucb.bandit import BanditConfig, CallableRewardOracle, RewardValue  # noqa: E402


@pytest.fixture
def make_config():
    """Factory for a small valid config; keyword arguments override defaults."""

    def _make(**overrides):
        params = dict(rounds=10, super_arm_size=2, v1=1.0, v2=0.0, rho=0.5, n_children=2, seed=0)
        params.update(overrides)
        return BanditConfig(**params)

    return _make


@pytest.fixture
def constant_oracle():
    """Oracle that always returns the same reward."""

    def _make(value=0.8, coverage=None):
        return CallableRewardOracle(lambda context, round_hint: RewardValue(value, coverage))

    return _make

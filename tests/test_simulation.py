"""
Tests for the simulated arm source, the Bernoulli oracle and per-arm records.
"""

import dataclasses

import numpy as np

from accucb.bandit import Arm, BernoulliRewardOracle, RewardValue, UniformArmSource
from accucb.bandit.arms import ArmRecord
from accucb.utils.seed import make_rng


class TestUniformArmSource:
    def test_contexts_inside_box(self):
        source = UniformArmSource(make_rng(0), n_arms=5, dim=3, lower=[0.0, 1.0, 2.0], upper=[1.0, 2.0, 3.0])
        arms = source(1)
        assert [a.arm_id for a in arms] == [0, 1, 2, 3, 4]
        ctx = np.stack([a.context for a in arms])
        assert ctx.shape == (5, 3)
        assert (ctx >= [0.0, 1.0, 2.0]).all() and (ctx <= [1.0, 2.0, 3.0]).all()

    def test_arm_carries_only_core_fields(self):
        names = [f.name for f in dataclasses.fields(Arm)]
        assert names == ["arm_id", "context", "matched_leaf"]


class TestBernoulliRewardOracle:
    def test_mean_fn_drives_rewards(self):
        always = BernoulliRewardOracle(make_rng(1), mean_fn=lambda c: 1.0)
        never = BernoulliRewardOracle(make_rng(1), mean_fn=lambda c: 0.0)
        ctx = np.zeros(2)
        assert all(always.evaluate(ctx, t) == RewardValue(1.0) for t in range(20))
        assert all(never.evaluate(ctx, t) == RewardValue(0.0) for t in range(20))

    def test_default_mean_is_context_average(self):
        oracle = BernoulliRewardOracle(make_rng(2))
        draws = [oracle.evaluate(np.array([0.2, 0.4]), t).value for t in range(4000)]
        assert abs(np.mean(draws) - 0.3) < 0.05


class TestArmRecord:
    def test_running_mean_without_history(self):
        rec = ArmRecord()
        for r in (1.0, 0.0, 0.5):
            rec.update(r)
        assert rec.plays == 3
        assert rec.mean_reward == 0.5
        assert [f.name for f in dataclasses.fields(ArmRecord)] == ["plays", "mean_reward", "coverage"]

"""
Tests for the reward oracle contract and reward collection.
"""

import threading
import time

import numpy as np
import pytest

from accucb.bandit import (
    Arm,
    CallableRewardOracle,
    DeadlineRewardOracle,
    Failed,
    OracleFailure,
    OracleTimeout,
    RewardCollector,
    RewardOracle,
    RewardValue,
    TimedOut,
)


class _ScriptedOracle(RewardOracle):
    """Outcome chosen by the first context coordinate."""

    def evaluate(self, context, round_hint):
        code = int(context[0])
        if code == 0:
            return RewardValue(0.5, coverage=0.3)
        if code == 1:
            return TimedOut()
        if code == 2:
            return Failed("crashed")
        if code == 3:
            raise RuntimeError("boom")
        if code == 4:
            return RewardValue(float("inf"))
        return RewardValue(7.0)


class TestRewardCollector:
    def test_resolves_every_outcome_kind(self):
        collector = RewardCollector(_ScriptedOracle(), reward_max=1.0, timeout_reward=0.9)
        arms = [Arm(i, [float(i)]) for i in range(6)]

        results = collector.collect(arms, round_hint=1)

        assert [r.arm_id for r in results] == [0, 1, 2, 3, 4, 5]
        ok, timeout, failed, raised, nonfinite, clipped = results
        assert ok.reward == 0.5 and ok.coverage == pytest.approx(0.3) and ok.error is None
        assert timeout.reward == 0.9 and timeout.timed_out
        assert isinstance(timeout.error, OracleTimeout)
        assert failed.failed and isinstance(failed.error, OracleFailure)
        assert failed.error.reason == "crashed"
        assert raised.failed and "boom" in raised.error.reason
        assert nonfinite.failed
        assert clipped.reward == 1.0

    @pytest.mark.parametrize("value", [None, "abc", [0.1, 0.2]])
    def test_non_numeric_reward_fails_the_arm(self, value):
        collected = RewardCollector(_ScriptedOracle()).resolve("a", RewardValue(value))
        assert collected.failed
        assert isinstance(collected.error, OracleFailure)

    @pytest.mark.parametrize("coverage", [float("nan"), float("inf"), "high", object()])
    def test_unusable_coverage_is_dropped(self, coverage):
        collected = RewardCollector(_ScriptedOracle()).resolve("a", RewardValue(0.4, coverage=coverage))
        assert collected.reward == 0.4
        assert collected.coverage is None
        assert collected.error is None

    def test_empty_selection(self):
        assert RewardCollector(_ScriptedOracle()).collect([], round_hint=1) == []

    def test_concurrent_results_keep_selection_order(self):
        def slow_first(context, round_hint):
            # earlier arms finish later
            time.sleep(0.02 * (4 - int(context[0])))
            return float(context[0]) / 10.0

        collector = RewardCollector(CallableRewardOracle(slow_first), max_workers=4)
        arms = [Arm(f"arm{i}", [float(i)]) for i in range(4)]

        results = collector.collect(arms, round_hint=3)

        assert [r.arm_id for r in results] == ["arm0", "arm1", "arm2", "arm3"]
        assert [r.reward for r in results] == pytest.approx([0.0, 0.1, 0.2, 0.3])

    def test_concurrent_calls_overlap(self):
        barrier = threading.Barrier(3, timeout=2.0)

        def wait_for_peers(context, round_hint):
            barrier.wait()
            return 1.0

        collector = RewardCollector(CallableRewardOracle(wait_for_peers), max_workers=3)
        results = collector.collect([Arm(i, [0.0]) for i in range(3)], round_hint=1)
        assert all(r.reward == 1.0 for r in results)


class TestOracleAdapters:
    def test_callable_accepts_float(self):
        oracle = CallableRewardOracle(lambda context, t: 0.25)
        assert oracle.evaluate(np.zeros(1), 1) == RewardValue(0.25)

    def test_callable_passes_outcomes_through(self):
        oracle = CallableRewardOracle(lambda context, t: TimedOut())
        assert oracle.evaluate(np.zeros(1), 1) == TimedOut()

    def test_deadline_returns_timed_out(self):
        release = threading.Event()

        def hang(context, t):
            release.wait(timeout=2.0)
            return 1.0

        oracle = DeadlineRewardOracle(CallableRewardOracle(hang), deadline_s=0.05)
        try:
            assert oracle.evaluate(np.zeros(1), 1) == TimedOut()
        finally:
            release.set()

    def test_deadline_passes_fast_results(self):
        oracle = DeadlineRewardOracle(CallableRewardOracle(lambda c, t: 0.4), deadline_s=1.0)
        assert oracle.evaluate(np.zeros(1), 1) == RewardValue(0.4)

    def test_deadline_must_be_positive(self):
        with pytest.raises(ValueError):
            DeadlineRewardOracle(CallableRewardOracle(lambda c, t: 0.0), deadline_s=0)

# accucb/bandit/reward.py
"""
Reward oracle contract and reward collection.

The scheduler only depends on::

    RewardOracle.evaluate(context, round_hint) -> RewardOutcome

where the outcome is one of

- ``RewardValue(value, coverage=None)``: a reward in ``[0, reward_max]``
  (clipped otherwise), optionally with an auxiliary coverage signal;
- ``TimedOut()``: mapped to the configured ``timeout_reward``;
- ``Failed(reason)``: the arm is skipped for this round.

Deadlines belong to the oracle. ``DeadlineRewardOracle`` is an adapter that
turns a slow call into ``TimedOut``; the core itself never times anything.
"""

from __future__ import annotations

import logging
import math
from abc import ABC, abstractmethod
from concurrent.futures import ThreadPoolExecutor, TimeoutError as FuturesTimeoutError, as_completed
from dataclasses import dataclass
from typing import Callable, List, Optional, Sequence, Union

import numpy as np

from .arms import Arm, ArmId
from .errors import BanditError, OracleFailure, OracleTimeout

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class RewardValue:
    value: float
    coverage: Optional[float] = None


@dataclass(frozen=True)
class TimedOut:
    pass


@dataclass(frozen=True)
class Failed:
    reason: str


RewardOutcome = Union[RewardValue, TimedOut, Failed]


class RewardOracle(ABC):
    """External collaborator that scores one selected arm."""

    @abstractmethod
    def evaluate(self, context: np.ndarray, round_hint: int) -> RewardOutcome:
        raise NotImplementedError


class CallableRewardOracle(RewardOracle):
    """Wrap ``fn(context, round_hint)`` returning a float or a ``RewardOutcome``."""

    def __init__(self, fn: Callable[[np.ndarray, int], Union[float, RewardOutcome]]) -> None:
        self.fn = fn

    def evaluate(self, context: np.ndarray, round_hint: int) -> RewardOutcome:
        out = self.fn(context, round_hint)
        if isinstance(out, (RewardValue, TimedOut, Failed)):
            return out
        return RewardValue(float(out))


class DeadlineRewardOracle(RewardOracle):
    """
    Run ``inner.evaluate`` on a worker thread and give up after ``deadline_s``.

    A call that overruns returns ``TimedOut()``. The worker thread cannot be
    killed, so the overrunning call keeps running in the background until it
    finishes on its own; its result is discarded.
    """

    def __init__(self, inner: RewardOracle, deadline_s: float) -> None:
        if deadline_s <= 0:
            raise ValueError(f"deadline_s must be > 0, got {deadline_s}")
        self.inner = inner
        self.deadline_s = float(deadline_s)

    def evaluate(self, context: np.ndarray, round_hint: int) -> RewardOutcome:
        pool = ThreadPoolExecutor(max_workers=1)
        try:
            future = pool.submit(self.inner.evaluate, context, round_hint)
            try:
                return future.result(timeout=self.deadline_s)
            except FuturesTimeoutError:
                return TimedOut()
        finally:
            pool.shutdown(wait=False, cancel_futures=True)


@dataclass
class CollectedReward:
    """
    一个被选中臂的最终结果。

    reward 为 None 表示该臂本轮不计入统计（oracle 失败）；
    error 为 OracleTimeout 时 reward 是配置的 timeout_reward。
    """

    arm_id: ArmId
    reward: Optional[float]
    coverage: Optional[float] = None
    error: Optional[BanditError] = None

    @property
    def failed(self) -> bool:
        return self.reward is None

    @property
    def timed_out(self) -> bool:
        return isinstance(self.error, OracleTimeout)


class RewardCollector:
    """
    Evaluate the selected arms and join every result before returning.

    With ``max_workers > 1`` the oracle calls are dispatched to a thread pool;
    results are still returned in selection order.
    """

    def __init__(
        self,
        oracle: RewardOracle,
        reward_max: float = 1.0,
        timeout_reward: float = 1.0,
        max_workers: int = 1,
    ) -> None:
        self.oracle = oracle
        self.reward_max = float(reward_max)
        self.timeout_reward = float(timeout_reward)
        self.max_workers = int(max_workers)

    def collect(self, arms: Sequence[Arm], round_hint: int) -> List[CollectedReward]:
        if not arms:
            return []
        if self.max_workers <= 1 or len(arms) == 1:
            return [self._evaluate_one(arm, round_hint) for arm in arms]

        results: List[Optional[CollectedReward]] = [None] * len(arms)
        with ThreadPoolExecutor(max_workers=min(self.max_workers, len(arms))) as executor:
            futures = {executor.submit(self._evaluate_one, arm, round_hint): i for i, arm in enumerate(arms)}
            for future in as_completed(futures):
                results[futures[future]] = future.result()
        return [r for r in results if r is not None]

    # ------------------------------------------------------------------
    # internal helpers
    # ------------------------------------------------------------------
    def _evaluate_one(self, arm: Arm, round_hint: int) -> CollectedReward:
        try:
            outcome = self.oracle.evaluate(arm.context, round_hint)
        except Exception as e:  # oracle 内部异常一律视为该臂失败，不中断本轮
            outcome = Failed(f"{type(e).__name__}: {e}")
        return self.resolve(arm.arm_id, outcome)

    def resolve(self, arm_id: ArmId, outcome: RewardOutcome) -> CollectedReward:
        if isinstance(outcome, TimedOut):
            return CollectedReward(
                arm_id=arm_id,
                reward=self.timeout_reward,
                error=OracleTimeout(arm_id, self.timeout_reward),
            )
        if isinstance(outcome, Failed):
            return CollectedReward(arm_id=arm_id, reward=None, error=OracleFailure(arm_id, outcome.reason))
        if not isinstance(outcome, RewardValue):
            return self._failure(arm_id, f"unexpected oracle outcome {outcome!r}")

        try:
            value = float(outcome.value)
        except (TypeError, ValueError):
            return self._failure(arm_id, f"non-numeric reward {outcome.value!r}")
        if not math.isfinite(value):
            return self._failure(arm_id, f"non-finite reward {value}")
        if value < 0.0 or value > self.reward_max:
            logger.warning(
                "Reward %.4f for arm %r is outside [0, %.4f]; clipping.", value, arm_id, self.reward_max
            )
            value = float(np.clip(value, 0.0, self.reward_max))

        return CollectedReward(arm_id=arm_id, reward=value, coverage=self._coverage(arm_id, outcome.coverage))

    @staticmethod
    def _failure(arm_id: ArmId, reason: str) -> CollectedReward:
        return CollectedReward(arm_id=arm_id, reward=None, error=OracleFailure(arm_id, reason))

    @staticmethod
    def _coverage(arm_id: ArmId, raw) -> Optional[float]:
        # 覆盖率只是辅助信号：无法使用时丢弃，奖励照常计入
        if raw is None:
            return None
        try:
            coverage = float(raw)
        except (TypeError, ValueError):
            coverage = math.nan
        if not math.isfinite(coverage):
            logger.warning("Arm %r reported unusable coverage %r; ignoring it.", arm_id, raw)
            return None
        return coverage

# accucb/bandit/simulation.py
"""
Simulated collaborators: a random arm source and a Bernoulli reward oracle.

Useful for experiments and tests when no real reward oracle is available.
Each round offers ``n_arms`` arms with contexts drawn uniformly from a box.
The oracle's expected reward for an arm is ``mean_fn(context)`` and the
observed reward is a Bernoulli draw with that mean.
"""

from __future__ import annotations

import threading
from typing import Callable, List, Optional, Sequence

import numpy as np

from .arms import Arm
from .reward import RewardOracle, RewardOutcome, RewardValue

MeanFn = Callable[[np.ndarray], float]


def mean_of_context(context: np.ndarray) -> float:
    """Default expected reward: the average coordinate, clipped into [0, 1]."""
    return float(np.clip(np.mean(context), 0.0, 1.0)) if context.size else 0.0


class UniformArmSource:
    """``arm_source(t)`` for :meth:`BanditScheduler.run`."""

    def __init__(
        self,
        rng: np.random.Generator,
        n_arms: int = 10,
        dim: int = 2,
        lower: Optional[Sequence[float]] = None,
        upper: Optional[Sequence[float]] = None,
    ) -> None:
        if n_arms < 0:
            raise ValueError(f"n_arms must be >= 0, got {n_arms}")
        self.rng = rng
        self.n_arms = int(n_arms)
        self.lower = np.zeros(dim) if lower is None else np.asarray(lower, dtype=np.float64)
        self.upper = np.ones(dim) if upper is None else np.asarray(upper, dtype=np.float64)

    def __call__(self, t: int) -> List[Arm]:
        contexts = self.rng.uniform(self.lower, self.upper, size=(self.n_arms, self.lower.size))
        return [Arm(arm_id=i, context=ctx) for i, ctx in enumerate(contexts)]


class BernoulliRewardOracle(RewardOracle):
    """Reward 1.0 with probability ``mean_fn(context)``, else 0.0."""

    def __init__(self, rng: np.random.Generator, mean_fn: MeanFn = mean_of_context) -> None:
        self.rng = rng
        self.mean_fn = mean_fn
        # Generator 不是线程安全的，并发收集奖励时需要加锁
        self._lock = threading.Lock()

    def evaluate(self, context: np.ndarray, round_hint: int) -> RewardOutcome:
        p = float(np.clip(self.mean_fn(context), 0.0, 1.0))
        with self._lock:
            hit = self.rng.random() < p
        return RewardValue(1.0 if hit else 0.0)

# accucb/bandit/scoring.py
"""
Per-arm scores that drive super-arm selection.

    score(m) = g^t(leaf(m))
             + diversity_weight * diversity(m)
             + coverage_weight  * coverage(m)

``g^t`` is the optimistic index of the leaf the arm was matched to. The two
extra terms only read the round's contexts and the coverage values reported
by the reward oracle; they never touch the tree or the aggregation state.
With both weights at 0 (the default) the score is the plain ACC-UCB index.
"""

from __future__ import annotations

import logging
from typing import Dict, Mapping, Sequence

import numpy as np

from .arms import Arm, ArmId
from .confidence import ConfidenceModel
from .partition import PartitionTree
from .settings import BanditConfig

logger = logging.getLogger(__name__)


class ScoringStrategy:
    def __init__(
        self,
        model: ConfidenceModel,
        diversity_weight: float = 0.0,
        coverage_weight: float = 0.0,
        coverage_diff_weight: float = 0.2,
    ) -> None:
        self.model = model
        self.diversity_weight = float(diversity_weight)
        self.coverage_weight = float(coverage_weight)
        self.coverage_diff_weight = float(coverage_diff_weight)

    @classmethod
    def from_config(cls, cfg: BanditConfig, model: ConfidenceModel) -> "ScoringStrategy":
        return cls(
            model=model,
            diversity_weight=cfg.diversity_weight,
            coverage_weight=cfg.coverage_weight,
            coverage_diff_weight=cfg.coverage_diff_weight,
        )

    # ------------------------------------------------------------------
    # individual terms
    # ------------------------------------------------------------------
    def ucb_terms(
        self,
        tree: PartitionTree,
        matched: Mapping[ArmId, int],
        horizon: float,
    ) -> Dict[ArmId, float]:
        """Optimistic index of each arm's matched leaf (computed once per leaf)."""
        per_node: Dict[int, float] = {}
        out: Dict[ArmId, float] = {}
        for arm_id, node_id in matched.items():
            if node_id not in per_node:
                node = tree.node(node_id)
                per_node[node_id] = self.model.optimistic_index(node, tree.parent_of(node), horizon)
            out[arm_id] = per_node[node_id]
        return out

    def diversity_terms(
        self,
        arms: Sequence[Arm],
        coverage: Mapping[ArmId, float],
    ) -> np.ndarray:
        """
        对每个候选臂：
            sum_j ||x_m - x_j||_2 / (rho * v1) + coverage_diff_weight * mean_j |cov_m - cov_j|
        j 取本轮其余候选臂。只有一个候选臂时为 0。
        """
        n = len(arms)
        if n < 2:
            return np.zeros(n, dtype=np.float64)

        dims = {a.context.shape for a in arms}
        if len(dims) != 1:
            logger.warning("Context dimensions differ within the round %s; diversity term set to 0.", sorted(dims))
            return np.zeros(n, dtype=np.float64)

        X = np.stack([a.context for a in arms])                      # [n, d]
        dist = np.linalg.norm(X[:, None, :] - X[None, :, :], axis=-1)  # [n, n], 对角线为 0
        partition_size = self.model.rho * self.model.v1
        spread = dist.sum(axis=1) / partition_size

        cov = np.array([float(coverage.get(a.arm_id, 0.0)) for a in arms], dtype=np.float64)
        cov_diff = np.abs(cov[:, None] - cov[None, :]).sum(axis=1) / (n - 1)
        return spread + self.coverage_diff_weight * cov_diff

    @staticmethod
    def coverage_terms(arms: Sequence[Arm], coverage: Mapping[ArmId, float]) -> np.ndarray:
        return np.array([float(coverage.get(a.arm_id, 0.0)) for a in arms], dtype=np.float64)

    # ------------------------------------------------------------------
    # combined score
    # ------------------------------------------------------------------
    def score(
        self,
        arms: Sequence[Arm],
        matched: Mapping[ArmId, int],
        tree: PartitionTree,
        horizon: float,
        coverage: Mapping[ArmId, float],
    ) -> Dict[ArmId, float]:
        ucb = self.ucb_terms(tree, matched, horizon)
        scored = [a for a in arms if a.arm_id in ucb]
        total = np.array([ucb[a.arm_id] for a in scored], dtype=np.float64)

        if self.diversity_weight > 0.0:
            total = total + self.diversity_weight * self.diversity_terms(scored, coverage)
        if self.coverage_weight > 0.0:
            total = total + self.coverage_weight * self.coverage_terms(scored, coverage)

        return {a.arm_id: float(s) for a, s in zip(scored, total)}

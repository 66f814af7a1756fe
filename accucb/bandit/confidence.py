# accucb/bandit/confidence.py
r"""
Confidence radius and optimistic index of a partition node.

    c^t(x)   = sqrt( 2 ln(T) / C^t(x) )              (inf while C^t(x) = 0)
    b^t(x)   = min( mu(x) + w * c^t(x),
                    mu(p(x)) + c^t(p(x)) + v1 * rho^{max(h-1, 0)} )
    g^t(x)   = b^t(x) + bonus * rho^h

where ``h`` is the depth of ``x``, ``p(x)`` its parent, ``w`` the exploration
weight and ``bonus`` is ``v1`` or ``v2`` depending on configuration. The root
has no parent, so its second bound is its own first bound.
"""

from __future__ import annotations

import math
from typing import Optional

from .partition import PartitionNode
from .settings import BanditConfig

UNBOUNDED = math.inf


def confidence_radius(count: float, horizon: float) -> float:
    """``sqrt(2 ln(horizon) / count)``; :data:`UNBOUNDED` for an unvisited node."""
    if count <= 0.0:
        return UNBOUNDED
    return math.sqrt(2.0 * math.log(horizon) / count)


class ConfidenceModel:
    """Pure scoring functions parameterised by (v1, v2, rho, T, horizon mode)."""

    def __init__(
        self,
        rounds: int,
        v1: float,
        rho: float,
        bonus_coef: Optional[float] = None,
        exploration_weight: float = 1.0,
        horizon_mode: str = "budget",
    ) -> None:
        self.rounds = int(rounds)
        self.v1 = float(v1)
        self.rho = float(rho)
        self.bonus_coef = self.v1 if bonus_coef is None else float(bonus_coef)
        self.exploration_weight = float(exploration_weight)
        self.horizon_mode = horizon_mode

    @classmethod
    def from_config(cls, cfg: BanditConfig) -> "ConfidenceModel":
        return cls(
            rounds=cfg.rounds,
            v1=cfg.v1,
            rho=cfg.rho,
            bonus_coef=cfg.bonus_coef,
            exploration_weight=cfg.exploration_weight,
            horizon_mode=cfg.horizon_mode,
        )

    def horizon(self, total_plays: int = 0) -> float:
        """The ``T`` plugged into the radius: round budget, or ``total_plays + 1``."""
        if self.horizon_mode == "plays":
            return float(total_plays + 1)
        return float(self.rounds)

    def radius(self, node: PartitionNode, horizon: float) -> float:
        return confidence_radius(node.count, horizon)

    def threshold(self, depth: int) -> float:
        """Refinement threshold ``v1 * rho^depth``."""
        return self.v1 * self.rho ** depth

    def discretization_bonus(self, depth: int) -> float:
        return self.bonus_coef * self.rho ** depth

    def optimistic_index(
        self,
        node: PartitionNode,
        parent: Optional[PartitionNode],
        horizon: float,
    ) -> float:
        own_radius = self.radius(node, horizon)
        # 0 * inf 会得到 nan，exploration_weight 为 0 时只保留均值
        if self.exploration_weight == 0.0:
            own_bound = node.mean
        else:
            own_bound = node.mean + self.exploration_weight * own_radius

        if parent is not None:
            parent_bound = (
                parent.mean
                + self.radius(parent, horizon)
                + self.v1 * self.rho ** max(node.depth - 1, 0)
            )
        else:
            parent_bound = own_bound

        return min(own_bound, parent_bound) + self.discretization_bonus(node.depth)

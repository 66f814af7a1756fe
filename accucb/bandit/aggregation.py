# accucb/bandit/aggregation.py
"""
Per-round statistics update.

Several selected arms can resolve to the same leaf in one round. All of their
rewards are first summed into a single ``NodeDelta`` per node; only then is
each node updated, once:

    C'  = C + d
    mu' = (C * mu + s) / C'

so the result does not depend on the order the arms were processed in.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Dict, Iterable, Tuple

import numpy as np

from .partition import PartitionTree


@dataclass
class NodeDelta:
    count: float = 0.0
    reward_sum: float = 0.0


class StatisticsAggregator:
    def __init__(self, reward_max: float = 1.0) -> None:
        self.reward_max = float(reward_max)

    @staticmethod
    def aggregate(contributions: Iterable[Tuple[int, float]]) -> Dict[int, NodeDelta]:
        """Fold ``(node_id, reward)`` pairs into one delta per node."""
        deltas: Dict[int, NodeDelta] = {}
        for node_id, reward in contributions:
            delta = deltas.setdefault(node_id, NodeDelta())
            delta.count += 1.0
            delta.reward_sum += float(reward)
        return deltas

    def apply(self, tree: PartitionTree, deltas: Dict[int, NodeDelta]) -> None:
        """One transition per node; a delta with ``count == 0`` is skipped."""
        # 按 node_id 排序，保证日志和浮点累加顺序确定
        for node_id in sorted(deltas):
            delta = deltas[node_id]
            if delta.count <= 0.0:
                continue
            node = tree.node(node_id)
            new_count = node.count + delta.count
            new_mean = (node.count * node.mean + delta.reward_sum) / new_count
            node.count = new_count
            node.mean = float(np.clip(new_mean, 0.0, self.reward_max))

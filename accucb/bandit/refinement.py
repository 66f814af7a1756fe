# accucb/bandit/refinement.py
from __future__ import annotations

import logging
from typing import List

from .confidence import ConfidenceModel
from .partition import PartitionTree

logger = logging.getLogger(__name__)


class RefinementEngine:
    """
    Splits every active leaf whose confidence radius has dropped to the
    depth threshold: ``c^t(x_{h,i}) <= v1 * rho^h``.

    Runs once per round, after the round's statistics were applied. Leaves
    created during a pass are not examined until the next pass, so the
    active-leaf count never decreases.
    """

    def __init__(self, model: ConfidenceModel, n_children: int) -> None:
        if n_children < 2:
            raise ValueError(f"n_children must be >= 2, got {n_children}")
        self.model = model
        self.n_children = int(n_children)

    def should_refine(self, tree: PartitionTree, node_id: int, horizon: float) -> bool:
        node = tree.node(node_id)
        if not node.active:
            return False
        return self.model.radius(node, horizon) <= self.model.threshold(node.depth)

    def refine(self, tree: PartitionTree, horizon: float) -> List[int]:
        """Split qualifying leaves; return the ids of the split nodes."""
        refined = []
        for leaf in tree.active_leaves():
            if not self.should_refine(tree, leaf.node_id, horizon):
                continue
            children = tree.split(leaf.node_id, self.n_children)
            refined.append(leaf.node_id)
            logger.info(
                "Refined node %d (depth=%d, count=%.1f, mean=%.4f) into nodes %s",
                leaf.node_id, leaf.depth, leaf.count, leaf.mean, [c.node_id for c in children],
            )
        return refined

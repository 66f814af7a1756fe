# accucb/bandit/matching.py
"""
Resolving an arm's context to an active leaf of the partition tree.

The scheduler treats this as a collaborator. Two rules are provided:

- ``RandomLeafMatcher``: the reference rule, which picks any active leaf
  uniformly at random. It ignores the context entirely, which is a known
  weakness; it is kept as the default so that behaviour matches the reference
  algorithm.
- ``ContainmentLeafMatcher``: a real geometric containment test over an
  axis-aligned box. Regions are implicit in the tree shape: a node at depth h
  cuts its box into ``len(children)`` equal slabs along axis ``h % dim`` and
  child ordinal j owns slab j.
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from typing import Sequence, Tuple

import numpy as np

from .arms import Arm
from .partition import PartitionTree
from .settings import BanditConfig


class LeafMatcher(ABC):
    """Maps an arm to the id of an active leaf."""

    @abstractmethod
    def match(self, arm: Arm, tree: PartitionTree) -> int:
        raise NotImplementedError


class RandomLeafMatcher(LeafMatcher):
    """Uniformly random active leaf, drawn from an owned generator."""

    def __init__(self, rng: np.random.Generator) -> None:
        self.rng = rng

    def match(self, arm: Arm, tree: PartitionTree) -> int:
        leaves = tree.active_leaves()
        if not leaves:
            raise RuntimeError("partition tree has no active leaves")
        return leaves[int(self.rng.integers(len(leaves)))].node_id


class ContainmentLeafMatcher(LeafMatcher):
    """Descend from the root into the child whose slab contains the context."""

    def __init__(self, lower: Sequence[float], upper: Sequence[float]) -> None:
        self.lower = np.asarray(lower, dtype=np.float64).ravel()
        self.upper = np.asarray(upper, dtype=np.float64).ravel()
        if self.lower.shape != self.upper.shape or self.lower.size == 0:
            raise ValueError("lower and upper must be non-empty and of equal length")
        if np.any(self.lower >= self.upper):
            raise ValueError("every lower bound must be strictly below its upper bound")

    @property
    def dim(self) -> int:
        return int(self.lower.size)

    def match(self, arm: Arm, tree: PartitionTree) -> int:
        x = arm.context
        if x.size != self.dim:
            raise ValueError(
                f"arm {arm.arm_id!r}: context has {x.size} dims, matcher expects {self.dim}"
            )
        # 超出边界的坐标截断到边界上
        x = np.clip(x, self.lower, self.upper)
        lo = self.lower.copy()
        hi = self.upper.copy()

        node = tree.root
        while node.children:
            axis = node.depth % self.dim
            n = len(node.children)
            width = (hi[axis] - lo[axis]) / n
            slab = int((x[axis] - lo[axis]) // width) if width > 0 else 0
            slab = min(max(slab, 0), n - 1)
            lo[axis], hi[axis] = lo[axis] + slab * width, lo[axis] + (slab + 1) * width
            node = tree.node(node.children[slab])
        return node.node_id

    def region(self, tree: PartitionTree, node_id: int) -> Tuple[np.ndarray, np.ndarray]:
        """Box ``(lower, upper)`` that ``node_id`` covers."""
        lo = self.lower.copy()
        hi = self.upper.copy()
        path = tree.path_to(node_id)
        for parent, child in zip(path[:-1], path[1:]):
            axis = parent.depth % self.dim
            n = len(parent.children)
            width = (hi[axis] - lo[axis]) / n
            slab = child.ordinal - 1
            lo[axis], hi[axis] = lo[axis] + slab * width, lo[axis] + (slab + 1) * width
        return lo, hi


def build_leaf_matcher(cfg: BanditConfig, rng: np.random.Generator) -> LeafMatcher:
    if cfg.matching == "containment":
        return ContainmentLeafMatcher(cfg.context_lower, cfg.context_upper)
    return RandomLeafMatcher(rng)

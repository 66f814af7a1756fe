# accucb/bandit/arms.py
from __future__ import annotations

from dataclasses import dataclass
from typing import Hashable, Optional, Sequence, Tuple, Union

import numpy as np

ArmId = Hashable


@dataclass
class Arm:
    """
    一个基臂（base arm）：本轮的候选项及其上下文向量。

    Attributes
    ----------
    arm_id : ArmId
        基臂编号；任意可哈希值。tie-break 时数字编号排在字符串之前。
    context : np.ndarray
        上下文向量（1-D, float64）。
    matched_leaf : Optional[int]
        外部注入的叶节点 id；为 None 或已失效时由 LeafMatcher 重新匹配。
    """

    arm_id: ArmId
    context: np.ndarray
    matched_leaf: Optional[int] = None

    def __post_init__(self) -> None:
        self.context = np.asarray(self.context, dtype=np.float64).ravel()


ArmLike = Union[Arm, Tuple[ArmId, Sequence[float]]]


def as_arm(item: ArmLike) -> Arm:
    """Accept an :class:`Arm` or an ``(arm_id, context)`` pair."""
    if isinstance(item, Arm):
        return item
    arm_id, context = item
    return Arm(arm_id=arm_id, context=np.asarray(context, dtype=np.float64))


@dataclass
class ArmRecord:
    """Per-arm running statistics kept across rounds."""

    plays: int = 0
    mean_reward: float = 0.0
    coverage: float = 0.0

    def update(self, reward: float) -> None:
        prev = self.plays
        self.plays += 1
        self.mean_reward = (prev * self.mean_reward + reward) / self.plays

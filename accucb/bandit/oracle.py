# accucb/bandit/oracle.py
"""
Approximate oracle for the combinatorial step: greedy top-K by score.

Greedy top-K is a valid approximation only when the super-arm reward is
monotone and bounded-smooth in the base-arm means. The caller is responsible
for that assumption; nothing here checks it.
"""

from __future__ import annotations

import logging
import math
import numbers
from typing import List, Mapping

from .arms import ArmId

logger = logging.getLogger(__name__)


def _id_order(arm_id: ArmId):
    """Total order over arm ids: numbers, then strings, then anything else by repr."""
    if isinstance(arm_id, numbers.Real) and not isinstance(arm_id, bool):
        return (0, "", arm_id)
    if isinstance(arm_id, str):
        return (1, "", arm_id)
    return (2, type(arm_id).__name__, repr(arm_id))


class SuperArmOracle:
    def __init__(self, super_arm_size: int) -> None:
        if super_arm_size < 1:
            raise ValueError(f"super_arm_size must be >= 1, got {super_arm_size}")
        self.super_arm_size = int(super_arm_size)

    def select(self, scores: Mapping[ArmId, float]) -> List[ArmId]:
        """
        Return ``min(K, len(scores))`` distinct ids, highest score first.

        Ties are broken by arm id ascending so that identical input always
        yields identical output. Ids of different kinds never compare with
        each other directly: numeric ids sort before string ids. An empty
        mapping gives an empty selection.
        """
        if not scores:
            return []

        def key(arm_id: ArmId):
            s = float(scores[arm_id])
            if math.isnan(s):
                logger.warning("Arm %r has a NaN score; ranking it last.", arm_id)
                s = -math.inf
            return (-s, _id_order(arm_id))

        ranked = sorted(scores, key=key)
        return ranked[: min(self.super_arm_size, len(ranked))]

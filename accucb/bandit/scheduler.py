# accucb/bandit/scheduler.py
"""
ACC-UCB round driver.

One call to :meth:`BanditScheduler.play_round` runs one full round, strictly
in this order::

    AWAIT_ARMS -> MATCHED -> SCORED -> SELECTED -> REWARDED -> AGGREGATED -> REFINED

Refinement only ever sees statistics of a fully aggregated round. Reward
collection is the only step that may fan out to several threads, and all of
its results are joined before aggregation starts. After ``rounds`` rounds the
scheduler halts; all state is cumulative and there is no rollback.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Callable, Dict, List, Optional, Sequence

import numpy as np

from .aggregation import NodeDelta, StatisticsAggregator
from .arms import Arm, ArmId, ArmLike, ArmRecord, as_arm
from .confidence import ConfidenceModel
from .errors import (
    EmptyCandidateSet,
    OracleFailure,
    OracleTimeout,
    SchedulerHalted,
    UnknownArmId,
    UnknownNodeId,
)
from .matching import LeafMatcher, build_leaf_matcher
from .oracle import SuperArmOracle
from .partition import PartitionTree
from .refinement import RefinementEngine
from .reward import RewardCollector, RewardOracle
from .scoring import ScoringStrategy
from .settings import BanditConfig
from ..utils.seed import make_rng

logger = logging.getLogger(__name__)


class RoundPhase(Enum):
    AWAIT_ARMS = 0
    MATCHED = 1
    SCORED = 2
    SELECTED = 3
    REWARDED = 4
    AGGREGATED = 5
    REFINED = 6


@dataclass
class RoundResult:
    """
    一轮的完整记录（便于上层记录 / 日志）。

    Attributes
    ----------
    round_index : int
        轮次 t（从 1 开始）。
    phase : RoundPhase
        本轮到达的最后状态；空候选集的轮次停在 SELECTED。
    selected : List[ArmId]
        被选中的超臂（按得分从高到低）。
    scores : Dict[ArmId, float]
        每个候选臂的得分。
    matched : Dict[ArmId, int]
        每个候选臂匹配到的叶节点 id。
    rewards : Dict[ArmId, float]
        计入统计的奖励（包含超时映射后的奖励）。
    failures, timeouts, unknown_ids
        本轮发生的可恢复错误。
    deltas : Dict[int, NodeDelta]
        本轮每个节点的聚合增量。
    refined : List[int]
        本轮被 refine 的节点 id。
    horizon : float
        本轮打分与 refine 共用的 T。
    changed_nodes : List[Dict]
        本轮统计被更新或被 refine 的节点（及新建子节点）的快照，每轮都有。
    snapshot : List[Dict]
        整棵树的快照；只在 snapshot_every 命中的轮次填写，其余轮次为空。
    """

    round_index: int
    phase: RoundPhase = RoundPhase.AWAIT_ARMS
    selected: List[ArmId] = field(default_factory=list)
    scores: Dict[ArmId, float] = field(default_factory=dict)
    matched: Dict[ArmId, int] = field(default_factory=dict)
    rewards: Dict[ArmId, float] = field(default_factory=dict)
    failures: List[OracleFailure] = field(default_factory=list)
    timeouts: List[OracleTimeout] = field(default_factory=list)
    unknown_ids: List[ArmId] = field(default_factory=list)
    deltas: Dict[int, NodeDelta] = field(default_factory=dict)
    refined: List[int] = field(default_factory=list)
    horizon: float = 0.0
    num_active_leaves: int = 0
    num_nodes: int = 0
    changed_nodes: List[Dict[str, Any]] = field(default_factory=list)
    snapshot: List[Dict[str, Any]] = field(default_factory=list)
    empty: bool = False

    @property
    def total_reward(self) -> float:
        return float(sum(self.rewards.values()))


class BanditScheduler:
    def __init__(
        self,
        config: BanditConfig,
        reward_oracle: RewardOracle,
        matcher: Optional[LeafMatcher] = None,
        scoring: Optional[ScoringStrategy] = None,
        rng: Optional[np.random.Generator] = None,
        round_logger: Optional[Any] = None,
        snapshot_every: Optional[int] = None,
    ) -> None:
        config.validate()
        self.config = config
        self.rng = rng if rng is not None else make_rng(config.seed)

        self.tree = PartitionTree()
        self.model = ConfidenceModel.from_config(config)
        self.scoring = scoring if scoring is not None else ScoringStrategy.from_config(config, self.model)
        self.selector = SuperArmOracle(config.super_arm_size)
        self.aggregator = StatisticsAggregator(reward_max=config.reward_max)
        self.refiner = RefinementEngine(self.model, config.n_children)
        self.matcher = matcher if matcher is not None else build_leaf_matcher(config, self.rng)
        self.collector = RewardCollector(
            reward_oracle,
            reward_max=config.reward_max,
            timeout_reward=config.timeout_reward,
            max_workers=config.max_workers,
        )
        self.round_logger = round_logger
        # 默认跟随 round_logger 的节点快照频率；0 表示不保存快照
        if snapshot_every is None:
            snapshot_every = getattr(round_logger, "node_snapshot_every", 0)
        self.snapshot_every = int(snapshot_every or 0)

        self.rounds_played: int = 0
        self.total_plays: int = 0
        self.total_reward: float = 0.0
        self.arm_records: Dict[ArmId, ArmRecord] = {}

    # ------------------------------------------------------------------
    # 公共接口
    # ------------------------------------------------------------------
    @property
    def is_finished(self) -> bool:
        return self.rounds_played >= self.config.rounds

    @property
    def average_reward(self) -> float:
        return self.total_reward / self.total_plays if self.total_plays > 0 else 0.0

    @property
    def coverage(self) -> Dict[ArmId, float]:
        return {arm_id: rec.coverage for arm_id, rec in self.arm_records.items()}

    def horizon(self) -> float:
        return self.model.horizon(self.total_plays)

    def play_round(self, arms: Sequence[ArmLike]) -> RoundResult:
        if self.is_finished:
            raise SchedulerHalted(
                f"round budget of {self.config.rounds} exhausted; scheduler has halted"
            )
        t = self.rounds_played + 1
        result = RoundResult(round_index=t)

        # 1) match arms to active leaves
        candidates = self._normalize(arms, t)
        matched_arms: List[Arm] = []
        for arm in candidates:
            node_id = self._match(arm, t)
            if node_id is None:
                continue
            result.matched[arm.arm_id] = node_id
            matched_arms.append(arm)
        result.phase = RoundPhase.MATCHED

        # 2) score; T is fixed for the whole round
        result.horizon = self.horizon()
        result.scores = self.scoring.score(
            matched_arms, result.matched, self.tree, result.horizon, self.coverage
        )
        result.phase = RoundPhase.SCORED

        # 3) select super arm
        selected = self.selector.select(result.scores)
        by_id = {arm.arm_id: arm for arm in matched_arms}
        chosen: List[Arm] = []
        for arm_id in selected:
            if arm_id not in by_id:
                err = UnknownArmId(arm_id)
                logger.warning("Round %d: %s; skipping it.", t, err)
                result.unknown_ids.append(arm_id)
                continue
            chosen.append(by_id[arm_id])
        result.selected = [arm.arm_id for arm in chosen]
        result.phase = RoundPhase.SELECTED

        if not chosen:
            logger.warning("Round %d: %s; nothing selected.", t, EmptyCandidateSet(t))
            result.empty = True
            return self._finish_round(result)

        # 4) collect rewards (all joined before aggregation)
        collected = self.collector.collect(chosen, t)
        contributions = []
        for c in collected:
            if c.failed:
                logger.warning("Round %d: %s; arm skipped.", t, c.error)
                result.failures.append(c.error)
                continue
            if c.timed_out:
                logger.info("Round %d: %s", t, c.error)
                result.timeouts.append(c.error)
            result.rewards[c.arm_id] = c.reward
            contributions.append((result.matched[c.arm_id], c.reward))
            self._record_arm(c.arm_id, c.reward, c.coverage)
        result.phase = RoundPhase.REWARDED

        # 5) aggregate once per node, then apply
        result.deltas = self.aggregator.aggregate(contributions)
        self.aggregator.apply(self.tree, result.deltas)
        result.phase = RoundPhase.AGGREGATED

        # 6) refine on the fully updated statistics
        result.refined = self.refiner.refine(self.tree, result.horizon)
        result.phase = RoundPhase.REFINED
        return self._finish_round(result)

    def run(self, arm_source: Callable[[int], Sequence[ArmLike]]) -> List[RoundResult]:
        """Play the remaining rounds, asking ``arm_source(t)`` for each round's arms."""
        results = []
        while not self.is_finished:
            t = self.rounds_played + 1
            results.append(self.play_round(arm_source(t)))
            if t % 100 == 0:
                logger.info(
                    "Round %d completed. Average reward: %.4f, active leaves: %d",
                    t, self.average_reward, self.tree.num_active_leaves,
                )
        return results

    # ------------------------------------------------------------------
    # internal helpers
    # ------------------------------------------------------------------
    def _normalize(self, arms: Sequence[ArmLike], t: int) -> List[Arm]:
        seen = set()
        out = []
        for item in arms:
            arm = as_arm(item)
            if arm.arm_id in seen:
                logger.warning("Round %d: duplicate arm id %r; keeping the first one.", t, arm.arm_id)
                continue
            seen.add(arm.arm_id)
            out.append(arm)
        return out

    def _match(self, arm: Arm, t: int) -> Optional[int]:
        if arm.matched_leaf is not None:
            try:
                node = self.tree.node(arm.matched_leaf)
            except UnknownNodeId as e:
                logger.warning("Round %d: arm %r was bound to %s; re-matching.", t, arm.arm_id, e)
            else:
                if node.active:
                    return node.node_id
                logger.debug("Round %d: arm %r bound to refined node %d; re-matching.", t, arm.arm_id, node.node_id)
        try:
            node = self.tree.node(self.matcher.match(arm, self.tree))
        except (ValueError, UnknownNodeId) as e:
            logger.warning("Round %d: could not match arm %r (%s); skipping it.", t, arm.arm_id, e)
            return None
        if not node.active:
            logger.warning(
                "Round %d: matcher returned refined node %d for arm %r; skipping it.",
                t, node.node_id, arm.arm_id,
            )
            return None
        return node.node_id

    def _record_arm(self, arm_id: ArmId, reward: float, coverage: Optional[float]) -> None:
        rec = self.arm_records.setdefault(arm_id, ArmRecord())
        rec.update(reward)
        if coverage is not None:
            rec.coverage = coverage
        self.total_plays += 1
        self.total_reward += reward

    def _finish_round(self, result: RoundResult) -> RoundResult:
        self.rounds_played = result.round_index
        result.num_active_leaves = self.tree.num_active_leaves
        result.num_nodes = len(self.tree)
        changed = set(result.deltas) | set(result.refined)
        for node_id in result.refined:
            changed.update(self.tree.node(node_id).children)
        result.changed_nodes = [self.tree.node(i).as_row() for i in sorted(changed)]
        if self.snapshot_every and result.round_index % self.snapshot_every == 0:
            result.snapshot = self.tree.snapshot()
        logger.debug(
            "Round %d: selected=%s rewards=%s refined=%s active_leaves=%d",
            result.round_index, result.selected, result.rewards, result.refined, result.num_active_leaves,
        )
        if self.round_logger is not None:
            self.round_logger.log_round(result)
        return result


# ----------------------------------------------------------------------
# 构造函数：从 cfg 读取 bandit 的超参数
# ----------------------------------------------------------------------


def build_scheduler(
    cfg,
    reward_oracle: RewardOracle,
    matcher: Optional[LeafMatcher] = None,
    round_logger: Optional[Any] = None,
) -> BanditScheduler:
    """
    使用配置文件构造 BanditScheduler 实例的辅助函数。

    期望 cfg.bandit 下是 BanditConfig 的字段（rounds, super_arm_size, v1, rho, ...）。
    如果 cfg.bandit 没有给出 seed，则退回到 cfg.seed.master。

    Parameters
    ----------
    cfg : SimpleNamespace or similar
        全局配置对象（load_config 的结果）。
    reward_oracle : RewardOracle
        外部奖励 oracle。
    matcher : LeafMatcher, optional
        自定义叶节点匹配规则；默认按 cfg.bandit.matching 构造。
    round_logger : optional
        具有 log_round(result) 方法的对象，例如 RoundLogger。

    Returns
    -------
    scheduler : BanditScheduler
        已初始化的调度器。
    """
    bandit_cfg = getattr(cfg, "bandit", None)
    raw: Dict[str, Any] = {}
    if bandit_cfg is not None:
        raw = dict(bandit_cfg) if isinstance(bandit_cfg, dict) else dict(vars(bandit_cfg))

    seed_cfg = getattr(cfg, "seed", None)
    if "seed" not in raw and seed_cfg is not None:
        raw["seed"] = int(getattr(seed_cfg, "master", seed_cfg))

    config = BanditConfig.from_namespace(raw)
    return BanditScheduler(config, reward_oracle, matcher=matcher, round_logger=round_logger)

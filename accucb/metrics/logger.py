# accucb/metrics/logger.py
import csv
import json
import logging
import os
from typing import Any, Dict, List, Optional

from datetime import datetime

from accucb.bandit.scheduler import RoundResult

logger = logging.getLogger(__name__)

ROUND_FIELDS = [
    "exp_name",
    "timestamp",
    "round",
    "n_candidates",
    "n_selected",
    "selected",
    "total_reward",
    "n_rewarded",
    "n_failures",
    "n_timeouts",
    "n_unknown",
    "n_refined",
    "refined",
    "active_leaves",
    "n_nodes",
    "empty",
]

NODE_FIELDS = [
    "round",
    "node_id",
    "parent",
    "depth",
    "ordinal",
    "mean",
    "count",
    "active",
    "n_children",
]


class RoundLogger:
    """
    负责把调度过程写到 CSV。

    轮次日志：每一轮一条记录（rounds.csv）：
      log_round(result)

    节点日志：每隔 node_snapshot_every 轮写一次整棵分区树（nodes.csv），
    每个节点一行；也可以在结束时手动调用 log_nodes 写最终快照。

    传入调度器：BanditScheduler(..., round_logger=RoundLogger(...))。
    """

    def __init__(
        self,
        exp_name: str,
        output_dir: str,
        cfg=None,
        node_snapshot_every: Optional[int] = None,
    ) -> None:
        self.exp_name = exp_name
        self.output_dir = os.path.abspath(output_dir)
        os.makedirs(self.output_dir, exist_ok=True)

        # 优先使用 cfg.logging 设置的文件名，否则默认 rounds.csv / nodes.csv
        log_cfg = getattr(cfg, "logging", None)
        round_name = getattr(log_cfg, "round_csv", None) if log_cfg is not None else None
        node_name = getattr(log_cfg, "node_csv", None) if log_cfg is not None else None
        self.round_csv = os.path.join(self.output_dir, round_name or "rounds.csv")
        self.node_csv = os.path.join(self.output_dir, node_name or "nodes.csv")

        if node_snapshot_every is None and log_cfg is not None:
            node_snapshot_every = getattr(log_cfg, "node_snapshot_every", None)
        self.node_snapshot_every = int(node_snapshot_every) if node_snapshot_every else 0

        # 写一份 config snapshot，方便复现
        if cfg is not None:
            self._dump_config(cfg)

        # 初始化 CSV 头
        self._round_header_written = os.path.isfile(self.round_csv) and os.path.getsize(self.round_csv) > 0
        self._node_header_written = os.path.isfile(self.node_csv) and os.path.getsize(self.node_csv) > 0

    # ---- public API ----

    def log_round(self, result: RoundResult) -> None:
        """每一轮结束时由调度器调用一次。"""
        row = self._build_round_row(result)
        self._append(self.round_csv, ROUND_FIELDS, [row], header_attr="_round_header_written")

        if self.node_snapshot_every and result.round_index % self.node_snapshot_every == 0:
            self.log_nodes(result.round_index, result.snapshot)

    def log_nodes(self, round_index: int, snapshot: List[Dict[str, Any]]) -> None:
        rows = [dict(node, round=round_index) for node in snapshot]
        self._append(self.node_csv, NODE_FIELDS, rows, header_attr="_node_header_written")

    # ---- internal helpers ----

    def _dump_config(self, cfg) -> None:
        """
        把 cfg 转成一个尽量可 JSON 序列化的 dict 存下来。
        """
        cfg_path = os.path.join(self.output_dir, "config_snapshot.json")

        def to_plain(obj: Any) -> Any:
            if isinstance(obj, (int, float, str, bool)) or obj is None:
                return obj
            if isinstance(obj, (list, tuple)):
                return [to_plain(x) for x in obj]
            if isinstance(obj, dict):
                return {str(k): to_plain(v) for k, v in obj.items()}
            # SimpleNamespace / dataclass 等
            if hasattr(obj, "__dict__"):
                return {k: to_plain(v) for k, v in obj.__dict__.items()}
            return str(obj)

        try:
            with open(cfg_path, "w", encoding="utf-8") as f:
                json.dump(to_plain(cfg), f, ensure_ascii=False, indent=2)
        except OSError as e:
            # 写快照失败不影响调度
            logger.warning("Could not write config snapshot to %s: %s", cfg_path, e)

    def _build_round_row(self, result: RoundResult) -> Dict[str, Any]:
        """
        把一轮的结果拼成一行扁平 dict，方便写 CSV。
        """
        return {
            "exp_name": self.exp_name,
            "timestamp": datetime.now().isoformat(timespec="seconds"),
            "round": result.round_index,
            "n_candidates": len(result.scores),
            "n_selected": len(result.selected),
            "selected": ";".join(str(a) for a in result.selected),
            "total_reward": result.total_reward,
            "n_rewarded": len(result.rewards),
            "n_failures": len(result.failures),
            "n_timeouts": len(result.timeouts),
            "n_unknown": len(result.unknown_ids),
            "n_refined": len(result.refined),
            "refined": ";".join(str(n) for n in result.refined),
            "active_leaves": result.num_active_leaves,
            "n_nodes": result.num_nodes,
            "empty": int(result.empty),
        }

    def _append(self, path: str, fieldnames: List[str], rows: List[Dict[str, Any]], header_attr: str) -> None:
        # 保证目录存在
        os.makedirs(os.path.dirname(path), exist_ok=True)
        write_header = not getattr(self, header_attr)
        with open(path, "a", newline="", encoding="utf-8") as f:
            writer = csv.DictWriter(f, fieldnames=fieldnames, extrasaction="ignore")
            if write_header:
                writer.writeheader()
                setattr(self, header_attr, True)
            writer.writerows(rows)

# accucb/metrics/summary.py
import json
import os
from typing import Any, Dict, Optional

import pandas as pd


def _resolve_log_paths(cfg) -> Dict[str, str]:
    """
    根据 cfg 推断 round/summary 文件路径，
    逻辑要和 RoundLogger 里的保持一致。
    """
    output_dir = os.path.abspath(cfg.experiment.output_dir)
    log_cfg = getattr(cfg, "logging", None)

    round_name = getattr(log_cfg, "round_csv", None) if log_cfg is not None else None
    summary_name = getattr(log_cfg, "summary_json", None) if log_cfg is not None else None
    return {
        "round_csv": os.path.join(output_dir, round_name or "rounds.csv"),
        "summary_json": os.path.join(output_dir, summary_name or "run_summary.json"),
    }


def summarize_run(round_csv: str, save_json: Optional[str] = None) -> Dict[str, Any]:
    """
    从 rounds.csv 汇总一次运行的结果。

    Returns
    -------
    summary : dict
        {
          "rounds": 总轮数,
          "empty_rounds": 没有选出任何臂的轮数,
          "total_plays": 计入统计的拉取次数,
          "total_reward": 累计奖励,
          "average_reward": 每次拉取的平均奖励,
          "failures": oracle 失败次数,
          "timeouts": oracle 超时次数,
          "refinements": refine 次数,
          "final_active_leaves": 最后一轮之后的活跃叶节点数,
        }
    """
    if not os.path.isfile(round_csv):
        raise FileNotFoundError(f"Round log file not found: {round_csv}")

    df = pd.read_csv(round_csv)
    if df.empty:
        raise RuntimeError(f"No rounds logged in {round_csv}.")

    df = df.sort_values("round")
    total_plays = int(df["n_rewarded"].sum())
    total_reward = float(df["total_reward"].sum())

    summary = {
        "rounds": int(len(df)),
        "empty_rounds": int(df["empty"].sum()),
        "total_plays": total_plays,
        "total_reward": total_reward,
        "average_reward": total_reward / total_plays if total_plays > 0 else 0.0,
        "failures": int(df["n_failures"].sum()),
        "timeouts": int(df["n_timeouts"].sum()),
        "refinements": int(df["n_refined"].sum()),
        "final_active_leaves": int(df["active_leaves"].iloc[-1]),
    }

    if save_json:
        os.makedirs(os.path.dirname(os.path.abspath(save_json)), exist_ok=True)
        with open(save_json, "w", encoding="utf-8") as f:
            json.dump(summary, f, ensure_ascii=False, indent=2)

    return summary


def summarize_from_config(cfg, save_json: bool = True) -> Dict[str, Any]:
    """按 cfg 中的路径汇总，并可选地保存到 summary_json。"""
    paths = _resolve_log_paths(cfg)
    return summarize_run(paths["round_csv"], save_json=paths["summary_json"] if save_json else None)

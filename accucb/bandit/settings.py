# accucb/bandit/settings.py
"""
Construction-time configuration of the ACC-UCB scheduler.

All checks happen once, in :meth:`BanditConfig.validate`; an invalid value is a
:class:`ConfigurationError`, never a per-round failure.
"""

from __future__ import annotations

import math
from dataclasses import asdict, dataclass, field, fields
from typing import Any, Dict, List, Optional

from .errors import ConfigurationError

BONUS_SCALES = ("v1", "v2")
HORIZON_MODES = ("budget", "plays")
MATCHING_RULES = ("random", "containment")


@dataclass
class BanditConfig:
    """
    ACC-UCB 的全部超参数。

    Attributes
    ----------
    rounds : int
        总轮数 T（>= 1）。
    super_arm_size : int
        每轮选择的基臂数 K（>= 1，每轮按可用臂数截断）。
    v1, v2 : float
        离散化尺度；v1 > 0，v2 >= 0。
    rho : float
        离散化衰减系数，取值 (0, 1)。
    n_children : int
        refine 时每个叶节点生成的子节点数（>= 2）。
    exploration_weight : float
        乘在节点自身置信半径上的系数，1.0 即标准 UCB。
    diversity_weight, coverage_weight : float
        可选打分项的权重，默认为 0（纯 UCB）。
    coverage_diff_weight : float
        diversity 项内部 coverage 差异的权重。
    bonus_scale : str
        离散化奖励使用 "v1" 还是 "v2" 作为系数。
    horizon_mode : str
        置信半径中的 T："budget" 用总轮数，"plays" 用 total_plays + 1。
    reward_max : float
        奖励上界，奖励取值 [0, reward_max]。
    timeout_reward : float
        oracle 超时时使用的固定奖励。
    max_workers : int
        并发调用 oracle 的线程数，1 表示顺序执行。
    seed : int
        随机数生成器种子。
    matching : str
        叶节点匹配规则："random"（参考实现）或 "containment"。
    context_lower, context_upper : Optional[List[float]]
        containment 匹配使用的上下文空间边界。
    """

    rounds: int = 100
    super_arm_size: int = 2
    v1: float = 1.0
    v2: float = 0.0
    rho: float = 0.5
    n_children: int = 2
    exploration_weight: float = 1.0
    diversity_weight: float = 0.0
    coverage_weight: float = 0.0
    coverage_diff_weight: float = 0.2
    bonus_scale: str = "v1"
    horizon_mode: str = "budget"
    reward_max: float = 1.0
    timeout_reward: float = 1.0
    max_workers: int = 1
    seed: int = 42
    matching: str = "random"
    context_lower: Optional[List[float]] = field(default=None)
    context_upper: Optional[List[float]] = field(default=None)

    def __post_init__(self) -> None:
        self.validate()

    # ------------------------------------------------------------------
    # validation
    # ------------------------------------------------------------------
    def validate(self) -> None:
        _require_int(self, "rounds", minimum=1)
        _require_int(self, "super_arm_size", minimum=1)
        _require_int(self, "n_children", minimum=2)
        _require_int(self, "max_workers", minimum=1)
        _require_int(self, "seed", minimum=0)

        v1 = _require_finite(self, "v1")
        if v1 <= 0.0:
            raise ConfigurationError(f"v1 must be > 0, got {v1}")
        for name in ("v2", "exploration_weight", "diversity_weight",
                     "coverage_weight", "coverage_diff_weight"):
            value = _require_finite(self, name)
            if value < 0.0:
                raise ConfigurationError(f"{name} must be >= 0, got {value}")

        rho = _require_finite(self, "rho")
        if not 0.0 < rho < 1.0:
            raise ConfigurationError(f"rho must lie in (0, 1), got {rho}")

        reward_max = _require_finite(self, "reward_max")
        if reward_max <= 0.0:
            raise ConfigurationError(f"reward_max must be > 0, got {reward_max}")
        timeout_reward = _require_finite(self, "timeout_reward")
        if not 0.0 <= timeout_reward <= reward_max:
            raise ConfigurationError(
                f"timeout_reward must lie in [0, reward_max={reward_max}], got {timeout_reward}"
            )

        if self.bonus_scale not in BONUS_SCALES:
            raise ConfigurationError(f"bonus_scale must be one of {BONUS_SCALES}, got {self.bonus_scale!r}")
        if self.horizon_mode not in HORIZON_MODES:
            raise ConfigurationError(f"horizon_mode must be one of {HORIZON_MODES}, got {self.horizon_mode!r}")
        if self.matching not in MATCHING_RULES:
            raise ConfigurationError(f"matching must be one of {MATCHING_RULES}, got {self.matching!r}")

        if self.matching == "containment":
            if self.context_lower is None or self.context_upper is None:
                raise ConfigurationError("containment matching needs context_lower and context_upper")
        if self.context_lower is not None or self.context_upper is not None:
            _check_bounds(self.context_lower, self.context_upper)

    # ------------------------------------------------------------------
    # helpers
    # ------------------------------------------------------------------
    @property
    def bonus_coef(self) -> float:
        return self.v1 if self.bonus_scale == "v1" else self.v2

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)

    @classmethod
    def from_namespace(cls, ns: Any) -> "BanditConfig":
        """
        从 SimpleNamespace（load_config 的结果，一般是 cfg.bandit）或 dict 构造配置。
        未出现的字段使用默认值；未知字段直接报错，避免拼写错误被静默忽略。
        """
        if ns is None:
            return cls()
        raw = dict(ns) if isinstance(ns, dict) else dict(vars(ns))
        known = {f.name for f in fields(cls)}
        unknown = sorted(set(raw) - known)
        if unknown:
            raise ConfigurationError(f"unknown bandit config keys: {unknown}")
        return cls(**raw)


def _require_int(cfg: BanditConfig, name: str, minimum: int) -> int:
    value = getattr(cfg, name)
    if isinstance(value, bool) or not isinstance(value, int):
        raise ConfigurationError(f"{name} must be an integer, got {value!r}")
    if value < minimum:
        raise ConfigurationError(f"{name} must be >= {minimum}, got {value}")
    return value


def _require_finite(cfg: BanditConfig, name: str) -> float:
    value = getattr(cfg, name)
    try:
        value = float(value)
    except (TypeError, ValueError):
        raise ConfigurationError(f"{name} must be a number, got {getattr(cfg, name)!r}") from None
    if not math.isfinite(value):
        raise ConfigurationError(f"{name} must be finite, got {value}")
    setattr(cfg, name, value)
    return value


def _check_bounds(lower: Optional[List[float]], upper: Optional[List[float]]) -> None:
    if lower is None or upper is None:
        raise ConfigurationError("context_lower and context_upper must be given together")
    if len(lower) == 0 or len(lower) != len(upper):
        raise ConfigurationError(
            f"context bounds must be non-empty and of equal length, got {len(lower)} and {len(upper)}"
        )
    for i, (lo, hi) in enumerate(zip(lower, upper)):
        if not (math.isfinite(float(lo)) and math.isfinite(float(hi))) or float(lo) >= float(hi):
            raise ConfigurationError(f"context bound {i}: need finite lower < upper, got [{lo}, {hi}]")

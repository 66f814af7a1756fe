# accucb/utils/seed.py
"""
Utility functions for reproducible randomness.
"""

import random
from typing import Optional

import numpy as np


def set_seed(seed_master: int) -> None:
    """统一设置全局随机种子（只影响调用方自己的代码，调度器内部不依赖全局状态）。"""
    random.seed(seed_master)
    np.random.seed(seed_master)


def make_rng(seed: Optional[int] = None) -> np.random.Generator:
    """构造一个显式持有的随机数生成器；同一个 seed 得到同一条随机序列。"""
    return np.random.default_rng(seed)

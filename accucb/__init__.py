from __future__ import annotations

# accucb package 初始化

__all__ = ["__version__", "get_version"]


def _resolve_version() -> str:
    """
    尝试从已安装的分发信息中读取版本号；失败时返回 "0.0.0"。
    """
    from importlib.metadata import PackageNotFoundError, version as _md_version

    try:
        return _md_version(__name__)
    except PackageNotFoundError:
        # 包可能未安装为分发包
        return "0.0.0"


__version__ = _resolve_version()
del _resolve_version


def get_version() -> str:
    """返回包的版本号（字符串）。"""
    return __version__

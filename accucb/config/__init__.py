from .parser import load_config, parse_overrides

__all__ = [
    "load_config",
    "parse_overrides",
]

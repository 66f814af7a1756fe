from .logger import RoundLogger
from .summary import summarize_from_config, summarize_run

__all__ = [
    "RoundLogger",
    "summarize_run",
    "summarize_from_config",
]

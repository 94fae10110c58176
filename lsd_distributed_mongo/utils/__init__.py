"""
Utilities Package
=================
Shared helpers for the interaction store.

Modules:
    - logger: logging setup, formatters and statistics
"""

from .logger import (
    get_logger,
    setup_logging,
    get_log_stats,
    ColoredFormatter,
    JSONFormatter,
    LogStats
)

__all__ = [
    "get_logger",
    "setup_logging",
    "get_log_stats",
    "ColoredFormatter",
    "JSONFormatter",
    "LogStats"
]

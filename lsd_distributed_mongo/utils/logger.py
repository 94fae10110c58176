"""
Logger Utilities
================
Logging setup for the interaction store: coloured console output,
rotating JSON/plain file output and per-level statistics.

The library itself only calls ``get_logger``. Applications embedding it
call ``setup_logging`` once at startup if they want this formatting.
"""

import sys
import json
import logging
import threading
from pathlib import Path
from datetime import datetime, timezone
from typing import Optional, Dict, Any, Union, List
from logging.handlers import RotatingFileHandler
from collections import defaultdict

from colorama import init, Fore, Style

# Initialize colorama for cross-platform colors
init(autoreset=True)


# Attributes every LogRecord carries; anything else came in through ``extra``
_RESERVED_ATTRS = frozenset({
    'name', 'msg', 'args', 'created', 'filename', 'funcName', 'levelname',
    'levelno', 'lineno', 'module', 'msecs', 'message', 'pathname', 'process',
    'processName', 'relativeCreated', 'thread', 'threadName', 'exc_info',
    'exc_text', 'stack_info', 'taskName'
})


# ==================== CUSTOM FORMATTER ====================

CONSOLE_FORMAT = '%(asctime)s | %(levelname)-8s | %(name)s | %(message)s'


class ColoredFormatter(logging.Formatter):
    """Console formatter that colour-codes the level name."""

    COLORS = {
        'DEBUG': Fore.CYAN,
        'INFO': Fore.GREEN,
        'WARNING': Fore.YELLOW,
        'ERROR': Fore.RED,
        'CRITICAL': Fore.RED + Style.BRIGHT
    }

    def __init__(self):
        super().__init__(CONSOLE_FORMAT, datefmt='%H:%M:%S')

    def format(self, record: logging.LogRecord) -> str:
        message = super().format(record)

        color = self.COLORS.get(record.levelname)
        if color:
            # First occurrence is the level column
            message = message.replace(record.levelname, f"{color}{record.levelname}{Style.RESET_ALL}", 1)

        return message


# ==================== JSON FORMATTER ====================

class JSONFormatter(logging.Formatter):
    """
    JSON formatter for structured logging.

    One object per line, carrying the exception text and any ``extra``
    fields passed to the logging call.
    """

    def format(self, record: logging.LogRecord) -> str:
        log_obj = {
            'timestamp': datetime.fromtimestamp(record.created, tz=timezone.utc).isoformat(),
            'level': record.levelname,
            'logger': record.name,
            'message': record.getMessage(),
            'module': record.module,
            'function': record.funcName,
            'line': record.lineno
        }

        if record.exc_info:
            log_obj['exception'] = self.formatException(record.exc_info)

        for key, value in record.__dict__.items():
            if key not in _RESERVED_ATTRS:
                log_obj[key] = value

        return json.dumps(log_obj, ensure_ascii=False, default=str)


# ==================== LOG STATISTICS ====================

class LogStats:
    """
    Track logging statistics.

    Counts records per level and keeps the most recent errors. Safe to
    update from any thread, since repository calls arrive on caller threads.
    """

    MAX_ERRORS = 100

    def __init__(self):
        self.counts: Dict[str, int] = defaultdict(int)
        self.errors: List[Dict[str, Any]] = []
        self.start_time = datetime.now(timezone.utc)
        self._lock = threading.Lock()

    def record(self, level: str, message: str) -> None:
        """
        Record log event.

        Args:
            level: Log level name
            message: Rendered log message
        """
        with self._lock:
            self.counts[level] += 1

            if level in ('ERROR', 'CRITICAL'):
                self.errors.append({
                    'time': datetime.now(timezone.utc),
                    'level': level,
                    'message': message[:200]
                })

                if len(self.errors) > self.MAX_ERRORS:
                    self.errors.pop(0)

    def get_stats(self) -> Dict[str, Any]:
        """
        Get current statistics.

        Returns:
            Dict with counts by level and the last ten errors
        """
        with self._lock:
            uptime = datetime.now(timezone.utc) - self.start_time

            return {
                'uptime_seconds': uptime.total_seconds(),
                'total_logs': sum(self.counts.values()),
                'counts_by_level': dict(self.counts),
                'error_count': len(self.errors),
                'recent_errors': list(self.errors[-10:]),
            }

    def reset(self) -> None:
        """Reset statistics."""
        with self._lock:
            self.counts.clear()
            self.errors.clear()
            self.start_time = datetime.now(timezone.utc)


_log_stats = LogStats()


class StatsHandler(logging.Handler):
    """Handler that feeds every record into ``LogStats``."""

    def __init__(self, stats: Optional[LogStats] = None):
        super().__init__()
        self.stats = stats or _log_stats

    def emit(self, record: logging.LogRecord) -> None:
        try:
            self.stats.record(record.levelname, record.getMessage())
        except Exception:
            self.handleError(record)


# ==================== SETUP FUNCTIONS ====================

def setup_logging(
    level: Union[str, int] = logging.INFO,
    log_file: Optional[str] = None,
    use_colors: bool = True,
    use_json: bool = False,
    max_bytes: int = 10 * 1024 * 1024,  # 10 MB
    backup_count: int = 5
) -> None:
    """
    Replace the root logger's handlers with console, file and stats handlers.

    Args:
        level: Logging level
        log_file: Rotating log file path (optional)
        use_colors: Colour the console level column
        use_json: One JSON object per line in the file
        max_bytes: Size at which the file rotates
        backup_count: Number of rotated files to keep
    """
    handlers: List[logging.Handler] = []

    console = logging.StreamHandler(sys.stdout)
    console.setFormatter(ColoredFormatter() if use_colors else logging.Formatter(CONSOLE_FORMAT, '%H:%M:%S'))
    handlers.append(console)

    if log_file:
        Path(log_file).parent.mkdir(parents=True, exist_ok=True)
        file_handler = RotatingFileHandler(
            log_file,
            maxBytes=max_bytes,
            backupCount=backup_count,
            encoding='utf-8'
        )
        file_handler.setFormatter(JSONFormatter() if use_json else logging.Formatter(CONSOLE_FORMAT))
        handlers.append(file_handler)

    root_logger = logging.getLogger()
    root_logger.setLevel(level)
    root_logger.handlers.clear()

    for handler in handlers:
        handler.setLevel(level)
        root_logger.addHandler(handler)

    # Counts every record that passes the root level
    root_logger.addHandler(StatsHandler())

    logging.getLogger(__name__).info(
        f"🚀 Logging initialized (level={logging.getLevelName(root_logger.level)}, file={log_file or 'none'})"
    )


def get_logger(name: str) -> logging.Logger:
    """Module logger; handlers come from whatever the application configured."""
    return logging.getLogger(name)


def get_log_stats() -> LogStats:
    """Get global log statistics instance."""
    return _log_stats


"""Logging configuration for the wan-switch daemon.

Provides:
- Console output for real-time debugging
- Optional file-based logging with rotation
- Performance timing decorator for routing commands

Environment Variables:
    WAN_SWITCH_LOG_LEVEL: DEBUG, INFO, WARNING, ERROR (default: INFO)
    WAN_SWITCH_LOG_FILE: Path to log file (default: none, console only)
    WAN_SWITCH_LOG_MAX_SIZE: Max log file size in MB (default: 10)
    WAN_SWITCH_LOG_BACKUPS: Number of backup files to keep (default: 5)

Usage:
    from wan_switch.utils.logging_config import setup_logging, timed

    setup_logging()  # Call once at startup

    @timed("ip_command")
    async def apply(self, directive):
        ...
"""
import functools
import logging
import os
import time
from logging.handlers import RotatingFileHandler
from pathlib import Path
from typing import Any, Callable, Optional

# Performance logger - separate from main logger for easy filtering
perf_logger = logging.getLogger("wan_switch.perf")


def get_log_level(level: Optional[str] = None) -> int:
    """Resolve a log level name, falling back to the environment."""
    level_str = (level or os.environ.get("WAN_SWITCH_LOG_LEVEL", "INFO")).upper()
    return getattr(logging, level_str, logging.INFO)


def get_log_file() -> Optional[Path]:
    path_str = os.environ.get("WAN_SWITCH_LOG_FILE")
    return Path(path_str) if path_str else None


def setup_logging(level: Optional[str] = None) -> None:
    """Configure logging for the application.

    Sets up:
    - Console handler at the configured level
    - Rotating file handler (DEBUG level) when WAN_SWITCH_LOG_FILE is set
    - Performance logger for command timings
    """
    log_level = get_log_level(level)
    log_file = get_log_file()
    max_size_mb = int(os.environ.get("WAN_SWITCH_LOG_MAX_SIZE", "10"))
    backup_count = int(os.environ.get("WAN_SWITCH_LOG_BACKUPS", "5"))

    main_format = logging.Formatter(
        "%(asctime)s.%(msecs)03d | %(name)-28s | %(levelname)-7s | %(message)s",
        datefmt="%Y-%m-%d %H:%M:%S"
    )

    console_handler = logging.StreamHandler()
    console_handler.setLevel(log_level)
    console_handler.setFormatter(main_format)

    root_logger = logging.getLogger("wan_switch")
    root_logger.setLevel(logging.DEBUG)  # Capture all, handlers filter
    root_logger.handlers.clear()
    root_logger.addHandler(console_handler)

    if log_file:
        log_file.parent.mkdir(parents=True, exist_ok=True)
        file_handler = RotatingFileHandler(
            log_file,
            maxBytes=max_size_mb * 1024 * 1024,
            backupCount=backup_count,
            encoding="utf-8"
        )
        file_handler.setLevel(logging.DEBUG)
        file_handler.setFormatter(main_format)
        root_logger.addHandler(file_handler)

    # Child of wan_switch, shares its handlers
    perf_logger.setLevel(logging.DEBUG)

    root_logger.info(
        f"Logging initialized: level={logging.getLevelName(log_level)}, "
        f"file={log_file or 'console only'}"
    )


def timed(operation: str):
    """Decorator to log execution time of a coroutine function.

    Args:
        operation: Name of the operation (e.g., "ip_command", "switch")

    Usage:
        @timed("switch")
        async def apply(self, address, target_wan):
            ...
    """
    def decorator(func: Callable) -> Callable:
        @functools.wraps(func)
        async def wrapper(*args, **kwargs) -> Any:
            start = time.perf_counter()
            try:
                result = await func(*args, **kwargs)
                elapsed = (time.perf_counter() - start) * 1000  # ms
                perf_logger.debug(f"{operation:20s} | {elapsed:8.2f}ms | OK")
                return result
            except Exception as e:
                elapsed = (time.perf_counter() - start) * 1000
                perf_logger.warning(f"{operation:20s} | {elapsed:8.2f}ms | FAIL: {e}")
                raise

        return wrapper

    return decorator

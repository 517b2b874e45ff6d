"""Utility modules for logging, auditing and retries."""
from .connection import with_retry
from .logging_config import setup_logging, timed, perf_logger
from .audit_log import ChangeTracker, ChangeRecord, setup_audit_logging

__all__ = [
    "with_retry",
    "setup_logging",
    "timed",
    "perf_logger",
    "ChangeTracker",
    "ChangeRecord",
    "setup_audit_logging",
]

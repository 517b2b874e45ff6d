"""Audit trail for routing changes.

Every switch attempt is written as one JSON line to the ``wan_switch.audit``
logger, including the assignment before and after and the directives applied.
"""
import json
import logging
import os
from dataclasses import dataclass, asdict
from datetime import datetime, timezone
from logging.handlers import RotatingFileHandler
from pathlib import Path
from typing import Optional

audit_logger = logging.getLogger("wan_switch.audit")


def setup_audit_logging(log_dir: Optional[str] = None) -> Path:
    """Configure audit logging to file.

    Args:
        log_dir: Directory for audit logs. Defaults to WAN_SWITCH_AUDIT_DIR
            or ~/.wan-switch/

    Returns:
        Path of the audit log file
    """
    if log_dir is None:
        log_dir = os.environ.get(
            "WAN_SWITCH_AUDIT_DIR", os.path.expanduser("~/.wan-switch")
        )

    Path(log_dir).mkdir(parents=True, exist_ok=True)
    audit_file = Path(log_dir) / "audit.log"

    audit_logger.setLevel(logging.INFO)
    audit_logger.handlers.clear()

    handler = RotatingFileHandler(
        audit_file,
        maxBytes=10 * 1024 * 1024,  # 10MB
        backupCount=10,
    )
    handler.setFormatter(logging.Formatter("%(message)s"))
    audit_logger.addHandler(handler)

    # Don't propagate to the console
    audit_logger.propagate = False
    return audit_file


@dataclass
class ChangeRecord:
    """Record of one routing change attempt."""
    timestamp: str
    operation: str  # switch, bootstrap
    success: bool
    parameters: dict
    before_state: Optional[dict] = None
    after_state: Optional[dict] = None
    directives: Optional[list[str]] = None
    error: Optional[str] = None

    def to_json(self) -> str:
        return json.dumps(asdict(self), indent=None)

    @classmethod
    def from_json(cls, json_str: str) -> "ChangeRecord":
        return cls(**json.loads(json_str))


class ChangeTracker:
    """Write change records to the audit logger."""

    def log_change(
        self,
        operation: str,
        parameters: dict,
        success: bool,
        error: Optional[str] = None,
        before_state: Optional[dict] = None,
        after_state: Optional[dict] = None,
        directives: Optional[list[str]] = None,
    ) -> ChangeRecord:
        """Log a routing change.

        Returns:
            The ChangeRecord that was logged
        """
        record = ChangeRecord(
            timestamp=datetime.now(timezone.utc).isoformat(),
            operation=operation,
            success=success,
            parameters=parameters,
            before_state=before_state,
            after_state=after_state,
            directives=directives,
            error=error,
        )

        audit_logger.info(record.to_json())

        return record

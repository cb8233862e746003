# Core Module - Cycle Audit Trail
#
# Append-only structured audit log of collection-cycle activity: cycle
# start/finish/skip, slot publishes, forwarding results and health ticks.
# Events are JSON lines (structlog) in a daily audit_YYYY-MM-DD.log file.

import json
import logging
from datetime import datetime
from enum import Enum
from pathlib import Path
from typing import Any, Dict, List, Optional
from uuid import uuid4

import structlog

AUDIT_LOGGER_NAME = "global_sentinel.audit"
DEFAULT_AUDIT_DIR = Path("./audit_logs")


class CycleEventType(str, Enum):
    """Types of pipeline events recorded in the audit trail."""

    CYCLE_STARTED = "cycle.started"
    CYCLE_COMPLETED = "cycle.completed"
    CYCLE_FAILED = "cycle.failed"
    CYCLE_SKIPPED = "cycle.skipped"
    SLOTS_PUBLISHED = "slots.published"
    FORWARD_COMPLETED = "forward.completed"
    HEALTH_TICK = "health.tick"


class AuditLogger:
    """
    Append-only audit logger for pipeline events.

    Features:
    - Structured JSON lines with ISO timestamps
    - Automatic event ID per entry
    - One file per day under ``log_dir``
    """

    def __init__(self, log_dir: Optional[Path] = None):
        """
        Initialize audit logger.

        Args:
            log_dir: Directory for audit logs (default: ./audit_logs)
        """
        self.log_dir = Path(log_dir) if log_dir else DEFAULT_AUDIT_DIR
        self.log_dir.mkdir(parents=True, exist_ok=True)

        structlog.configure(
            processors=[
                structlog.stdlib.add_log_level,
                structlog.stdlib.add_logger_name,
                structlog.processors.TimeStamper(fmt="iso"),
                structlog.processors.StackInfoRenderer(),
                structlog.processors.format_exc_info,
                structlog.processors.JSONRenderer(),
            ],
            wrapper_class=structlog.stdlib.BoundLogger,
            context_class=dict,
            logger_factory=structlog.stdlib.LoggerFactory(),
            cache_logger_on_first_use=True,
        )

        self._handler: Optional[logging.Handler] = None
        self._setup_file_handler()
        self.logger = structlog.get_logger(AUDIT_LOGGER_NAME)

    @property
    def log_file(self) -> Path:
        today = datetime.now().strftime("%Y-%m-%d")
        return self.log_dir / f"audit_{today}.log"

    def _setup_file_handler(self):
        """Attach a file handler for today's log to the audit logger only."""
        file_handler = logging.FileHandler(self.log_file, mode="a", encoding="utf-8")
        file_handler.setLevel(logging.INFO)
        file_handler.setFormatter(logging.Formatter("%(message)s"))

        audit_logger = logging.getLogger(AUDIT_LOGGER_NAME)
        audit_logger.addHandler(file_handler)
        audit_logger.setLevel(logging.INFO)
        audit_logger.propagate = False
        self._handler = file_handler

    def close(self) -> None:
        if self._handler is not None:
            logging.getLogger(AUDIT_LOGGER_NAME).removeHandler(self._handler)
            self._handler.close()
            self._handler = None

    def log_event(
        self,
        event_type: CycleEventType,
        message: str,
        details: Optional[Dict[str, Any]] = None,
    ) -> str:
        """
        Append one event.

        Returns:
            str: Event ID (UUID) for reference
        """
        event_id = str(uuid4())
        self.logger.info(
            "pipeline_event",
            event_id=event_id,
            event_type=event_type.value,
            message=message,
            details=details or {},
        )
        return event_id

    def read_events(self, limit: int = 100) -> List[Dict[str, Any]]:
        """Most recent events from today's file, oldest first."""
        if self._handler is not None:
            self._handler.flush()
        path = self.log_file
        if not path.exists():
            return []
        events: List[Dict[str, Any]] = []
        with open(path, encoding="utf-8") as fh:
            for line in fh:
                line = line.strip()
                if not line:
                    continue
                try:
                    events.append(json.loads(line))
                except json.JSONDecodeError:
                    continue
        return events[-limit:] if limit else events


# Global logger instance
_audit_logger: Optional[AuditLogger] = None


def get_audit_logger() -> AuditLogger:
    """Get global audit logger (singleton pattern)."""
    global _audit_logger
    if _audit_logger is None:
        _audit_logger = AuditLogger()
    return _audit_logger


def set_audit_logger(audit: Optional[AuditLogger]) -> None:
    """Replace the global audit logger (None resets it)."""
    global _audit_logger
    if _audit_logger is not None and _audit_logger is not audit:
        _audit_logger.close()
    _audit_logger = audit


def log_cycle_event(
    event_type: CycleEventType, message: str, **details: Any
) -> str:
    """
    Convenience function for logging pipeline events.

    Usage:
        log_cycle_event(
            CycleEventType.CYCLE_SKIPPED,
            "Cycle already running",
            trigger="manual",
        )
    """
    return get_audit_logger().log_event(event_type, message, details=details)

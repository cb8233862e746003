# Core Module - Shared Utilities
#
# - SQLite connection helper
# - Cycle audit logging
# - Process-wide logging setup

import logging

from .audit_log import (
    AuditLogger,
    CycleEventType,
    get_audit_logger,
    log_cycle_event,
    set_audit_logger,
)

LOG_FORMAT = "%(asctime)s %(levelname)-8s %(name)s: %(message)s"


def setup_logging(level: str = "INFO") -> None:
    """Configure root logging for the CLI entry point."""
    logging.basicConfig(level=getattr(logging, level.upper(), logging.INFO), format=LOG_FORMAT)
    # httpx logs every request at INFO
    logging.getLogger("httpx").setLevel(logging.WARNING)


__all__ = [
    # Audit Logging
    "AuditLogger",
    "CycleEventType",
    "get_audit_logger",
    "log_cycle_event",
    "set_audit_logger",
    # Logging
    "setup_logging",
]

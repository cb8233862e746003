# Global Sentinel - Main Package
#
# Periodic OSINT threat aggregation: collect from feeds, APIs, pages and
# communities; normalize and score; publish the top N into fixed slots;
# forward downstream; compute chaos indices.

__version__ = "1.0.0"
__author__ = "Global Sentinel Team"
__description__ = "Global threat aggregation pipeline"

from .core import CycleEventType, get_audit_logger
from .errors import (
    CollectorError,
    ConfigError,
    NormalizationError,
    PublishError,
    SentinelError,
    SourceConfigError,
)

__all__ = [
    "__version__",
    "CycleEventType",
    "get_audit_logger",
    "SentinelError",
    "ConfigError",
    "SourceConfigError",
    "CollectorError",
    "NormalizationError",
    "PublishError",
]

# Global Sentinel - Error Taxonomy
#
# Only PublishError is fatal to a collection cycle.  Everything else is
# caught at the component boundary and degrades to partial data.


class SentinelError(Exception):
    """Base class for all Global Sentinel errors."""


class ConfigError(SentinelError):
    """Raised when settings cannot be loaded or fail validation."""


class SourceConfigError(SentinelError):
    """A source definition is unusable (missing selector, malformed URL,
    unknown response shape).  The collector yields zero items for it."""


class CollectorError(SentinelError):
    """A fetch or parse failed inside a collector."""


class NormalizationError(SentinelError):
    """A raw item could not be turned into a ThreatRecord."""


class PublishError(SentinelError):
    """The slot batch could not be committed; previous slots remain."""

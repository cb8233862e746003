"""Relevance filter: drops low-quality or off-topic records after normalization."""

from . import keywords as kw
from .models import ThreatRecord
from .normalizer import keyword_hits


def is_relevant(record: ThreatRecord) -> bool:
    """Return True if the record should enter selection."""
    title = record.title or ""
    if len(title) < kw.MIN_TITLE_LENGTH:
        return False
    if record.severity < kw.MIN_SEVERITY:
        return False
    return not keyword_hits(title.lower(), kw.OFF_TOPIC_KEYWORDS)

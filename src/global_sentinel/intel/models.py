# Intel Module - Threat Record Data Models
#
# Defines the data flowing through a collection cycle:
#   SourceConfig   - one configured origin (feed, API, HTML page, community)
#   RawSourceItem  - one fetched entry, minimally shaped by a collector
#   ThreatRecord   - the canonical, scored unit published into slots
#
# RawSourceItem is discarded once normalized; ThreatRecord is superseded
# wholesale by the next successful cycle.

from dataclasses import asdict, dataclass, field
from datetime import datetime, timezone
from enum import Enum
from typing import Any, Dict, List, Optional, Union


class ThreatCategory(str, Enum):
    """Fixed domain enum for threat records."""

    CYBER = "Cyber"
    HEALTH = "Health"
    CLIMATE = "Climate"
    ECONOMIC = "Economic"
    CONFLICT = "Conflict"
    NATURAL = "Natural"
    GENERAL = "General"
    INTELLIGENCE = "Intelligence"
    NEWS = "News"
    AI = "AI"

    @classmethod
    def from_hint(cls, hint: Optional[str]) -> Optional["ThreatCategory"]:
        """Resolve a collector-supplied hint to a category.

        Accepts a category name in any case or a source-kind alias
        (``rss``, ``api``, ``html``, ...).  Returns None for unknown hints.
        """
        if hint is None:
            return None
        if isinstance(hint, cls):
            return hint
        key = str(hint).strip().lower()
        if not key:
            return None
        for member in cls:
            if member.value.lower() == key:
                return member
        return _KIND_ALIASES.get(key)


_KIND_ALIASES: Dict[str, ThreatCategory] = {
    "rss": ThreatCategory.GENERAL,
    "feed": ThreatCategory.GENERAL,
    "api": ThreatCategory.INTELLIGENCE,
    "html": ThreatCategory.NEWS,
    "social": ThreatCategory.GENERAL,
    "reddit": ThreatCategory.GENERAL,
}


class SourceKind(str, Enum):
    """Class of external source a collector handles."""

    FEED = "feed"
    API = "api"
    HTML = "html"
    SOCIAL = "social"


class ThreatStatus(str, Enum):
    ACTIVE = "active"
    MONITORING = "monitoring"
    RESOLVED = "resolved"


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


def isoformat(dt: datetime) -> str:
    """Render an aware-or-naive datetime as a UTC ISO instant."""
    if dt.tzinfo is None:
        dt = dt.replace(tzinfo=timezone.utc)
    return dt.astimezone(timezone.utc).isoformat()


# ---------------------------------------------------------------------------
# Source side
# ---------------------------------------------------------------------------


@dataclass
class SourceConfig:
    """Definition of a single source a collector should fetch.

    ``selectors`` is only used by the HTML collector (keys ``title``,
    ``summary``, ``date``, ``link``); ``params`` and ``shape`` only by the
    structured-API collector.
    """

    name: str
    url: str
    kind: SourceKind = SourceKind.FEED
    category: Optional[str] = None
    priority: str = "medium"
    selectors: Dict[str, str] = field(default_factory=dict)
    params: Dict[str, Any] = field(default_factory=dict)
    shape: Optional[str] = None

    def to_dict(self) -> Dict[str, Any]:
        d = asdict(self)
        d["kind"] = self.kind.value
        return d


@dataclass
class RawSourceItem:
    """Source-specific payload produced by a collector."""

    title: str
    summary: str = ""
    link: str = ""
    published: Union[datetime, str, int, float, None] = None
    source_name: str = ""
    source_kind: SourceKind = SourceKind.FEED
    category_hint: Optional[str] = None
    priority: str = "medium"
    metadata: Dict[str, Any] = field(default_factory=dict)


# ---------------------------------------------------------------------------
# Canonical record
# ---------------------------------------------------------------------------


@dataclass
class VoteTally:
    """Credibility counters owned by the external voting feature."""

    credible: int = 0
    not_credible: int = 0

    def to_dict(self) -> Dict[str, int]:
        return {"credible": self.credible, "not_credible": self.not_credible}


@dataclass
class ThreatRecord:
    """Canonical, scored threat record.

    ``timestamp`` is the source's own date when it could be parsed and the
    collection time otherwise; ``collected_at`` is always collection time.
    """

    id: str
    title: str
    summary: str
    category: ThreatCategory = ThreatCategory.GENERAL
    severity: int = 0
    confidence: int = 0
    regions: List[str] = field(default_factory=lambda: ["Global"])
    tags: List[str] = field(default_factory=lambda: ["intelligence"])
    sources: List[str] = field(default_factory=list)
    timestamp: str = field(default_factory=lambda: isoformat(utcnow()))
    collected_at: str = field(default_factory=lambda: isoformat(utcnow()))
    status: ThreatStatus = ThreatStatus.ACTIVE
    votes: VoteTally = field(default_factory=VoteTally)
    signal_type: str = ""
    source_name: str = ""
    location: Optional[Dict[str, float]] = None

    def __post_init__(self):
        if not isinstance(self.category, ThreatCategory):
            resolved = ThreatCategory.from_hint(self.category)
            if resolved is None:
                raise ValueError(f"Unknown threat category: {self.category!r}")
            self.category = resolved
        if not isinstance(self.status, ThreatStatus):
            self.status = ThreatStatus(self.status)
        if isinstance(self.votes, dict):
            self.votes = VoteTally(
                credible=int(self.votes.get("credible", 0)),
                not_credible=int(self.votes.get("not_credible", 0)),
            )
        self.severity = max(0, min(100, int(self.severity)))
        self.confidence = max(0, min(100, int(self.confidence)))
        self.regions = [r for r in self.regions if r] or ["Global"]
        self.tags = [t for t in self.tags if t] or ["intelligence"]

    @property
    def published_at(self) -> datetime:
        """``timestamp`` as an aware datetime."""
        dt = datetime.fromisoformat(self.timestamp)
        if dt.tzinfo is None:
            dt = dt.replace(tzinfo=timezone.utc)
        return dt

    def to_dict(self) -> Dict[str, Any]:
        d = asdict(self)
        d["category"] = self.category.value
        d["status"] = self.status.value
        d["votes"] = self.votes.to_dict()
        return d

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "ThreatRecord":
        """Rebuild a record from ``to_dict()`` output (extra keys ignored)."""
        known = {f for f in cls.__dataclass_fields__}
        return cls(**{k: v for k, v in data.items() if k in known})

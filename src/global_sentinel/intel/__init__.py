# Intel Module - Threat Collection Pipeline
#
# Collectors, normalization and scoring, selection, slot publishing,
# forwarding, scheduling and chaos-index analytics.

from .models import (
    ThreatCategory,
    SourceKind,
    ThreatStatus,
    SourceConfig,
    RawSourceItem,
    VoteTally,
    ThreatRecord,
)
from .collector import SourceCollector
from .feed_collector import FeedCollector
from .api_collector import ApiCollector
from .html_collector import HtmlCollector
from .social_collector import SocialCollector
from .normalizer import normalize, normalize_batch
from .relevance import is_relevant
from .selection import select
from .store import ThreatStore, BatchOp
from .publisher import SlotPublisher, PublishResult, slot_key
from .forwarder import ForwardingClient, ForwardOutcome
from .pipeline import CollectionPipeline, CollectorResult, CycleReport
from .scheduler import CycleScheduler, SchedulerState
from .chaos_index import (
    threat_score,
    domain_index,
    global_index,
    chaos_snapshot,
)

__all__ = [
    # Data models
    "ThreatCategory",
    "SourceKind",
    "ThreatStatus",
    "SourceConfig",
    "RawSourceItem",
    "VoteTally",
    "ThreatRecord",
    # Collectors
    "SourceCollector",
    "FeedCollector",
    "ApiCollector",
    "HtmlCollector",
    "SocialCollector",
    # Normalization & selection
    "normalize",
    "normalize_batch",
    "is_relevant",
    "select",
    # Storage & publishing
    "ThreatStore",
    "BatchOp",
    "SlotPublisher",
    "PublishResult",
    "slot_key",
    # Forwarding
    "ForwardingClient",
    "ForwardOutcome",
    # Pipeline & scheduling
    "CollectionPipeline",
    "CollectorResult",
    "CycleReport",
    "CycleScheduler",
    "SchedulerState",
    # Chaos index
    "threat_score",
    "domain_index",
    "global_index",
    "chaos_snapshot",
]

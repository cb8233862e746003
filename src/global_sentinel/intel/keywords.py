# Intel Module - Static Classification Tables
#
# Data-driven lookup tables for the normalizer, relevance filter and
# chaos-index engine.  Loaded once at import; nothing here mutates.
#
# Category detection is first-match-wins, so CATEGORY_PRIORITY fixes the
# scan order explicitly instead of relying on dict declaration order.

from typing import Dict, List, Tuple

from .models import ThreatCategory

# ── Category detection ───────────────────────────────────────────────

CATEGORY_KEYWORDS: Dict[ThreatCategory, List[str]] = {
    ThreatCategory.HEALTH: [
        "health", "disease", "virus", "pandemic", "outbreak", "medical",
        "who", "cdc",
    ],
    ThreatCategory.CYBER: [
        "cyber", "hack", "breach", "ransomware", "malware", "security",
        "data leak",
    ],
    ThreatCategory.AI: [
        "artificial intelligence", "deepfake", "machine learning",
        "ai model", "chatbot",
    ],
    ThreatCategory.CLIMATE: [
        "climate", "weather", "hurricane", "flood", "drought",
        "temperature", "wildfire",
    ],
    ThreatCategory.ECONOMIC: [
        "economy", "market", "inflation", "recession", "gdp", "financial",
        "trade",
    ],
    ThreatCategory.CONFLICT: [
        "war", "conflict", "military", "weapons", "terrorism", "violence",
        "protest",
    ],
    ThreatCategory.NATURAL: [
        "earthquake", "tsunami", "volcano", "natural disaster", "geological",
    ],
}

CATEGORY_PRIORITY: Tuple[ThreatCategory, ...] = (
    ThreatCategory.HEALTH,
    ThreatCategory.CYBER,
    ThreatCategory.AI,
    ThreatCategory.CLIMATE,
    ThreatCategory.ECONOMIC,
    ThreatCategory.CONFLICT,
    ThreatCategory.NATURAL,
)

# ── Severity tiers ───────────────────────────────────────────────────

SEVERITY_BASE = 20

# (tier, per-keyword weight, keywords) in scoring order
SEVERITY_TIERS: Tuple[Tuple[str, int, Tuple[str, ...]], ...] = (
    ("critical", 25, (
        "pandemic", "outbreak", "nuclear", "terrorist", "collapse", "war",
        "invasion", "cyber attack", "ransomware",
    )),
    ("high", 15, (
        "crisis", "emergency", "disaster", "conflict", "threat", "breach",
        "hack", "shortage", "inflation",
    )),
    ("medium", 10, (
        "risk", "concern", "warning", "alert", "unstable", "tension",
        "protest", "strike",
    )),
    ("low", 5, (
        "monitoring", "watch", "developing", "potential", "possible",
    )),
)

# Seismic magnitude -> severity, checked top-down
MAGNITUDE_STEPS: Tuple[Tuple[float, int], ...] = (
    (7.0, 90),
    (6.0, 75),
    (5.0, 60),
    (4.0, 45),
)
MAGNITUDE_FLOOR_SEVERITY = 30

# Social engagement bonus: (metadata key, threshold, bonus)
ENGAGEMENT_BONUSES: Tuple[Tuple[str, int, int], ...] = (
    ("score", 1000, 10),
    ("comments", 100, 5),
)

# ── Confidence ───────────────────────────────────────────────────────

CONFIDENCE_BASE = 60
CONFIDENCE_PER_HIT = 5
CONFIDENCE_HIT_CAP = 15
PRIORITY_CONFIDENCE: Dict[str, int] = {
    "critical": 20,
    "high": 15,
    "medium": 10,
    "low": 5,
}

# ── Regions & tags ───────────────────────────────────────────────────

DEFAULT_REGION = "Global"

REGION_KEYWORDS: Dict[str, List[str]] = {
    "North America": ["usa", "united states", "canada", "mexico", "america"],
    "Europe": ["europe", "eu", "germany", "france", "uk", "britain"],
    "Asia": ["china", "japan", "india", "asia", "korea", "singapore"],
    "Middle East": ["israel", "iran", "saudi", "dubai", "turkey"],
    "Africa": ["africa", "nigeria", "south africa", "egypt"],
    "South America": ["brazil", "argentina", "chile", "colombia"],
}

DEFAULT_TAG = "intelligence"

TAG_KEYWORDS: Dict[str, List[str]] = {
    "cyber": ["cyber", "hack", "malware", "breach", "ransomware"],
    "climate": ["climate", "drought", "flood", "hurricane", "wildfire"],
    "conflict": ["war", "conflict", "military", "tension", "dispute"],
    "health": ["health", "disease", "pandemic", "outbreak", "virus"],
    "economic": ["economic", "market", "financial", "trade", "currency"],
}

# ── Social communities ───────────────────────────────────────────────

COMMUNITY_CATEGORIES: Dict[str, ThreatCategory] = {
    "worldnews": ThreatCategory.GENERAL,
    "news": ThreatCategory.GENERAL,
    "geopolitics": ThreatCategory.CONFLICT,
    "cybersecurity": ThreatCategory.CYBER,
    "climate": ThreatCategory.CLIMATE,
    "economics": ThreatCategory.ECONOMIC,
    "pandemic": ThreatCategory.HEALTH,
}

# ── Relevance filter ─────────────────────────────────────────────────

MIN_TITLE_LENGTH = 10
MIN_SEVERITY = 25
OFF_TOPIC_KEYWORDS: Tuple[str, ...] = (
    "sports", "celebrity", "entertainment", "music", "movie", "game",
    "fashion",
)

# ── Chaos index ──────────────────────────────────────────────────────

CREDIBLE_DOMAINS: Tuple[str, ...] = (
    "who.int", "un.org", "nato.int", "cdc.gov", "fbi.gov",
    "reuters.com", "bbc.com", "ft.com", "economist.com",
    "nature.com", "science.org", "arxiv.org", "pubmed.ncbi.nlm.nih.gov",
)

ESCALATION_FACTORS: Dict[ThreatCategory, float] = {
    ThreatCategory.CYBER: 1.2,
    ThreatCategory.HEALTH: 1.3,
    ThreatCategory.CLIMATE: 1.1,
    ThreatCategory.CONFLICT: 1.4,
    ThreatCategory.ECONOMIC: 1.1,
    ThreatCategory.AI: 1.3,
}

DOMAIN_WEIGHTS: Dict[ThreatCategory, float] = {
    ThreatCategory.CYBER: 0.20,
    ThreatCategory.HEALTH: 0.25,
    ThreatCategory.CLIMATE: 0.15,
    ThreatCategory.CONFLICT: 0.25,
    ThreatCategory.ECONOMIC: 0.10,
    ThreatCategory.AI: 0.05,
}

REGION_SPREAD_PER_REGION = 5
REGION_SPREAD_CAP = 25
CREDIBLE_SOURCE_BONUS = 3
DECAY_WINDOW_HOURS = 168.0
DECAY_FLOOR = 0.5
ACTIVE_DOMAIN_THRESHOLD = 30
CONVERGENCE_MIN_DOMAINS = 2
CONVERGENCE_STEP = 0.1

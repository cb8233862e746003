# Intel Module - Record Normalizer / Classifier
#
# Converts one RawSourceItem into a canonical ThreatRecord:
#   1. Clean title/summary (markup, entities, whitespace, length caps)
#   2. Detect category (ordered keyword table -> hint -> General)
#   3. Score severity (keyword tiers, seismic override, engagement bonus)
#   4. Infer region, extract tags, derive confidence
#   5. Parse the source timestamp (falls back to collection time)
#
# Deterministic and free of I/O; the clock is injected via ``now``.

import hashlib
import html
import logging
import re
from datetime import datetime, timezone
from functools import lru_cache
from typing import Iterable, List, Optional, Tuple

from dateutil import parser as date_parser

from ..errors import NormalizationError
from . import keywords as kw
from .models import (
    RawSourceItem,
    SourceKind,
    ThreatCategory,
    ThreatRecord,
    isoformat,
    utcnow,
)

logger = logging.getLogger(__name__)

TITLE_MAX_LEN = 200
SUMMARY_MAX_LEN = 500
UNTITLED = "Untitled"

_TAG_RE = re.compile(r"<[^>]*>")
_WS_RE = re.compile(r"\s+")


# ── Keyword matching ─────────────────────────────────────────────────

@lru_cache(maxsize=None)
def _keyword_pattern(keyword: str) -> "re.Pattern[str]":
    # Keywords anchor at a word start; short ones must also end at a word
    # boundary so "who" does not fire on "whole".
    tail = r"(?![a-z0-9])" if len(keyword) <= 3 else ""
    return re.compile(r"(?<![a-z0-9])" + re.escape(keyword) + tail)


def keyword_hits(text: str, keywords: Iterable[str]) -> List[str]:
    """Return the distinct keywords found in lowercase ``text``."""
    hits: List[str] = []
    for word in keywords:
        if word not in hits and _keyword_pattern(word).search(text):
            hits.append(word)
    return hits


# ── Cleaning ─────────────────────────────────────────────────────────

def clean_text(value: Optional[str]) -> str:
    """Strip markup, unescape entities and collapse whitespace."""
    if not value:
        return ""
    text = _TAG_RE.sub(" ", str(value))
    text = html.unescape(text)
    return _WS_RE.sub(" ", text).strip()


def clean_title(title: Optional[str]) -> str:
    cleaned = clean_text(title)
    return cleaned[:TITLE_MAX_LEN] if cleaned else UNTITLED


def extract_summary(summary: Optional[str], fallback: str = "") -> str:
    cleaned = clean_text(summary) or clean_text(fallback)
    return cleaned[:SUMMARY_MAX_LEN]


# ── Classification ───────────────────────────────────────────────────

def detect_category(
    text: str, hint: Optional[str] = None
) -> ThreatCategory:
    """First category (in CATEGORY_PRIORITY order) with a keyword hit."""
    for category in kw.CATEGORY_PRIORITY:
        if keyword_hits(text, kw.CATEGORY_KEYWORDS.get(category, ())):
            return category
    return ThreatCategory.from_hint(hint) or ThreatCategory.GENERAL


def severity_hits(text: str) -> List[Tuple[str, int, List[str]]]:
    """Per tier: (tier, weight, matched keywords)."""
    return [
        (tier, weight, keyword_hits(text, words))
        for tier, weight, words in kw.SEVERITY_TIERS
    ]


def calculate_severity(text: str) -> int:
    severity = kw.SEVERITY_BASE
    for _tier, weight, hits in severity_hits(text):
        severity += weight * len(hits)
    return max(0, min(100, severity))


def earthquake_severity(magnitude: float) -> int:
    for threshold, severity in kw.MAGNITUDE_STEPS:
        if magnitude >= threshold:
            return severity
    return kw.MAGNITUDE_FLOOR_SEVERITY


def engagement_bonus(metadata: dict) -> int:
    bonus = 0
    for key, threshold, points in kw.ENGAGEMENT_BONUSES:
        try:
            value = float(metadata.get(key) or 0)
        except (TypeError, ValueError):
            continue
        if value > threshold:
            bonus += points
    return bonus


def calculate_confidence(priority: str, hit_count: int) -> int:
    confidence = (
        kw.CONFIDENCE_BASE
        + kw.PRIORITY_CONFIDENCE.get((priority or "").lower(), 0)
        + min(kw.CONFIDENCE_HIT_CAP, hit_count * kw.CONFIDENCE_PER_HIT)
    )
    return max(0, min(100, confidence))


def infer_region(text: str) -> str:
    for region, words in kw.REGION_KEYWORDS.items():
        if keyword_hits(text, words):
            return region
    return kw.DEFAULT_REGION


def extract_tags(text: str) -> List[str]:
    tags = [tag for tag, words in kw.TAG_KEYWORDS.items() if keyword_hits(text, words)]
    return tags or [kw.DEFAULT_TAG]


# ── Timestamps & identity ────────────────────────────────────────────

def parse_timestamp(value, now: datetime) -> datetime:
    """Best-effort parse of a source date; ``now`` when unparseable."""
    parsed: Optional[datetime] = None
    if isinstance(value, datetime):
        parsed = value
    elif isinstance(value, (int, float)) and not isinstance(value, bool):
        try:
            parsed = datetime.fromtimestamp(float(value), tz=timezone.utc)
        except (OverflowError, OSError, ValueError):
            parsed = None
    elif isinstance(value, str) and value.strip():
        try:
            parsed = date_parser.parse(value.strip())
        except (ValueError, OverflowError):
            parsed = None

    if parsed is None:
        return now
    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=timezone.utc)
    return parsed.astimezone(timezone.utc)


def record_id(source_name: str, link: str, title: str) -> str:
    """Stable identifier derived from origin and title."""
    h = hashlib.sha256()
    for part in (source_name, link, title):
        h.update((part or "").encode("utf-8", errors="ignore"))
        h.update(b"|")
    return h.hexdigest()[:24]


# ── Entry points ─────────────────────────────────────────────────────

def normalize(
    item: RawSourceItem,
    source_hint: Optional[str] = None,
    now: Optional[datetime] = None,
) -> ThreatRecord:
    """Convert one raw item into a ThreatRecord.

    Raises:
        NormalizationError: if the item is not a usable RawSourceItem.
    """
    if not isinstance(item, RawSourceItem):
        raise NormalizationError(f"Expected RawSourceItem, got {type(item).__name__}")

    now = now or utcnow()
    metadata = item.metadata or {}

    title = clean_title(item.title)
    summary = extract_summary(item.summary, fallback=title)
    text = f"{title} {summary}".lower()

    hint = source_hint if source_hint is not None else item.category_hint
    category = detect_category(text, hint)

    tiers = severity_hits(text)
    hit_count = sum(len(hits) for _t, _w, hits in tiers)

    magnitude = metadata.get("magnitude")
    if magnitude is not None:
        try:
            severity = earthquake_severity(float(magnitude))
        except (TypeError, ValueError) as exc:
            raise NormalizationError(f"Bad magnitude {magnitude!r}") from exc
    else:
        severity = calculate_severity(text)
        if item.source_kind == SourceKind.SOCIAL:
            severity = min(100, severity + engagement_bonus(metadata))

    link = (item.link or "").strip()
    sources = [link] if link else [item.source_name or item.source_kind.value]

    location = None
    if "latitude" in metadata and "longitude" in metadata:
        location = {
            "latitude": metadata["latitude"],
            "longitude": metadata["longitude"],
        }
        if metadata.get("depth") is not None:
            location["depth"] = metadata["depth"]

    return ThreatRecord(
        id=record_id(item.source_name, link, title),
        title=title,
        summary=summary,
        category=category,
        severity=severity,
        confidence=calculate_confidence(item.priority, hit_count),
        regions=[infer_region(text)],
        tags=extract_tags(text),
        sources=sources,
        timestamp=isoformat(parse_timestamp(item.published, now)),
        collected_at=isoformat(now),
        signal_type=item.source_kind.value,
        source_name=item.source_name,
        location=location,
    )


def normalize_batch(
    items: Iterable[RawSourceItem],
    now: Optional[datetime] = None,
) -> Tuple[List[ThreatRecord], int]:
    """Normalize many items, skipping malformed ones.

    Returns:
        (records, skipped_count)
    """
    now = now or utcnow()
    records: List[ThreatRecord] = []
    skipped = 0
    for item in items:
        try:
            records.append(normalize(item, now=now))
        except (NormalizationError, ValueError, TypeError, AttributeError) as exc:
            skipped += 1
            logger.warning("Skipping malformed item: %s", exc)
    return records, skipped

# Intel Module - Chaos-Index Scoring Engine
#
# Stateless scoring over a record set, at three granularities:
#   threat_score  - one record: severity + spread + credible sources,
#                   decayed by age, escalated by category
#   domain_index  - quadratic-weighted mean of threat scores in a category
#   global_index  - weighted sum of domain indices with a convergence boost
#
# Every value is re-derived from the records alone; ``now`` is injectable
# so results are reproducible.

import math
from datetime import datetime
from typing import Dict, Iterable, Optional, Sequence
from urllib.parse import urlparse

from . import keywords as kw
from .models import ThreatCategory, ThreatRecord, utcnow


def _round_half_up(value: float) -> int:
    return int(math.floor(value + 0.5))


def _clamp(value: int) -> int:
    return max(0, min(100, value))


def is_credible_source(source: str) -> bool:
    """True if the source's host is (a subdomain of) an allow-listed domain."""
    if not source:
        return False
    text = source.strip().lower()
    host = urlparse(text).hostname if "://" in text else text.split("/", 1)[0]
    if not host:
        return False
    return any(host == d or host.endswith("." + d) for d in kw.CREDIBLE_DOMAINS)


def recency_multiplier(record: ThreatRecord, now: datetime) -> float:
    """Linear decay to half weight over one week, floored at 0.5."""
    hours_old = max(0.0, (now - record.published_at).total_seconds() / 3600.0)
    return max(kw.DECAY_FLOOR, 1.0 - hours_old / kw.DECAY_WINDOW_HOURS)


def nominal_score(record: ThreatRecord) -> float:
    """Score before decay, escalation and rounding."""
    spread = min(
        len(record.regions or ["Global"]) * kw.REGION_SPREAD_PER_REGION,
        kw.REGION_SPREAD_CAP,
    )
    credible = sum(1 for s in record.sources if is_credible_source(s))
    return record.severity + spread + credible * kw.CREDIBLE_SOURCE_BONUS


def threat_score(record: ThreatRecord, now: Optional[datetime] = None) -> int:
    """Per-threat chaos contribution, 0-100."""
    now = now or utcnow()
    score = nominal_score(record)
    score *= recency_multiplier(record, now)
    score *= kw.ESCALATION_FACTORS.get(record.category, 1.0)
    return _clamp(_round_half_up(score))


def weighted_mean(scores: Sequence[int]) -> int:
    """Quadratic-weighted average: weight = (score/100)^2."""
    total_weight = 0.0
    weighted_sum = 0.0
    for s in scores:
        weight = (s / 100.0) ** 2
        weighted_sum += s * weight
        total_weight += weight
    if total_weight <= 0:
        return 0
    return _round_half_up(weighted_sum / total_weight)


def domain_index(
    records: Iterable[ThreatRecord],
    category: ThreatCategory,
    now: Optional[datetime] = None,
) -> int:
    now = now or utcnow()
    scores = [threat_score(r, now) for r in records if r.category == category]
    return weighted_mean(scores)


def domain_indices(
    records: Iterable[ThreatRecord], now: Optional[datetime] = None
) -> Dict[ThreatCategory, int]:
    """Index for every weighted domain."""
    now = now or utcnow()
    records = list(records)
    return {d: domain_index(records, d, now) for d in kw.DOMAIN_WEIGHTS}


def global_index(
    records: Iterable[ThreatRecord], now: Optional[datetime] = None
) -> int:
    """Weighted domain sum with a convergence boost, 0-100."""
    indices = domain_indices(records, now)
    total = sum(indices[d] * w for d, w in kw.DOMAIN_WEIGHTS.items())

    active = sum(1 for v in indices.values() if v > kw.ACTIVE_DOMAIN_THRESHOLD)
    if active > kw.CONVERGENCE_MIN_DOMAINS:
        total *= 1 + (active - kw.CONVERGENCE_MIN_DOMAINS) * kw.CONVERGENCE_STEP

    return _clamp(_round_half_up(total))


def chaos_snapshot(
    records: Iterable[ThreatRecord], now: Optional[datetime] = None
) -> Dict[str, object]:
    """Global and per-domain indices computed against one instant."""
    now = now or utcnow()
    records = list(records)
    return {
        "global": global_index(records, now),
        "domains": {d.value: v for d, v in domain_indices(records, now).items()},
        "threat_count": len(records),
        "computed_at": now.isoformat(),
    }

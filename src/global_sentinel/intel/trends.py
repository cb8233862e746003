"""Reporting helpers over a threat record set.

Read-side summaries for the operator API: per-domain statistics, regional
distribution, a daily chaos-index series and a period-over-period
comparison.  All functions are pure and take an explicit ``now`` where
time matters.
"""

from datetime import datetime, timedelta
from typing import Any, Dict, Iterable, List, Optional

from . import keywords as kw
from .chaos_index import domain_index, global_index
from .models import ThreatRecord, ThreatStatus, utcnow


def _average(values: List[int]) -> float:
    return sum(values) / len(values) if values else 0.0


def domain_stats(
    records: Iterable[ThreatRecord], now: Optional[datetime] = None
) -> Dict[str, Dict[str, int]]:
    now = now or utcnow()
    records = list(records)
    stats: Dict[str, Dict[str, int]] = {}
    for domain in kw.DOMAIN_WEIGHTS:
        in_domain = [r for r in records if r.category == domain]
        severities = [r.severity for r in in_domain]
        stats[domain.value] = {
            "count": len(in_domain),
            "average_severity": round(_average(severities)),
            "max_severity": max(severities, default=0),
            "active": sum(1 for r in in_domain if r.status == ThreatStatus.ACTIVE),
            "chaos_index": domain_index(records, domain, now),
        }
    return stats


def geographic_distribution(records: Iterable[ThreatRecord]) -> List[Dict[str, Any]]:
    """Threat count and severity per region, busiest region first."""
    by_region: Dict[str, List[int]] = {}
    for record in records:
        for region in record.regions:
            by_region.setdefault(region, []).append(record.severity)

    rows = [
        {
            "region": region,
            "threat_count": len(sevs),
            "average_severity": round(_average(sevs)),
            "max_severity": max(sevs),
        }
        for region, sevs in by_region.items()
    ]
    rows.sort(key=lambda row: (-row["threat_count"], row["region"]))
    return rows


def trend_series(
    records: Iterable[ThreatRecord],
    days: int = 30,
    now: Optional[datetime] = None,
) -> Dict[str, Any]:
    """Daily domain and global indices for the last ``days`` days.

    Each day is scored against its own end-of-day instant so that older
    days are not decayed relative to today.
    """
    if days < 1:
        raise ValueError("days must be >= 1")
    now = now or utcnow()
    records = list(records)

    labels: List[str] = []
    datasets: Dict[str, List[int]] = {d.value: [] for d in kw.DOMAIN_WEIGHTS}
    datasets["Global"] = []

    for offset in range(days - 1, -1, -1):
        day = (now - timedelta(days=offset)).date()
        labels.append(day.isoformat())
        day_records = [r for r in records if r.published_at.date() == day]
        day_end = datetime.combine(day, datetime.max.time(), tzinfo=now.tzinfo)
        for domain in kw.DOMAIN_WEIGHTS:
            datasets[domain.value].append(domain_index(day_records, domain, day_end))
        datasets["Global"].append(global_index(day_records, day_end))

    return {"labels": labels, "datasets": datasets}


def period_comparison(
    current: Iterable[ThreatRecord],
    previous: Iterable[ThreatRecord],
    now: Optional[datetime] = None,
) -> Dict[str, Any]:
    now = now or utcnow()
    current = list(current)
    previous = list(previous)

    current_chaos = global_index(current, now)
    previous_chaos = global_index(previous, now)
    if current_chaos > previous_chaos:
        trend = "increasing"
    elif current_chaos < previous_chaos:
        trend = "decreasing"
    else:
        trend = "stable"

    severity_change = _average([r.severity for r in current]) - _average(
        [r.severity for r in previous]
    )
    return {
        "chaos_index_change": current_chaos - previous_chaos,
        "threat_count_change": len(current) - len(previous),
        "average_severity_change": round(severity_change, 1),
        "trend": trend,
    }

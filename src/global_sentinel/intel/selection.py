# Intel Module - Aggregation & Selection
#
# Merges every collector's candidates into one ranked, capped list:
#   - drops records without a title or summary
#   - deduplicates by record id (higher severity, then more recent wins)
#   - orders by severity desc, timestamp desc, id asc
#   - truncates to the slot capacity

from typing import Dict, Iterable, List, Tuple

from .models import ThreatRecord

DEFAULT_CAPACITY = 30


def _rank_key(record: ThreatRecord) -> Tuple[int, float, str]:
    return (-record.severity, -record.published_at.timestamp(), record.id)


def deduplicate(records: Iterable[ThreatRecord]) -> List[ThreatRecord]:
    """Collapse records sharing an id, keeping the best-ranked one."""
    best: Dict[str, ThreatRecord] = {}
    for record in records:
        existing = best.get(record.id)
        if existing is None or _rank_key(record) < _rank_key(existing):
            best[record.id] = record
    return list(best.values())


def select(
    records: Iterable[ThreatRecord],
    capacity: int = DEFAULT_CAPACITY,
) -> List[ThreatRecord]:
    """Return at most ``capacity`` records in publication order."""
    if capacity < 0:
        raise ValueError("capacity must be >= 0")
    candidates = [r for r in records if r.title and r.summary]
    ranked = sorted(deduplicate(candidates), key=_rank_key)
    return ranked[:capacity]

"""
Tests for threat data models.

Covers: category hint resolution, record coercion and clamping,
dict round-trip, source/raw item defaults.
"""

from datetime import timezone

import pytest

from global_sentinel.intel.models import (
    RawSourceItem,
    SourceConfig,
    SourceKind,
    ThreatCategory,
    ThreatRecord,
    ThreatStatus,
    VoteTally,
    isoformat,
)


# ===================================================================
# ThreatCategory
# ===================================================================

class TestThreatCategory:
    def test_ten_categories(self):
        assert len(list(ThreatCategory)) == 10

    def test_from_hint_case_insensitive(self):
        assert ThreatCategory.from_hint("health") == ThreatCategory.HEALTH
        assert ThreatCategory.from_hint("CYBER") == ThreatCategory.CYBER

    def test_from_hint_source_kind_aliases(self):
        assert ThreatCategory.from_hint("rss") == ThreatCategory.GENERAL
        assert ThreatCategory.from_hint("api") == ThreatCategory.INTELLIGENCE
        assert ThreatCategory.from_hint("html") == ThreatCategory.NEWS

    def test_from_hint_unknown(self):
        assert ThreatCategory.from_hint("weather-ish") is None
        assert ThreatCategory.from_hint(None) is None


# ===================================================================
# ThreatRecord
# ===================================================================

class TestThreatRecord:
    def test_defaults(self):
        r = ThreatRecord(id="x", title="Some title here", summary="s")
        assert r.category == ThreatCategory.GENERAL
        assert r.status == ThreatStatus.ACTIVE
        assert r.regions == ["Global"]
        assert r.tags == ["intelligence"]
        assert r.votes == VoteTally()

    def test_severity_clamped(self):
        assert ThreatRecord(id="x", title="t", summary="s", severity=250).severity == 100
        assert ThreatRecord(id="x", title="t", summary="s", severity=-5).severity == 0

    def test_category_from_string(self):
        r = ThreatRecord(id="x", title="t", summary="s", category="Conflict")
        assert r.category == ThreatCategory.CONFLICT

    def test_unknown_category_rejected(self):
        with pytest.raises(ValueError):
            ThreatRecord(id="x", title="t", summary="s", category="Gossip")

    def test_empty_regions_fall_back(self):
        r = ThreatRecord(id="x", title="t", summary="s", regions=[], tags=[""])
        assert r.regions == ["Global"]
        assert r.tags == ["intelligence"]

    def test_round_trip(self, make_record):
        original = make_record(location={"latitude": 1.5, "longitude": 2.5})
        d = original.to_dict()
        assert d["category"] == "Cyber"
        assert d["status"] == "active"
        assert d["votes"] == {"credible": 0, "not_credible": 0}
        assert ThreatRecord.from_dict(d) == original

    def test_from_dict_ignores_extra_keys(self, make_record):
        d = make_record().to_dict()
        d["slot"] = "threat_001"
        d["updated_at"] = "2025-06-01T12:00:00+00:00"
        assert ThreatRecord.from_dict(d).id == "t1"

    def test_votes_from_dict(self):
        r = ThreatRecord(
            id="x", title="t", summary="s", votes={"credible": 3, "not_credible": 1}
        )
        assert r.votes.credible == 3
        assert r.votes.not_credible == 1

    def test_published_at_is_aware(self, make_record, now):
        r = make_record(hours_old=2)
        assert r.published_at.tzinfo is not None
        assert (now - r.published_at).total_seconds() == 7200


# ===================================================================
# Source side
# ===================================================================

class TestSourceModels:
    def test_source_config_defaults(self):
        s = SourceConfig("BBC", "http://example.com/rss")
        assert s.kind == SourceKind.FEED
        assert s.priority == "medium"
        assert s.selectors == {}
        assert s.to_dict()["url"] == "http://example.com/rss"

    def test_raw_item_defaults(self):
        item = RawSourceItem(title="Headline")
        assert item.summary == ""
        assert item.source_kind == SourceKind.FEED
        assert item.metadata == {}

    def test_isoformat_naive_is_utc(self, now):
        naive = now.replace(tzinfo=None)
        assert isoformat(naive) == now.astimezone(timezone.utc).isoformat()

"""
Tests for the slot-rotation publisher.

Covers: slot keys, lifecycle reset, clearing of unused slots,
idempotence, capacity guard, and all-or-nothing publishing.
"""

import sqlite3

import pytest

from global_sentinel.errors import PublishError
from global_sentinel.intel.models import ThreatStatus, VoteTally
from global_sentinel.intel.publisher import SlotPublisher, slot_key
from global_sentinel.intel.store import ThreatStore


class ExplodingStore(ThreatStore):
    """Raises while writing the given slot key."""

    def __init__(self, db_path, fail_on_key=None):
        super().__init__(db_path)
        self.fail_on_key = fail_on_key

    def _apply_op(self, namespace, op):
        if op.key == self.fail_on_key:
            raise sqlite3.OperationalError("database is locked")
        super()._apply_op(namespace, op)


@pytest.fixture
def publisher(store, now):
    return SlotPublisher(store, capacity=5, clock=lambda: now)


# ===================================================================
# Slot keys & batch building
# ===================================================================

class TestSlotKey:
    def test_zero_padded(self):
        assert slot_key(1) == "threat_001"
        assert slot_key(30) == "threat_030"
        assert slot_key(123) == "threat_123"


class TestBuildBatch:
    def test_full_capacity_covered(self, publisher, make_record):
        ops = publisher.build_batch([make_record()])
        assert [op.key for op in ops] == [slot_key(i) for i in range(1, 6)]
        assert not ops[0].is_delete
        assert all(op.is_delete for op in ops[1:])

    def test_lifecycle_reset(self, publisher, make_record, now):
        record = make_record(
            status=ThreatStatus.RESOLVED, votes=VoteTally(credible=9, not_credible=4)
        )
        doc = publisher.build_batch([record])[0].document
        assert doc["status"] == "active"
        assert doc["votes"] == {"credible": 0, "not_credible": 0}
        assert doc["slot"] == "threat_001"
        assert doc["updated_at"] == now.isoformat()
        assert doc["id"] == record.id

    def test_over_capacity_rejected(self, publisher, make_record):
        records = [make_record(record_id=f"r{i}") for i in range(6)]
        with pytest.raises(PublishError):
            publisher.build_batch(records)

    def test_invalid_capacity(self, store):
        with pytest.raises(ValueError):
            SlotPublisher(store, capacity=0)


# ===================================================================
# Publishing
# ===================================================================

class TestPublish:
    def test_publish_writes_slots_in_order(self, publisher, make_record, store):
        records = [make_record(record_id=f"r{i}") for i in range(3)]
        result = publisher.publish(records)

        assert result.written == 3
        assert result.cleared == 2
        docs = store.list("threats")
        assert list(docs) == ["threat_001", "threat_002", "threat_003"]
        assert [d["id"] for d in docs.values()] == ["r0", "r1", "r2"]

    def test_smaller_selection_clears_stale_slots(self, publisher, make_record, store):
        publisher.publish([make_record(record_id=f"r{i}") for i in range(5)])
        publisher.publish([make_record(record_id="only")])
        docs = store.list("threats")
        assert list(docs) == ["threat_001"]
        assert docs["threat_001"]["id"] == "only"

    def test_empty_selection_clears_everything(self, publisher, make_record, store):
        publisher.publish([make_record()])
        result = publisher.publish([])
        assert result.written == 0
        assert store.count("threats") == 0

    def test_idempotent(self, publisher, make_record, store):
        records = [make_record(record_id=f"r{i}") for i in range(4)]
        publisher.publish(records)
        first = store.list("threats")
        publisher.publish(records)
        assert store.list("threats") == first

    def test_read_slots(self, publisher, make_record):
        records = [make_record(record_id=f"r{i}", severity=90 - i) for i in range(3)]
        publisher.publish(records)
        read = publisher.read_slots()
        assert [r.id for r in read] == ["r0", "r1", "r2"]
        assert all(r.status == ThreatStatus.ACTIVE for r in read)

    def test_result_to_dict(self, publisher, make_record, now):
        d = publisher.publish([make_record()]).to_dict()
        assert d == {"written": 1, "cleared": 4, "published_at": now.isoformat()}


class TestAllOrNothing:
    def test_mid_batch_failure_keeps_previous_slots(self, tmp_path, make_record, now):
        store = ExplodingStore(str(tmp_path / "slots.db"))
        publisher = SlotPublisher(store, capacity=5, clock=lambda: now)
        publisher.publish([make_record(record_id=f"old{i}") for i in range(5)])
        before = store.list("threats")

        store.fail_on_key = "threat_004"
        with pytest.raises(PublishError):
            publisher.publish([make_record(record_id=f"new{i}") for i in range(2)])

        assert store.list("threats") == before
        store.close()

"""
Tests for the cycle audit trail (structlog JSON lines).
"""

import json

import pytest

import global_sentinel.core.audit_log as audit_mod
from global_sentinel.core.audit_log import (
    AuditLogger,
    CycleEventType,
    get_audit_logger,
    log_cycle_event,
    set_audit_logger,
)


@pytest.fixture
def audit(tmp_path):
    a = AuditLogger(log_dir=tmp_path / "audit")
    yield a
    a.close()


class TestAuditLogger:
    def test_creates_directory(self, tmp_path):
        a = AuditLogger(log_dir=tmp_path / "nested" / "audit")
        try:
            assert (tmp_path / "nested" / "audit").is_dir()
            assert a.log_file.name.startswith("audit_")
        finally:
            a.close()

    def test_log_event_writes_json_line(self, audit):
        event_id = audit.log_event(
            CycleEventType.SLOTS_PUBLISHED,
            "Published 9 slots",
            details={"written": 9, "cleared": 21},
        )
        lines = audit.log_file.read_text(encoding="utf-8").strip().splitlines()
        assert len(lines) == 1
        entry = json.loads(lines[0])
        assert entry["event_id"] == event_id
        assert entry["event_type"] == "slots.published"
        assert entry["message"] == "Published 9 slots"
        assert entry["details"] == {"written": 9, "cleared": 21}
        assert entry["level"] == "info"
        assert "timestamp" in entry

    def test_read_events_limit(self, audit):
        for i in range(5):
            audit.log_event(CycleEventType.HEALTH_TICK, f"tick {i}")
        events = audit.read_events(limit=2)
        assert [e["message"] for e in events] == ["tick 3", "tick 4"]

    def test_read_events_skips_garbage(self, audit):
        audit.log_event(CycleEventType.CYCLE_STARTED, "start")
        with open(audit.log_file, "a", encoding="utf-8") as fh:
            fh.write("not json\n")
        assert len(audit.read_events()) == 1

    def test_close_stops_writing(self, audit):
        audit.log_event(CycleEventType.CYCLE_STARTED, "start")
        audit.close()
        audit.log_event(CycleEventType.CYCLE_COMPLETED, "done")
        assert len(audit.read_events()) == 1

    def test_event_type_values(self):
        assert {e.value for e in CycleEventType} == {
            "cycle.started",
            "cycle.completed",
            "cycle.failed",
            "cycle.skipped",
            "slots.published",
            "forward.completed",
            "health.tick",
        }


class TestGlobalLogger:
    def test_singleton_uses_default_dir(self, tmp_path):
        first = get_audit_logger()
        assert first is get_audit_logger()
        assert first.log_dir == tmp_path / "audit_logs"

    def test_set_audit_logger(self, audit):
        previous = get_audit_logger()
        set_audit_logger(audit)
        assert get_audit_logger() is audit
        assert previous._handler is None  # closed on replacement
        set_audit_logger(None)
        assert audit_mod._audit_logger is None

    def test_log_cycle_event(self, audit):
        set_audit_logger(audit)
        log_cycle_event(CycleEventType.CYCLE_SKIPPED, "busy", trigger="manual")
        events = audit.read_events()
        assert events[-1]["details"] == {"trigger": "manual"}

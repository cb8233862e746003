"""
Shared pytest fixtures for the Global Sentinel test suite.

Autouse fixtures below isolate tests from live application data:
  - Audit logger -> temp directory  (prevents test cycles in the real audit trail)
  - API services -> reset per test  (no scheduler/publisher leaks between tests)
"""

from datetime import datetime, timedelta, timezone

import pytest

from global_sentinel.intel.models import ThreatCategory, ThreatRecord, isoformat
from global_sentinel.intel.store import ThreatStore

FIXED_NOW = datetime(2025, 6, 1, 12, 0, 0, tzinfo=timezone.utc)


@pytest.fixture(autouse=True)
def _isolate_audit_logs(tmp_path, monkeypatch):
    """Redirect the global AuditLogger to a temp directory for every test.

    Without this, any test that runs a cycle writes cycle/publish events
    into the real ``./audit_logs/`` directory.
    """
    import global_sentinel.core.audit_log as audit_mod

    old_logger = audit_mod._audit_logger
    audit_mod._audit_logger = None
    monkeypatch.setattr(audit_mod, "DEFAULT_AUDIT_DIR", tmp_path / "audit_logs")

    yield

    if audit_mod._audit_logger is not None:
        audit_mod._audit_logger.close()
    audit_mod._audit_logger = old_logger


@pytest.fixture(autouse=True)
def _reset_api_services():
    from global_sentinel.api.routes import services

    old = (services.scheduler, services.publisher)
    services.scheduler = None
    services.publisher = None
    yield
    services.scheduler, services.publisher = old


@pytest.fixture
def now():
    return FIXED_NOW


@pytest.fixture
def store(tmp_path):
    s = ThreatStore(str(tmp_path / "sentinel.db"))
    yield s
    s.close()


def _record(
    record_id="t1",
    title="Ransomware outbreak hits hospitals",
    summary="Hospitals across the region report a ransomware attack",
    category=ThreatCategory.CYBER,
    severity=50,
    hours_old=0.0,
    regions=None,
    sources=None,
    **overrides,
):
    """Build a ThreatRecord timestamped ``hours_old`` hours before FIXED_NOW."""
    return ThreatRecord(
        id=record_id,
        title=title,
        summary=summary,
        category=category,
        severity=severity,
        confidence=70,
        regions=regions or ["Global"],
        sources=sources if sources is not None else ["feed"],
        timestamp=isoformat(FIXED_NOW - timedelta(hours=hours_old)),
        collected_at=isoformat(FIXED_NOW),
        **overrides,
    )


@pytest.fixture
def make_record():
    """Factory fixture for ThreatRecords with sensible defaults."""
    return _record

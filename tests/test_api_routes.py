"""
Tests for the operator API routes.

Uses FastAPI TestClient with a real SlotPublisher (temp SQLite) and a
mocked scheduler.
"""

from unittest.mock import MagicMock

import pytest
from fastapi.testclient import TestClient

from global_sentinel.api.main import create_app
from global_sentinel.intel.models import ThreatCategory
from global_sentinel.intel.publisher import SlotPublisher
from global_sentinel.intel.scheduler import CycleScheduler, SchedulerState


# ===================================================================
# Fixtures
# ===================================================================

@pytest.fixture
def publisher(store, now, make_record):
    pub = SlotPublisher(store, capacity=5, clock=lambda: now)
    pub.publish([
        make_record(record_id="a", severity=85, regions=["Europe"]),
        make_record(
            record_id="b",
            title="Cholera outbreak spreads",
            category=ThreatCategory.HEALTH,
            severity=60,
            regions=["Africa"],
        ),
        make_record(record_id="c", severity=30, regions=["Europe"]),
    ])
    return pub


@pytest.fixture
def scheduler():
    sched = MagicMock(spec=CycleScheduler)
    sched.state = SchedulerState.IDLE
    sched.is_running = True
    sched.trigger_now.return_value = True
    sched.status.return_value = {
        "state": "idle",
        "running": True,
        "interval_minutes": 720,
        "last_cycle_at": None,
        "last_success": None,
        "next_run_at": "2025-06-02T00:00:00+00:00",
        "cycles_run": 0,
        "cycles_failed": 0,
        "cycles_skipped": 0,
        "last_report": None,
    }
    return sched


@pytest.fixture
def client(scheduler, publisher):
    return TestClient(create_app(scheduler=scheduler, publisher=publisher))


@pytest.fixture
def bare_client():
    """App with nothing wired in."""
    return TestClient(create_app())


# ===================================================================
# Health & cycle control
# ===================================================================

class TestHealth:
    def test_health(self, client):
        resp = client.get("/api/health")
        assert resp.status_code == 200
        data = resp.json()
        assert data["status"] == "ok"
        assert data["scheduler_state"] == "idle"
        assert data["scheduler_running"] is True
        assert data["published_threats"] == 3

    def test_health_unconfigured(self, bare_client):
        data = bare_client.get("/api/health").json()
        assert data["scheduler_state"] == "unconfigured"
        assert data["published_threats"] == 0


class TestCycleControl:
    def test_status(self, client):
        resp = client.get("/api/cycle/status")
        assert resp.status_code == 200
        assert resp.json()["interval_minutes"] == 720

    def test_manual_trigger_accepted(self, client, scheduler):
        resp = client.post("/api/cycle/run")
        assert resp.status_code == 202
        assert resp.json()["accepted"] is True
        scheduler.trigger_now.assert_called_once()

    def test_manual_trigger_while_running(self, client, scheduler):
        scheduler.trigger_now.return_value = False
        resp = client.post("/api/cycle/run")
        assert resp.status_code == 409

    def test_unconfigured_scheduler(self, bare_client):
        assert bare_client.get("/api/cycle/status").status_code == 503
        assert bare_client.post("/api/cycle/run").status_code == 503


# ===================================================================
# Read-only views
# ===================================================================

class TestThreats:
    def test_slot_order(self, client):
        data = client.get("/api/threats").json()
        assert data["count"] == 3
        assert [t["id"] for t in data["threats"]] == ["a", "b", "c"]
        assert data["threats"][0]["category"] == "Cyber"
        assert data["threats"][0]["votes"] == {"credible": 0, "not_credible": 0}

    def test_filter_category(self, client):
        data = client.get("/api/threats", params={"category": "health"}).json()
        assert [t["id"] for t in data["threats"]] == ["b"]

    def test_filter_min_severity(self, client):
        data = client.get("/api/threats", params={"min_severity": 50}).json()
        assert [t["id"] for t in data["threats"]] == ["a", "b"]

    def test_min_severity_bounds(self, client):
        assert client.get("/api/threats", params={"min_severity": 101}).status_code == 422

    def test_unconfigured_publisher(self, bare_client):
        assert bare_client.get("/api/threats").status_code == 503


class TestChaos:
    def test_chaos_keys(self, client):
        data = client.get("/api/chaos").json()
        assert set(data) == {"global", "domains", "threat_count", "computed_at"}
        assert data["threat_count"] == 3
        assert 0 <= data["global"] <= 100
        assert "Cyber" in data["domains"]


class TestTrends:
    def test_trends(self, client):
        data = client.get("/api/trends", params={"days": 7}).json()
        assert data["domains"]["Cyber"]["count"] == 2
        assert data["regions"][0]["region"] == "Europe"
        assert len(data["series"]["labels"]) == 7
        assert data["comparison"]["trend"] in {"increasing", "decreasing", "stable"}

    def test_days_bounds(self, client):
        assert client.get("/api/trends", params={"days": 0}).status_code == 422
        assert client.get("/api/trends", params={"days": 366}).status_code == 422

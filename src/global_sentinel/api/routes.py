"""Operator API routes: cycle control and read-only views of the published slots."""

import logging
from datetime import datetime, timedelta, timezone
from typing import Any, Dict, List, Optional

from fastapi import APIRouter, HTTPException, Query, status
from pydantic import BaseModel, ConfigDict, Field

from ..intel import trends
from ..intel.chaos_index import chaos_snapshot
from ..intel.models import ThreatRecord
from ..intel.publisher import SlotPublisher
from ..intel.scheduler import CycleScheduler

logger = logging.getLogger(__name__)


# ── Pydantic Response Models ─────────────────────────────────────────


class HealthResponse(BaseModel):
    status: str = "ok"
    scheduler_state: str = "idle"
    scheduler_running: bool = False
    published_threats: int = 0
    timestamp: str = ""


class CycleStatusResponse(BaseModel):
    state: str
    running: bool = False
    interval_minutes: int = 0
    last_cycle_at: Optional[str] = None
    last_success: Optional[bool] = None
    next_run_at: Optional[str] = None
    cycles_run: int = 0
    cycles_failed: int = 0
    cycles_skipped: int = 0
    last_report: Optional[Dict[str, Any]] = None


class CycleTriggerResponse(BaseModel):
    accepted: bool
    message: str


class VoteModel(BaseModel):
    credible: int = 0
    not_credible: int = 0


class ThreatModel(BaseModel):
    id: str
    title: str
    summary: str
    category: str
    severity: int
    confidence: int
    regions: List[str] = Field(default_factory=list)
    tags: List[str] = Field(default_factory=list)
    sources: List[str] = Field(default_factory=list)
    timestamp: str
    collected_at: str
    status: str
    votes: VoteModel = Field(default_factory=VoteModel)
    signal_type: str = ""
    source_name: str = ""
    location: Optional[Dict[str, float]] = None


class ThreatListResponse(BaseModel):
    threats: List[ThreatModel]
    count: int


class ChaosResponse(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    global_index: int = Field(alias="global")
    domains: Dict[str, int]
    threat_count: int
    computed_at: str


class RegionModel(BaseModel):
    region: str
    threat_count: int
    average_severity: int
    max_severity: int


class TrendsResponse(BaseModel):
    domains: Dict[str, Dict[str, int]]
    regions: List[RegionModel]
    series: Dict[str, Any]
    comparison: Dict[str, Any]


# ── Service layer ────────────────────────────────────────────────────


class SentinelServices:
    """References to the running pipeline components.

    Routes read from this object instead of module singletons so tests
    can wire in their own scheduler and publisher.
    """

    def __init__(self):
        self.scheduler: Optional[CycleScheduler] = None
        self.publisher: Optional[SlotPublisher] = None

    def require_scheduler(self) -> CycleScheduler:
        if self.scheduler is None:
            raise HTTPException(status_code=503, detail="Scheduler not configured")
        return self.scheduler

    def published(self) -> List[ThreatRecord]:
        if self.publisher is None:
            raise HTTPException(status_code=503, detail="Publisher not configured")
        return self.publisher.read_slots()


services = SentinelServices()


def _split_periods(
    records: List[ThreatRecord], now: datetime, days: int
) -> Dict[str, List[ThreatRecord]]:
    boundary = now - timedelta(days=days)
    previous_start = boundary - timedelta(days=days)
    return {
        "current": [r for r in records if r.published_at > boundary],
        "previous": [
            r for r in records if previous_start < r.published_at <= boundary
        ],
    }


# ── Routes ───────────────────────────────────────────────────────────

router = APIRouter(prefix="/api", tags=["sentinel"])


@router.get("/health", response_model=HealthResponse)
async def get_health():
    """Liveness plus a one-line view of the scheduler and slots."""
    scheduler = services.scheduler
    published = services.published() if services.publisher is not None else []
    return HealthResponse(
        status="ok",
        scheduler_state=scheduler.state.value if scheduler else "unconfigured",
        scheduler_running=scheduler.is_running if scheduler else False,
        published_threats=len(published),
        timestamp=datetime.now(timezone.utc).isoformat(),
    )


@router.get("/cycle/status", response_model=CycleStatusResponse)
async def get_cycle_status():
    return services.require_scheduler().status()


@router.post(
    "/cycle/run",
    response_model=CycleTriggerResponse,
    status_code=status.HTTP_202_ACCEPTED,
)
async def run_cycle():
    """Start a manual collection cycle in the background."""
    scheduler = services.require_scheduler()
    if not scheduler.trigger_now():
        raise HTTPException(
            status_code=status.HTTP_409_CONFLICT,
            detail="A collection cycle is already running",
        )
    logger.info("Manual collection cycle accepted")
    return CycleTriggerResponse(accepted=True, message="Collection cycle started")


@router.get("/threats", response_model=ThreatListResponse)
async def get_threats(
    category: Optional[str] = Query(None, description="Filter by category"),
    min_severity: int = Query(0, ge=0, le=100),
):
    """Currently published threats in slot order."""
    records = services.published()
    if category:
        wanted = category.lower()
        records = [r for r in records if r.category.value.lower() == wanted]
    records = [r for r in records if r.severity >= min_severity]
    return ThreatListResponse(
        threats=[ThreatModel(**r.to_dict()) for r in records],
        count=len(records),
    )


@router.get("/chaos", response_model=ChaosResponse)
async def get_chaos():
    """Global and per-domain chaos indices over the published set."""
    return ChaosResponse(**chaos_snapshot(services.published()))


@router.get("/trends", response_model=TrendsResponse)
async def get_trends(days: int = Query(30, ge=1, le=365)):
    """Domain stats, regional distribution and a daily index series."""
    records = services.published()
    now = datetime.now(timezone.utc)
    periods = _split_periods(records, now, days)
    return TrendsResponse(
        domains=trends.domain_stats(records, now),
        regions=[RegionModel(**row) for row in trends.geographic_distribution(records)],
        series=trends.trend_series(records, days=days, now=now),
        comparison=trends.period_comparison(
            periods["current"], periods["previous"], now
        ),
    )

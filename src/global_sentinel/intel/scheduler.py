# Intel Module - Cycle Scheduler
#
# Drives the collection pipeline on a fixed interval (APScheduler) and
# guarantees that at most one cycle runs at a time.  Triggers arriving
# while a cycle is in progress (scheduled, initial or manual) are skipped,
# never queued.
#
# Jobs:
#   - sentinel_cycle   every N minutes (5-720, default 12 h)
#   - sentinel_health  every M minutes, logs scheduler status
#   - sentinel_initial one-shot run shortly after start()

import logging
import threading
from datetime import datetime, timedelta, timezone
from enum import Enum
from typing import Any, Callable, Dict, Optional

from apscheduler.schedulers.background import BackgroundScheduler
from apscheduler.triggers.date import DateTrigger
from apscheduler.triggers.interval import IntervalTrigger

from ..core.audit_log import AuditLogger, CycleEventType, get_audit_logger
from ..errors import ConfigError
from .models import isoformat, utcnow
from .pipeline import CollectionPipeline, CycleReport

logger = logging.getLogger(__name__)

MIN_INTERVAL_MINUTES = 5
MAX_INTERVAL_MINUTES = 720
DEFAULT_INTERVAL_MINUTES = 720
DEFAULT_HEALTH_MINUTES = 120
DEFAULT_INITIAL_DELAY_SEC = 10


class SchedulerState(str, Enum):
    IDLE = "idle"
    COLLECTING = "collecting"


class CycleScheduler:
    """Owns the cycle state machine and the background jobs.

    Usage::

        scheduler = CycleScheduler(pipeline, interval_minutes=720)
        scheduler.start()       # interval + health jobs, initial run
        scheduler.trigger_now() # manual cycle on a background thread
        scheduler.stop()

    Args:
        pipeline: The pipeline whose ``run_cycle()`` is the cycle body.
        interval_minutes: Minutes between scheduled cycles.
        health_minutes: Minutes between health log entries.
        initial_delay_seconds: Delay before the first run after
            ``start()``; None disables the initial run.
        clock: Returns the current time; injected in tests.
    """

    def __init__(
        self,
        pipeline: CollectionPipeline,
        interval_minutes: int = DEFAULT_INTERVAL_MINUTES,
        health_minutes: int = DEFAULT_HEALTH_MINUTES,
        initial_delay_seconds: Optional[float] = DEFAULT_INITIAL_DELAY_SEC,
        clock: Callable[[], datetime] = utcnow,
        audit: Optional[AuditLogger] = None,
    ):
        if not MIN_INTERVAL_MINUTES <= interval_minutes <= MAX_INTERVAL_MINUTES:
            raise ConfigError(
                f"Cycle interval must be {MIN_INTERVAL_MINUTES}-"
                f"{MAX_INTERVAL_MINUTES} minutes, got {interval_minutes}"
            )
        if health_minutes < 1:
            raise ConfigError(f"Health interval must be >= 1 minute, got {health_minutes}")

        self._pipeline = pipeline
        self._interval_minutes = interval_minutes
        self._health_minutes = health_minutes
        self._initial_delay = initial_delay_seconds
        self._clock = clock
        self._audit = audit

        self._cycle_lock = threading.Lock()
        self._state = SchedulerState.IDLE
        self._scheduler: Optional[BackgroundScheduler] = None

        self._last_cycle_at: Optional[str] = None
        self._last_success: Optional[bool] = None
        self._last_report: Optional[CycleReport] = None
        self._cycles_run = 0
        self._cycles_failed = 0
        self._cycles_skipped = 0

    @property
    def state(self) -> SchedulerState:
        return self._state

    @property
    def audit(self) -> AuditLogger:
        return self._audit or get_audit_logger()

    @property
    def last_report(self) -> Optional[CycleReport]:
        return self._last_report

    # ------------------------------------------------------------------
    # Cycle execution
    # ------------------------------------------------------------------

    def run_cycle(self, trigger: str = "scheduled") -> Optional[CycleReport]:
        """Run one cycle unless one is already running.

        Returns:
            The CycleReport, or None if the trigger was skipped.
        """
        if not self._cycle_lock.acquire(blocking=False):
            self._skip(trigger)
            return None
        return self._run_locked(trigger)

    def _skip(self, trigger: str) -> None:
        self._cycles_skipped += 1
        logger.info("Cycle already running, skipping %s trigger", trigger)
        self.audit.log_event(
            CycleEventType.CYCLE_SKIPPED,
            "Cycle already running",
            details={"trigger": trigger},
        )

    def _run_locked(self, trigger: str) -> CycleReport:
        """Cycle body; the caller holds ``_cycle_lock``."""
        try:
            self._state = SchedulerState.COLLECTING
            logger.info("Starting %s collection cycle", trigger)
            self.audit.log_event(
                CycleEventType.CYCLE_STARTED,
                f"Collection cycle started ({trigger})",
                details={"trigger": trigger},
            )

            try:
                report = self._pipeline.run_cycle()
            except Exception as exc:
                self._cycles_failed += 1
                self._last_success = False
                logger.exception("Collection cycle crashed: %s", exc)
                self.audit.log_event(
                    CycleEventType.CYCLE_FAILED,
                    f"Collection cycle crashed: {exc}",
                    details={"trigger": trigger},
                )
                raise

            self._cycles_run += 1
            self._last_report = report
            self._last_success = report.success
            if report.success:
                self.audit.log_event(
                    CycleEventType.CYCLE_COMPLETED,
                    f"Collection cycle published {report.selected} threats",
                    details={
                        "trigger": trigger,
                        "collected": report.total_collected,
                        "selected": report.selected,
                        "forwarded": report.forwarded,
                    },
                )
            else:
                self._cycles_failed += 1
                logger.error("Collection cycle failed: %s", report.error)
                self.audit.log_event(
                    CycleEventType.CYCLE_FAILED,
                    f"Collection cycle failed: {report.error}",
                    details={"trigger": trigger},
                )
            return report
        finally:
            self._last_cycle_at = isoformat(self._clock())
            self._state = SchedulerState.IDLE
            self._cycle_lock.release()

    def trigger_now(self) -> bool:
        """Start a manual cycle on a background thread.

        Returns:
            True if a cycle was started, False if one is already running.
        """
        if not self._cycle_lock.acquire(blocking=False):
            self._skip("manual")
            return False
        thread = threading.Thread(
            target=self._run_manual, name="sentinel-manual-cycle", daemon=True
        )
        thread.start()
        return True

    def _run_manual(self) -> None:
        try:
            self._run_locked("manual")
        except Exception as exc:
            # Already logged and audited by _run_locked; the thread has no caller.
            logger.debug("Manual cycle thread ended with %s", exc)

    # ------------------------------------------------------------------
    # Health
    # ------------------------------------------------------------------

    def health_tick(self) -> Dict[str, Any]:
        """Log a status line and audit entry; returns the status."""
        status = self.status()
        logger.info(
            "Scheduler health: state=%s last_cycle=%s cycles=%d failed=%d skipped=%d",
            status["state"],
            status["last_cycle_at"],
            status["cycles_run"],
            status["cycles_failed"],
            status["cycles_skipped"],
        )
        self.audit.log_event(
            CycleEventType.HEALTH_TICK,
            "Scheduler health check",
            details={k: v for k, v in status.items() if k != "last_report"},
        )
        return status

    # ------------------------------------------------------------------
    # Scheduling
    # ------------------------------------------------------------------

    def start(self) -> None:
        """Start the background scheduler."""
        if self._scheduler is not None:
            return  # already running

        self._scheduler = BackgroundScheduler(daemon=True)
        self._scheduler.add_job(
            self.run_cycle,
            trigger=IntervalTrigger(minutes=self._interval_minutes),
            id="sentinel_cycle",
            name="Threat collection cycle",
            replace_existing=True,
            # overlapping runs must reach run_cycle() to be counted as skips
            coalesce=True,
            max_instances=2,
        )
        self._scheduler.add_job(
            self.health_tick,
            trigger=IntervalTrigger(minutes=self._health_minutes),
            id="sentinel_health",
            name="Scheduler health log",
            replace_existing=True,
        )
        if self._initial_delay is not None:
            run_at = datetime.now(timezone.utc) + timedelta(seconds=self._initial_delay)
            self._scheduler.add_job(
                self.run_cycle,
                trigger=DateTrigger(run_date=run_at),
                kwargs={"trigger": "initial"},
                id="sentinel_initial",
                name="Initial collection cycle",
                replace_existing=True,
            )
        self._scheduler.start()
        logger.info(
            "CycleScheduler started: every %d min, health every %d min",
            self._interval_minutes,
            self._health_minutes,
        )

    def stop(self) -> None:
        """Stop the background scheduler."""
        if self._scheduler is not None:
            self._scheduler.shutdown(wait=False)
            self._scheduler = None
            logger.info("CycleScheduler stopped")

    @property
    def is_running(self) -> bool:
        return self._scheduler is not None and self._scheduler.running

    def _next_run(self) -> Optional[str]:
        if self._scheduler is None:
            return None
        job = self._scheduler.get_job("sentinel_cycle")
        if job is None or job.next_run_time is None:
            return None
        return isoformat(job.next_run_time)

    # ------------------------------------------------------------------
    # Status
    # ------------------------------------------------------------------

    def status(self) -> Dict[str, Any]:
        return {
            "state": self._state.value,
            "running": self.is_running,
            "interval_minutes": self._interval_minutes,
            "last_cycle_at": self._last_cycle_at,
            "last_success": self._last_success,
            "next_run_at": self._next_run(),
            "cycles_run": self._cycles_run,
            "cycles_failed": self._cycles_failed,
            "cycles_skipped": self._cycles_skipped,
            "last_report": self._last_report.to_dict() if self._last_report else None,
        }

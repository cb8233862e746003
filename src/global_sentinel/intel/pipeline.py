# Intel Module - Collection Pipeline
#
# One collection cycle, end to end:
#   1. Run every registered collector in parallel (thread pool); each
#      collector walks its own sources serially
#   2. Normalize and relevance-filter each collector's items
#   3. Select the top N across all collectors
#   4. Publish the selection into the threat slots (atomic)
#   5. Forward the published records downstream (optional)
#
# Partial collector failure only shrinks the candidate set.  A failed
# publish marks the cycle failed and skips forwarding.

import logging
from concurrent.futures import ThreadPoolExecutor, as_completed
from datetime import datetime
from typing import Any, Callable, Dict, List, Optional, Sequence, Tuple

from ..core.audit_log import AuditLogger, CycleEventType, get_audit_logger
from ..errors import PublishError
from .collector import SourceCollector
from .forwarder import ForwardingClient
from .models import SourceConfig, ThreatRecord, isoformat, utcnow
from .normalizer import normalize_batch
from .publisher import PublishResult, SlotPublisher
from .relevance import is_relevant
from .selection import select

logger = logging.getLogger(__name__)

DEFAULT_MAX_WORKERS = 4


class CollectorResult:
    """Outcome of one collector's run within a cycle."""

    def __init__(self, collector_name: str):
        self.collector_name = collector_name
        self.records: List[ThreatRecord] = []
        self.raw_count: int = 0
        self.skipped: int = 0
        self.filtered: int = 0
        self.source_errors: Dict[str, str] = {}
        self.error: Optional[str] = None
        self.duration_ms: float = 0.0

    @property
    def success(self) -> bool:
        return self.error is None

    def to_dict(self) -> Dict[str, Any]:
        return {
            "collector": self.collector_name,
            "success": self.success,
            "raw_count": self.raw_count,
            "relevant_count": len(self.records),
            "skipped": self.skipped,
            "filtered": self.filtered,
            "source_errors": dict(self.source_errors),
            "error": self.error,
            "duration_ms": round(self.duration_ms, 1),
        }


class CycleReport:
    """Summary of a full collection cycle."""

    def __init__(self, started: str):
        self.started = started
        self.finished: Optional[str] = None
        self.collector_results: List[CollectorResult] = []
        self.total_collected: int = 0
        self.total_relevant: int = 0
        self.selected: int = 0
        self.publish: Optional[PublishResult] = None
        self.forwarded: int = 0
        self.forward_failed: int = 0
        self.error: Optional[str] = None

    @property
    def success(self) -> bool:
        return self.error is None and self.publish is not None

    def to_dict(self) -> Dict[str, Any]:
        return {
            "started": self.started,
            "finished": self.finished,
            "success": self.success,
            "total_collected": self.total_collected,
            "total_relevant": self.total_relevant,
            "selected": self.selected,
            "publish": self.publish.to_dict() if self.publish else None,
            "forwarded": self.forwarded,
            "forward_failed": self.forward_failed,
            "error": self.error,
            "collector_results": [r.to_dict() for r in self.collector_results],
        }


class CollectionPipeline:
    """Runs collection cycles over a set of registered collectors.

    Usage::

        pipeline = CollectionPipeline(SlotPublisher(store))
        pipeline.register(FeedCollector(), RSS_SOURCES)
        pipeline.register(ApiCollector(), API_SOURCES)
        report = pipeline.run_cycle()
    """

    def __init__(
        self,
        publisher: SlotPublisher,
        forwarder: Optional[ForwardingClient] = None,
        max_workers: int = DEFAULT_MAX_WORKERS,
        clock: Callable[[], datetime] = utcnow,
        audit: Optional[AuditLogger] = None,
    ):
        self._publisher = publisher
        self._forwarder = forwarder
        self._max_workers = max_workers
        self._clock = clock
        self._audit = audit
        self._collectors: List[Tuple[SourceCollector, List[SourceConfig]]] = []

    # ------------------------------------------------------------------
    # Collector registration
    # ------------------------------------------------------------------

    def register(
        self, collector: SourceCollector, sources: Sequence[SourceConfig]
    ) -> None:
        """Register a collector with the sources it should walk."""
        self._collectors.append((collector, list(sources)))

    @property
    def collectors(self) -> List[SourceCollector]:
        return [c for c, _ in self._collectors]

    @property
    def publisher(self) -> SlotPublisher:
        return self._publisher

    @property
    def forwarder(self) -> Optional[ForwardingClient]:
        return self._forwarder

    @property
    def audit(self) -> AuditLogger:
        return self._audit or get_audit_logger()

    # ------------------------------------------------------------------
    # Cycle
    # ------------------------------------------------------------------

    def run_cycle(self) -> CycleReport:
        """Collect, select, publish and forward once.

        Returns:
            CycleReport; ``success`` is False only if publishing failed.
        """
        now = self._clock()
        report = CycleReport(started=isoformat(now))

        report.collector_results = self._collect_all(now)
        candidates: List[ThreatRecord] = []
        for result in report.collector_results:
            report.total_collected += result.raw_count
            candidates.extend(result.records)
        report.total_relevant = len(candidates)

        selection = select(candidates, self._publisher.capacity)
        report.selected = len(selection)

        try:
            report.publish = self._publisher.publish(selection)
        except PublishError as exc:
            report.error = str(exc)
            report.finished = isoformat(self._clock())
            logger.error("Cycle publish failed: %s", exc)
            return report

        self.audit.log_event(
            CycleEventType.SLOTS_PUBLISHED,
            f"Published {report.publish.written} threat slots",
            details=report.publish.to_dict(),
        )

        if self._forwarder is not None and selection:
            self._forward(selection, report)

        report.finished = isoformat(self._clock())
        logger.info(
            "Cycle complete: %d collected, %d relevant, %d selected, "
            "%d forwarded (%d failed)",
            report.total_collected,
            report.total_relevant,
            report.selected,
            report.forwarded,
            report.forward_failed,
        )
        return report

    def _collect_all(self, now: datetime) -> List[CollectorResult]:
        """Run all collectors in parallel and gather their results."""
        results: List[CollectorResult] = []
        if not self._collectors:
            return results

        with ThreadPoolExecutor(max_workers=self._max_workers) as pool:
            futures = [
                pool.submit(self._run_single_collector, collector, sources, now)
                for collector, sources in self._collectors
            ]
            for future in as_completed(futures):
                results.append(future.result())  # never raises

        results.sort(key=lambda r: r.collector_name)
        return results

    def _run_single_collector(
        self,
        collector: SourceCollector,
        sources: List[SourceConfig],
        now: datetime,
    ) -> CollectorResult:
        """Run one collector and post-process its items, catching anything."""
        result = CollectorResult(collector.name)
        start = utcnow()
        try:
            items = collector.collect(sources)
            result.raw_count = len(items)
            result.source_errors = collector.last_errors
            records, result.skipped = normalize_batch(items, now=now)
            relevant = [r for r in records if is_relevant(r)]
            result.filtered = len(records) - len(relevant)
            result.records = relevant
        except Exception as exc:
            result.error = str(exc)
            logger.warning("Collector %s failed: %s", collector.name, exc)
        result.duration_ms = (utcnow() - start).total_seconds() * 1000
        return result

    def _forward(self, selection: List[ThreatRecord], report: CycleReport) -> None:
        outcomes = self._forwarder.forward_many(selection)
        report.forwarded = sum(1 for o in outcomes if o.success)
        report.forward_failed = len(outcomes) - report.forwarded
        self.audit.log_event(
            CycleEventType.FORWARD_COMPLETED,
            f"Forwarded {report.forwarded}/{len(outcomes)} records",
            details={
                "succeeded": report.forwarded,
                "failed": report.forward_failed,
            },
        )

    # ------------------------------------------------------------------
    # Status
    # ------------------------------------------------------------------

    def stats(self) -> Dict[str, Any]:
        return {
            "collectors": [c.get_stats() for c in self.collectors],
            "capacity": self._publisher.capacity,
            "forwarding": self._forwarder.endpoint if self._forwarder else None,
        }

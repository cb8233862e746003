# Intel Module - Slot-Rotation Publisher
#
# Writes a cycle's selection into N numbered slots (threat_001 ...
# threat_NNN) of the shared store.  Slot i+1 receives selection[i] with
# its lifecycle fields reset; slots past the end of the selection are
# deleted.  The whole rotation is one store batch, so readers see either
# the previous cycle's slots or this cycle's, never a mix.

import logging
from datetime import datetime
from typing import Any, Callable, Dict, List, Optional

from ..errors import PublishError
from .models import ThreatRecord, ThreatStatus, VoteTally, isoformat, utcnow
from .selection import DEFAULT_CAPACITY
from .store import THREATS_NAMESPACE, BatchOp, ThreatStore

logger = logging.getLogger(__name__)


def slot_key(index: int) -> str:
    """Store key for 1-based slot ``index`` (``threat_001``)."""
    return f"threat_{index:03d}"


class PublishResult:
    """Outcome of one slot rotation."""

    def __init__(self, written: int, cleared: int, published_at: str):
        self.written = written
        self.cleared = cleared
        self.published_at = published_at

    def to_dict(self) -> Dict[str, Any]:
        return {
            "written": self.written,
            "cleared": self.cleared,
            "published_at": self.published_at,
        }


class SlotPublisher:
    """Sole writer of the ``threats`` slot namespace.

    Args:
        store: Shared document store.
        capacity: Number of slots to rotate.
        clock: Returns the current time; injected in tests.
    """

    def __init__(
        self,
        store: ThreatStore,
        capacity: int = DEFAULT_CAPACITY,
        clock: Callable[[], datetime] = utcnow,
        namespace: str = THREATS_NAMESPACE,
    ):
        if capacity < 1:
            raise ValueError("capacity must be >= 1")
        self._store = store
        self._capacity = capacity
        self._clock = clock
        self._namespace = namespace

    @property
    def capacity(self) -> int:
        return self._capacity

    def build_batch(
        self, records: List[ThreatRecord], updated_at: Optional[str] = None
    ) -> List[BatchOp]:
        """Build the full set of slot writes/clears for a selection."""
        if len(records) > self._capacity:
            raise PublishError(
                f"Selection of {len(records)} exceeds {self._capacity} slots"
            )
        updated_at = updated_at or isoformat(self._clock())
        ops: List[BatchOp] = []
        for i in range(self._capacity):
            key = slot_key(i + 1)
            if i < len(records):
                ops.append(BatchOp(key, self._slot_document(key, records[i], updated_at)))
            else:
                ops.append(BatchOp(key, None))
        return ops

    @staticmethod
    def _slot_document(
        key: str, record: ThreatRecord, updated_at: str
    ) -> Dict[str, Any]:
        doc = record.to_dict()
        doc["status"] = ThreatStatus.ACTIVE.value
        doc["votes"] = VoteTally().to_dict()
        doc["slot"] = key
        doc["updated_at"] = updated_at
        return doc

    def publish(self, records: List[ThreatRecord]) -> PublishResult:
        """Rotate the slots to ``records`` atomically.

        Raises:
            PublishError: if the batch could not be committed.  The store
                has been rolled back and still holds the previous slots.
        """
        published_at = isoformat(self._clock())
        ops = self.build_batch(records, published_at)
        try:
            counts = self._store.write_batch(self._namespace, ops)
        except Exception as exc:
            logger.error("Slot batch failed, previous slots kept: %s", exc)
            raise PublishError(f"Slot batch failed: {exc}") from exc

        result = PublishResult(
            written=counts["written"],
            cleared=counts["deleted"],
            published_at=published_at,
        )
        logger.info(
            "Published %d threat slots (%d cleared)",
            result.written, result.cleared,
        )
        return result

    def read_slots(self) -> List[ThreatRecord]:
        """Currently published records in slot order."""
        docs = self._store.list(self._namespace)
        records: List[ThreatRecord] = []
        for i in range(self._capacity):
            doc: Optional[Dict[str, Any]] = docs.get(slot_key(i + 1))
            if doc is not None:
                records.append(ThreatRecord.from_dict(doc))
        return records

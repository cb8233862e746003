# Intel Module - Detection Ingest Forwarder
#
# Pushes published threat records to the downstream detection service
# (POST <base>/api/detect/ingest), one record at a time.
#
# Retry policy (3 attempts):
#   - 429: wait Retry-After seconds, else 2^attempt s, capped at 30 s
#   - network errors / 5xx: 1 s * 2^(attempt-1) plus up to 1 s jitter
#   - other 4xx, or a {"success": false} body: fail without retrying
#
# Failures are reported as ForwardOutcome values, never raised.

import logging
import random
import time
from typing import Any, Callable, Dict, List, Optional, Sequence

import httpx

from .models import ThreatRecord

logger = logging.getLogger(__name__)

INGEST_PATH = "/api/detect/ingest"
MAX_ATTEMPTS = 3
INITIAL_BACKOFF_SEC = 1.0
BACKOFF_MULTIPLIER = 2.0
MAX_BACKOFF_SEC = 30.0
MAX_JITTER_SEC = 1.0
COURTESY_DELAY_SEC = 0.3
REQUEST_TIMEOUT_SEC = 10.0


class ForwardOutcome:
    """Result of forwarding one record."""

    def __init__(
        self,
        record_id: str,
        success: bool,
        attempts: int,
        remote_id: Optional[str] = None,
        error: Optional[str] = None,
    ):
        self.record_id = record_id
        self.success = success
        self.attempts = attempts
        self.remote_id = remote_id
        self.error = error

    def to_dict(self) -> Dict[str, Any]:
        return {
            "record_id": self.record_id,
            "success": self.success,
            "attempts": self.attempts,
            "remote_id": self.remote_id,
            "error": self.error,
        }

    def __repr__(self) -> str:
        state = "ok" if self.success else f"failed: {self.error}"
        return f"ForwardOutcome({self.record_id}, {state}, attempts={self.attempts})"


class ForwardingClient:
    """HTTP client for the detection ingest endpoint.

    Args:
        base_url: Downstream service root, e.g. ``http://localhost:5000``.
        client: Optional ``httpx.Client``; tests inject a mock.
        sleep: Sleep function; tests inject a recorder.
        rng: Returns a float in [0, 1) used for jitter.
    """

    def __init__(
        self,
        base_url: str,
        client: Optional[httpx.Client] = None,
        timeout: float = REQUEST_TIMEOUT_SEC,
        max_attempts: int = MAX_ATTEMPTS,
        courtesy_delay: float = COURTESY_DELAY_SEC,
        sleep: Callable[[float], None] = time.sleep,
        rng: Callable[[], float] = random.random,
    ):
        self.endpoint = base_url.rstrip("/") + INGEST_PATH
        self.timeout = timeout
        self.max_attempts = max_attempts
        self.courtesy_delay = courtesy_delay
        self._client = client
        self._sleep = sleep
        self._rng = rng

    @property
    def client(self) -> httpx.Client:
        if self._client is None:
            self._client = httpx.Client(timeout=self.timeout)
        return self._client

    def close(self) -> None:
        if self._client is not None:
            self._client.close()

    # ------------------------------------------------------------------
    # Backoff
    # ------------------------------------------------------------------

    def _rate_limit_wait(self, resp: httpx.Response, attempt: int) -> float:
        retry_after = resp.headers.get("Retry-After")
        if retry_after:
            try:
                return min(float(retry_after), MAX_BACKOFF_SEC)
            except ValueError:
                logger.debug("Ignoring non-numeric Retry-After %r", retry_after)
        return min(INITIAL_BACKOFF_SEC * BACKOFF_MULTIPLIER ** attempt, MAX_BACKOFF_SEC)

    def _error_wait(self, attempt: int) -> float:
        base = INITIAL_BACKOFF_SEC * BACKOFF_MULTIPLIER ** (attempt - 1)
        return base + self._rng() * MAX_JITTER_SEC

    # ------------------------------------------------------------------
    # Forwarding
    # ------------------------------------------------------------------

    def forward(self, record: ThreatRecord) -> ForwardOutcome:
        """POST one record; retries per the module policy."""
        payload = record.to_dict()
        last_error = "no attempts made"

        for attempt in range(1, self.max_attempts + 1):
            final = attempt == self.max_attempts
            try:
                resp = self.client.post(self.endpoint, json=payload, timeout=self.timeout)
            except httpx.HTTPError as exc:
                last_error = f"{type(exc).__name__}: {exc}"
                logger.warning(
                    "Forward of %s failed (%s), attempt %d/%d",
                    record.id, last_error, attempt, self.max_attempts,
                )
                if not final:
                    self._sleep(self._error_wait(attempt))
                continue

            if resp.status_code == 429:
                last_error = "Rate limited"
                if not final:
                    wait = self._rate_limit_wait(resp, attempt)
                    logger.warning(
                        "Forward rate limited (429), retrying in %.1fs "
                        "(attempt %d/%d)",
                        wait, attempt, self.max_attempts,
                    )
                    self._sleep(wait)
                continue

            if resp.status_code >= 500:
                last_error = f"HTTP {resp.status_code}"
                logger.warning(
                    "Forward server error %d, attempt %d/%d",
                    resp.status_code, attempt, self.max_attempts,
                )
                if not final:
                    self._sleep(self._error_wait(attempt))
                continue

            if resp.status_code >= 400:
                return ForwardOutcome(
                    record.id, False, attempt, error=f"HTTP {resp.status_code}"
                )

            return self._outcome_from_body(record, resp, attempt)

        logger.error(
            "Failed to forward %s after %d attempts: %s",
            record.id, self.max_attempts, last_error,
        )
        return ForwardOutcome(record.id, False, self.max_attempts, error=last_error)

    @staticmethod
    def _outcome_from_body(
        record: ThreatRecord, resp: httpx.Response, attempt: int
    ) -> ForwardOutcome:
        try:
            body = resp.json()
        except ValueError:
            body = {}
        if not isinstance(body, dict):
            body = {}

        if body.get("success") is False:
            error = body.get("error") or body.get("message") or "rejected by ingest"
            return ForwardOutcome(record.id, False, attempt, error=str(error))

        remote_id = body.get("id") or body.get("threatId")
        return ForwardOutcome(
            record.id, True, attempt, remote_id=str(remote_id) if remote_id else None
        )

    def forward_many(self, records: Sequence[ThreatRecord]) -> List[ForwardOutcome]:
        """Forward sequentially; one failure never stops the rest."""
        outcomes: List[ForwardOutcome] = []
        for index, record in enumerate(records):
            if index and self.courtesy_delay > 0:
                self._sleep(self.courtesy_delay)
            outcomes.append(self.forward(record))

        succeeded = sum(1 for o in outcomes if o.success)
        logger.info(
            "Forward complete: %d succeeded, %d failed",
            succeeded, len(outcomes) - succeeded,
        )
        return outcomes

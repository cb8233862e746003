# Intel Module - Abstract Source Collector
#
# Defines the SourceCollector base class shared by the feed, structured-API,
# HTML and social collectors.  A collector walks its configured sources
# one at a time, with a courtesy delay between fetches, and never lets a
# single source's failure escape: the source contributes zero items and
# the next one is tried.

import logging
import time
from abc import ABC, abstractmethod
from typing import Any, Callable, Dict, List, Optional, Sequence
from urllib.parse import urlparse

import httpx

from ..errors import SourceConfigError
from .models import RawSourceItem, SourceConfig, SourceKind, isoformat, utcnow

logger = logging.getLogger(__name__)

DEFAULT_TIMEOUT_SEC = 10.0
DEFAULT_SOURCE_DELAY_SEC = 2.0
DEFAULT_USER_AGENT = "Mozilla/5.0 (Global Sentinel SIGINT Bot)"

# Raised while mapping one malformed entry; that entry is skipped.
MALFORMED_ITEM_ERRORS = (TypeError, ValueError, AttributeError, KeyError)


class SourceCollector(ABC):
    """Abstract base class for source collectors.

    Subclasses implement ``fetch_source()`` for a single source; the base
    class handles sequencing, rate-limit delays, per-source item caps,
    error isolation and stats.

    Args:
        name: Collector name used in logs and reports.
        timeout: Per-request timeout in seconds.
        max_items: Cap on items taken from any one source.
        delay_seconds: Pause between consecutive source fetches.
        client: Optional pre-built ``httpx.Client`` (tests inject a mock).
        sleep: Sleep function; injected in tests.
    """

    kind: SourceKind = SourceKind.FEED

    def __init__(
        self,
        name: str,
        timeout: float = DEFAULT_TIMEOUT_SEC,
        max_items: int = 10,
        delay_seconds: float = DEFAULT_SOURCE_DELAY_SEC,
        user_agent: str = DEFAULT_USER_AGENT,
        client: Optional[httpx.Client] = None,
        sleep: Callable[[float], None] = time.sleep,
    ):
        self.name = name
        self.timeout = timeout
        self.max_items = max_items
        self.delay_seconds = delay_seconds
        self.user_agent = user_agent
        self._client = client
        self._sleep = sleep

        self._last_fetch: Optional[str] = None
        self._fetch_count: int = 0
        self._error_count: int = 0
        self._source_errors: Dict[str, str] = {}

    # ------------------------------------------------------------------
    # Abstract interface
    # ------------------------------------------------------------------

    @abstractmethod
    def fetch_source(self, source: SourceConfig) -> List[RawSourceItem]:
        """Fetch and minimally parse one source.

        May raise anything; ``collect()`` contains the failure.
        """

    # ------------------------------------------------------------------
    # Collection
    # ------------------------------------------------------------------

    def collect(self, sources: Sequence[SourceConfig]) -> List[RawSourceItem]:
        """Fetch every source in order and return all items.

        Never raises: a failing source is logged and yields nothing.
        """
        items: List[RawSourceItem] = []
        self._source_errors = {}

        for index, source in enumerate(sources):
            if index and self.delay_seconds > 0:
                self._sleep(self.delay_seconds)
            try:
                fetched = self.fetch_source(source)[: self.max_items]
            except Exception as exc:
                self.record_error(source.name, exc)
                logger.warning(
                    "%s: source %s failed: %s", self.name, source.name, exc
                )
                continue

            self.record_fetch(len(fetched))
            logger.info(
                "%s: %s returned %d items", self.name, source.name, len(fetched)
            )
            items.extend(fetched)

        return items

    def health_check(self, source: SourceConfig) -> bool:
        """Return True if ``source`` is reachable."""
        try:
            self._get(source.url)
        except (httpx.HTTPError, SourceConfigError):
            return False
        return True

    # ------------------------------------------------------------------
    # HTTP helpers
    # ------------------------------------------------------------------

    @property
    def client(self) -> httpx.Client:
        if self._client is None:
            self._client = httpx.Client(
                timeout=self.timeout,
                headers={"User-Agent": self.user_agent},
                follow_redirects=True,
            )
        return self._client

    def _get(
        self,
        url: str,
        params: Optional[Dict[str, Any]] = None,
        headers: Optional[Dict[str, str]] = None,
    ) -> httpx.Response:
        """GET with the per-request timeout; raises on HTTP errors."""
        require_url(url)
        resp = self.client.get(
            url,
            params=params or None,
            headers=headers,
            timeout=self.timeout,
        )
        resp.raise_for_status()
        return resp

    def close(self) -> None:
        if self._client is not None:
            self._client.close()

    # ------------------------------------------------------------------
    # Stats
    # ------------------------------------------------------------------

    def record_fetch(self, count: int) -> None:
        self._last_fetch = isoformat(utcnow())
        self._fetch_count += count

    def record_error(self, source_name: str, exc: Exception) -> None:
        self._error_count += 1
        self._source_errors[source_name] = str(exc)

    @property
    def last_errors(self) -> Dict[str, str]:
        """Per-source errors from the most recent ``collect()``."""
        return dict(self._source_errors)

    def get_stats(self) -> Dict[str, object]:
        return {
            "name": self.name,
            "kind": self.kind.value,
            "last_fetch": self._last_fetch,
            "total_fetched": self._fetch_count,
            "total_errors": self._error_count,
        }


def require_url(url: str) -> str:
    """Validate that ``url`` is absolute http(s)."""
    parsed = urlparse(url or "")
    if parsed.scheme not in ("http", "https") or not parsed.netloc:
        raise SourceConfigError(f"Malformed source URL: {url!r}")
    return url

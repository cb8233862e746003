# Intel Module - Syndicated Feed Collector
#
# Fetches RSS/Atom feeds over httpx (so the per-request timeout applies)
# and parses them with feedparser.  Takes the newest N entries per feed.

import logging
from datetime import datetime, timezone
from typing import Any, List, Optional, Union

import feedparser

from ..errors import CollectorError
from .collector import SourceCollector
from .models import RawSourceItem, SourceConfig, SourceKind

logger = logging.getLogger(__name__)


def _entry_published(entry) -> Union[datetime, str, None]:
    for key in ("published_parsed", "updated_parsed"):
        parsed = entry.get(key)
        if parsed:
            return datetime(*parsed[:6], tzinfo=timezone.utc)
    return entry.get("published") or entry.get("updated")


class FeedCollector(SourceCollector):
    """Collector for syndicated feeds.

    Usage::

        collector = FeedCollector()
        items = collector.collect(RSS_SOURCES)
    """

    kind = SourceKind.FEED

    def __init__(self, max_items: int = 10, **kwargs: Any):
        super().__init__("feed", max_items=max_items, **kwargs)

    def fetch_source(self, source: SourceConfig) -> List[RawSourceItem]:
        resp = self._get(source.url)
        feed = feedparser.parse(resp.content)

        entries = feed.get("entries") or []
        if not entries and feed.get("bozo"):
            raise CollectorError(
                f"Unparseable feed {source.url}: {feed.get('bozo_exception')}"
            )

        items: List[RawSourceItem] = []
        for entry in entries[: self.max_items]:
            items.append(self._to_item(entry, source))
        return items

    @staticmethod
    def _to_item(entry, source: SourceConfig) -> RawSourceItem:
        summary: Optional[str] = entry.get("summary") or entry.get("description")
        return RawSourceItem(
            title=entry.get("title") or "",
            summary=summary or "",
            link=entry.get("link") or entry.get("id") or "",
            published=_entry_published(entry),
            source_name=source.name,
            source_kind=SourceKind.FEED,
            category_hint=source.category,
            priority=source.priority,
            metadata={"feed_url": source.url},
        )

# Intel Module - Social Community Collector
#
# Reads the "hot" listing of public Reddit communities and keeps the
# engagement counts the normalizer turns into a severity bonus.

import logging
from datetime import datetime, timezone
from typing import Any, Dict, List, Optional

from ..errors import CollectorError
from . import keywords as kw
from .collector import MALFORMED_ITEM_ERRORS, SourceCollector
from .models import RawSourceItem, SourceConfig, SourceKind, ThreatCategory

logger = logging.getLogger(__name__)

REDDIT_BASE_URL = "https://www.reddit.com"
SOCIAL_USER_AGENT = "Global Sentinel SIGINT Bot v1.0"
LISTING_LIMIT = 25


def community_source(community: str, base_url: str = REDDIT_BASE_URL) -> SourceConfig:
    """Build the SourceConfig for one community's hot listing."""
    category = kw.COMMUNITY_CATEGORIES.get(community.lower(), ThreatCategory.GENERAL)
    return SourceConfig(
        name=community,
        url=f"{base_url}/r/{community}/hot.json",
        kind=SourceKind.SOCIAL,
        category=category.value,
        params={"limit": LISTING_LIMIT},
    )


class SocialCollector(SourceCollector):
    """Collector for community discussion listings."""

    kind = SourceKind.SOCIAL

    def __init__(
        self,
        max_items: int = LISTING_LIMIT,
        user_agent: str = SOCIAL_USER_AGENT,
        **kwargs: Any,
    ):
        super().__init__(
            "social", max_items=max_items, user_agent=user_agent, **kwargs
        )

    def fetch_source(self, source: SourceConfig) -> List[RawSourceItem]:
        resp = self._get(
            source.url,
            params=source.params,
            headers={"User-Agent": self.user_agent},
        )
        try:
            payload = resp.json()
        except ValueError as exc:
            raise CollectorError(f"Invalid JSON from r/{source.name}: {exc}") from exc

        children = ((payload or {}).get("data") or {}).get("children") or []
        items: List[RawSourceItem] = []
        for child in children[: self.max_items]:
            try:
                post: Dict[str, Any] = child.get("data") or {}
                if post.get("stickied"):
                    continue
                items.append(self._to_item(post, source))
            except MALFORMED_ITEM_ERRORS as exc:
                logger.warning("Skipping malformed post in r/%s: %s", source.name, exc)
        return items

    @staticmethod
    def _to_item(post: Dict[str, Any], source: SourceConfig) -> RawSourceItem:
        created: Optional[datetime] = None
        if post.get("created_utc") is not None:
            created = datetime.fromtimestamp(float(post["created_utc"]), tz=timezone.utc)

        permalink = post.get("permalink")
        link = f"{REDDIT_BASE_URL}{permalink}" if permalink else post.get("url") or ""
        title = post.get("title") or ""

        return RawSourceItem(
            title=title,
            summary=post.get("selftext") or title,
            link=link,
            published=created,
            source_name=f"r/{source.name}",
            source_kind=SourceKind.SOCIAL,
            category_hint=source.category,
            priority=source.priority,
            metadata={
                "score": post.get("score", 0),
                "comments": post.get("num_comments", 0),
                "subreddit": post.get("subreddit") or source.name,
                "external_url": post.get("url"),
            },
        )

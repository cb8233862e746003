# Intel Module - HTML Page Collector
#
# Scrapes news/alert listing pages with BeautifulSoup using per-source CSS
# selectors:
#   title   (required)  elements whose text is an item headline
#   link    (optional)  anchor inside the item container
#   summary (optional)  description inside the item container
#   date    (optional)  date text inside the item container
#
# Summary fallback chain when no summary selector matches:
#   container p/.description/.summary -> next sibling text -> title

import logging
from typing import Any, List, Optional
from urllib.parse import urljoin

from bs4 import BeautifulSoup, NavigableString, Tag

from ..errors import SourceConfigError
from .collector import MALFORMED_ITEM_ERRORS, SourceCollector
from .models import RawSourceItem, SourceConfig, SourceKind

logger = logging.getLogger(__name__)

SUMMARY_FALLBACK_SELECTOR = "p, .description, .summary"


def _text(node: Optional[Tag]) -> str:
    if node is None:
        return ""
    return node.get_text(" ", strip=True)


def _closest_container(element: Tag) -> Optional[Tag]:
    for parent in element.parents:
        if not isinstance(parent, Tag):
            continue
        if parent.name in ("article", "li"):
            return parent
        classes = parent.get("class") or []
        if "item" in classes or "post" in classes:
            return parent
    return None


def _next_sibling_text(element: Tag) -> str:
    for sibling in element.next_siblings:
        if isinstance(sibling, NavigableString):
            text = str(sibling).strip()
        elif isinstance(sibling, Tag):
            text = _text(sibling)
        else:
            continue
        if text:
            return text
    return ""


class HtmlCollector(SourceCollector):
    """Collector for HTML listing pages."""

    kind = SourceKind.HTML

    def __init__(self, max_items: int = 10, **kwargs: Any):
        super().__init__("html", max_items=max_items, **kwargs)

    def fetch_source(self, source: SourceConfig) -> List[RawSourceItem]:
        title_selector = (source.selectors or {}).get("title")
        if not title_selector:
            raise SourceConfigError(f"{source.name}: missing title selector")

        resp = self._get(source.url)
        soup = BeautifulSoup(resp.text, "html.parser")

        items: List[RawSourceItem] = []
        for element in soup.select(title_selector):
            title = _text(element)
            if not title:
                continue
            try:
                items.append(self._to_item(element, title, source))
            except MALFORMED_ITEM_ERRORS as exc:
                logger.warning("Skipping malformed item on %s: %s", source.name, exc)
            if len(items) >= self.max_items:
                break
        return items

    def _to_item(
        self, element: Tag, title: str, source: SourceConfig
    ) -> RawSourceItem:
        selectors = source.selectors
        container = _closest_container(element)
        scope = container if container is not None else element.parent

        return RawSourceItem(
            title=title,
            summary=self._summary(element, title, scope, selectors.get("summary")),
            link=self._link(element, scope, source),
            published=self._date(scope, selectors.get("date")),
            source_name=source.name,
            source_kind=SourceKind.HTML,
            category_hint=source.category,
            priority=source.priority,
            metadata={"page_url": source.url},
        )

    @staticmethod
    def _link(element: Tag, scope: Optional[Tag], source: SourceConfig) -> str:
        href = element.get("href") if element.name == "a" else None
        if not href:
            anchor = element.find("a", href=True)
            if anchor is not None:
                href = anchor["href"]
        if not href and scope is not None:
            link_selector = source.selectors.get("link") or "a[href]"
            anchor = scope.select_one(link_selector)
            if anchor is not None:
                href = anchor.get("href")
        if not href:
            return source.url
        return urljoin(source.url, href)

    @staticmethod
    def _summary(
        element: Tag,
        title: str,
        scope: Optional[Tag],
        summary_selector: Optional[str],
    ) -> str:
        if scope is not None:
            if summary_selector:
                text = _text(scope.select_one(summary_selector))
                if text:
                    return text
            for candidate in scope.select(SUMMARY_FALLBACK_SELECTOR):
                text = _text(candidate)
                if text and text != title:
                    return text
        return _next_sibling_text(element) or title

    @staticmethod
    def _date(scope: Optional[Tag], date_selector: Optional[str]) -> Optional[str]:
        if scope is None or not date_selector:
            return None
        node = scope.select_one(date_selector)
        if node is None:
            return None
        return node.get("datetime") or _text(node) or None

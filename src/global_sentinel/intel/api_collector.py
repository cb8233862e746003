# Intel Module - Structured API Collector
#
# Fetches JSON APIs and maps each response into RawSourceItems using a
# per-source "shape" normalizer:
#   - gdelt: GDELT DOC 2.0 article list
#   - usgs:  USGS earthquake GeoJSON feed
#
# New shapes register with @register_shape.

import logging
from datetime import datetime, timezone
from typing import Any, Callable, Dict, List, Optional

from ..errors import CollectorError, SourceConfigError
from .collector import MALFORMED_ITEM_ERRORS, SourceCollector
from .models import RawSourceItem, SourceConfig, SourceKind, ThreatCategory

logger = logging.getLogger(__name__)

DEFAULT_API_TIMEOUT_SEC = 15.0
GDELT_DATE_FORMAT = "%Y%m%dT%H%M%SZ"

ShapeParser = Callable[[Any, SourceConfig], List[RawSourceItem]]

_SHAPES: Dict[str, ShapeParser] = {}


def register_shape(name: str) -> Callable[[ShapeParser], ShapeParser]:
    """Decorator registering a response-shape normalizer."""

    def decorator(func: ShapeParser) -> ShapeParser:
        _SHAPES[name] = func
        return func

    return decorator


def known_shapes() -> List[str]:
    return sorted(_SHAPES)


def _parse_gdelt_date(value: Optional[str]) -> Optional[datetime]:
    if not value:
        return None
    try:
        return datetime.strptime(value, GDELT_DATE_FORMAT).replace(
            tzinfo=timezone.utc
        )
    except ValueError:
        logger.debug("Unparseable GDELT seendate %r", value)
        return None


def _map_entries(
    entries: Any,
    mapper: Callable[[Any, SourceConfig], RawSourceItem],
    source: SourceConfig,
) -> List[RawSourceItem]:
    """Apply ``mapper`` to each entry, skipping malformed ones."""
    items: List[RawSourceItem] = []
    for index, entry in enumerate(entries or []):
        try:
            items.append(mapper(entry, source))
        except MALFORMED_ITEM_ERRORS as exc:
            logger.warning(
                "Skipping malformed entry %d from %s: %s", index, source.name, exc
            )
    return items


def _gdelt_item(article: Dict[str, Any], source: SourceConfig) -> RawSourceItem:
    title = article.get("title") or ""
    return RawSourceItem(
        title=title,
        summary=article.get("seendescription") or title,
        link=article.get("url") or "",
        published=_parse_gdelt_date(article.get("seendate")),
        source_name=source.name,
        source_kind=SourceKind.API,
        category_hint=source.category,
        priority=source.priority,
        metadata={
            "domain": article.get("domain"),
            "country": article.get("sourcecountry"),
            "language": article.get("language"),
            "tone": article.get("tone"),
            "social_shares": article.get("socialsharecount"),
        },
    )


@register_shape("gdelt")
def parse_gdelt(payload: Any, source: SourceConfig) -> List[RawSourceItem]:
    if not isinstance(payload, dict):
        raise CollectorError("GDELT response is not a JSON object")
    return _map_entries(payload.get("articles"), _gdelt_item, source)


def _usgs_item(feature: Dict[str, Any], source: SourceConfig) -> RawSourceItem:
    props = feature.get("properties") or {}
    coords = (feature.get("geometry") or {}).get("coordinates") or []
    magnitude = props.get("mag")
    place = props.get("place") or "Unknown location"

    metadata: Dict[str, Any] = {
        "magnitude": magnitude,
        "felt": props.get("felt"),
        "tsunami": props.get("tsunami"),
    }
    if len(coords) >= 2:
        metadata["longitude"] = coords[0]
        metadata["latitude"] = coords[1]
    if len(coords) >= 3:
        metadata["depth"] = coords[2]

    epoch_ms = props.get("time")
    return RawSourceItem(
        title=f"Magnitude {magnitude} Earthquake - {place}",
        summary=f"A magnitude {magnitude} earthquake occurred {place}.",
        link=props.get("url") or "",
        published=float(epoch_ms) / 1000.0 if epoch_ms is not None else None,
        source_name=source.name,
        source_kind=SourceKind.API,
        category_hint=ThreatCategory.NATURAL.value,
        priority=source.priority,
        metadata=metadata,
    )


@register_shape("usgs")
def parse_usgs(payload: Any, source: SourceConfig) -> List[RawSourceItem]:
    if not isinstance(payload, dict):
        raise CollectorError("USGS response is not a JSON object")
    return _map_entries(payload.get("features"), _usgs_item, source)


class ApiCollector(SourceCollector):
    """Collector for structured JSON APIs.

    Each source names its ``shape``; the matching normalizer turns the
    decoded JSON into raw items.
    """

    kind = SourceKind.API

    def __init__(
        self,
        max_items: int = 15,
        timeout: float = DEFAULT_API_TIMEOUT_SEC,
        **kwargs: Any,
    ):
        super().__init__("api", timeout=timeout, max_items=max_items, **kwargs)

    def fetch_source(self, source: SourceConfig) -> List[RawSourceItem]:
        parser = _SHAPES.get(source.shape or "")
        if parser is None:
            raise SourceConfigError(
                f"Unknown response shape {source.shape!r} for {source.name}"
            )

        resp = self._get(source.url, params=source.params)
        try:
            payload = resp.json()
        except ValueError as exc:
            raise CollectorError(f"Invalid JSON from {source.name}: {exc}") from exc

        return parser(payload, source)[: self.max_items]

# Intel Module - Default Source Tables
#
# The monitored feeds, structured APIs, HTML pages and communities used
# when no custom source list is supplied.

from typing import List

from .models import SourceConfig, SourceKind
from .social_collector import community_source

RSS_SOURCES: List[SourceConfig] = [
    SourceConfig("BBC World News", "http://feeds.bbci.co.uk/news/world/rss.xml",
                 category="General", priority="high"),
    SourceConfig("Reuters World News", "https://feeds.reuters.com/reuters/worldNews",
                 category="General", priority="high"),
    SourceConfig("Al Jazeera", "https://www.aljazeera.com/xml/rss/all.xml",
                 category="General"),
    SourceConfig("CNN World", "http://rss.cnn.com/rss/edition.rss",
                 category="General"),
    SourceConfig("WHO Disease Outbreak News",
                 "https://www.who.int/feeds/entity/csr/don/en/rss.xml",
                 category="Health", priority="critical"),
    SourceConfig("CDC Health News",
                 "https://tools.cdc.gov/api/v2/resources/media/132608.rss",
                 category="Health", priority="high"),
    SourceConfig("Security Week", "https://www.securityweek.com/feed/",
                 category="Cyber", priority="high"),
    SourceConfig("Krebs on Security", "https://krebsonsecurity.com/feed/",
                 category="Cyber"),
    SourceConfig("Climate Central", "https://www.climatecentral.org/rss.xml",
                 category="Climate"),
]

API_SOURCES: List[SourceConfig] = [
    SourceConfig(
        "GDELT Project",
        "https://api.gdeltproject.org/api/v2/doc/doc",
        kind=SourceKind.API,
        category="Conflict",
        priority="high",
        params={
            "query": "conflict OR crisis OR threat",
            "mode": "artlist",
            "maxrecords": 20,
            "format": "json",
        },
        shape="gdelt",
    ),
    SourceConfig(
        "USGS Earthquake Data",
        "https://earthquake.usgs.gov/earthquakes/feed/v1.0/summary/significant_day.geojson",
        kind=SourceKind.API,
        category="Natural",
        priority="high",
        shape="usgs",
    ),
]

HTML_SOURCES: List[SourceConfig] = [
    SourceConfig(
        "WHO Emergency Updates",
        "https://www.who.int/emergencies/disease-outbreak-news",
        kind=SourceKind.HTML,
        category="Health",
        priority="critical",
        selectors={
            "title": ".sf-item-header-title a",
            "summary": ".sf-item-header-summary",
            "date": ".sf-item-header-date",
            "link": ".sf-item-header-title a",
        },
    ),
    SourceConfig(
        "CDC Emergency Preparedness",
        "https://www.cdc.gov/phpr/whatsnew.htm",
        kind=SourceKind.HTML,
        category="Health",
        priority="high",
        selectors={
            "title": ".list-item-title a",
            "summary": ".list-item-description",
            "date": ".list-item-date",
            "link": ".list-item-title a",
        },
    ),
    SourceConfig(
        "FEMA Disasters",
        "https://www.fema.gov/disasters",
        kind=SourceKind.HTML,
        category="Natural",
        priority="high",
        selectors={
            "title": ".views-field-title a",
            "summary": ".views-field-field-summary",
            "date": ".views-field-created",
            "link": ".views-field-title a",
        },
    ),
]

COMMUNITIES = [
    "worldnews",
    "news",
    "geopolitics",
    "cybersecurity",
    "climate",
    "economics",
    "pandemic",
]

SOCIAL_SOURCES: List[SourceConfig] = [community_source(c) for c in COMMUNITIES]

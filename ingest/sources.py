from __future__ import annotations

from collections.abc import Callable
from dataclasses import dataclass, field
from datetime import datetime
from functools import partial
from pathlib import Path
from typing import Any

from app.settings import Settings
from ingest.feed_packs import Feed, enabled_feeds, load_feed_packs
from ingest.parsers.geojson import parse_geojson
from ingest.parsers.json import parse_json_document, parse_json_records
from ingest.parsers.rss import parse_rss
from normalize import normalize as n
from normalize.incident import Incident


ParseFn = Callable[[bytes], list]
NormalizeFn = Callable[[Any, Feed, datetime], Incident | None]
UrlFn = Callable[[Feed, datetime], str]


@dataclass(frozen=True)
class SourcePlugin:
    name: str
    feeds: tuple[Feed, ...]
    parse: ParseFn
    normalize: NormalizeFn
    # Raw records considered per feed, before normalization.
    limit: int | None = None
    # Incidents kept per feed, after normalization.
    max_incidents: int | None = None
    headers: dict[str, str] = field(default_factory=dict)
    build_url: UrlFn | None = None
    # Stored rows of this source are replaced wholesale on a successful run.
    replaces_stored_source: str | None = None


USGS_URL = "https://earthquake.usgs.gov/earthquakes/feed/v1.0/summary/2.5_day.geojson"
NWS_ALERTS_URL = "https://api.weather.gov/alerts/active"
NWS_TSUNAMI_URL = (
    "https://api.weather.gov/alerts/active"
    "?event=Tsunami%20Warning,Tsunami%20Watch,Tsunami%20Advisory"
)
GDACS_URL = "https://www.gdacs.org/gdacsapi/api/events/geteventlist/ARCHIVE"
EONET_URL = "https://eonet.gsfc.nasa.gov/api/v3/events?limit=10&days=7"
NVD_URL = "https://services.nvd.nist.gov/rest/json/cves/2.0"
TRAVEL_ADVISORIES_URL = "https://travel.state.gov/_res/rss/TAsTWs.xml"
ASN_URL = "https://aviation-safety.net/news/rss.xml"
OPENSKY_URL = "https://opensky-network.org/api/states/all"
METEOALARM_URL = "https://www.meteoalarm.org/documents/rss/wflag-rss-all.xml"
ENV_CANADA_URL = "https://weather.gc.ca/rss/warning/on-14_e.xml"
BOM_URL = "http://www.bom.gov.au/fwo/IDZ00059.warnings_national.xml"

GEOJSON_HEADERS = {"Accept": "application/geo+json"}


def _single(url: str, label: str) -> tuple[Feed, ...]:
    return (Feed(url=url, label=label),)


def _parse_states(data: bytes) -> list:
    return parse_json_records(data, key="states")


def _pack_plugin(
    packs: dict[str, list[Feed]],
    pack_id: str,
    name: str,
    normalize: NormalizeFn,
    *,
    limit: int | None,
    parse: ParseFn = parse_rss,
) -> SourcePlugin:
    return SourcePlugin(
        name=name,
        feeds=tuple(enabled_feeds(packs, pack_id)),
        parse=parse,
        normalize=normalize,
        limit=limit,
    )


def all_sources(settings: Settings, feeds_dir: Path | None = None) -> list[SourcePlugin]:
    packs = load_feed_packs(feeds_dir or settings.feeds_dir)
    nvd_headers = {"apiKey": settings.nvd_api_key} if settings.nvd_api_key else {}

    return [
        SourcePlugin(
            name="USGS Earthquakes",
            feeds=_single(USGS_URL, "USGS"),
            parse=parse_geojson,
            normalize=n.normalize_usgs_earthquake,
        ),
        SourcePlugin(
            name="NOAA Weather",
            feeds=_single(NWS_ALERTS_URL, "NOAA"),
            parse=parse_geojson,
            normalize=n.normalize_nws_alert,
            max_incidents=30,
            headers=GEOJSON_HEADERS,
        ),
        SourcePlugin(
            name="NOAA Tsunami",
            feeds=_single(NWS_TSUNAMI_URL, "NOAA Tsunami"),
            parse=parse_geojson,
            normalize=n.normalize_tsunami_alert,
            headers=GEOJSON_HEADERS,
        ),
        SourcePlugin(
            name="GDACS",
            feeds=_single(GDACS_URL, "GDACS"),
            parse=parse_geojson,
            normalize=n.normalize_gdacs_event,
            limit=50,
        ),
        SourcePlugin(
            name="NASA",
            feeds=_single(EONET_URL, "NASA EONET"),
            parse=parse_json_records,
            normalize=n.normalize_eonet_event,
        ),
        _pack_plugin(packs, "world_news", "News Feeds", n.normalize_news_item, limit=20),
        _pack_plugin(
            packs,
            "regional",
            "Regional News",
            partial(n.normalize_news_item, prefix="regional", source_suffix=""),
            limit=10,
        ),
        _pack_plugin(packs, "conflict", "Warzone Monitor", n.normalize_conflict_item, limit=15),
        _pack_plugin(
            packs,
            "political_business",
            "Political/Business",
            n.normalize_political_business_item,
            limit=15,
        ),
        _pack_plugin(packs, "maritime", "Maritime Monitor", n.normalize_maritime_item, limit=10),
        _pack_plugin(packs, "cyber", "Cyber Threat Feed", n.normalize_cyber_item, limit=10),
        _pack_plugin(packs, "nuclear", "Nuclear Monitor", n.normalize_nuclear_item, limit=10),
        _pack_plugin(packs, "tech", "Tech News", n.normalize_tech_item, limit=15),
        _pack_plugin(packs, "financial", "Financial Feed", n.normalize_financial_item, limit=20),
        _pack_plugin(packs, "protest", "Protest Monitor", n.normalize_protest_item, limit=30),
        SourcePlugin(
            name="NIST CVE",
            feeds=_single(NVD_URL, "NIST NVD"),
            parse=parse_json_records,
            normalize=n.normalize_nvd_cve,
            limit=50,
            headers=nvd_headers,
            build_url=n.nvd_url,
            replaces_stored_source="NIST NVD",
        ),
        SourcePlugin(
            name="US State Dept",
            feeds=_single(TRAVEL_ADVISORIES_URL, "US State Dept"),
            parse=parse_rss,
            normalize=n.normalize_travel_advisory,
            limit=30,
        ),
        SourcePlugin(
            name="Aviation Safety Network",
            feeds=_single(ASN_URL, "Aviation Safety Network"),
            parse=parse_rss,
            normalize=n.normalize_aviation_item,
            limit=20,
        ),
        SourcePlugin(
            name="OpenSky Network",
            feeds=_single(OPENSKY_URL, "OpenSky"),
            parse=_parse_states,
            normalize=n.normalize_aircraft_state,
        ),
        _pack_plugin(
            packs,
            "status_pages",
            "Cloud/ISP Status",
            n.normalize_status_incident,
            limit=5,
            parse=parse_json_records,
        ),
        SourcePlugin(
            name="MeteoAlarm",
            feeds=_single(METEOALARM_URL, "MeteoAlarm"),
            parse=parse_rss,
            normalize=n.normalize_meteoalarm_item,
            limit=30,
        ),
        SourcePlugin(
            name="Environment Canada",
            feeds=_single(ENV_CANADA_URL, "Environment Canada"),
            parse=parse_rss,
            normalize=n.normalize_env_canada_item,
            limit=20,
        ),
        SourcePlugin(
            name="BOM Australia",
            feeds=_single(BOM_URL, "BOM"),
            parse=parse_rss,
            normalize=n.normalize_bom_item,
            limit=20,
        ),
        _pack_plugin(
            packs,
            "air_quality",
            "Air Quality",
            n.normalize_air_quality,
            limit=None,
            parse=parse_json_document,
        ),
    ]


def select_sources(plugins: list[SourcePlugin], names: list[str]) -> list[SourcePlugin]:
    if not names:
        return plugins
    wanted = {name.lower() for name in names}
    selected = [p for p in plugins if p.name.lower() in wanted]
    unknown = wanted - {p.name.lower() for p in selected}
    if unknown:
        raise ValueError(f"unknown sources: {', '.join(sorted(unknown))}")
    return selected

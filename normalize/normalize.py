from __future__ import annotations

import re
from datetime import UTC, datetime, timedelta

from geo.geocode import GeoMatch, geocode_text, geocode_vendor, lookup_location
from geo.geometry import geometry_centroid
from geo.regions import US_CENTER, region_point
from ingest.feed_packs import Feed
from normalize.aircraft import classify_aircraft
from normalize.classify import (
    classify_text,
    is_protest_report,
    keyword_pattern,
    keyword_severity,
    protest_severity,
)
from normalize.incident import Incident, clean_text, hashed_id, make_incident, parse_iso


def _epoch_ms(value: int | float | str) -> datetime:
    return datetime.fromtimestamp(float(value) / 1000.0, tz=UTC)


def _timestamp(value: object, now: datetime) -> datetime:
    if value is None or value == "":
        return now
    if isinstance(value, (int, float)):
        return datetime.fromtimestamp(float(value), tz=UTC)
    text = str(value).strip()
    if text.isdigit():
        return datetime.fromtimestamp(int(text), tz=UTC)
    return parse_iso(text)


def _item_text(record: dict) -> tuple[str, str, str]:
    title = clean_text(record.get("title"))
    description = clean_text(record.get("summary"))
    return title, description, f"{title} {description}".lower()


def _item_incident(
    record: dict,
    feed: Feed,
    now: datetime,
    *,
    prefix: str,
    type: str,
    severity: str,
    match: GeoMatch | None,
    source: str | None = None,
    location_name: str | None = None,
    **extras: object,
) -> Incident:
    title, description, _ = _item_text(record)
    return make_incident(
        id=hashed_id(prefix, feed.label, title),
        title=title,
        description=description,
        type=type,
        severity=severity,
        lat=match.lat if match else None,
        lon=match.lon if match else None,
        location_name=match.name if match else location_name,
        timestamp=_timestamp(record.get("published"), now),
        source=source or feed.label,
        livestream_url=record.get("link"),
        **extras,
    )


# --- structured hazard feeds ---------------------------------------------


def normalize_usgs_earthquake(record: dict, feed: Feed, now: datetime) -> Incident:
    props = record["properties"]
    lon, lat = record["geometry"]["coordinates"][:2]
    mag = props.get("mag")
    if mag is None:
        severity = "medium"
    elif mag >= 6:
        severity = "critical"
    elif mag >= 5:
        severity = "high"
    else:
        severity = "medium"

    return make_incident(
        id=f"earthquake-{record['id']}",
        title=props.get("title") or f"M {mag} - {props.get('place')}",
        description=f"Magnitude {mag} earthquake",
        type="weather",
        severity=severity,
        lat=lat,
        lon=lon,
        location_name=props.get("place"),
        timestamp=_epoch_ms(props["time"]),
        source="USGS",
        livestream_url=props.get("url"),
    )


NWS_SEVERITIES = {"Extreme": "critical", "Severe": "high", "Moderate": "medium"}


def _nws_point(record: dict, incident_id: str) -> tuple[float, float] | None:
    point = geometry_centroid(record.get("geometry"))
    if point is not None:
        return point
    ugc = (record["properties"].get("geocode") or {}).get("UGC") or []
    if ugc:
        return region_point(str(ugc[0])[:2], incident_id)
    return None


def normalize_nws_alert(record: dict, feed: Feed, now: datetime) -> Incident | None:
    props = record["properties"]
    severity = NWS_SEVERITIES.get(str(props.get("severity")))
    if severity is None:
        return None

    incident_id = f"weather-{props.get('id') or record.get('id')}"
    lat, lon = _nws_point(record, incident_id) or US_CENTER
    return make_incident(
        id=incident_id,
        title=props.get("event") or "Weather Alert",
        description=props.get("headline") or props.get("description"),
        type="weather",
        severity=severity,
        lat=lat,
        lon=lon,
        location_name=props.get("areaDesc"),
        timestamp=_timestamp(props.get("effective") or props.get("sent"), now),
        source="NOAA",
        livestream_url=props.get("@id") or record.get("id"),
    )


PACIFIC_OCEAN = (20.0, -155.0)


def normalize_tsunami_alert(record: dict, feed: Feed, now: datetime) -> Incident | None:
    props = record["properties"]
    event = str(props.get("event") or "Tsunami Alert")
    lowered = event.lower()
    if "tsunami" not in lowered:
        return None
    if "watch" in lowered:
        severity = "high"
    elif "advisory" in lowered:
        severity = "medium"
    else:
        severity = "critical"

    lat, lon = geometry_centroid(record.get("geometry")) or PACIFIC_OCEAN
    return make_incident(
        id=f"tsunami-{props.get('identifier') or props.get('id')}",
        title=event,
        description=props.get("headline")
        or (props.get("description") or "")[:200]
        or "Tsunami warning in effect",
        type="weather",
        severity=severity,
        lat=lat,
        lon=lon,
        location_name=props.get("areaDesc") or "Pacific Ocean",
        timestamp=_timestamp(props.get("effective") or props.get("sent"), now),
        source="NOAA Tsunami Warning Center",
        livestream_url=props.get("@id") or record.get("id"),
    )


GDACS_ALERT_LEVELS = {"red": "critical", "orange": "high"}
# Slow-onset and multi-day events stay relevant past the default window.
GDACS_LONG_RUNNING = frozenset({"VO", "DR", "TC"})
CYCLONE_ACTIVE_WINDOW = timedelta(days=7)
SLOW_ONSET_WINDOW = timedelta(days=30)


def normalize_gdacs_event(record: dict, feed: Feed, now: datetime) -> Incident | None:
    props = record["properties"]
    event_type = str(props.get("eventtype") or "").upper()
    started = _timestamp(props.get("fromdate"), now)
    ends = _timestamp(props["todate"], now) if props.get("todate") else None
    if event_type == "TC":
        if (ends or now) < now - CYCLONE_ACTIVE_WINDOW:
            return None
    elif event_type in ("VO", "DR") and started < now - SLOW_ONSET_WINDOW:
        return None

    point = geometry_centroid(record.get("geometry"))
    if point is None:
        return None

    name = props.get("name") or props.get("country") or "Unknown"
    alert_level = str(props.get("alertlevel") or "")
    url = props.get("url")
    return make_incident(
        id=f"gdacs-{props.get('eventid')}",
        title=f"{event_type}: {name}",
        description=props.get("description") or f"{alert_level} severity event",
        type="weather",
        severity=GDACS_ALERT_LEVELS.get(alert_level.lower(), "medium"),
        lat=point[0],
        lon=point[1],
        location_name=props.get("country") or name,
        timestamp=started,
        source="GDACS",
        livestream_url=url.get("report") if isinstance(url, dict) else url,
        long_running=event_type in GDACS_LONG_RUNNING,
        gdacs_event_type=event_type,
        gdacs_to_date=ends,
    )


def normalize_eonet_event(record: dict, feed: Feed, now: datetime) -> Incident | None:
    geometries = record.get("geometry") or []
    if not geometries:
        return None
    first = geometries[0]
    point = geometry_centroid(first)
    if point is None:
        return None
    lat, lon = point
    # Events without a real fix come through at the null island.
    if lat == 0 or lon == 0:
        return None

    categories = [
        str(c.get("title") or c.get("id") or "") for c in record.get("categories") or []
    ]
    severity = "high" if any("fire" in c.lower() for c in categories) else "medium"
    return make_incident(
        id=f"nasa-{record['id']}",
        title=record.get("title"),
        description=record.get("description") or f"{', '.join(categories)} event",
        type="weather",
        severity=severity,
        lat=lat,
        lon=lon,
        location_name=record.get("title"),
        timestamp=_timestamp(first.get("date"), now),
        source="NASA EONET",
        livestream_url=record.get("link"),
    )


# --- news feeds ------------------------------------------------------------


def normalize_news_item(
    record: dict,
    feed: Feed,
    now: datetime,
    *,
    prefix: str = "news",
    source_suffix: str = " News",
) -> Incident | None:
    title, description, _ = _item_text(record)
    if not title:
        return None
    match = geocode_text(title, description)
    if match is None:
        return None
    type, severity = classify_text(title, description)
    return _item_incident(
        record,
        feed,
        now,
        prefix=prefix,
        type=type,
        severity=severity,
        match=match,
        source=f"{feed.label}{source_suffix}",
    )


CONFLICT_KEYWORDS = keyword_pattern(
    (
        "airstrike", "air strike", "drone strike", "missile strike", "combat",
        "battle", "offensive", "troops deployed", "military operation",
        "bombardment", "shelling", "artillery fire", "rocket attack", "fighting",
        "casualties", "killed in action", "wounded", "warzone", "frontline",
        "front line", "ceasefire", "invasion", "occupied", "liberation", "siege",
        "military convoy", "armed forces", "soldiers", "battalion", "naval",
        "warship", "fighter jet", "tank", "armored", "terrorist attack",
        "insurgent", "rebel forces", "militia", "hamas attack", "houthi",
        "taliban", "hezbollah",
    )
)
CONFLICT_ESCALATION = ("casualties", "killed", "offensive", "invasion")


def normalize_conflict_item(record: dict, feed: Feed, now: datetime) -> Incident | None:
    title, description, text = _item_text(record)
    if not title or not CONFLICT_KEYWORDS.search(text):
        return None
    match = geocode_text(title, description)
    if match is None:
        return None
    return _item_incident(
        record,
        feed,
        now,
        prefix="conflict",
        type="military",
        severity=keyword_severity(text, [("critical", CONFLICT_ESCALATION)], "high"),
        match=match,
    )


POLITICAL_KEYWORDS = keyword_pattern(
    (
        "summit", "meeting", "talks", "negotiation", "treaty", "agreement",
        "diplomatic", "foreign minister", "president meets", "prime minister",
        "bilateral", "multilateral", "g7", "g20", "brics", "asean", "eu summit",
    )
)
BUSINESS_KEYWORDS = keyword_pattern(
    (
        "merger", "acquisition", "deal worth", "billion dollar", "investment",
        "trade agreement", "partnership", "joint venture", "ipo", "contract awarded",
    )
)


def normalize_political_business_item(
    record: dict, feed: Feed, now: datetime
) -> Incident | None:
    title, description, text = _item_text(record)
    if not title:
        return None
    is_business = bool(BUSINESS_KEYWORDS.search(text))
    if not is_business and not POLITICAL_KEYWORDS.search(text):
        return None
    match = geocode_text(title, description)
    if match is None:
        return None

    if is_business:
        severity = keyword_severity(text, [("high", ("billion", "acquisition"))], "medium")
    else:
        severity = keyword_severity(
            text, [("high", ("summit", "treaty", "agreement"))], "medium"
        )
    return _item_incident(
        record,
        feed,
        now,
        prefix="polbiz",
        type="business" if is_business else "political",
        severity=severity,
        match=match,
    )


MARITIME_KEYWORDS = keyword_pattern(
    (
        "piracy", "hijack", "seized", "attack", "collision", "sinking", "distress",
        "oil spill", "grounding", "fire", "explosion", "missing vessel", "rescue",
        "naval", "warship", "blockade", "strait", "port closure",
    )
)
MARITIME_ESCALATION = ("piracy", "hijack", "sinking", "oil spill", "blockade")


def normalize_maritime_item(record: dict, feed: Feed, now: datetime) -> Incident | None:
    title, description, text = _item_text(record)
    if not title or not MARITIME_KEYWORDS.search(text):
        return None
    match = geocode_text(title, description)
    if match is None:
        return None
    return _item_incident(
        record,
        feed,
        now,
        prefix="maritime",
        type="maritime",
        severity=keyword_severity(text, [("high", MARITIME_ESCALATION)], "medium"),
        match=match,
    )


CYBER_KEYWORDS = keyword_pattern(
    (
        "data breach", "ransomware", "hack", "hacker", "hacking", "cyber attack",
        "cyberattack", "ddos", "zero-day", "zero day", "0day", "0-day", "exploit",
        "exploited", "exploitation", "apt", "malware", "spyware", "trojan",
        "botnet", "phishing", "vulnerability", "cve-", "patch", "security flaw",
        "bug bounty", "compromised", "leaked", "stolen data", "exfiltrat",
        "nation-state", "critical infrastructure", "threat actor", "threat group",
        "credential", "authentication bypass", "rce", "remote code execution",
        "encryption", "decryption", "cryptojacking", "cryptomining", "firewall",
        "intrusion", "breach", "attack surface", "supply chain attack",
    )
)
CYBER_SEVERITY = (
    ("critical", ("critical infrastructure", "nation-state")),
    ("high", ("ransomware", "zero-day", "zero day", "0day", "0-day")),
)


def normalize_cyber_item(record: dict, feed: Feed, now: datetime) -> Incident | None:
    title, description, text = _item_text(record)
    if not title:
        return None
    if not feed.trusted and not CYBER_KEYWORDS.search(text):
        return None
    match = geocode_text(title, description)
    return _item_incident(
        record,
        feed,
        now,
        prefix="cyber",
        type="cyber",
        severity=keyword_severity(text, CYBER_SEVERITY, "medium"),
        match=match,
        location_name="Global",
        spatial_exempt=match is None,
    )


NUCLEAR_KEYWORDS = keyword_pattern(
    (
        "incident", "accident", "leak", "radiation", "emergency", "shutdown",
        "safety", "meltdown", "contamination", "alert", "warning", "evacuation",
        "enrichment", "weapons", "proliferation", "inspection",
    )
)
NUCLEAR_SEVERITY = (
    ("critical", ("meltdown", "emergency", "leak")),
    ("high", ("incident", "weapons")),
)


def normalize_nuclear_item(record: dict, feed: Feed, now: datetime) -> Incident | None:
    title, description, text = _item_text(record)
    if not title or not NUCLEAR_KEYWORDS.search(text):
        return None
    match = geocode_text(title, description)
    if match is None:
        return None
    return _item_incident(
        record,
        feed,
        now,
        prefix="nuclear",
        type="nuclear",
        severity=keyword_severity(text, NUCLEAR_SEVERITY, "medium"),
        match=match,
    )


TECH_KEYWORDS = keyword_pattern(
    (
        "ai", "artificial intelligence", "machine learning", "neural", "llm",
        "chatgpt", "openai", "claude", "anthropic", "gpt", "gemini", "copilot",
        "quantum", "chip", "semiconductor", "processor", "gpu", "nvidia", "amd",
        "intel", "apple silicon", "m1", "m2", "m3", "m4", "software", "hardware",
        "app", "startup", "tech", "cloud", "aws", "azure", "google", "microsoft",
        "meta", "amazon", "crypto", "blockchain", "bitcoin", "ethereum", "web3",
        "nft", "defi", "robotics", "drone", "autonomous", "self-driving", "ev",
        "electric vehicle", "tesla", "waymo", "space", "spacex", "rocket",
        "satellite", "mars", "nasa", "orbit", "lunar", "cyber", "security",
        "breach", "hack", "hacker", "vulnerability", "zero-day", "zero day",
        "0day", "0-day", "exploit", "malware", "ransomware", "phishing",
        "biotech", "crispr", "gene", "medical device", "genomics", "vr", "ar",
        "metaverse", "virtual reality", "augmented reality", "headset",
        "vision pro", "programming", "programmer", "coding", "coder",
        "developer", "code", "github", "open source", "opensource", "api", "sdk",
        "framework", "algorithm", "database", "server", "linux", "rust",
        "python", "javascript", "typescript", "golang", "swift", "privacy",
        "encryption", "vpn", "data breach", "leak", "surveillance", "automation",
        "bot", "scraping", "web scraper",
    ),
    whole_words=True,
)


def normalize_tech_item(record: dict, feed: Feed, now: datetime) -> Incident | None:
    title, _, text = _item_text(record)
    if not title or not TECH_KEYWORDS.search(text):
        return None
    return _item_incident(
        record,
        feed,
        now,
        prefix="tech",
        type="other",
        severity="low",
        match=None,
        spatial_exempt=True,
    )


FINANCIAL_KEYWORDS = keyword_pattern(
    (
        "sanction", "embargo", "tariff", "trade war", "export control",
        "import ban", "freeze", "asset freeze", "swift", "financial restriction",
        "russia", "iran", "north korea", "venezuela", "cuba", "syria", "belarus",
        "default", "crisis", "collapse", "bailout", "recession", "inflation surge",
        "currency collapse", "debt crisis", "banking crisis", "market crash",
        "stock plunge", "sell-off", "circuit breaker", "trading halt",
    )
)
FINANCIAL_ESCALATION = (
    "collapse", "crisis", "default", "sanction", "embargo", "ban", "crash", "plunge",
)


def normalize_financial_item(record: dict, feed: Feed, now: datetime) -> Incident | None:
    title, description, text = _item_text(record)
    if not title or not FINANCIAL_KEYWORDS.search(text):
        return None
    match = geocode_text(title, description)
    if match is None:
        return None
    return _item_incident(
        record,
        feed,
        now,
        prefix="financial",
        type="financial",
        severity=keyword_severity(text, [("high", FINANCIAL_ESCALATION)], "medium"),
        match=match,
    )


def normalize_protest_item(record: dict, feed: Feed, now: datetime) -> Incident | None:
    title, description, _ = _item_text(record)
    if not title or not is_protest_report(title, description):
        return None
    match = geocode_text(title, description)
    if match is None:
        return None
    return _item_incident(
        record,
        feed,
        now,
        prefix="protest",
        type="protest",
        severity=protest_severity(title, description),
        match=match,
    )


# --- advisories and vulnerability feeds -------------------------------------


NVD_MIN_CVSS = 6.0
NVD_DEFAULT_CVSS = 5.0
NVD_DATE_FORMAT = "%Y-%m-%dT%H:%M:%S.000Z"


def nvd_url(feed: Feed, now: datetime) -> str:
    day = now.astimezone(UTC).replace(hour=0, minute=0, second=0, microsecond=0)
    end = day + timedelta(days=1) - timedelta(seconds=1)
    return (
        f"{feed.url}?pubStartDate={day.strftime(NVD_DATE_FORMAT)}"
        f"&pubEndDate={end.strftime(NVD_DATE_FORMAT)}"
    )


def _cvss_score(metrics: dict) -> float:
    for key in ("cvssMetricV31", "cvssMetricV30", "cvssMetricV40"):
        entries = metrics.get(key) or []
        if entries:
            score = (entries[0].get("cvssData") or {}).get("baseScore")
            if score is not None:
                return float(score)
    return NVD_DEFAULT_CVSS


def _cpe_vendors(configurations: object) -> list[str]:
    # cpe:2.3:a:<vendor>:<product>:...
    if isinstance(configurations, dict):
        configurations = [configurations]
    vendors: list[str] = []
    for config in configurations or []:
        for node in config.get("nodes") or []:
            for cpe in node.get("cpeMatch") or []:
                parts = str(cpe.get("criteria") or "").split(":")
                if len(parts) > 3 and parts[3] not in vendors:
                    vendors.append(parts[3])
    return vendors


def cvss_severity(score: float) -> str:
    if score >= 9.0:
        return "critical"
    if score >= 7.0:
        return "high"
    if score >= 4.0:
        return "medium"
    return "low"


def normalize_nvd_cve(record: dict, feed: Feed, now: datetime) -> Incident | None:
    cve = record["cve"]
    score = _cvss_score(cve.get("metrics") or {})
    if score < NVD_MIN_CVSS:
        return None

    cve_id = str(cve["id"])
    description = next(
        (d.get("value") for d in cve.get("descriptions") or [] if d.get("lang") == "en"),
        "",
    )
    match = geocode_vendor(description or "", _cpe_vendors(cve.get("configurations")))
    return make_incident(
        id=f"cve-{cve_id}",
        title=f"{cve_id} (CVSS {score})",
        description=description,
        type="cyber",
        severity=cvss_severity(score),
        lat=match.lat,
        lon=match.lon,
        location_name=match.name,
        timestamp=_timestamp(cve.get("published"), now),
        source="NIST NVD",
        livestream_url=f"https://nvd.nist.gov/vuln/detail/{cve_id}",
    )


TRAVEL_ADVISORY_RE = re.compile(r"^(.+?)\s*-\s*Level\s+(\d+):", re.IGNORECASE)
TRAVEL_LEVELS = {4: "critical", 3: "high", 2: "medium", 1: "low"}


def normalize_travel_advisory(record: dict, feed: Feed, now: datetime) -> Incident | None:
    title, description, _ = _item_text(record)
    m = TRAVEL_ADVISORY_RE.match(title)
    if m is None:
        return None
    country = m.group(1).strip()
    match = lookup_location(country)
    if match is None:
        return None
    return make_incident(
        id=hashed_id("travel", country, country),
        title=title,
        description=description or f"Travel advisory for {country}",
        type="advisory",
        severity=TRAVEL_LEVELS.get(int(m.group(2)), "medium"),
        lat=match.lat,
        lon=match.lon,
        location_name=match.name,
        timestamp=_timestamp(record.get("published"), now),
        source="US State Dept",
        livestream_url=record.get("link"),
    )


# --- aviation ---------------------------------------------------------------


AVIATION_SEVERITY = (
    ("critical", ("crash", "fatal", "accident", "hull loss")),
    ("high", ("emergency", "smoke", "fire", "engine", "divert")),
    ("medium", ("incident", "return", "damage", "evacuation")),
)
AVIATION_PLACE_PATTERNS = (
    re.compile(r"\b(?:near|at|over|in)\s+([A-Z][\w-]+(?:\s+[A-Z][\w-]+)?)"),
    re.compile(r",\s+([A-Z][\w-]+(?:\s+[A-Z][\w-]+)?)$"),
)
AVIATION_DEFAULT = GeoMatch(40.7128, -74.0060, "Aviation Incident")


def _aviation_place(text: str) -> GeoMatch | None:
    for pattern in AVIATION_PLACE_PATTERNS:
        for m in pattern.finditer(text):
            match = lookup_location(m.group(1))
            if match is not None:
                return match
    return None


def normalize_aviation_item(record: dict, feed: Feed, now: datetime) -> Incident | None:
    title, description, text = _item_text(record)
    if not title:
        return None
    match = _aviation_place(title) or _aviation_place(description) or AVIATION_DEFAULT
    return _item_incident(
        record,
        feed,
        now,
        prefix="aviation",
        type="other",
        severity=keyword_severity(text, AVIATION_SEVERITY, "low"),
        match=match,
        source="Aviation Safety Network",
    )


# OpenSky state vector indices.
_ICAO24, _CALLSIGN, _LON, _LAT, _ALTITUDE, _ON_GROUND, _VELOCITY, _SQUAWK = (
    0, 1, 5, 6, 7, 8, 9, 14
)
METERS_TO_FEET = 3.28084
MPS_TO_KNOTS = 1.94384


def normalize_aircraft_state(state: list, feed: Feed, now: datetime) -> Incident | None:
    if len(state) <= _SQUAWK or state[_ON_GROUND]:
        return None
    if state[_LAT] is None or state[_LON] is None:
        return None
    icao24 = str(state[_ICAO24]).lower()
    callsign = str(state[_CALLSIGN] or "").strip()
    squawk = str(state[_SQUAWK]) if state[_SQUAWK] else None
    match = classify_aircraft(icao24, callsign, squawk)
    if match is None:
        return None

    altitude_ft = round(float(state[_ALTITUDE] or 0) * METERS_TO_FEET)
    speed_kts = round(float(state[_VELOCITY] or 0) * MPS_TO_KNOTS)
    emergency = match.category == "Emergency"
    key = squawk if emergency else match.category.lower().replace(" ", "-")
    return make_incident(
        id=f"aircraft-{icao24}-{key}",
        title=match.title,
        description=(
            f"[{match.category}] {match.description}. "
            f"Altitude: {altitude_ft}ft, Speed: {speed_kts}kts"
        ),
        type=match.type,
        severity=match.severity,
        lat=state[_LAT],
        lon=state[_LON],
        location_name=f"{callsign or icao24} - ICAO: {icao24}",
        timestamp=now,
        source="OpenSky Network",
        livestream_url=f"https://globe.adsbexchange.com/?icao={icao24}",
    )


# --- infrastructure status ----------------------------------------------------


STATUSPAGE_ACTIVE = frozenset({"investigating", "identified", "monitoring"})
STATUSPAGE_MAX_AGE = timedelta(hours=12)
STATUSPAGE_IMPACT = {"critical": "critical", "major": "high"}
STATUS_LOCATIONS = {
    "statuspage": GeoMatch(37.7749, -122.4194, "San Francisco, USA"),
    "gcp": GeoMatch(37.4221, -122.0841, "Mountain View, USA"),
    "aws": GeoMatch(38.9072, -77.0369, "US East (N. Virginia)"),
}


def _status_incident(
    feed: Feed,
    *,
    id: str,
    title: str,
    description: str | None,
    severity: str,
    timestamp: datetime,
    link: str | None,
) -> Incident:
    location = STATUS_LOCATIONS[feed.kind]
    return make_incident(
        id=id,
        title=title,
        description=description,
        type="infrastructure",
        severity=severity,
        lat=location.lat,
        lon=location.lon,
        location_name=location.name,
        timestamp=timestamp,
        source=f"{feed.label} Status",
        livestream_url=link,
    )


def normalize_status_incident(record: dict, feed: Feed, now: datetime) -> Incident | None:
    if feed.kind == "aws":
        return _status_incident(
            feed,
            id=f"cloud-aws-{record.get('event_arn') or record.get('arn') or record.get('service')}",
            title=f"{feed.label}: {record.get('summary') or record.get('service_name')}",
            description=record.get("description") or record.get("service_name"),
            severity="medium",
            timestamp=_timestamp(record.get("date"), now),
            link=None,
        )

    if feed.kind == "gcp":
        if not record.get("currently_affected") and record.get("end"):
            return None
        severity = "high" if str(record.get("severity")).lower() == "high" else "medium"
        link = record.get("uri")
        return _status_incident(
            feed,
            id=f"cloud-gcp-{record['id']}",
            title=f"{feed.label}: {record.get('external_desc') or record.get('service_name')}",
            description=record.get("service_name"),
            severity=severity,
            timestamp=_timestamp(record.get("begin") or record.get("created"), now),
            link=f"https://status.cloud.google.com/{link}" if link else None,
        )

    if str(record.get("status")) not in STATUSPAGE_ACTIVE:
        return None
    created = _timestamp(record.get("created_at"), now)
    if created < now - STATUSPAGE_MAX_AGE:
        return None
    updates = record.get("incident_updates") or []
    return _status_incident(
        feed,
        id=f"cloud-incident-{record['id']}",
        title=f"{feed.label}: {record.get('name')}",
        description=updates[0].get("body") if updates else record.get("status"),
        severity=STATUSPAGE_IMPACT.get(str(record.get("impact")), "medium"),
        timestamp=created,
        link=record.get("shortlink"),
    )


# --- regional weather warnings ---------------------------------------------


METEOALARM_SEVERITY = (
    ("critical", ("red", "extreme")),
    ("high", ("orange", "severe")),
)
METEOALARM_COUNTRIES = (
    # (country names, ISO codes, location key)
    (("germany",), ("DE",), "Germany"),
    (("france",), ("FR",), "France"),
    (("italy",), ("IT",), "Italy"),
    (("spain",), ("ES",), "Spain"),
    (("united kingdom", "uk"), ("GB", "UK"), "UK"),
)
EUROPE = GeoMatch(50.0, 10.0, "Europe")


def _meteoalarm_location(title: str) -> GeoMatch:
    lowered = title.lower()
    codes = set(re.findall(r"\b[A-Z]{2}\b", title))
    for names, iso_codes, country in METEOALARM_COUNTRIES:
        named = any(re.search(rf"\b{name}\b", lowered) for name in names)
        if named or codes.intersection(iso_codes):
            match = lookup_location(country)
            if match is not None:
                return match
    return EUROPE


def _warning_incident(
    record: dict,
    feed: Feed,
    now: datetime,
    *,
    prefix: str,
    ladder: tuple[tuple[str, tuple[str, ...]], ...],
    match: GeoMatch,
    source: str,
) -> Incident | None:
    title, _, text = _item_text(record)
    if not title:
        return None
    return _item_incident(
        record,
        feed,
        now,
        prefix=prefix,
        type="weather",
        severity=keyword_severity(text, ladder, "medium"),
        match=match,
        source=source,
    )


def normalize_meteoalarm_item(record: dict, feed: Feed, now: datetime) -> Incident | None:
    title, _, _ = _item_text(record)
    return _warning_incident(
        record,
        feed,
        now,
        prefix="meteoalarm",
        ladder=METEOALARM_SEVERITY,
        match=_meteoalarm_location(title),
        source="MeteoAlarm",
    )


ENV_CANADA_SEVERITY = (
    ("critical", ("extreme", "blizzard", "tornado")),
    ("high", ("warning", "severe")),
)
CANADA = GeoMatch(43.6532, -79.3832, "Canada")


def normalize_env_canada_item(record: dict, feed: Feed, now: datetime) -> Incident | None:
    return _warning_incident(
        record,
        feed,
        now,
        prefix="envcanada",
        ladder=ENV_CANADA_SEVERITY,
        match=CANADA,
        source="Environment Canada",
    )


BOM_SEVERITY = (
    ("critical", ("extreme", "cyclone", "major")),
    ("high", ("severe", "warning")),
)
AUSTRALIA = GeoMatch(-25.2744, 133.7751, "Australia")


def normalize_bom_item(record: dict, feed: Feed, now: datetime) -> Incident | None:
    return _warning_incident(
        record,
        feed,
        now,
        prefix="bom",
        ladder=BOM_SEVERITY,
        match=AUSTRALIA,
        source="Bureau of Meteorology",
    )


# --- air quality ------------------------------------------------------------


AQI_THRESHOLD = 100
AQI_BANDS = (
    (300, "critical", "Hazardous"),
    (200, "high", "Very Unhealthy"),
    (150, "high", "Unhealthy"),
)


def aqi_band(aqi: float) -> tuple[str, str]:
    for floor, severity, category in AQI_BANDS:
        if aqi > floor:
            return severity, category
    return "medium", "Unhealthy for Sensitive Groups"


def normalize_air_quality(record: dict, feed: Feed, now: datetime) -> Incident | None:
    current = record.get("current") or {}
    aqi = current.get("us_aqi")
    if aqi is None or aqi <= AQI_THRESHOLD:
        return None

    severity, category = aqi_band(float(aqi))
    observed = _timestamp(current.get("time"), now)
    pm25 = current.get("pm2_5")
    return make_incident(
        id=hashed_id("airquality", feed.label, observed.strftime("%Y%m%d%H")),
        title=f"Poor Air Quality: {feed.label}",
        description=f"{category} - AQI: {round(aqi)}, PM2.5: {pm25} μg/m³",
        type="environmental",
        severity=severity,
        lat=feed.lat if feed.lat is not None else record.get("latitude"),
        lon=feed.lon if feed.lon is not None else record.get("longitude"),
        location_name=feed.label,
        timestamp=observed,
        source="Open-Meteo Air Quality",
    )

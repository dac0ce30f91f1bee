from __future__ import annotations

import hashlib
import html
import re
from dataclasses import dataclass, field
from datetime import UTC, datetime


INCIDENT_TYPES = frozenset(
    {
        "weather",
        "military",
        "emergency",
        "protest",
        "cyber",
        "maritime",
        "financial",
        "political",
        "business",
        "advisory",
        "infrastructure",
        "nuclear",
        "environmental",
        "other",
    }
)

SEVERITIES: tuple[str, ...] = ("low", "medium", "high", "critical")

TITLE_MAX_CHARS = 200
DESCRIPTION_MAX_CHARS = 300

_TAG_RE = re.compile(r"<[^>]+>")
_WS_RE = re.compile(r"\s+")


@dataclass(frozen=True)
class Incident:
    id: str
    title: str
    description: str
    type: str
    severity: str
    lat: float | None
    lon: float | None
    location_name: str | None
    timestamp: datetime
    source: str
    livestream_url: str | None = None
    extras: dict = field(default_factory=dict, compare=False, repr=False)

    @property
    def has_location(self) -> bool:
        return self.lat is not None and self.lon is not None

    @property
    def spatial_exempt(self) -> bool:
        return bool(self.extras.get("spatial_exempt"))


def coerce_type(value: str | None) -> str:
    v = (value or "").strip().lower()
    return v if v in INCIDENT_TYPES else "other"


def coerce_severity(value: str | None, default: str = "low") -> str:
    v = (value or "").strip().lower()
    return v if v in SEVERITIES else default


def clean_text(value: str | None) -> str:
    if not value:
        return ""
    text = html.unescape(_TAG_RE.sub(" ", str(value)))
    return _WS_RE.sub(" ", text).strip()


def truncate(text: str, limit: int) -> str:
    return text if len(text) <= limit else text[:limit]


def hashed_id(prefix: str, *parts: str) -> str:
    *labels, key = parts
    digest = hashlib.blake2b(key.encode("utf-8"), digest_size=10).hexdigest()
    slug = "-".join(_slug(label) for label in labels if label)
    return f"{prefix}-{slug}-{digest}" if slug else f"{prefix}-{digest}"


def _slug(value: str) -> str:
    return re.sub(r"[^a-z0-9]+", "-", value.lower()).strip("-")


def make_incident(
    *,
    id: str,
    title: str | None,
    description: str | None,
    type: str | None,
    severity: str | None,
    lat: float | None,
    lon: float | None,
    location_name: str | None,
    timestamp: datetime,
    source: str,
    livestream_url: str | None = None,
    default_severity: str = "low",
    **extras: object,
) -> Incident:
    if timestamp.tzinfo is None:
        timestamp = timestamp.replace(tzinfo=UTC)
    return Incident(
        id=id,
        title=truncate(clean_text(title), TITLE_MAX_CHARS),
        description=truncate(clean_text(description), DESCRIPTION_MAX_CHARS),
        type=coerce_type(type),
        severity=coerce_severity(severity, default_severity),
        lat=float(lat) if lat is not None else None,
        lon=float(lon) if lon is not None else None,
        location_name=location_name,
        timestamp=timestamp.astimezone(UTC),
        source=source,
        livestream_url=livestream_url or None,
        extras=dict(extras),
    )


def parse_iso(ts: str) -> datetime:
    if ts.endswith("Z"):
        ts = ts.removesuffix("Z") + "+00:00"
    dt = datetime.fromisoformat(ts)
    if dt.tzinfo is None:
        dt = dt.replace(tzinfo=UTC)
    return dt.astimezone(UTC)


def to_iso(dt: datetime) -> str:
    return dt.astimezone(UTC).isoformat(timespec="seconds").replace("+00:00", "Z")

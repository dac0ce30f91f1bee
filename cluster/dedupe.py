from __future__ import annotations

import math
from collections.abc import Iterable

from normalize.incident import Incident


DUPLICATE_DISTANCE_KM = 5.0
DUPLICATE_TITLE_SIMILARITY = 0.7

EARTH_RADIUS_KM = 6371.0


def haversine_km(lat1: float, lon1: float, lat2: float, lon2: float) -> float:
    p1 = math.radians(lat1)
    p2 = math.radians(lat2)
    dp = math.radians(lat2 - lat1)
    dl = math.radians(lon2 - lon1)
    a = math.sin(dp / 2) ** 2 + math.cos(p1) * math.cos(p2) * math.sin(dl / 2) ** 2
    return 2 * EARTH_RADIUS_KM * math.atan2(math.sqrt(a), math.sqrt(1 - a))


def title_tokens(title: str) -> set[str]:
    return set(title.lower().split())


def token_jaccard(a: set[str], b: set[str]) -> float:
    if not a and not b:
        return 0.0
    return len(a & b) / len(a | b)


def is_near_duplicate(a: Incident, b: Incident) -> bool:
    # Both gates must pass; unplaced incidents never pass the distance gate.
    if not (a.has_location and b.has_location):
        return False
    distance = haversine_km(a.lat, a.lon, b.lat, b.lon)
    if distance > DUPLICATE_DISTANCE_KM:
        return False
    similarity = token_jaccard(title_tokens(a.title), title_tokens(b.title))
    return similarity > DUPLICATE_TITLE_SIMILARITY


def dedupe_incidents(incidents: Iterable[Incident]) -> list[Incident]:
    accepted: list[Incident] = []
    for incident in incidents:
        if any(is_near_duplicate(incident, existing) for existing in accepted):
            continue
        accepted.append(incident)
    return accepted

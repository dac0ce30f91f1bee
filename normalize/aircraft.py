from __future__ import annotations

import re
from collections.abc import Callable
from dataclasses import dataclass


@dataclass(frozen=True)
class AircraftMatch:
    category: str
    type: str
    severity: str
    title: str
    description: str


EMERGENCY_SQUAWKS: dict[str, tuple[str, str, str]] = {
    # squawk: (severity, label, title prefix)
    "7700": ("critical", "General Emergency", "EMERGENCY"),
    "7600": ("high", "Radio Failure", "ALERT"),
    "7500": ("critical", "Unlawful Interference", "HIJACK"),
}

KNOWN_AIRCRAFT: dict[str, str] = {
    "a326ca": "Taylor Swift (Dassault Falcon 900)",
    "a5094b": "Drake (Boeing 767)",
    "a835af": "Elon Musk (Gulfstream G650ER)",
    "a37346": "Kim Kardashian (Gulfstream G650ER)",
    "a3c8e9": "Jeff Bezos (Gulfstream G650ER)",
    "a2d8de": "Bill Gates (Bombardier BD-700)",
    "a54b7a": "Mark Zuckerberg (Gulfstream G650)",
    "a1fbe7": "Suspected Gov Contractor",
    "a802a5": "Suspected Gov Contractor",
}


def _callsigns(*patterns: str) -> tuple[re.Pattern[str], ...]:
    return tuple(re.compile(p, re.IGNORECASE) for p in patterns)


MILITARY_CALLSIGNS = _callsigns(
    r"^USAF\d+$",
    r"^(NAVY|MARINE|COAST)\d+$",
    r"^(RCH|REACH)\d{3,4}$",
    r"^SPAR\d+$",
    r"^SAM\d+$",
    r"^(TORCH|MAGMA|STEEL|DUKE)\d+$",
    r"^JANET\d*$",
    r"^CNV\d+$",
    r"^RAF\d+$",
    r"^(ASCOT|TARTAN)\d+$",
    r"^RRR\d+$",
    r"^RFF\d+$",
    r"^RSD\d+$",
    r"^ROSSIYA\d*$",
    r"^CHN\d+$",
    r"^NATO\d+$",
    r"^(CTM|COTAM)\d+$",
    r"^GAF\d+$",
    r"^(CFC|CANFORCE|RCAF)\d+$",
    r"^(STAL|ASY|RAAF)\d+$",
    r"^(RESCUE|MEDEVAC|LIFEGUARD)\d+$",
    r"^(POLICE|PATROL)\d+$",
)

# Saudi 01-09 only; three-digit SAUDIA flights are scheduled service.
VIP_CALLSIGNS = _callsigns(
    r"^SAUDIA0[1-9]$",
    r"^HZ-HM\d+$",
    r"^QATAF\d+$",
    r"^(SULTAN|KING|ROYAL)\d+$",
)

SUSPECTED_CALLSIGNS = _callsigns(
    r"^XXX\d+$",
    r"^(GOV|GOVT|STATE)\d+$",
)


def _emergency(icao24: str, callsign: str, squawk: str | None) -> AircraftMatch | None:
    if squawk not in EMERGENCY_SQUAWKS:
        return None
    severity, label, prefix = EMERGENCY_SQUAWKS[squawk]
    return AircraftMatch(
        category="Emergency",
        type="emergency",
        severity=severity,
        title=f"{prefix}: {callsign or icao24} - {label} ({squawk})",
        description=f"Aircraft broadcasting squawk code {squawk} ({label})",
    )


def _known(icao24: str, callsign: str, squawk: str | None) -> AircraftMatch | None:
    owner = KNOWN_AIRCRAFT.get(icao24.lower())
    if owner is None:
        return None
    return AircraftMatch(
        category="Celebrity",
        type="other",
        severity="low",
        title=f"VIP: {owner}'s Aircraft ({callsign or icao24})",
        description=f"Celebrity/VIP private aircraft: {owner}",
    )


def _pattern_rule(
    patterns: tuple[re.Pattern[str], ...],
    category: str,
    type: str,
    severity: str,
    title: str,
    description: str,
) -> Callable[[str, str, str | None], AircraftMatch | None]:
    def rule(icao24: str, callsign: str, squawk: str | None) -> AircraftMatch | None:
        if not callsign or not any(p.match(callsign) for p in patterns):
            return None
        return AircraftMatch(
            category=category,
            type=type,
            severity=severity,
            title=f"{title}: {callsign}",
            description=description,
        )

    return rule


# Highest priority first; only the first matching rule fires.
CASCADE: tuple[Callable[[str, str, str | None], AircraftMatch | None], ...] = (
    _emergency,
    _known,
    _pattern_rule(
        MILITARY_CALLSIGNS,
        "Military",
        "military",
        "medium",
        "Military",
        "Confirmed military or government aircraft",
    ),
    _pattern_rule(
        VIP_CALLSIGNS,
        "VIP",
        "other",
        "medium",
        "Royal/VIP",
        "Royal family or VIP government flight",
    ),
    _pattern_rule(
        SUSPECTED_CALLSIGNS,
        "Suspected Military",
        "military",
        "low",
        "Suspected Gov",
        "Suspected military or government aircraft (probable)",
    ),
)


def classify_aircraft(
    icao24: str, callsign: str | None, squawk: str | None
) -> AircraftMatch | None:
    callsign = (callsign or "").strip()
    for rule in CASCADE:
        match = rule(icao24, callsign, squawk)
        if match is not None:
            return match
    return None

from __future__ import annotations

from collections.abc import Mapping
from dataclasses import dataclass
from datetime import datetime

from normalize.incident import to_iso


OPERATIONAL = "operational"
DEGRADED = "degraded"
DOWN = "down"

# More than this many sources down turns "partial" into "degraded".
PARTIAL_OUTAGE_LIMIT = 3


@dataclass(frozen=True)
class SourceHealth:
    status: str
    last_check: datetime
    error: str | None = None


def overall_status(health: Mapping[str, SourceHealth]) -> str:
    down = sum(1 for h in health.values() if h.status == DOWN)
    if down > PARTIAL_OUTAGE_LIMIT:
        return "degraded"
    if down > 0:
        return "partial"
    return "operational"


def health_report(health: Mapping[str, SourceHealth]) -> dict:
    sources = [
        {
            "name": name,
            "status": h.status,
            "lastCheck": to_iso(h.last_check),
            "error": h.error,
        }
        for name, h in sorted(health.items())
    ]
    return {
        "success": True,
        "overallStatus": overall_status(health),
        "sources": sources,
        "summary": {
            "total": len(sources),
            "operational": sum(1 for s in sources if s["status"] == OPERATIONAL),
            "degraded": sum(1 for s in sources if s["status"] == DEGRADED),
            "down": sum(1 for s in sources if s["status"] == DOWN),
        },
    }


class HealthRegistry:
    """Latest per-source health, replaced wholesale after every cycle.

    The ingestion loop is the only writer; API handlers read snapshots.
    """

    def __init__(self) -> None:
        self._health: dict[str, SourceHealth] = {}

    def replace(self, health: Mapping[str, SourceHealth]) -> None:
        self._health = dict(health)

    def snapshot(self) -> dict[str, SourceHealth]:
        return dict(self._health)

    def report(self) -> dict:
        return health_report(self._health)

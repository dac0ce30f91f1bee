from __future__ import annotations

import asyncio
import dataclasses
import logging
import time
from collections.abc import Sequence
from dataclasses import dataclass
from datetime import UTC, datetime

import httpx

from app.settings import Settings
from cluster.dedupe import dedupe_incidents
from geo.geocode import geocode_text
from health.health import DOWN, OPERATIONAL, HealthRegistry, SourceHealth
from ingest.adapters import AdapterOutcome, run_adapter
from ingest.sources import SourcePlugin, all_sources
from normalize.incident import Incident
from store.db import Database
from store.retention import (
    PersistResult,
    apply_retention_window,
    persist_cycle,
    reject_future,
)


LOGGER = logging.getLogger(__name__)


@dataclass(frozen=True)
class CycleResult:
    started_at: datetime
    collected: int
    unplaced: int
    duplicates: int
    future_rejected: int
    out_of_window: int
    persist: PersistResult
    health: dict[str, SourceHealth]
    duration_seconds: float


async def collect_incidents(
    client: httpx.AsyncClient,
    plugins: Sequence[SourcePlugin],
    settings: Settings,
    now: datetime,
) -> tuple[list[Incident], dict[str, SourceHealth], list[AdapterOutcome]]:
    results = await asyncio.gather(
        *(run_adapter(client, p, settings=settings, now=now) for p in plugins),
        return_exceptions=True,
    )
    checked_at = datetime.now(tz=UTC)

    incidents: list[Incident] = []
    health: dict[str, SourceHealth] = {}
    outcomes: list[AdapterOutcome] = []
    for plugin, result in zip(plugins, results):
        if isinstance(result, BaseException):
            if not isinstance(result, Exception):
                raise result
            LOGGER.error("%s: adapter raised", plugin.name, exc_info=result)
            health[plugin.name] = SourceHealth(
                status=DOWN,
                last_check=checked_at,
                error=f"{result.__class__.__name__}: {result}",
            )
            continue

        outcomes.append(result)
        health[plugin.name] = SourceHealth(
            status=result.status, last_check=checked_at, error=result.error
        )
        incidents.extend(result.incidents)

    return incidents, health, outcomes


def locate_unplaced(incidents: Sequence[Incident]) -> tuple[list[Incident], int]:
    located: list[Incident] = []
    dropped = 0
    for incident in incidents:
        if incident.has_location or incident.spatial_exempt:
            located.append(incident)
            continue
        match = geocode_text(incident.title, incident.description)
        if match is None:
            dropped += 1
            continue
        located.append(
            dataclasses.replace(
                incident,
                lat=match.lat,
                lon=match.lon,
                location_name=incident.location_name or match.name,
            )
        )
    return located, dropped


async def run_cycle(
    client: httpx.AsyncClient,
    db: Database,
    plugins: Sequence[SourcePlugin],
    settings: Settings,
    *,
    registry: HealthRegistry | None = None,
    now: datetime | None = None,
) -> CycleResult:
    now = now or datetime.now(tz=UTC)
    started = time.monotonic()

    collected, health, outcomes = await collect_incidents(client, plugins, settings, now)
    if registry is not None:
        registry.replace(health)

    located, unplaced = locate_unplaced(collected)
    unique = dedupe_incidents(located)
    current, future_rejected = reject_future(unique, now)
    windowed = apply_retention_window(current, now)

    by_name = {p.name: p for p in plugins}
    resupplied = [
        by_name[o.name].replaces_stored_source
        for o in outcomes
        if o.status == OPERATIONAL and by_name[o.name].replaces_stored_source
    ]
    persisted = persist_cycle(db, windowed, now=now, resupplied_sources=resupplied)

    result = CycleResult(
        started_at=now,
        collected=len(collected),
        unplaced=unplaced,
        duplicates=len(located) - len(unique),
        future_rejected=future_rejected,
        out_of_window=len(current) - len(windowed),
        persist=persisted,
        health=health,
        duration_seconds=time.monotonic() - started,
    )
    LOGGER.info(
        "cycle: collected=%d unplaced=%d duplicates=%d future=%d out_of_window=%d "
        "purged=%d replaced=%d written=%d failed=%d sources_down=%d (%.1fs)",
        result.collected,
        result.unplaced,
        result.duplicates,
        result.future_rejected,
        result.out_of_window,
        persisted.purged,
        persisted.replaced,
        persisted.written,
        persisted.failed,
        sum(1 for h in health.values() if h.status == DOWN),
        result.duration_seconds,
    )
    return result


async def run_scheduler(
    *, settings: Settings, db: Database, registry: HealthRegistry
) -> None:
    plugins = all_sources(settings)
    interval = settings.cycle_interval_seconds
    LOGGER.info("scheduler: %d sources, every %ds", len(plugins), interval)

    async with httpx.AsyncClient(follow_redirects=True) as client:
        if not settings.run_on_start:
            await asyncio.sleep(interval)
        while True:
            started = time.monotonic()
            try:
                await run_cycle(client, db, plugins, settings, registry=registry)
            except Exception:
                LOGGER.exception("ingestion cycle failed")
            # A cycle that overruns the interval delays the next one.
            await asyncio.sleep(max(0.0, interval - (time.monotonic() - started)))

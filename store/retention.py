from __future__ import annotations

import logging
from collections.abc import Iterable, Sequence
from dataclasses import dataclass
from datetime import UTC, datetime, timedelta

from normalize.incident import Incident, to_iso
from store.db import Database
from store.incidents import delete_source_rows, upsert_incidents


LOGGER = logging.getLogger(__name__)

DEFAULT_WINDOW = timedelta(hours=24)


@dataclass(frozen=True)
class RetentionTier:
    name: str
    store_window: timedelta
    # Bypasses the ingestion-time window; rows still expire from the store.
    always_keep: bool = False
    sources: frozenset[str] = frozenset()
    types: frozenset[str] = frozenset()

    def contains(self, incident: Incident) -> bool:
        return incident.source in self.sources or incident.type in self.types

    def sql_predicate(self) -> tuple[str, list[str]]:
        clauses: list[str] = []
        params: list[str] = []
        if self.sources:
            clauses.append(f"source IN ({','.join('?' * len(self.sources))})")
            params.extend(sorted(self.sources))
        if self.types:
            clauses.append(f"type IN ({','.join('?' * len(self.types))})")
            params.extend(sorted(self.types))
        if not clauses:
            return "0", []
        return "(" + " OR ".join(clauses) + ")", params


STRATEGIC = RetentionTier(
    name="strategic",
    store_window=timedelta(days=7),
    always_keep=True,
    sources=frozenset({"US State Dept"}),
    types=frozenset({"political", "business"}),
)

LAGGING_NEWS = RetentionTier(
    name="lagging_news",
    store_window=timedelta(hours=48),
    sources=frozenset(
        {
            "Hacker News",
            "TechCrunch",
            "Ars Technica",
            "The Verge",
            "Wired",
            "MIT Tech Review",
        }
    ),
)

# Earlier tiers take precedence when an incident matches several.
RETENTION_TIERS: tuple[RetentionTier, ...] = (STRATEGIC, LAGGING_NEWS)


@dataclass(frozen=True)
class PersistResult:
    purged: int
    replaced: int
    written: int
    failed: int


def tier_for(
    incident: Incident, tiers: Sequence[RetentionTier] = RETENTION_TIERS
) -> RetentionTier | None:
    for tier in tiers:
        if tier.contains(incident):
            return tier
    return None


def retention_window(
    incident: Incident, tiers: Sequence[RetentionTier] = RETENTION_TIERS
) -> timedelta | None:
    """Maximum age at ingestion time, or None when the incident is always kept."""
    if incident.extras.get("long_running"):
        return None
    tier = tier_for(incident, tiers)
    if tier is None:
        return DEFAULT_WINDOW
    if tier.always_keep:
        return None
    return tier.store_window


def reject_future(
    incidents: Iterable[Incident], now: datetime
) -> tuple[list[Incident], int]:
    kept: list[Incident] = []
    rejected = 0
    for incident in incidents:
        if incident.timestamp > now:
            rejected += 1
            continue
        kept.append(incident)
    return kept, rejected


def apply_retention_window(
    incidents: Iterable[Incident],
    now: datetime,
    tiers: Sequence[RetentionTier] = RETENTION_TIERS,
) -> list[Incident]:
    kept: list[Incident] = []
    for incident in incidents:
        window = retention_window(incident, tiers)
        if window is None or incident.timestamp >= now - window:
            kept.append(incident)
    return kept


def purge_expired(
    db: Database,
    now: datetime,
    tiers: Sequence[RetentionTier] = RETENTION_TIERS,
) -> int:
    statements: list[tuple[str, list[str]]] = []
    earlier: list[tuple[str, list[str]]] = []
    for tier in tiers:
        pred, params = tier.sql_predicate()
        sql = f"timestamp < ? AND {pred}"
        args: list[str] = [to_iso(now - tier.store_window), *params]
        for prev_pred, prev_params in earlier:
            sql += f" AND NOT {prev_pred}"
            args.extend(prev_params)
        statements.append((sql, args))
        earlier.append((pred, params))

    default_sql = "timestamp < ?"
    default_args: list[str] = [to_iso(now - DEFAULT_WINDOW)]
    for pred, params in earlier:
        default_sql += f" AND NOT {pred}"
        default_args.extend(params)
    statements.append((default_sql, default_args))

    purged = 0
    with db.lock:
        for where, args in statements:
            cur = db.conn.execute(f"DELETE FROM incidents WHERE {where};", args)
            purged += cur.rowcount
        db.conn.commit()
    return purged


def replace_resupplied(db: Database, sources: Iterable[str]) -> int:
    replaced = 0
    for source in sorted(set(sources)):
        replaced += delete_source_rows(db, source)
    return replaced


def persist_cycle(
    db: Database,
    incidents: Sequence[Incident],
    *,
    now: datetime | None = None,
    resupplied_sources: Iterable[str] = (),
) -> PersistResult:
    now = now or datetime.now(tz=UTC)
    purged = purge_expired(db, now)
    replaced = replace_resupplied(db, resupplied_sources)
    written, failed = upsert_incidents(db, incidents, now=now)
    if failed:
        LOGGER.warning("%d of %d incidents failed to persist", failed, len(incidents))
    return PersistResult(purged=purged, replaced=replaced, written=written, failed=failed)

from __future__ import annotations

import json
import logging
import sqlite3
from collections.abc import Iterable
from datetime import UTC, datetime

from normalize.incident import Incident, parse_iso, to_iso
from store.db import Database


LOGGER = logging.getLogger(__name__)


def incident_row(incident: Incident) -> dict:
    return {
        "id": incident.id,
        "title": incident.title,
        "description": incident.description,
        "type": incident.type,
        "severity": incident.severity,
        "lat": incident.lat,
        "lon": incident.lon,
        "location_name": incident.location_name,
        "timestamp": to_iso(incident.timestamp),
        "source": incident.source,
        "livestream_url": incident.livestream_url,
    }


def upsert_incidents(
    db: Database, incidents: Iterable[Incident], *, now: datetime | None = None
) -> tuple[int, int]:
    created_at = to_iso(now or datetime.now(tz=UTC))
    written = 0
    failed = 0
    with db.lock:
        for incident in incidents:
            row = incident_row(incident)
            try:
                db.conn.execute(
                    """
                    INSERT INTO incidents(
                      id, title, description, type, severity, lat, lon,
                      location_name, timestamp, source, livestream_url, created_at
                    )
                    VALUES (
                      :id, :title, :description, :type, :severity, :lat, :lon,
                      :location_name, :timestamp, :source, :livestream_url, :created_at
                    )
                    ON CONFLICT(id) DO UPDATE SET
                      title = excluded.title,
                      description = excluded.description,
                      type = excluded.type,
                      severity = excluded.severity,
                      lat = excluded.lat,
                      lon = excluded.lon,
                      location_name = excluded.location_name,
                      timestamp = excluded.timestamp,
                      source = excluded.source,
                      livestream_url = excluded.livestream_url;
                    """,
                    {**row, "created_at": created_at},
                )
            except sqlite3.Error:
                failed += 1
                LOGGER.exception(
                    "failed to persist incident %s: %s",
                    incident.id,
                    json.dumps(row, ensure_ascii=False),
                )
                continue
            written += 1
        db.conn.commit()
    return written, failed


def delete_source_rows(db: Database, source: str) -> int:
    with db.lock:
        cur = db.conn.execute("DELETE FROM incidents WHERE source = ?;", (source,))
        db.conn.commit()
    return cur.rowcount


def count_incidents(db: Database) -> int:
    with db.lock:
        row = db.conn.execute("SELECT COUNT(*) AS n FROM incidents;").fetchone()
    return int(row["n"])


def list_incidents(db: Database, *, limit: int | None = None) -> list[dict]:
    sql = "SELECT * FROM incidents ORDER BY timestamp DESC, id ASC"
    params: tuple = ()
    if limit is not None:
        sql += " LIMIT ?"
        params = (limit,)
    with db.lock:
        rows = db.conn.execute(sql + ";", params).fetchall()

    return [
        {
            "id": str(r["id"]),
            "title": str(r["title"]),
            "description": str(r["description"]),
            "type": str(r["type"]),
            "severity": str(r["severity"]),
            "location": {"lat": r["lat"], "lon": r["lon"]},
            "locationName": r["location_name"],
            "timestamp": parse_iso(str(r["timestamp"])),
            "source": str(r["source"]),
            "livestreamUrl": r["livestream_url"],
        }
        for r in rows
    ]

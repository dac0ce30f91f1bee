from datetime import UTC, datetime, timedelta

from normalize.incident import Incident, make_incident
from store.db import close_database, open_database
from store.incidents import count_incidents, list_incidents, upsert_incidents
from store.retention import (
    apply_retention_window,
    persist_cycle,
    purge_expired,
    reject_future,
    retention_window,
)


NOW = datetime(2025, 6, 1, 12, 0, tzinfo=UTC)


def _incident(
    id: str,
    *,
    age: timedelta,
    type: str = "weather",
    source: str = "USGS",
    **extras: object,
) -> Incident:
    return make_incident(
        id=id,
        title=f"Incident {id}",
        description="",
        type=type,
        severity="medium",
        lat=1.0,
        lon=2.0,
        location_name="Somewhere",
        timestamp=NOW - age,
        source=source,
        **extras,
    )


def test_future_timestamps_are_rejected() -> None:
    past = _incident("past", age=timedelta(minutes=5))
    future = _incident("future", age=-timedelta(hours=1))
    kept, rejected = reject_future([past, future], NOW)
    assert [i.id for i in kept] == ["past"]
    assert rejected == 1


def test_retention_windows_by_tier() -> None:
    assert retention_window(_incident("q", age=timedelta(0))) == timedelta(hours=24)
    assert retention_window(_incident("t", age=timedelta(0), source="TechCrunch")) == timedelta(hours=48)
    assert retention_window(_incident("p", age=timedelta(0), type="political")) is None
    assert retention_window(_incident("s", age=timedelta(0), source="US State Dept")) is None
    assert retention_window(_incident("g", age=timedelta(0), long_running=True)) is None


def test_apply_retention_window() -> None:
    incidents = [
        _incident("fresh", age=timedelta(hours=2)),
        _incident("stale", age=timedelta(hours=30)),
        _incident("tech", age=timedelta(hours=30), source="Hacker News"),
        _incident("old-tech", age=timedelta(hours=50), source="Hacker News"),
        _incident("summit", age=timedelta(days=20), type="political"),
        _incident("cyclone", age=timedelta(days=3), long_running=True),
    ]
    kept = apply_retention_window(incidents, NOW)
    assert [i.id for i in kept] == ["fresh", "tech", "summit", "cyclone"]


def test_strategic_rows_outlive_default_rows(tmp_path) -> None:
    db = open_database(tmp_path / "test.db")
    try:
        upsert_incidents(
            db,
            [
                _incident("political-6d", age=timedelta(days=6), type="political"),
                _incident("weather-6d", age=timedelta(days=6)),
                _incident("political-8d", age=timedelta(days=8), type="political"),
                _incident("weather-1h", age=timedelta(hours=1)),
            ],
            now=NOW,
        )
        purged = purge_expired(db, NOW)
        assert purged == 2
        ids = {r["id"] for r in list_incidents(db)}
        assert ids == {"political-6d", "weather-1h"}
    finally:
        close_database(db)


def test_lagging_news_purged_after_48_hours(tmp_path) -> None:
    db = open_database(tmp_path / "test.db")
    try:
        upsert_incidents(
            db,
            [
                _incident("wired-30h", age=timedelta(hours=30), source="Wired"),
                _incident("wired-50h", age=timedelta(hours=50), source="Wired"),
                _incident("usgs-30h", age=timedelta(hours=30)),
            ],
            now=NOW,
        )
        purge_expired(db, NOW)
        assert {r["id"] for r in list_incidents(db)} == {"wired-30h"}
    finally:
        close_database(db)


def test_persist_cycle_replaces_resupplied_source(tmp_path) -> None:
    db = open_database(tmp_path / "test.db")
    try:
        stale = _incident("cve-old", age=timedelta(hours=1), source="NIST NVD")
        persist_cycle(db, [stale], now=NOW)

        fresh = _incident("cve-new", age=timedelta(hours=1), source="NIST NVD")
        result = persist_cycle(
            db, [fresh], now=NOW, resupplied_sources=["NIST NVD"]
        )
        assert result.replaced == 1
        assert result.written == 1
        assert [r["id"] for r in list_incidents(db)] == ["cve-new"]
    finally:
        close_database(db)


def test_persist_cycle_is_idempotent(tmp_path) -> None:
    db = open_database(tmp_path / "test.db")
    try:
        incidents = [
            _incident("a", age=timedelta(hours=1)),
            _incident("b", age=timedelta(hours=2), type="cyber"),
        ]
        persist_cycle(db, incidents, now=NOW)
        first = list_incidents(db)
        persist_cycle(db, incidents, now=NOW + timedelta(minutes=5))
        assert count_incidents(db) == 2
        assert list_incidents(db) == first
    finally:
        close_database(db)

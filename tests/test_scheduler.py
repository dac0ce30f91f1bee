import asyncio
import json
from datetime import UTC, datetime, timedelta

import httpx

from app.settings import Settings
from health.health import DEGRADED, DOWN, OPERATIONAL, HealthRegistry, overall_status
from ingest.adapters import run_adapter
from ingest.feed_packs import Feed
from ingest.parsers.geojson import parse_geojson
from ingest.parsers.json import parse_json_records
from ingest.scheduler import collect_incidents, locate_unplaced, run_cycle
from ingest.sources import SourcePlugin
from normalize.incident import make_incident
from normalize.normalize import normalize_usgs_earthquake
from store.db import close_database, open_database
from store.incidents import list_incidents


NOW = datetime(2025, 6, 1, 12, 0, tzinfo=UTC)


def _normalize(record: dict, feed: Feed, now: datetime):
    return make_incident(
        id=record["id"],
        title=record["title"],
        description="",
        type="weather",
        severity="medium",
        lat=record.get("lat"),
        lon=record.get("lon"),
        location_name=None,
        timestamp=now - timedelta(minutes=record.get("age_minutes", 5)),
        source=feed.label,
    )


def _plugin(name: str, *urls: str, **kwargs) -> SourcePlugin:
    return SourcePlugin(
        name=name,
        feeds=tuple(Feed(url=u, label=name) for u in urls),
        parse=parse_json_records,
        normalize=_normalize,
        **kwargs,
    )


def _transport(failing: set[str], records: dict[str, list[dict]] | None = None) -> httpx.MockTransport:
    def handler(request: httpx.Request) -> httpx.Response:
        host = request.url.host
        if host in failing:
            if host.startswith("timeout"):
                raise httpx.ReadTimeout("timed out", request=request)
            return httpx.Response(503)
        if records is not None and host in records:
            body = records[host]
        else:
            n = int(host.split(".")[0].removeprefix("src"))
            body = [{"id": f"ev-{host}", "title": f"Event {host}", "lat": float(n), "lon": float(n)}]
        return httpx.Response(200, content=json.dumps({"items": body}).encode("utf-8"))

    return httpx.MockTransport(handler)


def _collect(plugins: list[SourcePlugin], transport: httpx.MockTransport):
    async def run():
        async with httpx.AsyncClient(transport=transport) as client:
            return await collect_incidents(client, plugins, Settings(), NOW)

    return asyncio.run(run())


def test_five_of_thirty_sources_down_is_degraded() -> None:
    plugins = [_plugin(f"source-{i}", f"https://src{i}.test/feed.json") for i in range(30)]
    failing = {f"src{i}.test" for i in (3, 7, 11, 19, 28)}

    incidents, health, outcomes = _collect(plugins, _transport(failing))

    assert len(incidents) == 25
    down = {name for name, h in health.items() if h.status == DOWN}
    assert down == {"source-3", "source-7", "source-11", "source-19", "source-28"}
    assert all(h.status == OPERATIONAL for n, h in health.items() if n not in down)
    assert health["source-3"].error == "source-3: http_503"
    assert overall_status(health) == "degraded"
    assert len(outcomes) == 30


def test_two_sources_down_is_partial() -> None:
    plugins = [_plugin(f"source-{i}", f"https://src{i}.test/feed.json") for i in range(10)]
    _, health, _ = _collect(plugins, _transport({"src1.test", "src2.test"}))
    assert overall_status(health) == "partial"


def test_timeouts_are_reported_not_raised() -> None:
    plugins = [
        _plugin("slow", "https://timeout1.test/feed.json"),
        _plugin("fast", "https://src1.test/feed.json"),
    ]
    incidents, health, _ = _collect(plugins, _transport({"timeout1.test"}))
    assert [i.source for i in incidents] == ["fast"]
    assert health["slow"].status == DOWN
    assert "timeout" in health["slow"].error


def test_partially_failing_multi_feed_adapter_is_degraded() -> None:
    plugin = _plugin(
        "News",
        "https://src1.test/a.json",
        "https://src2.test/b.json",
        "https://src3.test/c.json",
    )
    incidents, health, _ = _collect([plugin], _transport({"src2.test"}))
    assert len(incidents) == 2
    assert health["News"].status == DEGRADED
    assert health["News"].error == "News: http_503"


def test_malformed_payload_marks_source_down() -> None:
    def handler(request: httpx.Request) -> httpx.Response:
        return httpx.Response(200, content=b"<html>maintenance</html>")

    incidents, health, _ = _collect(
        [_plugin("broken", "https://src1.test/feed.json")], httpx.MockTransport(handler)
    )
    assert incidents == []
    assert health["broken"].status == DOWN
    assert health["broken"].error == "broken: parse_error"


def test_malformed_records_are_skipped() -> None:
    records = {"src1.test": [{"id": "ok", "title": "Fine", "lat": 1.0, "lon": 1.0}, {"title": "no id"}]}
    plugin = _plugin("mixed", "https://src1.test/feed.json")

    async def run():
        async with httpx.AsyncClient(transport=_transport(set(), records)) as client:
            return await run_adapter(client, plugin, settings=Settings(), now=NOW)

    outcome = asyncio.run(run())
    assert [i.id for i in outcome.incidents] == ["ok"]
    assert outcome.skipped_records == 1
    assert outcome.status == OPERATIONAL


def test_crashing_feed_is_isolated() -> None:
    def explode_on_first(record: dict, feed: Feed, now: datetime):
        if "src1" in feed.url:
            raise RuntimeError("bug in adapter")
        return _normalize(record, feed, now)

    def crashy(name: str, *urls: str) -> SourcePlugin:
        return SourcePlugin(
            name=name,
            feeds=tuple(Feed(url=u, label=name) for u in urls),
            parse=parse_json_records,
            normalize=explode_on_first,
        )

    plugins = [
        crashy("single", "https://src1.test/feed.json"),
        crashy("multi", "https://src1.test/a.json", "https://src2.test/b.json"),
        _plugin("fine", "https://src3.test/feed.json"),
    ]
    incidents, health, outcomes = _collect(plugins, _transport(set()))

    assert sorted(i.source for i in incidents) == ["fine", "multi"]
    assert health["single"].status == DOWN
    assert health["single"].error == "single: RuntimeError: bug in adapter"
    assert health["multi"].status == DEGRADED
    assert health["multi"].error == "multi: RuntimeError: bug in adapter"
    assert health["fine"].status == OPERATIONAL
    assert [o.name for o in outcomes] == ["single", "multi", "fine"]


def test_feature_without_properties_is_skipped() -> None:
    collection = {
        "type": "FeatureCollection",
        "features": [
            {
                "type": "Feature",
                "id": "us1",
                "geometry": {"type": "Point", "coordinates": [121.4, 23.6, 10.0]},
                "properties": {"mag": 5.4, "place": "Taiwan", "time": 1748772000000},
            },
            {
                "type": "Feature",
                "id": "us2",
                "geometry": {"type": "Point", "coordinates": [10.0, 10.0]},
                "properties": None,
            },
        ],
    }

    def handler(request: httpx.Request) -> httpx.Response:
        return httpx.Response(200, content=json.dumps(collection).encode("utf-8"))

    plugin = SourcePlugin(
        name="USGS Earthquakes",
        feeds=(Feed(url="https://src1.test/quakes.geojson", label="USGS"),),
        parse=parse_geojson,
        normalize=normalize_usgs_earthquake,
    )
    incidents, health, outcomes = _collect([plugin], httpx.MockTransport(handler))

    assert [i.id for i in incidents] == ["earthquake-us1"]
    assert health["USGS Earthquakes"].status == OPERATIONAL
    assert outcomes[0].skipped_records == 1



def test_locate_unplaced() -> None:
    def incident(id: str, title: str, **extras):
        return make_incident(
            id=id,
            title=title,
            description="",
            type="other",
            severity="low",
            lat=None,
            lon=None,
            location_name=None,
            timestamp=NOW,
            source="test",
            **extras,
        )

    located, dropped = locate_unplaced(
        [
            incident("a", "Blackout across Tokyo"),
            incident("b", "Something happened somewhere"),
            incident("c", "New chip announced", spatial_exempt=True),
        ]
    )
    assert dropped == 1
    assert [i.id for i in located] == ["a", "c"]
    assert located[0].location_name == "Japan"
    assert located[0].has_location
    assert not located[1].has_location


def test_run_cycle_end_to_end(tmp_path) -> None:
    db = open_database(tmp_path / "test.db")
    registry = HealthRegistry()
    records = {
        "src1.test": [
            {"id": "now", "title": "Flood in valley", "lat": 5.0, "lon": 5.0},
            {"id": "dup", "title": "flood in valley", "lat": 5.001, "lon": 5.001},
            {"id": "future", "title": "Clock skew", "lat": 6.0, "lon": 6.0, "age_minutes": -60},
            {"id": "stale", "title": "Old news", "lat": 7.0, "lon": 7.0, "age_minutes": 60 * 30},
        ],
        "src2.test": [{"id": "cve-1", "title": "CVE", "lat": 8.0, "lon": 8.0}],
    }
    plugins = [
        _plugin("Feed One", "https://src1.test/feed.json"),
        _plugin("CVE", "https://src2.test/feed.json", replaces_stored_source="CVE"),
        _plugin("Dead", "https://src3.test/feed.json"),
    ]

    async def run():
        async with httpx.AsyncClient(transport=_transport({"src3.test"}, records)) as client:
            return await run_cycle(client, db, plugins, Settings(), registry=registry, now=NOW)

    try:
        result = asyncio.run(run())
        assert result.collected == 5
        assert result.duplicates == 1
        assert result.future_rejected == 1
        assert result.out_of_window == 1
        assert result.persist.written == 2
        assert result.persist.replaced == 0
        assert {r["id"] for r in list_incidents(db)} == {"now", "cve-1"}

        report = registry.report()
        assert report["overallStatus"] == "partial"
        assert report["summary"]["down"] == 1

        again = asyncio.run(run())
        assert again.persist.replaced == 1
        assert {r["id"] for r in list_incidents(db)} == {"now", "cve-1"}
    finally:
        close_database(db)

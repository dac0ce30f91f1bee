from datetime import UTC, datetime

from health.health import (
    DEGRADED,
    DOWN,
    OPERATIONAL,
    HealthRegistry,
    SourceHealth,
    health_report,
    overall_status,
)


NOW = datetime(2025, 6, 1, 12, 0, tzinfo=UTC)


def _health(down: int, up: int = 10) -> dict[str, SourceHealth]:
    health = {f"up-{i}": SourceHealth(OPERATIONAL, NOW) for i in range(up)}
    health.update({f"down-{i}": SourceHealth(DOWN, NOW, "timeout") for i in range(down)})
    return health


def test_overall_status_thresholds() -> None:
    assert overall_status(_health(0)) == "operational"
    assert overall_status(_health(1)) == "partial"
    assert overall_status(_health(3)) == "partial"
    assert overall_status(_health(4)) == "degraded"
    assert overall_status({}) == "operational"


def test_degraded_sources_do_not_count_as_down() -> None:
    health = {f"s{i}": SourceHealth(DEGRADED, NOW, "1/3 feeds failed") for i in range(5)}
    assert overall_status(health) == "operational"


def test_health_report_shape() -> None:
    report = health_report(
        {
            "USGS Earthquakes": SourceHealth(OPERATIONAL, NOW),
            "GDACS": SourceHealth(DOWN, NOW, "http_503"),
            "News Feeds": SourceHealth(DEGRADED, NOW, "2/128 feeds failed"),
        }
    )
    assert report["success"] is True
    assert report["overallStatus"] == "partial"
    assert report["summary"] == {"total": 3, "operational": 1, "degraded": 1, "down": 1}
    assert report["sources"][0] == {
        "name": "GDACS",
        "status": "down",
        "lastCheck": "2025-06-01T12:00:00Z",
        "error": "http_503",
    }


def test_registry_replaces_wholesale() -> None:
    registry = HealthRegistry()
    registry.replace({"a": SourceHealth(DOWN, NOW, "x")})
    registry.replace({"b": SourceHealth(OPERATIONAL, NOW)})
    assert set(registry.snapshot()) == {"b"}
    assert registry.report()["overallStatus"] == "operational"

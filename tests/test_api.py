from datetime import UTC, datetime, timedelta

from fastapi.testclient import TestClient

from app.main import app
from health.health import DOWN, OPERATIONAL, HealthRegistry, SourceHealth
from normalize.incident import make_incident
from store.db import close_database, open_database
from store.incidents import upsert_incidents


NOW = datetime(2025, 6, 1, 12, 0, tzinfo=UTC)


def _incident(id: str, minutes_ago: int):
    return make_incident(
        id=id,
        title=f"Incident {id}",
        description="details",
        type="emergency",
        severity="high",
        lat=10.0,
        lon=20.0,
        location_name="Somewhere",
        timestamp=NOW - timedelta(minutes=minutes_ago),
        source="Test",
    )


def test_incidents_and_health_endpoints(tmp_path) -> None:
    db = open_database(tmp_path / "api.db")
    registry = HealthRegistry()
    registry.replace(
        {
            "GDACS": SourceHealth(status=OPERATIONAL, last_check=NOW),
            "NASA": SourceHealth(status=DOWN, last_check=NOW, error="NASA EONET: http_500"),
        }
    )
    upsert_incidents(db, [_incident("old", 30), _incident("new", 5)], now=NOW)
    app.state.db = db
    app.state.health = registry

    try:
        client = TestClient(app)

        resp = client.get("/api/incidents")
        assert resp.status_code == 200
        body = resp.json()
        assert body["success"] is True
        assert body["count"] == 2
        assert [i["id"] for i in body["incidents"]] == ["new", "old"]
        assert body["incidents"][0]["timestamp"] == "2025-06-01T11:55:00Z"
        assert body["incidents"][0]["location"] == {"lat": 10.0, "lon": 20.0}

        limited = client.get("/api/incidents", params={"limit": 1}).json()
        assert limited["count"] == 1

        assert client.get("/api/incidents", params={"limit": 0}).status_code == 422

        health = client.get("/api/health").json()
        assert health["overallStatus"] == "partial"
        assert health["summary"] == {"total": 2, "operational": 1, "degraded": 0, "down": 1}
        assert health["sources"][1] == {
            "name": "NASA",
            "status": "down",
            "lastCheck": "2025-06-01T12:00:00Z",
            "error": "NASA EONET: http_500",
        }
    finally:
        close_database(db)

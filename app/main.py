from __future__ import annotations

import asyncio
from contextlib import asynccontextmanager, suppress

from fastapi import FastAPI, Query, Request
from fastapi.responses import JSONResponse

from app.log import configure_logging
from app.settings import Settings
from health.health import HealthRegistry
from ingest.scheduler import run_scheduler
from normalize.incident import to_iso
from store.db import Database, close_database, open_database
from store.incidents import list_incidents


@asynccontextmanager
async def lifespan(app: FastAPI):
    settings = Settings()
    configure_logging(settings.log_level)
    db = open_database(settings.db_path)
    registry = HealthRegistry()
    app.state.settings = settings
    app.state.db = db
    app.state.health = registry

    scheduler_task = asyncio.create_task(
        run_scheduler(settings=settings, db=db, registry=registry)
    )
    try:
        yield
    finally:
        scheduler_task.cancel()
        with suppress(asyncio.CancelledError):
            await scheduler_task
        close_database(db)


app = FastAPI(lifespan=lifespan)


@app.get("/api/incidents")
def api_incidents(
    request: Request, limit: int | None = Query(default=None, ge=1)
) -> JSONResponse:
    db: Database = request.app.state.db
    incidents = list_incidents(db, limit=limit)
    for incident in incidents:
        incident["timestamp"] = to_iso(incident["timestamp"])
    return JSONResponse(
        {"success": True, "count": len(incidents), "incidents": incidents}
    )


@app.get("/api/health")
def api_health(request: Request) -> JSONResponse:
    registry: HealthRegistry = request.app.state.health
    return JSONResponse(registry.report())

from __future__ import annotations

import argparse
import asyncio
from pathlib import Path

import httpx

from app.log import configure_logging
from app.settings import Settings
from ingest.scheduler import CycleResult, run_cycle
from ingest.sources import all_sources, select_sources
from store.db import close_database, open_database


async def _run_once(settings: Settings, db_path: Path, sources: list[str]) -> CycleResult:
    plugins = select_sources(all_sources(settings), sources)
    db = open_database(db_path)
    try:
        async with httpx.AsyncClient(follow_redirects=True) as client:
            return await run_cycle(client, db, plugins, settings)
    finally:
        close_database(db)


def main() -> None:
    parser = argparse.ArgumentParser(description="Run one ingestion cycle.")
    parser.add_argument("--db", type=Path, default=None)
    parser.add_argument(
        "--source",
        action="append",
        default=[],
        help="restrict the cycle to this source (repeatable)",
    )
    args = parser.parse_args()

    settings = Settings()
    configure_logging(settings.log_level)
    result = asyncio.run(_run_once(settings, args.db or settings.db_path, args.source))

    print(
        f"collected={result.collected} unplaced={result.unplaced} "
        f"duplicates={result.duplicates} future={result.future_rejected} "
        f"out_of_window={result.out_of_window} written={result.persist.written} "
        f"failed={result.persist.failed} purged={result.persist.purged}"
    )
    for name, health in sorted(result.health.items()):
        line = f"{health.status:12} {name}"
        if health.error:
            line += f"  {health.error}"
        print(line)


if __name__ == "__main__":
    main()

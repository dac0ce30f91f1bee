from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass, field
from datetime import datetime

import httpx

from app.settings import Settings
from health.health import DEGRADED, DOWN, OPERATIONAL
from ingest.feed_packs import Feed
from ingest.fetch import FetchError, fetch
from ingest.sources import SourcePlugin
from normalize.incident import Incident


LOGGER = logging.getLogger(__name__)


@dataclass(frozen=True)
class FeedFailure:
    url: str
    error: str


@dataclass
class AdapterOutcome:
    name: str
    feeds_total: int
    incidents: list[Incident] = field(default_factory=list)
    failures: list[FeedFailure] = field(default_factory=list)
    skipped_records: int = 0

    @property
    def status(self) -> str:
        if not self.failures:
            return OPERATIONAL
        if len(self.failures) >= self.feeds_total:
            return DOWN
        return DEGRADED

    @property
    def error(self) -> str | None:
        if not self.failures:
            return None
        if len(self.failures) == 1:
            return self.failures[0].error
        return f"{len(self.failures)}/{self.feeds_total} feeds failed: " + "; ".join(
            f.error for f in self.failures
        )


def _normalize_records(
    plugin: SourcePlugin, feed: Feed, records: list, now: datetime
) -> tuple[list[Incident], int]:
    if plugin.limit is not None:
        records = records[: plugin.limit]

    incidents: list[Incident] = []
    skipped = 0
    for record in records:
        try:
            incident = plugin.normalize(record, feed, now)
        except (AttributeError, KeyError, IndexError, TypeError, ValueError):
            skipped += 1
            LOGGER.debug(
                "%s: skipping malformed record from %s",
                plugin.name,
                feed.url,
                exc_info=True,
            )
            continue
        if incident is None:
            continue
        incidents.append(incident)
        if plugin.max_incidents is not None and len(incidents) >= plugin.max_incidents:
            break
    return incidents, skipped


async def _run_feed(
    client: httpx.AsyncClient,
    plugin: SourcePlugin,
    feed: Feed,
    *,
    settings: Settings,
    now: datetime,
) -> tuple[list[Incident], int, FeedFailure | None]:
    url = plugin.build_url(feed, now) if plugin.build_url else feed.url
    try:
        content = await fetch(
            client,
            url=url,
            user_agent=settings.user_agent,
            timeout_seconds=settings.request_timeout_seconds,
            extra_headers=plugin.headers,
        )
        records = plugin.parse(content)
    except FetchError as e:
        LOGGER.warning("%s: fetch failed for %s: %s", plugin.name, feed.label, e.reason)
        return [], 0, FeedFailure(url=feed.url, error=f"{feed.label}: {e.reason}")
    except ValueError as e:
        LOGGER.warning("%s: parse failed for %s: %s", plugin.name, feed.label, e)
        return [], 0, FeedFailure(url=feed.url, error=f"{feed.label}: parse_error")

    incidents, skipped = _normalize_records(plugin, feed, records, now)
    if skipped:
        LOGGER.warning(
            "%s: skipped %d malformed records from %s", plugin.name, skipped, feed.label
        )
    return incidents, skipped, None


async def run_adapter(
    client: httpx.AsyncClient,
    plugin: SourcePlugin,
    *,
    settings: Settings,
    now: datetime,
) -> AdapterOutcome:
    """Fetch every feed of one source; failures are recorded, not raised."""
    sem = asyncio.Semaphore(max(1, settings.feed_concurrency))

    async def _bounded(feed: Feed) -> tuple[list[Incident], int, FeedFailure | None]:
        async with sem:
            return await _run_feed(client, plugin, feed, settings=settings, now=now)

    results = await asyncio.gather(
        *(_bounded(feed) for feed in plugin.feeds), return_exceptions=True
    )

    outcome = AdapterOutcome(name=plugin.name, feeds_total=len(plugin.feeds))
    for feed, result in zip(plugin.feeds, results):
        if isinstance(result, BaseException):
            if not isinstance(result, Exception):
                raise result
            LOGGER.error("%s: feed %s raised", plugin.name, feed.label, exc_info=result)
            outcome.failures.append(
                FeedFailure(
                    url=feed.url,
                    error=f"{feed.label}: {result.__class__.__name__}: {result}",
                )
            )
            continue
        incidents, skipped, failure = result
        outcome.incidents.extend(incidents)
        outcome.skipped_records += skipped
        if failure is not None:
            outcome.failures.append(failure)

    LOGGER.info(
        "%s: %d incidents from %d feeds (%s)",
        plugin.name,
        len(outcome.incidents),
        outcome.feeds_total,
        outcome.status,
    )
    return outcome

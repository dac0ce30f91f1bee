from __future__ import annotations

import calendar
from datetime import UTC, datetime

import feedparser


def _entry_time(entry: dict) -> str | None:
    for key in ("published_parsed", "updated_parsed", "created_parsed"):
        parsed = entry.get(key)
        if parsed:
            ts = datetime.fromtimestamp(calendar.timegm(parsed), tz=UTC)
            return ts.isoformat().replace("+00:00", "Z")
    return None


def _entry_link(entry: dict) -> str | None:
    link = entry.get("link")
    if link:
        return str(link)
    for candidate in entry.get("links") or []:
        href = candidate.get("href")
        if href:
            return str(href)
    return None


def parse_rss(data: bytes) -> list[dict]:
    parsed = feedparser.parse(data)
    if parsed.bozo and not parsed.entries:
        raise ValueError(f"unparseable feed: {parsed.get('bozo_exception')!r}")

    records: list[dict] = []
    for entry in parsed.entries:
        summary = entry.get("summary") or entry.get("description") or ""
        if not summary and entry.get("content"):
            summary = entry["content"][0].get("value") or ""
        records.append(
            {
                "id": entry.get("id") or entry.get("guid") or _entry_link(entry),
                "link": _entry_link(entry),
                "title": entry.get("title", ""),
                "summary": summary,
                "published": _entry_time(entry),
            }
        )
    return records

from __future__ import annotations

from dataclasses import dataclass
from pathlib import Path

import yaml


@dataclass(frozen=True)
class Feed:
    url: str
    label: str
    kind: str = "rss"
    # Dedicated sources skip the adapter's keyword gate.
    trusted: bool = False
    enabled: bool = True
    pack_id: str | None = None
    region: str | None = None
    lat: float | None = None
    lon: float | None = None


def load_feed_packs(feeds_dir: Path) -> dict[str, list[Feed]]:
    packs: dict[str, list[Feed]] = {}
    if not feeds_dir.exists():
        return packs

    for path in sorted(feeds_dir.glob("*.yaml")):
        pack_id = path.stem
        raw = yaml.safe_load(path.read_text(encoding="utf-8"))
        if raw is None:
            packs[pack_id] = []
            continue
        if not isinstance(raw, list):
            raise ValueError(f"invalid feed pack: {path}")

        feeds: list[Feed] = []
        for entry in raw:
            if not isinstance(entry, dict) or "url" not in entry or "name" not in entry:
                raise ValueError(f"invalid feed entry in: {path}")
            feeds.append(
                Feed(
                    url=str(entry["url"]),
                    label=str(entry["name"]),
                    kind=str(entry.get("kind") or "rss"),
                    trusted=bool(entry.get("trusted", False)),
                    enabled=bool(entry.get("enabled", True)),
                    pack_id=pack_id,
                    region=str(entry["region"]) if entry.get("region") else None,
                    lat=float(entry["lat"]) if entry.get("lat") is not None else None,
                    lon=float(entry["lon"]) if entry.get("lon") is not None else None,
                )
            )

        packs[pack_id] = feeds

    return packs


def enabled_feeds(packs: dict[str, list[Feed]], pack_id: str) -> list[Feed]:
    return [f for f in packs.get(pack_id, []) if f.enabled]

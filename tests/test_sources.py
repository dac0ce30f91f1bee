from pathlib import Path

import pytest

from app.settings import FEEDS_DIR, Settings
from ingest.feed_packs import enabled_feeds, load_feed_packs
from ingest.sources import all_sources, select_sources


def test_load_repo_feed_packs() -> None:
    packs = load_feed_packs(FEEDS_DIR)

    assert len(packs["world_news"]) == 128
    assert all(f.kind == "rss" for f in packs["world_news"])
    assert any(f.trusted for f in packs["cyber"])
    assert not all(f.trusted for f in packs["cyber"])
    assert {f.kind for f in packs["status_pages"]} >= {"aws", "gcp", "statuspage"}
    beijing = packs["air_quality"][0]
    assert beijing.label == "Beijing"
    assert beijing.lat == pytest.approx(39.9042)
    assert beijing.pack_id == "air_quality"


def test_disabled_feeds_are_filtered(tmp_path) -> None:
    (tmp_path / "demo.yaml").write_text(
        "- name: On\n  url: https://on.test/rss\n"
        "- name: Off\n  url: https://off.test/rss\n  enabled: false\n",
        encoding="utf-8",
    )
    packs = load_feed_packs(tmp_path)
    assert [f.label for f in enabled_feeds(packs, "demo")] == ["On"]
    assert enabled_feeds(packs, "missing") == []


def test_invalid_pack_is_rejected(tmp_path) -> None:
    (tmp_path / "broken.yaml").write_text("- url: https://no-name.test/rss\n", encoding="utf-8")
    with pytest.raises(ValueError):
        load_feed_packs(tmp_path)

    (tmp_path / "broken.yaml").write_text("name: not-a-list\n", encoding="utf-8")
    with pytest.raises(ValueError):
        load_feed_packs(tmp_path)


def test_missing_feeds_dir_yields_no_packs() -> None:
    assert load_feed_packs(Path("/nonexistent/feeds")) == {}


def test_all_sources_registry() -> None:
    plugins = all_sources(Settings())

    names = [p.name for p in plugins]
    assert len(names) == 24
    assert len(set(names)) == 24
    assert all(p.feeds for p in plugins)

    by_name = {p.name: p for p in plugins}
    assert len(by_name["News Feeds"].feeds) == 128
    assert by_name["NOAA Weather"].max_incidents == 30
    assert by_name["NIST CVE"].replaces_stored_source == "NIST NVD"
    assert by_name["NIST CVE"].headers == {}


def test_nvd_api_key_header() -> None:
    plugins = all_sources(Settings(NVD_API_KEY="secret"))
    nvd = select_sources(plugins, ["nist cve"])[0]
    assert nvd.headers == {"apiKey": "secret"}


def test_select_sources() -> None:
    plugins = all_sources(Settings())
    assert select_sources(plugins, []) == plugins
    picked = select_sources(plugins, ["GDACS", "usgs earthquakes"])
    assert [p.name for p in picked] == ["USGS Earthquakes", "GDACS"]
    with pytest.raises(ValueError, match="unknown sources: bogus"):
        select_sources(plugins, ["GDACS", "Bogus"])

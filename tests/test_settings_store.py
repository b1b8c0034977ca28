"""Tests for the persisted settings store."""

from __future__ import annotations

import json
import os
import stat
import threading
from pathlib import Path

import pytest

from pouch_publisher.core.audit_log import DEBUG_LOG_CAPACITY
from pouch_publisher.core.errors import DestinationError
from pouch_publisher.core.state import MAX_DESTINATIONS, Preferences, SettingsStore


def _read(path: Path) -> dict:
    return json.loads(path.read_text(encoding="utf-8"))


def test_defaults_when_file_missing(tmp_path: Path) -> None:
    store = SettingsStore.open(tmp_path / "state.json")
    assert store.destinations == []
    assert store.selected_destination() is None
    assert store.preferences == Preferences()
    assert not (tmp_path / "state.json").exists()


def test_add_destination_names_and_persists(tmp_path: Path) -> None:
    path = tmp_path / "state" / "publisher.json"
    store = SettingsStore.open(path)

    first = store.add_destination(url="https://a.example", api_key="k1")
    second = store.add_destination(name="my blog site", url="https://b.example", api_key="k2")

    assert first.name == "dest1"
    assert second.name == "myblogs"
    saved = _read(path)
    assert [item["name"] for item in saved["destinations"]] == ["dest1", "myblogs"]
    if os.name != "nt":
        assert stat.S_IMODE(path.stat().st_mode) == 0o600

    reloaded = SettingsStore.open(path)
    assert reloaded.destinations == store.destinations


def test_destination_limits(tmp_path: Path) -> None:
    store = SettingsStore.open(tmp_path / "state.json")
    store.add_destination(name="main", url="u", api_key="k")
    with pytest.raises(DestinationError):
        store.add_destination(name="main", url="u", api_key="k")
    with pytest.raises(DestinationError):
        store.add_destination(name="   ", url="u", api_key="k")

    for _ in range(MAX_DESTINATIONS - 1):
        store.add_destination(url="u", api_key="k")
    with pytest.raises(DestinationError):
        store.add_destination(url="u", api_key="k")


def test_remove_reclamps_selection(tmp_path: Path) -> None:
    store = SettingsStore.open(tmp_path / "state.json")
    for name in ("one", "two", "three"):
        store.add_destination(name=name, url=f"https://{name}", api_key="k")
    assert store.select_destination(7) == 2

    store.remove_destination(2)
    assert store.selected_index == 1
    assert store.selected_destination().name == "two"

    with pytest.raises(DestinationError):
        store.remove_destination(5)


def test_select_without_destinations_fails(tmp_path: Path) -> None:
    store = SettingsStore.open(tmp_path / "state.json")
    with pytest.raises(DestinationError):
        store.select_destination(0)


def test_update_destination(tmp_path: Path) -> None:
    store = SettingsStore.open(tmp_path / "state.json")
    store.add_destination(name="one", url="https://one", api_key="k")
    store.add_destination(name="two", url="https://two", api_key="k")

    updated = store.update_destination(0, url="https://uno", magazine_mode=True)
    assert updated.url == "https://uno"
    assert updated.magazine_mode
    with pytest.raises(DestinationError):
        store.update_destination(0, name="two")


def test_legacy_single_destination_is_migrated(tmp_path: Path) -> None:
    path = tmp_path / "state.json"
    path.write_text(json.dumps({"pouchUrl": "https://old.example", "apiKey": "legacy"}))

    store = SettingsStore.open(path)

    destination = store.selected_destination()
    assert destination is not None
    assert (destination.name, destination.url, destination.api_key) == (
        "default",
        "https://old.example",
        "legacy",
    )
    assert _read(path)["destinations"][0]["magazine_mode"] is False


def test_missing_magazine_mode_is_filled_in(tmp_path: Path) -> None:
    path = tmp_path / "state.json"
    path.write_text(
        json.dumps({"destinations": [{"name": "main", "url": "https://m", "api_key": "k"}]})
    )
    store = SettingsStore.open(path)
    assert store.destinations[0].magazine_mode is False
    assert _read(path)["destinations"][0]["magazine_mode"] is False


def test_preferences_merge_over_defaults(tmp_path: Path) -> None:
    path = tmp_path / "state.json"
    path.write_text(
        json.dumps(
            {"preferences": {"publish_excerpt": True, "publish_hidden": True, "unknown": 1}}
        )
    )
    store = SettingsStore.open(path)
    assert store.preferences.publish_excerpt
    assert not store.preferences.publish_hidden
    assert store.preferences.publish_internal

    store.update_preferences(default_tags="news", publish_public=True)
    assert SettingsStore.open(path).preferences.default_tags == "news"


def test_mappings_and_logs_persist(tmp_path: Path) -> None:
    path = tmp_path / "state.json"
    store = SettingsStore.open(path)
    store.upsert_mapping("notes/post.md", "20240101-post")
    store.publish_log.record(title="Post", slug="post", url="https://x/p", success=True)
    store.debug_log.info("dropped while disabled")

    reloaded = SettingsStore.open(path)
    mapping = reloaded.get_mapping("notes/post.md")
    assert mapping is not None
    assert mapping.filename_base == "20240101-post"
    assert mapping.last_published.endswith("Z")
    assert [entry.slug for entry in reloaded.publish_log] == ["post"]
    assert len(reloaded.debug_log) == 0

    reloaded.update_preferences(enable_debug_logging=True)
    reloaded.debug_log.info("kept")
    assert [entry.message for entry in SettingsStore.open(path).debug_log] == ["kept"]


def test_concurrent_debug_saves_leave_valid_state(tmp_path: Path) -> None:
    path = tmp_path / "state.json"
    store = SettingsStore.open(path)
    store.update_preferences(enable_debug_logging=True)

    def record(worker: int) -> None:
        for index in range(20):
            store.debug_log.info(f"worker {worker} entry {index}")

    threads = [threading.Thread(target=record, args=(worker,)) for worker in range(4)]
    for thread in threads:
        thread.start()
    for thread in threads:
        thread.join()

    reloaded = SettingsStore.open(path)
    assert len(reloaded.debug_log) == DEBUG_LOG_CAPACITY
    assert reloaded.preferences.enable_debug_logging

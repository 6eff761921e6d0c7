"""Tests for the settings store implementations."""

from __future__ import annotations

from pathlib import Path

import pytest

from cldconnect.store import JsonFileSettingsStore, MemorySettingsStore, SettingsStore, StoreError


class _Clock:
    def __init__(self) -> None:
        self.now = 0.0

    def __call__(self) -> float:
        return self.now


def test_memory_store_round_trip_and_delete() -> None:
    store = MemorySettingsStore()

    store.set("key", {"a": 1})
    assert store.get("key") == {"a": 1}
    store.delete("key")
    assert store.get("key", "fallback") == "fallback"


def test_memory_transient_expires() -> None:
    clock = _Clock()
    store = MemorySettingsStore(clock=clock)

    store.set_transient("usage", [1], ttl=10)
    assert store.get_transient("usage") == [1]
    clock.now = 10
    assert store.get_transient("usage") is None


def test_json_store_persists_between_instances(tmp_path: Path) -> None:
    path = tmp_path / "nested" / "settings.json"
    JsonFileSettingsStore(path).set("cloudinary_connect", {"cloudinary_url": "cloudinary://1:s@demo"})

    reopened = JsonFileSettingsStore(path)

    assert reopened.get("cloudinary_connect") == {"cloudinary_url": "cloudinary://1:s@demo"}
    reopened.delete("cloudinary_connect")
    assert JsonFileSettingsStore(path).get("cloudinary_connect") is None


def test_json_store_transients_expire(tmp_path: Path) -> None:
    clock = _Clock()
    store = JsonFileSettingsStore(tmp_path / "settings.json", clock=clock)

    store.set_transient("usage", {"plan": "Free"}, ttl=60)
    assert store.get_transient("usage") == {"plan": "Free"}
    clock.now = 61
    assert store.get_transient("usage") is None


def test_json_store_missing_file_reads_defaults(tmp_path: Path) -> None:
    store = JsonFileSettingsStore(tmp_path / "absent.json")

    assert store.get("anything", 5) == 5
    assert store.get_transient("anything") is None


def test_json_store_rejects_corrupt_file(tmp_path: Path) -> None:
    path = tmp_path / "settings.json"
    path.write_text("{not json")

    with pytest.raises(StoreError):
        JsonFileSettingsStore(path).get("key")


def test_stores_satisfy_protocol(tmp_path: Path) -> None:
    assert isinstance(MemorySettingsStore(), SettingsStore)
    assert isinstance(JsonFileSettingsStore(tmp_path / "s.json"), SettingsStore)

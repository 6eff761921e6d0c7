"""Settings store protocol and the in-process implementations."""

from __future__ import annotations

import json
import time
from pathlib import Path
from typing import Any, Callable, Protocol, runtime_checkable

META_KEYS: dict[str, str] = {
    "usage": "_cloudinary_usage",
    "last_usage": "_cloudinary_last_usage",
    "signature": "cloudinary_connection_signature",
    "version": "cloudinary_version",
    "url": "cloudinary_url",
    "connect": "cloudinary_connect",
    "cache": "cloudinary_settings_cache",
    "status": "cloudinary_status",
    "sync_media": "cloudinary_sync_media",
}

Clock = Callable[[], float]


class StoreError(RuntimeError):
    """Raised when a persisted store cannot be read or written."""


@runtime_checkable
class SettingsStore(Protocol):
    """Key/value storage shared with the host application."""

    def get(self, key: str, default: Any = None) -> Any: ...

    def set(self, key: str, value: Any) -> None: ...

    def delete(self, key: str) -> None: ...

    def get_transient(self, key: str) -> Any: ...

    def set_transient(self, key: str, value: Any, ttl: float) -> None: ...


class MemorySettingsStore:
    """Dictionary-backed store; transients expire against the injected clock."""

    def __init__(self, data: dict[str, Any] | None = None, *, clock: Clock = time.time) -> None:
        self._data: dict[str, Any] = dict(data or {})
        self._transients: dict[str, tuple[float, Any]] = {}
        self._clock = clock

    def get(self, key: str, default: Any = None) -> Any:
        return self._data.get(key, default)

    def set(self, key: str, value: Any) -> None:
        self._data[key] = value

    def delete(self, key: str) -> None:
        self._data.pop(key, None)
        self._transients.pop(key, None)

    def get_transient(self, key: str) -> Any:
        entry = self._transients.get(key)
        if entry is None:
            return None
        expires_at, value = entry
        if self._clock() >= expires_at:
            self._transients.pop(key, None)
            return None
        return value

    def set_transient(self, key: str, value: Any, ttl: float) -> None:
        self._transients[key] = (self._clock() + ttl, value)


class JsonFileSettingsStore:
    """Store persisted as a single JSON document; every write rewrites the file."""

    def __init__(self, path: Path, *, clock: Clock = time.time) -> None:
        self._path = path
        self._clock = clock

    @property
    def path(self) -> Path:
        return self._path

    def get(self, key: str, default: Any = None) -> Any:
        return self._read()["options"].get(key, default)

    def set(self, key: str, value: Any) -> None:
        document = self._read()
        document["options"][key] = value
        self._write(document)

    def delete(self, key: str) -> None:
        document = self._read()
        removed = document["options"].pop(key, None) is not None
        removed = document["transients"].pop(key, None) is not None or removed
        if removed:
            self._write(document)

    def get_transient(self, key: str) -> Any:
        entry = self._read()["transients"].get(key)
        if not isinstance(entry, dict):
            return None
        if self._clock() >= float(entry.get("expires_at", 0)):
            return None
        return entry.get("value")

    def set_transient(self, key: str, value: Any, ttl: float) -> None:
        document = self._read()
        document["transients"][key] = {"expires_at": self._clock() + ttl, "value": value}
        self._write(document)

    def _read(self) -> dict[str, dict[str, Any]]:
        try:
            raw = json.loads(self._path.read_text())
        except FileNotFoundError:
            raw = {}
        except (OSError, ValueError) as exc:
            raise StoreError(f"Failed to read settings store '{self._path}': {exc}") from exc
        if not isinstance(raw, dict):
            raw = {}
        options = raw.get("options")
        transients = raw.get("transients")
        return {
            "options": options if isinstance(options, dict) else {},
            "transients": transients if isinstance(transients, dict) else {},
        }

    def _write(self, document: dict[str, dict[str, Any]]) -> None:
        try:
            self._path.parent.mkdir(parents=True, exist_ok=True)
            self._path.write_text(json.dumps(document, indent=2, sort_keys=True))
        except OSError as exc:
            raise StoreError(f"Failed to write settings store '{self._path}': {exc}") from exc


__all__ = [
    "JsonFileSettingsStore",
    "META_KEYS",
    "MemorySettingsStore",
    "SettingsStore",
    "StoreError",
]

"""Connector configuration loading helpers."""

from __future__ import annotations

from pathlib import Path

import tomllib

from pydantic import BaseModel, Field, ValidationError

from . import __version__
from .api import DEFAULT_API_BASE

CONFIG_FILE = Path.home() / ".config" / "cldconnect" / "config.toml"
DEFAULT_STORE_PATH = Path.home() / ".local" / "share" / "cldconnect" / "settings.json"


class ConnectorConfig(BaseModel):
    """Shape of the connector configuration file."""

    version: str = __version__
    usage_ttl_seconds: int = Field(default=3600, gt=0)
    status_interval_seconds: int = Field(default=60, gt=0)
    api_base_url: str = DEFAULT_API_BASE
    request_timeout: float = Field(default=10.0, gt=0)
    settings_handles: list[str] = Field(default_factory=lambda: ["cld_connect", "cloudinary"])
    store_path: Path = DEFAULT_STORE_PATH

    def with_settings_handles(self, *handles: str) -> ConnectorConfig:
        """Return a copy with extra settings screens registered."""

        merged = list(dict.fromkeys([*self.settings_handles, *handles]))
        return self.model_copy(update={"settings_handles": merged})


def load_config(path: Path | None = None) -> ConnectorConfig:
    """Load configuration from disk; fall back to defaults if missing or invalid."""

    try:
        data = _read_config_file(path or CONFIG_FILE)
    except FileNotFoundError:
        return ConnectorConfig()
    except (tomllib.TOMLDecodeError, OSError):
        return ConnectorConfig()
    try:
        return ConnectorConfig(**data)
    except ValidationError:
        return ConnectorConfig()


def save_config(config: ConnectorConfig, path: Path | None = None) -> None:
    """Persist configuration to disk."""

    target = path or CONFIG_FILE
    target.parent.mkdir(parents=True, exist_ok=True)
    handles = ", ".join(f'"{handle}"' for handle in config.settings_handles)
    lines: list[str] = [
        f'version = "{config.version}"',
        f"usage_ttl_seconds = {config.usage_ttl_seconds}",
        f"status_interval_seconds = {config.status_interval_seconds}",
        f'api_base_url = "{config.api_base_url}"',
        f"request_timeout = {config.request_timeout}",
        f"settings_handles = [{handles}]",
        f'store_path = "{config.store_path.as_posix()}"',
    ]
    target.write_text("\n".join(lines) + "\n")


def _read_config_file(path: Path) -> dict[str, object]:
    with path.open("rb") as handle:
        raw = tomllib.load(handle)
    data: dict[str, object] = {}
    for key in ("version", "api_base_url", "store_path"):
        value = raw.get(key)
        if isinstance(value, str):
            data[key] = value
    for key in ("usage_ttl_seconds", "status_interval_seconds"):
        value = raw.get(key)
        if isinstance(value, int) and not isinstance(value, bool):
            data[key] = value
    timeout = raw.get("request_timeout")
    if isinstance(timeout, (int, float)) and not isinstance(timeout, bool):
        data["request_timeout"] = float(timeout)
    handles = raw.get("settings_handles")
    if isinstance(handles, list):
        data["settings_handles"] = [str(handle) for handle in handles]
    return data


__all__ = ["CONFIG_FILE", "ConnectorConfig", "load_config", "save_config"]

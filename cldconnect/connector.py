"""Connector facade composing validation, status, usage and notices."""

from __future__ import annotations

import hashlib
import logging
from datetime import datetime, timedelta, timezone
from typing import Any, Mapping
from urllib.parse import urlencode

from .api import ApiFactory, HttpxRemoteAPI, RemoteAPI
from .config import ConnectorConfig, load_config
from .credentials import Credentials, MalformedUriError, fingerprint, strip_prefix
from .models import ConnectionStatus, Notice, OutcomeType, RequestContext, ValidationOutcome
from .notices import NoticeGenerator
from .scheduler import Recurrence, Scheduler
from .session import ConnectionSession
from .status import STATUS_RECURRENCE, StatusMonitor
from .store import META_KEYS, JsonFileSettingsStore, SettingsStore
from .usage import StatValue, UsageCache, UsageSnapshot
from .validator import ConnectionValidator

LOG = logging.getLogger(__name__)

REMOVED_MESSAGE = "Connection to Cloudinary has been removed."
SUCCESS_MESSAGE = "Successfully connected to Cloudinary."


def _version_key(value: str) -> tuple[int, ...]:
    """Major, minor and patch of a dotted version; missing or non-numeric parts count as 0."""

    parts = [int(part) if part.isdigit() else 0 for part in value.split(".")[:3]]
    return tuple(parts + [0] * (3 - len(parts)))


def _status_recurrence(interval_seconds: int) -> Recurrence:
    if interval_seconds == int(STATUS_RECURRENCE.interval.total_seconds()):
        return STATUS_RECURRENCE
    return Recurrence(
        name=f"every_{interval_seconds}_seconds",
        interval=timedelta(seconds=interval_seconds),
        display=f"Every {interval_seconds} Seconds",
    )


class Connector:
    """Connection lifecycle for one account, backed by the host's settings store."""

    def __init__(
        self,
        store: SettingsStore,
        *,
        config: ConnectorConfig | None = None,
        api_factory: ApiFactory | None = None,
    ) -> None:
        self._config = config or ConnectorConfig()
        self._store = store
        self._session = ConnectionSession(api_factory or self._default_api)
        self._status = StatusMonitor(
            self._session,
            store,
            recurrence=_status_recurrence(self._config.status_interval_seconds),
        )
        self._usage = UsageCache(self._session, store, ttl=self._config.usage_ttl_seconds)
        self._validator = ConnectionValidator(self._session, store, self._status, self._usage)
        self._notices = NoticeGenerator(self._usage, settings_handles=self._config.settings_handles)

    @property
    def config(self) -> ConnectorConfig:
        return self._config

    @property
    def session(self) -> ConnectionSession:
        return self._session

    @property
    def status_monitor(self) -> StatusMonitor:
        return self._status

    @property
    def usage_cache(self) -> UsageCache:
        return self._usage

    @property
    def validator(self) -> ConnectionValidator:
        return self._validator

    @property
    def credentials(self) -> Credentials | None:
        return self._session.credentials

    @property
    def cloud_name(self) -> str | None:
        return self._session.cloud_name

    @property
    def disabled(self) -> bool:
        return self._session.disabled

    def set_credentials(self, data: Mapping[str, str]) -> dict[str, str]:
        return self._session.set_credentials(data)

    def setup(self, scheduler: Scheduler | None = None, now: datetime | None = None) -> bool:
        """Apply the stored connection, warm the usage cache and arm the status job."""

        if scheduler is not None:
            self._status.register(scheduler)
        url = self._validator.stored_url()
        if not url:
            return False
        try:
            self._session.apply_url(url)
        except MalformedUriError:
            LOG.warning("Stored connection string is malformed; skipping setup")
            return False
        self._usage.get()
        if scheduler is not None:
            self._status.ensure_scheduled(scheduler, now)
        return True

    def update_connection(self, raw_url: str | None) -> ValidationOutcome:
        """Validate and persist a submitted connection string.

        An empty value removes the connection. A failed validation leaves the stored
        record, fingerprint, status and session exactly as they were.
        """

        url = strip_prefix(raw_url or "").strip()
        if not url:
            self.remove_connection()
            return ValidationOutcome(type=OutcomeType.CONNECTION_REMOVED, url="", message=REMOVED_MESSAGE)

        previous_status = self._store.get(META_KEYS["status"])
        outcome = self._validator.validate(url)
        if not outcome.succeeded:
            LOG.info("Rejected connection string", extra={"outcome": outcome.type.value})
            self._restore(previous_status)
            return outcome

        self._store.set(META_KEYS["connect"], {"cloudinary_url": outcome.url})
        self._store.set(META_KEYS["signature"], fingerprint(outcome.url))
        self._store.delete(META_KEYS["cache"])
        if outcome.message:
            return outcome
        return ValidationOutcome(type=outcome.type, url=outcome.url, message=SUCCESS_MESSAGE)

    def remove_connection(self) -> None:
        self._store.delete(META_KEYS["signature"])
        self._store.set(META_KEYS["connect"], {"cloudinary_url": ""})
        self._session.reset()
        LOG.info("Connection removed")

    def get_config(self) -> str | None:
        """Return the connection fingerprint, re-validating after upgrades or legacy installs."""

        signature = self._store.get(META_KEYS["signature"])
        stored_version = str(self._store.get(META_KEYS["version"]) or "0.0.0")
        if signature and _version_key(self._config.version) <= _version_key(stored_version):
            return signature

        legacy_url = self._store.get(META_KEYS["url"])
        if legacy_url is None:
            data = self._store.get(META_KEYS["connect"]) or {}
            if not isinstance(data, dict) or not data.get("cloudinary_url"):
                return None
            data = dict(data)
        else:
            data = {"cloudinary_url": legacy_url}
            self._migrate_legacy_settings()

        data["cloudinary_url"] = strip_prefix(str(data["cloudinary_url"]))
        outcome = self._validator.test_connection(data["cloudinary_url"])
        if outcome.type is OutcomeType.CONNECTION_SUCCESS:
            signature = fingerprint(data["cloudinary_url"])
            self._store.set(META_KEYS["connect"], data)
            self._store.set(META_KEYS["signature"], signature)
            self._store.set(META_KEYS["version"], self._config.version)
            self._store.delete(META_KEYS["cache"])
        else:
            LOG.warning("Stored connection failed re-validation", extra={"outcome": outcome.type.value})
        return signature

    def is_connected(self) -> bool:
        return self._status.is_connected()

    def check_status(self) -> ConnectionStatus:
        return self._status.check_status()

    def usage_stats(self, refresh: bool = False) -> UsageSnapshot | None:
        return self._usage.get(force_refresh=refresh)

    def get_usage_stat(self, category: str, field: str | None = None) -> StatValue:
        return self._usage.get_stat(category, field)

    def get_notices(self, context: RequestContext) -> list[Notice]:
        """Staged status notices, usage warnings and the connect prompt for this request."""

        # is_connected stages the status notice read just below.
        connected = self.is_connected()
        notices = self._status.staged_notices()
        has_connection = self._store.get(META_KEYS["signature"]) is not None
        if has_connection:
            notices.extend(self._notices.usage_notices())
        prompt = self._notices.connect_notice(has_connection, context)
        if prompt is not None:
            notices.append(prompt)
        LOG.debug("Built notices", extra={"count": len(notices), "connected": connected})
        return notices

    def media_library_options(self, now: datetime | None = None) -> dict[str, Any]:
        """Options for the embedded media library, signed when a user email is known."""

        credentials = self._session.credentials
        if credentials is None:
            return {}
        options: dict[str, Any] = {
            "cloud_name": credentials.cloud_name,
            "api_key": credentials.api_key,
            "remove_header": True,
            "insert_transformation": True,
        }
        email = credentials.extra.get("user_email")
        if email:
            timestamp = int((now or datetime.now(tz=timezone.utc)).timestamp())
            query = urlencode(
                {
                    "cloud_name": credentials.cloud_name,
                    "timestamp": timestamp,
                    "username": email + credentials.api_secret,
                }
            )
            options["username"] = email
            options["timestamp"] = str(timestamp)
            options["signature"] = hashlib.sha256(query.encode("utf-8")).hexdigest()
        return options

    def _restore(self, previous_status: Any) -> None:
        stored = self._validator.stored_url()
        self._session.reset()
        if stored:
            self._session.apply_url(stored)
        if previous_status is None:
            self._store.delete(META_KEYS["status"])
        else:
            self._store.set(META_KEYS["status"], previous_status)
        restored = ConnectionStatus.from_dict(previous_status)
        self._session.disabled = bool(restored and restored.is_disabled_account)

    def _migrate_legacy_settings(self) -> None:
        sync = self._store.get(META_KEYS["sync_media"])
        if not isinstance(sync, dict) or not sync:
            sync = {"auto_sync": "", "cloudinary_folder": ""}
        sync = dict(sync)
        sync["auto_sync"] = "off"
        self._store.set(META_KEYS["sync_media"], sync)
        self._store.delete(META_KEYS["cache"])
        LOG.info("Migrating legacy connection URL")

    def _default_api(self, credentials: Credentials) -> RemoteAPI:
        return HttpxRemoteAPI(
            credentials,
            base_url=self._config.api_base_url,
            timeout=self._config.request_timeout,
            user_agent=f"cldconnect/{self._config.version}",
        )


def build_connector(config: ConnectorConfig | None = None) -> Connector:
    """Build a connector backed by the JSON settings file named in the config."""

    config = config or load_config()
    return Connector(JsonFileSettingsStore(config.store_path), config=config)


__all__ = ["Connector", "REMOVED_MESSAGE", "SUCCESS_MESSAGE", "build_connector"]

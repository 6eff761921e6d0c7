"""Usage report models and the TTL cache with last-known-good fallback."""

from __future__ import annotations

import logging
from typing import Any, Mapping

from pydantic import AliasChoices, BaseModel, ConfigDict, Field, ValidationError

from .api import ApiError
from .credentials import MalformedUriError
from .session import ConnectionSession
from .store import META_KEYS, SettingsStore

LOG = logging.getLogger(__name__)

USAGE_TTL_SECONDS = 60 * 60

StatValue = str | int | float | bool | None


class UsageFetchError(RuntimeError):
    """Raised when a live usage report cannot be fetched or understood."""


class UsageRecord(BaseModel):
    """Quota figures for one resource category."""

    model_config = ConfigDict(extra="allow", populate_by_name=True)

    limit: float | None = None
    used: float | None = Field(default=None, validation_alias=AliasChoices("used", "usage"))
    used_percent: float | None = None
    credits_usage: float | None = None

    def value(self, field: str) -> Any:
        if field == "usage":
            field = "used"
        if field in type(self).model_fields:
            return getattr(self, field)
        return (self.model_extra or {}).get(field)


class MediaLimits(BaseModel):
    """Plan limits on uploaded media."""

    model_config = ConfigDict(extra="allow")

    image_max_size_bytes: int | None = None
    video_max_size_bytes: int | None = None


class UsageSnapshot(BaseModel):
    """Validated account usage report."""

    categories: dict[str, UsageRecord] = Field(default_factory=dict)
    scalars: dict[str, str | int | float | bool | None] = Field(default_factory=dict)
    media_limits: MediaLimits = Field(default_factory=MediaLimits)
    max_image_size: int | None = None
    max_video_size: int | None = None

    @classmethod
    def from_api(cls, payload: Mapping[str, Any]) -> UsageSnapshot:
        """Validate a raw usage report; raises ValueError if it is not recognised."""

        limits = payload.get("media_limits")
        if not isinstance(limits, Mapping) or not limits:
            raise ValueError("Usage report is missing media_limits")
        media_limits = MediaLimits.model_validate(dict(limits))
        categories: dict[str, UsageRecord] = {}
        scalars: dict[str, Any] = {}
        for name, value in payload.items():
            if name == "media_limits":
                continue
            if isinstance(value, Mapping):
                categories[name] = UsageRecord.model_validate(dict(value))
            elif value is None or isinstance(value, (str, int, float, bool)):
                scalars[name] = value
        return cls(
            categories=categories,
            scalars=scalars,
            media_limits=media_limits,
            max_image_size=media_limits.image_max_size_bytes,
            max_video_size=media_limits.video_max_size_bytes,
        )

    @classmethod
    def from_store(cls, data: Any) -> UsageSnapshot | None:
        if not isinstance(data, Mapping) or not data:
            return None
        try:
            return cls.model_validate(dict(data))
        except ValidationError:
            LOG.warning("Discarding unreadable stored usage snapshot")
            return None

    def to_store(self) -> dict[str, Any]:
        return self.model_dump(mode="json")

    def stat(self, category: str, field: str | None = None) -> StatValue:
        """Read one figure; returns None when it cannot be resolved."""

        if category in self.scalars:
            value = self.scalars[category]
            return value if isinstance(value, (str, int, float)) else None
        record = self.categories.get(category)
        if record is None or field is None:
            return None
        value = record.value(field)
        if value is not None:
            return value
        if field == "limit":
            return record.used
        if field == "used_percent" and record.credits_usage is not None:
            credits = self.categories.get("credits")
            if credits is None or not credits.limit:
                return None
            return round(record.credits_usage / credits.limit * 100, 2)
        return None


class UsageCache:
    """Serves usage snapshots from a TTL cache, the API, or the last good copy."""

    def __init__(
        self,
        session: ConnectionSession,
        store: SettingsStore,
        *,
        ttl: float = USAGE_TTL_SECONDS,
    ) -> None:
        self._session = session
        self._store = store
        self._ttl = ttl

    def get(self, force_refresh: bool = False) -> UsageSnapshot | None:
        """Return the current usage snapshot; never raises."""

        if not force_refresh:
            cached = UsageSnapshot.from_store(self._store.get_transient(META_KEYS["usage"]))
            if cached is not None:
                return cached
        if self._session.disabled:
            LOG.debug("Account disabled; serving last known usage")
            snapshot = self.last_known_good()
        else:
            try:
                snapshot = self.fetch()
            except UsageFetchError as exc:
                LOG.warning("Usage fetch failed; serving last known usage", extra={"error": str(exc)})
                snapshot = self.last_known_good()
            else:
                self.remember(snapshot)
        return snapshot

    def fetch(self) -> UsageSnapshot:
        """Fetch a live snapshot; raises UsageFetchError on any failure."""

        try:
            payload = self._session.api.usage()
        except (ApiError, MalformedUriError) as exc:
            raise UsageFetchError(str(exc)) from exc
        try:
            return UsageSnapshot.from_api(payload)
        except ValueError as exc:
            raise UsageFetchError(f"Unrecognised usage report: {exc}") from exc

    def remember(self, snapshot: UsageSnapshot) -> None:
        """Write a fresh snapshot to the TTL cache and the durable copy."""

        data = snapshot.to_store()
        self._store.set_transient(META_KEYS["usage"], data, self._ttl)
        self._store.set(META_KEYS["last_usage"], data)

    def last_known_good(self) -> UsageSnapshot | None:
        return UsageSnapshot.from_store(self._store.get(META_KEYS["last_usage"]))

    def get_stat(self, category: str, field: str | None = None) -> StatValue:
        snapshot = self.get()
        if snapshot is None:
            return None
        return snapshot.stat(category, field)


__all__ = [
    "MediaLimits",
    "StatValue",
    "USAGE_TTL_SECONDS",
    "UsageCache",
    "UsageFetchError",
    "UsageRecord",
    "UsageSnapshot",
]

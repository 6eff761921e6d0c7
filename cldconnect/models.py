"""Shared dataclasses used across the connection, status and notice modules."""

from __future__ import annotations

from dataclasses import dataclass
from datetime import timedelta
from enum import Enum
from typing import Any, Mapping

DISABLED_ACCOUNT_MESSAGE = "disabled account"


class StatusKind(str, Enum):
    """Classification of a failed ping."""

    DISABLED_ACCOUNT = "disabled_account"
    API_ERROR = "api_error"


class NoticeLevel(str, Enum):
    """Severity of a user-facing notice."""

    NEUTRAL = "neutral"
    WARNING = "warning"
    ERROR = "error"


class OutcomeType(str, Enum):
    """Result categories of a connection validation pass."""

    CONNECTION_SUCCESS = "connection_success"
    INVALID_URL = "invalid_url"
    INVALID_CNAME = "invalid_cname"
    CONNECTION_ERROR = "connection_error"
    CONNECTION_REMOVED = "connection_removed"


def classify_message(message: str) -> StatusKind:
    """Map an API error message onto a status kind."""

    if message.strip().lower() == DISABLED_ACCOUNT_MESSAGE:
        return StatusKind.DISABLED_ACCOUNT
    return StatusKind.API_ERROR


@dataclass(frozen=True, slots=True)
class ConnectionStatus:
    """Outcome of the last ping: healthy, or an error with its kind and message."""

    healthy: bool
    kind: StatusKind | None = None
    message: str | None = None

    @classmethod
    def ok(cls) -> ConnectionStatus:
        return cls(healthy=True)

    @classmethod
    def error(cls, message: str) -> ConnectionStatus:
        return cls(healthy=False, kind=classify_message(message), message=message)

    @property
    def is_disabled_account(self) -> bool:
        return self.kind is StatusKind.DISABLED_ACCOUNT

    def to_dict(self) -> dict[str, Any]:
        if self.healthy:
            return {"healthy": True}
        return {"healthy": False, "kind": self.kind.value if self.kind else None, "message": self.message}

    @classmethod
    def from_dict(cls, data: Mapping[str, Any] | None) -> ConnectionStatus | None:
        """Rebuild a stored status; returns None when nothing usable was stored."""

        if not isinstance(data, Mapping) or "healthy" not in data:
            return None
        if data["healthy"]:
            return cls.ok()
        return cls.error(str(data.get("message") or ""))


@dataclass(frozen=True, slots=True)
class Notice:
    """User-facing notice; recomputed on every request and never persisted."""

    message: str
    level: NoticeLevel
    dismissible: bool = True
    duration: timedelta | None = None
    link: str | None = None
    link_text: str | None = None


@dataclass(frozen=True, slots=True)
class RequestContext:
    """Per-request view information supplied by the host."""

    screen_id: str | None = None


@dataclass(frozen=True, slots=True)
class ValidationOutcome:
    """Result of validating a connection string."""

    type: OutcomeType
    url: str
    message: str | None = None
    disabled: bool = False

    @property
    def succeeded(self) -> bool:
        return self.type is OutcomeType.CONNECTION_SUCCESS


__all__ = [
    "ConnectionStatus",
    "DISABLED_ACCOUNT_MESSAGE",
    "Notice",
    "NoticeLevel",
    "OutcomeType",
    "RequestContext",
    "StatusKind",
    "ValidationOutcome",
    "classify_message",
]

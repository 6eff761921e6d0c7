"""Cached connection health, refreshed on demand and by the scheduled status job."""

from __future__ import annotations

import logging
import re
from datetime import datetime, timedelta, timezone

from .api import ApiError
from .credentials import MalformedUriError, fingerprint
from .models import ConnectionStatus, Notice, NoticeLevel
from .scheduler import Recurrence, Scheduler
from .session import ConnectionSession
from .store import META_KEYS, SettingsStore

LOG = logging.getLogger(__name__)

STATUS_JOB = "cloudinary_status"
STATUS_RECURRENCE = Recurrence(name="every_minute", interval=timedelta(minutes=1), display="Every Minute")

UPGRADE_URL = "https://cloudinary.com/console/upgrade_options"
SUPPORT_URL = "https://support.cloudinary.com/hc/en-us/requests/new"

_STATUS_NOTICE_KEY = "__status"
_WORD_START = re.compile(r"(?:^|(?<=[ \t\r\n\f\v]))(\S)")


def capitalize_words(message: str) -> str:
    """Upper-case the first character of every whitespace-separated word."""

    return _WORD_START.sub(lambda match: match.group(1).upper(), message)


def humanize(message: str) -> str:
    """Turn an API error code into display text: underscores become spaces, words are capitalized."""

    return capitalize_words(message.replace("_", " "))


class StatusMonitor:
    """Owns the persisted health status of the stored connection."""

    def __init__(
        self,
        session: ConnectionSession,
        store: SettingsStore,
        *,
        recurrence: Recurrence = STATUS_RECURRENCE,
    ) -> None:
        self._session = session
        self._store = store
        self._recurrence = recurrence
        self._notices: dict[str, Notice] = {}

    @property
    def recurrence(self) -> Recurrence:
        return self._recurrence

    def check_status(self) -> ConnectionStatus:
        """Ping the API, persist the result verbatim and return it."""

        try:
            self._session.api.ping()
        except (ApiError, MalformedUriError) as exc:
            status = ConnectionStatus.error(str(exc))
            LOG.warning(
                "Status check failed",
                extra={"cloud_name": self._session.cloud_name, "kind": status.kind.value if status.kind else None},
            )
        else:
            status = ConnectionStatus.ok()
        self._session.disabled = status.is_disabled_account
        self._store.set(META_KEYS["status"], status.to_dict())
        return status

    def cached_status(self) -> ConnectionStatus | None:
        return ConnectionStatus.from_dict(self._store.get(META_KEYS["status"]))

    def register(self, scheduler: Scheduler) -> None:
        """Register the recurrence and bind ``check_status`` as the job handler."""

        scheduler.add_recurrence(self._recurrence)
        scheduler.register_job(STATUS_JOB, self.check_status)

    def ensure_scheduled(self, scheduler: Scheduler, now: datetime | None = None) -> bool:
        """Schedule the status job unless it already is; returns True if newly scheduled."""

        if scheduler.is_scheduled(STATUS_JOB):
            return False
        now = now or datetime.now(tz=timezone.utc)
        scheduler.schedule(STATUS_JOB, self._recurrence.name, now + self._recurrence.interval)
        LOG.info("Scheduled status job", extra={"job": STATUS_JOB, "recurrence": self._recurrence.name})
        return True

    def is_connected(self) -> bool:
        """Read-only health check against the stored fingerprint, URL and status."""

        signature = self._store.get(META_KEYS["signature"])
        if signature is None:
            return False
        connect_data = self._store.get(META_KEYS["connect"]) or {}
        current_url = connect_data.get("cloudinary_url") if isinstance(connect_data, dict) else None
        if not current_url:
            return False
        if fingerprint(current_url) != signature:
            return False
        status = self.cached_status()
        if status is not None and not status.healthy:
            if status.is_disabled_account:
                self._session.disabled = True
            self._stage_status_notice(status)
            return False
        return True

    def staged_notices(self) -> list[Notice]:
        return list(self._notices.values())

    def _stage_status_notice(self, status: ConnectionStatus) -> None:
        if _STATUS_NOTICE_KEY in self._notices:
            return
        if status.is_disabled_account:
            notice = Notice(
                message=(
                    f"Cloudinary Account Disabled. Upgrade your plan ({UPGRADE_URL}) "
                    f"or submit a support request ({SUPPORT_URL}) for assistance."
                ),
                level=NoticeLevel.ERROR,
                dismissible=True,
                link=UPGRADE_URL,
                link_text="Upgrade your plan",
            )
        else:
            notice = Notice(
                message=f"Cloudinary Error: {capitalize_words(status.message or '')}",
                level=NoticeLevel.ERROR,
                dismissible=True,
            )
        self._notices[_STATUS_NOTICE_KEY] = notice


__all__ = [
    "STATUS_JOB",
    "STATUS_RECURRENCE",
    "StatusMonitor",
    "SUPPORT_URL",
    "UPGRADE_URL",
    "capitalize_words",
    "humanize",
]

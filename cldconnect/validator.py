"""Connection string validation: format, structure, custom domain and live ping."""

from __future__ import annotations

import logging
import re

from .credentials import (
    EXPECTED_FORMAT,
    MalformedUriError,
    extract_custom_domain,
    split_connection_string,
    strip_prefix,
    validate_domain,
)
from .models import OutcomeType, ValidationOutcome
from .session import ConnectionSession
from .status import StatusMonitor, humanize
from .store import META_KEYS, SettingsStore
from .usage import UsageCache

LOG = logging.getLogger(__name__)

CLOUDINARY_VARIABLE_REGEX = re.compile(r"^(?:CLOUDINARY_URL=)?cloudinary://[0-9]+:[A-Za-z_\-0-9]+@[A-Za-z]+")

FORMAT_MISMATCH_MESSAGE = f"The environment variable URL must be in this format: {EXPECTED_FORMAT}"
INCORRECT_FORMAT_MESSAGE = f"Incorrect Format. Expecting: {EXPECTED_FORMAT}"
INVALID_CNAME_MESSAGE = "CNAME is not a valid domain name."


class ConnectionValidator:
    """Runs the validation pass for a submitted connection string.

    The validator never writes the connection record or fingerprint; persisting a
    successful outcome is left to the caller so failed attempts cannot clobber a
    known-good configuration.
    """

    def __init__(
        self,
        session: ConnectionSession,
        store: SettingsStore,
        status_monitor: StatusMonitor,
        usage_cache: UsageCache,
    ) -> None:
        self._session = session
        self._store = store
        self._status = status_monitor
        self._usage = usage_cache

    def stored_url(self) -> str | None:
        data = self._store.get(META_KEYS["connect"]) or {}
        if not isinstance(data, dict):
            return None
        return data.get("cloudinary_url") or None

    def validate(self, url: str) -> ValidationOutcome:
        """Validate a submitted connection string, skipping work if it is unchanged."""

        url = strip_prefix(url)
        if url == self.stored_url():
            LOG.debug("Connection string unchanged; skipping validation")
            return ValidationOutcome(type=OutcomeType.CONNECTION_SUCCESS, url=url)
        if not CLOUDINARY_VARIABLE_REGEX.match(url):
            return ValidationOutcome(type=OutcomeType.INVALID_URL, url=url, message=FORMAT_MISMATCH_MESSAGE)
        return self.test_connection(url)

    def test_connection(self, url: str) -> ValidationOutcome:
        """Structural, domain and live checks without the format or unchanged shortcuts."""

        url = strip_prefix(url)
        try:
            parsed = split_connection_string(url)
        except MalformedUriError:
            return ValidationOutcome(type=OutcomeType.INVALID_URL, url=url, message=INCORRECT_FORMAT_MESSAGE)
        if not parsed.is_complete:
            return ValidationOutcome(type=OutcomeType.INVALID_URL, url=url, message=INCORRECT_FORMAT_MESSAGE)

        cname = extract_custom_domain(parsed)
        if cname and not validate_domain(cname):
            return ValidationOutcome(type=OutcomeType.INVALID_CNAME, url=url, message=INVALID_CNAME_MESSAGE)

        self._session.apply_url(url)
        status = self._status.check_status()

        if status.healthy:
            self._usage.get(force_refresh=True)
            LOG.info("Connection validated", extra={"cloud_name": parsed.host})
            return ValidationOutcome(type=OutcomeType.CONNECTION_SUCCESS, url=url)

        message = humanize(status.message or "")
        if status.is_disabled_account:
            # A disabled account must stay storable so the URL can still be changed or removed.
            LOG.warning("Connected to a disabled account", extra={"cloud_name": parsed.host})
            return ValidationOutcome(
                type=OutcomeType.CONNECTION_SUCCESS,
                url=url,
                message=message,
                disabled=True,
            )
        return ValidationOutcome(type=OutcomeType.CONNECTION_ERROR, url=url, message=message)


__all__ = [
    "CLOUDINARY_VARIABLE_REGEX",
    "ConnectionValidator",
    "FORMAT_MISMATCH_MESSAGE",
    "INCORRECT_FORMAT_MESSAGE",
    "INVALID_CNAME_MESSAGE",
]

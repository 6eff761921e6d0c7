"""In-memory connection session: merged credentials plus the active API client."""

from __future__ import annotations

import logging
from typing import Mapping

from .api import ApiFactory, RemoteAPI
from .credentials import Credentials, MalformedUriError, extract_custom_domain, split_connection_string

LOG = logging.getLogger(__name__)


class ConnectionSession:
    """Holds the credentials applied in this process and the client built from them."""

    def __init__(self, api_factory: ApiFactory) -> None:
        self._api_factory = api_factory
        self._credentials: dict[str, str] = {}
        self._api: RemoteAPI | None = None
        self.disabled = False

    @property
    def credentials(self) -> Credentials | None:
        """Current credentials, or None until a complete set has been applied."""

        try:
            return Credentials.from_mapping(self._credentials)
        except MalformedUriError:
            return None

    @property
    def cloud_name(self) -> str | None:
        return self._credentials.get("cloud_name") or None

    @property
    def api(self) -> RemoteAPI:
        """Client for the current credentials; raises MalformedUriError if none are applied."""

        if self._api is None:
            credentials = self.credentials
            if credentials is None:
                raise MalformedUriError("No credentials have been applied to the session.")
            self._api = self._api_factory(credentials)
        return self._api

    def set_credentials(self, data: Mapping[str, str]) -> dict[str, str]:
        """Merge ``data`` over the current credentials and drop the cached client."""

        self._credentials.update(data)
        self._api = None
        return dict(self._credentials)

    def reset(self) -> None:
        """Forget every applied credential."""

        self._credentials = {}
        self._api = None
        self.disabled = False

    def apply_url(self, url: str) -> dict[str, str]:
        """Replace the current credentials with those encoded in a connection string."""

        parsed = split_connection_string(url)
        creds: dict[str, str] = {}
        if parsed.host:
            creds["cloud_name"] = parsed.host
        if parsed.user:
            creds["api_key"] = parsed.user
        if parsed.password:
            creds["api_secret"] = parsed.password
        creds.update(parsed.query)
        cname = extract_custom_domain(parsed)
        if cname:
            creds["cname"] = cname
        LOG.debug("Applied connection credentials", extra={"cloud_name": parsed.host})
        self._credentials = creds
        self._api = None
        return dict(creds)


__all__ = ["ConnectionSession"]

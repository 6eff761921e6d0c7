"""Remote API clients used by the status monitor and usage cache."""

from __future__ import annotations

import logging
from typing import Any, Callable, Mapping, Protocol, runtime_checkable

import httpx

from .credentials import Credentials
from .models import StatusKind, classify_message

LOG = logging.getLogger(__name__)

DEFAULT_API_BASE = "https://api.cloudinary.com"
API_VERSION = "v1_1"


class ApiError(RuntimeError):
    """Raised when the remote API rejects a call or cannot be reached."""

    def __init__(self, message: str, *, status_code: int | None = None) -> None:
        super().__init__(message)
        self.message = message
        self.status_code = status_code

    @property
    def kind(self) -> StatusKind:
        return classify_message(self.message)


@runtime_checkable
class RemoteAPI(Protocol):
    """Protocol implemented by remote API clients."""

    def ping(self) -> Mapping[str, Any]:
        """Check the credentials against the API; raises ApiError on failure."""

    def usage(self) -> Mapping[str, Any]:
        """Return the raw account usage report; raises ApiError on failure."""


ApiFactory = Callable[[Credentials], RemoteAPI]


class HttpxRemoteAPI:
    """Admin API client backed by httpx with HTTP basic auth."""

    def __init__(
        self,
        credentials: Credentials,
        *,
        base_url: str = DEFAULT_API_BASE,
        timeout: float = 10.0,
        user_agent: str | None = None,
        transport: httpx.BaseTransport | None = None,
    ) -> None:
        self._credentials = credentials
        self._base_url = base_url.rstrip("/")
        self._timeout = timeout
        self._headers = {"User-Agent": user_agent} if user_agent else {}
        self._transport = transport

    def ping(self) -> Mapping[str, Any]:
        return self._get("ping")

    def usage(self) -> Mapping[str, Any]:
        return self._get("usage")

    def _endpoint(self, action: str) -> str:
        return f"{self._base_url}/{API_VERSION}/{self._credentials.cloud_name}/{action}"

    def _get(self, action: str) -> Mapping[str, Any]:
        auth = (self._credentials.api_key, self._credentials.api_secret)
        try:
            with httpx.Client(timeout=self._timeout, transport=self._transport, headers=self._headers) as client:
                response = client.get(self._endpoint(action), auth=auth)
        except httpx.TimeoutException as exc:
            raise ApiError("request timed out") from exc
        except httpx.HTTPError as exc:
            raise ApiError(str(exc) or exc.__class__.__name__) from exc
        payload = self._decode(response)
        if response.status_code != 200:
            raise ApiError(self._error_message(response, payload), status_code=response.status_code)
        LOG.debug("API call succeeded", extra={"action": action, "cloud_name": self._credentials.cloud_name})
        return payload

    @staticmethod
    def _decode(response: httpx.Response) -> dict[str, Any]:
        try:
            payload = response.json()
        except ValueError:
            return {}
        return payload if isinstance(payload, dict) else {}

    @staticmethod
    def _error_message(response: httpx.Response, payload: Mapping[str, Any]) -> str:
        error = payload.get("error")
        if isinstance(error, Mapping) and error.get("message"):
            return str(error["message"])
        if isinstance(error, str) and error:
            return error
        return f"HTTP {response.status_code}"


class DemoRemoteAPI:
    """Scripted stub client for demos and tests."""

    def __init__(
        self,
        *,
        usage_payload: Mapping[str, Any] | None = None,
        ping_error: str | None = None,
        usage_error: str | None = None,
    ) -> None:
        self.usage_payload: Mapping[str, Any] | None = usage_payload
        self.ping_error = ping_error
        self.usage_error = usage_error
        self.ping_calls = 0
        self.usage_calls = 0

    def ping(self) -> Mapping[str, Any]:
        self.ping_calls += 1
        if self.ping_error:
            raise ApiError(self.ping_error)
        return {"status": "ok"}

    def usage(self) -> Mapping[str, Any]:
        self.usage_calls += 1
        if self.usage_error:
            raise ApiError(self.usage_error)
        return dict(self.usage_payload or {})


__all__ = [
    "ApiError",
    "ApiFactory",
    "DEFAULT_API_BASE",
    "DemoRemoteAPI",
    "HttpxRemoteAPI",
    "RemoteAPI",
]

"""Connection lifecycle and usage monitoring for Cloudinary accounts."""

from __future__ import annotations

__version__ = "0.1.0"

from .api import ApiError, DemoRemoteAPI, HttpxRemoteAPI, RemoteAPI
from .config import ConnectorConfig, load_config, save_config
from .connector import Connector, build_connector
from .credentials import (
    Credentials,
    MalformedUriError,
    ParseError,
    extract_custom_domain,
    fingerprint,
    parse_connection_string,
    validate_domain,
)
from .models import (
    ConnectionStatus,
    Notice,
    NoticeLevel,
    OutcomeType,
    RequestContext,
    StatusKind,
    ValidationOutcome,
)
from .notices import NoticeGenerator
from .scheduler import InProcessScheduler, Recurrence, Scheduler
from .session import ConnectionSession
from .status import STATUS_JOB, StatusMonitor
from .store import JsonFileSettingsStore, MemorySettingsStore, SettingsStore, StoreError
from .usage import UsageCache, UsageFetchError, UsageRecord, UsageSnapshot
from .validator import ConnectionValidator

__all__ = [
    "ApiError",
    "ConnectionSession",
    "ConnectionStatus",
    "ConnectionValidator",
    "Connector",
    "ConnectorConfig",
    "Credentials",
    "DemoRemoteAPI",
    "HttpxRemoteAPI",
    "InProcessScheduler",
    "JsonFileSettingsStore",
    "MalformedUriError",
    "MemorySettingsStore",
    "Notice",
    "NoticeGenerator",
    "NoticeLevel",
    "OutcomeType",
    "ParseError",
    "Recurrence",
    "RemoteAPI",
    "RequestContext",
    "STATUS_JOB",
    "Scheduler",
    "SettingsStore",
    "StatusKind",
    "StatusMonitor",
    "StoreError",
    "UsageCache",
    "UsageFetchError",
    "UsageRecord",
    "UsageSnapshot",
    "ValidationOutcome",
    "__version__",
    "build_connector",
    "extract_custom_domain",
    "fingerprint",
    "load_config",
    "parse_connection_string",
    "save_config",
    "validate_domain",
]

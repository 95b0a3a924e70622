"""Core layer: logging, configuration, preference storage, and metrics.

Sits in the middle of the diamond DAG -- depends only on
``nostrchat.models`` and ``nostrchat.exceptions`` and is depended upon by
``nostrchat.services``.

Attributes:
    Logger: Structured logger supporting key=value and JSON output modes.
        See [Logger][nostrchat.core.logger.Logger].
    ChatConfig: Pydantic client configuration with
        [from_yaml()][nostrchat.core.config.ChatConfig.from_yaml].
    KeyValueStore: String store protocol, implemented by
        [MemoryStore][nostrchat.core.store.MemoryStore] and
        [JsonFileStore][nostrchat.core.store.JsonFileStore].
    Preferences: Persisted user preferences with save-on-change setters.
    MetricsServer: Prometheus ``/metrics`` HTTP endpoint.
"""

from .config import (
    ChatConfig,
    LoggingConfig,
    StoreConfig,
    SubscriptionConfig,
    TimeoutsConfig,
)
from .logger import Logger, StructuredFormatter, format_kv_pairs, short
from .metrics import (
    APP_INFO,
    BUFFER_SIZE,
    EVENTS_TOTAL,
    SESSION_STATE,
    EventOutcome,
    MetricsConfig,
    MetricsServer,
    record_event,
)
from .preferences import Preferences
from .store import JsonFileStore, KeyValueStore, MemoryStore
from .yaml import load_yaml


__all__ = [
    "APP_INFO",
    "BUFFER_SIZE",
    "EVENTS_TOTAL",
    "SESSION_STATE",
    "ChatConfig",
    "EventOutcome",
    "JsonFileStore",
    "KeyValueStore",
    "Logger",
    "LoggingConfig",
    "MemoryStore",
    "MetricsConfig",
    "MetricsServer",
    "Preferences",
    "StoreConfig",
    "StructuredFormatter",
    "SubscriptionConfig",
    "TimeoutsConfig",
    "format_kv_pairs",
    "load_yaml",
    "record_event",
    "short",
]

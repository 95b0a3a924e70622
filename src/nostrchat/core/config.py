"""
Pydantic configuration for the chat client.

[ChatConfig][nostrchat.core.config.ChatConfig] is loaded once at startup
from YAML (or a dict) and passed down to the orchestrator and the relay
session. Private keys are never part of it; they come from the environment
variable named by ``keys_env``.

Examples:
    ```yaml
    relays:
      - wss://ch.purplerelay.com
      - wss://ir.purplerelay.com
    buffer_capacity: 10
    subscription:
      kinds: [1, 4]
      limit: 20
    timeouts:
      connect: 15
      publish: 15
      agent: 30
    metrics:
      enabled: false
    ```
"""

from __future__ import annotations

from pathlib import Path
from typing import Any, Self

import yaml
from pydantic import BaseModel, Field, ValidationError, field_validator

from nostrchat.exceptions import ConfigurationError
from nostrchat.models.constants import EVENT_KIND_MAX, EventKind
from nostrchat.models.relay import Relay

from .metrics import MetricsConfig
from .yaml import load_yaml


DEFAULT_RELAYS = ("wss://ch.purplerelay.com", "wss://ir.purplerelay.com")
DEFAULT_DENYLIST = ("tracking strings detected and removed",)
ENV_PRIVATE_KEY = "PRIVATE_KEY"  # pragma: allowlist secret


class SubscriptionConfig(BaseModel):
    """Filter sent to the relay when the subscription is opened."""

    kinds: list[int] = Field(
        default_factory=lambda: [EventKind.TEXT_NOTE, EventKind.ENCRYPTED_DIRECT_MESSAGE],
        min_length=1,
        description="Event kinds to subscribe to",
    )
    limit: int = Field(default=20, ge=1, le=5000, description="Backlog size requested")

    @field_validator("kinds")
    @classmethod
    def _check_kinds(cls, value: list[int]) -> list[int]:
        for kind in value:
            if not 0 <= kind <= EVENT_KIND_MAX:
                raise ValueError(f"kind {kind} out of range 0..{EVENT_KIND_MAX}")
        return value


class TimeoutsConfig(BaseModel):
    """Timeouts, in seconds, for network and agent operations, and the relay status poll interval."""

    connect: float = Field(default=15.0, ge=1.0, le=300.0, description="Relay connect timeout")
    publish: float = Field(default=15.0, ge=1.0, le=300.0, description="Publish ack timeout")
    agent: float = Field(default=30.0, ge=1.0, le=300.0, description="Signing agent timeout")
    status_poll: float = Field(
        default=1.0, gt=0.0, le=60.0, description="Interval between relay connection checks"
    )


class StoreConfig(BaseModel):
    """Where preferences are persisted. ``path=None`` keeps them in memory."""

    path: str | None = Field(default=None, description="JSON preference file")


class LoggingConfig(BaseModel):
    level: str = Field(default="INFO", description="Root log level")

    @field_validator("level")
    @classmethod
    def _check_level(cls, value: str) -> str:
        value = value.upper()
        if value not in {"DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"}:
            raise ValueError(f"unknown log level {value!r}")
        return value


class ChatConfig(BaseModel):
    """Top-level client configuration.

    Attributes:
        relays: Candidate relay addresses, normalized. The first one is used
            when no relay has been chosen yet.
        buffer_capacity: Maximum number of events held by the message buffer.
        denylist: Substrings that cause inbound content to be dropped
            (matched case-insensitively).
        keys_env: Environment variable holding the local private key.

    See Also:
        [SessionOrchestrator][nostrchat.services.orchestrator.SessionOrchestrator]:
            Main consumer of this configuration.
    """

    relays: list[str] = Field(
        default_factory=lambda: list(DEFAULT_RELAYS),
        min_length=1,
        description="Relay URLs to choose from",
    )
    buffer_capacity: int = Field(default=10, ge=1, le=10_000, description="Message buffer size")
    denylist: list[str] = Field(
        default_factory=lambda: list(DEFAULT_DENYLIST),
        description="Case-insensitive content denylist",
    )
    keys_env: str = Field(default=ENV_PRIVATE_KEY, min_length=1)
    subscription: SubscriptionConfig = Field(default_factory=SubscriptionConfig)
    timeouts: TimeoutsConfig = Field(default_factory=TimeoutsConfig)
    store: StoreConfig = Field(default_factory=StoreConfig)
    logging: LoggingConfig = Field(default_factory=LoggingConfig)
    metrics: MetricsConfig = Field(default_factory=MetricsConfig)

    @field_validator("relays")
    @classmethod
    def _normalize_relays(cls, value: list[str]) -> list[str]:
        normalized: list[str] = []
        for raw in value:
            url = Relay(raw).url
            if url not in normalized:
                normalized.append(url)
        return normalized

    @field_validator("denylist")
    @classmethod
    def _drop_blank_patterns(cls, value: list[str]) -> list[str]:
        return [pattern for pattern in value if pattern.strip()]

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> Self:
        """Validate *data* into a config.

        Raises:
            ConfigurationError: If validation fails.
        """
        try:
            return cls.model_validate(data)
        except ValidationError as e:
            raise ConfigurationError(f"invalid configuration: {e}") from e

    @classmethod
    def from_yaml(cls, config_path: str | Path) -> Self:
        """Load and validate a YAML config file.

        Raises:
            ConfigurationError: If the file is missing, unparsable, or invalid.
        """
        try:
            data = load_yaml(config_path)
        except (OSError, TypeError, yaml.YAMLError) as e:
            raise ConfigurationError(f"cannot load {config_path}: {e}") from e
        return cls.from_dict(data)

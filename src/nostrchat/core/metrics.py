"""
Prometheus metrics collection and HTTP exposition.

Defines module-level metric objects shared by the relay session, the
message buffer, and the content validator. The ``MetricsServer`` provides
an async HTTP endpoint (via aiohttp) for Prometheus scraping; it is only
started by the ``listen`` command when ``metrics.enabled`` is set.

Architecture:
    APP_INFO:       Static metadata set once at startup.
    SESSION_STATE:  Current relay session state (one-hot enum).
    EVENTS_TOTAL:   Cumulative inbound/outbound event outcomes.
    BUFFER_SIZE:    Number of events currently held by the message buffer.
"""

from __future__ import annotations

from enum import StrEnum

from aiohttp import web
from prometheus_client import (
    CONTENT_TYPE_LATEST,
    Counter,
    Enum,
    Gauge,
    Info,
    generate_latest,
)
from pydantic import BaseModel, Field

from nostrchat.models.constants import SessionState


# ---------------------------------------------------------------------------
# Configuration
# ---------------------------------------------------------------------------


class MetricsConfig(BaseModel):
    """Configuration for the Prometheus metrics endpoint.

    The endpoint is only started when ``enabled`` is True.
    """

    enabled: bool = Field(default=False, description="Enable the metrics endpoint")
    port: int = Field(default=8000, ge=1024, le=65535, description="Metrics HTTP port")
    host: str = Field(default="127.0.0.1", description="Metrics HTTP bind address")
    path: str = Field(default="/metrics", description="Metrics endpoint path")


# ---------------------------------------------------------------------------
# Event pipeline metrics
# ---------------------------------------------------------------------------


class EventOutcome(StrEnum):
    """Label values of [EVENTS_TOTAL][nostrchat.core.metrics.EVENTS_TOTAL]."""

    ACCEPTED = "accepted"
    DUPLICATE = "duplicate"
    FILTERED = "filtered"
    INVALID_SIGNATURE = "invalid_signature"
    MALFORMED = "malformed"
    PUBLISHED = "published"
    REJECTED = "rejected"


APP_INFO = Info(
    "nostrchat",
    "Client information and metadata",
)

SESSION_STATE = Enum(
    "nostrchat_session_state",
    "Current relay session state",
    states=[state.value for state in SessionState],
)

EVENTS_TOTAL = Counter(
    "nostrchat_events_total",
    "Events processed by the client, by outcome",
    ["outcome"],
)

BUFFER_SIZE = Gauge(
    "nostrchat_buffer_size",
    "Events currently held in the message buffer",
)


def record_event(outcome: EventOutcome) -> None:
    """Increment the event counter for *outcome*."""
    EVENTS_TOTAL.labels(outcome=outcome.value).inc()


# ---------------------------------------------------------------------------
# HTTP Server
# ---------------------------------------------------------------------------


class MetricsServer:
    """Async HTTP server exposing a Prometheus-compatible /metrics endpoint.

    Example:
        server = MetricsServer(MetricsConfig(enabled=True, port=8001))
        await server.start()
        # ... client runs ...
        await server.stop()
    """

    def __init__(self, config: MetricsConfig) -> None:
        self._config = config
        self._runner: web.AppRunner | None = None

    @property
    def is_running(self) -> bool:
        return self._runner is not None

    async def start(self) -> None:
        """Start listening for Prometheus scrape requests.

        No-op if metrics are disabled in the configuration.

        Raises:
            OSError: If the port is already in use or binding fails.
        """
        if not self._config.enabled or self._runner is not None:
            return

        app = web.Application()
        app.router.add_get(self._config.path, self._handle_metrics)

        runner = web.AppRunner(app, access_log=None)
        await runner.setup()
        site = web.TCPSite(runner, self._config.host, self._config.port)
        try:
            await site.start()
        except OSError:
            await runner.cleanup()
            raise
        self._runner = runner

    async def stop(self) -> None:
        """Stop the HTTP server. Idempotent."""
        if self._runner is not None:
            await self._runner.cleanup()
            self._runner = None

    @staticmethod
    async def _handle_metrics(_request: web.Request) -> web.Response:
        output = generate_latest()
        return web.Response(
            body=output,
            headers={"Content-Type": CONTENT_TYPE_LATEST},
        )

"""Nostr protocol client operations on top of ``nostr_sdk``.

Every ``nostr_sdk.Client`` call the relay session makes goes through this
module, so the session itself only deals with the package's own models and
exceptions. All functions take the client as their first argument, which
lets tests substitute a recording fake.

Attributes:
    create_client: Client factory (read-only; events are signed elsewhere).
    connect_relay: Add one relay (no automatic reconnect) and connect, bounded
        by a timeout.
    watch_connection: Poll the relay status until the connection is gone.
    open_subscription: Send a REQ for the given kinds under a fixed id.
    close_subscription: Send a CLOSE for a subscription id.
    send_event: Publish a signed event and report the relay's OK.
    shutdown_client: Disconnect and release a client, never raising.

Examples:
    ```python
    client = await connect_relay(Relay("wss://ch.purplerelay.com"), timeout=15.0)
    await open_subscription(client, "chat-1", kinds=[1, 4], limit=20)
    accepted, message = await send_event(client, signed_event)
    await shutdown_client(client)
    ```
"""

from __future__ import annotations

import asyncio
import contextlib
import logging
from collections.abc import Iterable
from datetime import timedelta
from typing import TYPE_CHECKING

from nostr_sdk import Client, ClientBuilder, Filter, Kind, RelayOptions, RelayUrl
from nostr_sdk import Event as NostrEvent

from nostrchat.exceptions import ConnectionFailed


if TYPE_CHECKING:
    from nostrchat.models.event import Event
    from nostrchat.models.relay import Relay


logger = logging.getLogger(__name__)

DEFAULT_TIMEOUT = 15.0
DEFAULT_STATUS_POLL = 1.0


def create_client() -> Client:
    """Create a ``nostr_sdk`` client without a signer."""
    return ClientBuilder().build()


async def connect_relay(relay: Relay, timeout: float = DEFAULT_TIMEOUT) -> Client:  # noqa: ASYNC109
    """Connect to a single relay.

    Args:
        relay: [Relay][nostrchat.models.relay.Relay] to connect to.
        timeout: Seconds allowed for the whole handshake.

    The relay is added with reconnection disabled: once the socket closes it
    stays closed, and [watch_connection()][nostrchat.utils.protocol.watch_connection]
    reports it.

    Returns:
        A connected client with exactly one relay.

    Raises:
        ConnectionFailed: If the handshake fails or does not finish in time.
    """
    logger.debug("relay_connecting relay=%s timeout_s=%s", relay.url, timeout)
    client = create_client()
    try:
        relay_url = RelayUrl.parse(relay.url)
        async with asyncio.timeout(timeout):
            await client.add_relay_with_opts(relay_url, RelayOptions().reconnect(False))
            output = await client.try_connect(timedelta(seconds=timeout))
    except TimeoutError as e:
        await shutdown_client(client)
        raise ConnectionFailed(f"timed out connecting to {relay.url}") from e
    except Exception as e:  # nostr_sdk raises its own FFI error types
        await shutdown_client(client)
        raise ConnectionFailed(f"cannot connect to {relay.url}: {e}") from e

    if relay_url in output.success:
        return client

    await shutdown_client(client)
    error_message = output.failed.get(relay_url, "Unknown error")
    raise ConnectionFailed(f"cannot connect to {relay.url}: {error_message}")


async def watch_connection(
    client: Client, relay: Relay, interval: float = DEFAULT_STATUS_POLL
) -> str:
    """Wait until *relay* is no longer connected on *client*.

    The notification stream of ``nostr_sdk`` only ends on shutdown, so a
    closed socket is noticed by polling the relay status every *interval*
    seconds.

    Returns:
        A short description of why the connection ended.
    """
    relay_url = RelayUrl.parse(relay.url)
    while True:
        await asyncio.sleep(interval)
        try:
            handle = await client.relay(relay_url)
            if handle.is_connected():
                continue
            status = handle.status()
        except Exception as e:  # relay removed or client gone
            return f"connection to {relay.url} lost: {e}"
        logger.debug("relay_status relay=%s status=%s", relay.url, status)
        return f"connection to {relay.url} lost ({status})"


def build_filter(kinds: Iterable[int], limit: int) -> Filter:
    """Build the subscription filter ``{kinds: [...], limit: N}``."""
    return Filter().kinds([Kind(k) for k in kinds]).limit(limit)


async def open_subscription(client: Client, subscription_id: str, kinds: Iterable[int], limit: int) -> None:
    """Send a REQ under *subscription_id*."""
    await client.subscribe_with_id(subscription_id, build_filter(kinds, limit), None)


async def close_subscription(client: Client, subscription_id: str) -> None:
    """Send a CLOSE for *subscription_id*."""
    await client.unsubscribe(subscription_id)


async def send_event(client: Client, event: Event) -> tuple[bool, str]:
    """Publish *event* and wait for the relay's OK message.

    Returns:
        ``(accepted, message)``. ``message`` is the relay's reason on reject.
    """
    output = await client.send_event(NostrEvent.from_json(event.to_json()))
    if output.success:
        return True, ""
    reasons = [str(reason) for reason in output.failed.values()]
    return False, reasons[0] if reasons else "relay did not acknowledge the event"


async def shutdown_client(client: Client) -> None:
    """Shut *client* down, ignoring any error from the transport."""
    with contextlib.suppress(Exception):
        await client.shutdown()

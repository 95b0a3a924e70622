"""
Relay session: one relay connection and at most one live subscription.

State machine::

    DISCONNECTED -> CONNECTING -> CONNECTED -> CLOSING -> DISCONNECTED
                         |                                     ^
                         +------------- connect failed --------+

Whether a subscription is live is tracked separately from the connection
state, so ``CONNECTED`` covers both the subscribed and unsubscribed cases.

Concurrency model:

* Every state transition (``connect``, ``subscribe``, ``unsubscribe``,
  ``disconnect``, drop handling) runs under one ``asyncio.Lock``, so no two
  transitions interleave.
* Inbound relay messages are pushed by the ``nostr_sdk`` notification
  handler into a single-consumer ``asyncio.Queue`` without awaiting
  anything. A pump task drains the queue and never takes the lock, so a
  transition in flight never blocks the stream.
* Each connection gets a generation number. ``disconnect()`` bumps it
  before waiting for the lock, teardown bumps it again, and ``unsubscribe()``/``disconnect()`` mark
  the live subscription closed immediately, so anything still queued is
  discarded instead of delivered.
* ``disconnect()`` cancels an in-flight connect; the pending ``connect()``
  call then fails with ``ConnectionFailed``.

A connection that drops is reported once through ``on_disconnect`` and
leaves the session ``DISCONNECTED``. Nothing reconnects automatically: the
relay is added with reconnection disabled, and its status is polled every
``timeouts.status_poll`` seconds because the notification stream only ends
on shutdown.

See Also:
    [nostrchat.utils.protocol][]: The ``nostr_sdk`` calls made by this module.
    [SessionOrchestrator][nostrchat.services.orchestrator.SessionOrchestrator]:
        Decides when to subscribe and owns the message buffer.
"""

from __future__ import annotations

import asyncio
import inspect
import json
import uuid
from collections.abc import Awaitable, Callable, Iterable
from dataclasses import dataclass, field
from types import TracebackType
from typing import Any, Self

from nostr_sdk import HandleNotification

from nostrchat.core.config import SubscriptionConfig, TimeoutsConfig
from nostrchat.core.logger import Logger, short
from nostrchat.core.metrics import SESSION_STATE, EventOutcome, record_event
from nostrchat.exceptions import ConnectionFailed, NotConnected
from nostrchat.models.constants import SessionState
from nostrchat.models.event import Event
from nostrchat.models.relay import Relay
from nostrchat.nips.nip01 import verify_event
from nostrchat.utils import protocol


Connector = Callable[[Relay, float], Awaitable[Any]]
EventCallback = Callable[[Event], Any]
SubscriptionCallback = Callable[["SubscriptionHandle"], Any]
DisconnectCallback = Callable[[str], Any]


# ---------------------------------------------------------------------------
# Value types
# ---------------------------------------------------------------------------


@dataclass(frozen=True, slots=True)
class PublishAck:
    """The relay's answer to a published event.

    Attributes:
        event_id: Id of the published event.
        accepted: Whether the relay stored the event.
        message: The relay's reason on reject, or a local reason such as a
            timeout. Empty on accept.
    """

    event_id: str
    accepted: bool
    message: str = ""


@dataclass(slots=True)
class SubscriptionHandle:
    """A subscription opened by [RelaySession.subscribe()][nostrchat.services.relay_session.RelaySession.subscribe].

    ``backlog_complete`` is set when the relay reports end of stored
    events; ``closed`` is set when the subscription stops being live.
    """

    id: str
    kinds: tuple[int, ...]
    limit: int
    backlog_complete: asyncio.Event = field(default_factory=asyncio.Event, repr=False, compare=False)
    closed: asyncio.Event = field(default_factory=asyncio.Event, repr=False, compare=False)

    @property
    def is_live(self) -> bool:
        return not self.closed.is_set()


class _RelayMessageHandler(HandleNotification):
    """Forwards raw relay messages into the session inbox.

    Runs inside ``client.handle_notifications()``; must never block.
    """

    def __init__(self, inbox: asyncio.Queue[tuple[int, str]], generation: int) -> None:
        self._inbox = inbox
        self._generation = generation

    async def handle_msg(self, relay_url: Any, msg: Any) -> None:
        self._inbox.put_nowait((self._generation, msg.as_json()))

    async def handle(self, relay_url: Any, subscription_id: Any, event: Any) -> None:
        # EVENT messages also arrive through handle_msg
        return


def _ended_because(*tasks: asyncio.Future[Any]) -> str:
    for task in tasks:
        if task.cancelled():
            continue
        error = task.exception()
        if error is not None:
            return str(error) or type(error).__name__
        if task.result():
            return str(task.result())
    return "notification stream ended"


# ---------------------------------------------------------------------------
# Session
# ---------------------------------------------------------------------------


class RelaySession:
    """Owns one relay connection, its subscription, and inbound delivery.

    Args:
        subscription: Default kinds and backlog limit for
            [subscribe()][nostrchat.services.relay_session.RelaySession.subscribe].
        timeouts: Connect and publish timeouts, and the relay status poll
            interval.
        connector: ``async (relay, timeout) -> client``; defaults to
            [connect_relay()][nostrchat.utils.protocol.connect_relay].
        on_event: Called with each verified event of the live subscription.
        on_backlog_complete: Called with the handle when the relay sends EOSE.
        on_disconnect: Called with a reason when the connection drops.

    Callbacks may be plain functions or coroutine functions. They run on the
    pump task one at a time, in arrival order.

    Examples:
        ```python
        async with RelaySession(on_event=print) as session:
            await session.connect("wss://ch.purplerelay.com")
            await session.subscribe()
            ack = await session.publish(signed_event)
        ```
    """

    def __init__(  # noqa: PLR0913
        self,
        *,
        subscription: SubscriptionConfig | None = None,
        timeouts: TimeoutsConfig | None = None,
        connector: Connector | None = None,
        on_event: EventCallback | None = None,
        on_backlog_complete: SubscriptionCallback | None = None,
        on_disconnect: DisconnectCallback | None = None,
    ) -> None:
        self._subscription_config = subscription or SubscriptionConfig()
        self._timeouts = timeouts or TimeoutsConfig()
        self._connector: Connector = connector or protocol.connect_relay
        self._on_event = on_event
        self._on_backlog_complete = on_backlog_complete
        self._on_disconnect = on_disconnect
        self._logger = Logger("relay_session")

        self._lock = asyncio.Lock()
        self._state = SessionState.DISCONNECTED
        self._relay: Relay | None = None
        self._client: Any = None
        self._subscription: SubscriptionHandle | None = None
        self._generation = 0
        self._connect_task: asyncio.Future[Any] | None = None
        self._listener_task: asyncio.Task[None] | None = None
        self._pump_task: asyncio.Task[None] | None = None
        self._background: set[asyncio.Task[None]] = set()
        SESSION_STATE.state(self._state.value)

    async def __aenter__(self) -> Self:
        return self

    async def __aexit__(
        self,
        exc_type: type[BaseException] | None,
        exc_val: BaseException | None,
        exc_tb: TracebackType | None,
    ) -> None:
        await self.disconnect()

    # -- read-only state -----------------------------------------------------

    @property
    def state(self) -> SessionState:
        return self._state

    @property
    def is_connected(self) -> bool:
        return self._state is SessionState.CONNECTED

    @property
    def relay(self) -> Relay | None:
        """The relay of the current or in-progress connection."""
        return self._relay

    @property
    def subscription(self) -> SubscriptionHandle | None:
        """The live subscription, or None."""
        handle = self._subscription
        return handle if handle is not None and handle.is_live else None

    # -- transitions ---------------------------------------------------------

    async def connect(self, url: str | Relay) -> None:
        """Connect to *url*, closing any previous connection first.

        Connecting to the relay that is already connected is a no-op.

        Raises:
            ConnectionFailed: If the URL is invalid, the handshake fails or
                times out, or ``disconnect()`` cancels the attempt. The
                session is left ``DISCONNECTED``.
        """
        relay = self._parse_relay(url)
        async with self._lock:
            if self._state is SessionState.CONNECTED and self._relay and self._relay.url == relay.url:
                return
            await self._teardown()

            generation = self._generation
            self._relay = relay
            self._set_state(SessionState.CONNECTING)
            logger = self._logger.bind(relay=relay.url)

            self._connect_task = asyncio.ensure_future(self._connector(relay, self._timeouts.connect))
            try:
                client = await self._connect_task
            except asyncio.CancelledError:
                self._abort_connect()
                current = asyncio.current_task()
                if current is not None and current.cancelling():
                    raise
                logger.info("relay_connect_cancelled")
                raise ConnectionFailed("connect cancelled by disconnect") from None
            except ConnectionFailed as e:
                self._abort_connect()
                logger.warning("relay_connect_failed", reason=e.reason)
                raise
            except Exception as e:  # connector implementations raise arbitrary errors
                self._abort_connect()
                logger.warning("relay_connect_failed", reason=str(e))
                raise ConnectionFailed(str(e) or type(e).__name__) from e
            finally:
                self._connect_task = None

            if generation != self._generation:
                await protocol.shutdown_client(client)
                self._abort_connect()
                logger.info("relay_connect_cancelled")
                raise ConnectionFailed("connect cancelled by disconnect")

            self._client = client
            self._start_delivery(client, relay, generation)
            self._set_state(SessionState.CONNECTED)
            logger.info("relay_connected")

    async def subscribe(
        self,
        kinds: Iterable[int] | None = None,
        limit: int | None = None,
    ) -> SubscriptionHandle:
        """Open a subscription, closing the previous one first.

        Args:
            kinds: Event kinds; defaults to the configured kinds.
            limit: Backlog size; defaults to the configured limit.

        Raises:
            NotConnected: If the session is not ``CONNECTED``.
            ConnectionFailed: If the relay connection fails while sending the
                request. The session is then ``DISCONNECTED``.
        """
        async with self._lock:
            client = self._require_client()
            await self._close_subscription(client)

            handle = SubscriptionHandle(
                id=f"nostrchat-{uuid.uuid4().hex[:16]}",
                kinds=tuple(kinds if kinds is not None else self._subscription_config.kinds),
                limit=limit if limit is not None else self._subscription_config.limit,
            )
            # Set before the REQ goes out so the first events are not dropped
            self._subscription = handle
            try:
                await protocol.open_subscription(client, handle.id, handle.kinds, handle.limit)
            except Exception as e:  # nostr_sdk raises its own FFI error types
                self._logger.warning("subscription_failed", relay=self._relay_url, error=str(e))
                self._generation += 1
                await self._teardown()
                raise ConnectionFailed(f"subscribe failed: {e}") from e

            self._logger.info(
                "subscription_opened",
                relay=self._relay_url,
                id=handle.id,
                kinds=",".join(str(k) for k in handle.kinds),
                limit=handle.limit,
            )
            return handle

    async def unsubscribe(self) -> None:
        """Close the live subscription. No-op when there is none.

        Delivery stops as soon as this is called, before the CLOSE is sent.
        """
        handle = self._subscription
        if handle is None:
            return
        handle.closed.set()
        async with self._lock:
            if self._subscription is handle:
                await self._close_subscription(self._client)

    async def publish(self, event: Event) -> PublishAck:
        """Publish a signed event and wait for the relay's acknowledgment.

        A reject, a transport error, or a missing acknowledgment is returned
        as a non-accepted [PublishAck][nostrchat.services.relay_session.PublishAck];
        none of them changes the connection state.

        Raises:
            NotConnected: If the session is not ``CONNECTED``.
        """
        client = self._client
        if self._state is not SessionState.CONNECTED or client is None:
            raise NotConnected("publish requires a connected relay session")

        try:
            async with asyncio.timeout(self._timeouts.publish):
                accepted, message = await protocol.send_event(client, event)
        except TimeoutError:
            accepted, message = False, f"no acknowledgment within {self._timeouts.publish:g}s"
        except Exception as e:  # nostr_sdk raises its own FFI error types
            accepted, message = False, str(e) or type(e).__name__

        if accepted:
            record_event(EventOutcome.PUBLISHED)
            self._logger.info("event_published", relay=self._relay_url, id=short(event.id))
        else:
            record_event(EventOutcome.REJECTED)
            self._logger.warning(
                "publish_rejected", relay=self._relay_url, id=short(event.id), reason=message
            )
        return PublishAck(event_id=event.id, accepted=accepted, message=message)

    async def disconnect(self) -> None:
        """Close the subscription and the connection. Always ends ``DISCONNECTED``.

        Safe to call in any state, including while ``connect()`` is in flight.
        """
        self._generation += 1
        if self._subscription is not None:
            self._subscription.closed.set()
        if self._connect_task is not None and not self._connect_task.done():
            self._connect_task.cancel()
        async with self._lock:
            await self._teardown()

    # -- internals -----------------------------------------------------------

    @property
    def _relay_url(self) -> str:
        return self._relay.url if self._relay is not None else "-"

    @staticmethod
    def _parse_relay(url: str | Relay) -> Relay:
        if isinstance(url, Relay):
            return url
        try:
            return Relay(url)
        except (TypeError, ValueError) as e:
            raise ConnectionFailed(f"invalid relay url {url!r}: {e}") from e

    def _require_client(self) -> Any:
        if self._state is not SessionState.CONNECTED or self._client is None:
            raise NotConnected(f"session is {self._state.value}")
        return self._client

    def _set_state(self, state: SessionState) -> None:
        self._state = state
        SESSION_STATE.state(state.value)
        self._logger.debug("session_state", state=state.value, relay=self._relay_url)

    def _abort_connect(self) -> None:
        self._relay = None
        self._set_state(SessionState.DISCONNECTED)

    def _start_delivery(self, client: Any, relay: Relay, generation: int) -> None:
        inbox: asyncio.Queue[tuple[int, str]] = asyncio.Queue()
        handler = _RelayMessageHandler(inbox, generation)
        self._pump_task = asyncio.create_task(self._pump(inbox, generation))
        self._listener_task = asyncio.create_task(self._listen(client, handler, relay, generation))

    async def _close_subscription(self, client: Any) -> None:
        handle = self._subscription
        if handle is None:
            return
        self._subscription = None
        handle.closed.set()
        if client is not None:
            try:
                await protocol.close_subscription(client, handle.id)
            except Exception as e:  # nostr_sdk raises its own FFI error types
                self._logger.debug("subscription_close_failed", id=handle.id, error=str(e))
        self._logger.info("subscription_closed", relay=self._relay_url, id=handle.id)

    async def _teardown(self) -> None:
        """Release subscription, delivery tasks, and client. Caller holds the lock."""
        client = self._client
        if client is None and self._state is SessionState.DISCONNECTED:
            return

        relay_url = self._relay_url
        self._generation += 1
        self._set_state(SessionState.CLOSING)
        await self._close_subscription(client)

        current = asyncio.current_task()
        tasks = [
            task
            for task in (self._pump_task, self._listener_task)
            if task is not None and task is not current
        ]
        for task in tasks:
            task.cancel()
        await asyncio.gather(*tasks, return_exceptions=True)
        self._pump_task = None
        self._listener_task = None

        if client is not None:
            await protocol.shutdown_client(client)
        self._client = None
        self._relay = None
        self._set_state(SessionState.DISCONNECTED)
        self._logger.info("relay_closed", relay=relay_url)

    async def _listen(
        self, client: Any, handler: _RelayMessageHandler, relay: Relay, generation: int
    ) -> None:
        watcher = asyncio.ensure_future(
            protocol.watch_connection(client, relay, self._timeouts.status_poll)
        )
        stream = asyncio.ensure_future(client.handle_notifications(handler))
        try:
            await asyncio.wait((watcher, stream), return_when=asyncio.FIRST_COMPLETED)
        finally:
            for task in (watcher, stream):
                task.cancel()
            await asyncio.gather(watcher, stream, return_exceptions=True)

        reason = _ended_because(watcher, stream)
        if generation == self._generation:
            task = asyncio.create_task(self._handle_drop(generation, reason))
            self._background.add(task)
            task.add_done_callback(self._background.discard)

    async def _handle_drop(self, generation: int, reason: str) -> None:
        async with self._lock:
            if generation != self._generation or self._state is not SessionState.CONNECTED:
                return
            relay_url = self._relay_url
            self._generation += 1
            await self._teardown()
        self._logger.warning("relay_disconnected", relay=relay_url, reason=reason)
        await self._notify(self._on_disconnect, reason)

    async def _pump(self, inbox: asyncio.Queue[tuple[int, str]], generation: int) -> None:
        # A callback may tear the connection down from inside this task, in
        # which case it is not cancelled and has to stop on its own.
        while generation == self._generation:
            message_generation, raw = await inbox.get()
            if message_generation != self._generation:
                continue
            try:
                await self._dispatch(raw)
            except Exception:  # a failing consumer must not stop delivery
                self._logger.exception("dispatch_failed", relay=self._relay_url)

    async def _dispatch(self, raw: str) -> None:
        try:
            message = json.loads(raw)
        except ValueError:
            self._logger.debug("relay_message_malformed", relay=self._relay_url)
            return
        if not isinstance(message, list) or not message:
            return

        kind = message[0]
        if kind == "EVENT" and len(message) >= 3:
            await self._deliver_event(message[1], message[2])
        elif kind == "EOSE" and len(message) >= 2:
            await self._complete_backlog(message[1])
        elif kind == "CLOSED" and len(message) >= 2:
            self._closed_by_relay(message[1], message[2] if len(message) > 2 else "")
        elif kind == "NOTICE":
            self._logger.info("relay_notice", relay=self._relay_url, message=message[1:])
        else:
            self._logger.debug("relay_message_ignored", relay=self._relay_url, type=kind)

    async def _deliver_event(self, subscription_id: Any, data: Any) -> None:
        handle = self._subscription
        if handle is None or not handle.is_live or subscription_id != handle.id:
            return
        try:
            event = Event.from_dict(data)
        except (TypeError, ValueError) as e:
            record_event(EventOutcome.MALFORMED)
            self._logger.debug("event_dropped", reason="malformed", error=str(e))
            return
        if not verify_event(event):
            record_event(EventOutcome.INVALID_SIGNATURE)
            self._logger.debug("event_dropped", reason="invalid_signature", id=short(event.id))
            return
        await self._notify(self._on_event, event)

    async def _complete_backlog(self, subscription_id: Any) -> None:
        handle = self._subscription
        if handle is None or not handle.is_live or subscription_id != handle.id:
            return
        handle.backlog_complete.set()
        self._logger.info("backlog_complete", relay=self._relay_url, id=handle.id)
        await self._notify(self._on_backlog_complete, handle)

    def _closed_by_relay(self, subscription_id: Any, reason: str) -> None:
        handle = self._subscription
        if handle is None or subscription_id != handle.id:
            return
        self._subscription = None
        handle.closed.set()
        self._logger.warning(
            "subscription_closed", relay=self._relay_url, id=handle.id, reason=reason
        )

    @staticmethod
    async def _notify(callback: Callable[..., Any] | None, *args: Any) -> None:
        if callback is None:
            return
        result = callback(*args)
        if inspect.isawaitable(result):
            await result

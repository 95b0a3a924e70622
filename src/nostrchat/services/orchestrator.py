"""
Session orchestrator: keeps the subscription consistent with identity and connection.

The reactive rule is a pure function,
[desired_subscription()][nostrchat.services.orchestrator.desired_subscription]:
a subscription should be live exactly when the session is ``CONNECTED`` and
an identity with a public key exists. Every public method applies all of its
changes first and then reconciles once, diffing the desired state against
the live subscription. Reconciling an already-correct subscription does
nothing; an explicit [refresh()][nostrchat.services.orchestrator.SessionOrchestrator.refresh]
closes and reopens it.

The orchestrator also owns the message pipeline:

* inbound: verified event -> [ContentValidator][nostrchat.services.content_filter.ContentValidator]
  -> [MessageBuffer][nostrchat.services.buffer.MessageBuffer]
* outbound: compose -> (encrypt) -> sign -> verify -> publish -> local echo

and the persisted [Preferences][nostrchat.core.preferences.Preferences],
written key by key as they change.
"""

from __future__ import annotations

import asyncio
import inspect
import random
import time
from collections.abc import Callable
from typing import Any, Self

from nostrchat.core.config import ChatConfig
from nostrchat.core.logger import Logger, short
from nostrchat.core.metrics import EventOutcome, record_event
from nostrchat.core.preferences import Preferences
from nostrchat.exceptions import (
    ConnectionFailed,
    EmptyContent,
    MissingIdentity,
    MissingRecipient,
    NotConnected,
    SignatureInvalid,
)
from nostrchat.models.constants import EventKind, SessionState
from nostrchat.models.event import Event
from nostrchat.models.identity import Identity, is_valid_public_key
from nostrchat.nips.event_builders import compose_encrypted, compose_text_note
from nostrchat.nips.nip01 import verify_event
from nostrchat.nips.nip07 import SigningAgent, get_public_key_via_agent
from nostrchat.nips.signer import Signer, signer_for

from .buffer import MessageBuffer
from .content_filter import ContentValidator
from .relay_session import Connector, PublishAck, RelaySession


MessageCallback = Callable[[Event], Any]
DisconnectCallback = Callable[[str], Any]


def desired_subscription(state: SessionState, identity: Identity | None) -> str | None:
    """Public key a subscription should be live for, or None for no subscription."""
    if state is not SessionState.CONNECTED or identity is None or not identity.public_key:
        return None
    return identity.public_key


class SessionOrchestrator:
    """Reactive glue between identity, preferences, relay session, and buffer.

    Args:
        config: Client configuration.
        preferences: Persisted preferences; an in-memory set when omitted.
        agent: External signing agent, if one is available.
        connector: Passed through to [RelaySession][nostrchat.services.relay_session.RelaySession].
        on_message: Called with each event that enters the buffer from the relay.
        on_disconnect: Called with a reason when the relay connection drops.
        rng: Random source for relay selection.
        clock: Returns the current Unix time in seconds.

    Examples:
        ```python
        async with SessionOrchestrator(config, Preferences.load(store)) as chat:
            await chat.generate_identity()
            await chat.connect()
            ack = await chat.send_message("hi")
            chat.displayed_messages
        ```
    """

    def __init__(  # noqa: PLR0913
        self,
        config: ChatConfig | None = None,
        preferences: Preferences | None = None,
        *,
        agent: SigningAgent | None = None,
        connector: Connector | None = None,
        on_message: MessageCallback | None = None,
        on_disconnect: DisconnectCallback | None = None,
        rng: random.Random | None = None,
        clock: Callable[[], int] | None = None,
    ) -> None:
        self._config = config or ChatConfig()
        self._preferences = preferences or Preferences.load()
        self._agent = agent
        self._on_message = on_message
        self._on_disconnect = on_disconnect
        self._rng = rng or random.Random()
        self._clock = clock or (lambda: int(time.time()))
        self._logger = Logger("orchestrator")

        self._buffer = MessageBuffer(self._config.buffer_capacity)
        self._validator = ContentValidator(self._config.denylist)
        self._session = RelaySession(
            subscription=self._config.subscription,
            timeouts=self._config.timeouts,
            connector=connector,
            on_event=self._receive,
            on_disconnect=self._connection_dropped,
        )

        self._reconcile_lock = asyncio.Lock()
        self._force_resubscribe = False
        self._subscribed_for: str | None = None

    async def __aenter__(self) -> Self:
        return self

    async def __aexit__(self, *_exc: object) -> None:
        await self.disconnect()

    # -- read-only state -----------------------------------------------------

    @property
    def config(self) -> ChatConfig:
        return self._config

    @property
    def preferences(self) -> Preferences:
        return self._preferences

    @property
    def session(self) -> RelaySession:
        return self._session

    @property
    def buffer(self) -> MessageBuffer:
        return self._buffer

    @property
    def validator(self) -> ContentValidator:
        return self._validator

    @property
    def identity(self) -> Identity | None:
        return self._preferences.identity

    @property
    def agent(self) -> SigningAgent | None:
        return self._agent

    @property
    def signer(self) -> Signer:
        """Signer for the current identity: local key if known, else the agent.

        Raises:
            MissingIdentity: If there is no identity.
        """
        identity = self.identity
        if identity is None:
            raise MissingIdentity("no identity to sign with")
        return signer_for(identity, self._agent, self._config.timeouts.agent)

    @property
    def displayed_messages(self) -> list[Event]:
        """Mine-only view when the filter toggle is on, else every buffered event."""
        if self._preferences.messages_filtered:
            identity = self.identity
            return self._buffer.mine_only(identity.public_key if identity else None)
        return self._buffer.events()

    # -- lifecycle -----------------------------------------------------------

    async def start(self) -> None:
        """Bring the client up the way the preferences say.

        With persistence off a relay is picked at random and, unless the
        agent mode is on, a fresh identity is generated. With persistence on
        the remembered relay (or the first configured one) is used.

        Raises:
            ConnectionFailed: If the relay connection cannot be established.
        """
        if not self._preferences.use_store:
            if not self._preferences.using_agent and self.identity is None:
                self._change_identity(Identity.generate())
            await self.randomize_relay()
            return
        await self.connect()

    async def connect(self, url: str | None = None) -> None:
        """Connect to *url*, the remembered relay, or the first configured one.

        Raises:
            ConnectionFailed: If the connection cannot be established.
        """
        target = url or self._preferences.relay_url or self._config.relays[0]
        try:
            await self._session.connect(target)
            relay = self._session.relay
            self._preferences.set_relay_url(relay.url if relay is not None else target)
        finally:
            await self._reconcile()

    async def randomize_relay(self) -> str:
        """Connect to a configured relay other than the current one.

        Returns:
            The URL chosen.

        Raises:
            ConnectionFailed: If the connection cannot be established.
        """
        relays = self._config.relays
        current = self._preferences.relay_url
        candidates = [url for url in relays if url != current] or list(relays)
        choice = self._rng.choice(candidates)
        self._preferences.set_relay_url(choice)
        await self.connect(choice)
        return choice

    async def disconnect(self) -> None:
        try:
            await self._session.disconnect()
        finally:
            await self._reconcile()

    # -- identity ------------------------------------------------------------

    async def generate_identity(self) -> Identity:
        """Replace the identity with a freshly generated local keypair."""
        identity = Identity.generate()
        self._change_identity(identity)
        await self._reconcile()
        return identity

    async def set_identity(self, identity: Identity | None) -> None:
        self._change_identity(identity)
        await self._reconcile()

    async def clear_identity(self) -> None:
        await self.set_identity(None)

    async def connect_agent(self) -> Identity:
        """Resolve the identity's public key through the signing agent.

        The identity is left unchanged when the agent fails.

        Raises:
            AgentUnavailable: If no agent is available.
            AgentRejected: If the agent refuses or times out.
        """
        public_key = await get_public_key_via_agent(self._agent, self._config.timeouts.agent)
        identity = Identity.from_public_key_only(public_key)
        self._preferences.set_using_agent(True)
        self._change_identity(identity)
        await self._reconcile()
        return identity

    async def disconnect_agent(self) -> None:
        await self.clear_identity()

    async def set_using_agent(self, enabled: bool) -> None:
        """Switch between local keys and the signing agent; clears the identity."""
        self._change_identity(None)
        self._preferences.set_using_agent(enabled)
        await self._reconcile()

    def set_agent(self, agent: SigningAgent | None) -> None:
        """Attach or detach the signing agent capability."""
        self._agent = agent

    # -- toggles -------------------------------------------------------------

    def set_messages_filtered(self, enabled: bool) -> None:
        self._preferences.set_messages_filtered(enabled)

    def set_message_encrypted(self, enabled: bool) -> None:
        self._preferences.set_message_encrypted(enabled)

    async def set_use_store(self, enabled: bool) -> None:
        """Turn persistence on or off. Off also clears identity and toggles."""
        self._preferences.set_use_store(enabled)
        await self._reconcile()

    # -- messages ------------------------------------------------------------

    async def refresh(self) -> None:
        """Clear the buffer and close-then-reopen the subscription."""
        self._buffer.clear()
        await self._reconcile(force=True)

    async def send_message(
        self,
        content: str,
        *,
        recipient: str | None = None,
        encrypt: bool | None = None,
    ) -> PublishAck:
        """Compose, sign, verify, and publish a message.

        Args:
            content: Plaintext message.
            recipient: Public key for encrypted messages; defaults to the
                sender's own key.
            encrypt: Override the encryption toggle.

        Returns:
            The relay's acknowledgment. Accepted events are also added to
            the buffer right away.

        Raises:
            NotConnected: If the session is not connected.
            EmptyContent: If *content* is blank.
            MissingIdentity: If there is no identity.
            MissingRecipient: If encryption is on and no valid recipient exists.
            AgentUnavailable: If signing needs an agent and none is available.
            AgentRejected: If the agent refuses or times out.
            CryptoFailure: If local encryption or signing fails.
            SignatureInvalid: If the signed event does not verify.
        """
        if not self._session.is_connected:
            raise NotConnected("connect to a relay before sending")
        if not content.strip():
            raise EmptyContent("message is empty")
        identity = self.identity
        if identity is None:
            raise MissingIdentity("generate an identity or connect an agent before sending")

        encrypted = self._preferences.message_encrypted if encrypt is None else encrypt
        if encrypted:
            recipient = recipient or identity.public_key
            if not is_valid_public_key(recipient):
                raise MissingRecipient("encrypted messages need a valid recipient public key")

        signer = self.signer
        now = self._clock()
        if encrypted:
            ciphertext = await signer.encrypt(content, recipient)
            unsigned = compose_encrypted(identity.public_key, ciphertext, recipient, now)
        else:
            unsigned = compose_text_note(identity.public_key, content, now)

        event = await signer.sign(unsigned)
        if not verify_event(event):
            raise SignatureInvalid(f"event {short(event.id)} failed verification")

        ack = await self._session.publish(event)
        if ack.accepted:
            self._buffer.accept(event)
        return ack

    async def decrypt_message(self, event: Event) -> str:
        """Plaintext of an encrypted event, via the active signer.

        The counterparty is the author, or the ``p`` recipient when the
        current identity wrote the event. Plain events are returned as-is.

        Raises:
            MissingIdentity: If there is no identity.
            MissingRecipient: If an own encrypted event has no ``p`` tag.
            CryptoFailure: If local decryption fails.
            AgentUnavailable: If decryption needs an agent and none is available.
            AgentRejected: If the agent refuses or times out.
        """
        identity = self.identity
        if identity is None:
            raise MissingIdentity("no identity to decrypt with")
        if event.kind != EventKind.ENCRYPTED_DIRECT_MESSAGE:
            return event.content
        counterparty = event.recipient if event.pubkey == identity.public_key else event.pubkey
        if counterparty is None:
            raise MissingRecipient("encrypted event has no recipient")
        return await self.signer.decrypt(event.content, counterparty)

    # -- internals -----------------------------------------------------------

    def _change_identity(self, identity: Identity | None) -> None:
        if identity == self._preferences.identity:
            return
        self._preferences.set_identity(identity)
        self._logger.info(
            "identity_changed",
            public_key=short(identity.public_key if identity else None),
            local_key=bool(identity and identity.has_private_key),
        )

    async def _reconcile(self, *, force: bool = False) -> None:
        """Diff the desired subscription against the live one and fix it."""
        self._force_resubscribe = self._force_resubscribe or force
        async with self._reconcile_lock:
            force = self._force_resubscribe
            self._force_resubscribe = False
            desired = desired_subscription(self._session.state, self.identity)
            live = self._session.subscription

            if desired is None:
                if live is not None:
                    await self._session.unsubscribe()
                self._subscribed_for = None
                return
            if not force and live is not None and self._subscribed_for == desired:
                return
            try:
                await self._session.subscribe()
            except (ConnectionFailed, NotConnected) as e:
                self._subscribed_for = None
                self._logger.warning("resubscribe_failed", reason=str(e))
                return
            self._subscribed_for = desired

    async def _receive(self, event: Event) -> None:
        if not self._validator.is_acceptable(event.content):
            self._logger.debug("event_dropped", reason="filtered", id=short(event.id))
            return
        if not self._buffer.accept(event):
            record_event(EventOutcome.DUPLICATE)
            return
        record_event(EventOutcome.ACCEPTED)
        if self._on_message is not None:
            result = self._on_message(event)
            if inspect.isawaitable(result):
                await result

    async def _connection_dropped(self, reason: str) -> None:
        await self._reconcile()
        if self._on_disconnect is not None:
            result = self._on_disconnect(reason)
            if inspect.isawaitable(result):
                await result

"""Shared constants for the models layer.

Defines enumerations used across model, protocol, and service modules.
Placing them here keeps the lower layers free of imports from
``nostrchat.services``.

See Also:
    [nostrchat.models.event][]: Uses [EventKind][nostrchat.models.constants.EventKind]
        to validate the kinds this client composes.
    [nostrchat.services.relay_session][]: Drives the
        [SessionState][nostrchat.models.constants.SessionState] machine.
    [nostrchat.core.preferences][]: Persists values under
        [PreferenceKey][nostrchat.models.constants.PreferenceKey] names.
"""

from __future__ import annotations

from enum import IntEnum, StrEnum


class EventKind(IntEnum):
    """Nostr event kinds composed and subscribed to by this client.

    Attributes:
        TEXT_NOTE: Kind 1 -- plain short text note (NIP-01).
        ENCRYPTED_DIRECT_MESSAGE: Kind 4 -- NIP-04 encrypted direct message.
            Must carry a ``["p", <recipient>]`` tag.
    """

    TEXT_NOTE = 1
    ENCRYPTED_DIRECT_MESSAGE = 4


class SessionState(StrEnum):
    """Connection states of a [RelaySession][nostrchat.services.relay_session.RelaySession].

    Transitions: ``DISCONNECTED -> CONNECTING -> CONNECTED -> CLOSING -> DISCONNECTED``.
    A failed connect goes straight from ``CONNECTING`` back to ``DISCONNECTED``.
    Whether a subscription is live is tracked separately, so ``CONNECTED``
    covers both the subscribed and unsubscribed sub-states.
    """

    DISCONNECTED = "disconnected"
    CONNECTING = "connecting"
    CONNECTED = "connected"
    CLOSING = "closing"


class PreferenceKey(StrEnum):
    """Keys under which user preferences are written to the key-value store.

    Values are JSON-encoded strings. The names match the storage keys of the
    browser client so that an exported store can be read by either.
    """

    USE_STORE = "useLocalStorage"
    IDENTITY = "nostrUser"
    MESSAGES_FILTERED = "messagesIsFiltered"
    MESSAGE_ENCRYPTED = "messageIsEncrypted"
    USING_AGENT = "isUsingNostrConnect"
    RELAY_URL = "relayUrl"


EVENT_KIND_MAX = 65_535

# Public keys, private keys, and event ids are all 32 bytes, hex-encoded.
HEX_KEY_LENGTH = 64
SIGNATURE_HEX_LENGTH = 128

"""Frozen dataclasses with zero network I/O for identities, events, and relays.

The models layer is the foundation of the diamond DAG. It depends only on
the standard library, ``rfc3986`` for URL validation, ``nostr_sdk`` for key
derivation, and the leaf [nostrchat.exceptions][] module. Every model uses
``@dataclass(frozen=True, slots=True)`` and validates in ``__post_init__`` so
invalid instances never escape the constructor.

Attributes:
    Identity: Public key plus optional private key; replaced, never mutated.
    UnsignedEvent: The five signed fields of an event, before hashing.
    Event: A signed event with ``id`` and ``sig``.
    Relay: Validated ``ws://``/``wss://`` relay address.
    EventKind: Kinds this client composes (1 and 4).
    SessionState: Relay session state machine states.
    PreferenceKey: Storage keys for persisted preferences.

See Also:
    [nostrchat.nips][]: Hashing, signing, and encryption of these models.
"""

from .constants import EVENT_KIND_MAX, EventKind, PreferenceKey, SessionState
from .event import Event, Tags, UnsignedEvent, freeze_tags
from .identity import Identity, is_valid_public_key
from .relay import Relay


__all__ = [
    "EVENT_KIND_MAX",
    "Event",
    "EventKind",
    "Identity",
    "PreferenceKey",
    "Relay",
    "SessionState",
    "Tags",
    "UnsignedEvent",
    "freeze_tags",
    "is_valid_public_key",
]

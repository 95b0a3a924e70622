"""Utility layer: key loading, the ``nostr_sdk`` client seam, display helpers.

Depends only on [nostrchat.models][nostrchat.models] and
[nostrchat.exceptions][nostrchat.exceptions].

Attributes:
    load_identity_from_env: Identity from an ``nsec``/hex private key env var.
    connect_relay: Connect a ``nostr_sdk`` client to one relay with a timeout.
    format_public_key_short, format_timestamp, is_encrypted, profile_url,
    random_greeting, split_links: Display helpers.

See Also:
    [nostrchat.services.relay_session][nostrchat.services.relay_session]:
        The only consumer of [nostrchat.utils.protocol][].
"""

from .formatting import (
    ContentPart,
    PartKind,
    format_event_line,
    format_public_key_short,
    format_timestamp,
    is_encrypted,
    profile_url,
    random_greeting,
    split_links,
)
from .keys import ENV_PRIVATE_KEY, load_identity_from_env, to_npub, to_nsec
from .protocol import (
    build_filter,
    close_subscription,
    connect_relay,
    create_client,
    open_subscription,
    send_event,
    shutdown_client,
)


__all__ = [
    "ENV_PRIVATE_KEY",
    "ContentPart",
    "PartKind",
    "build_filter",
    "close_subscription",
    "connect_relay",
    "create_client",
    "format_event_line",
    "format_public_key_short",
    "format_timestamp",
    "is_encrypted",
    "load_identity_from_env",
    "open_subscription",
    "profile_url",
    "random_greeting",
    "send_event",
    "shutdown_client",
    "split_links",
    "to_npub",
    "to_nsec",
]

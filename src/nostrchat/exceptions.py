"""nostrchat exception hierarchy.

Provides typed exceptions for every failure the event pipeline can
surface, so callers catch specific errors instead of bare ``Exception``
and ``CancelledError`` propagates untouched. This module has no imports
from the rest of the package and sits beside the layers rather than in
one of them, so models, protocol code, and services can all raise from it.

Exception hierarchy:

```text
NostrChatError (base -- never raised directly)
├── ConfigurationError       -- config validation, bad YAML, missing env keys
├── ConnectivityError        -- relay transport problems
│   ├── ConnectionFailed     -- handshake/network error or timeout on connect
│   └── NotConnected         -- operation requires a connected session
├── SignerError              -- external signing agent problems
│   ├── AgentUnavailable     -- no agent, or agent lacks the sub-capability
│   └── AgentRejected        -- agent call failed, refused, or timed out
├── CryptoFailure            -- bad key material or ciphertext
│   └── SignatureInvalid     -- signed event did not verify
├── IdentityError            -- identity construction/resolution failures
│   ├── InvalidKeyFormat     -- key is not 32 bytes of hex
│   ├── CorruptIdentity      -- persisted identity could not be decoded
│   └── MissingIdentity      -- operation needs an identity and none is set
└── CompositionError         -- event rejected before any network effect
    ├── EmptyContent         -- content blank after trimming
    └── MissingRecipient     -- encrypted event without a recipient
```

See Also:
    [RelaySession][nostrchat.services.relay_session.RelaySession]: Raises
        [ConnectionFailed][nostrchat.exceptions.ConnectionFailed] and
        [NotConnected][nostrchat.exceptions.NotConnected].
    [nostrchat.nips.nip07][]: Raises the
        [SignerError][nostrchat.exceptions.SignerError] family.
"""

from __future__ import annotations


class NostrChatError(Exception):
    """Base exception for all nostrchat errors.

    Never raised directly -- always use a specific subclass.
    """


# ---------------------------------------------------------------------------
# Configuration
# ---------------------------------------------------------------------------


class ConfigurationError(NostrChatError):
    """Invalid or missing configuration (YAML, env vars, CLI flags)."""


# ---------------------------------------------------------------------------
# Connectivity
# ---------------------------------------------------------------------------


class ConnectivityError(NostrChatError):
    """Base for relay connectivity errors."""


class ConnectionFailed(ConnectivityError):
    """The relay connection could not be established.

    Raised once per failed attempt; the session is left ``DISCONNECTED``
    and no retry is scheduled.

    Attributes:
        reason: Human-readable cause reported by the transport.
    """

    def __init__(self, reason: str) -> None:
        super().__init__(reason)
        self.reason = reason


class NotConnected(ConnectivityError):
    """The operation requires a connected relay session."""


# ---------------------------------------------------------------------------
# Signing agent
# ---------------------------------------------------------------------------


class SignerError(NostrChatError):
    """Base for external signing-agent failures."""


class AgentUnavailable(SignerError):
    """No signing agent is present, or it lacks the requested sub-capability."""


class AgentRejected(SignerError):
    """The signing agent refused, failed, or timed out on a request."""


# ---------------------------------------------------------------------------
# Cryptography
# ---------------------------------------------------------------------------


class CryptoFailure(NostrChatError):
    """Malformed key material or ciphertext, or a failed local crypto operation."""


class SignatureInvalid(CryptoFailure):
    """An event failed id or signature verification."""


# ---------------------------------------------------------------------------
# Identity
# ---------------------------------------------------------------------------


class IdentityError(NostrChatError):
    """Base for identity construction and resolution failures."""


class InvalidKeyFormat(IdentityError):
    """A key is not a well-formed 32-byte hex string (or not a valid curve point)."""


class CorruptIdentity(IdentityError):
    """A persisted identity could not be decoded.

    Callers treat this as "no identity" rather than propagating it.
    """


class MissingIdentity(IdentityError):
    """The operation needs an identity with a public key and none is set."""


# ---------------------------------------------------------------------------
# Composition
# ---------------------------------------------------------------------------


class CompositionError(NostrChatError):
    """An event was rejected during composition, before any network effect."""


class EmptyContent(CompositionError):
    """The event content is empty after trimming whitespace."""


class MissingRecipient(CompositionError):
    """An encrypted event was requested without a resolvable recipient."""

"""NIP-01 canonical serialization, event ids, signing, and verification.

The event id is the SHA-256 of the compact JSON array
``[0, pubkey, created_at, kind, tags, content]``. It is computed locally so
that the id of an event is a pure function of its signed fields. Schnorr
signing and verification are delegated to ``nostr_sdk``.

Note:
    BIP-340 signatures use auxiliary randomness, so signing the same event
    twice yields the same ``id`` but different ``sig`` values. Both verify.
"""

from __future__ import annotations

import hashlib
import json
import logging

from nostr_sdk import Event as NostrEvent
from nostr_sdk import Keys
from nostr_sdk import UnsignedEvent as NostrUnsignedEvent

from nostrchat.exceptions import CryptoFailure, InvalidKeyFormat
from nostrchat.models.event import Event, UnsignedEvent


logger = logging.getLogger(__name__)


def serialize_event(event: UnsignedEvent) -> str:
    """Return the canonical NIP-01 serialization of the signed fields."""
    return json.dumps(
        [0, event.pubkey, event.created_at, event.kind, [list(t) for t in event.tags], event.content],
        separators=(",", ":"),
        ensure_ascii=False,
    )


def compute_event_id(event: UnsignedEvent) -> str:
    """Return the hex SHA-256 of [serialize_event()][nostrchat.nips.nip01.serialize_event]."""
    return hashlib.sha256(serialize_event(event).encode("utf-8")).hexdigest()


def sign_event(event: UnsignedEvent, private_key: str) -> Event:
    """Compute ``id`` and ``sig`` for *event* with a local private key.

    Args:
        event: The fields to sign. ``event.pubkey`` must belong to *private_key*.
        private_key: 64-char hex secret key.

    Returns:
        The signed [Event][nostrchat.models.event.Event].

    Raises:
        InvalidKeyFormat: If *private_key* cannot be parsed or does not match
            ``event.pubkey``.
        CryptoFailure: If the signing backend fails.
    """
    try:
        keys = Keys.parse(private_key)
    except Exception as e:  # nostr_sdk raises its own FFI error types
        raise InvalidKeyFormat("private key is not a valid secp256k1 secret key") from e
    if keys.public_key().to_hex() != event.pubkey:
        raise InvalidKeyFormat("private key does not match the event author")

    event_id = compute_event_id(event)
    payload = json.dumps({"id": event_id, **event.to_dict()}, ensure_ascii=False)
    try:
        signed = NostrUnsignedEvent.from_json(payload).sign_with_keys(keys)
        signed_dict = json.loads(signed.as_json())
    except Exception as e:  # nostr_sdk raises its own FFI error types
        raise CryptoFailure(f"signing failed: {e}") from e

    if signed_dict.get("id") != event_id:
        raise CryptoFailure("signing backend produced a different event id")
    return Event(
        pubkey=event.pubkey,
        created_at=event.created_at,
        kind=event.kind,
        tags=event.tags,
        content=event.content,
        id=event_id,
        sig=signed_dict["sig"],
    )


def verify_event(event: Event) -> bool:
    """Check that ``id`` matches the signed fields and ``sig`` matches ``pubkey``.

    Never raises: every failure, including malformed input, returns False.
    """
    try:
        if compute_event_id(event) != event.id:
            return False
        return bool(NostrEvent.from_json(event.to_json()).verify())
    except Exception as e:  # noqa: BLE001
        logger.debug("verify_failed id=%s error=%s", getattr(event, "id", "?")[:8], e)
        return False

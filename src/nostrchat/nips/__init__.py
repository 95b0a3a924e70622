"""Nostr Implementation Possibilities -- the cryptographic event pipeline.

The NIPs layer sits in the middle of the diamond DAG, depending on
[nostrchat.models][nostrchat.models] only.

Attributes:
    nip01: Canonical serialization, event id, local sign, verify.
        [verify_event()][nostrchat.nips.nip01.verify_event] never raises.
    nip04: Local encrypt/decrypt with an ECDH shared secret.
    nip07: Agent-delegated public key, sign, encrypt, decrypt.
    Signer: ``LocalKeySigner | AgentSigner``, chosen by
        [signer_for()][nostrchat.nips.signer.signer_for].
    compose, compose_text_note, compose_encrypted: Event builders.
"""

from .event_builders import compose, compose_encrypted, compose_text_note
from .nip01 import compute_event_id, serialize_event, sign_event, verify_event
from .nip07 import (
    SigningAgent,
    decrypt_via_agent,
    encrypt_via_agent,
    get_public_key_via_agent,
    sign_via_agent,
)
from .signer import AgentSigner, LocalKeySigner, Signer, signer_for


__all__ = [
    "AgentSigner",
    "LocalKeySigner",
    "Signer",
    "SigningAgent",
    "compose",
    "compose_encrypted",
    "compose_text_note",
    "compute_event_id",
    "decrypt_via_agent",
    "encrypt_via_agent",
    "get_public_key_via_agent",
    "serialize_event",
    "sign_event",
    "sign_via_agent",
    "signer_for",
    "verify_event",
]

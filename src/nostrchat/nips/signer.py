"""Signing backends: local key material or an external signing agent.

``Signer`` is a tagged variant of
[LocalKeySigner][nostrchat.nips.signer.LocalKeySigner] and
[AgentSigner][nostrchat.nips.signer.AgentSigner]. Both expose the same
async ``sign``/``encrypt``/``decrypt`` methods, so callers above this module
never branch on where the key lives. [signer_for()][nostrchat.nips.signer.signer_for]
picks the variant from the identity alone: a known private key means local
signing, anything else goes to the agent.
"""

from __future__ import annotations

from dataclasses import dataclass, field

from nostrchat.models.event import Event, UnsignedEvent
from nostrchat.models.identity import Identity

from . import nip04
from .nip01 import sign_event
from .nip07 import (
    DEFAULT_AGENT_TIMEOUT,
    SigningAgent,
    decrypt_via_agent,
    encrypt_via_agent,
    sign_via_agent,
)


@dataclass(frozen=True, slots=True)
class LocalKeySigner:
    """Signs and encrypts with a private key held in memory."""

    private_key: str = field(repr=False)

    async def sign(self, event: UnsignedEvent) -> Event:
        return sign_event(event, self.private_key)

    async def encrypt(self, plaintext: str, counterparty_public_key: str) -> str:
        return nip04.encrypt(plaintext, counterparty_public_key, self.private_key)

    async def decrypt(self, ciphertext: str, counterparty_public_key: str) -> str:
        return nip04.decrypt(ciphertext, counterparty_public_key, self.private_key)


@dataclass(frozen=True, slots=True)
class AgentSigner:
    """Delegates every operation to an external signing agent.

    ``agent`` may be None; every call then raises
    [AgentUnavailable][nostrchat.exceptions.AgentUnavailable].
    """

    agent: SigningAgent | None
    timeout: float = DEFAULT_AGENT_TIMEOUT

    async def sign(self, event: UnsignedEvent) -> Event:
        return await sign_via_agent(self.agent, event, self.timeout)

    async def encrypt(self, plaintext: str, counterparty_public_key: str) -> str:
        return await encrypt_via_agent(self.agent, plaintext, counterparty_public_key, self.timeout)

    async def decrypt(self, ciphertext: str, counterparty_public_key: str) -> str:
        return await decrypt_via_agent(self.agent, ciphertext, counterparty_public_key, self.timeout)


Signer = LocalKeySigner | AgentSigner


def signer_for(
    identity: Identity,
    agent: SigningAgent | None = None,
    timeout: float = DEFAULT_AGENT_TIMEOUT,
) -> Signer:
    """Return the signer matching *identity*."""
    if identity.private_key is not None:
        return LocalKeySigner(identity.private_key)
    return AgentSigner(agent, timeout)

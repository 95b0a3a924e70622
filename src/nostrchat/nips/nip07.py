"""NIP-07 style external signing agent.

A signing agent holds the user's private key and exposes asynchronous
``get_public_key()`` and ``sign_event()`` calls, plus an optional ``nip04``
sub-object with ``encrypt()``/``decrypt()``. The functions here wrap every
agent call with a timeout and map failures onto the
[SignerError][nostrchat.exceptions.SignerError] family:

* no agent, or no ``nip04`` sub-capability -> ``AgentUnavailable``
* the call raises, times out, or returns garbage -> ``AgentRejected``

``asyncio.CancelledError`` is never converted.
"""

from __future__ import annotations

import asyncio
import logging
from collections.abc import Awaitable
from typing import Any, Protocol, TypeVar, runtime_checkable

from nostrchat.exceptions import AgentRejected, AgentUnavailable
from nostrchat.models.event import Event, UnsignedEvent
from nostrchat.models.identity import is_valid_public_key

from .nip01 import compute_event_id


logger = logging.getLogger(__name__)

DEFAULT_AGENT_TIMEOUT = 30.0

T = TypeVar("T")


@runtime_checkable
class Nip04Capability(Protocol):
    async def encrypt(self, public_key: str, plaintext: str) -> str: ...

    async def decrypt(self, public_key: str, ciphertext: str) -> str: ...


@runtime_checkable
class SigningAgent(Protocol):
    """The capability object handed to the client by a signing agent.

    ``nip04`` may be ``None`` (or missing) when the agent cannot encrypt.
    """

    async def get_public_key(self) -> str: ...

    async def sign_event(self, event: dict[str, Any]) -> dict[str, Any]: ...


def _nip04_of(agent: SigningAgent | None) -> Nip04Capability:
    if agent is None:
        raise AgentUnavailable("no signing agent available")
    nip04 = getattr(agent, "nip04", None)
    if nip04 is None:
        raise AgentUnavailable("signing agent does not support NIP-04 encryption")
    return nip04


def _require(agent: SigningAgent | None) -> SigningAgent:
    if agent is None:
        raise AgentUnavailable("no signing agent available")
    return agent


async def _call(operation: str, call: Awaitable[T], timeout: float) -> T:  # noqa: ASYNC109
    try:
        async with asyncio.timeout(timeout):
            return await call
    except TimeoutError as e:
        logger.warning("agent_timeout operation=%s timeout=%s", operation, timeout)
        raise AgentRejected(f"signing agent timed out on {operation}") from e
    except (AgentRejected, AgentUnavailable):
        raise
    except Exception as e:  # agent implementations raise arbitrary errors
        logger.warning("agent_failed operation=%s error=%s", operation, e)
        raise AgentRejected(f"signing agent failed on {operation}: {e}") from e


async def get_public_key_via_agent(
    agent: SigningAgent | None, timeout: float = DEFAULT_AGENT_TIMEOUT
) -> str:
    """Ask the agent for the user's public key.

    Raises:
        AgentUnavailable: If *agent* is None.
        AgentRejected: If the call fails or returns a malformed key.
    """
    agent = _require(agent)
    public_key = await _call("get_public_key", agent.get_public_key(), timeout)
    if isinstance(public_key, str):
        public_key = public_key.strip().lower()
    if not is_valid_public_key(public_key):
        raise AgentRejected("signing agent returned a malformed public key")
    return public_key


async def sign_via_agent(
    agent: SigningAgent | None,
    event: UnsignedEvent,
    timeout: float = DEFAULT_AGENT_TIMEOUT,
) -> Event:
    """Have the agent sign *event*.

    The returned event must carry the same signed fields; only ``id`` and
    ``sig`` are taken from the agent, and the id is checked.

    Raises:
        AgentUnavailable: If *agent* is None.
        AgentRejected: If the call fails, or the result is malformed or
            does not match *event*.
    """
    agent = _require(agent)
    signed = await _call("sign_event", agent.sign_event(event.to_dict()), timeout)
    if not isinstance(signed, dict):
        raise AgentRejected("signing agent returned a non-object event")

    expected_id = compute_event_id(event)
    if signed.get("pubkey", event.pubkey) != event.pubkey:
        raise AgentRejected("signing agent signed with a different key")
    if signed.get("id") != expected_id:
        raise AgentRejected("signing agent returned an event with a different id")
    try:
        return Event(
            pubkey=event.pubkey,
            created_at=event.created_at,
            kind=event.kind,
            tags=event.tags,
            content=event.content,
            id=expected_id,
            sig=signed.get("sig"),
        )
    except (TypeError, ValueError) as e:
        raise AgentRejected(f"signing agent returned a malformed signature: {e}") from e


async def encrypt_via_agent(
    agent: SigningAgent | None,
    plaintext: str,
    counterparty_public_key: str,
    timeout: float = DEFAULT_AGENT_TIMEOUT,
) -> str:
    """Encrypt through the agent's ``nip04`` sub-capability.

    Raises:
        AgentUnavailable: If *agent* or its ``nip04`` capability is missing.
        AgentRejected: If the call fails or returns a non-string.
    """
    nip04 = _nip04_of(agent)
    result = await _call("nip04_encrypt", nip04.encrypt(counterparty_public_key, plaintext), timeout)
    if not isinstance(result, str) or not result:
        raise AgentRejected("signing agent returned an empty ciphertext")
    return result


async def decrypt_via_agent(
    agent: SigningAgent | None,
    ciphertext: str,
    counterparty_public_key: str,
    timeout: float = DEFAULT_AGENT_TIMEOUT,
) -> str:
    """Decrypt through the agent's ``nip04`` sub-capability.

    Raises:
        AgentUnavailable: If *agent* or its ``nip04`` capability is missing.
        AgentRejected: If the call fails or returns a non-string.
    """
    nip04 = _nip04_of(agent)
    result = await _call("nip04_decrypt", nip04.decrypt(counterparty_public_key, ciphertext), timeout)
    if not isinstance(result, str):
        raise AgentRejected("signing agent returned a non-string plaintext")
    return result

"""
Immutable participant identity (public key, optional private key).

An [Identity][nostrchat.models.identity.Identity] is created in one of
three ways:

* [generate()][nostrchat.models.identity.Identity.generate] -- fresh local keypair.
* [from_public_key_only()][nostrchat.models.identity.Identity.from_public_key_only] --
  bare public key resolved from an external signing agent.
* [deserialize()][nostrchat.models.identity.Identity.deserialize] -- restored
  from the preference store.

Changing identity means replacing the instance; the dataclass is frozen.

Warning:
    ``private_key`` is excluded from ``repr()`` so an identity can be logged
    without leaking key material. Only
    [serialize()][nostrchat.models.identity.Identity.serialize] writes it out.
"""

from __future__ import annotations

import json
from dataclasses import dataclass, field

from nostr_sdk import Keys, PublicKey

from nostrchat.exceptions import CorruptIdentity, InvalidKeyFormat

from ._validation import is_lower_hex
from .constants import HEX_KEY_LENGTH


@dataclass(frozen=True, slots=True)
class Identity:
    """A participant's keypair, with the private half optional.

    Attributes:
        public_key: 64-char lowercase hex x-only public key.
        private_key: 64-char lowercase hex secret key, or ``None`` when the
            key is held by an external signing agent.

    Raises:
        InvalidKeyFormat: If either key is malformed, or if ``private_key``
            does not derive ``public_key``.

    Examples:
        ```python
        me = Identity.generate()
        me.has_private_key       # True
        agent_user = Identity.from_public_key_only(pubkey_hex)
        agent_user.has_private_key  # False
        ```
    """

    public_key: str
    private_key: str | None = field(default=None, repr=False)

    def __post_init__(self) -> None:
        """Validate key formats and the public/private key relationship."""
        _check_public_key(self.public_key)
        if self.private_key is None:
            return
        if not is_lower_hex(self.private_key, HEX_KEY_LENGTH):
            raise InvalidKeyFormat("private key must be 64 lowercase hex characters")
        try:
            derived = Keys.parse(self.private_key).public_key().to_hex()
        except Exception as e:  # nostr_sdk raises its own FFI error types
            raise InvalidKeyFormat("private key is not a valid secp256k1 secret key") from e
        if derived != self.public_key:
            raise InvalidKeyFormat("public key does not match private key")

    @property
    def has_private_key(self) -> bool:
        """Whether signing can happen locally without an agent."""
        return self.private_key is not None

    @classmethod
    def generate(cls) -> Identity:
        """Create an identity from a fresh random secp256k1 keypair."""
        keys = Keys.generate()
        return cls(
            public_key=keys.public_key().to_hex(),
            private_key=keys.secret_key().to_hex(),
        )

    @classmethod
    def from_private_key(cls, private_key: str) -> Identity:
        """Create an identity from a hex or ``nsec1`` private key.

        Raises:
            InvalidKeyFormat: If the key cannot be parsed.
        """
        try:
            keys = Keys.parse(private_key.strip())
        except Exception as e:  # nostr_sdk raises its own FFI error types
            raise InvalidKeyFormat("private key is not a valid hex or nsec key") from e
        return cls(
            public_key=keys.public_key().to_hex(),
            private_key=keys.secret_key().to_hex(),
        )

    @classmethod
    def from_public_key_only(cls, public_key: str) -> Identity:
        """Create an identity that only knows its public key.

        Raises:
            InvalidKeyFormat: If ``public_key`` is not 64 hex chars or not a
                valid curve point.
        """
        if isinstance(public_key, str):
            public_key = public_key.strip().lower()
        return cls(public_key=public_key)

    def serialize(self) -> str:
        """Encode as a JSON string for the preference store."""
        return json.dumps({"publicKey": self.public_key, "privateKey": self.private_key})

    @classmethod
    def deserialize(cls, raw: str) -> Identity:
        """Decode an identity written by [serialize()][nostrchat.models.identity.Identity.serialize].

        Raises:
            CorruptIdentity: If *raw* is not valid JSON, lacks a public key,
                or holds malformed keys.
        """
        try:
            data = json.loads(raw)
        except (TypeError, ValueError) as e:
            raise CorruptIdentity("stored identity is not valid JSON") from e
        if not isinstance(data, dict) or not isinstance(data.get("publicKey"), str):
            raise CorruptIdentity("stored identity has no public key")
        private_key = data.get("privateKey")
        if private_key is not None and not isinstance(private_key, str):
            raise CorruptIdentity("stored private key is not a string")
        try:
            return cls(public_key=data["publicKey"], private_key=private_key)
        except InvalidKeyFormat as e:
            raise CorruptIdentity(f"stored identity is invalid: {e}") from e


def _check_public_key(value: object) -> None:
    """Raise ``InvalidKeyFormat`` unless *value* is a valid x-only public key."""
    if not is_lower_hex(value, HEX_KEY_LENGTH):
        raise InvalidKeyFormat("public key must be 64 lowercase hex characters")
    try:
        PublicKey.parse(value)
    except Exception as e:  # nostr_sdk raises its own FFI error types
        raise InvalidKeyFormat("public key is not a valid secp256k1 point") from e


def is_valid_public_key(value: object) -> bool:
    """Return True if *value* is a well-formed x-only public key."""
    try:
        _check_public_key(value)
    except InvalidKeyFormat:
        return False
    return True

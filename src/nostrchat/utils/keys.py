"""Nostr key loading from the environment.

Warning:
    Private keys must **never** be stored in configuration files, source
    code, or logged to any output. The only supported way to hand the
    client a local private key is an environment variable.

Examples:
    ```python
    import os

    os.environ["PRIVATE_KEY"] = "nsec1..."  # pragma: allowlist secret
    identity = load_identity_from_env("PRIVATE_KEY")
    identity.public_key
    ```
"""

from __future__ import annotations

import os

from nostr_sdk import PublicKey, SecretKey

from nostrchat.exceptions import ConfigurationError, InvalidKeyFormat
from nostrchat.models.identity import Identity


ENV_PRIVATE_KEY = "PRIVATE_KEY"  # pragma: allowlist secret  # Default env var name


def load_identity_from_env(env_var: str = ENV_PRIVATE_KEY) -> Identity | None:
    """Build an identity from the private key in *env_var*.

    Accepts ``nsec1`` bech32 or 64-char hex.

    Returns:
        The identity, or None when the variable is unset or empty.

    Raises:
        ConfigurationError: If the variable is set but holds a malformed key.
    """
    value = os.getenv(env_var)
    if not value or not value.strip():
        return None
    try:
        return Identity.from_private_key(value)
    except InvalidKeyFormat as e:
        raise ConfigurationError(f"{env_var} does not hold a valid private key") from e


def to_npub(public_key: str) -> str:
    """Encode a hex public key as bech32 ``npub1...``.

    Raises:
        InvalidKeyFormat: If *public_key* is malformed.
    """
    try:
        return PublicKey.parse(public_key).to_bech32()
    except Exception as e:  # nostr_sdk raises its own FFI error types
        raise InvalidKeyFormat("public key is malformed") from e


def to_nsec(private_key: str) -> str:
    """Encode a hex private key as bech32 ``nsec1...``.

    Raises:
        InvalidKeyFormat: If *private_key* is malformed.
    """
    try:
        return SecretKey.parse(private_key).to_bech32()
    except Exception as e:  # nostr_sdk raises its own FFI error types
        raise InvalidKeyFormat("private key is malformed") from e

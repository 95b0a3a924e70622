"""NIP-04 encrypted direct messages with local key material.

The shared secret is ECDH between one party's private key and the other's
public key, so ``decrypt(encrypt(p, pub_b, priv_a), pub_a, priv_b) == p``.
The AES-256-CBC work is done by ``nostr_sdk``.
"""

from __future__ import annotations

from nostr_sdk import PublicKey, SecretKey, nip04_decrypt, nip04_encrypt

from nostrchat.exceptions import CryptoFailure


def _parse_keys(counterparty_public_key: str, private_key: str) -> tuple[SecretKey, PublicKey]:
    try:
        secret = SecretKey.parse(private_key)
    except Exception as e:  # nostr_sdk raises its own FFI error types
        raise CryptoFailure("private key is malformed") from e
    try:
        public = PublicKey.parse(counterparty_public_key)
    except Exception as e:  # nostr_sdk raises its own FFI error types
        raise CryptoFailure("counterparty public key is malformed") from e
    return secret, public


def encrypt(plaintext: str, counterparty_public_key: str, private_key: str) -> str:
    """Encrypt *plaintext* for *counterparty_public_key*.

    Returns:
        ``<base64 ciphertext>?iv=<base64 iv>``.

    Raises:
        CryptoFailure: If either key is malformed or encryption fails.
    """
    secret, public = _parse_keys(counterparty_public_key, private_key)
    try:
        return nip04_encrypt(secret, public, plaintext)
    except Exception as e:  # nostr_sdk raises its own FFI error types
        raise CryptoFailure(f"encryption failed: {e}") from e


def decrypt(ciphertext: str, counterparty_public_key: str, private_key: str) -> str:
    """Decrypt a NIP-04 payload from (or to) *counterparty_public_key*.

    Raises:
        CryptoFailure: If a key or the ciphertext is malformed, or the
            padding does not check out.
    """
    secret, public = _parse_keys(counterparty_public_key, private_key)
    try:
        return nip04_decrypt(secret, public, ciphertext)
    except Exception as e:  # nostr_sdk raises its own FFI error types
        raise CryptoFailure(f"decryption failed: {e}") from e

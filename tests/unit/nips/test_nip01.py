"""
Unit tests for nips.nip01 module.

Tests:
- serialize_event() canonical form
- compute_event_id() against known digests
- sign_event() with matching and mismatching keys
- verify_event() on valid and tampered events
"""

import dataclasses

import pytest

from nostrchat.exceptions import InvalidKeyFormat
from nostrchat.models.event import Event, UnsignedEvent
from nostrchat.models.identity import Identity
from nostrchat.nips.nip01 import compute_event_id, serialize_event, sign_event, verify_event
from tests.conftest import OTHER_HEX_KEY, OTHER_PUBLIC_KEY, VALID_HEX_KEY, VALID_PUBLIC_KEY


def note(content: str = "hello", **overrides: object) -> UnsignedEvent:
    fields: dict[str, object] = {
        "pubkey": VALID_PUBLIC_KEY,
        "created_at": 1_700_000_000,
        "kind": 1,
        "tags": [],
        "content": content,
    }
    fields.update(overrides)
    return UnsignedEvent(**fields)  # type: ignore[arg-type]


# ============================================================================
# Serialization and id
# ============================================================================


class TestSerialization:
    """Canonical NIP-01 array."""

    def test_compact_array(self) -> None:
        assert serialize_event(note()) == (
            f'[0,"{VALID_PUBLIC_KEY}",1700000000,1,[],"hello"]'
        )

    def test_tags_as_lists(self) -> None:
        assert ',[["t","x"]],' in serialize_event(note(tags=[("t", "x")]))

    def test_unicode_not_escaped(self) -> None:
        assert "héllo" in serialize_event(note("héllo"))

    def test_quotes_and_newlines_escaped(self) -> None:
        assert serialize_event(note('a "b"\n')).endswith('"a \\"b\\"\\n"]')


class TestComputeEventId:
    """Ids are the SHA-256 of the canonical serialization."""

    def test_known_digest(self) -> None:
        assert compute_event_id(note()) == (
            "eeaf6019d3539958822e623fa80fea5459003a6d9bfbf79014b01fd9bb11d46b"
        )

    def test_known_digest_with_escapes(self) -> None:
        assert compute_event_id(note('héllo "q"\n')) == (
            "7e891c7a491256dc50e85db36bbfb8b59f16ad71f2135df3f65d4d4c6109b31d"
        )

    def test_deterministic(self) -> None:
        assert compute_event_id(note()) == compute_event_id(note())

    def test_any_field_changes_id(self) -> None:
        base = compute_event_id(note())
        assert compute_event_id(note(created_at=1_700_000_001)) != base
        assert compute_event_id(note("hello!")) != base
        assert compute_event_id(note(tags=[("t", "x")])) != base


# ============================================================================
# Sign / verify
# ============================================================================


class TestSignEvent:
    def test_signed_event_verifies(self) -> None:
        event = sign_event(note(), VALID_HEX_KEY)
        assert event.id == compute_event_id(note())
        assert len(event.sig) == 128
        assert verify_event(event)

    def test_signing_twice_keeps_id(self) -> None:
        first = sign_event(note(), VALID_HEX_KEY)
        second = sign_event(note(), VALID_HEX_KEY)
        assert first.id == second.id
        assert verify_event(first)
        assert verify_event(second)

    def test_wrong_key(self) -> None:
        with pytest.raises(InvalidKeyFormat, match="does not match"):
            sign_event(note(), OTHER_HEX_KEY)

    def test_malformed_key(self) -> None:
        with pytest.raises(InvalidKeyFormat):
            sign_event(note(), "not a key")

    def test_preserves_fields(self) -> None:
        unsigned = note(tags=[("t", "x")])
        assert sign_event(unsigned, VALID_HEX_KEY).unsigned == unsigned


class TestVerifyEvent:
    @pytest.fixture
    def signed(self) -> Event:
        return sign_event(note(), VALID_HEX_KEY)

    def test_tampered_content(self, signed: Event) -> None:
        assert not verify_event(dataclasses.replace(signed, content="hellO"))

    @pytest.mark.parametrize(
        ("field", "value"),
        [
            ("content", "hellO"),
            ("tags", [("t", "x")]),
            ("kind", 7),
            ("created_at", 1_700_000_001),
            ("pubkey", OTHER_PUBLIC_KEY),
        ],
    )
    def test_tampered_signed_field(self, signed: Event, field: str, value: object) -> None:
        assert verify_event(dataclasses.replace(signed, **{field: value})) is False

    def test_tampered_id(self, signed: Event) -> None:
        assert not verify_event(dataclasses.replace(signed, id="0" * 64))

    def test_tampered_signature(self, signed: Event) -> None:
        flipped = ("0" if signed.sig[0] != "0" else "1") + signed.sig[1:]
        assert not verify_event(dataclasses.replace(signed, sig=flipped))

    def test_signature_from_other_key(self, signed: Event, other_identity: Identity) -> None:
        assert other_identity.private_key is not None
        theirs = sign_event(note(pubkey=other_identity.public_key), other_identity.private_key)
        assert not verify_event(dataclasses.replace(signed, sig=theirs.sig))

    def test_never_raises_on_garbage(self) -> None:
        assert verify_event("not an event") is False  # type: ignore[arg-type]

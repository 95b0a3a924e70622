"""
Unit tests for nips.event_builders module.

Tests:
- compose() fields, timestamps, empty content
- compose_text_note()
- compose_encrypted() p tag and recipient validation
"""

import time

import pytest

from nostrchat.exceptions import EmptyContent, MissingRecipient
from nostrchat.models.constants import EventKind
from nostrchat.nips.event_builders import compose, compose_encrypted, compose_text_note
from tests.conftest import OTHER_PUBLIC_KEY, VALID_PUBLIC_KEY


class TestCompose:
    def test_fields(self) -> None:
        event = compose(VALID_PUBLIC_KEY, 1, "hi", [("t", "x")], now=123)
        assert event.pubkey == VALID_PUBLIC_KEY
        assert event.created_at == 123
        assert event.kind == 1
        assert event.tags == (("t", "x"),)
        assert event.content == "hi"

    def test_content_kept_verbatim(self) -> None:
        assert compose(VALID_PUBLIC_KEY, 1, "  hi \n", now=1).content == "  hi \n"

    def test_defaults_to_now(self) -> None:
        before = int(time.time())
        event = compose(VALID_PUBLIC_KEY, 1, "hi")
        assert before <= event.created_at <= int(time.time())

    @pytest.mark.parametrize("content", ["", "   ", "\n\t"])
    def test_empty_content(self, content: str) -> None:
        with pytest.raises(EmptyContent):
            compose(VALID_PUBLIC_KEY, 1, content)

    def test_allow_empty(self) -> None:
        assert compose(VALID_PUBLIC_KEY, 1, "", allow_empty=True, now=1).content == ""

    def test_invalid_author(self) -> None:
        with pytest.raises(ValueError):
            compose("abc", 1, "hi")


class TestComposeTextNote:
    def test_kind(self) -> None:
        event = compose_text_note(VALID_PUBLIC_KEY, "hi", now=1)
        assert event.kind == EventKind.TEXT_NOTE
        assert event.tags == ()


class TestComposeEncrypted:
    def test_p_tag(self) -> None:
        event = compose_encrypted(VALID_PUBLIC_KEY, "abc?iv=def", OTHER_PUBLIC_KEY, now=1)
        assert event.kind == EventKind.ENCRYPTED_DIRECT_MESSAGE
        assert event.tags == (("p", OTHER_PUBLIC_KEY),)
        assert event.recipient == OTHER_PUBLIC_KEY

    @pytest.mark.parametrize("recipient", [None, "", "abc", OTHER_PUBLIC_KEY.upper()])
    def test_missing_or_invalid_recipient(self, recipient: str | None) -> None:
        with pytest.raises(MissingRecipient):
            compose_encrypted(VALID_PUBLIC_KEY, "abc?iv=def", recipient)

    def test_empty_ciphertext(self) -> None:
        with pytest.raises(EmptyContent):
            compose_encrypted(VALID_PUBLIC_KEY, "", OTHER_PUBLIC_KEY)

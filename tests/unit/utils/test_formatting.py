"""
Unit tests for utils.formatting module.

Tests:
- format_public_key_short(), format_timestamp(), profile_url()
- is_encrypted()
- random_greeting() shape
- split_links() text/link/image parts
- format_event_line()
"""

import random
import re
from datetime import datetime

import pytest

from nostrchat.models.event import UnsignedEvent
from nostrchat.utils.formatting import (
    ContentPart,
    PartKind,
    format_event_line,
    format_public_key_short,
    format_timestamp,
    is_encrypted,
    profile_url,
    random_greeting,
    split_links,
)
from tests.conftest import OTHER_PUBLIC_KEY, VALID_PUBLIC_KEY


def note(kind: int = 1, tags: tuple = (), content: str = "hi") -> UnsignedEvent:
    return UnsignedEvent(VALID_PUBLIC_KEY, 1_700_000_000, kind, tags, content)


class TestPublicKeyDisplay:
    def test_short(self) -> None:
        assert format_public_key_short(VALID_PUBLIC_KEY) == "7e7e9c42...86addf4e"

    def test_short_leaves_short_values(self) -> None:
        assert format_public_key_short("abcd") == "abcd"

    def test_profile_url(self) -> None:
        assert profile_url(VALID_PUBLIC_KEY) == f"https://primal.net/p/{VALID_PUBLIC_KEY}"


class TestTimestamp:
    def test_local_time(self) -> None:
        expected = datetime.fromtimestamp(1_700_000_000).strftime("%H:%M:%S")
        assert format_timestamp(1_700_000_000) == expected

    def test_shape(self) -> None:
        assert re.fullmatch(r"\d{2}:\d{2}:\d{2}", format_timestamp(0))


class TestIsEncrypted:
    def test_plain(self) -> None:
        assert not is_encrypted(note())

    def test_p_tag(self) -> None:
        assert is_encrypted(note(kind=4, tags=(("p", OTHER_PUBLIC_KEY),)))

    def test_other_tags(self) -> None:
        assert not is_encrypted(note(tags=(("t", "nostr"),)))


class TestRandomGreeting:
    def test_shape(self) -> None:
        rng = random.Random(7)
        for _ in range(50):
            assert re.fullmatch(
                r"(Hello|Greetings|Salutations), (World|People|Universe)! \.\.\.\d{1,2}",
                random_greeting(rng),
            )

    def test_seeded_is_reproducible(self) -> None:
        assert random_greeting(random.Random(1)) == random_greeting(random.Random(1))


class TestSplitLinks:
    def test_plain_text(self) -> None:
        assert split_links("just text") == [ContentPart(PartKind.TEXT, "just text")]

    def test_empty(self) -> None:
        assert split_links("") == []

    def test_link_and_image(self) -> None:
        parts = split_links("see https://example.com/a and http://x.io/cat.PNG now")
        assert parts == [
            ContentPart(PartKind.TEXT, "see "),
            ContentPart(PartKind.LINK, "https://example.com/a"),
            ContentPart(PartKind.TEXT, " and "),
            ContentPart(PartKind.IMAGE, "http://x.io/cat.PNG"),
            ContentPart(PartKind.TEXT, " now"),
        ]

    @pytest.mark.parametrize("suffix", ["png", "jpg", "jpeg", "gif"])
    def test_image_suffixes(self, suffix: str) -> None:
        assert split_links(f"https://x.io/a.{suffix}")[0].kind is PartKind.IMAGE

    def test_adjacent_links(self) -> None:
        parts = split_links("https://a.io https://b.io")
        assert [p.kind for p in parts] == [PartKind.LINK, PartKind.TEXT, PartKind.LINK]


class TestFormatEventLine:
    def test_public(self) -> None:
        line = format_event_line(note(content="gm"))
        assert line.startswith("[pub] 7e7e9c42...86addf4e ")
        assert line.endswith(" gm")

    def test_encrypted_with_plaintext(self) -> None:
        event = note(kind=4, tags=(("p", OTHER_PUBLIC_KEY),), content="abc?iv=def")
        line = format_event_line(event, "secret")
        assert line.startswith("[enc] ")
        assert line.endswith(" secret")
        assert "abc?iv=def" not in line

    def test_encrypted_without_plaintext_shows_ciphertext(self) -> None:
        event = note(kind=4, tags=(("p", OTHER_PUBLIC_KEY),), content="abc?iv=def")
        assert format_event_line(event).endswith(" abc?iv=def")

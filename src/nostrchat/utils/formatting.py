"""Display helpers for rendering events in a terminal or any other front end."""

from __future__ import annotations

import random
import re
from datetime import datetime
from enum import StrEnum
from typing import NamedTuple

from nostrchat.models.event import UnsignedEvent


PROFILE_URL_TEMPLATE = "https://primal.net/p/{public_key}"

_GREETINGS = ("Hello", "Greetings", "Salutations")
_AUDIENCES = ("World", "People", "Universe")

_URL_RE = re.compile(r"(https?://\S+)")
_IMAGE_RE = re.compile(r"\.(?:png|jpe?g|gif)$", re.IGNORECASE)


class PartKind(StrEnum):
    TEXT = "text"
    LINK = "link"
    IMAGE = "image"


class ContentPart(NamedTuple):
    kind: PartKind
    value: str


def format_public_key_short(public_key: str, edge: int = 8) -> str:
    """Abbreviate a hex public key as ``<first>...<last>``."""
    if len(public_key) <= edge * 2 + 3:
        return public_key
    return f"{public_key[:edge]}...{public_key[-edge:]}"


def format_timestamp(created_at: int) -> str:
    """Render a Unix timestamp as local ``HH:MM:SS``."""
    return datetime.fromtimestamp(created_at).strftime("%H:%M:%S")


def is_encrypted(event: UnsignedEvent) -> bool:
    """Whether *event* is addressed to someone (carries a ``p`` tag)."""
    return any(tag[0] == "p" for tag in event.tags)


def profile_url(public_key: str) -> str:
    """Link to the public profile page of *public_key*."""
    return PROFILE_URL_TEMPLATE.format(public_key=public_key)


def random_greeting(rng: random.Random | None = None) -> str:
    """Return a placeholder message such as ``"Greetings, People! ...42"``."""
    rng = rng or random.Random()
    return f"{rng.choice(_GREETINGS)}, {rng.choice(_AUDIENCES)}! ...{rng.randrange(100)}"


def split_links(content: str) -> list[ContentPart]:
    """Split *content* into text, link, and image-link parts, in order.

    Empty text fragments between adjacent links are omitted.
    """
    parts: list[ContentPart] = []
    for index, piece in enumerate(_URL_RE.split(content)):
        if index % 2 == 0:
            if piece:
                parts.append(ContentPart(PartKind.TEXT, piece))
        elif _IMAGE_RE.search(piece):
            parts.append(ContentPart(PartKind.IMAGE, piece))
        else:
            parts.append(ContentPart(PartKind.LINK, piece))
    return parts


def format_event_line(event: UnsignedEvent, content: str | None = None) -> str:
    """One-line summary: lock marker, short author, time, and content."""
    marker = "[enc]" if is_encrypted(event) else "[pub]"
    body = event.content if content is None else content
    return (
        f"{marker} {format_public_key_short(event.pubkey)} "
        f"{format_timestamp(event.created_at)} {body}"
    )

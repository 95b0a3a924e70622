"""
Immutable Nostr events, before and after signing.

[UnsignedEvent][nostrchat.models.event.UnsignedEvent] holds the five
author-controlled fields; [Event][nostrchat.models.event.Event] adds the
content-addressed ``id`` and the Schnorr ``sig``. Both are plain frozen
dataclasses. Hashing and signing live in [nostrchat.nips.nip01][] so that
this module stays free of cryptography.

Tags are stored as tuples of tuples so the instances stay hashable and
cannot be mutated after the id was computed. ``to_dict()`` converts back to
the list-of-lists JSON shape used on the wire.

See Also:
    [nostrchat.nips.nip01][]: Canonical serialization, id, sign, verify.
    [nostrchat.nips.event_builders][]: Composes
        [UnsignedEvent][nostrchat.models.event.UnsignedEvent] instances.
"""

from __future__ import annotations

import json
from collections.abc import Iterable, Mapping
from dataclasses import dataclass
from typing import Any

from ._validation import validate_hex, validate_str_no_null, validate_tags, validate_timestamp
from .constants import EVENT_KIND_MAX, HEX_KEY_LENGTH, SIGNATURE_HEX_LENGTH, EventKind


Tags = tuple[tuple[str, ...], ...]


def freeze_tags(tags: Iterable[Iterable[str]]) -> Tags:
    """Convert a list-of-lists tag structure into nested tuples."""
    return tuple(tuple(tag) for tag in tags)


@dataclass(frozen=True, slots=True)
class UnsignedEvent:
    """The signed fields of a Nostr event, without ``id`` and ``sig``.

    Attributes:
        pubkey: Author public key, 64-char lowercase hex.
        created_at: Unix timestamp in seconds.
        kind: Event kind in ``0..65535``.
        tags: Ordered tags, each a non-empty tuple of strings.
        content: UTF-8 content; ciphertext for kind 4.

    Raises:
        TypeError: If a field has the wrong type.
        ValueError: If a field is out of range, or a kind-4 event has no
            ``p`` tag.
    """

    pubkey: str
    created_at: int
    kind: int
    tags: Tags
    content: str

    def __post_init__(self) -> None:
        validate_hex(self.pubkey, HEX_KEY_LENGTH, "pubkey")
        validate_timestamp(self.created_at, "created_at")
        if isinstance(self.kind, bool) or not isinstance(self.kind, int):
            raise TypeError(f"kind must be an int, got {type(self.kind).__name__}")
        if not 0 <= self.kind <= EVENT_KIND_MAX:
            raise ValueError(f"kind must be between 0 and {EVENT_KIND_MAX}, got {self.kind}")
        validate_tags(self.tags, "tags")
        validate_str_no_null(self.content, "content")

        # Bypass frozen restriction to normalize lists into tuples
        object.__setattr__(self, "tags", freeze_tags(self.tags))
        object.__setattr__(self, "kind", int(self.kind))

        if self.kind == EventKind.ENCRYPTED_DIRECT_MESSAGE and self.recipient is None:
            raise ValueError("kind 4 events must carry a p tag naming the recipient")

    @property
    def recipient(self) -> str | None:
        """Value of the first ``p`` tag, or ``None`` when there is none."""
        for tag in self.tags:
            if tag[0] == "p" and len(tag) > 1:
                return tag[1]
        return None

    def to_dict(self) -> dict[str, Any]:
        """Return the wire representation of the signed fields."""
        return {
            "pubkey": self.pubkey,
            "created_at": self.created_at,
            "kind": self.kind,
            "tags": [list(tag) for tag in self.tags],
            "content": self.content,
        }


@dataclass(frozen=True, slots=True)
class Event(UnsignedEvent):
    """A signed Nostr event.

    Construction only checks field shapes. Whether ``id`` and ``sig`` are
    actually correct is decided by
    [verify_event()][nostrchat.nips.nip01.verify_event], which every inbound
    event passes before it is trusted.

    Attributes:
        id: SHA-256 of the canonical serialization, 64-char lowercase hex.
        sig: BIP-340 Schnorr signature over ``id``, 128-char lowercase hex.

    Examples:
        ```python
        event = Event.from_dict(json.loads(raw))
        event.id[:8]
        event.recipient   # p-tag value or None
        ```
    """

    id: str
    sig: str

    def __post_init__(self) -> None:
        UnsignedEvent.__post_init__(self)
        validate_hex(self.id, HEX_KEY_LENGTH, "id")
        validate_hex(self.sig, SIGNATURE_HEX_LENGTH, "sig")

    @property
    def unsigned(self) -> UnsignedEvent:
        """The signed fields alone, as an [UnsignedEvent][nostrchat.models.event.UnsignedEvent]."""
        return UnsignedEvent(
            pubkey=self.pubkey,
            created_at=self.created_at,
            kind=self.kind,
            tags=self.tags,
            content=self.content,
        )

    def to_dict(self) -> dict[str, Any]:
        """Return the full NIP-01 wire representation."""
        return {"id": self.id, **UnsignedEvent.to_dict(self), "sig": self.sig}

    def to_json(self) -> str:
        return json.dumps(self.to_dict(), separators=(",", ":"), ensure_ascii=False)

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> Event:
        """Build an event from its wire representation.

        Raises:
            TypeError: If *data* is not a mapping or a field has the wrong type.
            ValueError: If a required field is missing or malformed.
        """
        if not isinstance(data, Mapping):
            raise TypeError(f"event must be a JSON object, got {type(data).__name__}")
        try:
            return cls(
                pubkey=data["pubkey"],
                created_at=data["created_at"],
                kind=data["kind"],
                tags=data["tags"],
                content=data["content"],
                id=data["id"],
                sig=data["sig"],
            )
        except KeyError as e:
            raise ValueError(f"event is missing field {e.args[0]!r}") from None

    @classmethod
    def from_json(cls, raw: str) -> Event:
        """Parse an event from a JSON string.

        Raises:
            ValueError: If *raw* is not valid JSON or not a valid event.
        """
        return cls.from_dict(json.loads(raw))

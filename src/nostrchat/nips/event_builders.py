"""Event builders for the kinds this client publishes.

Pure construction: no network, no cryptography. The results are
[UnsignedEvent][nostrchat.models.event.UnsignedEvent] instances that a
[Signer][nostrchat.nips.signer.Signer] turns into signed events.

See Also:
    [nostrchat.nips.nip01][]: Computes the id and signature.
"""

from __future__ import annotations

import time
from collections.abc import Iterable, Sequence

from nostrchat.exceptions import EmptyContent, MissingRecipient
from nostrchat.models.constants import EventKind
from nostrchat.models.event import UnsignedEvent, freeze_tags
from nostrchat.models.identity import is_valid_public_key


# =============================================================================
# Generic (NIP-01)
# =============================================================================


def compose(  # noqa: PLR0913
    author: str,
    kind: int,
    content: str,
    tags: Iterable[Sequence[str]] = (),
    now: int | None = None,
    *,
    allow_empty: bool = False,
) -> UnsignedEvent:
    """Build an unsigned event.

    Args:
        author: Author public key (hex).
        kind: Event kind.
        content: Event content, stored as given.
        tags: Tags in order.
        now: ``created_at`` in Unix seconds; the current time when None.
        allow_empty: Accept content that is blank after trimming.

    Raises:
        EmptyContent: If *content* is blank and *allow_empty* is False.
        ValueError: If a field is malformed (see
            [UnsignedEvent][nostrchat.models.event.UnsignedEvent]).
    """
    if not allow_empty and not content.strip():
        raise EmptyContent("event content is empty")
    return UnsignedEvent(
        pubkey=author,
        created_at=int(time.time()) if now is None else now,
        kind=kind,
        tags=freeze_tags(tags),
        content=content,
    )


# =============================================================================
# Kind 1 (NIP-01)
# =============================================================================


def compose_text_note(author: str, content: str, now: int | None = None) -> UnsignedEvent:
    """Build a kind 1 text note."""
    return compose(author, EventKind.TEXT_NOTE, content, now=now)


# =============================================================================
# Kind 4 (NIP-04)
# =============================================================================


def compose_encrypted(
    author: str,
    ciphertext: str,
    recipient: str | None,
    now: int | None = None,
) -> UnsignedEvent:
    """Build a kind 4 encrypted direct message with its ``p`` tag.

    Raises:
        MissingRecipient: If *recipient* is absent or not a valid public key.
        EmptyContent: If *ciphertext* is blank.
    """
    if not recipient or not is_valid_public_key(recipient):
        raise MissingRecipient("encrypted messages need a recipient public key")
    return compose(
        author,
        EventKind.ENCRYPTED_DIRECT_MESSAGE,
        ciphertext,
        tags=[("p", recipient)],
        now=now,
    )

"""Bounded, deduplicated, order-preserving buffer of received events.

Events are kept most-recent-last. Inserting past capacity evicts from the
front. A set of ids mirrors the deque so duplicate detection is O(1); the
two are always updated together.
"""

from __future__ import annotations

from collections import deque
from collections.abc import Iterator

from nostrchat.core.metrics import BUFFER_SIZE
from nostrchat.models.event import Event


DEFAULT_CAPACITY = 10


class MessageBuffer:
    """Holds the last ``capacity`` distinct events.

    Examples:
        ```python
        buffer = MessageBuffer(capacity=10)
        buffer.accept(event)      # True
        buffer.accept(event)      # False, already present
        buffer.mine_only(me.public_key)
        ```
    """

    def __init__(self, capacity: int = DEFAULT_CAPACITY) -> None:
        if capacity < 1:
            raise ValueError(f"capacity must be at least 1, got {capacity}")
        self._capacity = capacity
        self._events: deque[Event] = deque()
        self._ids: set[str] = set()

    @property
    def capacity(self) -> int:
        return self._capacity

    def __len__(self) -> int:
        return len(self._events)

    def __iter__(self) -> Iterator[Event]:
        return iter(self._events)

    def __contains__(self, event_id: object) -> bool:
        return event_id in self._ids

    def accept(self, event: Event) -> bool:
        """Append *event* unless its id is already present.

        Returns:
            True if the event was added, False if it was a duplicate.
        """
        if event.id in self._ids:
            return False
        self._events.append(event)
        self._ids.add(event.id)
        while len(self._events) > self._capacity:
            evicted = self._events.popleft()
            self._ids.discard(evicted.id)
        BUFFER_SIZE.set(len(self._events))
        return True

    def events(self) -> list[Event]:
        """Snapshot of all events, oldest first."""
        return list(self._events)

    def mine_only(self, public_key: str | None) -> list[Event]:
        """Events authored by *public_key*, in buffer order.

        Computed on every call from the current contents. None yields an
        empty list.
        """
        if public_key is None:
            return []
        return [event for event in self._events if event.pubkey == public_key]

    def clear(self) -> None:
        self._events.clear()
        self._ids.clear()
        BUFFER_SIZE.set(0)

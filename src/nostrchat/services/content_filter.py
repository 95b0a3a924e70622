"""Denylist filter for inbound event content.

Rejected content is dropped silently: there is no error channel for
filtered spam. Drops are counted in ``rejected_count`` and in the
``filtered`` outcome of the events metric.
"""

from __future__ import annotations

from collections.abc import Iterable

from nostrchat.core.config import DEFAULT_DENYLIST
from nostrchat.core.metrics import EventOutcome, record_event


class ContentValidator:
    """Rejects content containing any denylisted substring, ignoring case."""

    def __init__(self, denylist: Iterable[str] = DEFAULT_DENYLIST) -> None:
        self._patterns = tuple(p.casefold() for p in denylist if p)
        self._rejected_count = 0

    @property
    def patterns(self) -> tuple[str, ...]:
        return self._patterns

    @property
    def rejected_count(self) -> int:
        """Number of contents rejected since construction."""
        return self._rejected_count

    def is_acceptable(self, content: str) -> bool:
        folded = content.casefold()
        if any(pattern in folded for pattern in self._patterns):
            self._rejected_count += 1
            record_event(EventOutcome.FILTERED)
            return False
        return True

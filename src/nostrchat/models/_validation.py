"""Shared validation helpers for frozen dataclass models.

Private module, not part of the public API. Used by ``__post_init__``
methods in sibling model modules to enforce runtime type constraints
before an instance escapes its constructor.
"""

from __future__ import annotations

import string
from typing import Any


_HEX_DIGITS = frozenset(string.hexdigits.lower())


def validate_instance(value: Any, expected: type, name: str) -> None:
    """Raise ``TypeError`` if *value* is not an instance of *expected*."""
    if not isinstance(value, expected):
        article = "an" if expected.__name__[0] in "AEIOUaeiou" else "a"
        raise TypeError(f"{name} must be {article} {expected.__name__}, got {type(value).__name__}")


def validate_timestamp(value: Any, name: str) -> None:
    """Raise if *value* is not a non-negative ``int`` (``bool`` excluded)."""
    if isinstance(value, bool) or not isinstance(value, int):
        raise TypeError(f"{name} must be an int, got {type(value).__name__}")
    if value < 0:
        raise ValueError(f"{name} must be non-negative")


def validate_str_no_null(value: Any, name: str) -> None:
    """Raise if *value* is not a ``str`` or contains null bytes."""
    if not isinstance(value, str):
        raise TypeError(f"{name} must be a str, got {type(value).__name__}")
    if "\x00" in value:
        raise ValueError(f"{name} contains null bytes")


def is_lower_hex(value: Any, length: int) -> bool:
    """Return True if *value* is a lowercase hex string of exactly *length* chars."""
    return isinstance(value, str) and len(value) == length and set(value) <= _HEX_DIGITS


def validate_hex(value: Any, length: int, name: str) -> None:
    """Raise ``ValueError`` unless *value* is lowercase hex of the given length."""
    validate_str_no_null(value, name)
    if not is_lower_hex(value, length):
        raise ValueError(f"{name} must be {length} lowercase hex characters")


def validate_tags(value: Any, name: str) -> None:
    """Raise unless *value* is a sequence of non-empty sequences of strings."""
    if not isinstance(value, (list, tuple)):
        raise TypeError(f"{name} must be a list of tags, got {type(value).__name__}")
    for tag in value:
        if not isinstance(tag, (list, tuple)) or not tag:
            raise ValueError(f"{name} entries must be non-empty lists of strings")
        for item in tag:
            validate_str_no_null(item, f"{name} item")

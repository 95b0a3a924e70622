"""
Relay addresses as typed, normalized values.

A chat client connects to whatever relay the user points it at, so any
``ws://`` or ``wss://`` host is accepted (localhost and onion hosts included)
and the scheme the user chose is kept. Two spellings of the same relay
normalize to the same [Relay.url][nostrchat.models.relay.Relay.url], which is
what the session compares to decide whether a reconnect is a no-op.
"""

from __future__ import annotations

import re
from dataclasses import dataclass, field
from typing import NamedTuple

from rfc3986 import uri_reference
from rfc3986.exceptions import UnpermittedComponentError, ValidationError
from rfc3986.validators import Validator


DEFAULT_PORTS = {"ws": 80, "wss": 443}

_VALIDATOR = (
    Validator()
    .require_presence_of("scheme", "host")
    .allow_schemes(*DEFAULT_PORTS)
    .check_validity_of("scheme", "host", "port", "path")
)
_REPEATED_SLASHES = re.compile(r"/{2,}")


class _Parts(NamedTuple):
    scheme: str
    host: str
    port: int | None
    path: str | None


def _split(raw: str) -> _Parts:
    uri = uri_reference(raw.strip()).normalize()
    try:
        _VALIDATOR.validate(uri)
    except UnpermittedComponentError:
        raise ValueError(f"unsupported scheme {uri.scheme!r}, expected ws or wss") from None
    except ValidationError as e:
        raise ValueError(f"malformed relay URL: {e}") from None

    if uri.query:
        raise ValueError("relay URL must not carry a query string")
    if uri.fragment:
        raise ValueError("relay URL must not carry a fragment")

    host = (uri.host or "").strip("[]")
    if not host:
        raise ValueError("relay URL has no host")

    port = int(uri.port) if uri.port else None
    if port == DEFAULT_PORTS[uri.scheme]:
        port = None

    path = _REPEATED_SLASHES.sub("/", uri.path or "").rstrip("/") or None
    return _Parts(uri.scheme, host, port, path)


@dataclass(frozen=True, slots=True)
class Relay:
    """A validated relay address.

    Attributes:
        url: Normalized address: lower-case scheme and host, default port
            and trailing slash dropped, repeated slashes collapsed.
        scheme: ``ws`` or ``wss``.
        host: Host name or IP (IPv6 without brackets).
        port: Non-default port, or ``None``.
        path: Path without trailing slash, or ``None``.

    Raises:
        TypeError: If *raw_url* is not a string.
        ValueError: If the URL is malformed, not ws/wss, carries a query or
            fragment, or contains a null byte.

    Examples:
        ```python
        relay = Relay("WSS://Ch.PurpleRelay.com:443/")
        relay.url        # 'wss://ch.purplerelay.com'
        relay.https_url  # 'https://ch.purplerelay.com'
        ```
    """

    raw_url: str = field(repr=False)
    url: str = field(init=False)
    scheme: str = field(init=False)
    host: str = field(init=False)
    port: int | None = field(init=False)
    path: str | None = field(init=False)

    def __post_init__(self) -> None:
        if not isinstance(self.raw_url, str):
            raise TypeError(f"raw_url must be a str, got {type(self.raw_url).__name__}")
        if "\x00" in self.raw_url:
            raise ValueError("relay URL contains a null byte")

        parts = _split(self.raw_url)
        netloc = f"[{parts.host}]" if ":" in parts.host else parts.host
        if parts.port is not None:
            netloc = f"{netloc}:{parts.port}"

        # Frozen dataclass: computed fields are written once here
        object.__setattr__(self, "url", f"{parts.scheme}://{netloc}{parts.path or ''}")
        for name, value in parts._asdict().items():
            object.__setattr__(self, name, value)

    def __str__(self) -> str:
        return self.url

    @property
    def https_url(self) -> str:
        """The address as ``https://`` (or ``http://`` for ``ws``), for opening in a browser."""
        http_scheme = "https" if self.scheme == "wss" else "http"
        return http_scheme + self.url[len(self.scheme) :]

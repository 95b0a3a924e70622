r"""nostrchat -- a minimal Nostr chat client.

Connects to one relay at a time, keeps a short buffer of recent text notes
and encrypted direct messages, and publishes signed messages with either a
local key or an external signing agent.

Architecture follows a **diamond DAG** dependency structure where imports
flow strictly downward:

```text
              services         Relay session, orchestration, buffer
             /   |   \
          core  nips  utils    Config, preferences, crypto, relay client
             \   |   /
              models           Frozen dataclasses (identity, relay, event)
```

``nostrchat.exceptions`` sits beside the DAG and may be imported by any layer.

Note:
    Top-level imports (``from nostrchat import Identity``) use lazy loading
    and resolve on first access.
"""

import importlib
from importlib.metadata import version as _get_version


__version__ = _get_version("nostrchat")

__all__ = [
    "ChatConfig",
    "ContentValidator",
    "Event",
    "Identity",
    "Logger",
    "MessageBuffer",
    "Preferences",
    "PublishAck",
    "Relay",
    "RelaySession",
    "SessionOrchestrator",
    "UnsignedEvent",
]

_LAZY_IMPORTS: dict[str, tuple[str, str]] = {
    "ChatConfig": ("nostrchat.core", "ChatConfig"),
    "Logger": ("nostrchat.core", "Logger"),
    "Preferences": ("nostrchat.core", "Preferences"),
    "Event": ("nostrchat.models", "Event"),
    "Identity": ("nostrchat.models", "Identity"),
    "Relay": ("nostrchat.models", "Relay"),
    "UnsignedEvent": ("nostrchat.models", "UnsignedEvent"),
    "ContentValidator": ("nostrchat.services", "ContentValidator"),
    "MessageBuffer": ("nostrchat.services", "MessageBuffer"),
    "PublishAck": ("nostrchat.services", "PublishAck"),
    "RelaySession": ("nostrchat.services", "RelaySession"),
    "SessionOrchestrator": ("nostrchat.services", "SessionOrchestrator"),
}


def __getattr__(name: str) -> object:
    if name in _LAZY_IMPORTS:
        module_path, attr_name = _LAZY_IMPORTS[name]
        module = importlib.import_module(module_path)
        value = getattr(module, attr_name)
        globals()[name] = value  # Cache for subsequent access
        return value
    raise AttributeError(f"module 'nostrchat' has no attribute {name!r}")


def __dir__() -> list[str]:
    return __all__

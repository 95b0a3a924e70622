"""Session services: the top layer of the diamond DAG.

Depends on [nostrchat.core][nostrchat.core], [nostrchat.nips][nostrchat.nips],
[nostrchat.utils][nostrchat.utils], and [nostrchat.models][nostrchat.models].

```text
relay --(EVENT)--> RelaySession --(verified)--> ContentValidator --> MessageBuffer
                        ^                                                |
                        +------ SessionOrchestrator (subscribe/publish) -+
```

Attributes:
    MessageBuffer: Bounded, deduplicated event buffer with a mine-only view.
    ContentValidator: Case-insensitive substring denylist for inbound content.
    RelaySession: One relay connection with at most one live subscription.
    SessionOrchestrator: Keeps the subscription consistent with identity and
        connection state and runs the send pipeline.

Examples:
    ```python
    from nostrchat.core import ChatConfig, Preferences
    from nostrchat.services import SessionOrchestrator

    async with SessionOrchestrator(ChatConfig(), Preferences.load()) as chat:
        await chat.start()
        await chat.send_message("gm")
    ```
"""

from .buffer import DEFAULT_CAPACITY, MessageBuffer
from .content_filter import ContentValidator
from .orchestrator import SessionOrchestrator, desired_subscription
from .relay_session import PublishAck, RelaySession, SubscriptionHandle


__all__ = [
    "DEFAULT_CAPACITY",
    "ContentValidator",
    "MessageBuffer",
    "PublishAck",
    "RelaySession",
    "SessionOrchestrator",
    "SubscriptionHandle",
    "desired_subscription",
]

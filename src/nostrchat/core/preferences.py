"""
User preferences loaded once at startup and saved key by key on change.

[Preferences][nostrchat.core.preferences.Preferences] is the owned state
struct for everything the client remembers across restarts: whether to
remember anything at all, the identity, the mine-only filter toggle, the
encryption toggle, the signing-agent toggle, and the relay address. Each
setter writes only the key it changed. While ``use_store`` is off nothing
but the ``use_store`` flag itself is written.

Values are JSON-encoded strings under the names in
[PreferenceKey][nostrchat.models.constants.PreferenceKey]. Malformed values
are treated as absent; a corrupt identity is also removed from the store.
"""

from __future__ import annotations

import json
import logging
from typing import Any

from nostrchat.exceptions import CorruptIdentity
from nostrchat.models.constants import PreferenceKey
from nostrchat.models.identity import Identity

from .store import KeyValueStore, MemoryStore


logger = logging.getLogger(__name__)


def _read_json(store: KeyValueStore, key: PreferenceKey) -> Any:
    raw = store.get(key)
    if raw is None:
        return None
    try:
        return json.loads(raw)
    except ValueError:
        logger.warning("preference_malformed key=%s", key.value)
        return None


def _read_bool(store: KeyValueStore, key: PreferenceKey, default: bool) -> bool:
    value = _read_json(store, key)
    return value if isinstance(value, bool) else default


class Preferences:
    """Persisted client preferences bound to a key-value store.

    Use [load()][nostrchat.core.preferences.Preferences.load] to read the
    current values from a store. Attribute reads are plain; all writes go
    through the ``set_*`` methods so persistence happens exactly once per
    change.

    Attributes:
        use_store: Whether preferences are persisted at all. Defaults to True.
        identity: The resolved identity, or None.
        messages_filtered: Show only the current identity's messages.
        message_encrypted: Encrypt outgoing messages.
        using_agent: Sign through the external signing agent.
        relay_url: The last relay connected to, or None.
    """

    def __init__(
        self,
        store: KeyValueStore | None = None,
        *,
        use_store: bool = True,
        identity: Identity | None = None,
        messages_filtered: bool = False,
        message_encrypted: bool = False,
        using_agent: bool = False,
        relay_url: str | None = None,
    ) -> None:
        self._store: KeyValueStore = store if store is not None else MemoryStore()
        self.use_store = use_store
        self.identity = identity
        self.messages_filtered = messages_filtered
        self.message_encrypted = message_encrypted
        self.using_agent = using_agent
        self.relay_url = relay_url

    def __repr__(self) -> str:
        return (
            f"Preferences(use_store={self.use_store}, identity={self.identity!r}, "
            f"messages_filtered={self.messages_filtered}, "
            f"message_encrypted={self.message_encrypted}, "
            f"using_agent={self.using_agent}, relay_url={self.relay_url!r})"
        )

    @property
    def store(self) -> KeyValueStore:
        return self._store

    @classmethod
    def load(cls, store: KeyValueStore | None = None) -> Preferences:
        """Read preferences from *store*, falling back to defaults.

        When the stored ``use_store`` flag is False every other value is
        ignored and defaults are used.
        """
        store = store if store is not None else MemoryStore()
        use_store = _read_bool(store, PreferenceKey.USE_STORE, True)
        if not use_store:
            return cls(store, use_store=False)

        relay_url = _read_json(store, PreferenceKey.RELAY_URL)
        return cls(
            store,
            use_store=True,
            identity=cls._load_identity(store),
            messages_filtered=_read_bool(store, PreferenceKey.MESSAGES_FILTERED, False),
            message_encrypted=_read_bool(store, PreferenceKey.MESSAGE_ENCRYPTED, False),
            using_agent=_read_bool(store, PreferenceKey.USING_AGENT, False),
            relay_url=relay_url if isinstance(relay_url, str) else None,
        )

    @staticmethod
    def _load_identity(store: KeyValueStore) -> Identity | None:
        raw = store.get(PreferenceKey.IDENTITY)
        if raw is None:
            return None
        try:
            return Identity.deserialize(raw)
        except CorruptIdentity as e:
            logger.warning("stored_identity_discarded reason=%s", e)
            store.remove(PreferenceKey.IDENTITY)
            return None

    # -- persistence ---------------------------------------------------------

    def _save(self, key: PreferenceKey, value: Any) -> None:
        if self.use_store:
            self._store.set(key, json.dumps(value))

    def set_use_store(self, enabled: bool) -> None:
        """Turn persistence on or off.

        Turning it off clears the store and resets the identity and every
        toggle to its default. Turning it on writes the current values.
        """
        self.use_store = enabled
        if enabled:
            self.save_all()
            return
        self._store.clear()
        self.identity = None
        self.messages_filtered = False
        self.message_encrypted = False
        self.using_agent = False
        self._store.set(PreferenceKey.USE_STORE, json.dumps(False))

    def set_identity(self, identity: Identity | None) -> None:
        self.identity = identity
        if identity is None or not self.use_store:
            self._store.remove(PreferenceKey.IDENTITY)
        else:
            self._store.set(PreferenceKey.IDENTITY, identity.serialize())

    def set_messages_filtered(self, enabled: bool) -> None:
        self.messages_filtered = enabled
        self._save(PreferenceKey.MESSAGES_FILTERED, enabled)

    def set_message_encrypted(self, enabled: bool) -> None:
        self.message_encrypted = enabled
        self._save(PreferenceKey.MESSAGE_ENCRYPTED, enabled)

    def set_using_agent(self, enabled: bool) -> None:
        self.using_agent = enabled
        self._save(PreferenceKey.USING_AGENT, enabled)

    def set_relay_url(self, relay_url: str | None) -> None:
        self.relay_url = relay_url
        self._save(PreferenceKey.RELAY_URL, relay_url)

    def save_all(self) -> None:
        """Write every preference, e.g. right after persistence is enabled."""
        self._store.set(PreferenceKey.USE_STORE, json.dumps(self.use_store))
        if not self.use_store:
            return
        self.set_identity(self.identity)
        self._save(PreferenceKey.MESSAGES_FILTERED, self.messages_filtered)
        self._save(PreferenceKey.MESSAGE_ENCRYPTED, self.message_encrypted)
        self._save(PreferenceKey.USING_AGENT, self.using_agent)
        self._save(PreferenceKey.RELAY_URL, self.relay_url)

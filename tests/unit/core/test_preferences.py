"""
Unit tests for core.preferences module.

Tests:
- Preferences.load() defaults, stored values, malformed values
- Save-on-change setters
- use_store off: store cleared, toggles reset, nothing else written
- use_store on: everything written
"""

import json

from nostrchat.core.preferences import Preferences
from nostrchat.core.store import MemoryStore
from nostrchat.models.constants import PreferenceKey
from nostrchat.models.identity import Identity


def stored(store: MemoryStore, key: PreferenceKey) -> object:
    raw = store.get(key)
    return None if raw is None else json.loads(raw)


# ============================================================================
# Loading
# ============================================================================


class TestPreferencesLoad:
    """Preferences.load()."""

    def test_defaults_from_empty_store(self) -> None:
        prefs = Preferences.load(MemoryStore())
        assert prefs.use_store is True
        assert prefs.identity is None
        assert prefs.messages_filtered is False
        assert prefs.message_encrypted is False
        assert prefs.using_agent is False
        assert prefs.relay_url is None

    def test_default_store_is_memory(self) -> None:
        assert isinstance(Preferences.load().store, MemoryStore)

    def test_reads_stored_values(self, identity: Identity) -> None:
        store = MemoryStore(
            {
                "useLocalStorage": "true",
                "nostrUser": identity.serialize(),
                "messagesIsFiltered": "true",
                "messageIsEncrypted": "true",
                "isUsingNostrConnect": "false",
                "relayUrl": '"wss://ir.purplerelay.com"',
            }
        )
        prefs = Preferences.load(store)
        assert prefs.identity == identity
        assert prefs.messages_filtered is True
        assert prefs.message_encrypted is True
        assert prefs.using_agent is False
        assert prefs.relay_url == "wss://ir.purplerelay.com"

    def test_use_store_off_ignores_everything_else(self, identity: Identity) -> None:
        store = MemoryStore(
            {
                "useLocalStorage": "false",
                "nostrUser": identity.serialize(),
                "messagesIsFiltered": "true",
            }
        )
        prefs = Preferences.load(store)
        assert prefs.use_store is False
        assert prefs.identity is None
        assert prefs.messages_filtered is False

    def test_malformed_values_are_defaults(self) -> None:
        store = MemoryStore(
            {
                "messagesIsFiltered": "{nope",
                "messageIsEncrypted": '"yes"',
                "relayUrl": "5",
            }
        )
        prefs = Preferences.load(store)
        assert prefs.messages_filtered is False
        assert prefs.message_encrypted is False
        assert prefs.relay_url is None

    def test_corrupt_identity_removed(self) -> None:
        store = MemoryStore({"nostrUser": '{"publicKey": "abc"}'})
        prefs = Preferences.load(store)
        assert prefs.identity is None
        assert store.get("nostrUser") is None


# ============================================================================
# Setters
# ============================================================================


class TestPreferencesSetters:
    """Each setter writes exactly its own key."""

    def test_toggle_setters(self) -> None:
        store = MemoryStore()
        prefs = Preferences(store)
        prefs.set_messages_filtered(True)
        prefs.set_message_encrypted(True)
        prefs.set_using_agent(True)
        prefs.set_relay_url("wss://relay.example.com")
        assert stored(store, PreferenceKey.MESSAGES_FILTERED) is True
        assert stored(store, PreferenceKey.MESSAGE_ENCRYPTED) is True
        assert stored(store, PreferenceKey.USING_AGENT) is True
        assert stored(store, PreferenceKey.RELAY_URL) == "wss://relay.example.com"

    def test_setter_writes_single_key(self) -> None:
        store = MemoryStore()
        Preferences(store).set_message_encrypted(True)
        assert len(store) == 1

    def test_set_identity(self, identity: Identity) -> None:
        store = MemoryStore()
        prefs = Preferences(store)
        prefs.set_identity(identity)
        assert Identity.deserialize(store.get("nostrUser") or "") == identity
        prefs.set_identity(None)
        assert store.get("nostrUser") is None
        assert prefs.identity is None

    def test_nothing_written_when_use_store_off(self, identity: Identity) -> None:
        store = MemoryStore()
        prefs = Preferences(store, use_store=False)
        prefs.set_identity(identity)
        prefs.set_message_encrypted(True)
        assert len(store) == 0
        assert prefs.identity == identity
        assert prefs.message_encrypted is True

    def test_round_trip_through_store(self, identity: Identity) -> None:
        store = MemoryStore()
        prefs = Preferences(store)
        prefs.set_identity(identity)
        prefs.set_messages_filtered(True)
        prefs.set_relay_url("wss://ir.purplerelay.com")
        loaded = Preferences.load(store)
        assert loaded.identity == identity
        assert loaded.messages_filtered is True
        assert loaded.relay_url == "wss://ir.purplerelay.com"


class TestSetUseStore:
    """Turning persistence on and off."""

    def test_off_clears_store_and_resets(self, identity: Identity) -> None:
        store = MemoryStore()
        prefs = Preferences(store)
        prefs.set_identity(identity)
        prefs.set_messages_filtered(True)
        prefs.set_message_encrypted(True)
        prefs.set_using_agent(True)
        prefs.set_relay_url("wss://relay.example.com")

        prefs.set_use_store(False)

        assert prefs.identity is None
        assert prefs.messages_filtered is False
        assert prefs.message_encrypted is False
        assert prefs.using_agent is False
        assert dict(store._data) == {"useLocalStorage": "false"}

    def test_on_writes_everything(self, identity: Identity) -> None:
        store = MemoryStore()
        prefs = Preferences(store, use_store=False)
        prefs.set_identity(identity)
        prefs.set_message_encrypted(True)

        prefs.set_use_store(True)

        assert stored(store, PreferenceKey.USE_STORE) is True
        assert stored(store, PreferenceKey.MESSAGE_ENCRYPTED) is True
        assert Identity.deserialize(store.get("nostrUser") or "") == identity
        assert Preferences.load(store).message_encrypted is True

    def test_repr_hides_private_key(self, identity: Identity) -> None:
        prefs = Preferences(identity=identity)
        assert identity.private_key not in repr(prefs)

"""
Unit tests for models.event module.

Tests:
- UnsignedEvent field validation and tag freezing
- Kind 4 recipient requirement
- Event wire conversion (to_dict, to_json, from_dict, from_json)
"""

import json

import pytest

from nostrchat.models.event import Event, UnsignedEvent, freeze_tags
from tests.conftest import OTHER_PUBLIC_KEY, VALID_PUBLIC_KEY


EVENT_ID = "eeaf6019d3539958822e623fa80fea5459003a6d9bfbf79014b01fd9bb11d46b"
SIG = "ab" * 64


def unsigned(**overrides: object) -> UnsignedEvent:
    fields: dict[str, object] = {
        "pubkey": VALID_PUBLIC_KEY,
        "created_at": 1_700_000_000,
        "kind": 1,
        "tags": [],
        "content": "hello",
    }
    fields.update(overrides)
    return UnsignedEvent(**fields)  # type: ignore[arg-type]


def wire(**overrides: object) -> dict[str, object]:
    data: dict[str, object] = {
        "id": EVENT_ID,
        "pubkey": VALID_PUBLIC_KEY,
        "created_at": 1_700_000_000,
        "kind": 1,
        "tags": [],
        "content": "hello",
        "sig": SIG,
    }
    data.update(overrides)
    return data


# ============================================================================
# UnsignedEvent
# ============================================================================


class TestUnsignedEvent:
    """Field validation."""

    def test_tags_are_frozen(self) -> None:
        event = unsigned(tags=[["p", OTHER_PUBLIC_KEY], ["t", "nostr"]])
        assert event.tags == (("p", OTHER_PUBLIC_KEY), ("t", "nostr"))
        hash(event)

    def test_freeze_tags(self) -> None:
        assert freeze_tags([["a", "b"], ("c",)]) == (("a", "b"), ("c",))

    @pytest.mark.parametrize(
        ("field", "value", "error"),
        [
            ("pubkey", "abc", ValueError),
            ("pubkey", 5, TypeError),
            ("created_at", -1, ValueError),
            ("created_at", "1", TypeError),
            ("created_at", True, TypeError),
            ("kind", 70_000, ValueError),
            ("kind", -1, ValueError),
            ("kind", "1", TypeError),
            ("tags", "p", TypeError),
            ("tags", [[]], ValueError),
            ("tags", [["p", 5]], TypeError),
            ("content", None, TypeError),
            ("content", "a\x00b", ValueError),
        ],
    )
    def test_invalid_fields(self, field: str, value: object, error: type[Exception]) -> None:
        with pytest.raises(error):
            unsigned(**{field: value})

    def test_kind4_requires_p_tag(self) -> None:
        with pytest.raises(ValueError, match="p tag"):
            unsigned(kind=4, tags=[["t", "dm"]])

    def test_recipient(self) -> None:
        event = unsigned(kind=4, tags=[["e", "x"], ["p", OTHER_PUBLIC_KEY], ["p", VALID_PUBLIC_KEY]])
        assert event.recipient == OTHER_PUBLIC_KEY

    def test_recipient_absent(self) -> None:
        assert unsigned().recipient is None

    def test_to_dict(self) -> None:
        event = unsigned(tags=[("t", "x")])
        assert event.to_dict() == {
            "pubkey": VALID_PUBLIC_KEY,
            "created_at": 1_700_000_000,
            "kind": 1,
            "tags": [["t", "x"]],
            "content": "hello",
        }


# ============================================================================
# Event
# ============================================================================


class TestEvent:
    """Signed event wire conversion."""

    def test_from_dict(self) -> None:
        event = Event.from_dict(wire())
        assert event.id == EVENT_ID
        assert event.sig == SIG
        assert event.content == "hello"

    def test_to_dict_round_trips_wire_shape(self) -> None:
        data = wire(tags=[["t", "x"]])
        assert Event.from_dict(data).to_dict() == data
        assert list(Event.from_dict(data).to_dict()) == [
            "id",
            "pubkey",
            "created_at",
            "kind",
            "tags",
            "content",
            "sig",
        ]

    def test_to_json_is_compact(self) -> None:
        raw = Event.from_dict(wire(content="héllo")).to_json()
        assert ", " not in raw
        assert "héllo" in raw
        assert Event.from_json(raw) == Event.from_dict(wire(content="héllo"))

    def test_unsigned_view(self) -> None:
        assert Event.from_dict(wire()).unsigned == unsigned()

    def test_missing_field(self) -> None:
        data = wire()
        del data["sig"]
        with pytest.raises(ValueError, match="sig"):
            Event.from_dict(data)

    def test_not_a_mapping(self) -> None:
        with pytest.raises(TypeError):
            Event.from_dict(["EVENT"])  # type: ignore[arg-type]

    @pytest.mark.parametrize("field", ["id", "sig"])
    def test_malformed_hex(self, field: str) -> None:
        with pytest.raises(ValueError):
            Event.from_dict(wire(**{field: "XYZ"}))

    def test_from_json_invalid(self) -> None:
        with pytest.raises(ValueError):
            Event.from_json("{not json")

    def test_kind4_without_p_tag_rejected(self) -> None:
        with pytest.raises(ValueError):
            Event.from_dict(wire(kind=4))

    def test_json_roundtrip_of_payload(self) -> None:
        data = json.loads(Event.from_dict(wire()).to_json())
        assert data["id"] == EVENT_ID

"""Tests for the property-bag entities and the entry document shape."""

from __future__ import annotations

import pytest
from pydantic import ValidationError

from pybridge.exceptions import BridgeValidationError
from pybridge.models.entity import BridgeEntity, LocalRoom, RemoteRoom
from pybridge.models.entry import RoomEntry

# ------------------------------------------------------------------
# BridgeEntity
# ------------------------------------------------------------------


class TestBridgeEntity:
    def test_get_and_set(self) -> None:
        room = LocalRoom("!foo:bar")
        room.set("name", "Foo")
        room.set("nested", {"a": [1, 2, {"b": None}]})

        assert room.get_id() == "!foo:bar"
        assert room.get("name") == "Foo"
        assert room.get("nested") == {"a": [1, 2, {"b": None}]}
        assert room.get("missing") is None
        assert room.get("missing", "fallback") == "fallback"

    def test_set_replaces_value(self) -> None:
        room = RemoteRoom("#foo", {"k": 1})
        room.set("k", 2)
        assert room.get("k") == 2

    def test_set_rejects_non_json_value(self) -> None:
        room = LocalRoom("!foo:bar")
        with pytest.raises(BridgeValidationError):
            room.set("bad", object())
        assert room.get("bad") is None

    def test_empty_id_rejected(self) -> None:
        with pytest.raises(ValidationError):
            LocalRoom("   ")

    def test_id_and_properties_kept_verbatim(self) -> None:
        room = RemoteRoom(" #foo ", {" key ": "  value  "})
        assert room.id == " #foo "
        assert room.get(" key ") == "  value  "
        assert room.get("key") is None

    def test_constructor_is_as_strict_as_set(self) -> None:
        with pytest.raises(ValidationError):
            LocalRoom("!foo:bar", {"pair": (1, 2)})
        room = LocalRoom("!foo:bar")
        with pytest.raises(BridgeValidationError):
            room.set("pair", (1, 2))

    def test_identity_is_id_only(self) -> None:
        a = BridgeEntity("x", {"p": 1})
        b = BridgeEntity("x", {"p": 2})
        c = BridgeEntity("y", {"p": 1})
        assert a.same_slot(b)
        assert not a.same_slot(c)

    def test_serialize_is_a_copy(self) -> None:
        room = LocalRoom("!foo:bar", {"list": [1]})
        data = room.serialize()
        data["list"].append(2)
        assert room.get("list") == [1]

    def test_from_serialized_keeps_subclass(self) -> None:
        room = RemoteRoom.from_serialized("#foo", {"k": "v"})
        assert isinstance(room, RemoteRoom)
        assert room.get("k") == "v"
        assert RemoteRoom.from_serialized("#foo", None).properties == {}


# ------------------------------------------------------------------
# RoomEntry
# ------------------------------------------------------------------


class TestRoomEntry:
    def test_document_shape(self) -> None:
        entry = RoomEntry(
            id="flibble",
            local=LocalRoom("!foo:bar", {"mx": 1}),
            remote=RemoteRoom("#flibble", {"r": {"n": True}}),
            data={"some": "data"},
        )

        assert entry.to_document() == {
            "id": "flibble",
            "local_id": "!foo:bar",
            "remote_id": "#flibble",
            "local": {"mx": 1},
            "remote": {"r": {"n": True}},
            "data": {"some": "data"},
        }

    def test_from_document(self) -> None:
        entry = RoomEntry.from_document(
            {
                "id": "flibble",
                "local_id": "!foo:bar",
                "remote_id": "#flibble",
                "local": {},
                "remote": {"k": "v"},
                "data": None,
            }
        )

        assert isinstance(entry.local, LocalRoom)
        assert isinstance(entry.remote, RemoteRoom)
        assert entry.remote.get("k") == "v"
        assert entry.data is None

    def test_data_rejects_tuple(self) -> None:
        with pytest.raises(ValidationError):
            RoomEntry(id="e", local=LocalRoom("!a"), remote=RemoteRoom("#a"), data={"pair": (1, 2)})

    def test_padded_id_and_data_kept_verbatim(self) -> None:
        entry = RoomEntry(id=" e ", local=LocalRoom("!a"), remote=RemoteRoom("#a"), data={" k ": " v "})
        document = entry.to_document()
        assert document["id"] == " e "
        assert document["data"] == {" k ": " v "}

    def test_create_id_is_stable_and_unambiguous(self) -> None:
        assert RoomEntry.create_id("!a", "#b") == RoomEntry.create_id("!a", "#b")
        assert RoomEntry.create_id("!a", "#b") != RoomEntry.create_id("#b", "!a")
        # A plain delimiter join would collide here.
        assert RoomEntry.create_id("a b", "c") != RoomEntry.create_id("a", "b c")

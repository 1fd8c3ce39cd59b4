"""Persisted link between a local and a remote room."""

from __future__ import annotations

import json
import uuid
from typing import Any

from pydantic import BaseModel, ConfigDict, JsonValue, field_validator

from pybridge.models.entity import LocalRoom, RemoteRoom, ensure_json_value

# Namespace for ids generated by link_rooms(); changing it changes every derived id.
_ENTRY_ID_NAMESPACE = uuid.UUID("6f1c2a4e-93b1-5c1e-8d2b-7a0e4f3c9b11")

#: Top-level document fields the store filters on.
ENTRY_INDEXES: tuple[str, ...] = ("id", "local_id", "remote_id")


class RoomEntry(BaseModel):
    """A link between one local and one remote room plus an opaque payload.

    ``id`` is the primary key and lives in its own namespace: it is never
    compared against ``local.id`` or ``remote.id``.
    """

    model_config = ConfigDict(
        extra="forbid",
        validate_default=True,
    )

    id: str
    local: LocalRoom
    remote: RemoteRoom
    data: JsonValue = None

    @field_validator("id")
    @classmethod
    def _id_non_empty(cls, value: str) -> str:
        if not value.strip():
            raise ValueError("id must be non-empty")
        return value

    @field_validator("data", mode="before")
    @classmethod
    def _data_strict_json(cls, value: Any) -> Any:
        return ensure_json_value(value, what="data")

    @staticmethod
    def create_id(local_id: str, remote_id: str) -> str:
        """Deterministic entry id for a (local, remote) pair."""
        return str(uuid.uuid5(_ENTRY_ID_NAMESPACE, json.dumps([local_id, remote_id])))

    def to_document(self) -> dict[str, Any]:
        return {
            "id": self.id,
            "local_id": self.local.id,
            "remote_id": self.remote.id,
            "local": self.local.serialize(),
            "remote": self.remote.serialize(),
            "data": self.data,
        }

    @classmethod
    def from_document(cls, document: dict[str, Any]) -> RoomEntry:
        return cls(
            id=document["id"],
            local=LocalRoom.from_serialized(document["local_id"], document.get("local")),
            remote=RemoteRoom.from_serialized(document["remote_id"], document.get("remote")),
            data=document.get("data"),
        )

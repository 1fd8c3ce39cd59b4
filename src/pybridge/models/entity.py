"""Property-bag entities for both sides of a bridge link.

A :class:`BridgeEntity` is an identifier plus a free-form mapping of
JSON-serializable values.  Identity is the ``id`` alone; properties never
take part in identity or indexing.
"""

from __future__ import annotations

import copy
from typing import Any

from pydantic import BaseModel, ConfigDict, Field, JsonValue, TypeAdapter, ValidationError, field_validator

from pybridge.exceptions import BridgeValidationError

_JSON_VALUE = TypeAdapter(JsonValue)


def ensure_json_value(value: Any, *, what: str = "value") -> JsonValue:
    """Return *value* if it is JSON-serializable, else raise ``BridgeValidationError``."""
    try:
        return _JSON_VALUE.validate_python(value, strict=True)
    except ValidationError as exc:
        raise BridgeValidationError(f"{what} is not JSON-serializable: {value!r}") from exc


class BridgeEntity(BaseModel):
    """An identifier with a mutable bag of JSON properties."""

    # Ids and property strings are stored exactly as given: no whitespace stripping.
    model_config = ConfigDict(
        extra="forbid",
        validate_default=True,
    )

    id: str
    properties: dict[str, JsonValue] = Field(default_factory=dict)

    def __init__(self, id: str, properties: dict[str, Any] | None = None, **kwargs: Any) -> None:  # noqa: A002
        super().__init__(id=id, properties=properties if properties is not None else {}, **kwargs)

    @field_validator("id")
    @classmethod
    def _id_non_empty(cls, value: str) -> str:
        if not value.strip():
            raise ValueError("id must be non-empty")
        return value

    @field_validator("properties", mode="before")
    @classmethod
    def _properties_strict_json(cls, value: Any) -> Any:
        # Same strict check as set(), so a tuple is rejected on both paths.
        if not isinstance(value, dict):
            raise BridgeValidationError("properties must be a dict")
        return ensure_json_value(value, what="properties")

    def get_id(self) -> str:
        return self.id

    def get(self, key: str, default: Any = None) -> Any:
        """Return the property stored under *key*, or *default*."""
        return self.properties.get(key, default)

    def set(self, key: str, value: Any) -> None:
        """Store *value* under *key*, replacing any previous value."""
        self.properties[key] = ensure_json_value(value, what=f"property {key!r}")

    def serialize(self) -> dict[str, Any]:
        """Deep copy of the property bag, safe to persist."""
        return copy.deepcopy(self.properties)

    @classmethod
    def from_serialized(cls, id: str, properties: dict[str, Any] | None) -> BridgeEntity:  # noqa: A002
        return cls(id, copy.deepcopy(properties) if properties else {})

    def same_slot(self, other: BridgeEntity) -> bool:
        """Whether *other* refers to the same entity (ids match)."""
        return self.id == other.id


class LocalRoom(BridgeEntity):
    """Entity living in the local identifier space."""


class RemoteRoom(BridgeEntity):
    """Entity living in the remote identifier space."""

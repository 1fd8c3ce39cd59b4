"""Storage interface and filter normalisation shared by every engine."""

from __future__ import annotations

from collections.abc import Iterable, Mapping, Sequence
from typing import Any, Protocol

from pybridge.exceptions import BridgeValidationError

#: Operator for membership filters, ``{"field": {"$in": [...]}}``.
IN_OPERATOR = "$in"

Document = dict[str, Any]
Filter = Mapping[str, Any]


class DocumentStore(Protocol):
    """Structural interface for a document engine.

    Documents are JSON objects keyed by a string primary key.  Filters map a
    top-level indexed field to a scalar (equality) or to ``{"$in": [...]}``.
    Every failure surfaces as :class:`pybridge.exceptions.BridgeStorageError`.

    Having a protocol here keeps the room store independent of the concrete
    engine and makes it easy to pass test doubles.
    """

    async def open(self) -> None: ...

    async def close(self) -> None: ...

    async def upsert(self, key: str, document: Document) -> None: ...

    async def find_one(self, filter: Filter) -> Document | None: ...  # noqa: A002

    async def find_many(self, filter: Filter) -> list[Document]: ...  # noqa: A002


def _require_hashable(field_name: str, value: Any) -> None:
    try:
        hash(value)
    except TypeError as exc:
        raise BridgeValidationError(f"Filter value for {field_name!r} must be a scalar, got {value!r}") from exc


def normalize_filter(filter: Filter, indexes: Iterable[str]) -> dict[str, tuple[Any, ...]]:  # noqa: A002
    """Turn a filter into ``{field: (allowed values, ...)}``.

    Equality becomes a one-value tuple.  Fields outside *indexes* are
    rejected: engines only answer indexed lookups.
    """
    allowed = set(indexes)
    normalized: dict[str, tuple[Any, ...]] = {}
    for field_name, condition in filter.items():
        if field_name not in allowed:
            raise BridgeValidationError(f"Field {field_name!r} is not indexed")
        if isinstance(condition, Mapping):
            if set(condition) != {IN_OPERATOR}:
                raise BridgeValidationError(f"Unsupported filter operator for {field_name!r}: {sorted(condition)}")
            values = condition[IN_OPERATOR]
            if isinstance(values, (str, bytes)) or not isinstance(values, (Sequence, set, frozenset)):
                raise BridgeValidationError(f"{IN_OPERATOR} for {field_name!r} expects a collection of values")
            for value in values:
                _require_hashable(field_name, value)
            # dict.fromkeys de-duplicates while keeping first-seen order.
            normalized[field_name] = tuple(dict.fromkeys(values))
        else:
            _require_hashable(field_name, condition)
            normalized[field_name] = (condition,)
    return normalized


def matches(document: Document, normalized: Mapping[str, tuple[Any, ...]]) -> bool:
    return all(document.get(field_name) in values for field_name, values in normalized.items())

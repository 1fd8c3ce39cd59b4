"""In-process document engine with secondary indexes."""

from __future__ import annotations

import json
import logging
from collections.abc import Hashable, Sequence
from typing import Any

from pybridge._storage.base import Document, Filter, matches, normalize_filter
from pybridge.exceptions import BridgeStorageError

_logger = logging.getLogger(__name__)


class MemoryDocumentStore:
    """Dict-backed engine.

    Documents are kept JSON-encoded so reads always hand out fresh copies and
    non-serializable payloads fail at write time, the same as on disk.
    Each indexed field maps ``value -> keys`` and is rewritten on every
    replace so a stale value never points at a document.
    """

    def __init__(self, *, indexes: Sequence[str] = ()) -> None:
        self._indexes = tuple(indexes)
        self._documents: dict[str, str] = {}
        self._index: dict[str, dict[Hashable, dict[str, None]]] = {name: {} for name in self._indexes}
        self._opened = False

    async def open(self) -> None:
        self._opened = True
        _logger.debug("Opened in-memory document store indexes=%s", self._indexes)

    async def close(self) -> None:
        self._opened = False

    def _require_open(self, operation: str) -> None:
        if not self._opened:
            raise BridgeStorageError("Document store is not open", operation=operation)

    async def upsert(self, key: str, document: Document) -> None:
        self._require_open("upsert")
        try:
            encoded = json.dumps(document, separators=(",", ":"))
        except (TypeError, ValueError) as exc:
            raise BridgeStorageError(f"Document {key!r} is not JSON-serializable: {exc}", operation="upsert") from exc

        previous = self._documents.get(key)
        if previous is not None:
            self._unindex(key, json.loads(previous))
        self._documents[key] = encoded
        self._reindex(key, document)

    def _reindex(self, key: str, document: Document) -> None:
        for name in self._indexes:
            value = document.get(name)
            if isinstance(value, Hashable):
                self._index[name].setdefault(value, {})[key] = None

    def _unindex(self, key: str, document: Document) -> None:
        for name in self._indexes:
            value = document.get(name)
            if not isinstance(value, Hashable):
                continue
            bucket = self._index[name].get(value)
            if bucket is None:
                continue
            bucket.pop(key, None)
            if not bucket:
                self._index[name].pop(value, None)

    def _candidate_keys(self, normalized: dict[str, tuple[Any, ...]]) -> list[str]:
        if not normalized:
            return list(self._documents)
        # Any filtered field narrows the scan; the rest are checked per document.
        field_name, values = next(iter(normalized.items()))
        buckets = self._index[field_name]
        keys: dict[str, None] = {}
        for value in values:
            if isinstance(value, Hashable):
                keys.update(buckets.get(value, {}))
        return list(keys)

    async def find_one(self, filter: Filter) -> Document | None:  # noqa: A002
        self._require_open("find_one")
        normalized = normalize_filter(filter, self._indexes)
        for key in self._candidate_keys(normalized):
            document: Document = json.loads(self._documents[key])
            if matches(document, normalized):
                return document
        return None

    async def find_many(self, filter: Filter) -> list[Document]:  # noqa: A002
        self._require_open("find_many")
        normalized = normalize_filter(filter, self._indexes)
        results: list[Document] = []
        for key in self._candidate_keys(normalized):
            document: Document = json.loads(self._documents[key])
            if matches(document, normalized):
                results.append(document)
        return results

    def __len__(self) -> int:
        return len(self._documents)

"""Embedded document engines behind a minimal storage interface.

Owns:
- the :class:`DocumentStore` protocol the room store is written against
- an in-process engine and an aiosqlite-backed engine
- picking an engine from :class:`pybridge.config.BridgeConfig`
"""

from __future__ import annotations

from collections.abc import Sequence

from pybridge._storage.base import IN_OPERATOR, Document, DocumentStore, Filter, normalize_filter
from pybridge._storage.memory import MemoryDocumentStore
from pybridge._storage.sqlite import SqliteDocumentStore
from pybridge.config import BridgeConfig


def open_document_store(config: BridgeConfig, indexes: Sequence[str]) -> DocumentStore:
    """Build (but do not open) the engine selected by *config*."""
    if config.backend == "memory":
        return MemoryDocumentStore(indexes=indexes)
    return SqliteDocumentStore(
        config.db_path,
        indexes=indexes,
        table_name=config.table_name,
        busy_timeout=config.busy_timeout,
    )


__all__ = [
    "IN_OPERATOR",
    "Document",
    "DocumentStore",
    "Filter",
    "MemoryDocumentStore",
    "SqliteDocumentStore",
    "normalize_filter",
    "open_document_store",
]

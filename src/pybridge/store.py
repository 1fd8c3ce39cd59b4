"""Linked room store.

Persists :class:`~pybridge.models.entry.RoomEntry` records, one document per
entry, and answers the fixed set of indexed lookups a bridge needs: by entry
id, by local id, by remote id, and batches of either.
"""

from __future__ import annotations

import logging
from collections.abc import Callable, Iterable
from typing import Any, TypeVar

from pybridge._storage import IN_OPERATOR, DocumentStore, open_document_store
from pybridge.config import BridgeConfig
from pybridge.models.entity import BridgeEntity, LocalRoom, RemoteRoom, ensure_json_value
from pybridge.models.entry import ENTRY_INDEXES, RoomEntry

_logger = logging.getLogger(__name__)

R = TypeVar("R", bound=BridgeEntity)


class RoomBridgeStore:
    """Store of links between local and remote rooms.

    Usage::

        async with await RoomBridgeStore.open(BridgeConfig(db_path="bridge.db")) as store:
            await store.link_rooms(LocalRoom("!foo:bar"), RemoteRoom("#foo"))
            entries = await store.get_entries_by_local_id("!foo:bar")

    Lookups never raise for missing data: a single lookup returns ``None``,
    collection lookups return an empty list.  Engine failures propagate as
    :class:`~pybridge.exceptions.BridgeStorageError`.
    """

    def __init__(self, db: DocumentStore) -> None:
        self._db = db

    @classmethod
    async def open(cls, config: BridgeConfig | None = None) -> RoomBridgeStore:
        """Open the engine selected by *config* and wrap it in a store."""
        db = open_document_store(config or BridgeConfig(), ENTRY_INDEXES)
        await db.open()
        return cls(db)

    async def close(self) -> None:
        await self._db.close()

    async def __aenter__(self) -> RoomBridgeStore:
        return self

    async def __aexit__(self, *exc: Any) -> None:
        await self.close()

    # ------------------------------------------------------------------
    # Writes
    # ------------------------------------------------------------------

    async def upsert_entry(self, entry: RoomEntry) -> None:
        """Insert *entry*, or fully replace the entry with the same id."""
        await self._db.upsert(entry.id, entry.to_document())
        _logger.debug("Upserted entry id=%s local=%s remote=%s", entry.id, entry.local.id, entry.remote.id)

    async def link_rooms(
        self,
        local: BridgeEntity,
        remote: BridgeEntity,
        data: Any = None,
        link_id: str | None = None,
    ) -> RoomEntry:
        """Create and store the entry linking *local* to *remote*.

        Properties of both rooms are stored verbatim.  Without *link_id* the
        id is derived from the two room ids, so linking the same pair again
        replaces the earlier entry.
        """
        entry = RoomEntry(
            id=link_id if link_id is not None else RoomEntry.create_id(local.id, remote.id),
            local=LocalRoom.from_serialized(local.id, local.properties),
            remote=RemoteRoom.from_serialized(remote.id, remote.properties),
            data=ensure_json_value(data, what="data"),
        )
        await self.upsert_entry(entry)
        return entry

    # ------------------------------------------------------------------
    # Lookups
    # ------------------------------------------------------------------

    async def get_entry_by_id(self, entry_id: str) -> RoomEntry | None:
        # Filter on "id" only: local/remote ids live in other fields.
        document = await self._db.find_one({"id": entry_id})
        if document is None:
            return None
        return RoomEntry.from_document(document)

    async def get_entries_by_local_id(self, local_id: str) -> list[RoomEntry]:
        return await self._find_entries({"local_id": local_id})

    async def get_entries_by_remote_id(self, remote_id: str) -> list[RoomEntry]:
        return await self._find_entries({"remote_id": remote_id})

    async def get_entries_by_local_ids(self, local_ids: Iterable[str]) -> dict[str, list[RoomEntry]]:
        """Map each queried local id to its entries.

        Every queried id is a key; ids without entries map to ``[]``.
        """
        return await self._group_entries("local_id", local_ids, lambda entry: entry.local.id)

    async def get_entries_by_remote_ids(self, remote_ids: Iterable[str]) -> dict[str, list[RoomEntry]]:
        """Remote-side counterpart of :meth:`get_entries_by_local_ids`."""
        return await self._group_entries("remote_id", remote_ids, lambda entry: entry.remote.id)

    async def get_linked_remote_rooms(self, local_id: str) -> list[RemoteRoom]:
        """Remote rooms linked to *local_id*, one per remote id."""
        entries = await self.get_entries_by_local_id(local_id)
        return _unique_rooms(entry.remote for entry in entries)

    async def get_linked_local_rooms(self, remote_id: str) -> list[LocalRoom]:
        """Local rooms linked to *remote_id*, one per local id."""
        entries = await self.get_entries_by_remote_id(remote_id)
        return _unique_rooms(entry.local for entry in entries)

    async def _find_entries(self, filter: dict[str, Any]) -> list[RoomEntry]:  # noqa: A002
        documents = await self._db.find_many(filter)
        return [RoomEntry.from_document(doc) for doc in documents]

    async def _group_entries(
        self,
        field_name: str,
        ids: Iterable[str],
        key_of: Callable[[RoomEntry], str],
    ) -> dict[str, list[RoomEntry]]:
        wanted = list(dict.fromkeys(ids))
        grouped: dict[str, list[RoomEntry]] = {room_id: [] for room_id in wanted}
        if not wanted:
            return grouped
        for entry in await self._find_entries({field_name: {IN_OPERATOR: wanted}}):
            bucket = grouped.get(key_of(entry))
            if bucket is not None:
                bucket.append(entry)
        return grouped


def _unique_rooms(rooms: Iterable[R]) -> list[R]:
    seen: dict[str, R] = {}
    for room in rooms:
        seen.setdefault(room.id, room)
    return list(seen.values())

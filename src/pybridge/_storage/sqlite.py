"""SQLite document engine (aiosqlite).

One table of ``(key TEXT PRIMARY KEY, body TEXT)`` rows where ``body`` is the
JSON document.  Each indexed field gets a ``json_extract`` expression index,
and lookups use the identical expression so SQLite can serve them from it.
"""

from __future__ import annotations

import json
import logging
import re
from collections.abc import Sequence
from pathlib import Path
from typing import Any

import aiosqlite

from pybridge._storage.base import Document, Filter, normalize_filter
from pybridge.config import MEMORY_PATH
from pybridge.exceptions import BridgeStorageError, BridgeValidationError

_logger = logging.getLogger(__name__)

_IDENTIFIER_RE = re.compile(r"^[A-Za-z_][A-Za-z0-9_]*$")

# Stay well below SQLITE_MAX_VARIABLE_NUMBER on old builds.
_MAX_IN_PARAMS = 500


def _field_expr(field_name: str) -> str:
    return f"json_extract(body, '$.{field_name}')"


class SqliteDocumentStore:
    """aiosqlite-backed engine for a single table of documents."""

    def __init__(
        self,
        db_path: str = MEMORY_PATH,
        *,
        indexes: Sequence[str] = (),
        table_name: str = "documents",
        busy_timeout: float = 5.0,
    ) -> None:
        for name in (table_name, *indexes):
            if not _IDENTIFIER_RE.match(name):
                raise BridgeValidationError(f"Invalid identifier {name!r}")
        self._db_path = db_path
        self._indexes = tuple(indexes)
        self._table = table_name
        self._busy_timeout = busy_timeout
        self._conn: aiosqlite.Connection | None = None

    @property
    def db_path(self) -> str:
        return self._db_path

    async def open(self) -> None:
        if self._conn is not None:
            return
        if self._db_path != MEMORY_PATH:
            Path(self._db_path).parent.mkdir(parents=True, exist_ok=True)
        try:
            conn = await aiosqlite.connect(self._db_path, timeout=self._busy_timeout)
            try:
                await self._ensure_schema(conn)
            except BaseException:
                await conn.close()
                raise
        except (aiosqlite.Error, OSError) as exc:
            raise BridgeStorageError(f"Cannot open database {self._db_path!r}: {exc}", operation="open") from exc
        self._conn = conn
        _logger.debug("Opened SQLite document store path=%s table=%s", self._db_path, self._table)

    async def _ensure_schema(self, conn: aiosqlite.Connection) -> None:
        await conn.execute(f"PRAGMA busy_timeout = {int(self._busy_timeout * 1000)}")
        if self._db_path != MEMORY_PATH:
            await conn.execute("PRAGMA journal_mode = WAL")
            await conn.execute("PRAGMA synchronous = NORMAL")
        await conn.execute(
            f"""
            CREATE TABLE IF NOT EXISTS {self._table} (
                key TEXT PRIMARY KEY,
                body TEXT NOT NULL
            )
            """
        )
        for name in self._indexes:
            await conn.execute(
                f"CREATE INDEX IF NOT EXISTS {self._table}_{name}_idx ON {self._table} ({_field_expr(name)})"
            )
        await conn.commit()

    async def close(self) -> None:
        conn = self._conn
        self._conn = None
        if conn is None:
            return
        try:
            await conn.close()
        except aiosqlite.Error as exc:
            raise BridgeStorageError(f"Closing database failed: {exc}", operation="close") from exc

    def _connection(self, operation: str) -> aiosqlite.Connection:
        if self._conn is None:
            raise BridgeStorageError("Document store is not open", operation=operation)
        return self._conn

    async def upsert(self, key: str, document: Document) -> None:
        conn = self._connection("upsert")
        try:
            body = json.dumps(document, separators=(",", ":"))
        except (TypeError, ValueError) as exc:
            raise BridgeStorageError(f"Document {key!r} is not JSON-serializable: {exc}", operation="upsert") from exc

        try:
            await conn.execute(
                f"INSERT INTO {self._table} (key, body) VALUES (?, ?) "
                "ON CONFLICT(key) DO UPDATE SET body = excluded.body",
                (key, body),
            )
            await conn.commit()
        except aiosqlite.Error as exc:
            raise BridgeStorageError(f"Upsert of {key!r} failed: {exc}", operation="upsert") from exc

    def _where(self, normalized: dict[str, tuple[Any, ...]]) -> tuple[str, list[Any]]:
        clauses: list[str] = []
        params: list[Any] = []
        for field_name, values in normalized.items():
            if not values:
                clauses.append("0")
                continue
            placeholders = ", ".join("?" for _ in values)
            clauses.append(f"{_field_expr(field_name)} IN ({placeholders})")
            params.extend(values)
        return (" WHERE " + " AND ".join(clauses)) if clauses else "", params

    async def _select(self, operation: str, normalized: dict[str, tuple[Any, ...]], limit: int | None) -> list[Document]:
        conn = self._connection(operation)
        where, params = self._where(normalized)
        sql = f"SELECT body FROM {self._table}{where}"
        if limit is not None:
            sql += f" LIMIT {int(limit)}"
        try:
            async with conn.execute(sql, params) as cursor:
                rows = await cursor.fetchall()
        except aiosqlite.Error as exc:
            raise BridgeStorageError(f"Query on {self._table} failed: {exc}", operation=operation) from exc
        try:
            return [json.loads(row[0]) for row in rows]
        except json.JSONDecodeError as exc:
            raise BridgeStorageError(f"Corrupt document in {self._table}: {exc}", operation=operation) from exc

    async def find_one(self, filter: Filter) -> Document | None:  # noqa: A002
        normalized = normalize_filter(filter, self._indexes)
        rows = await self._select("find_one", normalized, 1)
        return rows[0] if rows else None

    async def find_many(self, filter: Filter) -> list[Document]:  # noqa: A002
        normalized = normalize_filter(filter, self._indexes)
        # Large membership filters are split; every chunk keeps the other fields.
        chunked_field = next(
            (name for name, values in normalized.items() if len(values) > _MAX_IN_PARAMS),
            None,
        )
        if chunked_field is None:
            return await self._select("find_many", normalized, None)

        values = normalized[chunked_field]
        results: list[Document] = []
        for start in range(0, len(values), _MAX_IN_PARAMS):
            chunk = {**normalized, chunked_field: values[start : start + _MAX_IN_PARAMS]}
            results.extend(await self._select("find_many", chunk, None))
        return results

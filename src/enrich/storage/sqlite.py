"""SQLite cache store."""

import json
import re
from collections.abc import Iterator
from contextlib import contextmanager
from datetime import datetime
from pathlib import Path
from typing import Any

import aiosqlite

from enrich.errors import CacheUnavailableError
from enrich.utils.datetime import deserialize_datetime, serialize_datetime

from .base import CacheStore, Clock
from .models import CacheEntry

DEFAULT_TABLE = "prompt_cache"

CACHE_TABLE = """
CREATE TABLE IF NOT EXISTS {table} (
    key TEXT PRIMARY KEY,
    enhanced_text TEXT NOT NULL,
    context_summary TEXT NOT NULL DEFAULT '{{}}',
    created_at TEXT NOT NULL,
    expires_at TEXT NOT NULL,
    expires_ts REAL NOT NULL,
    hit_count INTEGER NOT NULL DEFAULT 0,
    collided INTEGER NOT NULL DEFAULT 0
);
"""

CACHE_EXPIRY_INDEX = """
CREATE INDEX IF NOT EXISTS idx_{table}_expires
    ON {table}(expires_ts);
"""

SELECT_COLUMNS = (
    "key, enhanced_text, context_summary, created_at, expires_at, "
    "hit_count, collided"
)

_TABLE_NAME = re.compile(r"^[a-z_][a-z0-9_]*$")


class SQLiteCacheStore(CacheStore):
    """Async SQLite cache store with WAL mode for concurrent access.

    Several stores can share one database file as long as each uses its
    own ``table``.
    """

    def __init__(
        self,
        db_path: str | Path,
        clock: Clock | None = None,
        table: str = DEFAULT_TABLE,
    ) -> None:
        if not _TABLE_NAME.match(table):
            raise ValueError(f"Invalid cache table name: {table!r}")
        super().__init__(clock=clock)
        self.db_path = Path(db_path).expanduser()
        self.table = table
        self._conn: aiosqlite.Connection | None = None

    async def initialize(self) -> None:
        """Create the schema and enable WAL mode."""
        try:
            with self._errors("initialize"):
                self.db_path.parent.mkdir(parents=True, exist_ok=True)
                self._conn = await aiosqlite.connect(str(self.db_path))
                await self._conn.execute("PRAGMA journal_mode=WAL;")
                await self._conn.execute(CACHE_TABLE.format(table=self.table))
                await self._conn.execute(CACHE_EXPIRY_INDEX.format(table=self.table))
                await self._conn.commit()
        except CacheUnavailableError:
            await self.close()
            raise

    async def close(self) -> None:
        if self._conn:
            await self._conn.close()
            self._conn = None

    @property
    def connection(self) -> aiosqlite.Connection:
        if not self._conn:
            raise RuntimeError("Database not initialized")
        return self._conn

    @contextmanager
    def _errors(self, operation: str) -> Iterator[None]:
        try:
            yield
        except (aiosqlite.Error, OSError) as e:
            self._logger.warning(
                "cache_backend_error", operation=operation, table=self.table, error=str(e)
            )
            raise CacheUnavailableError(f"Cache {operation} failed: {e}") from e

    @staticmethod
    def _row_to_entry(row: Any) -> CacheEntry:
        return CacheEntry(
            key=row[0],
            enhanced_text=row[1],
            context_summary=json.loads(row[2] or "{}"),
            created_at=deserialize_datetime(row[3]),
            expires_at=deserialize_datetime(row[4]),
            hit_count=row[5],
            collided=bool(row[6]),
        )

    async def _load(self, key: str) -> CacheEntry | None:
        with self._errors("load"):
            cursor = await self.connection.execute(
                f"SELECT {SELECT_COLUMNS} FROM {self.table} WHERE key = ?",
                (key,),
            )
            row = await cursor.fetchone()
        return self._row_to_entry(row) if row else None

    async def _save(self, entry: CacheEntry) -> None:
        with self._errors("save"):
            await self.connection.execute(
                f"""
                INSERT INTO {self.table}
                    (key, enhanced_text, context_summary, created_at,
                     expires_at, expires_ts, hit_count, collided)
                VALUES (?, ?, ?, ?, ?, ?, ?, ?)
                ON CONFLICT(key) DO UPDATE SET
                    enhanced_text=excluded.enhanced_text,
                    context_summary=excluded.context_summary,
                    created_at=excluded.created_at,
                    expires_at=excluded.expires_at,
                    expires_ts=excluded.expires_ts,
                    hit_count=excluded.hit_count,
                    collided=excluded.collided
                """,
                (
                    entry.key,
                    entry.enhanced_text,
                    json.dumps(entry.context_summary, sort_keys=True, default=str),
                    serialize_datetime(entry.created_at),
                    serialize_datetime(entry.expires_at),
                    entry.expires_at.timestamp(),
                    entry.hit_count,
                    int(entry.collided),
                ),
            )
            await self.connection.commit()

    async def _delete(self, keys: list[str]) -> int:
        if not keys:
            return 0
        with self._errors("delete"):
            cursor = await self.connection.executemany(
                f"DELETE FROM {self.table} WHERE key = ?",
                [(key,) for key in keys],
            )
            await self.connection.commit()
        return cursor.rowcount

    async def _delete_expired(self, now: datetime) -> int:
        with self._errors("purge"):
            cursor = await self.connection.execute(
                f"DELETE FROM {self.table} WHERE expires_ts <= ?",
                (now.timestamp(),),
            )
            await self.connection.commit()
        return cursor.rowcount

    async def _all_entries(self) -> list[CacheEntry]:
        with self._errors("scan"):
            cursor = await self.connection.execute(
                f"SELECT {SELECT_COLUMNS} FROM {self.table}"
            )
            rows = await cursor.fetchall()
        return [self._row_to_entry(row) for row in rows]

    async def _count(self) -> int:
        with self._errors("count"):
            cursor = await self.connection.execute(f"SELECT COUNT(*) FROM {self.table}")
            row = await cursor.fetchone()
        return row[0] if row else 0

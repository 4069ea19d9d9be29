"""Persistence for learned pattern weights."""

from pathlib import Path
from typing import Any

import aiosqlite
import structlog

from enrich.errors import EnrichError

logger = structlog.get_logger()

PATTERN_WEIGHTS_TABLE = """
CREATE TABLE IF NOT EXISTS pattern_weights (
    pattern_id TEXT PRIMARY KEY,
    weight REAL NOT NULL,
    success_count INTEGER NOT NULL DEFAULT 0,
    usage_count INTEGER NOT NULL DEFAULT 0,
    last_updated TEXT NOT NULL
);
"""


class SQLitePatternStore:
    """Stores the rows produced by ``PatternRegistry.export_state()``."""

    def __init__(self, db_path: str | Path) -> None:
        self.db_path = Path(db_path).expanduser()
        self._conn: aiosqlite.Connection | None = None

    async def initialize(self) -> None:
        try:
            self.db_path.parent.mkdir(parents=True, exist_ok=True)
            self._conn = await aiosqlite.connect(str(self.db_path))
            await self._conn.execute("PRAGMA journal_mode=WAL;")
            await self._conn.execute(PATTERN_WEIGHTS_TABLE)
            await self._conn.commit()
        except (aiosqlite.Error, OSError) as e:
            await self.close()
            raise EnrichError(f"Failed to open pattern store: {e}") from e

    async def close(self) -> None:
        if self._conn:
            await self._conn.close()
            self._conn = None

    async def load(self) -> list[dict[str, Any]]:
        if not self._conn:
            raise RuntimeError("Database not initialized")

        try:
            cursor = await self._conn.execute(
                """
                SELECT pattern_id, weight, success_count, usage_count, last_updated
                FROM pattern_weights
                ORDER BY pattern_id
                """
            )
            rows = await cursor.fetchall()
        except aiosqlite.Error as e:
            raise EnrichError(f"Failed to load pattern weights: {e}") from e

        return [
            {
                "pattern_id": row[0],
                "weight": row[1],
                "success_count": row[2],
                "usage_count": row[3],
                "last_updated": row[4],
            }
            for row in rows
        ]

    async def save(self, rows: list[dict[str, Any]]) -> int:
        """Upsert every row. Returns the number written."""
        if not self._conn:
            raise RuntimeError("Database not initialized")

        try:
            await self._conn.executemany(
                """
                INSERT INTO pattern_weights
                    (pattern_id, weight, success_count, usage_count, last_updated)
                VALUES (?, ?, ?, ?, ?)
                ON CONFLICT(pattern_id) DO UPDATE SET
                    weight=excluded.weight,
                    success_count=excluded.success_count,
                    usage_count=excluded.usage_count,
                    last_updated=excluded.last_updated
                """,
                [
                    (
                        row["pattern_id"],
                        row["weight"],
                        row["success_count"],
                        row["usage_count"],
                        row["last_updated"],
                    )
                    for row in rows
                ],
            )
            await self._conn.commit()
        except aiosqlite.Error as e:
            raise EnrichError(f"Failed to save pattern weights: {e}") from e

        logger.debug("pattern_weights_saved", count=len(rows))
        return len(rows)

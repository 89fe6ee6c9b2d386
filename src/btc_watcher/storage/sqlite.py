"""SQLite implementation of the CursorStore protocol."""

from __future__ import annotations

import json
from datetime import datetime, timezone
from pathlib import Path

import aiosqlite

from btc_watcher.models.cursor import Cursor
from btc_watcher.models.records import CursorRecord

SCHEMA = """
-- One poll cursor per trigger configuration
CREATE TABLE IF NOT EXISTS cursors (
    key TEXT PRIMARY KEY,
    state TEXT NOT NULL,
    updated_at TEXT NOT NULL DEFAULT (datetime('now'))
);
"""


def _now() -> str:
    return datetime.now(timezone.utc).isoformat()


class SQLiteCursorStore:
    """SQLite-backed implementation of the CursorStore protocol."""

    def __init__(self, db_path: str) -> None:
        self._db_path = db_path
        self._db: aiosqlite.Connection | None = None

    async def initialize(self) -> None:
        if self._db_path != ":memory:":
            Path(self._db_path).parent.mkdir(parents=True, exist_ok=True)
        self._db = await aiosqlite.connect(self._db_path)
        self._db.row_factory = aiosqlite.Row
        await self._db.executescript(SCHEMA)
        await self._db.commit()

    async def close(self) -> None:
        if self._db:
            await self._db.close()
            self._db = None

    @property
    def db(self) -> aiosqlite.Connection:
        assert self._db is not None, "Store not initialized. Call initialize() first."
        return self._db

    async def read(self, key: str) -> Cursor | None:
        async with self.db.execute("SELECT state FROM cursors WHERE key=?", (key,)) as cur:
            row = await cur.fetchone()
            return Cursor.from_dict(json.loads(row["state"])) if row else None

    async def write(self, key: str, cursor: Cursor) -> None:
        await self.db.execute(
            "INSERT INTO cursors (key, state, updated_at) VALUES (?, ?, ?)"
            " ON CONFLICT(key) DO UPDATE SET state=excluded.state,"
            " updated_at=excluded.updated_at",
            (key, json.dumps(cursor.to_dict(), sort_keys=True), _now()),
        )
        await self.db.commit()

    async def delete(self, key: str) -> bool:
        cur = await self.db.execute("DELETE FROM cursors WHERE key=?", (key,))
        await self.db.commit()
        return cur.rowcount > 0

    async def list_cursors(self) -> list[CursorRecord]:
        async with self.db.execute(
            "SELECT key, state, updated_at FROM cursors ORDER BY key"
        ) as cur:
            rows = await cur.fetchall()
        return [
            CursorRecord(
                key=row["key"],
                state=json.loads(row["state"]),
                updated_at=row["updated_at"],
            )
            for row in rows
        ]

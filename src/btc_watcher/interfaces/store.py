"""CursorStore protocol - durable per-trigger cursor records."""

from __future__ import annotations

from typing import Protocol

from btc_watcher.models.cursor import Cursor
from btc_watcher.models.records import CursorRecord


class CursorStore(Protocol):
    """Persists poll cursors across restarts. One record per key."""

    async def initialize(self) -> None:
        """Create tables if they don't exist."""
        ...

    async def close(self) -> None:
        ...

    async def read(self, key: str) -> Cursor | None:
        ...

    async def write(self, key: str, cursor: Cursor) -> None:
        ...

    async def delete(self, key: str) -> bool:
        """Remove a record. Returns True if one existed."""
        ...

    async def list_cursors(self) -> list[CursorRecord]:
        ...

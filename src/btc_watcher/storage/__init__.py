"""Cursor persistence."""

from btc_watcher.storage.sqlite import SQLiteCursorStore

__all__ = ["SQLiteCursorStore"]

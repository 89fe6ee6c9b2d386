"""Internal record types for poll cycles and stored cursors."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any


@dataclass
class CycleReport:
    """Outcome of one poll cycle for one trigger."""

    trigger: str
    event_kind: str
    started_at: str  # ISO 8601
    duration_ms: int = 0
    emitted: int = 0
    cursor_written: bool = False
    error: str | None = None
    events: list[dict[str, Any]] = field(default_factory=list)
    sink_errors: list[str] = field(default_factory=list)  # delivery failures after commit


@dataclass
class CursorRecord:
    """A cursor row as persisted in the store."""

    key: str
    state: dict[str, Any]
    updated_at: str = ""

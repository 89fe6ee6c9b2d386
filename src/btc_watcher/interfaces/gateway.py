"""HttpGateway protocol - GET/POST against the explorer base URL."""

from __future__ import annotations

from typing import Any, Protocol


class HttpGateway(Protocol):
    """Performs requests relative to a fixed base URL."""

    async def get(self, path: str, *, json: bool = True) -> Any:
        """GET a path. Returns parsed JSON, or the raw body text if json=False."""
        ...

    async def post(
        self, path: str, body: str, headers: dict[str, str] | None = None
    ) -> Any:
        """POST a body. Returns the raw response text."""
        ...

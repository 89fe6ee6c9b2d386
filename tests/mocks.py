"""Mock implementations of the HttpGateway and CursorStore protocols."""

from __future__ import annotations

import json as _json
from typing import Any

from btc_watcher.errors import GatewayError
from btc_watcher.models.cursor import Cursor


class MockGateway:
    """Implements HttpGateway. Serves scripted responses keyed by path.

    A response may be a dict/list (JSON), a str (text body), or an
    exception instance to raise. Unrouted paths answer HTTP 404.
    """

    def __init__(self) -> None:
        self.routes: dict[str, Any] = {}
        self.calls: list[tuple[str, str]] = []
        self.posts: list[tuple[str, str, dict | None]] = []

    def route(self, path: str, response: Any) -> None:
        self.routes[path] = response

    def fail(self, path: str, message: str = "HTTP 500 from GET", status_code: int = 500) -> None:
        self.routes[path] = GatewayError(message, path=path, status_code=status_code)

    def add_block(self, raw: dict) -> None:
        """Route both legs of the height -> hash -> block pipeline."""
        self.route(f"/block-height/{raw['height']}", raw["id"])
        self.route(f"/block/{raw['id']}", raw)

    def set_tip(self, height: int) -> None:
        self.route("/blocks/tip/height", str(height))

    def paths(self) -> list[str]:
        return [path for _, path in self.calls]

    def _respond(self, path: str) -> Any:
        if path not in self.routes:
            raise GatewayError(f"HTTP 404 from GET {path}: not found", path=path, status_code=404)
        response = self.routes[path]
        if isinstance(response, Exception):
            raise response
        return response

    async def get(self, path: str, *, json: bool = True) -> Any:
        self.calls.append(("GET", path))
        response = self._respond(path)
        if json and isinstance(response, str):
            return _json.loads(response)
        return response

    async def post(self, path: str, body: str, headers: dict[str, str] | None = None) -> Any:
        self.calls.append(("POST", path))
        self.posts.append((path, body, headers))
        return self._respond(path)


class FailingWriteStore:
    """Implements CursorStore but every write raises. Reads come from a seed."""

    def __init__(self, seed: dict[str, Cursor] | None = None) -> None:
        self.cursors = dict(seed or {})
        self.write_attempts = 0

    async def initialize(self) -> None:
        pass

    async def close(self) -> None:
        pass

    async def read(self, key: str) -> Cursor | None:
        return self.cursors.get(key)

    async def write(self, key: str, cursor: Cursor) -> None:
        self.write_attempts += 1
        raise OSError("disk I/O error")

    async def delete(self, key: str) -> bool:
        return self.cursors.pop(key, None) is not None

    async def list_cursors(self) -> list:
        return []

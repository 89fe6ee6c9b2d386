"""Esplora HTTP gateway - GET/POST against a Mempool.space compatible API."""

from __future__ import annotations

import logging
from typing import Any

import httpx

from btc_watcher.errors import GatewayError

log = logging.getLogger(__name__)


class EsploraGateway:
    """Thin async HTTP client bound to one explorer base URL.

    Non-2xx responses and transport failures are raised as GatewayError
    with the upstream message preserved. No retries: the caller decides.
    """

    def __init__(
        self,
        base_url: str,
        timeout: float = 30.0,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        self._base_url = base_url.rstrip("/")
        self._timeout = timeout
        self._transport = transport
        self._client: httpx.AsyncClient | None = None

    @property
    def base_url(self) -> str:
        return self._base_url

    def _http(self) -> httpx.AsyncClient:
        if self._client is None:
            self._client = httpx.AsyncClient(
                base_url=self._base_url,
                timeout=httpx.Timeout(self._timeout, connect=10),
                headers={"Content-Type": "application/json"},
                transport=self._transport,
                follow_redirects=True,
            )
        return self._client

    async def close(self) -> None:
        if self._client is not None:
            await self._client.aclose()
            self._client = None

    async def __aenter__(self) -> EsploraGateway:
        return self

    async def __aexit__(self, *exc_info: object) -> None:
        await self.close()

    async def get(self, path: str, *, json: bool = True) -> Any:
        resp = await self._request("GET", path)
        if not json:
            return resp.text
        try:
            return resp.json()
        except ValueError as exc:
            raise GatewayError(
                f"invalid JSON from GET {path}: {resp.text[:200]}",
                path=path,
                status_code=resp.status_code,
            ) from exc

    async def post(
        self, path: str, body: str, headers: dict[str, str] | None = None
    ) -> Any:
        resp = await self._request("POST", path, content=body, headers=headers)
        return resp.text

    async def _request(self, method: str, path: str, **kwargs: Any) -> httpx.Response:
        log.debug("%s %s%s", method, self._base_url, path)
        try:
            resp = await self._http().request(method, path, **kwargs)
            resp.raise_for_status()
            return resp
        except httpx.HTTPStatusError as exc:
            status = exc.response.status_code
            detail = exc.response.text.strip()[:200] or exc.response.reason_phrase
            raise GatewayError(
                f"HTTP {status} from {method} {path}: {detail}",
                path=path,
                status_code=status,
            ) from exc
        except httpx.TimeoutException as exc:
            raise GatewayError(
                f"timeout after {self._timeout}s on {method} {path}", path=path,
            ) from exc
        except httpx.RequestError as exc:
            raise GatewayError(f"{method} {path} failed: {exc}", path=path) from exc

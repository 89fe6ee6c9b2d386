"""Request dispatcher - runs one operation per input item."""

from __future__ import annotations

import logging
from typing import Any, Sequence

from btc_watcher.dispatch.operations import OperationSpec, Resource, Shape, get_operation
from btc_watcher.errors import GatewayError, ItemError, WatcherError
from btc_watcher.interfaces.gateway import HttpGateway

log = logging.getLogger(__name__)

_SHAPE_TYPES = {Shape.OBJECT: dict, Shape.ARRAY: list, Shape.TEXT: str}


class RequestDispatcher:
    """Maps (resource, operation, parameters) to HTTP calls and output records.

    Stateless between calls. With ``continue_on_fail`` a failing item yields
    an ``{"error": ..., "item": index}`` record instead of aborting the batch.
    """

    def __init__(self, gateway: HttpGateway, continue_on_fail: bool = False) -> None:
        self._gateway = gateway
        self._continue_on_fail = continue_on_fail

    async def execute(
        self,
        resource: str | Resource,
        operation: str,
        items: Sequence[dict[str, Any]],
    ) -> list[dict[str, Any]]:
        """Run the operation once per item. Unknown operations fail up front."""
        spec = get_operation(resource, operation)
        results: list[dict[str, Any]] = []

        for index, params in enumerate(items):
            try:
                results.append(await self.run(spec, params))
            except WatcherError as exc:
                if self._continue_on_fail:
                    log.warning(
                        "%s.%s item %d failed: %s", spec.resource.value, spec.name, index, exc,
                    )
                    results.append({"error": str(exc), "item": index})
                    continue
                raise ItemError(str(exc), index) from exc

        return results

    async def call(
        self, resource: str | Resource, operation: str, params: dict[str, Any] | None = None,
    ) -> dict[str, Any]:
        """Run a single operation and return its record."""
        return await self.run(get_operation(resource, operation), params or {})

    async def run(self, spec: OperationSpec, raw_params: dict[str, Any]) -> dict[str, Any]:
        params = spec.validate(raw_params)

        if spec.pipeline is not None:
            data = await spec.pipeline(self._gateway, params)
        else:
            data = await self._fetch(spec, params)

        try:
            return spec.reshape(data, params)
        except (KeyError, TypeError, ValueError, AttributeError) as exc:
            raise GatewayError(
                f"unexpected response for {spec.resource.value}.{spec.name}: {exc!r}",
            ) from exc

    async def _fetch(self, spec: OperationSpec, params: dict[str, Any]) -> Any:
        path = spec.render_path(params)

        if spec.method == "POST":
            headers = {"Content-Type": spec.content_type} if spec.content_type else None
            body = params[spec.body_param] if spec.body_param else ""
            data = await self._gateway.post(path, body, headers=headers)
        else:
            data = await self._gateway.get(path, json=spec.shape != Shape.TEXT)

        expected = _SHAPE_TYPES[spec.shape]
        if not isinstance(data, expected):
            raise GatewayError(
                f"expected JSON {spec.shape.value} from {spec.method} {path},"
                f" got {type(data).__name__}",
                path=path,
            )
        return data

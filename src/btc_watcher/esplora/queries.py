"""Typed chain reads over the gateway, plus the dependent-call pipelines."""

from __future__ import annotations

import logging
from typing import Any, Callable, TypeVar

from btc_watcher.errors import GatewayError
from btc_watcher.interfaces.gateway import HttpGateway
from btc_watcher.models.chain import (
    FEE_TIERS,
    AddressTx,
    BlockInfo,
    Confirmations,
    FeeSchedule,
    TxStatus,
)

log = logging.getLogger(__name__)

T = TypeVar("T")


def parse_block(raw: dict) -> BlockInfo:
    return BlockInfo(
        height=raw["height"],
        hash=raw["id"],
        timestamp=raw["timestamp"],
        tx_count=raw["tx_count"],
        size=raw["size"],
        weight=raw["weight"],
        difficulty=raw["difficulty"],
        merkle_root=raw.get("merkle_root", ""),
        previous_block_hash=raw.get("previousblockhash"),
        nonce=raw.get("nonce"),
        bits=raw.get("bits"),
        version=raw.get("version"),
    )


def parse_status(raw: dict | None) -> TxStatus:
    raw = raw or {}
    return TxStatus(
        confirmed=raw.get("confirmed") is True,
        block_height=raw.get("block_height"),
        block_hash=raw.get("block_hash"),
        block_time=raw.get("block_time"),
    )


def parse_address_tx(raw: dict) -> AddressTx:
    inputs = raw.get("vin") or []
    outputs = raw.get("vout") or []

    input_addresses = []
    input_value = 0
    for vin in inputs:
        prevout = vin.get("prevout") or {}
        if addr := prevout.get("scriptpubkey_address"):
            input_addresses.append(addr)
        input_value += prevout.get("value") or 0

    output_addresses = []
    output_value = 0
    for vout in outputs:
        if addr := vout.get("scriptpubkey_address"):
            output_addresses.append(addr)
        output_value += vout.get("value") or 0

    return AddressTx(
        txid=raw["txid"],
        status=parse_status(raw.get("status")),
        fee=raw.get("fee"),
        size=raw.get("size"),
        weight=raw.get("weight"),
        input_addresses=tuple(input_addresses),
        output_addresses=tuple(output_addresses),
        input_value=input_value,
        output_value=output_value,
    )


def parse_fees(raw: dict) -> FeeSchedule:
    return FeeSchedule(**{tier: raw[tier] for tier in FEE_TIERS})


def parse_height(text: str) -> int:
    return int(str(text).strip())


def _parse(path: str, raw: Any, parser: Callable[[Any], T]) -> T:
    """Apply a parser, turning a malformed payload into a GatewayError."""
    try:
        return parser(raw)
    except (KeyError, TypeError, ValueError, AttributeError) as exc:
        raise GatewayError(f"unexpected response from {path}: {exc!r}", path=path) from exc


class ChainQueries:
    """Read-only queries against an Esplora API.

    Every method performs real requests; nothing is cached between calls.
    """

    def __init__(self, gateway: HttpGateway) -> None:
        self._gateway = gateway

    @property
    def gateway(self) -> HttpGateway:
        return self._gateway

    async def tip_height(self) -> int:
        path = "/blocks/tip/height"
        return _parse(path, await self._gateway.get(path, json=False), parse_height)

    async def block_hash(self, height: int) -> str:
        path = f"/block-height/{height}"
        text = await self._gateway.get(path, json=False)
        return _parse(path, text, lambda t: str(t).strip())

    async def block(self, block_hash: str) -> BlockInfo:
        path = f"/block/{block_hash}"
        return _parse(path, await self._gateway.get(path), parse_block)

    async def block_at_height(self, height: int) -> BlockInfo:
        """Pipeline: height -> block hash -> block metadata."""
        block_hash = await self.block_hash(height)
        return await self.block(block_hash)

    async def latest_block(self) -> BlockInfo:
        """Pipeline: tip height -> block hash -> block metadata."""
        return await self.block_at_height(await self.tip_height())

    async def address_txs(self, address: str) -> list[AddressTx]:
        """Recent transactions for an address, newest first (upstream order)."""
        path = f"/address/{address}/txs"
        raw = await self._gateway.get(path)
        return _parse(path, raw, lambda items: [parse_address_tx(tx) for tx in items])

    async def tx_status(self, txid: str) -> TxStatus:
        path = f"/tx/{txid}/status"
        return _parse(path, await self._gateway.get(path), parse_status)

    async def confirmations(self, txid: str) -> Confirmations:
        """Pipeline: tip height + transaction status, combined client-side."""
        tip = await self.tip_height()
        status = await self.tx_status(txid)
        return Confirmations(txid=txid, tip_height=tip, status=status)

    async def recommended_fees(self) -> FeeSchedule:
        path = "/v1/fees/recommended"
        return _parse(path, await self._gateway.get(path), parse_fees)

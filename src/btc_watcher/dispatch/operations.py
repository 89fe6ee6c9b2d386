"""Operation table: one descriptor per (resource, operation) pair."""

from __future__ import annotations

import re
from dataclasses import dataclass
from enum import Enum
from typing import Any, Awaitable, Callable, Mapping

from btc_watcher.dispatch import reshape
from btc_watcher.errors import UnknownOperationError, ValidationError
from btc_watcher.esplora.queries import ChainQueries
from btc_watcher.interfaces.gateway import HttpGateway

_HEX64 = re.compile(r"^[0-9a-fA-F]{64}$")
_HEX = re.compile(r"^(?:[0-9a-fA-F]{2})+$")
_BAD_ADDRESS_CHARS = re.compile(r"[/?#\s]")


class Resource(str, Enum):
    ADDRESS = "address"
    TRANSACTION = "transaction"
    BLOCK = "block"
    MEMPOOL = "mempool"
    FEE = "fee"


class Shape(str, Enum):
    """Expected upstream response body."""

    OBJECT = "object"
    ARRAY = "array"
    TEXT = "text"


# ── Parameter validation ───────────────────────────────


def _address(name: str, value: Any) -> str:
    value = str(value).strip()
    if not value or _BAD_ADDRESS_CHARS.search(value):
        raise ValidationError(f"Invalid Bitcoin address: {value!r}")
    return value


def _hash64(name: str, value: Any) -> str:
    value = str(value).strip()
    if not _HEX64.match(value):
        raise ValidationError(f"Invalid {name}: expected 64 hex characters, got {value!r}")
    return value.lower()


def _non_negative_int(name: str, value: Any) -> int:
    try:
        number = int(value)
    except (TypeError, ValueError):
        raise ValidationError(f"Invalid {name}: expected an integer, got {value!r}") from None
    if isinstance(value, float) and value != number:
        raise ValidationError(f"Invalid {name}: expected an integer, got {value!r}")
    if number < 0:
        raise ValidationError(f"Invalid {name}: must be >= 0, got {number}")
    return number


def _raw_hex(name: str, value: Any) -> str:
    value = str(value).strip()
    if not _HEX.match(value):
        raise ValidationError(f"Invalid {name}: expected non-empty hex")
    return value


@dataclass(frozen=True)
class Param:
    name: str
    check: Callable[[str, Any], Any]
    required: bool = True


ADDRESS = Param("address", _address)
TXID = Param("txid", _hash64)
BLOCK_HASH = Param("block_hash", _hash64)


# ── Descriptor ─────────────────────────────────────────

Reshape = Callable[[Any, dict], dict]
Pipeline = Callable[[HttpGateway, dict], Awaitable[Any]]


@dataclass(frozen=True)
class OperationSpec:
    """Fixed mapping from one operation to its HTTP call and output record.

    ``path`` is formatted with the validated parameters. ``optional_path`` is
    appended only when its parameter was supplied (page cursors). Composite
    operations set ``pipeline`` instead and receive the gateway directly.
    """

    resource: Resource
    name: str
    description: str
    reshape: Reshape
    path: str = ""
    method: str = "GET"
    shape: Shape = Shape.OBJECT
    params: tuple[Param, ...] = ()
    optional_path: str = ""
    body_param: str | None = None
    content_type: str | None = None
    pipeline: Pipeline | None = None

    def validate(self, raw: Any) -> dict:
        if not isinstance(raw, Mapping):
            raise ValidationError(
                f"Parameters must be a mapping, got {type(raw).__name__}"
            )
        params: dict[str, Any] = {}
        for param in self.params:
            value = raw.get(param.name)
            if value is None or value == "":
                if param.required:
                    raise ValidationError(f"Missing required parameter '{param.name}'")
                continue
            params[param.name] = param.check(param.name, value)
        return params

    def render_path(self, params: dict) -> str:
        path = self.path.format(**params)
        if self.optional_path:
            try:
                path += self.optional_path.format(**params)
            except KeyError:
                pass
        return path


# ── Composite pipelines ────────────────────────────────


async def _transaction_confirmations(gateway: HttpGateway, params: dict) -> Any:
    return await ChainQueries(gateway).confirmations(params["txid"])


async def _block_by_height(gateway: HttpGateway, params: dict) -> Any:
    return await ChainQueries(gateway).block_at_height(params["height"])


async def _latest_block(gateway: HttpGateway, params: dict) -> Any:
    return await ChainQueries(gateway).latest_block()


# ── Table ──────────────────────────────────────────────

_SPECS = [
    # Address
    OperationSpec(
        Resource.ADDRESS, "getInfo", "Get address statistics",
        reshape.address_info, path="/address/{address}", params=(ADDRESS,),
    ),
    OperationSpec(
        Resource.ADDRESS, "getBalance", "Get confirmed and unconfirmed balance",
        reshape.address_balance, path="/address/{address}", params=(ADDRESS,),
    ),
    OperationSpec(
        Resource.ADDRESS, "getUtxos", "Get unspent outputs",
        reshape.address_utxos, path="/address/{address}/utxo",
        shape=Shape.ARRAY, params=(ADDRESS,),
    ),
    OperationSpec(
        Resource.ADDRESS, "getTransactions", "Get recent transactions",
        reshape.address_transactions, path="/address/{address}/txs",
        shape=Shape.ARRAY, params=(ADDRESS,),
    ),
    OperationSpec(
        Resource.ADDRESS, "getChainTransactions", "Page through confirmed history",
        reshape.address_transaction_page, path="/address/{address}/txs/chain",
        optional_path="/{after_txid}", shape=Shape.ARRAY,
        params=(ADDRESS, Param("after_txid", _hash64, required=False)),
    ),
    OperationSpec(
        Resource.ADDRESS, "getMempoolTransactions", "Get unconfirmed transactions",
        reshape.address_mempool_transactions, path="/address/{address}/txs/mempool",
        shape=Shape.ARRAY, params=(ADDRESS,),
    ),
    # Transaction
    OperationSpec(
        Resource.TRANSACTION, "get", "Get transaction details",
        reshape.transaction, path="/tx/{txid}", params=(TXID,),
    ),
    OperationSpec(
        Resource.TRANSACTION, "getStatus", "Get confirmation status and count",
        reshape.transaction_status, params=(TXID,),
        pipeline=_transaction_confirmations,
    ),
    OperationSpec(
        Resource.TRANSACTION, "getHex", "Get raw transaction hex",
        reshape.transaction_hex, path="/tx/{txid}/hex", shape=Shape.TEXT, params=(TXID,),
    ),
    OperationSpec(
        Resource.TRANSACTION, "getOutspends", "Get spending status of each output",
        reshape.transaction_outspends, path="/tx/{txid}/outspends",
        shape=Shape.ARRAY, params=(TXID,),
    ),
    OperationSpec(
        Resource.TRANSACTION, "getMerkleProof", "Get merkle inclusion proof",
        reshape.merkle_proof, path="/tx/{txid}/merkle-proof", params=(TXID,),
    ),
    OperationSpec(
        Resource.TRANSACTION, "broadcast", "Broadcast a raw transaction",
        reshape.broadcast, path="/tx", method="POST", shape=Shape.TEXT,
        params=(Param("raw_tx", _raw_hex),), body_param="raw_tx",
        content_type="text/plain",
    ),
    # Block
    OperationSpec(
        Resource.BLOCK, "get", "Get block by hash",
        reshape.block, path="/block/{block_hash}", params=(BLOCK_HASH,),
    ),
    OperationSpec(
        Resource.BLOCK, "getByHeight", "Get block by height",
        reshape.block_info, params=(Param("height", _non_negative_int),),
        pipeline=_block_by_height,
    ),
    OperationSpec(
        Resource.BLOCK, "getLatest", "Get the chain tip block",
        reshape.block_info, pipeline=_latest_block,
    ),
    OperationSpec(
        Resource.BLOCK, "getStatus", "Get block best-chain status",
        reshape.block_status, path="/block/{block_hash}/status", params=(BLOCK_HASH,),
    ),
    OperationSpec(
        Resource.BLOCK, "getTxids", "Get all transaction ids in a block",
        reshape.block_txids, path="/block/{block_hash}/txids",
        shape=Shape.ARRAY, params=(BLOCK_HASH,),
    ),
    OperationSpec(
        Resource.BLOCK, "getTransactions", "Page through block transactions",
        reshape.block_transaction_page, path="/block/{block_hash}/txs",
        optional_path="/{start_index}", shape=Shape.ARRAY,
        params=(BLOCK_HASH, Param("start_index", _non_negative_int, required=False)),
    ),
    OperationSpec(
        Resource.BLOCK, "getHeader", "Get hex-encoded block header",
        reshape.block_header, path="/block/{block_hash}/header",
        shape=Shape.TEXT, params=(BLOCK_HASH,),
    ),
    OperationSpec(
        Resource.BLOCK, "getTipHash", "Get the chain tip hash",
        reshape.tip_hash, path="/blocks/tip/hash", shape=Shape.TEXT,
    ),
    OperationSpec(
        Resource.BLOCK, "getTipHeight", "Get the chain tip height",
        reshape.tip_height, path="/blocks/tip/height", shape=Shape.TEXT,
    ),
    OperationSpec(
        Resource.BLOCK, "getRecent", "Get the 10 most recent blocks",
        reshape.recent_blocks, path="/blocks", optional_path="/{start_height}",
        shape=Shape.ARRAY,
        params=(Param("start_height", _non_negative_int, required=False),),
    ),
    # Mempool
    OperationSpec(
        Resource.MEMPOOL, "getInfo", "Get mempool backlog statistics",
        reshape.mempool_info, path="/mempool",
    ),
    OperationSpec(
        Resource.MEMPOOL, "getRecent", "Get the latest mempool transactions",
        reshape.mempool_recent, path="/mempool/recent", shape=Shape.ARRAY,
    ),
    OperationSpec(
        Resource.MEMPOOL, "getTxids", "Get all mempool transaction ids",
        reshape.mempool_txids, path="/mempool/txids", shape=Shape.ARRAY,
    ),
    # Fee
    OperationSpec(
        Resource.FEE, "getRecommended", "Get recommended fee rates",
        reshape.recommended_fees, path="/v1/fees/recommended",
    ),
    OperationSpec(
        Resource.FEE, "getEstimates", "Get fee estimates by confirmation target",
        reshape.fee_estimates, path="/fee-estimates",
    ),
    OperationSpec(
        Resource.FEE, "getMempoolBlocks", "Get projected mempool blocks",
        reshape.mempool_blocks, path="/v1/fees/mempool-blocks", shape=Shape.ARRAY,
    ),
]

OPERATIONS: dict[tuple[Resource, str], OperationSpec] = {
    (spec.resource, spec.name): spec for spec in _SPECS
}


def get_operation(resource: str | Resource, operation: str) -> OperationSpec:
    try:
        key = (Resource(resource), operation)
    except ValueError:
        raise UnknownOperationError(str(resource), operation) from None
    try:
        return OPERATIONS[key]
    except KeyError:
        raise UnknownOperationError(key[0].value, operation) from None


def list_operations() -> list[OperationSpec]:
    return list(_SPECS)

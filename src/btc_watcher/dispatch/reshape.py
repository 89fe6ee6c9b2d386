"""Response reshaping: field renames, satoshi -> BTC twins, page cursors."""

from __future__ import annotations

from dataclasses import asdict
from typing import Any

from btc_watcher.esplora.queries import parse_block, parse_height
from btc_watcher.models.chain import BlockInfo, Confirmations, sats_to_btc

# Esplora page sizes
ADDRESS_TXS_LIMIT = 25
BLOCK_TXS_PAGE = 25


def _status_fields(status: dict | None) -> dict[str, Any]:
    status = status or {}
    return {
        "confirmed": status.get("confirmed") or False,
        "block_height": status.get("block_height"),
        "block_hash": status.get("block_hash"),
        "block_time": status.get("block_time"),
    }


def _tx_summary(tx: dict) -> dict[str, Any]:
    status = _status_fields(tx.get("status"))
    return {
        "txid": tx["txid"],
        "confirmed": status["confirmed"],
        "block_height": status["block_height"],
        "block_time": status["block_time"],
        "fee": tx.get("fee"),
        "size": tx.get("size"),
        "weight": tx.get("weight"),
    }


# ── Address ────────────────────────────────────────────


def address_info(data: dict, params: dict) -> dict:
    chain = data["chain_stats"]
    received = chain["funded_txo_sum"]
    sent = chain["spent_txo_sum"]
    return {
        "address": data["address"],
        "chain_stats": chain,
        "mempool_stats": data["mempool_stats"],
        "total_received_satoshis": received,
        "total_received_btc": sats_to_btc(received),
        "total_sent_satoshis": sent,
        "total_sent_btc": sats_to_btc(sent),
        "balance_satoshis": received - sent,
        "balance_btc": sats_to_btc(received - sent),
        "tx_count": chain["tx_count"],
    }


def address_balance(data: dict, params: dict) -> dict:
    chain = data["chain_stats"]
    mempool = data["mempool_stats"]
    confirmed = chain["funded_txo_sum"] - chain["spent_txo_sum"]
    unconfirmed = mempool["funded_txo_sum"] - mempool["spent_txo_sum"]
    return {
        "address": params["address"],
        "confirmed_satoshis": confirmed,
        "confirmed_btc": sats_to_btc(confirmed),
        "unconfirmed_satoshis": unconfirmed,
        "unconfirmed_btc": sats_to_btc(unconfirmed),
        "total_satoshis": confirmed + unconfirmed,
        "total_btc": sats_to_btc(confirmed + unconfirmed),
    }


def address_utxos(data: list, params: dict) -> dict:
    total = sum(utxo["value"] for utxo in data)
    return {
        "address": params["address"],
        "utxo_count": len(data),
        "utxos": [
            {
                "txid": utxo["txid"],
                "vout": utxo["vout"],
                "value_satoshis": utxo["value"],
                "value_btc": sats_to_btc(utxo["value"]),
                "confirmed": (utxo.get("status") or {}).get("confirmed") or False,
                "block_height": (utxo.get("status") or {}).get("block_height"),
            }
            for utxo in data
        ],
        "total_value_satoshis": total,
        "total_value_btc": sats_to_btc(total),
    }


def address_transactions(data: list, params: dict) -> dict:
    return {
        "address": params["address"],
        "transaction_count": len(data),
        "transactions": [_tx_summary(tx) for tx in data[:ADDRESS_TXS_LIMIT]],
    }


def address_transaction_page(data: list, params: dict) -> dict:
    """A page of confirmed history. Pass next_after_txid back for the next page."""
    txs = [_tx_summary(tx) for tx in data]
    return {
        "address": params["address"],
        "after_txid": params.get("after_txid"),
        "transaction_count": len(txs),
        "transactions": txs,
        "next_after_txid": txs[-1]["txid"] if txs else None,
    }


def address_mempool_transactions(data: list, params: dict) -> dict:
    return {
        "address": params["address"],
        "transaction_count": len(data),
        "transactions": [_tx_summary(tx) for tx in data],
    }


# ── Transaction ────────────────────────────────────────


def transaction(data: dict, params: dict) -> dict:
    vin = data.get("vin") or []
    vout = data.get("vout") or []
    weight = data.get("weight")
    fee = data.get("fee")
    return {
        "txid": data["txid"],
        "version": data.get("version"),
        "locktime": data.get("locktime"),
        "size": data.get("size"),
        "weight": weight,
        "fee": fee,
        "fee_rate": fee / (weight / 4) if fee is not None and weight else None,
        **_status_fields(data.get("status")),
        "input_count": len(vin),
        "output_count": len(vout),
        "input_value_satoshis": sum((v.get("prevout") or {}).get("value") or 0 for v in vin),
        "output_value_satoshis": sum(v.get("value") or 0 for v in vout),
    }


def transaction_status(data: Confirmations, params: dict) -> dict:
    status = data.status
    return {
        "txid": data.txid,
        "confirmed": status.confirmed,
        "block_height": status.block_height,
        "block_hash": status.block_hash,
        "block_time": status.block_time,
        "confirmations": data.count,
    }


def transaction_hex(data: str, params: dict) -> dict:
    return {"txid": params["txid"], "hex": data.strip()}


def transaction_outspends(data: list, params: dict) -> dict:
    return {
        "txid": params["txid"],
        "output_count": len(data),
        "spent_count": sum(1 for o in data if o.get("spent")),
        "outspends": [
            {
                "vout": index,
                "spent": o.get("spent") or False,
                "spending_txid": o.get("txid"),
                "spending_vin": o.get("vin"),
                **{k: v for k, v in _status_fields(o.get("status")).items() if k != "confirmed"},
            }
            for index, o in enumerate(data)
        ],
    }


def merkle_proof(data: dict, params: dict) -> dict:
    return {
        "txid": params["txid"],
        "block_height": data["block_height"],
        "merkle": data["merkle"],
        "pos": data["pos"],
    }


def broadcast(data: str, params: dict) -> dict:
    return {
        "txid": data.strip(),
        "broadcast": True,
        "message": "Transaction broadcast successfully",
    }


# ── Block ──────────────────────────────────────────────


def block_info(data: BlockInfo, params: dict) -> dict:
    return asdict(data)


def block(data: dict, params: dict) -> dict:
    return block_info(parse_block(data), params)


def block_status(data: dict, params: dict) -> dict:
    return {
        "block_hash": params["block_hash"],
        "in_best_chain": data["in_best_chain"],
        "height": data.get("height"),
        "next_best": data.get("next_best"),
    }


def block_txids(data: list, params: dict) -> dict:
    return {"block_hash": params["block_hash"], "tx_count": len(data), "txids": data}


def block_transaction_page(data: list, params: dict) -> dict:
    """A page of block transactions. Pass next_start_index back for the next page."""
    start = params.get("start_index") or 0
    return {
        "block_hash": params["block_hash"],
        "start_index": start,
        "transaction_count": len(data),
        "transactions": [transaction(tx, params) for tx in data],
        "next_start_index": start + BLOCK_TXS_PAGE if len(data) == BLOCK_TXS_PAGE else None,
    }


def block_header(data: str, params: dict) -> dict:
    return {"block_hash": params["block_hash"], "header": data.strip()}


def tip_hash(data: str, params: dict) -> dict:
    return {"hash": data.strip()}


def tip_height(data: str, params: dict) -> dict:
    return {"height": parse_height(data)}


def recent_blocks(data: list, params: dict) -> dict:
    blocks = [block(b, params) for b in data]
    return {
        "start_height": params.get("start_height"),
        "block_count": len(blocks),
        "blocks": blocks,
    }


# ── Mempool ────────────────────────────────────────────


def mempool_info(data: dict, params: dict) -> dict:
    return {
        "count": data["count"],
        "vsize": data["vsize"],
        "total_fee": data["total_fee"],
        "total_fee_btc": sats_to_btc(data["total_fee"]),
        "fee_histogram": data.get("fee_histogram", []),
    }


def mempool_recent(data: list, params: dict) -> dict:
    return {
        "count": len(data),
        "transactions": [
            {
                "txid": tx["txid"],
                "fee": tx.get("fee"),
                "vsize": tx.get("vsize"),
                "value_satoshis": tx.get("value"),
                "value_btc": sats_to_btc(tx["value"]) if tx.get("value") is not None else None,
            }
            for tx in data
        ],
    }


def mempool_txids(data: list, params: dict) -> dict:
    return {"count": len(data), "txids": data}


# ── Fee ────────────────────────────────────────────────


def recommended_fees(data: dict, params: dict) -> dict:
    return {
        "fastest_fee": data["fastestFee"],
        "half_hour_fee": data["halfHourFee"],
        "hour_fee": data["hourFee"],
        "economy_fee": data["economyFee"],
        "minimum_fee": data["minimumFee"],
        "unit": "sat/vB",
    }


def fee_estimates(data: dict, params: dict) -> dict:
    # keys are confirmation targets in blocks
    estimates = {str(k): v for k, v in sorted(data.items(), key=lambda kv: int(kv[0]))}
    return {"estimates": estimates, "unit": "sat/vB"}


def mempool_blocks(data: list, params: dict) -> dict:
    return {
        "block_count": len(data),
        "blocks": [
            {
                "block_size": b.get("blockSize"),
                "block_vsize": b.get("blockVSize"),
                "n_tx": b.get("nTx"),
                "total_fees": b.get("totalFees"),
                "total_fees_btc": (
                    sats_to_btc(b["totalFees"]) if b.get("totalFees") is not None else None
                ),
                "median_fee": b.get("medianFee"),
                "fee_range": b.get("feeRange", []),
            }
            for b in data
        ],
        "unit": "sat/vB",
    }

"""Request dispatcher: operation table, reshaping, composite calls, item errors."""

from __future__ import annotations

import pytest

from btc_watcher.dispatch import RequestDispatcher, list_operations
from btc_watcher.dispatch.operations import Resource
from btc_watcher.errors import GatewayError, ItemError, UnknownOperationError, ValidationError

from tests.factories import (
    WATCHED,
    fake_hash,
    make_address_info,
    make_block,
    make_fees,
    make_status,
    make_tx,
    make_utxo,
)

TXID = fake_hash("tx-1")


@pytest.fixture
def dispatcher(mock_gateway):
    return RequestDispatcher(mock_gateway)


# ── Operation table ───────────────────────────────────────────────


def test_operation_table_covers_every_resource():
    specs = list_operations()
    assert len(specs) == 28
    assert {s.resource for s in specs} == set(Resource)
    assert len({(s.resource, s.name) for s in specs}) == len(specs)


async def test_unknown_operation_fails_before_any_request(dispatcher, mock_gateway):
    with pytest.raises(UnknownOperationError) as exc_info:
        await dispatcher.execute("address", "getEverything", [{"address": WATCHED}])
    assert "getEverything" in str(exc_info.value)

    with pytest.raises(UnknownOperationError):
        await dispatcher.execute("lightning", "getInfo", [{}])

    assert mock_gateway.calls == []


# ── Validation ────────────────────────────────────────────────────


async def test_missing_required_parameter(dispatcher, mock_gateway):
    with pytest.raises(ValidationError, match="address"):
        await dispatcher.call("address", "getBalance", {})
    assert mock_gateway.calls == []


@pytest.mark.parametrize("address", ["", "   ", "bc1q/../../mempool", "bc1q?x=1", "bc1 q"])
async def test_rejects_unsafe_addresses(dispatcher, mock_gateway, address):
    with pytest.raises(ValidationError):
        await dispatcher.call("address", "getInfo", {"address": address})
    assert mock_gateway.calls == []


async def test_rejects_malformed_txid(dispatcher):
    with pytest.raises(ValidationError, match="64 hex"):
        await dispatcher.call("transaction", "get", {"txid": "abc123"})


async def test_txid_is_normalized_to_lowercase(dispatcher, mock_gateway):
    mock_gateway.route(f"/tx/{TXID}/hex", "0200000001abcdef\n")

    result = await dispatcher.call("transaction", "getHex", {"txid": TXID.upper()})

    assert result == {"txid": TXID, "hex": "0200000001abcdef"}


async def test_rejects_negative_height(dispatcher):
    with pytest.raises(ValidationError, match=">= 0"):
        await dispatcher.call("block", "getByHeight", {"height": -1})


# ── Address ───────────────────────────────────────────────────────


async def test_balance_adds_btc_twins(dispatcher, mock_gateway):
    mock_gateway.route(f"/address/{WATCHED}", make_address_info())

    result = await dispatcher.call("address", "getBalance", {"address": WATCHED})

    assert result["confirmed_satoshis"] == 100_000_000
    assert result["confirmed_btc"] == 1.0
    assert result["unconfirmed_satoshis"] == 20_000
    assert result["unconfirmed_btc"] == pytest.approx(0.0002)
    assert result["total_satoshis"] == 100_020_000


async def test_info_derives_balance(dispatcher, mock_gateway):
    mock_gateway.route(f"/address/{WATCHED}", make_address_info())

    result = await dispatcher.call("address", "getInfo", {"address": WATCHED})

    assert result["total_received_btc"] == 1.5
    assert result["total_sent_btc"] == 0.5
    assert result["balance_satoshis"] == 100_000_000
    assert result["tx_count"] == 12


async def test_utxos_totalled(dispatcher, mock_gateway):
    mock_gateway.route(
        f"/address/{WATCHED}/utxo",
        [make_utxo(fake_hash("u1"), value=30_000), make_utxo(fake_hash("u2"), 1, 20_000, False)],
    )

    result = await dispatcher.call("address", "getUtxos", {"address": WATCHED})

    assert result["utxo_count"] == 2
    assert result["total_value_satoshis"] == 50_000
    assert result["total_value_btc"] == pytest.approx(0.0005)
    assert [u["confirmed"] for u in result["utxos"]] == [True, False]


async def test_recent_transactions_capped_at_page_size(dispatcher, mock_gateway):
    mock_gateway.route(f"/address/{WATCHED}/txs", [make_tx(f"T{i}") for i in range(50)])

    result = await dispatcher.call("address", "getTransactions", {"address": WATCHED})

    assert result["transaction_count"] == 50
    assert len(result["transactions"]) == 25


async def test_chain_transaction_paging(dispatcher, mock_gateway):
    after = fake_hash("T9")
    mock_gateway.route(f"/address/{WATCHED}/txs/chain", [make_tx("T10"), make_tx("T9")])
    mock_gateway.route(f"/address/{WATCHED}/txs/chain/{after}", [make_tx("T8")])

    first = await dispatcher.call("address", "getChainTransactions", {"address": WATCHED})
    assert first["next_after_txid"] == "T9"

    second = await dispatcher.call(
        "address", "getChainTransactions", {"address": WATCHED, "after_txid": after},
    )
    assert second["after_txid"] == after
    assert [t["txid"] for t in second["transactions"]] == ["T8"]


# ── Transaction ───────────────────────────────────────────────────


async def test_transaction_fee_rate(dispatcher, mock_gateway):
    mock_gateway.route(f"/tx/{TXID}", make_tx(TXID, fee=1_410, weight=564))

    result = await dispatcher.call("transaction", "get", {"txid": TXID})

    assert result["fee_rate"] == pytest.approx(10.0)
    assert result["input_count"] == 1
    assert result["output_value_satoshis"] == 98_590
    assert result["confirmed"]


async def test_status_composes_tip_and_status(dispatcher, mock_gateway):
    mock_gateway.set_tip(800_005)
    mock_gateway.route(f"/tx/{TXID}/status", make_status(block_height=800_000))

    result = await dispatcher.call("transaction", "getStatus", {"txid": TXID})

    assert mock_gateway.paths() == ["/blocks/tip/height", f"/tx/{TXID}/status"]
    assert result["confirmations"] == 6
    assert result["block_height"] == 800_000


async def test_status_unconfirmed_has_zero_confirmations(dispatcher, mock_gateway):
    mock_gateway.set_tip(800_005)
    mock_gateway.route(f"/tx/{TXID}/status", make_status(confirmed=False))

    result = await dispatcher.call("transaction", "getStatus", {"txid": TXID})

    assert result["confirmed"] is False
    assert result["confirmations"] == 0


async def test_broadcast_posts_raw_hex(dispatcher, mock_gateway):
    mock_gateway.route("/tx", TXID)

    result = await dispatcher.call("transaction", "broadcast", {"raw_tx": "0200000001ab"})

    assert result["txid"] == TXID
    assert result["broadcast"] is True
    assert mock_gateway.posts == [("/tx", "0200000001ab", {"Content-Type": "text/plain"})]


async def test_broadcast_rejects_non_hex(dispatcher, mock_gateway):
    with pytest.raises(ValidationError):
        await dispatcher.call("transaction", "broadcast", {"raw_tx": "not hex"})
    assert mock_gateway.posts == []


# ── Block ─────────────────────────────────────────────────────────


async def test_block_by_height_pipeline(dispatcher, mock_gateway):
    raw = make_block(800_000)
    mock_gateway.add_block(raw)

    result = await dispatcher.call("block", "getByHeight", {"height": "800000"})

    assert mock_gateway.paths() == ["/block-height/800000", f"/block/{raw['id']}"]
    assert result["hash"] == raw["id"]
    assert result["height"] == 800_000
    assert result["previous_block_hash"] == raw["previousblockhash"]


async def test_latest_block_pipeline(dispatcher, mock_gateway):
    raw = make_block(812_345)
    mock_gateway.set_tip(812_345)
    mock_gateway.add_block(raw)

    result = await dispatcher.call("block", "getLatest")

    assert mock_gateway.paths() == [
        "/blocks/tip/height", "/block-height/812345", f"/block/{raw['id']}",
    ]
    assert result["height"] == 812_345


async def test_tip_height_parsed_from_text(dispatcher, mock_gateway):
    mock_gateway.set_tip(812_345)
    assert await dispatcher.call("block", "getTipHeight") == {"height": 812_345}


async def test_block_transaction_paging(dispatcher, mock_gateway):
    block_hash = fake_hash("block-1")
    mock_gateway.route(f"/block/{block_hash}/txs", [make_tx(f"A{i}") for i in range(25)])
    mock_gateway.route(f"/block/{block_hash}/txs/25", [make_tx("B0")])

    first = await dispatcher.call("block", "getTransactions", {"block_hash": block_hash})
    assert first["next_start_index"] == 25

    second = await dispatcher.call(
        "block", "getTransactions", {"block_hash": block_hash, "start_index": 25},
    )
    assert second["transaction_count"] == 1
    assert second["next_start_index"] is None


# ── Mempool & fees ────────────────────────────────────────────────


async def test_mempool_info(dispatcher, mock_gateway):
    mock_gateway.route(
        "/mempool",
        {"count": 4200, "vsize": 2_100_000, "total_fee": 12_000_000, "fee_histogram": []},
    )

    result = await dispatcher.call("mempool", "getInfo")

    assert result["count"] == 4200
    assert result["total_fee_btc"] == 0.12


async def test_recommended_fees(dispatcher, mock_gateway):
    mock_gateway.route("/v1/fees/recommended", make_fees())

    result = await dispatcher.call("fee", "getRecommended")

    assert result == {
        "fastest_fee": 100,
        "half_hour_fee": 80,
        "hour_fee": 60,
        "economy_fee": 30,
        "minimum_fee": 10,
        "unit": "sat/vB",
    }


async def test_fee_estimates_sorted_by_target(dispatcher, mock_gateway):
    mock_gateway.route("/fee-estimates", {"144": 1.0, "1": 87.8, "6": 40.2})

    result = await dispatcher.call("fee", "getEstimates")

    assert list(result["estimates"]) == ["1", "6", "144"]


# ── Upstream errors & items ───────────────────────────────────────


async def test_wrong_response_shape_is_gateway_error(dispatcher, mock_gateway):
    mock_gateway.route(f"/address/{WATCHED}/utxo", {"error": "unexpected"})

    with pytest.raises(GatewayError, match="expected JSON array"):
        await dispatcher.call("address", "getUtxos", {"address": WATCHED})


async def test_missing_field_is_gateway_error(dispatcher, mock_gateway):
    mock_gateway.route(f"/address/{WATCHED}", {"address": WATCHED})

    with pytest.raises(GatewayError, match="address.getBalance"):
        await dispatcher.call("address", "getBalance", {"address": WATCHED})


async def test_strict_mode_reports_failing_item(dispatcher, mock_gateway):
    good = fake_hash("good")
    mock_gateway.route(f"/tx/{good}/hex", "00")
    items = [{"txid": good}, {"txid": "bogus"}, {"txid": good}]

    with pytest.raises(ItemError) as exc_info:
        await dispatcher.execute("transaction", "getHex", items)

    assert exc_info.value.index == 1
    assert str(exc_info.value).endswith("[item 1]")
    assert isinstance(exc_info.value.__cause__, ValidationError)
    # The third item was never attempted
    assert mock_gateway.paths() == [f"/tx/{good}/hex"]


async def test_permissive_mode_yields_error_records(mock_gateway):
    dispatcher = RequestDispatcher(mock_gateway, continue_on_fail=True)
    good = fake_hash("good")
    missing = fake_hash("missing")
    mock_gateway.route(f"/tx/{good}/hex", "00")
    message = f"HTTP 404 from GET /tx/{missing}/hex: Transaction not found"
    mock_gateway.fail(f"/tx/{missing}/hex", message, status_code=404)

    records = await dispatcher.execute(
        "transaction", "getHex", [{"txid": good}, {"txid": missing}, {"txid": good}],
    )

    assert len(records) == 3
    assert records[0] == {"txid": good, "hex": "00"}
    assert records[1] == {"error": message, "item": 1}
    assert records[2] == {"txid": good, "hex": "00"}


async def test_permissive_mode_still_rejects_unknown_operation(mock_gateway):
    dispatcher = RequestDispatcher(mock_gateway, continue_on_fail=True)
    with pytest.raises(UnknownOperationError):
        await dispatcher.execute("fee", "getNothing", [{}])


async def test_non_mapping_item_keeps_its_index(mock_gateway):
    good = fake_hash("good")
    mock_gateway.route(f"/tx/{good}/hex", "00")

    permissive = RequestDispatcher(mock_gateway, continue_on_fail=True)
    records = await permissive.execute("transaction", "getHex", [{"txid": good}, None])
    assert records[1]["item"] == 1
    assert "mapping" in records[1]["error"]

    with pytest.raises(ItemError) as exc_info:
        await RequestDispatcher(mock_gateway).execute("transaction", "getHex", [None])
    assert exc_info.value.index == 0
    assert isinstance(exc_info.value.__cause__, ValidationError)

"""transactionConfirmed trigger: confirmation counting and the one-shot latch."""

from __future__ import annotations

from btc_watcher.models.config import EventKind

from tests.conftest import WATCHED_TXID, seed_cursor
from tests.factories import fake_hash, make_status

STATUS = f"/tx/{WATCHED_TXID}/status"


async def test_unconfirmed_transaction_leaves_no_state(make_poller, mock_gateway, store):
    poller = make_poller(EventKind.TRANSACTION_CONFIRMED)
    mock_gateway.set_tip(800_010)
    mock_gateway.route(STATUS, make_status(confirmed=False))

    assert await poller.poll() == []
    assert await store.read(poller.cursor_key) is None


async def test_below_threshold_records_count(make_poller, mock_gateway, store):
    poller = make_poller(EventKind.TRANSACTION_CONFIRMED, confirmations=6)
    mock_gateway.set_tip(800_002)
    mock_gateway.route(STATUS, make_status(block_height=800_000))

    assert await poller.poll() == []
    cursor = await store.read(poller.cursor_key)
    assert cursor.last_confirmations == 3
    assert not cursor.triggered


async def test_fires_once_when_threshold_reached(make_poller, mock_gateway, store):
    poller = make_poller(EventKind.TRANSACTION_CONFIRMED, confirmations=6)
    mock_gateway.route(STATUS, make_status(block_height=800_000))

    mock_gateway.set_tip(800_003)
    assert await poller.poll() == []

    mock_gateway.set_tip(800_005)
    [event] = await poller.poll()
    assert event.txid == WATCHED_TXID
    assert event.confirmations == 6
    assert event.block_height == 800_000
    assert event.block_hash == fake_hash("block-800000")

    cursor = await store.read(poller.cursor_key)
    assert cursor.triggered
    assert cursor.last_confirmations == 6

    # Latched: further confirmations never re-fire or touch the cursor
    for tip in (800_006, 800_050):
        mock_gateway.set_tip(tip)
        assert await poller.poll() == []
        assert not poller.last_cursor_written


async def test_already_deep_on_first_observation_fires(make_poller, mock_gateway, store):
    poller = make_poller(EventKind.TRANSACTION_CONFIRMED, confirmations=6)
    mock_gateway.set_tip(800_009)
    mock_gateway.route(STATUS, make_status(block_height=800_000))

    [event] = await poller.poll()

    assert event.confirmations == 10
    assert (await store.read(poller.cursor_key)).triggered


async def test_count_refreshed_every_cycle(make_poller, mock_gateway, store):
    poller = make_poller(EventKind.TRANSACTION_CONFIRMED, confirmations=6)
    await seed_cursor(store, poller, last_confirmations=1)
    mock_gateway.route(STATUS, make_status(block_height=800_000))

    for tip, expected in ((800_001, 2), (800_003, 4)):
        mock_gateway.set_tip(tip)
        assert await poller.poll() == []
        assert (await store.read(poller.cursor_key)).last_confirmations == expected


async def test_two_requests_per_cycle(make_poller, mock_gateway):
    poller = make_poller(EventKind.TRANSACTION_CONFIRMED)
    mock_gateway.set_tip(800_001)
    mock_gateway.route(STATUS, make_status(block_height=800_000))

    await poller.poll()

    assert mock_gateway.paths() == ["/blocks/tip/height", STATUS]

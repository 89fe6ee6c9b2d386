"""Shared fixtures for btc_watcher tests."""

from __future__ import annotations

import pytest
from pytest_metadata.plugin import metadata_key

from btc_watcher.esplora.queries import ChainQueries
from btc_watcher.models.config import EventKind, TriggerConfig, WatcherConfig
from btc_watcher.models.cursor import Cursor
from btc_watcher.storage.sqlite import SQLiteCursorStore
from btc_watcher.trigger.poller import BitcoinEventPoller

from tests.factories import WATCHED, fake_hash
from tests.mocks import MockGateway

WATCHED_TXID = fake_hash("watched-tx")


# ── Report metadata ──────────────────────────────────────────────


def pytest_configure(config):
    """Add API info to the HTML report Environment table."""
    meta = config.stash.setdefault(metadata_key, {})
    meta["Explorer API"] = "Esplora (mocked)"
    meta["Watched Address"] = WATCHED


def make_test_config(**overrides) -> WatcherConfig:
    """Build a WatcherConfig suitable for testing."""
    defaults = dict(
        poll_interval=1,
        error_backoff=1,
        cycle_timeout=5,
        network="testnet",
        db_path=":memory:",
        triggers=[],
    )
    defaults.update(overrides)
    return WatcherConfig(**defaults)


def make_trigger(event: EventKind, name: str | None = None, **params) -> TriggerConfig:
    """Build a valid trigger for an event kind with sensible parameters."""
    defaults: dict = {}
    if event == EventKind.ADDRESS_TRANSACTION:
        defaults = dict(address=WATCHED)
    elif event == EventKind.TRANSACTION_CONFIRMED:
        defaults = dict(txid=WATCHED_TXID, confirmations=6)
    elif event == EventKind.FEE_RATE_CHANGE:
        defaults = dict(fee_type="fastestFee", change_threshold=10.0)
    defaults.update(params)
    trigger = TriggerConfig(name=name or event.value, event=event, **defaults)
    trigger.validate()
    return trigger


async def seed_cursor(store, poller: BitcoinEventPoller, **fields) -> Cursor:
    cursor = Cursor(**fields)
    await store.write(poller.cursor_key, cursor)
    return cursor


@pytest.fixture
def test_config():
    """Default WatcherConfig for tests."""
    return make_test_config()


@pytest.fixture
async def store():
    """Initialized in-memory SQLiteCursorStore."""
    s = SQLiteCursorStore(":memory:")
    await s.initialize()
    yield s
    await s.close()


@pytest.fixture
def mock_gateway():
    return MockGateway()


@pytest.fixture
def queries(mock_gateway):
    return ChainQueries(mock_gateway)


@pytest.fixture
def make_poller(queries, store):
    """Factory: poller for a trigger, wired to the mock gateway and store."""

    def _make(event: EventKind, **params) -> BitcoinEventPoller:
        return BitcoinEventPoller(make_trigger(event, **params), queries, store)

    return _make

"""Data models for btc_watcher."""

from btc_watcher.models.chain import (
    AddressTx,
    BlockInfo,
    Confirmations,
    FeeSchedule,
    TxStatus,
)
from btc_watcher.models.config import (
    ApiProvider,
    Direction,
    EventKind,
    TriggerConfig,
    WatcherConfig,
)
from btc_watcher.models.cursor import Cursor
from btc_watcher.models.events import (
    AddressTransactionEvent,
    FeeRateChangeEvent,
    NewBlockEvent,
    TransactionConfirmedEvent,
)
from btc_watcher.models.records import CursorRecord, CycleReport

__all__ = [
    "AddressTx", "BlockInfo", "Confirmations", "FeeSchedule", "TxStatus",
    "ApiProvider", "Direction", "EventKind", "TriggerConfig", "WatcherConfig",
    "Cursor",
    "AddressTransactionEvent", "FeeRateChangeEvent", "NewBlockEvent",
    "TransactionConfirmedEvent",
    "CursorRecord", "CycleReport",
]

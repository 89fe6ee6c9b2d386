"""EventPoller protocol - one diffing poll cycle per call."""

from __future__ import annotations

from typing import Protocol, Union

from btc_watcher.models.events import (
    AddressTransactionEvent,
    FeeRateChangeEvent,
    NewBlockEvent,
    TransactionConfirmedEvent,
)

BitcoinEvent = Union[
    NewBlockEvent,
    AddressTransactionEvent,
    TransactionConfirmedEvent,
    FeeRateChangeEvent,
]


class EventPoller(Protocol):
    """Polls the explorer for one configured trigger."""

    async def poll(self) -> list[BitcoinEvent]:
        """Run one cycle: diff remote state against the cursor, emit, commit."""
        ...

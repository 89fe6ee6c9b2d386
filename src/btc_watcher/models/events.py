"""Trigger event models emitted by the polling engine."""

from __future__ import annotations

from dataclasses import asdict, dataclass, field
from typing import Any, ClassVar


@dataclass(frozen=True)
class _Event:
    event: ClassVar[str]

    def to_dict(self) -> dict[str, Any]:
        return {"event": self.event, **asdict(self)}


@dataclass(frozen=True)
class NewBlockEvent(_Event):
    """A block was mined at a height above the cursor."""

    event: ClassVar[str] = "newBlock"

    height: int
    hash: str
    timestamp: int  # unix seconds
    tx_count: int
    size: int
    weight: int
    difficulty: float


@dataclass(frozen=True)
class AddressTransactionEvent(_Event):
    """A new transaction touched the monitored address."""

    event: ClassVar[str] = "addressTransaction"

    address: str
    txid: str
    confirmed: bool
    block_height: int | None
    block_time: int | None
    fee: int | None  # sats
    incoming: bool
    outgoing: bool


@dataclass(frozen=True)
class TransactionConfirmedEvent(_Event):
    """A transaction reached the required confirmation count. Fires once."""

    event: ClassVar[str] = "transactionConfirmed"

    txid: str
    confirmations: int
    block_hash: str | None
    block_height: int


@dataclass(frozen=True)
class FeeRateChangeEvent(_Event):
    """The monitored fee tier moved by at least the configured threshold."""

    event: ClassVar[str] = "feeRateChange"

    fee_type: str
    previous_fee: float
    current_fee: float
    change_percent: float
    direction: str  # "increased" | "decreased"
    all_fees: dict[str, float] = field(default_factory=dict)

"""Persisted poll cursor - the only state a trigger carries between cycles."""

from __future__ import annotations

from dataclasses import asdict, dataclass, fields
from typing import Any


@dataclass(frozen=True)
class Cursor:
    """Per-trigger polling state.

    Each event kind uses its own subset of fields. A field is None until the
    first successful poll captures a baseline for it.
    """

    last_block_height: int | None = None  # newBlock
    last_seen_txid: str | None = None  # addressTransaction
    last_confirmations: int | None = None  # transactionConfirmed
    triggered: bool = False  # transactionConfirmed, one-way
    last_fee: float | None = None  # feeRateChange, sat/vB

    def to_dict(self) -> dict[str, Any]:
        return asdict(self)

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> Cursor:
        known = {f.name for f in fields(cls)}
        return cls(**{k: v for k, v in data.items() if k in known})

"""Remote chain snapshots fetched fresh on every poll cycle."""

from __future__ import annotations

from dataclasses import dataclass, field

SATS_PER_BTC = 100_000_000

FEE_TIERS = ("fastestFee", "halfHourFee", "hourFee", "economyFee", "minimumFee")


def sats_to_btc(sats: int | float) -> float:
    return sats / SATS_PER_BTC


@dataclass(frozen=True)
class BlockInfo:
    """Block metadata as reported by /block/{hash}."""

    height: int
    hash: str
    timestamp: int
    tx_count: int
    size: int
    weight: int
    difficulty: float
    merkle_root: str = ""
    previous_block_hash: str | None = None
    nonce: int | None = None
    bits: int | None = None
    version: int | None = None


@dataclass(frozen=True)
class TxStatus:
    """Confirmation status of a transaction."""

    confirmed: bool
    block_height: int | None = None
    block_hash: str | None = None
    block_time: int | None = None


@dataclass(frozen=True)
class AddressTx:
    """A transaction touching a monitored address, reduced to what we diff on."""

    txid: str
    status: TxStatus
    fee: int | None = None
    size: int | None = None
    weight: int | None = None
    # prevout addresses; inputs without a resolvable prevout are omitted
    input_addresses: tuple[str, ...] = ()
    output_addresses: tuple[str, ...] = ()
    input_value: int = 0  # sats
    output_value: int = 0  # sats


@dataclass(frozen=True)
class FeeSchedule:
    """Recommended fee rates in sat/vB (/v1/fees/recommended)."""

    fastestFee: float
    halfHourFee: float
    hourFee: float
    economyFee: float
    minimumFee: float

    def tier(self, name: str) -> float:
        if name not in FEE_TIERS:
            raise KeyError(f"unknown fee tier: {name}")
        return getattr(self, name)

    def as_dict(self) -> dict[str, float]:
        return {name: getattr(self, name) for name in FEE_TIERS}


@dataclass
class Confirmations:
    """Composite of tip height and a transaction's status."""

    txid: str
    tip_height: int
    status: TxStatus = field(default_factory=lambda: TxStatus(confirmed=False))

    @property
    def count(self) -> int:
        if not self.status.confirmed or self.status.block_height is None:
            return 0
        return self.tip_height - self.status.block_height + 1

"""Direction classification and user filters for address transactions."""

from __future__ import annotations

from dataclasses import dataclass

from btc_watcher.models.chain import AddressTx
from btc_watcher.models.config import Direction


@dataclass(frozen=True)
class Flow:
    incoming: bool
    outgoing: bool


def classify(tx: AddressTx, address: str) -> Flow:
    """Flag a transaction as incoming and/or outgoing for an address.

    Incoming: the address receives an output and spends none of the inputs.
    Outgoing: the address funds at least one input. A self-spend with change
    back to the address is outgoing only.
    """
    spends = address in tx.input_addresses
    receives = address in tx.output_addresses
    return Flow(incoming=receives and not spends, outgoing=spends)


def passes_filters(
    tx: AddressTx,
    flow: Flow,
    direction: Direction,
    include_unconfirmed: bool,
) -> bool:
    if not include_unconfirmed and not tx.status.confirmed:
        return False
    if direction == Direction.INCOMING and not flow.incoming:
        return False
    if direction == Direction.OUTGOING and not flow.outgoing:
        return False
    return True

"""Esplora event poller - diffs remote chain state against a stored cursor.

Each event kind is a rule: ``(queries, trigger, cursor) -> (events, cursor)``.
Rules never touch the store. The poller reads the cursor, runs the rule, and
writes the returned cursor only after the rule has finished and only if it
changed. A rule that raises leaves the stored cursor exactly as it was.
"""

from __future__ import annotations

import dataclasses
import logging
from typing import Awaitable, Callable

from btc_watcher.errors import GatewayError, PollCycleError
from btc_watcher.esplora.queries import ChainQueries
from btc_watcher.interfaces.poller import BitcoinEvent
from btc_watcher.interfaces.store import CursorStore
from btc_watcher.models.config import EventKind, TriggerConfig
from btc_watcher.models.cursor import Cursor
from btc_watcher.models.events import (
    AddressTransactionEvent,
    FeeRateChangeEvent,
    NewBlockEvent,
    TransactionConfirmedEvent,
)
from btc_watcher.trigger.classify import classify, passes_filters

log = logging.getLogger(__name__)

RuleResult = tuple[list[BitcoinEvent], Cursor]
Rule = Callable[[ChainQueries, TriggerConfig, Cursor], Awaitable[RuleResult]]


async def new_block_rule(
    queries: ChainQueries, trigger: TriggerConfig, cursor: Cursor
) -> RuleResult:
    tip = await queries.tip_height()
    last = cursor.last_block_height

    if last is None:
        log.info("[%s] baseline block height %d", trigger.name, tip)
        return [], dataclasses.replace(cursor, last_block_height=tip)

    if tip <= last:
        return [], cursor

    events: list[BitcoinEvent] = []
    for height in range(last + 1, tip + 1):
        try:
            block = await queries.block_at_height(height)
        except GatewayError as exc:
            # Permanently skipped; the cursor still moves past it below.
            log.warning("[%s] skipping block %d: %s", trigger.name, height, exc)
            continue
        events.append(
            NewBlockEvent(
                height=block.height,
                hash=block.hash,
                timestamp=block.timestamp,
                tx_count=block.tx_count,
                size=block.size,
                weight=block.weight,
                difficulty=block.difficulty,
            )
        )

    return events, dataclasses.replace(cursor, last_block_height=tip)


async def address_transaction_rule(
    queries: ChainQueries, trigger: TriggerConfig, cursor: Cursor
) -> RuleResult:
    txs = await queries.address_txs(trigger.address)
    if not txs:
        return [], cursor

    newest = txs[0].txid
    if cursor.last_seen_txid is None:
        log.info("[%s] baseline txid %s", trigger.name, newest)
        return [], dataclasses.replace(cursor, last_seen_txid=newest)

    collected = []
    for tx in txs:
        if tx.txid == cursor.last_seen_txid:
            break
        collected.append(tx)

    events: list[BitcoinEvent] = []
    for tx in reversed(collected):
        flow = classify(tx, trigger.address)
        if not passes_filters(tx, flow, trigger.direction, trigger.include_unconfirmed):
            log.debug("[%s] filtered out %s", trigger.name, tx.txid)
            continue
        events.append(
            AddressTransactionEvent(
                address=trigger.address,
                txid=tx.txid,
                confirmed=tx.status.confirmed,
                block_height=tx.status.block_height,
                block_time=tx.status.block_time,
                fee=tx.fee,
                incoming=flow.incoming,
                outgoing=flow.outgoing,
            )
        )

    # The cursor tracks what was seen, not what was emitted.
    return events, dataclasses.replace(cursor, last_seen_txid=newest)


async def transaction_confirmed_rule(
    queries: ChainQueries, trigger: TriggerConfig, cursor: Cursor
) -> RuleResult:
    result = await queries.confirmations(trigger.txid)
    status = result.status
    if not status.confirmed or status.block_height is None:
        return [], cursor
    if cursor.triggered:
        return [], cursor

    count = result.count
    required = trigger.confirmations
    first_observation = cursor.last_confirmations is None

    fire = count >= required and (first_observation or count != cursor.last_confirmations)
    if not fire:
        if first_observation:
            log.info("[%s] baseline %d/%d confirmations", trigger.name, count, required)
        return [], dataclasses.replace(cursor, last_confirmations=count)

    event = TransactionConfirmedEvent(
        txid=trigger.txid,
        confirmations=count,
        block_hash=status.block_hash,
        block_height=status.block_height,
    )
    return [event], dataclasses.replace(cursor, last_confirmations=count, triggered=True)


async def fee_rate_change_rule(
    queries: ChainQueries, trigger: TriggerConfig, cursor: Cursor
) -> RuleResult:
    fees = await queries.recommended_fees()
    current = fees.tier(trigger.fee_type)
    baseline = cursor.last_fee

    if baseline is None or baseline == 0:
        # No relative change is defined against a zero reference.
        if baseline != current:
            log.info("[%s] baseline %s = %s sat/vB", trigger.name, trigger.fee_type, current)
        return [], dataclasses.replace(cursor, last_fee=current)

    if current == baseline:
        return [], cursor

    change = abs(current - baseline) / baseline * 100
    if change < trigger.change_threshold:
        # Hysteresis: the reference stays at the last triggering value.
        return [], cursor

    event = FeeRateChangeEvent(
        fee_type=trigger.fee_type,
        previous_fee=baseline,
        current_fee=current,
        change_percent=round(change, 2),
        direction="increased" if current > baseline else "decreased",
        all_fees=fees.as_dict(),
    )
    return [event], dataclasses.replace(cursor, last_fee=current)


RULES: dict[EventKind, Rule] = {
    EventKind.NEW_BLOCK: new_block_rule,
    EventKind.ADDRESS_TRANSACTION: address_transaction_rule,
    EventKind.TRANSACTION_CONFIRMED: transaction_confirmed_rule,
    EventKind.FEE_RATE_CHANGE: fee_rate_change_rule,
}


class BitcoinEventPoller:
    """Runs poll cycles for one configured trigger.

    The caller must not run two cycles for the same trigger concurrently;
    the store does no locking of its own.
    """

    def __init__(
        self,
        trigger: TriggerConfig,
        queries: ChainQueries,
        store: CursorStore,
    ) -> None:
        self._trigger = trigger
        self._queries = queries
        self._store = store
        self._rule = RULES[trigger.event]
        self._key = trigger.cursor_key()
        self.last_cursor_written = False

    @property
    def trigger(self) -> TriggerConfig:
        return self._trigger

    @property
    def cursor_key(self) -> str:
        return self._key

    async def get_cursor(self) -> Cursor:
        return await self._store.read(self._key) or Cursor()

    async def poll(self) -> list[BitcoinEvent]:
        """Run one cycle. Raises PollCycleError with the cursor untouched."""
        self.last_cursor_written = False
        try:
            cursor = await self.get_cursor()
            events, next_cursor = await self._rule(self._queries, self._trigger, cursor)
            if next_cursor != cursor:
                await self._store.write(self._key, next_cursor)
                self.last_cursor_written = True
        except Exception as exc:
            raise PollCycleError(str(exc), trigger=self._trigger.name) from exc

        for event in events:
            log.info("[%s] emit %s", self._trigger.name, event.to_dict())
        return events

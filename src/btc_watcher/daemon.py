"""Watcher daemon - schedules poll cycles for every configured trigger."""

from __future__ import annotations

import asyncio
import logging
import signal
import time
from datetime import datetime, timezone
from typing import Awaitable, Callable

from btc_watcher.errors import PollCycleError
from btc_watcher.esplora.client import EsploraGateway
from btc_watcher.esplora.queries import ChainQueries
from btc_watcher.interfaces.gateway import HttpGateway
from btc_watcher.interfaces.poller import BitcoinEvent
from btc_watcher.interfaces.store import CursorStore
from btc_watcher.models.config import TriggerConfig, WatcherConfig
from btc_watcher.models.records import CycleReport
from btc_watcher.storage.sqlite import SQLiteCursorStore
from btc_watcher.trigger.poller import BitcoinEventPoller

log = logging.getLogger(__name__)

EventSink = Callable[[TriggerConfig, BitcoinEvent], Awaitable[None]]


async def log_sink(trigger: TriggerConfig, event: BitcoinEvent) -> None:
    log.info("Event from %s: %s", trigger.name, event.to_dict())


class WatcherDaemon:
    """Runs poll cycles for all triggers, one at a time.

    Cycles never overlap: triggers are polled sequentially, so each cursor
    record has a single writer. A cycle that outlives ``cycle_timeout`` is
    cancelled and counts as failed; its cursor write never happens.
    """

    def __init__(
        self,
        cfg: WatcherConfig,
        sink: EventSink = log_sink,
        gateway: HttpGateway | None = None,
        store: CursorStore | None = None,
    ) -> None:
        self._cfg = cfg
        self._sink = sink
        self._running = False

        self.gateway = gateway or EsploraGateway(cfg.base_url(), cfg.timeout)
        self.store = store or SQLiteCursorStore(cfg.db_path)
        self.queries = ChainQueries(self.gateway)
        self.pollers = [
            BitcoinEventPoller(trigger, self.queries, self.store)
            for trigger in cfg.triggers
        ]

    async def start(self) -> None:
        """Initialize the store and run the main loop until stopped."""
        log.info("Starting btc_watcher daemon")
        log.info("  Network: %s", self._cfg.network)
        log.info("  API: %s", self._api_label())
        log.info("  Triggers: %s", ", ".join(p.trigger.name for p in self.pollers) or "(none)")

        await self.store.initialize()
        self._running = True
        try:
            await self._main_loop()
        finally:
            await self.store.close()
            if isinstance(self.gateway, EsploraGateway):
                await self.gateway.close()
            log.info("Daemon shut down cleanly")

    async def stop(self) -> None:
        """Signal the daemon to stop gracefully."""
        log.info("Stop requested")
        self._running = False

    async def _main_loop(self) -> None:
        while self._running:
            try:
                reports = await self.run_once()
                failed = any(r.error for r in reports)
                await asyncio.sleep(
                    self._cfg.error_backoff if failed else self._cfg.poll_interval
                )
            except asyncio.CancelledError:
                log.info("Main loop cancelled")
                break
            except Exception as exc:
                log.error("Main loop error: %s", exc, exc_info=True)
                await asyncio.sleep(self._cfg.error_backoff)

    async def run_once(self) -> list[CycleReport]:
        """Run one cycle for every trigger, in configuration order."""
        return [await self.run_cycle(poller) for poller in self.pollers]

    async def run_cycle(self, poller: BitcoinEventPoller) -> CycleReport:
        trigger = poller.trigger
        report = CycleReport(
            trigger=trigger.name,
            event_kind=trigger.event.value,
            started_at=datetime.now(timezone.utc).isoformat(),
        )
        start = time.monotonic()

        try:
            events = await asyncio.wait_for(poller.poll(), timeout=self._cfg.cycle_timeout)
        except PollCycleError as exc:
            report.error = str(exc)
            log.error("Poll cycle failed for %s: %s", trigger.name, exc, exc_info=True)
        except asyncio.TimeoutError:
            report.error = f"poll cycle exceeded {self._cfg.cycle_timeout}s"
            log.error("Poll cycle timed out for %s", trigger.name)
        else:
            report.cursor_written = poller.last_cursor_written
            report.emitted = len(events)
            for event in events:
                report.events.append(event.to_dict())
                try:
                    await self._sink(trigger, event)
                except Exception as exc:
                    # cursor is already committed; the event is lost
                    report.sink_errors.append(str(exc))
                    log.error(
                        "Sink failed for %s event from %s: %s",
                        event.event, trigger.name, exc, exc_info=True,
                    )

        report.duration_ms = int((time.monotonic() - start) * 1000)
        return report

    def _api_label(self) -> str:
        if isinstance(self.gateway, EsploraGateway):
            return self.gateway.base_url
        return type(self.gateway).__name__


async def run_daemon(cfg: WatcherConfig, sink: EventSink = log_sink) -> None:
    """Entry point for running the daemon."""
    daemon = WatcherDaemon(cfg, sink=sink)

    loop = asyncio.get_running_loop()

    def _signal_handler():
        asyncio.ensure_future(daemon.stop())

    for sig in (signal.SIGINT, signal.SIGTERM):
        try:
            loop.add_signal_handler(sig, _signal_handler)
        except NotImplementedError:
            # Windows doesn't support add_signal_handler
            pass

    await daemon.start()

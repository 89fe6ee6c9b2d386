"""Protocol interfaces for all btc_watcher components."""

from btc_watcher.interfaces.gateway import HttpGateway
from btc_watcher.interfaces.poller import BitcoinEvent, EventPoller
from btc_watcher.interfaces.store import CursorStore

__all__ = [
    "HttpGateway",
    "BitcoinEvent", "EventPoller",
    "CursorStore",
]

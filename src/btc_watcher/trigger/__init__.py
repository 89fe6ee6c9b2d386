"""Polling trigger engine."""

from btc_watcher.trigger.poller import RULES, BitcoinEventPoller

__all__ = ["RULES", "BitcoinEventPoller"]

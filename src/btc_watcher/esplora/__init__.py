"""Esplora / Mempool.space API integration."""

from btc_watcher.esplora.client import EsploraGateway
from btc_watcher.esplora.queries import ChainQueries

__all__ = ["EsploraGateway", "ChainQueries"]

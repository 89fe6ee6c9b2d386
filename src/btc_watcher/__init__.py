"""btc_watcher - Esplora/Mempool.space operations and polling triggers."""

__version__ = "0.1.0"

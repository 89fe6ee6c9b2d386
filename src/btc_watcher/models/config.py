"""Configuration models for the watcher."""

from __future__ import annotations

import hashlib
import json
from dataclasses import dataclass, field
from enum import Enum

from btc_watcher.errors import ConfigError
from btc_watcher.models.chain import FEE_TIERS

BASE_URLS = {
    "mainnet": "https://mempool.space/api",
    "testnet": "https://mempool.space/testnet/api",
    "signet": "https://mempool.space/signet/api",
}


class EventKind(str, Enum):
    """Trigger event kinds."""

    NEW_BLOCK = "newBlock"
    ADDRESS_TRANSACTION = "addressTransaction"
    TRANSACTION_CONFIRMED = "transactionConfirmed"
    FEE_RATE_CHANGE = "feeRateChange"


class Direction(str, Enum):
    """Address transaction direction filter."""

    ALL = "all"
    INCOMING = "incoming"
    OUTGOING = "outgoing"


class ApiProvider(str, Enum):
    MEMPOOL = "mempool"  # public mempool.space, by network
    CUSTOM = "custom"  # self-hosted Esplora / mempool instance


@dataclass
class TriggerConfig:
    """One configured polling trigger. Parameters are per event kind."""

    name: str
    event: EventKind = EventKind.NEW_BLOCK

    # addressTransaction
    address: str = ""
    direction: Direction = Direction.ALL
    include_unconfirmed: bool = True

    # transactionConfirmed
    txid: str = ""
    confirmations: int = 6

    # feeRateChange
    fee_type: str = "fastestFee"
    change_threshold: float = 10.0  # percent

    def parameters(self) -> dict:
        """The parameters that identify this trigger's remote subject."""
        if self.event == EventKind.ADDRESS_TRANSACTION:
            return {
                "address": self.address,
                "direction": self.direction.value,
                "include_unconfirmed": self.include_unconfirmed,
            }
        if self.event == EventKind.TRANSACTION_CONFIRMED:
            return {"txid": self.txid, "confirmations": self.confirmations}
        if self.event == EventKind.FEE_RATE_CHANGE:
            return {"fee_type": self.fee_type, "change_threshold": self.change_threshold}
        return {}

    def cursor_key(self) -> str:
        """Store key: name, kind, and a digest of the kind's parameters.

        Changing any parameter yields a fresh key, so the trigger baselines
        again instead of diffing against state captured for another subject.
        """
        blob = json.dumps(self.parameters(), sort_keys=True)
        digest = hashlib.sha256(blob.encode("utf-8")).hexdigest()[:12]
        return f"{self.name}:{self.event.value}:{digest}"

    def validate(self) -> None:
        if not self.name:
            raise ConfigError("trigger name is required")
        if self.event == EventKind.ADDRESS_TRANSACTION and not self.address:
            raise ConfigError(f"trigger '{self.name}': address is required")
        if self.event == EventKind.TRANSACTION_CONFIRMED:
            if not self.txid:
                raise ConfigError(f"trigger '{self.name}': txid is required")
            if self.confirmations < 1:
                raise ConfigError(f"trigger '{self.name}': confirmations must be >= 1")
        if self.event == EventKind.FEE_RATE_CHANGE:
            if self.fee_type not in FEE_TIERS:
                raise ConfigError(
                    f"trigger '{self.name}': fee_type must be one of {', '.join(FEE_TIERS)}"
                )
            if self.change_threshold < 0:
                raise ConfigError(f"trigger '{self.name}': change_threshold must be >= 0")


@dataclass
class WatcherConfig:
    """Complete watcher configuration."""

    # Daemon
    poll_interval: int = 60  # seconds
    error_backoff: int = 30  # seconds
    cycle_timeout: int = 120  # seconds per poll cycle
    log_level: str = "info"

    # API
    network: str = "mainnet"
    provider: ApiProvider = ApiProvider.MEMPOOL
    custom_api_url: str = ""
    timeout: float = 30.0  # connect/read, seconds

    # Dispatch
    continue_on_fail: bool = False

    # Storage
    db_path: str = "~/.btc_watcher/state.db"

    triggers: list[TriggerConfig] = field(default_factory=list)

    def base_url(self) -> str:
        """Resolve the explorer base URL from provider and network."""
        if self.provider == ApiProvider.CUSTOM:
            if not self.custom_api_url:
                raise ConfigError("provider 'custom' requires custom_api_url")
            return self.custom_api_url.rstrip("/")
        try:
            return BASE_URLS[self.network]
        except KeyError:
            raise ConfigError(
                f"unknown network '{self.network}' (expected one of {', '.join(BASE_URLS)})"
            ) from None

    def get_trigger(self, name: str) -> TriggerConfig:
        for trigger in self.triggers:
            if trigger.name == name:
                return trigger
        raise ConfigError(f"no trigger named '{name}'")

"""Configuration loading: TOML file + environment variables."""

from __future__ import annotations

import os
from pathlib import Path

try:
    import tomllib  # Python 3.11+
except ModuleNotFoundError:
    import tomli as tomllib  # type: ignore[no-redef]

from btc_watcher.errors import ConfigError
from btc_watcher.models.config import (
    ApiProvider,
    Direction,
    EventKind,
    TriggerConfig,
    WatcherConfig,
)


def load_config(
    config_path: str | Path | None = None,
    env_prefix: str = "BTC_WATCHER_",
) -> WatcherConfig:
    """Load watcher configuration from a TOML file and env vars.

    Priority (highest wins):
        1. Environment variables (BTC_WATCHER_NETWORK, BTC_WATCHER_API_URL, ...)
        2. TOML config file
        3. Defaults from WatcherConfig
    """
    raw: dict = {}
    if config_path is not None:
        p = Path(config_path).expanduser()
        if p.exists():
            with open(p, "rb") as f:
                raw = tomllib.load(f)

    cfg = WatcherConfig()

    # ── Daemon section ─────────────────────────────────────
    daemon = raw.get("daemon", {})
    if v := daemon.get("poll_interval"):
        cfg.poll_interval = _number(int, v, "daemon.poll_interval")
    if v := daemon.get("error_backoff"):
        cfg.error_backoff = _number(int, v, "daemon.error_backoff")
    if v := daemon.get("cycle_timeout"):
        cfg.cycle_timeout = _number(int, v, "daemon.cycle_timeout")
    if v := daemon.get("log_level"):
        cfg.log_level = str(v)

    # ── API section ────────────────────────────────────────
    api = raw.get("api", {})
    if v := api.get("network"):
        cfg.network = str(v)
    if v := api.get("provider"):
        cfg.provider = _enum(ApiProvider, v, "api.provider")
    if v := api.get("custom_api_url"):
        cfg.custom_api_url = str(v)
    if v := api.get("timeout"):
        cfg.timeout = _number(float, v, "api.timeout")

    # ── Dispatch section ───────────────────────────────────
    dispatch = raw.get("dispatch", {})
    cfg.continue_on_fail = _bool(
        dispatch.get("continue_on_fail", False), "dispatch.continue_on_fail"
    )

    # ── Storage section ────────────────────────────────────
    storage = raw.get("storage", {})
    if v := storage.get("db_path"):
        cfg.db_path = str(v)

    # ── Triggers ───────────────────────────────────────────
    cfg.triggers = [_load_trigger(t) for t in raw.get("trigger", [])]
    names = [t.name for t in cfg.triggers]
    if dupes := sorted({n for n in names if names.count(n) > 1}):
        raise ConfigError(f"duplicate trigger names: {', '.join(dupes)}")

    # ── Environment variable overrides (highest priority) ──
    if net := os.environ.get(f"{env_prefix}NETWORK"):
        cfg.network = net
    if url := os.environ.get(f"{env_prefix}API_URL"):
        cfg.provider = ApiProvider.CUSTOM
        cfg.custom_api_url = url
    if db := os.environ.get(f"{env_prefix}DB_PATH"):
        cfg.db_path = db
    if level := os.environ.get(f"{env_prefix}LOG_LEVEL"):
        cfg.log_level = level

    # Expand ~ in paths
    if cfg.db_path != ":memory:":
        cfg.db_path = str(Path(cfg.db_path).expanduser())

    return cfg


def _enum(enum_cls, value, field_name: str):
    try:
        return enum_cls(value)
    except ValueError:
        allowed = ", ".join(m.value for m in enum_cls)
        raise ConfigError(f"{field_name}: '{value}' is not one of {allowed}") from None


def _bool(value, field_name: str) -> bool:
    if isinstance(value, bool):
        return value
    if isinstance(value, str) and value.strip().lower() in ("true", "false"):
        return value.strip().lower() == "true"
    raise ConfigError(f"{field_name}: expected true or false, got {value!r}")


def _number(kind, value, field_name: str):
    if isinstance(value, bool):
        raise ConfigError(f"{field_name}: expected a number, got {value!r}")
    try:
        return kind(value)
    except (TypeError, ValueError):
        raise ConfigError(f"{field_name}: expected a number, got {value!r}") from None


def _load_trigger(raw: dict) -> TriggerConfig:
    trigger = TriggerConfig(
        name=str(raw.get("name", "")),
        event=_enum(EventKind, raw.get("event", EventKind.NEW_BLOCK.value), "trigger.event"),
        address=str(raw.get("address", "")),
        direction=_enum(Direction, raw.get("direction", Direction.ALL.value), "trigger.direction"),
        include_unconfirmed=_bool(
            raw.get("include_unconfirmed", True), "trigger.include_unconfirmed"
        ),
        txid=str(raw.get("txid", "")),
        confirmations=_number(int, raw.get("confirmations", 6), "trigger.confirmations"),
        fee_type=str(raw.get("fee_type", "fastestFee")),
        change_threshold=_number(
            float, raw.get("change_threshold", 10.0), "trigger.change_threshold"
        ),
    )
    trigger.validate()
    return trigger

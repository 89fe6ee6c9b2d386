"""CLI entry point for btc_watcher."""

from __future__ import annotations

import asyncio
import json
import logging
import sys

import click

from btc_watcher.config import load_config
from btc_watcher.daemon import WatcherDaemon, run_daemon
from btc_watcher.dispatch import RequestDispatcher, list_operations
from btc_watcher.errors import ConfigError, WatcherError
from btc_watcher.esplora.client import EsploraGateway
from btc_watcher.models.config import WatcherConfig
from btc_watcher.storage.sqlite import SQLiteCursorStore


def _load(ctx: click.Context) -> WatcherConfig:
    try:
        return load_config(ctx.obj["config_path"])
    except ConfigError as exc:
        click.echo(f"Error: {exc}", err=True)
        sys.exit(1)


def _require_api(cfg: WatcherConfig) -> str:
    try:
        return cfg.base_url()
    except ConfigError as exc:
        click.echo(f"Error: {exc}", err=True)
        sys.exit(1)


def _dump(record: object) -> str:
    return json.dumps(record, sort_keys=True)


async def _echo_sink(trigger, event) -> None:
    click.echo(_dump({"trigger": trigger.name, **event.to_dict()}))


def _parse_params(pairs: tuple[str, ...]) -> dict[str, str]:
    params: dict[str, str] = {}
    for pair in pairs:
        key, sep, value = pair.partition("=")
        if not sep or not key:
            raise click.BadParameter(f"expected key=value, got {pair!r}", param_hint="-p")
        params[key.strip()] = value.strip()
    return params


@click.group()
@click.option("-c", "--config", "config_path", default=None, help="Path to config TOML file")
@click.option("-v", "--verbose", is_flag=True, help="Enable debug logging")
@click.pass_context
def cli(ctx: click.Context, config_path: str | None, verbose: bool) -> None:
    """btc_watcher - Bitcoin explorer operations and polling triggers."""
    ctx.ensure_object(dict)
    ctx.obj["config_path"] = config_path
    ctx.obj["verbose"] = verbose

    if verbose:
        level = logging.DEBUG
    else:
        try:
            cfg = load_config(config_path)
        except ConfigError:
            # reported by the subcommand that needs the config
            cfg = WatcherConfig()
        level = getattr(logging, cfg.log_level.upper(), logging.INFO)
    logging.basicConfig(
        level=level,
        format="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
        datefmt="%Y-%m-%d %H:%M:%S",
        stream=sys.stderr,
    )


# ── Daemon ─────────────────────────────────────────────


@cli.command()
@click.pass_context
def run(ctx: click.Context) -> None:
    """Poll all configured triggers until interrupted. Events go to stdout."""
    cfg = _load(ctx)
    _require_api(cfg)
    if not cfg.triggers:
        click.echo("Error: no [[trigger]] entries configured.", err=True)
        sys.exit(1)

    click.echo(f"Starting btc_watcher ({len(cfg.triggers)} triggers)", err=True)
    asyncio.run(run_daemon(cfg, sink=_echo_sink))


@cli.command()
@click.argument("trigger_name")
@click.pass_context
def poll(ctx: click.Context, trigger_name: str) -> None:
    """Run a single poll cycle for one trigger."""
    cfg = _load(ctx)
    try:
        trigger = cfg.get_trigger(trigger_name)
    except ConfigError as exc:
        click.echo(f"Error: {exc}", err=True)
        sys.exit(1)
    cfg.triggers = [trigger]
    _require_api(cfg)

    async def _poll():
        daemon = WatcherDaemon(cfg, sink=_echo_sink)
        await daemon.store.initialize()
        try:
            return await daemon.run_cycle(daemon.pollers[0])
        finally:
            await daemon.store.close()
            await daemon.gateway.close()

    report = asyncio.run(_poll())
    if report.error:
        click.echo(f"Poll failed: {report.error}", err=True)
        sys.exit(1)
    click.echo(
        f"{report.trigger}: {report.emitted} events, "
        f"cursor {'updated' if report.cursor_written else 'unchanged'} "
        f"({report.duration_ms}ms)",
        err=True,
    )


# ── Operations ─────────────────────────────────────────


@cli.command()
@click.argument("resource")
@click.argument("operation")
@click.option("-p", "--param", "params", multiple=True, help="Operation parameter as key=value")
@click.option(
    "--continue-on-fail/--fail-fast", default=None,
    help="Emit an error record instead of exiting on failure",
)
@click.pass_context
def call(
    ctx: click.Context,
    resource: str,
    operation: str,
    params: tuple[str, ...],
    continue_on_fail: bool | None,
) -> None:
    """Call one explorer operation, e.g. `call address getBalance -p address=bc1q...`."""
    cfg = _load(ctx)
    item = _parse_params(params)
    base_url = _require_api(cfg)
    permissive = cfg.continue_on_fail if continue_on_fail is None else continue_on_fail

    async def _call():
        async with EsploraGateway(base_url, cfg.timeout) as gateway:
            dispatcher = RequestDispatcher(gateway, continue_on_fail=permissive)
            return await dispatcher.execute(resource, operation, [item])

    try:
        records = asyncio.run(_call())
    except WatcherError as exc:
        click.echo(f"Error: {exc}", err=True)
        sys.exit(1)

    for record in records:
        click.echo(json.dumps(record, indent=2, sort_keys=True))


@cli.command()
def operations() -> None:
    """List every resource/operation pair and its parameters."""
    for spec in list_operations():
        params = " ".join(
            p.name if p.required else f"[{p.name}]" for p in spec.params
        )
        click.echo(f"  {spec.resource.value:12s} {spec.name:24s} {params:28s} {spec.description}")


# ── Info ───────────────────────────────────────────────


@cli.command()
@click.pass_context
def status(ctx: click.Context) -> None:
    """Show resolved configuration and triggers."""
    cfg = _load(ctx)
    try:
        base_url = cfg.base_url()
    except ConfigError as exc:
        base_url = f"(invalid: {exc})"
    click.echo(f"Network:       {cfg.network}")
    click.echo(f"Provider:      {cfg.provider.value}")
    click.echo(f"Base URL:      {base_url}")
    click.echo(f"Timeout:       {cfg.timeout}s")
    click.echo(f"Poll interval: {cfg.poll_interval}s")
    click.echo(f"DB path:       {cfg.db_path}")
    click.echo("")
    if not cfg.triggers:
        click.echo("Triggers:      (none)")
        return
    click.echo("Triggers")
    for t in cfg.triggers:
        click.echo(f"  {t.name:16s} {t.event.value:22s} {_dump(t.parameters())}")


# ── Cursors ────────────────────────────────────────────


@cli.group()
def cursor():
    """Inspect or reset stored trigger cursors."""
    pass


@cursor.command("show")
@click.argument("trigger_name", required=False)
@click.pass_context
def cursor_show(ctx: click.Context, trigger_name: str | None) -> None:
    """Show stored cursors (all, or one trigger's)."""
    cfg = _load(ctx)

    async def _show():
        store = SQLiteCursorStore(cfg.db_path)
        await store.initialize()
        try:
            records = await store.list_cursors()
        finally:
            await store.close()

        if trigger_name:
            key = cfg.get_trigger(trigger_name).cursor_key()
            records = [r for r in records if r.key == key]
        if not records:
            click.echo("No stored cursors.")
            return
        for r in records:
            click.echo(f"  {r.key}  {_dump(r.state)}  (updated {r.updated_at})")

    try:
        asyncio.run(_show())
    except ConfigError as exc:
        click.echo(f"Error: {exc}", err=True)
        sys.exit(1)


@cursor.command("reset")
@click.argument("trigger_name")
@click.option("--yes", "-y", is_flag=True, help="Skip confirmation prompt")
@click.pass_context
def cursor_reset(ctx: click.Context, trigger_name: str, yes: bool) -> None:
    """Delete a trigger's cursor. Its next poll captures a fresh baseline."""
    cfg = _load(ctx)
    try:
        key = cfg.get_trigger(trigger_name).cursor_key()
    except ConfigError as exc:
        click.echo(f"Error: {exc}", err=True)
        sys.exit(1)

    if not yes:
        click.confirm(f"Reset cursor {key}?", abort=True)

    async def _reset():
        store = SQLiteCursorStore(cfg.db_path)
        await store.initialize()
        try:
            return await store.delete(key)
        finally:
            await store.close()

    if asyncio.run(_reset()):
        click.echo(f"Cursor {key} reset.")
    else:
        click.echo(f"No cursor stored for {key}.")


def main() -> None:
    cli()


if __name__ == "__main__":
    main()

"""CLI entry point and the plain key/value commands."""

from __future__ import annotations

import json
import logging

import click

from tabsync.cli.helpers import json_envelope, output_error, output_result, run_with_coordinator
from tabsync.sync.coordinator import StorageCoordinator


@click.group()
@click.version_option(package_name="tabsync", prog_name="tabsync")
@click.option("-v", "--verbose", is_flag=True, help="Log sync activity (DEBUG level).")
def cli(verbose: bool) -> None:
    """tabsync: offline-first storage for shortcuts and to-dos, mirrored to a GitHub gist."""
    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.WARNING,
        format="%(levelname)s: %(message)s",
    )


# ---------------------------------------------------------------------------
# Raw key/value access
# ---------------------------------------------------------------------------


@cli.command("get")
@click.argument("key")
@click.option("--json", "as_json", is_flag=True, help="Output as JSON.")
def get_cmd(key: str, as_json: bool) -> None:
    """Print the value stored under KEY."""

    async def action(coordinator: StorageCoordinator) -> object:
        return await coordinator.get(key)

    value = run_with_coordinator(action, as_json)
    if as_json:
        click.echo(json_envelope(True, data={"key": key, "value": value}))
    elif value is None:
        output_error(f"No value stored under '{key}'.", "NOT_FOUND", as_json)
    else:
        click.echo(json.dumps(value, indent=2, ensure_ascii=False))


@cli.command("set")
@click.argument("key")
@click.argument("value")
@click.option("--json", "as_json", is_flag=True, help="Output as JSON.")
def set_cmd(key: str, value: str, as_json: bool) -> None:
    """Store VALUE (a JSON document) under KEY."""
    try:
        decoded = json.loads(value)
    except json.JSONDecodeError as e:
        output_error(f"VALUE is not valid JSON: {e}", "INVALID_JSON", as_json)

    async def action(coordinator: StorageCoordinator) -> None:
        await coordinator.set(key, decoded)

    run_with_coordinator(action, as_json)
    output_result(
        data={"key": key, "value": decoded},
        human_message=f"Saved '{key}'.",
        is_json=as_json,
    )


@cli.command("remove")
@click.argument("key")
@click.option("--json", "as_json", is_flag=True, help="Output as JSON.")
def remove_cmd(key: str, as_json: bool) -> None:
    """Delete KEY locally (and from the gist when sync is on)."""

    async def action(coordinator: StorageCoordinator) -> None:
        await coordinator.remove(key)

    run_with_coordinator(action, as_json)
    output_result(data={"key": key}, human_message=f"Removed '{key}'.", is_json=as_json)


@cli.command("clear")
@click.option("--yes", is_flag=True, help="Do not ask for confirmation.")
@click.option("--json", "as_json", is_flag=True, help="Output as JSON.")
def clear_cmd(yes: bool, as_json: bool) -> None:
    """Delete every local key, and empty the gist when sync is on."""
    if not yes:
        if as_json:
            output_error("Refusing to clear without --yes.", "CONFIRMATION_REQUIRED", as_json)
        click.confirm("This deletes all local data and the gist's files. Continue?", abort=True)

    async def action(coordinator: StorageCoordinator) -> bool:
        remote = coordinator.remote_enabled
        await coordinator.clear()
        return remote

    remote = run_with_coordinator(action, as_json)
    message = "Cleared local data and the remote document." if remote else "Cleared local data."
    output_result(data={"remote": remote}, human_message=message, is_json=as_json)


@cli.command("status")
@click.option("--json", "as_json", is_flag=True, help="Output as JSON.")
def status_cmd(as_json: bool) -> None:
    """Show stored keys, sync configuration, and queued remote writes."""

    async def action(coordinator: StorageCoordinator) -> dict:
        return await coordinator.status()

    status = run_with_coordinator(action, as_json)
    if as_json:
        click.echo(json_envelope(True, data=status))
        return

    config = status["config"]
    click.echo(f"Remote sync: {'enabled' if status['remote_enabled'] else 'disabled'}")
    if config.get("token"):
        click.echo(f"Token: {config['token']}")
    click.echo(f"Gist: {status['document_id'] or config.get('gistId') or '(none yet)'}")
    click.echo(f"Shortcuts: {status['shortcuts']}")
    click.echo(f"To-dos: {status['todos']}")
    keys = status["keys"]
    click.echo(f"Keys: {', '.join(keys) if keys else '(none)'}")


# ---------------------------------------------------------------------------
# Register command modules (must be after cli group is defined)
# ---------------------------------------------------------------------------
from tabsync.cli import config_cmds as _config_cmds  # noqa: E402, F401
from tabsync.cli import sync_cmds as _sync_cmds  # noqa: E402, F401
from tabsync.cli import record_cmds as _record_cmds  # noqa: E402, F401
from tabsync.cli import log_cmds as _log_cmds  # noqa: E402, F401

if __name__ == "__main__":
    cli()

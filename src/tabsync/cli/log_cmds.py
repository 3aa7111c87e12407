"""Operation log commands."""

from __future__ import annotations

import click

from tabsync.cli.helpers import format_timestamp, json_envelope, output_result, run_with_coordinator
from tabsync.cli.main import cli
from tabsync.operation_log import OperationLog
from tabsync.sync.coordinator import StorageCoordinator


@cli.group()
def log() -> None:
    """Inspect the operation log."""


@log.command("list")
@click.option("--limit", type=click.IntRange(min=1), default=20, show_default=True, help="Entries to show.")
@click.option("--json", "as_json", is_flag=True, help="Output as JSON.")
def log_list(limit: int, as_json: bool) -> None:
    """Show the most recent operations, newest first."""

    async def action(coordinator: StorageCoordinator) -> list[dict]:
        return await OperationLog(coordinator).entries(limit)

    entries = run_with_coordinator(action, as_json)
    if as_json:
        click.echo(json_envelope(True, data=entries))
        return
    if not entries:
        click.echo("No operations logged.")
        return
    for entry in entries:
        client = entry.get("client") or {}
        source = client.get("browser", "?") if isinstance(client, dict) else "?"
        click.echo(
            f"{format_timestamp(entry.get('timestamp'))}  {entry.get('type', '?'):<18s} "
            f"{entry.get('content', '')}  ({source}, {entry.get('ip', 'unknown')})"
        )


@log.command("clear")
@click.option("--json", "as_json", is_flag=True, help="Output as JSON.")
def log_clear(as_json: bool) -> None:
    """Delete every operation log entry."""

    async def action(coordinator: StorageCoordinator) -> None:
        await OperationLog(coordinator).clear()

    run_with_coordinator(action, as_json)
    output_result(data={"cleared": True}, human_message="Operation log cleared.", is_json=as_json)

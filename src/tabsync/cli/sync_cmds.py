"""CLI commands for syncing with the GitHub gist."""

from __future__ import annotations

import click

from tabsync.cli.helpers import json_envelope, run_with_coordinator
from tabsync.cli.main import cli
from tabsync.core.config import SYNCED_COLLECTIONS
from tabsync.sync.coordinator import StorageCoordinator
from tabsync.sync.orchestrator import SyncOrchestrator


@cli.group()
def sync() -> None:
    """Reconcile local data with the GitHub gist."""


@sync.command("pull")
@click.option("--json", "as_json", is_flag=True, help="Output as JSON.")
def sync_pull(as_json: bool) -> None:
    """Merge the gist's shortcuts, to-dos, and logs into local data.

    The merged result is written locally and pushed back to the gist
    before the command exits.
    """

    async def action(coordinator: StorageCoordinator) -> dict:
        return await SyncOrchestrator(coordinator).sync_from_remote()

    report = run_with_coordinator(action, as_json)
    if as_json:
        click.echo(json_envelope(True, data=report))
        return

    click.echo("Sync complete.")
    for name, label in (("shortcuts", "Shortcuts"), ("todos", "To-dos"), ("logs", "Operation logs")):
        counts = report[name]
        click.echo(
            f"  {label:<15s} local {counts['local']:>4d}  "
            f"remote {counts['remote']:>4d}  merged {counts['merged']:>4d}"
        )


@sync.command("push")
@click.option("--json", "as_json", is_flag=True, help="Output as JSON.")
def sync_push(as_json: bool) -> None:
    """Upload the local shortcuts, to-dos, and logs to the gist now."""

    async def action(coordinator: StorageCoordinator) -> dict:
        coordinator.require_remote()
        for key in SYNCED_COLLECTIONS:
            value = await coordinator.get(key)
            if value is not None:
                await coordinator.set(key, value)
        result = await coordinator.sync_to_remote()
        return {"applied": result.applied, "failed": result.failed}

    outcome = run_with_coordinator(action, as_json)
    if as_json:
        click.echo(json_envelope(outcome["failed"] == 0, data=outcome))
    else:
        click.echo(f"Pushed {outcome['applied']} collection(s) to the gist.")
        if outcome["failed"]:
            click.echo(f"{outcome['failed']} push(es) failed; run with --verbose for details.", err=True)
    if outcome["failed"]:
        raise SystemExit(1)

"""Remote sync configuration commands."""

from __future__ import annotations

import click

from tabsync.cli.helpers import json_envelope, output_result, run_with_coordinator
from tabsync.cli.main import cli
from tabsync.core.config import mask_token
from tabsync.sync.coordinator import StorageCoordinator


def _public(config: dict) -> dict:
    """Return *config* safe to print (token masked)."""
    shown = dict(config)
    shown["token"] = mask_token(shown.get("token"))
    return shown


@cli.group()
def config() -> None:
    """Show and change GitHub gist sync settings."""


@config.command("show")
@click.option("--json", "as_json", is_flag=True, help="Output as JSON.")
def config_show(as_json: bool) -> None:
    """Print the storage configuration (token masked)."""

    async def action(coordinator: StorageCoordinator) -> dict:
        return _public(dict(await coordinator.get_storage_config()))

    shown = run_with_coordinator(action, as_json)
    if as_json:
        click.echo(json_envelope(True, data=shown))
        return
    click.echo(f"GitHub sync: {'enabled' if shown['enableGithub'] else 'disabled'}")
    click.echo(f"Token: {shown['token'] or '(not set)'}")
    click.echo(f"Gist ID: {shown['gistId'] or '(not set)'}")


@config.command("set")
@click.option("--enable/--disable", "enable", default=None, help="Turn GitHub gist sync on or off.")
@click.option("--token", default=None, help="GitHub token with the gist scope.")
@click.option("--gist-id", default=None, help="Existing gist to sync with (empty string to unset).")
@click.option("--json", "as_json", is_flag=True, help="Output as JSON.")
def config_set(enable: bool | None, token: str | None, gist_id: str | None, as_json: bool) -> None:
    """Update the storage configuration.

    Disabling sync forgets the token and gist id, as the settings panel
    does.  Enabling requires a token, given here or saved earlier.
    """

    async def action(coordinator: StorageCoordinator) -> dict:
        current = dict(await coordinator.get_storage_config())
        if enable is False:
            updated: dict = {"enableGithub": False}
        else:
            updated = current
            if enable is True:
                updated["enableGithub"] = True
            if token is not None:
                updated["token"] = token
            if gist_id is not None:
                updated["gistId"] = gist_id
        return _public(dict(await coordinator.set_storage_config(updated)))

    shown = run_with_coordinator(action, as_json)
    state = "enabled" if shown["enableGithub"] else "disabled"
    output_result(data=shown, human_message=f"Storage settings saved (GitHub sync {state}).", is_json=as_json)


@config.command("create-gist")
@click.option("--token", default=None, help="GitHub token (defaults to the saved one).")
@click.option("--json", "as_json", is_flag=True, help="Output as JSON.")
def config_create_gist(token: str | None, as_json: bool) -> None:
    """Create an empty private gist and save its id."""

    async def action(coordinator: StorageCoordinator) -> str:
        return await coordinator.create_remote_document(token)

    document_id = run_with_coordinator(action, as_json)
    output_result(
        data={"gistId": document_id},
        human_message=f"Created gist {document_id}.",
        is_json=as_json,
    )

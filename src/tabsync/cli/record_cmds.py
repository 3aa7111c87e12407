"""Shortcut and to-do commands.

Every mutating command also appends an operation log entry.
"""

from __future__ import annotations

import click

from tabsync.cli.helpers import json_envelope, output_error, output_result, run_with_coordinator
from tabsync.cli.main import cli
from tabsync.core.records import is_group
from tabsync.operation_log import OperationLog
from tabsync.repository import ShortcutRepository, TodoRepository
from tabsync.sync.coordinator import StorageCoordinator


async def _log(coordinator: StorageCoordinator, type: str, content: str, metadata: dict) -> None:
    # Public IP lookup only once the user has opted into network sync.
    oplog = OperationLog(coordinator, coordinator.session, lookup_ip=coordinator.remote_enabled)
    await oplog.log(type, content, metadata)


# ---------------------------------------------------------------------------
# Shortcuts
# ---------------------------------------------------------------------------


def _print_shortcuts(records: list[dict]) -> None:
    if not records:
        click.echo("No shortcuts.")
        return
    for record in records:
        if is_group(record):
            click.echo(f"[{record.get('name') or 'Group'}]  {record['id']}")
            for item in record.get("items", []):
                click.echo(f"    {item.get('name', ''):<24s} {item.get('url', '')}  {item['id']}")
        else:
            click.echo(f"{record.get('name', ''):<28s} {record.get('url', '')}  {record['id']}")


@cli.group()
def shortcut() -> None:
    """Manage shortcuts and shortcut groups."""


@shortcut.command("list")
@click.option("--json", "as_json", is_flag=True, help="Output as JSON.")
def shortcut_list(as_json: bool) -> None:
    """List shortcuts (deleted ones are hidden)."""

    async def action(coordinator: StorageCoordinator) -> list[dict]:
        return await ShortcutRepository(coordinator).visible()

    records = run_with_coordinator(action, as_json)
    if as_json:
        click.echo(json_envelope(True, data=records))
    else:
        _print_shortcuts(records)


@shortcut.command("add")
@click.argument("name")
@click.argument("url")
@click.option("--icon", default=None, help="Icon URL.")
@click.option("--json", "as_json", is_flag=True, help="Output as JSON.")
def shortcut_add(name: str, url: str, icon: str | None, as_json: bool) -> None:
    """Add a shortcut called NAME pointing at URL."""

    async def action(coordinator: StorageCoordinator) -> dict:
        record = await ShortcutRepository(coordinator).add(name, url, icon=icon)
        await _log(coordinator, "add_shortcut", f"{record['name']} ({record['url']})", {"id": record["id"]})
        return record

    record = run_with_coordinator(action, as_json)
    output_result(data=record, human_message=f"Added shortcut {record['id']}.", is_json=as_json)


@shortcut.command("edit")
@click.argument("record_id")
@click.option("--name", default=None, help="New name.")
@click.option("--url", default=None, help="New URL.")
@click.option("--icon", default=None, help="New icon URL.")
@click.option("--json", "as_json", is_flag=True, help="Output as JSON.")
def shortcut_edit(
    record_id: str,
    name: str | None,
    url: str | None,
    icon: str | None,
    as_json: bool,
) -> None:
    """Change a shortcut's name, URL, or icon."""
    changes = {k: v for k, v in (("name", name), ("url", url), ("icon", icon)) if v is not None}
    if not changes:
        output_error("Nothing to change: pass --name, --url, or --icon.", "NO_CHANGES", as_json)

    async def action(coordinator: StorageCoordinator) -> dict:
        record = await ShortcutRepository(coordinator).update(record_id, changes)
        await _log(coordinator, "edit_shortcut", record.get("name", record_id), {"id": record_id, "changes": changes})
        return record

    record = run_with_coordinator(action, as_json)
    output_result(data=record, human_message=f"Updated shortcut {record_id}.", is_json=as_json)


@shortcut.command("delete")
@click.argument("record_id")
@click.option("--group", "group_id", default=None, help="Delete an item inside this group.")
@click.option("--json", "as_json", is_flag=True, help="Output as JSON.")
def shortcut_delete(record_id: str, group_id: str | None, as_json: bool) -> None:
    """Delete a shortcut or a whole group."""

    async def action(coordinator: StorageCoordinator) -> None:
        repo = ShortcutRepository(coordinator)
        if group_id is not None:
            await repo.delete_item(group_id, record_id)
            await _log(coordinator, "delete_shortcut", record_id, {"id": record_id, "groupId": group_id})
            return
        record = await repo.get(record_id)
        await repo.delete(record_id)
        if is_group(record):
            await _log(coordinator, "delete_group", record.get("name") or record_id, {"id": record_id})
        else:
            await _log(coordinator, "delete_shortcut", record.get("name", record_id), {"id": record_id})

    run_with_coordinator(action, as_json)
    output_result(data={"id": record_id}, human_message=f"Deleted {record_id}.", is_json=as_json)


@shortcut.command("group")
@click.argument("first_id")
@click.argument("second_id")
@click.option("--name", default=None, help="Group name.")
@click.option("--json", "as_json", is_flag=True, help="Output as JSON.")
def shortcut_group(first_id: str, second_id: str, name: str | None, as_json: bool) -> None:
    """Group two shortcuts, or add SECOND_ID to the group FIRST_ID."""

    async def action(coordinator: StorageCoordinator) -> dict:
        repo = ShortcutRepository(coordinator)
        first = await repo.get(first_id)
        if is_group(first):
            group = await repo.add_to_group(first_id, second_id)
            await _log(coordinator, "add_to_group", second_id, {"groupId": first_id, "id": second_id})
        else:
            group = await repo.group(first_id, second_id, name=name)
            await _log(
                coordinator,
                "create_group",
                group.get("name") or group["id"],
                {"id": group["id"], "items": [first_id, second_id]},
            )
        return group

    group = run_with_coordinator(action, as_json)
    output_result(data=group, human_message=f"Group {group['id']} has {len(group['items'])} items.", is_json=as_json)


@shortcut.command("ungroup")
@click.argument("group_id")
@click.option("--json", "as_json", is_flag=True, help="Output as JSON.")
def shortcut_ungroup(group_id: str, as_json: bool) -> None:
    """Dissolve a group, moving its items back to the top level."""

    async def action(coordinator: StorageCoordinator) -> None:
        await ShortcutRepository(coordinator).ungroup(group_id)
        await _log(coordinator, "ungroup", group_id, {"id": group_id})

    run_with_coordinator(action, as_json)
    output_result(data={"id": group_id}, human_message=f"Ungrouped {group_id}.", is_json=as_json)


@shortcut.command("rename-group")
@click.argument("group_id")
@click.argument("name", required=False)
@click.option("--json", "as_json", is_flag=True, help="Output as JSON.")
def shortcut_rename_group(group_id: str, name: str | None, as_json: bool) -> None:
    """Rename a group (omit NAME to clear it)."""

    async def action(coordinator: StorageCoordinator) -> dict:
        group = await ShortcutRepository(coordinator).rename_group(group_id, name)
        await _log(coordinator, "edit_group_name", name or "", {"id": group_id})
        return group

    group = run_with_coordinator(action, as_json)
    output_result(data=group, human_message=f"Renamed group {group_id}.", is_json=as_json)


@shortcut.command("remove-from-group")
@click.argument("group_id")
@click.argument("item_id")
@click.option("--json", "as_json", is_flag=True, help="Output as JSON.")
def shortcut_remove_from_group(group_id: str, item_id: str, as_json: bool) -> None:
    """Move ITEM_ID out of GROUP_ID back to the top level."""

    async def action(coordinator: StorageCoordinator) -> None:
        await ShortcutRepository(coordinator).remove_from_group(group_id, item_id)
        await _log(coordinator, "remove_from_group", item_id, {"groupId": group_id, "id": item_id})

    run_with_coordinator(action, as_json)
    output_result(
        data={"groupId": group_id, "id": item_id},
        human_message=f"Moved {item_id} out of {group_id}.",
        is_json=as_json,
    )


# ---------------------------------------------------------------------------
# To-dos
# ---------------------------------------------------------------------------


@cli.group()
def todo() -> None:
    """Manage the to-do list."""


@todo.command("list")
@click.option("--pending", is_flag=True, help="Hide completed to-dos.")
@click.option("--json", "as_json", is_flag=True, help="Output as JSON.")
def todo_list(pending: bool, as_json: bool) -> None:
    """List to-dos (deleted ones are hidden)."""

    async def action(coordinator: StorageCoordinator) -> list[dict]:
        return await TodoRepository(coordinator).visible()

    todos = run_with_coordinator(action, as_json)
    if pending:
        todos = [t for t in todos if not t.get("completed")]
    if as_json:
        click.echo(json_envelope(True, data=todos))
        return
    if not todos:
        click.echo("No to-dos.")
        return
    for item in todos:
        mark = "x" if item.get("completed") else " "
        click.echo(f"[{mark}] {item.get('text', '')}  {item['id']}")


@todo.command("add")
@click.argument("text")
@click.option("--json", "as_json", is_flag=True, help="Output as JSON.")
def todo_add(text: str, as_json: bool) -> None:
    """Add a to-do."""

    async def action(coordinator: StorageCoordinator) -> dict:
        item = await TodoRepository(coordinator).add(text)
        await _log(coordinator, "add_todo", item["text"], {"id": item["id"]})
        return item

    item = run_with_coordinator(action, as_json)
    output_result(data=item, human_message=f"Added to-do {item['id']}.", is_json=as_json)


@todo.command("edit")
@click.argument("record_id")
@click.argument("text")
@click.option("--json", "as_json", is_flag=True, help="Output as JSON.")
def todo_edit(record_id: str, text: str, as_json: bool) -> None:
    """Replace a to-do's text."""
    if not text.strip():
        output_error("To-do text must not be empty.", "INVALID_RECORD", as_json)

    async def action(coordinator: StorageCoordinator) -> dict:
        item = await TodoRepository(coordinator).update(record_id, {"text": text.strip()})
        await _log(coordinator, "edit_todo", item["text"], {"id": record_id})
        return item

    item = run_with_coordinator(action, as_json)
    output_result(data=item, human_message=f"Updated to-do {record_id}.", is_json=as_json)


@todo.command("toggle")
@click.argument("record_id")
@click.option("--json", "as_json", is_flag=True, help="Output as JSON.")
def todo_toggle(record_id: str, as_json: bool) -> None:
    """Mark a to-do done, or not done again."""

    async def action(coordinator: StorageCoordinator) -> dict:
        item = await TodoRepository(coordinator).toggle(record_id)
        await _log(coordinator, "toggle_todo", item.get("text", ""), {"id": record_id, "completed": item["completed"]})
        return item

    item = run_with_coordinator(action, as_json)
    state = "done" if item["completed"] else "not done"
    output_result(data=item, human_message=f"To-do {record_id} is {state}.", is_json=as_json)


@todo.command("delete")
@click.argument("record_id")
@click.option("--json", "as_json", is_flag=True, help="Output as JSON.")
def todo_delete(record_id: str, as_json: bool) -> None:
    """Delete a to-do."""

    async def action(coordinator: StorageCoordinator) -> None:
        repo = TodoRepository(coordinator)
        item = await repo.get(record_id)
        await repo.delete(record_id)
        await _log(coordinator, "delete_todo", item.get("text", ""), {"id": record_id})

    run_with_coordinator(action, as_json)
    output_result(data={"id": record_id}, human_message=f"Deleted to-do {record_id}.", is_json=as_json)

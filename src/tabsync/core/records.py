"""Shortcut, group, and to-do mutations.

Every function takes a record list and returns a new one; nothing is
mutated in place.  Each mutation stamps ``updatedAt`` with the caller's
*now* (milliseconds since the epoch), and deletion produces a tombstone
rather than removing the record, so that the deletion can propagate to
other devices through :mod:`tabsync.core.merge`.
"""

from __future__ import annotations

import copy
import time

from tabsync.core.ids import generate_group_id, generate_shortcut_id, generate_todo_id
from tabsync.core.merge import is_tombstone

# Fields that update_record() refuses to overwrite.  Timestamps and
# tombstone markers are owned by the mutation functions themselves.
PROTECTED_FIELDS: frozenset[str] = frozenset(
    {"id", "isGroup", "items", "updatedAt", "deleted", "deletedAt"}
)


class RecordError(Exception):
    """Raised when a record mutation cannot be applied."""


def now_ms() -> int:
    """Return the current wall-clock time in integer milliseconds."""
    return int(time.time() * 1000)


def is_group(record: dict) -> bool:
    return record.get("isGroup") is True


# ---------------------------------------------------------------------------
# Lookup
# ---------------------------------------------------------------------------


def _find(records: list[dict], record_id: object) -> int:
    for index, record in enumerate(records):
        if record.get("id") == record_id:
            return index
    raise RecordError(f"No record with id {record_id!r}")


def _find_live(records: list[dict], record_id: object) -> int:
    index = _find(records, record_id)
    if is_tombstone(records[index]):
        raise RecordError(f"Record {record_id!r} has been deleted")
    return index


def _find_group(records: list[dict], group_id: object) -> int:
    index = _find_live(records, group_id)
    if not is_group(records[index]):
        raise RecordError(f"Record {group_id!r} is not a group")
    return index


def get_record(records: list[dict], record_id: object) -> dict:
    """Return a copy of the live record with *record_id*."""
    return copy.deepcopy(records[_find_live(records, record_id)])


# ---------------------------------------------------------------------------
# Plain records
# ---------------------------------------------------------------------------


def _tombstone(record: dict, now: int) -> dict:
    out = copy.deepcopy(record)
    out["deleted"] = True
    out["deletedAt"] = now
    out["updatedAt"] = now
    return out


def _live(record: dict, now: int) -> dict:
    out = copy.deepcopy(record)
    out.pop("deleted", None)
    out.pop("deletedAt", None)
    out["updatedAt"] = now
    return out


def _put_top_level(records: list[dict], record: dict, position: int | None = None) -> None:
    """Place *record* at the top level, replacing any tombstone with its id."""
    for index, existing in enumerate(records):
        if existing.get("id") == record["id"]:
            if not is_tombstone(existing):
                raise RecordError(f"Record {record['id']!r} already exists")
            del records[index]
            if position is not None and index < position:
                position -= 1
            break
    if position is None:
        records.append(record)
    else:
        records.insert(position, record)


def add_shortcut(
    records: list[dict],
    name: str,
    url: str,
    *,
    icon: str | None = None,
    now: int | None = None,
    record_id: str | None = None,
) -> tuple[list[dict], dict]:
    """Append a new shortcut.  Returns ``(records, shortcut)``."""
    now = now_ms() if now is None else now
    if not name.strip():
        raise RecordError("Shortcut name must not be empty")
    if not url.strip():
        raise RecordError("Shortcut URL must not be empty")
    shortcut: dict = {
        "id": record_id or generate_shortcut_id(),
        "name": name.strip(),
        "url": url.strip(),
        "createdAt": now,
        "updatedAt": now,
    }
    if icon:
        shortcut["icon"] = icon
    result = copy.deepcopy(records)
    _put_top_level(result, shortcut)
    return result, copy.deepcopy(shortcut)


def add_todo(
    records: list[dict],
    text: str,
    *,
    now: int | None = None,
    record_id: str | None = None,
) -> tuple[list[dict], dict]:
    """Append a new, uncompleted to-do.  Returns ``(records, todo)``."""
    now = now_ms() if now is None else now
    text = text.strip()
    if not text:
        raise RecordError("To-do text must not be empty")
    todo = {
        "id": record_id or generate_todo_id(),
        "text": text,
        "completed": False,
        "createdAt": now,
        "updatedAt": now,
    }
    result = copy.deepcopy(records)
    _put_top_level(result, todo)
    return result, copy.deepcopy(todo)


def update_record(
    records: list[dict],
    record_id: object,
    changes: dict,
    *,
    now: int | None = None,
) -> list[dict]:
    """Apply field *changes* to a live top-level record."""
    now = now_ms() if now is None else now
    blocked = sorted(set(changes) & PROTECTED_FIELDS)
    if blocked:
        raise RecordError(f"Cannot update protected field(s): {', '.join(blocked)}")

    result = copy.deepcopy(records)
    index = _find_live(result, record_id)
    result[index].update(copy.deepcopy(changes))
    result[index]["updatedAt"] = now
    return result


def toggle_todo(records: list[dict], record_id: object, *, now: int | None = None) -> list[dict]:
    """Flip the ``completed`` flag of a to-do."""
    now = now_ms() if now is None else now
    result = copy.deepcopy(records)
    index = _find_live(result, record_id)
    result[index]["completed"] = not result[index].get("completed", False)
    result[index]["updatedAt"] = now
    return result


def delete_record(records: list[dict], record_id: object, *, now: int | None = None) -> list[dict]:
    """Tombstone a top-level record (a group is deleted with all its items)."""
    now = now_ms() if now is None else now
    result = copy.deepcopy(records)
    index = _find_live(result, record_id)
    result[index] = _tombstone(result[index], now)
    return result


# ---------------------------------------------------------------------------
# Groups
# ---------------------------------------------------------------------------


def create_group(
    records: list[dict],
    first_id: object,
    second_id: object,
    *,
    name: str | None = None,
    now: int | None = None,
    group_id: str | None = None,
) -> tuple[list[dict], dict]:
    """Combine two plain shortcuts into a new group.

    The group takes the position of *first_id*; both shortcuts are
    tombstoned at the top level and live on as the group's items.
    Returns ``(records, group)``.
    """
    now = now_ms() if now is None else now
    if first_id == second_id:
        raise RecordError("A group needs two different shortcuts")

    result = copy.deepcopy(records)
    first_index = _find_live(result, first_id)
    second_index = _find_live(result, second_id)
    first, second = result[first_index], result[second_index]
    if is_group(first) or is_group(second):
        raise RecordError("Groups cannot be nested")

    group: dict = {
        "id": group_id or generate_group_id(),
        "isGroup": True,
        "items": [_live(first, now), _live(second, now)],
        "createdAt": now,
        "updatedAt": now,
    }
    if name and name.strip():
        group["name"] = name.strip()

    result[first_index] = _tombstone(first, now)
    result[second_index] = _tombstone(second, now)
    _put_top_level(result, group, first_index)
    return result, copy.deepcopy(group)


def add_to_group(
    records: list[dict],
    group_id: object,
    record_id: object,
    *,
    now: int | None = None,
) -> list[dict]:
    """Move a plain top-level shortcut into an existing group."""
    now = now_ms() if now is None else now
    result = copy.deepcopy(records)
    group_index = _find_group(result, group_id)
    index = _find_live(result, record_id)
    if is_group(result[index]):
        raise RecordError("Groups cannot be nested")

    group = result[group_index]
    group["items"].append(_live(result[index], now))
    group["updatedAt"] = now
    result[index] = _tombstone(result[index], now)
    return result


def rename_group(
    records: list[dict],
    group_id: object,
    name: str | None,
    *,
    now: int | None = None,
) -> list[dict]:
    now = now_ms() if now is None else now
    result = copy.deepcopy(records)
    group = result[_find_group(result, group_id)]
    if name and name.strip():
        group["name"] = name.strip()
    else:
        group.pop("name", None)
    group["updatedAt"] = now
    return result


def _take_item(group: dict, item_id: object) -> dict:
    for index, item in enumerate(group["items"]):
        if item.get("id") == item_id:
            return group["items"].pop(index)
    raise RecordError(f"Group {group['id']!r} has no item {item_id!r}")


def _collapse(records: list[dict], group_index: int, now: int) -> None:
    """Enforce the two-item minimum of the group at *group_index*.

    One remaining item replaces the group at the top level; none left
    tombstones the group.
    """
    group = records[group_index]
    if len(group["items"]) >= 2:
        return
    survivors = group["items"]
    records[group_index] = _tombstone(group, now)
    if survivors:
        _put_top_level(records, _live(survivors[0], now), group_index + 1)


def remove_from_group(
    records: list[dict],
    group_id: object,
    item_id: object,
    *,
    now: int | None = None,
) -> list[dict]:
    """Move an item out of a group back to the top level."""
    now = now_ms() if now is None else now
    result = copy.deepcopy(records)
    group_index = _find_group(result, group_id)
    group = result[group_index]
    item = _take_item(group, item_id)
    group["updatedAt"] = now
    _put_top_level(result, _live(item, now), group_index + 1)
    _collapse(result, _find(result, group_id), now)
    return result


def delete_group_item(
    records: list[dict],
    group_id: object,
    item_id: object,
    *,
    now: int | None = None,
) -> list[dict]:
    """Delete an item that lives inside a group."""
    now = now_ms() if now is None else now
    result = copy.deepcopy(records)
    group_index = _find_group(result, group_id)
    group = result[group_index]
    _take_item(group, item_id)
    group["updatedAt"] = now
    _collapse(result, group_index, now)
    return result


def ungroup(records: list[dict], group_id: object, *, now: int | None = None) -> list[dict]:
    """Dissolve a group, returning every item to the top level in order."""
    now = now_ms() if now is None else now
    result = copy.deepcopy(records)
    group_index = _find_group(result, group_id)
    group = result[group_index]
    items = group["items"]
    result[group_index] = _tombstone(group, now)
    for offset, item in enumerate(items, start=1):
        anchor = _find(result, group_id)
        _put_top_level(result, _live(item, now), anchor + offset)
    return result

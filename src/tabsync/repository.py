"""Shortcut and to-do collections bound to a storage coordinator.

A repository loads its whole collection, applies one pure mutation from
:mod:`tabsync.core.records`, and writes the collection back.  Tombstones
stay in storage so deletions can propagate; only :meth:`visible`
filters them.
"""

from __future__ import annotations

from collections.abc import Callable

from tabsync.core.config import SHORTCUTS_KEY, TODOS_KEY
from tabsync.core.merge import visible_records
from tabsync.core import records as ops
from tabsync.sync.coordinator import StorageCoordinator


class RecordRepository:
    """Whole-collection read/modify/write over one storage key."""

    key: str = ""

    def __init__(self, coordinator: StorageCoordinator) -> None:
        self.coordinator = coordinator

    async def load(self) -> list[dict]:
        """Return the stored collection, tombstones included."""
        records = await self.coordinator.get(self.key)
        return records if isinstance(records, list) else []

    async def save(self, records: list[dict]) -> None:
        await self.coordinator.set(self.key, records)

    async def visible(self) -> list[dict]:
        return visible_records(await self.load())

    async def get(self, record_id: str) -> dict:
        return ops.get_record(await self.load(), record_id)

    async def _apply(self, mutate: Callable[..., list[dict]], *args, **kwargs) -> list[dict]:
        records = mutate(await self.load(), *args, **kwargs)
        await self.save(records)
        return records

    async def update(self, record_id: str, changes: dict) -> dict:
        records = await self._apply(ops.update_record, record_id, changes)
        return ops.get_record(records, record_id)

    async def delete(self, record_id: str) -> None:
        await self._apply(ops.delete_record, record_id)


class ShortcutRepository(RecordRepository):
    key = SHORTCUTS_KEY

    async def add(self, name: str, url: str, icon: str | None = None) -> dict:
        records, shortcut = ops.add_shortcut(await self.load(), name, url, icon=icon)
        await self.save(records)
        return shortcut

    async def group(self, first_id: str, second_id: str, name: str | None = None) -> dict:
        records, group = ops.create_group(await self.load(), first_id, second_id, name=name)
        await self.save(records)
        return group

    async def add_to_group(self, group_id: str, record_id: str) -> dict:
        records = await self._apply(ops.add_to_group, group_id, record_id)
        return ops.get_record(records, group_id)

    async def remove_from_group(self, group_id: str, item_id: str) -> None:
        await self._apply(ops.remove_from_group, group_id, item_id)

    async def delete_item(self, group_id: str, item_id: str) -> None:
        await self._apply(ops.delete_group_item, group_id, item_id)

    async def rename_group(self, group_id: str, name: str | None) -> dict:
        records = await self._apply(ops.rename_group, group_id, name)
        return ops.get_record(records, group_id)

    async def ungroup(self, group_id: str) -> None:
        await self._apply(ops.ungroup, group_id)


class TodoRepository(RecordRepository):
    key = TODOS_KEY

    async def add(self, text: str) -> dict:
        records, todo = ops.add_todo(await self.load(), text)
        await self.save(records)
        return todo

    async def toggle(self, record_id: str) -> dict:
        records = await self._apply(ops.toggle_todo, record_id)
        return ops.get_record(records, record_id)

"""Pull, merge, and write back the synced collections."""

from __future__ import annotations

import logging

from tabsync.core.config import OPERATION_LOGS_KEY, SHORTCUTS_KEY, TODOS_KEY
from tabsync.core.merge import merge_operation_logs, merge_records
from tabsync.core.records import now_ms
from tabsync.sync.coordinator import StorageCoordinator

logger = logging.getLogger(__name__)

# Report names, in the order collections are synced.
_COLLECTIONS: tuple[tuple[str, str], ...] = (
    ("shortcuts", SHORTCUTS_KEY),
    ("todos", TODOS_KEY),
    ("logs", OPERATION_LOGS_KEY),
)


def _as_list(value: object) -> list:
    return value if isinstance(value, list) else []


class SyncOrchestrator:
    """Reconcile local collections with the remote document on demand.

    Each collection is fetched from the remote, merged with the local
    copy, and written back through the coordinator: locally at once, and
    to the remote through the sync queue, so both sides converge on the
    merged state.
    """

    def __init__(self, coordinator: StorageCoordinator) -> None:
        self.coordinator = coordinator

    async def sync_from_remote(self, now: int | None = None) -> dict[str, dict[str, int]]:
        """Merge the remote collections into local storage.

        Returns per-collection ``{"local", "remote", "merged"}`` counts.
        A remote collection that cannot be read counts as empty, so a
        failed fetch never deletes local data.

        Raises:
            ConfigurationError: If remote sync is not enabled.
        """
        remote = self.coordinator.require_remote()
        now = now_ms() if now is None else now
        logger.info("Pulling from remote document %s", remote.document_id)

        # A failed get reads as an empty collection. The merge then keeps only
        # local records, and the write queued below overwrites the remote file.
        fetched = {}
        for _, key in _COLLECTIONS:
            fetched[key] = _as_list(await remote.get(key))

        report: dict[str, dict[str, int]] = {}
        for name, key in _COLLECTIONS:
            local = _as_list(await self.coordinator.get(key))
            if key == OPERATION_LOGS_KEY:
                merged = merge_operation_logs(local, fetched[key])
            else:
                merged = merge_records(local, fetched[key], now)
            await self.coordinator.set(key, merged)

            report[name] = {"local": len(local), "remote": len(fetched[key]), "merged": len(merged)}
            logger.info(
                "Synced %s: local %d, remote %d, merged %d",
                name,
                len(local),
                len(fetched[key]),
                len(merged),
            )
        return report

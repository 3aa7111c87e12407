"""Append-only operation log stored under ``operation_logs``.

Entries are written through the coordinator like any other collection,
so they sync to the remote and merge with other devices' entries.
Recording an entry is best-effort: a failure is logged and never fails
the operation being recorded.
"""

from __future__ import annotations

import asyncio
import logging

import aiohttp

from tabsync.core.config import MAX_LOG_ENTRIES, OPERATION_LOGS_KEY
from tabsync.core.oplog import UNKNOWN, create_log_entry, prepend_entry
from tabsync.storage.local import LocalStoreError
from tabsync.sync.coordinator import StorageCoordinator

logger = logging.getLogger(__name__)

IP_LOOKUP_URL = "https://api.ipify.org?format=json"
_IP_TIMEOUT = aiohttp.ClientTimeout(total=3)


async def lookup_public_ip(session: aiohttp.ClientSession | None = None) -> str:
    """Return this machine's public IP, or ``"unknown"`` on any failure."""
    owned = session is None
    if session is None:
        session = aiohttp.ClientSession()
    try:
        async with session.get(IP_LOOKUP_URL, timeout=_IP_TIMEOUT) as resp:
            if resp.status != 200:
                return UNKNOWN
            data = await resp.json(content_type=None)
            ip = data.get("ip") if isinstance(data, dict) else None
            return ip if isinstance(ip, str) and ip else UNKNOWN
    except (asyncio.TimeoutError, aiohttp.ClientError, ValueError) as exc:
        logger.debug("Public IP lookup failed: %s", exc)
        return UNKNOWN
    finally:
        if owned:
            await session.close()


class OperationLog:
    """Record, list, and clear operation log entries."""

    def __init__(
        self,
        coordinator: StorageCoordinator,
        session: aiohttp.ClientSession | None = None,
        lookup_ip: bool = False,
    ) -> None:
        self.coordinator = coordinator
        self.session = session
        self.lookup_ip = lookup_ip

    async def entries(self, limit: int | None = None) -> list[dict]:
        """Return entries newest first."""
        logs = await self.coordinator.get(OPERATION_LOGS_KEY)
        if not isinstance(logs, list):
            return []
        return logs[:limit] if limit is not None else logs

    async def log(
        self,
        type: str,
        content: object,
        metadata: dict | None = None,
        *,
        timestamp: int | None = None,
    ) -> dict | None:
        """Prepend a new entry.  Returns it, or ``None`` if it could not be saved."""
        ip = await lookup_public_ip(self.session) if self.lookup_ip else UNKNOWN
        entry = create_log_entry(type, content, ip=ip, metadata=metadata, timestamp=timestamp)
        try:
            logs = await self.entries()
            await self.coordinator.set(OPERATION_LOGS_KEY, prepend_entry(logs, entry, MAX_LOG_ENTRIES))
        except LocalStoreError as exc:
            logger.warning("Could not record %s operation: %s", type, exc)
            return None
        logger.debug("Recorded %s operation", type)
        return entry

    async def clear(self) -> None:
        await self.coordinator.set(OPERATION_LOGS_KEY, [])

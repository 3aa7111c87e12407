"""Local-first storage with optional, debounced remote mirroring.

:class:`StorageCoordinator` is the one ``get/set/remove/clear`` surface
the rest of the package talks to.  Reads always come from the local
store.  Writes land locally before they return and, when the gist
backend is configured, are queued for the remote and pushed after the
debounce period.  ``storage_config`` itself never leaves the device.
"""

from __future__ import annotations

import logging
from collections.abc import Awaitable, Callable
from typing import Any

import aiohttp

from tabsync.core.config import (
    CONFIG_KEY,
    DEBOUNCE_SECONDS,
    LOCAL_ONLY_KEYS,
    SHORTCUTS_KEY,
    TODOS_KEY,
    StorageConfig,
    mask_token,
    normalize_storage_config,
    remote_enabled,
    validate_storage_config,
)
from tabsync.core.merge import visible_records
from tabsync.core.records import now_ms
from tabsync.storage.local import FileStore, MemoryStore
from tabsync.sync.gist import GistStore
from tabsync.sync.queue import FlushResult, Pending, SyncQueue
from tabsync.sync.scheduler import Scheduler

logger = logging.getLogger(__name__)

RemoteFactory = Callable[[StorageConfig, Callable[[str], Awaitable[None]]], GistStore]


class ConfigurationError(Exception):
    """Raised for an invalid storage config or when remote sync is off."""


class StorageCoordinator:
    """Combine a local store with the optional gist remote."""

    def __init__(
        self,
        local: FileStore | MemoryStore,
        *,
        session: aiohttp.ClientSession | None = None,
        scheduler: Scheduler | None = None,
        remote_factory: RemoteFactory | None = None,
        delay: float = DEBOUNCE_SECONDS,
    ) -> None:
        self.local = local
        self.session = session
        self.scheduler = scheduler
        self.delay = delay
        self._remote_factory = remote_factory or self._default_remote
        self.remote: GistStore | None = None
        self.queue: SyncQueue | None = None
        self._config: StorageConfig = normalize_storage_config(None)

    def _default_remote(
        self,
        config: StorageConfig,
        on_document_created: Callable[[str], Awaitable[None]],
    ) -> GistStore:
        return GistStore(
            config.get("token"),
            config.get("gistId"),
            session=self.session,
            on_document_created=on_document_created,
        )

    @property
    def remote_enabled(self) -> bool:
        return self.remote is not None

    # ------------------------------------------------------------------
    # Configuration
    # ------------------------------------------------------------------

    async def init(self) -> StorageConfig:
        """Load the saved config and build (or drop) the remote to match."""
        config = await self.get_storage_config()
        await self._configure(config)
        return config

    async def _configure(self, config: StorageConfig) -> None:
        self._config = config
        previous = self.remote

        if remote_enabled(config):
            self.remote = self._remote_factory(config, self._record_document_id)
            if self.queue is None:
                self.queue = SyncQueue(self.remote, scheduler=self.scheduler, delay=self.delay)
            else:
                # Intents queued before the reconfiguration go to the new remote.
                self.queue.remote = self.remote
        else:
            if self.queue is not None:
                dropped = self.queue.discard()
                if dropped:
                    logger.warning("Remote sync disabled; dropped %d queued intent(s)", dropped)
            self.remote = None
            self.queue = None

        if previous is not None and previous is not self.remote:
            await previous.aclose()

    async def get_storage_config(self) -> StorageConfig:
        return normalize_storage_config(await self.local.get(CONFIG_KEY))

    async def set_storage_config(self, config: dict) -> StorageConfig:
        """Validate, persist locally, and apply *config*.

        Raises:
            ConfigurationError: If *config* is invalid.
        """
        problems = validate_storage_config(config)
        if problems:
            raise ConfigurationError("; ".join(problems))
        normalized = normalize_storage_config(config)
        await self.local.set(CONFIG_KEY, dict(normalized))
        logger.info("Storage config saved (remote %s)", "enabled" if remote_enabled(normalized) else "disabled")
        await self.init()
        return normalized

    async def _record_document_id(self, document_id: str) -> None:
        config = await self.get_storage_config()
        if config.get("gistId") == document_id:
            return
        config["gistId"] = document_id
        await self.local.set(CONFIG_KEY, dict(config))
        self._config = config

    async def create_remote_document(self, token: str | None = None) -> str:
        """Create a fresh, empty gist and save its id in the config.

        *token* defaults to the saved one.  The remote does not need to be
        enabled yet; this is how a new device gets a document to enable.

        Raises:
            ConfigurationError: If there is no token to create it with.
            RemoteDocumentError: If the gist cannot be created.
        """
        config = await self.get_storage_config()
        token = (token or "").strip() or config.get("token")
        if not token:
            raise ConfigurationError("a GitHub token is required to create a gist")

        store = self._remote_factory({"enableGithub": True, "token": token, "gistId": None}, self._record_document_id)
        try:
            document_id = await store.create_document(description=f"tabsync-{now_ms()}")
        finally:
            await store.aclose()

        config["token"] = token
        config["gistId"] = document_id
        await self.local.set(CONFIG_KEY, dict(config))
        logger.info("Created remote document %s", document_id)
        await self.init()
        return document_id

    # ------------------------------------------------------------------
    # Storage contract
    # ------------------------------------------------------------------

    async def get(self, key: str) -> Any:
        return await self.local.get(key)

    async def set(self, key: str, value: Any) -> None:
        await self.local.set(key, value)
        if self.queue is not None and key not in LOCAL_ONLY_KEYS:
            self.queue.enqueue_set(key, value)

    async def remove(self, key: str) -> None:
        await self.local.remove(key)
        if self.queue is not None and key not in LOCAL_ONLY_KEYS:
            self.queue.enqueue_remove(key)

    async def clear(self) -> None:
        """Clear local data and, immediately, the remote document.

        Queued intents are discarded first so a stale write cannot
        repopulate the remote after the clear.
        """
        await self.local.clear()
        if self.remote is not None and self.queue is not None:
            self.queue.discard()
            if not await self.remote.clear():
                logger.warning("Local data cleared but the remote document was not")

    async def get_all(self) -> dict[str, Any]:
        return await self.local.get_all()

    # ------------------------------------------------------------------
    # Remote push, status, shutdown
    # ------------------------------------------------------------------

    def require_remote(self) -> GistStore:
        """Return the remote store, or raise if sync is not configured."""
        if self.remote is None:
            raise ConfigurationError(
                "GitHub sync is not enabled; run 'tabsync config set --enable --token ...' first"
            )
        return self.remote

    async def sync_to_remote(self) -> FlushResult:
        """Push queued intents now instead of waiting for the debounce."""
        self.require_remote()
        assert self.queue is not None
        await self.queue.wait_idle()
        return await self.queue.flush()

    async def status(self) -> dict:
        config = dict(self._config)
        config["token"] = mask_token(config.get("token"))

        queue_info: dict = {"state": "disabled", "size": 0, "intents": []}
        if self.queue is not None:
            state = self.queue.state
            queue_info = {
                "state": "pending" if isinstance(state, Pending) else "idle",
                "size": len(self.queue),
                "intents": [{"operation": i.operation, "key": i.key} for i in self.queue.pending],
            }

        return {
            "keys": self.local.keys(),
            "config": config,
            "remote_enabled": self.remote_enabled,
            "document_id": self.remote.document_id if self.remote is not None else None,
            "queue": queue_info,
            "shortcuts": len(visible_records(await self.local.get(SHORTCUTS_KEY))),
            "todos": len(visible_records(await self.local.get(TODOS_KEY))),
        }

    async def aclose(self) -> None:
        """Push anything still queued, then release the remote.

        A short-lived process must call this before exiting or its
        queued writes never reach the remote.
        """
        if self.queue is not None:
            await self.queue.wait_idle()
            if len(self.queue):
                await self.queue.flush()
        if self.remote is not None:
            await self.remote.aclose()

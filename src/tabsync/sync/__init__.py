"""Gist mirroring for local storage: remote client, debounced queue, coordinator, pull/merge."""

from __future__ import annotations

from tabsync.sync.coordinator import ConfigurationError, StorageCoordinator
from tabsync.sync.gist import GistStore, RemoteDocumentError
from tabsync.sync.orchestrator import SyncOrchestrator
from tabsync.sync.queue import FlushResult, SyncQueue

__all__ = [
    "ConfigurationError",
    "FlushResult",
    "GistStore",
    "RemoteDocumentError",
    "StorageCoordinator",
    "SyncOrchestrator",
    "SyncQueue",
]

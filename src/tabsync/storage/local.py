"""Local, authoritative key/value storage.

``FileStore`` keeps one JSON file per key under ``<root>/store/`` and
writes it with :func:`atomic_write` while holding that key's file lock,
so a crash leaves either the old or the new value, never a torn one.
Keys are independent units: nothing is atomic across keys.

``MemoryStore`` is the in-process fallback used when no data directory
can be created, and in tests.
"""

from __future__ import annotations

import copy
import json
import logging
import re
from pathlib import Path
from typing import Any

from tabsync.storage.fs import (
    LOCKS_DIR,
    STORE_DIR,
    atomic_write,
    ensure_data_dirs,
    remove_file,
)
from tabsync.storage.locks import DEFAULT_LOCK_TIMEOUT, LockTimeout, key_lock

logger = logging.getLogger(__name__)

_KEY_RE = re.compile(r"^[A-Za-z0-9_][A-Za-z0-9_.-]{0,127}$")


class LocalStoreError(Exception):
    """Raised when the local store cannot read or persist a value."""


def validate_key(key: str) -> str:
    """Return *key* if it is usable as a storage key, else raise."""
    if not isinstance(key, str) or not _KEY_RE.match(key):
        raise LocalStoreError(f"Invalid storage key: {key!r}")
    return key


class FileStore:
    """Durable local store backed by one JSON file per key."""

    def __init__(self, root: Path, lock_timeout: float = DEFAULT_LOCK_TIMEOUT) -> None:
        self.root = root
        self.store_dir = root / STORE_DIR
        self.locks_dir = root / LOCKS_DIR
        self.lock_timeout = lock_timeout
        try:
            ensure_data_dirs(root)
        except OSError as exc:
            raise LocalStoreError(f"Cannot create data directory {root}: {exc}") from exc

    def _path(self, key: str) -> Path:
        return self.store_dir / f"{validate_key(key)}.json"

    def _read(self, path: Path) -> Any:
        try:
            raw = path.read_text(encoding="utf-8")
        except FileNotFoundError:
            return None
        except OSError as exc:
            raise LocalStoreError(f"Cannot read {path.name}: {exc}") from exc
        try:
            return json.loads(raw)
        except json.JSONDecodeError as exc:
            raise LocalStoreError(f"Corrupt value in {path.name}: {exc}") from exc

    async def get(self, key: str) -> Any:
        return self._read(self._path(key))

    async def set(self, key: str, value: Any) -> None:
        path = self._path(key)
        try:
            content = json.dumps(value, sort_keys=True, indent=2, ensure_ascii=False) + "\n"
        except (TypeError, ValueError) as exc:
            raise LocalStoreError(f"Value for {key!r} is not JSON-serializable: {exc}") from exc
        try:
            with key_lock(self.locks_dir, key, timeout=self.lock_timeout):
                atomic_write(path, content)
        except (OSError, LockTimeout) as exc:
            raise LocalStoreError(f"Cannot write {key!r}: {exc}") from exc

    async def remove(self, key: str) -> None:
        path = self._path(key)
        try:
            with key_lock(self.locks_dir, key, timeout=self.lock_timeout):
                remove_file(path)
        except (OSError, LockTimeout) as exc:
            raise LocalStoreError(f"Cannot remove {key!r}: {exc}") from exc

    async def clear(self) -> None:
        for key in self.keys():
            await self.remove(key)

    async def get_all(self) -> dict[str, Any]:
        return {key: self._read(self.store_dir / f"{key}.json") for key in self.keys()}

    def keys(self) -> list[str]:
        """Return all stored keys, sorted."""
        if not self.store_dir.exists():
            return []
        return sorted(
            path.stem
            for path in self.store_dir.glob("*.json")
            if _KEY_RE.match(path.stem)
        )


class MemoryStore:
    """In-process store with the same contract as :class:`FileStore`.

    Values are deep-copied on the way in and out so callers can never
    mutate stored state through a reference they still hold.
    """

    def __init__(self, initial: dict[str, Any] | None = None) -> None:
        self._data: dict[str, Any] = copy.deepcopy(initial) if initial else {}

    async def get(self, key: str) -> Any:
        return copy.deepcopy(self._data.get(validate_key(key)))

    async def set(self, key: str, value: Any) -> None:
        try:
            json.dumps(value)
        except (TypeError, ValueError) as exc:
            raise LocalStoreError(f"Value for {key!r} is not JSON-serializable: {exc}") from exc
        self._data[validate_key(key)] = copy.deepcopy(value)

    async def remove(self, key: str) -> None:
        self._data.pop(validate_key(key), None)

    async def clear(self) -> None:
        self._data.clear()

    async def get_all(self) -> dict[str, Any]:
        return copy.deepcopy(self._data)

    def keys(self) -> list[str]:
        return sorted(self._data)


def open_local_store(root: Path | None) -> FileStore | MemoryStore:
    """Open the durable store at *root*, falling back to memory.

    The fallback keeps the engine usable (reads after writes within one
    process) when the data directory cannot be created; nothing written
    to it survives the process.
    """
    if root is None:
        return MemoryStore()
    try:
        return FileStore(root)
    except LocalStoreError as exc:
        logger.warning("Local store unavailable, using in-memory fallback: %s", exc)
        return MemoryStore()

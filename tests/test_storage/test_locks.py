"""Tests for per-key file locks."""

from __future__ import annotations

from pathlib import Path

import pytest
from filelock import FileLock

from tabsync.storage.locks import LockTimeout, key_lock


class TestKeyLock:
    def test_creates_lock_file(self, tmp_path: Path) -> None:
        with key_lock(tmp_path, "shortcuts"):
            assert (tmp_path / "shortcuts.lock").exists()

    def test_reacquirable_after_release(self, tmp_path: Path) -> None:
        with key_lock(tmp_path, "todos"):
            pass
        with key_lock(tmp_path, "todos", timeout=0.1):
            pass

    def test_times_out_when_held_elsewhere(self, tmp_path: Path) -> None:
        holder = FileLock(tmp_path / "todos.lock")
        holder.acquire()
        try:
            # filelock is re-entrant per lock object, not per path, so a
            # second object models another process holding the lock.
            with pytest.raises(LockTimeout, match="todos"):
                with key_lock(tmp_path, "todos", timeout=0.05):
                    pass
        finally:
            holder.release()

    def test_released_on_exception(self, tmp_path: Path) -> None:
        with pytest.raises(RuntimeError):
            with key_lock(tmp_path, "k"):
                raise RuntimeError("inside")
        with key_lock(tmp_path, "k", timeout=0.1):
            pass

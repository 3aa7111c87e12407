"""Cross-process locks guarding individual store keys."""

from __future__ import annotations

import contextlib
from collections.abc import Iterator
from pathlib import Path

from filelock import FileLock, Timeout

DEFAULT_LOCK_TIMEOUT = 10.0


class LockTimeout(Exception):
    """Another process held a key's lock for longer than we were willing to wait."""


@contextlib.contextmanager
def key_lock(locks_dir: Path, key: str, timeout: float = DEFAULT_LOCK_TIMEOUT) -> Iterator[None]:
    """Hold ``<locks_dir>/<key>.lock`` for the duration of the block.

    Writers of different keys never contend; two processes writing the
    same key take turns.

    Raises:
        LockTimeout: If the lock is still held elsewhere after *timeout* seconds.
    """
    try:
        with FileLock(locks_dir / f"{key}.lock", timeout=timeout):
            yield
    except Timeout:
        raise LockTimeout(f"Key {key!r} is locked by another process (waited {timeout}s)") from None

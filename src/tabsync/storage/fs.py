"""Atomic file writes, data directory layout, and data home discovery."""

from __future__ import annotations

import os
import tempfile
from pathlib import Path

from tabsync.core.config import DATA_DIR_NAME, DATA_HOME_ENV

STORE_DIR = "store"
LOCKS_DIR = "locks"


def _sync_dir(path: Path) -> None:
    """Make a rename or unlink inside *path* durable.

    Not every filesystem can fsync a directory; that case is ignored.
    """
    try:
        fd = os.open(str(path), os.O_RDONLY)
        try:
            os.fsync(fd)
        finally:
            os.close(fd)
    except OSError:
        pass


def atomic_write(path: Path, content: str) -> None:
    """Replace *path* with *content* so readers see the old or new file, never a mix.

    The text goes to a sibling temp file which is fsynced and then renamed
    over *path*.

    Raises:
        FileNotFoundError: If the parent directory does not exist.
    """
    directory = path.parent
    if not directory.is_dir():
        raise FileNotFoundError(f"Parent directory does not exist: {directory}")

    fd, tmp_name = tempfile.mkstemp(dir=directory, prefix=f".{path.name}.", suffix=".tmp")
    tmp = Path(tmp_name)
    try:
        with os.fdopen(fd, "w", encoding="utf-8") as fh:
            fh.write(content)
            fh.flush()
            os.fsync(fh.fileno())
        os.replace(tmp, path)
    except BaseException:
        tmp.unlink(missing_ok=True)
        raise
    _sync_dir(directory)


def remove_file(path: Path) -> bool:
    """Unlink *path* durably.  Returns ``False`` if it did not exist."""
    try:
        path.unlink()
    except FileNotFoundError:
        return False
    _sync_dir(path.parent)
    return True


def ensure_data_dirs(root: Path) -> None:
    """Create the data directory layout under *root*."""
    for subdir in (STORE_DIR, LOCKS_DIR):
        (root / subdir).mkdir(parents=True, exist_ok=True)


class DataHomeError(Exception):
    """Raised when TABSYNC_HOME is set but unusable."""


def resolve_data_home() -> Path:
    """Return the data directory.

    Uses the TABSYNC_HOME env var when set (it must not be empty and must
    not point at a regular file), otherwise ``~/.tabsync``.
    """
    env_home = os.environ.get(DATA_HOME_ENV)
    if env_home is not None:
        if not env_home:
            raise DataHomeError(f"{DATA_HOME_ENV} is set but empty")
        path = Path(env_home).expanduser()
        if path.exists() and not path.is_dir():
            raise DataHomeError(f"{DATA_HOME_ENV} points to a file, not a directory: {env_home}")
        return path
    return Path.home() / DATA_DIR_NAME

"""The contract shared by every storage backend."""

from __future__ import annotations

from typing import Any, Protocol, runtime_checkable


@runtime_checkable
class StorageBackend(Protocol):
    """Key/value storage of JSON-serializable values.

    Implemented by the local stores, the remote gist store, and the
    coordinator that combines them.  The coordinator holds references to
    the other two rather than extending either.
    """

    async def get(self, key: str) -> Any: ...

    async def set(self, key: str, value: Any) -> Any: ...

    async def remove(self, key: str) -> Any: ...

    async def clear(self) -> Any: ...

"""Remote document store backed by a GitHub gist.

One gist is the whole remote: each collection is a file in it, holding
pretty-printed JSON.  Every operation is best-effort.  The remote must
never block local work, so failures are logged and reported as ``None``
or ``False`` instead of raised; the one exception is
:meth:`GistStore.create_document`, an explicit user action whose
failure the user needs to see.
"""

from __future__ import annotations

import asyncio
import inspect
import json
import logging
from collections.abc import Awaitable, Callable
from typing import Any

import aiohttp

from tabsync.core.config import (
    GIST_API_URL,
    GIST_DESCRIPTION,
    LEGACY_DATA_FILE,
    PLACEHOLDER_FILE,
)

logger = logging.getLogger(__name__)

_TIMEOUT = aiohttp.ClientTimeout(total=20)
_PLACEHOLDER_CONTENT = json.dumps({"placeholder": True}, indent=2)

DocumentCreatedCallback = Callable[[str], Awaitable[None] | None]


class RemoteDocumentError(Exception):
    """A remote request failed (network, non-2xx status, or bad payload)."""

    def __init__(self, message: str, *, status: int | None = None) -> None:
        super().__init__(message)
        self.status = status


class GistStore:
    """Read and write named JSON files of a single gist."""

    def __init__(
        self,
        token: str | None,
        document_id: str | None = None,
        *,
        session: aiohttp.ClientSession | None = None,
        base_url: str = GIST_API_URL,
        timeout: aiohttp.ClientTimeout = _TIMEOUT,
        on_document_created: DocumentCreatedCallback | None = None,
    ) -> None:
        self.token = token
        self.document_id = document_id
        self.base_url = base_url.rstrip("/")
        self.timeout = timeout
        self.on_document_created = on_document_created
        self._session = session
        self._owns_session = session is None

    # ------------------------------------------------------------------
    # HTTP plumbing
    # ------------------------------------------------------------------

    def _get_session(self) -> aiohttp.ClientSession:
        if self._session is None:
            self._session = aiohttp.ClientSession()
            self._owns_session = True
        return self._session

    def _headers(self) -> dict[str, str]:
        return {
            "Authorization": f"Bearer {self.token}",
            "Accept": "application/vnd.github+json",
        }

    def _document_url(self) -> str:
        return f"{self.base_url}/{self.document_id}"

    async def _request(
        self,
        method: str,
        url: str,
        *,
        body: dict | None = None,
        raw: bool = False,
    ) -> Any:
        """Perform one request and return its decoded body.

        Raises:
            RemoteDocumentError: On transport errors, timeouts, a status
                of 400 or above, or an undecodable JSON body.
        """
        session = self._get_session()
        try:
            async with session.request(
                method,
                url,
                headers=self._headers(),
                json=body,
                timeout=self.timeout,
            ) as resp:
                if resp.status >= 400:
                    raise RemoteDocumentError(
                        f"{method} {url} failed: HTTP {resp.status}", status=resp.status
                    )
                if raw:
                    return await resp.text()
                try:
                    return await resp.json(content_type=None)
                except (aiohttp.ContentTypeError, json.JSONDecodeError, ValueError) as err:
                    raise RemoteDocumentError(f"{method} {url}: invalid JSON response") from err
        except (asyncio.TimeoutError, aiohttp.ClientError) as err:
            raise RemoteDocumentError(f"{method} {url}: {err}") from err

    async def fetch_document(self) -> dict:
        """Return the gist's JSON representation.

        Raises:
            RemoteDocumentError: If there is no document yet or the request fails.
        """
        if not self.document_id:
            raise RemoteDocumentError("no remote document configured")
        payload = await self._request("GET", self._document_url())
        if not isinstance(payload, dict):
            raise RemoteDocumentError("remote document is not a JSON object")
        return payload

    async def _file_content(self, file: dict) -> str | None:
        # Large files come back truncated; the full text lives at raw_url.
        if file.get("truncated") and file.get("raw_url"):
            return await self._request("GET", file["raw_url"], raw=True)
        return file.get("content")

    async def _notify_created(self, document_id: str) -> None:
        if self.on_document_created is None:
            return
        try:
            result = self.on_document_created(document_id)
            if inspect.isawaitable(result):
                await result
        except Exception as exc:
            logger.warning("Remote document %s created but not recorded: %s", document_id, exc)

    # ------------------------------------------------------------------
    # Storage contract
    # ------------------------------------------------------------------

    async def get(self, file_key: str) -> Any:
        """Return the decoded content of *file_key*, or ``None``."""
        if not self.document_id or not self.token:
            return None
        try:
            document = await self.fetch_document()
            files = document.get("files") or {}
            file = files.get(file_key) or files.get(LEGACY_DATA_FILE)
            if not isinstance(file, dict):
                return None
            content = await self._file_content(file)
            if content is None:
                return None
            return json.loads(content)
        except (RemoteDocumentError, json.JSONDecodeError) as err:
            logger.warning("Remote get of %r failed: %s", file_key, err)
            return None

    async def set(self, file_key: str, value: Any) -> str | None:
        """Write *value* as *file_key*, creating the gist on first write.

        Returns the document id, or ``None`` if the write failed.
        """
        if not self.token:
            return None
        try:
            files = {file_key: {"content": json.dumps(value, indent=2, ensure_ascii=False)}}
        except (TypeError, ValueError) as err:
            logger.warning("Remote set of %r skipped, value not serializable: %s", file_key, err)
            return None

        created = False
        try:
            if self.document_id:
                payload = await self._request("PATCH", self._document_url(), body={"files": files})
            else:
                payload = await self._request(
                    "POST",
                    self.base_url,
                    body={"description": GIST_DESCRIPTION, "public": False, "files": files},
                )
                created = True
        except RemoteDocumentError as err:
            logger.warning("Remote set of %r failed: %s", file_key, err)
            return None

        if isinstance(payload, dict) and payload.get("id"):
            self.document_id = str(payload["id"])
        if created:
            if not self.document_id:
                logger.warning("Remote document created without an id; %r not recorded", file_key)
                return None
            logger.info("Created remote document %s", self.document_id)
            await self._notify_created(self.document_id)
        return self.document_id

    async def remove(self, file_key: str) -> bool:
        """Delete *file_key* from the gist.

        Without a document or token there is nothing to delete, which
        counts as success.
        """
        if not self.document_id or not self.token:
            return True
        try:
            await self._request("PATCH", self._document_url(), body={"files": {file_key: None}})
        except RemoteDocumentError as err:
            logger.warning("Remote remove of %r failed: %s", file_key, err)
            return False
        return True

    async def clear(self) -> bool:
        """Reduce the gist to its placeholder file.

        A gist cannot exist with zero files, so "empty" means every data
        file deleted and only the placeholder left.
        """
        if not self.document_id or not self.token:
            return False
        try:
            document = await self.fetch_document()
            files: dict[str, dict | None] = {
                name: None for name in (document.get("files") or {}) if name != PLACEHOLDER_FILE
            }
            files[PLACEHOLDER_FILE] = {"content": _PLACEHOLDER_CONTENT}
            await self._request("PATCH", self._document_url(), body={"files": files})
        except RemoteDocumentError as err:
            logger.warning("Remote clear failed: %s", err)
            return False
        return True

    async def create_document(self, description: str | None = None) -> str:
        """Create an empty private gist holding only the placeholder file.

        Unlike the storage operations, this raises on failure.

        Raises:
            RemoteDocumentError: If there is no token or the request fails.
        """
        if not self.token:
            raise RemoteDocumentError("a GitHub token is required to create a gist")
        payload = await self._request(
            "POST",
            self.base_url,
            body={
                "description": description or GIST_DESCRIPTION,
                "public": False,
                "files": {PLACEHOLDER_FILE: {"content": _PLACEHOLDER_CONTENT}},
            },
        )
        if not isinstance(payload, dict) or not payload.get("id"):
            raise RemoteDocumentError("gist created but the response carried no id")
        self.document_id = str(payload["id"])
        return self.document_id

    async def aclose(self) -> None:
        """Close the HTTP session if this store created it."""
        if self._owns_session and self._session is not None:
            await self._session.close()
            self._session = None

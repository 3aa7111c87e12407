"""Shared test fixtures."""

from __future__ import annotations

import json
from pathlib import Path

import pytest
from click.testing import CliRunner

from tabsync.storage.local import MemoryStore
from tabsync.sync.coordinator import StorageCoordinator
from tabsync.sync.scheduler import ManualScheduler


class FakeRemote:
    """In-memory stand-in for GistStore that records every call."""

    def __init__(self, files: dict | None = None, document_id: str | None = None) -> None:
        self.files: dict = dict(files or {})
        self.document_id = document_id
        self.on_document_created = None
        self.calls: list[tuple] = []
        self.fail = False
        self.raise_on: set[str] = set()
        self.closed = False

    def _check(self, op: str) -> None:
        self.calls.append((op,))
        if op in self.raise_on:
            raise RuntimeError(f"{op} exploded")

    async def get(self, key: str):
        self._check("get")
        self.calls[-1] = ("get", key)
        if self.fail:
            return None
        return json.loads(json.dumps(self.files.get(key)))

    async def set(self, key: str, value):
        self._check("set")
        self.calls[-1] = ("set", key, value)
        if self.fail:
            return None
        self.files[key] = json.loads(json.dumps(value))
        if self.document_id is None:
            self.document_id = "gist-created"
            if self.on_document_created is not None:
                await self.on_document_created(self.document_id)
        return self.document_id

    async def remove(self, key: str) -> bool:
        self._check("remove")
        self.calls[-1] = ("remove", key)
        if self.fail:
            return False
        self.files.pop(key, None)
        return True

    async def clear(self) -> bool:
        self._check("clear")
        if self.fail:
            return False
        self.files.clear()
        return True

    async def create_document(self, description: str | None = None) -> str:
        self._check("create_document")
        self.document_id = "gist-new"
        return self.document_id

    async def aclose(self) -> None:
        self.closed = True

    def writes(self) -> list[tuple]:
        return [c for c in self.calls if c[0] in ("set", "remove", "clear")]


@pytest.fixture()
def remote() -> FakeRemote:
    return FakeRemote()


@pytest.fixture()
def scheduler() -> ManualScheduler:
    return ManualScheduler()


@pytest.fixture()
def coordinator(remote: FakeRemote, scheduler: ManualScheduler) -> StorageCoordinator:
    """Coordinator over a MemoryStore whose remote (once enabled) is *remote*."""

    def factory(config, on_document_created):
        remote.document_id = config.get("gistId") or remote.document_id
        remote.on_document_created = on_document_created
        return remote

    return StorageCoordinator(MemoryStore(), scheduler=scheduler, remote_factory=factory)


@pytest.fixture()
def cli_runner() -> CliRunner:
    """Return a Click CliRunner for invoking CLI commands."""
    return CliRunner()


@pytest.fixture()
def cli_env(tmp_path: Path) -> dict[str, str]:
    """Return env dict with TABSYNC_HOME pointing to a fresh data directory."""
    return {"TABSYNC_HOME": str(tmp_path / "home")}


@pytest.fixture()
def invoke(cli_runner: CliRunner, cli_env: dict[str, str]):
    """Return a helper that invokes CLI commands with the right environment.

    Usage::

        result = invoke("todo", "add", "Buy milk")
    """
    from tabsync.cli.main import cli

    def _invoke(*args: str, **kwargs):
        return cli_runner.invoke(cli, list(args), env=cli_env, **kwargs)

    return _invoke


@pytest.fixture()
def invoke_json(invoke):
    """Like invoke, but appends --json and parses the response.

    Returns (parsed_dict, exit_code) tuple.
    """

    def _invoke_json(*args: str) -> tuple[dict, int]:
        result = invoke(*args, "--json")
        parsed = json.loads(result.output)
        return parsed, result.exit_code

    return _invoke_json

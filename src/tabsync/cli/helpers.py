"""Shared CLI helpers and output utilities."""

from __future__ import annotations

import asyncio
import datetime
import json
from collections.abc import Awaitable, Callable
from typing import NoReturn, TypeVar

import aiohttp
import click

from tabsync.core.records import RecordError
from tabsync.storage.fs import DataHomeError, resolve_data_home
from tabsync.storage.local import LocalStoreError, open_local_store
from tabsync.sync.coordinator import ConfigurationError, StorageCoordinator
from tabsync.sync.gist import RemoteDocumentError

T = TypeVar("T")


# ---------------------------------------------------------------------------
# Output helpers
# ---------------------------------------------------------------------------


def json_envelope(ok: bool, *, data: object = None, error: object = None) -> str:
    """Build a structured JSON output envelope."""
    result: dict = {"ok": ok}
    if data is not None:
        result["data"] = data
    if error is not None:
        result["error"] = error
    return json.dumps(result, sort_keys=True, indent=2, ensure_ascii=False) + "\n"


def json_error_obj(code: str, message: str) -> dict:
    """Build an error object for the JSON envelope."""
    return {"code": code, "message": message}


def output_error(message: str, code: str, is_json: bool, exit_code: int = 1) -> NoReturn:
    """Print error and exit. JSON errors go to stdout; human errors to stderr."""
    if is_json:
        click.echo(json_envelope(False, error=json_error_obj(code, message)))
    else:
        click.echo(f"Error: {message}", err=True)
    raise SystemExit(exit_code)


def output_result(*, data: object, human_message: str, is_json: bool) -> None:
    """Print success result in the appropriate format."""
    if is_json:
        click.echo(json_envelope(True, data=data))
    else:
        click.echo(human_message)


# ---------------------------------------------------------------------------
# Coordinator lifecycle
# ---------------------------------------------------------------------------

async def open_coordinator(session: aiohttp.ClientSession | None = None) -> StorageCoordinator:
    """Build a coordinator over the data home and load its saved config."""
    local = open_local_store(resolve_data_home())
    coordinator = StorageCoordinator(local, session=session)
    await coordinator.init()
    return coordinator


def run_with_coordinator(action: Callable[[StorageCoordinator], Awaitable[T]], is_json: bool) -> T:
    """Run *action* against a freshly initialized coordinator.

    The coordinator is closed afterwards, which pushes any writes the
    action queued for the remote before the process exits.  Known
    errors become an error message (or envelope) and exit code 1.
    """

    async def _main() -> T:
        async with aiohttp.ClientSession() as session:
            coordinator = await open_coordinator(session)
            try:
                return await action(coordinator)
            finally:
                await coordinator.aclose()

    try:
        return asyncio.run(_main())
    except DataHomeError as e:
        output_error(str(e), "DATA_HOME", is_json)
    except ConfigurationError as e:
        output_error(str(e), "NOT_CONFIGURED", is_json)
    except RecordError as e:
        output_error(str(e), "INVALID_RECORD", is_json)
    except LocalStoreError as e:
        output_error(str(e), "STORAGE_ERROR", is_json)
    except RemoteDocumentError as e:
        output_error(str(e), "REMOTE_ERROR", is_json)


def format_timestamp(ms: object) -> str:
    """Render epoch milliseconds as local ``YYYY-MM-DD HH:MM``."""
    if isinstance(ms, bool) or not isinstance(ms, (int, float)):
        return "-"
    return datetime.datetime.fromtimestamp(ms / 1000).strftime("%Y-%m-%d %H:%M")

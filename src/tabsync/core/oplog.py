"""Operation log entries: creation, types, and retention."""

from __future__ import annotations

import json
import locale
import platform
import sys
import time

from tabsync.core.config import MAX_LOG_ENTRIES
from tabsync.core.ids import generate_log_id

UNKNOWN = "unknown"

# ---------------------------------------------------------------------------
# Built-in operation types
# ---------------------------------------------------------------------------

# Types understood by every client's log viewer.  Entries sync across
# devices, so these names are part of the stored format.
OPERATION_TYPES: frozenset[str] = frozenset(
    {
        "add_shortcut",
        "edit_shortcut",
        "delete_shortcut",
        "create_group",
        "edit_group_name",
        "delete_group",
        "add_to_group",
        "remove_from_group",
        "ungroup",
        "add_todo",
        "edit_todo",
        "toggle_todo",
        "delete_todo",
    }
)


def client_info() -> dict:
    """Describe the client writing a log entry.

    Mirrors the fields a browser client records (browser, platform,
    language, timezone) so entries from both kinds of client render the
    same way.
    """
    language = locale.getlocale()[0] or UNKNOWN
    return {
        "browser": "tabsync-cli",
        "platform": platform.system() or UNKNOWN,
        "platformVersion": platform.release() or UNKNOWN,
        "python": platform.python_version(),
        "language": language,
        "timezone": time.tzname[0] if time.tzname else UNKNOWN,
        "userAgent": f"tabsync (Python {sys.version_info.major}.{sys.version_info.minor})",
    }


def create_log_entry(
    type: str,
    content: object,
    *,
    client: dict | None = None,
    ip: str = UNKNOWN,
    metadata: dict | None = None,
    timestamp: int | None = None,
    entry_id: str | None = None,
) -> dict:
    """Build a new, immutable operation log entry.

    Non-string *content* is JSON-encoded so every entry renders as text.
    Unknown *type* values are accepted: the type set is open so newer
    clients can log operations older ones do not know about.
    """
    if not isinstance(content, str):
        content = json.dumps(content, sort_keys=True, ensure_ascii=False)
    return {
        "id": entry_id or generate_log_id(),
        "type": type,
        "content": content,
        "timestamp": int(time.time() * 1000) if timestamp is None else timestamp,
        "client": client if client is not None else client_info(),
        "ip": ip,
        "metadata": metadata or {},
    }


def prepend_entry(logs: list[dict] | None, entry: dict, limit: int = MAX_LOG_ENTRIES) -> list[dict]:
    """Return *logs* with *entry* first, truncated to the *limit* newest."""
    return [entry, *(logs or [])][:limit]

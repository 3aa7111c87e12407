"""Soft-delete, last-write-wins reconciliation of record collections.

Everything here is pure: inputs are never mutated and no I/O happens.
Two devices that edit the same collection offline are reconciled by
comparing wall-clock timestamps only.

Records are JSON objects keyed by ``id`` carrying ``updatedAt`` and,
for tombstones, ``deleted: true`` plus ``deletedAt``.  A shortcut group
is merged as one opaque record: its nested ``items`` are compared as
part of its content and never reconciled item by item.
"""

from __future__ import annotations

import copy
from collections.abc import Iterable

from tabsync.core.config import MAX_LOG_ENTRIES

# Bookkeeping fields excluded from the content comparison of live records.
_SYNC_FIELDS: frozenset[str] = frozenset({"updatedAt", "deleted", "deletedAt"})


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------


def is_tombstone(record: dict) -> bool:
    """Return ``True`` if *record* is marked deleted."""
    return record.get("deleted") is True


def visible_records(records: Iterable[dict] | None) -> list[dict]:
    """Return the records a consumer may see (tombstones filtered out)."""
    if not records:
        return []
    return [r for r in records if isinstance(r, dict) and not is_tombstone(r)]


def _ts(record: dict, field: str) -> float:
    value = record.get(field)
    if isinstance(value, bool) or not isinstance(value, (int, float)):
        return 0
    return value


def _content(record: dict) -> dict:
    return {k: v for k, v in record.items() if k not in _SYNC_FIELDS}


def _stamped(record: dict, updated_at: float) -> dict:
    out = copy.deepcopy(record)
    out["updatedAt"] = updated_at
    return out


def _resurrected(record: dict, updated_at: float) -> dict:
    out = _stamped(record, updated_at)
    out.pop("deleted", None)
    out.pop("deletedAt", None)
    return out


def _index(records: Iterable[dict] | None) -> dict:
    """Key *records* by id, dropping entries that cannot take part in a merge."""
    indexed: dict = {}
    for record in records or ():
        if not isinstance(record, dict) or record.get("id") is None:
            continue
        indexed[record["id"]] = record
    return indexed


# ---------------------------------------------------------------------------
# Record merge
# ---------------------------------------------------------------------------


def resolve_pair(local: dict, remote: dict, now: float) -> dict:
    """Reconcile two versions of the same record.

    The winner is returned as a new dict stamped ``updatedAt = now`` so a
    later merge compares against this reconciliation, not the original
    edit time.
    """
    local_deleted = is_tombstone(local)
    remote_deleted = is_tombstone(remote)

    if local_deleted and remote_deleted:
        # Latest deletion wins; exact ties stay with the local side.
        if _ts(remote, "deletedAt") > _ts(local, "deletedAt"):
            return _stamped(remote, now)
        return _stamped(local, now)

    if local_deleted:
        # A remote edit newer than our deletion brings the record back.
        if _ts(remote, "updatedAt") > _ts(local, "deletedAt"):
            return _resurrected(remote, now)
        return _stamped(local, now)

    if remote_deleted:
        if _ts(local, "updatedAt") > _ts(remote, "deletedAt"):
            return _stamped(local, now)
        return _stamped(remote, now)

    if _content(local) == _content(remote):
        return _stamped(local, now)
    if _ts(remote, "updatedAt") > _ts(local, "updatedAt"):
        return _stamped(remote, now)
    return _stamped(local, now)


def merge_records(
    local: Iterable[dict] | None,
    remote: Iterable[dict] | None,
    now: float,
) -> list[dict]:
    """Merge two versions of a record collection.

    Output order: local records in local order, then records only the
    remote knows about in remote order.  Records present on one side only
    are kept as-is (tombstones included) with ``updatedAt`` defaulting to
    *now* when missing.  Records present on both sides go through
    :func:`resolve_pair`.
    """
    local_by_id = _index(local)
    remote_by_id = _index(remote)

    merged: dict = {}
    for record_id, record in local_by_id.items():
        other = remote_by_id.get(record_id)
        if other is None:
            merged[record_id] = _stamped(record, record.get("updatedAt") or now)
        else:
            merged[record_id] = resolve_pair(record, other, now)

    for record_id, record in remote_by_id.items():
        if record_id not in merged:
            merged[record_id] = _stamped(record, record.get("updatedAt") or now)

    return list(merged.values())


# ---------------------------------------------------------------------------
# Operation log merge
# ---------------------------------------------------------------------------


def merge_operation_logs(
    local: Iterable[dict] | None,
    remote: Iterable[dict] | None,
    limit: int = MAX_LOG_ENTRIES,
) -> list[dict]:
    """Union two operation logs by entry id.

    Log entries are immutable, so an id collision is not expected; when it
    happens the remote entry replaces the local one only if its timestamp
    is strictly newer.  The result is sorted newest first and truncated to
    the *limit* most recent entries.
    """
    by_id: dict = {}
    for entry in local or ():
        if isinstance(entry, dict) and entry.get("id"):
            by_id[entry["id"]] = entry

    for entry in remote or ():
        if not isinstance(entry, dict) or not entry.get("id"):
            continue
        existing = by_id.get(entry["id"])
        if existing is None or _ts(entry, "timestamp") > _ts(existing, "timestamp"):
            by_id[entry["id"]] = entry

    ordered = sorted(by_id.values(), key=lambda e: _ts(e, "timestamp"), reverse=True)
    return [copy.deepcopy(e) for e in ordered[:limit]]

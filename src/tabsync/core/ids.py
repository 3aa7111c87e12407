"""ULID-based identifiers."""

from __future__ import annotations

from ulid import ULID


def generate_shortcut_id() -> str:
    """Generate a new shortcut ID with the sc_ prefix."""
    return f"sc_{ULID()}"


def generate_group_id() -> str:
    """Generate a new shortcut group ID with the grp_ prefix."""
    return f"grp_{ULID()}"


def generate_todo_id() -> str:
    """Generate a new to-do ID with the todo_ prefix."""
    return f"todo_{ULID()}"


def generate_log_id() -> str:
    """Generate a new operation log entry ID with the log_ prefix.

    ULIDs sort by creation time and carry 80 random bits, so two devices
    writing in the same millisecond still produce distinct IDs.
    """
    return f"log_{ULID()}"

"""Tests for ID generation."""

from __future__ import annotations

import re

from tabsync.core.ids import (
    generate_group_id,
    generate_log_id,
    generate_shortcut_id,
    generate_todo_id,
)

_ULID = "[0-9A-HJKMNP-TV-Z]{26}"


class TestGenerate:
    def test_prefixes(self) -> None:
        assert re.fullmatch(f"sc_{_ULID}", generate_shortcut_id())
        assert re.fullmatch(f"grp_{_ULID}", generate_group_id())
        assert re.fullmatch(f"todo_{_ULID}", generate_todo_id())
        assert re.fullmatch(f"log_{_ULID}", generate_log_id())

    def test_unique(self) -> None:
        ids = {generate_log_id() for _ in range(500)}
        assert len(ids) == 500

    def test_log_ids_sort_by_creation_time(self) -> None:
        ids = [generate_log_id() for _ in range(50)]
        assert [i[4:14] for i in ids] == sorted(i[4:14] for i in ids)

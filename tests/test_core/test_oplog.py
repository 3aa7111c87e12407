"""Tests for operation log entry creation and retention."""

from __future__ import annotations

import json

from tabsync.core.oplog import UNKNOWN, client_info, create_log_entry, prepend_entry


class TestCreateLogEntry:
    def test_shape(self) -> None:
        entry = create_log_entry("add_todo", "Buy milk", timestamp=123, metadata={"id": "todo_x"})
        assert entry["id"].startswith("log_")
        assert len(entry["id"]) == len("log_") + 26
        assert entry["type"] == "add_todo"
        assert entry["content"] == "Buy milk"
        assert entry["timestamp"] == 123
        assert entry["ip"] == UNKNOWN
        assert entry["metadata"] == {"id": "todo_x"}
        assert entry["client"]["browser"] == "tabsync-cli"

    def test_non_string_content_is_json(self) -> None:
        entry = create_log_entry("edit_shortcut", {"b": 1, "a": [2]})
        assert json.loads(entry["content"]) == {"a": [2], "b": 1}

    def test_unknown_type_accepted(self) -> None:
        assert create_log_entry("custom_thing", "x")["type"] == "custom_thing"

    def test_entry_is_json_serializable(self) -> None:
        json.dumps(create_log_entry("add_todo", "x"))


class TestClientInfo:
    def test_fields_present(self) -> None:
        info = client_info()
        for field in ("browser", "platform", "language", "timezone", "userAgent"):
            assert info[field]


class TestPrependEntry:
    def test_newest_first(self) -> None:
        logs = prepend_entry([{"id": "old"}], {"id": "new"})
        assert [e["id"] for e in logs] == ["new", "old"]

    def test_capped(self) -> None:
        logs = [{"id": str(i)} for i in range(5)]
        result = prepend_entry(logs, {"id": "new"}, limit=5)
        assert len(result) == 5
        assert result[0]["id"] == "new"
        assert result[-1]["id"] == "3"

    def test_none_logs(self) -> None:
        assert prepend_entry(None, {"id": "x"}) == [{"id": "x"}]

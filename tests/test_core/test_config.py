"""Tests for storage config normalization and validation."""

from __future__ import annotations

from tabsync.core.config import (
    CONFIG_KEY,
    LOCAL_ONLY_KEYS,
    RESERVED_KEYS,
    default_storage_config,
    mask_token,
    normalize_storage_config,
    remote_enabled,
    validate_storage_config,
)


class TestNormalize:
    def test_missing_config_is_default(self) -> None:
        assert normalize_storage_config(None) == default_storage_config()
        assert normalize_storage_config("garbage") == default_storage_config()  # type: ignore[arg-type]

    def test_strips_and_empties_strings(self) -> None:
        config = normalize_storage_config({"enableGithub": True, "token": "  abc  ", "gistId": "  "})
        assert config == {"enableGithub": True, "token": "abc", "gistId": None}

    def test_drops_unknown_keys(self) -> None:
        config = normalize_storage_config({"enableGithub": False, "extra": 1})
        assert "extra" not in config

    def test_only_true_enables(self) -> None:
        assert normalize_storage_config({"enableGithub": "yes"})["enableGithub"] is False


class TestValidate:
    def test_default_is_valid(self) -> None:
        assert validate_storage_config(dict(default_storage_config())) == []

    def test_enabled_requires_token(self) -> None:
        problems = validate_storage_config({"enableGithub": True, "token": "  "})
        assert any("token is required" in p for p in problems)

    def test_type_errors_reported(self) -> None:
        problems = validate_storage_config({"enableGithub": "yes", "token": 5, "gistId": 7})
        assert len(problems) == 3


class TestHelpers:
    def test_remote_enabled_needs_flag_and_token(self) -> None:
        assert remote_enabled({"enableGithub": True, "token": "t"})
        assert not remote_enabled({"enableGithub": True, "token": None})
        assert not remote_enabled({"enableGithub": False, "token": "t"})
        assert not remote_enabled(None)

    def test_mask_token_keeps_last_four(self) -> None:
        assert mask_token("ghp_abcdef1234") == "**********1234"
        assert mask_token("abc") == "***"
        assert mask_token(None) is None

    def test_config_never_leaves_device(self) -> None:
        assert CONFIG_KEY in LOCAL_ONLY_KEYS
        assert CONFIG_KEY in RESERVED_KEYS

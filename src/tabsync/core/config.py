"""Storage configuration, reserved keys, and fixed engine constants."""

from __future__ import annotations

from typing import TypedDict

# ---------------------------------------------------------------------------
# Reserved local keys
# ---------------------------------------------------------------------------

CONFIG_KEY = "storage_config"
SHORTCUTS_KEY = "shortcuts"
TODOS_KEY = "todos"
OPERATION_LOGS_KEY = "operation_logs"
BACKGROUND_SETTINGS_KEY = "background_settings"
SEARCH_ENGINE_KEY = "search_engine"

RESERVED_KEYS: frozenset[str] = frozenset(
    {
        CONFIG_KEY,
        SHORTCUTS_KEY,
        TODOS_KEY,
        OPERATION_LOGS_KEY,
        BACKGROUND_SETTINGS_KEY,
        SEARCH_ENGINE_KEY,
    }
)

# Keys that stay on this device.  The config holds the credential that
# reaches the remote, so it is never pushed there.
LOCAL_ONLY_KEYS: frozenset[str] = frozenset({CONFIG_KEY})

# The three collections reconciled by a pull.
SYNCED_COLLECTIONS: tuple[str, ...] = (SHORTCUTS_KEY, TODOS_KEY, OPERATION_LOGS_KEY)

# ---------------------------------------------------------------------------
# Engine constants (not configurable)
# ---------------------------------------------------------------------------

DEBOUNCE_SECONDS = 2.0
MAX_LOG_ENTRIES = 1000

GIST_API_URL = "https://api.github.com/gists"
GIST_DESCRIPTION = "WebTab shortcuts storage"
PLACEHOLDER_FILE = "placeholder.json"
LEGACY_DATA_FILE = "data.json"

DATA_HOME_ENV = "TABSYNC_HOME"
DATA_DIR_NAME = ".tabsync"


class StorageConfig(TypedDict, total=False):
    enableGithub: bool
    token: str | None
    gistId: str | None


def default_storage_config() -> StorageConfig:
    """Return the configuration used when none has been saved yet."""
    return {"enableGithub": False, "token": None, "gistId": None}


def normalize_storage_config(raw: dict | None) -> StorageConfig:
    """Coerce a stored or user-supplied config into canonical form.

    Strings are stripped and empty strings become ``None``.  Unknown keys
    are dropped.  A missing or non-dict *raw* yields the default config.
    """
    config = default_storage_config()
    if not isinstance(raw, dict):
        return config

    config["enableGithub"] = raw.get("enableGithub") is True
    for field in ("token", "gistId"):
        value = raw.get(field)
        if isinstance(value, str):
            value = value.strip() or None
        config[field] = value
    return config


def validate_storage_config(config: dict) -> list[str]:
    """Return a list of problems with *config*; empty means valid."""
    problems: list[str] = []

    enabled = config.get("enableGithub", False)
    if not isinstance(enabled, bool):
        problems.append("enableGithub must be a boolean")

    token = config.get("token")
    if token is not None and not isinstance(token, str):
        problems.append("token must be a string")
    elif enabled is True and not (token or "").strip():
        problems.append("a GitHub token is required when GitHub sync is enabled")

    gist_id = config.get("gistId")
    if gist_id is not None and not isinstance(gist_id, str):
        problems.append("gistId must be a string or null")

    return problems


def remote_enabled(config: dict | None) -> bool:
    """Return ``True`` when *config* turns on remote sync with a credential."""
    if not config:
        return False
    return config.get("enableGithub") is True and bool(config.get("token"))


def mask_token(token: str | None) -> str | None:
    """Return *token* with everything but its last four characters hidden."""
    if not token:
        return None
    if len(token) <= 4:
        return "*" * len(token)
    return "*" * (len(token) - 4) + token[-4:]

"""Configuration management for expense-ledger."""

import json
import os
from datetime import timezone, tzinfo
from pathlib import Path
from typing import Any
from zoneinfo import ZoneInfo, ZoneInfoNotFoundError

# Default config filename
CONFIG_FILENAME = "config.json"
DATA_FILENAME = "ledger.json"

BACKENDS = ("json", "firestore")


def get_config_dir() -> Path:
    """Get the config directory path (XDG compliant)."""
    xdg_config_home = os.getenv("XDG_CONFIG_HOME", str(Path.home() / ".config"))
    return Path(xdg_config_home) / "expense-ledger"


def get_config_path() -> Path:
    """Get the default config file path."""
    return get_config_dir() / CONFIG_FILENAME


def get_default_data_path() -> Path:
    """Get the default ledger data file path (XDG data home)."""
    xdg_data_home = os.getenv("XDG_DATA_HOME", str(Path.home() / ".local" / "share"))
    return Path(xdg_data_home) / "expense-ledger" / DATA_FILENAME


def find_config_file() -> Path | None:
    """Find the config file in standard locations.

    Searches for config in the following order:
    1. config.json in current directory
    2. XDG config: ~/.config/expense-ledger/config.json
    """
    config_paths = [
        Path(CONFIG_FILENAME),
        get_config_path(),
    ]

    for path in config_paths:
        if path.exists():
            return path

    return None


def load_json_config(config_path: Path) -> dict[str, Any]:
    """Load configuration from a JSON file."""
    with open(config_path) as f:
        return json.load(f)  # type: ignore[no-any-return]


def save_json_config(config: dict[str, Any], config_path: Path | None = None) -> Path:
    """Save configuration to a JSON file.

    Args:
        config: Configuration dictionary to save
        config_path: Path to save to (defaults to XDG config location)

    Returns:
        Path where config was saved
    """
    if config_path is None:
        config_path = get_config_path()

    config_path.parent.mkdir(parents=True, exist_ok=True)

    with open(config_path, "w") as f:
        json.dump(config, f, indent=2)
        f.write("\n")

    return config_path


def load_config(config_path: Path | None = None) -> dict[str, Any] | None:
    """Load configuration from config file.

    Args:
        config_path: Explicit path to config.json file

    Returns:
        Loaded config dict or None if not found
    """
    if config_path:
        return load_json_config(config_path)

    config_file = find_config_file()
    if config_file:
        return load_json_config(config_file)

    return None


def get_backend(config: dict[str, Any] | None = None) -> str:
    """Get the storage backend name ("json" or "firestore")."""
    backend = "json"
    if config:
        backend = config.get("storage", {}).get("backend") or backend
    if backend not in BACKENDS:
        raise ValueError(f"Unknown storage backend: {backend}")
    return backend  # type: ignore[no-any-return]


def get_data_path(
    config: dict[str, Any] | None = None,
    override: Path | None = None,
) -> Path:
    """Get the JSON ledger file path.

    Precedence: explicit override, EXPENSE_LEDGER_DATA env var, config
    ``storage.path``, then the XDG default.
    """
    if override:
        return override

    if env_path := os.getenv("EXPENSE_LEDGER_DATA"):
        return Path(env_path)

    if config:
        if path := config.get("storage", {}).get("path"):
            return Path(path).expanduser()

    return get_default_data_path()


def get_firestore_settings(config: dict[str, Any] | None = None) -> dict[str, str | None]:
    """Get Firestore connection settings.

    Environment variables FIRESTORE_PROJECT_ID, FIRESTORE_API_KEY and
    FIRESTORE_TIMEZONE take precedence over the config file.

    Returns:
        Dictionary with project_id, api_key, database and timezone keys
    """
    fs_config: dict[str, Any] = (config or {}).get("firestore", {})
    return {
        "project_id": os.getenv("FIRESTORE_PROJECT_ID") or fs_config.get("project_id"),
        "api_key": os.getenv("FIRESTORE_API_KEY") or fs_config.get("api_key"),
        "database": fs_config.get("database") or "(default)",
        "timezone": os.getenv("FIRESTORE_TIMEZONE") or fs_config.get("timezone") or "UTC",
    }


def get_timezone(name: str | None) -> tzinfo:
    """Resolve an IANA timezone name such as "Asia/Kolkata". Unset means UTC."""
    if not name or name.upper() == "UTC":
        return timezone.utc
    try:
        return ZoneInfo(name)
    except (ZoneInfoNotFoundError, ValueError) as e:
        raise ValueError(f"Unknown timezone: {name}") from e


def create_default_config() -> dict[str, Any]:
    """Create a default configuration."""
    return {
        "storage": {
            "backend": "json",
            "path": None,
        },
        "firestore": {
            "project_id": None,
            "api_key": None,
            "database": "(default)",
            "timezone": "UTC",
        },
    }

"""Persistent user settings stored as JSON in the XDG config directory."""

from __future__ import annotations

import json
import os
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Mapping

DEFAULT_MODEL = "claude-haiku-4-5-20251001"
DEFAULT_MAX_LOG_LINES = 10_000
CONFIG_DIR_NAME = "enplace"
CONFIG_FILE = "config.json"
DB_FILE = "recipes.db"
LOG_FILE = "enplace.log"


@dataclass
class Config:
    """All persistent user settings.

    ``credits`` is shown in the footer of exported recipes. ``max_log_lines``
    caps the log file; 0 means the default.
    """

    anthropic_api_key: str = ""
    anthropic_model: str = ""
    db_path: str = ""
    credits: str = ""
    max_log_lines: int = 0

    def save(self) -> None:
        """Write the config to disk, creating its directory if needed."""
        path = Path(file_path())
        path.parent.mkdir(mode=0o700, parents=True, exist_ok=True)
        payload: dict[str, Any] = {
            "anthropic_api_key": self.anthropic_api_key,
            "anthropic_model": self.anthropic_model,
            "db_path": self.db_path,
        }
        if self.credits:
            payload["credits"] = self.credits
        if self.max_log_lines:
            payload["max_log_lines"] = self.max_log_lines
        text = json.dumps(payload, indent=2, ensure_ascii=False)
        fd = os.open(path, os.O_WRONLY | os.O_CREAT | os.O_TRUNC, 0o600)
        with os.fdopen(fd, "w", encoding="utf-8") as handle:
            handle.write(text)

    def is_configured(self) -> bool:
        """Return True when an API key is set."""
        return self.anthropic_api_key != ""

    def log_path(self) -> str:
        """Return the application log path, next to the database."""
        return _xdg_data_path(LOG_FILE)


def file_path() -> str:
    """Return the path of the config file."""
    return str(_config_dir() / CONFIG_FILE)


def load() -> Config:
    """Read the config file, or return unsaved defaults if it does not exist."""
    path = Path(file_path())
    try:
        raw = path.read_text(encoding="utf-8")
    except FileNotFoundError:
        return _default_config()

    try:
        data = json.loads(raw)
    except json.JSONDecodeError as exc:
        raise ValueError(f"parsing config: {exc}") from exc

    config = _from_mapping(data)
    if not config.anthropic_model:
        config.anthropic_model = DEFAULT_MODEL
    if not config.db_path:
        config.db_path = _xdg_data_path(DB_FILE)
    if config.max_log_lines == 0:
        config.max_log_lines = DEFAULT_MAX_LOG_LINES
    return config


_STRING_FIELDS = ("anthropic_api_key", "anthropic_model", "db_path", "credits")


def _from_mapping(data: Any) -> Config:
    if not isinstance(data, Mapping):
        raise ValueError("parsing config: expected a JSON object")
    values: dict[str, Any] = {}
    for key in _STRING_FIELDS:
        value = data.get(key)
        if value is None:
            continue
        if not isinstance(value, str):
            raise ValueError(f"parsing config: {key} must be a string")
        values[key] = value
    lines = data.get("max_log_lines")
    if lines is not None:
        if isinstance(lines, bool) or not isinstance(lines, int):
            raise ValueError("parsing config: max_log_lines must be an integer")
        values["max_log_lines"] = lines
    return Config(**values)


def _config_dir() -> Path:
    base = os.environ.get("XDG_CONFIG_HOME", "")
    root = Path(base) if base else Path.home() / ".config"
    return root / CONFIG_DIR_NAME


def _xdg_data_path(name: str) -> str:
    base = os.environ.get("XDG_DATA_HOME", "")
    root = Path(base) if base else Path.home() / ".local" / "share"
    return str(root / CONFIG_DIR_NAME / name)


def _default_config() -> Config:
    return Config(
        anthropic_model=DEFAULT_MODEL,
        db_path=_xdg_data_path(DB_FILE),
        max_log_lines=DEFAULT_MAX_LOG_LINES,
    )
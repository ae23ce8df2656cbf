"""XDG config loading."""

from __future__ import annotations

import logging as py_logging
import sys
from pathlib import Path
from typing import Literal, cast

from pydantic import BaseModel, ConfigDict, Field, field_validator

from branchdeck.logging import LOG_LEVEL_NAMES, normalize_level

if sys.version_info >= (3, 11):
    import tomllib
else:  # pragma: no cover
    import tomli as tomllib

logger = py_logging.getLogger(__name__)

DEFAULT_CONFIG_PATH = Path("~/.config/branchdeck/config.toml").expanduser()
LogLevel = Literal["DEBUG", "INFO", "WARN", "ERROR"]

DEFAULT_LOG_LEVEL: LogLevel = "INFO"
DEFAULT_GRAPH_MAX_COMMITS = 100
GRAPH_MAX_COMMITS_LIMIT = 1000


class AppConfig(BaseModel):
    model_config = ConfigDict(validate_assignment=True)

    repo_path: str = ""
    log_level: LogLevel = DEFAULT_LOG_LEVEL
    graph_max_commits: int = Field(
        default=DEFAULT_GRAPH_MAX_COMMITS, ge=1, le=GRAPH_MAX_COMMITS_LIMIT
    )
    strings: dict[str, str] = Field(default_factory=dict)
    keybindings: dict[str, str] = Field(default_factory=dict)

    @field_validator("log_level", mode="before")
    @classmethod
    def _validate_log_level(cls, value: object) -> object:
        if isinstance(value, str):
            normalized = normalize_level(value)
            if normalized not in LOG_LEVEL_NAMES:
                raise ValueError(f"Invalid log level: {value}")
            return normalized
        return value


def get_config_path(path: str | Path | None = None) -> Path:
    if path is None:
        return DEFAULT_CONFIG_PATH
    return Path(path).expanduser()


def _normalize_string_table(value: object) -> dict[str, str]:
    if not isinstance(value, dict):
        return {}
    normalized: dict[str, str] = {}
    for key, text in value.items():
        if not isinstance(key, str) or not isinstance(text, str):
            continue
        name = key.strip()
        if not name:
            continue
        normalized[name] = text
    return normalized


def _normalize_keybindings(value: object) -> dict[str, str]:
    bindings = _normalize_string_table(value)
    return {action: key.strip() for action, key in bindings.items() if key.strip()}


def _sanitize(raw: dict[str, object]) -> AppConfig:
    cfg = AppConfig()

    repo_path = raw.get("repo_path", cfg.repo_path)
    if isinstance(repo_path, str):
        cfg.repo_path = repo_path

    log_level = raw.get("log_level", cfg.log_level)
    if isinstance(log_level, str):
        normalized = normalize_level(log_level)
        if normalized in LOG_LEVEL_NAMES:
            cfg.log_level = cast(LogLevel, normalized)

    graph_max_commits = raw.get("graph_max_commits", cfg.graph_max_commits)
    if (
        isinstance(graph_max_commits, int)
        and not isinstance(graph_max_commits, bool)
        and 1 <= graph_max_commits <= GRAPH_MAX_COMMITS_LIMIT
    ):
        cfg.graph_max_commits = graph_max_commits

    cfg.strings = _normalize_string_table(raw.get("strings", {}))
    cfg.keybindings = _normalize_keybindings(raw.get("keybindings", {}))
    return cfg


def load_config(path: str | Path | None = None) -> AppConfig:
    resolved = get_config_path(path)
    if not resolved.exists():
        return AppConfig()
    try:
        with resolved.open("rb") as handle:
            raw = tomllib.load(handle)
    except (tomllib.TOMLDecodeError, OSError):
        logger.warning("Ignoring unreadable config path=%s", resolved)
        return AppConfig()
    if not isinstance(raw, dict):
        return AppConfig()
    return _sanitize(raw)

"""Configuration loading utilities for the document search service."""

from __future__ import annotations

from dataclasses import dataclass, field
from pathlib import Path
from typing import Any

import yaml


@dataclass(frozen=True)
class AppConfig:
    """Application configuration loaded from YAML."""

    directories: list[Path] = field(default_factory=list)
    host: str = "127.0.0.1"
    port: int = 8000
    store_file: Path | None = Path("documents.pkl")
    default_limit: int = 10
    max_limit: int = 50
    snippet_length: int = 200


def load_config(config_path: Path) -> AppConfig:
    """Load and validate configuration from a YAML file."""
    if not config_path.exists():
        raise FileNotFoundError(f"Configuration file not found: {config_path}")

    with config_path.open("r", encoding="utf-8") as file:
        raw: dict[str, Any] = yaml.safe_load(file) or {}

    directories_raw = raw.get("directories") or []
    if not isinstance(directories_raw, list):
        raise ValueError("'directories' must be a list in config.yml")

    directories: list[Path] = []
    for value in directories_raw:
        if not isinstance(value, str) or not value.strip():
            raise ValueError("Each directory in 'directories' must be a non-empty string")
        directories.append(_resolve(config_path, value))

    host = raw.get("host", "127.0.0.1")
    port = raw.get("port", 8000)
    store_file_raw = raw.get("store_file", "documents.pkl")

    if not isinstance(host, str) or not host:
        raise ValueError("'host' must be a non-empty string")
    if not isinstance(port, int) or not (1 <= port <= 65535):
        raise ValueError("'port' must be an integer between 1 and 65535")
    # null keeps documents in memory only
    if store_file_raw is not None and (not isinstance(store_file_raw, str) or not store_file_raw):
        raise ValueError("'store_file' must be a non-empty string or null")

    default_limit = _positive_int(raw, "default_limit", 10)
    max_limit = _positive_int(raw, "max_limit", 50)
    snippet_length = _positive_int(raw, "snippet_length", 200)
    if default_limit > max_limit:
        raise ValueError("'default_limit' must not exceed 'max_limit'")

    return AppConfig(
        directories=directories,
        host=host,
        port=port,
        store_file=_resolve(config_path, store_file_raw) if store_file_raw is not None else None,
        default_limit=default_limit,
        max_limit=max_limit,
        snippet_length=snippet_length,
    )


def _resolve(config_path: Path, value: str) -> Path:
    candidate = Path(value)
    if not candidate.is_absolute():
        candidate = (config_path.parent / candidate).resolve()
    return candidate


def _positive_int(raw: dict[str, Any], key: str, default: int) -> int:
    value = raw.get(key, default)
    # bool is an int subclass
    if isinstance(value, bool) or not isinstance(value, int) or value < 1:
        raise ValueError(f"'{key}' must be a positive integer")
    return value

"""Configuration management for the user registry."""
from __future__ import annotations

import os
from dataclasses import dataclass, replace
from pathlib import Path
from typing import Dict, Mapping, Optional

import yaml

from .database import DEFAULT_CONNECT_TIMEOUT, resolve_database_path

BACKENDS = ("sqlite", "memory")
_LOG_LEVELS = {"CRITICAL", "ERROR", "WARNING", "INFO", "DEBUG"}


@dataclass(frozen=True)
class Settings:
    """Runtime settings for the registry and its storage backend."""

    backend: str = "sqlite"
    database_path: Path = resolve_database_path(None)
    connect_timeout: float = DEFAULT_CONNECT_TIMEOUT
    log_level: str = "INFO"

    def with_overrides(
        self,
        *,
        backend: Optional[str] = None,
        database_path: Optional[str] = None,
    ) -> "Settings":
        """Return a copy with command-line overrides applied."""

        updated = self
        if backend:
            updated = replace(updated, backend=_parse_backend(backend))
        if database_path:
            updated = replace(updated, database_path=resolve_database_path(database_path))
        return updated


def _parse_backend(value: object) -> str:
    backend = str(value).strip().lower()
    if backend not in BACKENDS:
        raise ValueError(f"Unknown storage backend '{value}'. Expected one of: {', '.join(BACKENDS)}")
    return backend


def _parse_timeout(value: object) -> float:
    try:
        timeout = float(value)  # type: ignore[arg-type]
    except (TypeError, ValueError) as exc:
        raise ValueError(f"Invalid database timeout: {value!r}") from exc
    if timeout <= 0:
        raise ValueError("Database timeout must be greater than zero")
    return timeout


def _parse_log_level(value: object) -> str:
    level = str(value).strip().upper()
    if level not in _LOG_LEVELS:
        raise ValueError(f"Invalid log level: {value!r}")
    return level


def _present(value: object) -> bool:
    return value is not None and value != ""


def _resolve_relative(raw: str, base_path: Optional[Path]) -> Path:
    candidate = Path(raw).expanduser()
    if candidate.is_absolute() or base_path is None:
        return candidate.resolve(strict=False)
    return (base_path / candidate).resolve(strict=False)


def _apply_mapping(settings: Settings, data: Mapping[str, object], base_path: Optional[Path]) -> Settings:
    updates: Dict[str, object] = {}
    if _present(data.get("backend")):
        updates["backend"] = _parse_backend(data["backend"])
    if _present(data.get("database_path")):
        updates["database_path"] = _resolve_relative(str(data["database_path"]), base_path)
    if _present(data.get("connect_timeout")):
        updates["connect_timeout"] = _parse_timeout(data["connect_timeout"])
    if _present(data.get("log_level")):
        updates["log_level"] = _parse_log_level(data["log_level"])
    return replace(settings, **updates) if updates else settings


def load_config_file(config_path: Path) -> Dict[str, object]:
    """Load raw settings from a YAML file."""

    with config_path.open("r", encoding="utf-8") as handle:
        raw = yaml.safe_load(handle) or {}

    if not isinstance(raw, dict):
        raise ValueError("Configuration file must contain a mapping of settings")
    return raw


def load_settings(
    config_path: Optional[Path] = None,
    environ: Optional[Mapping[str, str]] = None,
) -> Settings:
    """Build settings from defaults, an optional YAML file and the environment."""

    env = os.environ if environ is None else environ
    settings = Settings()

    if config_path is None and env.get("USERCRUD_CONFIG"):
        config_path = Path(env["USERCRUD_CONFIG"]).expanduser()

    if config_path is not None:
        raw = load_config_file(config_path)
        settings = _apply_mapping(settings, raw, config_path.resolve(strict=False).parent)

    env_values = {
        "backend": env.get("USERCRUD_BACKEND"),
        "database_path": env.get("USERCRUD_DB_PATH"),
        "connect_timeout": env.get("USERCRUD_DB_TIMEOUT"),
        "log_level": env.get("USERCRUD_LOG_LEVEL"),
    }
    return _apply_mapping(settings, env_values, None)


__all__ = ["BACKENDS", "Settings", "load_config_file", "load_settings"]

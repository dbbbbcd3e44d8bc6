"""TOML-based server configuration.

Loads ~/.chunkwise/defaults.toml (global) and chunkwise.toml (project),
merges them, and resolves the result into a frozen Settings instance.

Example chunkwise.toml:

    [server]
    host = "0.0.0.0"
    port = 3003
    admin_port = 3004

    [logging]
    level = "DEBUG"
    file = "chunkwise.log"
"""

from __future__ import annotations

import tomllib
from dataclasses import dataclass, field, fields, replace
from pathlib import Path
from typing import Any

from chunkwise.constants import DEFAULT_ADMIN_PORT, DEFAULT_HOST, DEFAULT_PORT
from chunkwise.exceptions import ConfigurationError
from chunkwise.logging import LOG_LEVELS, LogConfig

type RawConfig = dict[str, Any]

GLOBAL_CONFIG_PATH = Path.home() / ".chunkwise" / "defaults.toml"
PROJECT_CONFIG_NAME = "chunkwise.toml"


@dataclass(frozen=True, slots=True)
class ServerConfig:
    host: str = DEFAULT_HOST
    port: int = DEFAULT_PORT
    admin_port: int = DEFAULT_ADMIN_PORT


@dataclass(frozen=True, slots=True)
class Settings:
    server: ServerConfig = field(default_factory=ServerConfig)
    logging: LogConfig = field(default_factory=LogConfig)


def _deep_merge(base: RawConfig, override: RawConfig) -> RawConfig:
    result = dict(base)
    for key, value in override.items():
        if key in result and isinstance(result[key], dict) and isinstance(value, dict):
            result[key] = _deep_merge(result[key], value)
        else:
            result[key] = value
    return result


def _read_toml(path: Path) -> RawConfig:
    if not path.is_file():
        return {}
    try:
        with path.open("rb") as f:
            return tomllib.load(f)
    except tomllib.TOMLDecodeError as e:
        raise ConfigurationError(f"Invalid TOML in {path}: {e}") from e


def load_config(
    *,
    project_dir: Path | None = None,
    global_path: Path | None = None,
) -> RawConfig:
    global_cfg = _read_toml(global_path or GLOBAL_CONFIG_PATH)
    project_path = (project_dir or Path.cwd()) / PROJECT_CONFIG_NAME
    project_cfg = _read_toml(project_path)

    merged = _deep_merge(global_cfg, project_cfg)
    merged.setdefault("server", {})
    merged.setdefault("logging", {})
    return merged


def _build_section[T](cls: type[T], section: str, raw: RawConfig) -> T:
    if not isinstance(raw, dict):
        raise ConfigurationError(f"[{section}] must be a table")

    known = {f.name for f in fields(cls)}  # type: ignore[arg-type]
    unknown = set(raw) - known
    if unknown:
        raise ConfigurationError(
            f"Unknown key(s) in [{section}]: {', '.join(sorted(unknown))}. "
            f"Valid: {', '.join(sorted(known))}"
        )
    return cls(**raw)


def resolve_settings(raw: RawConfig) -> Settings:
    unknown = set(raw) - {"server", "logging"}
    if unknown:
        raise ConfigurationError(f"Unknown table(s): {', '.join(sorted(unknown))}")

    server = _build_section(ServerConfig, "server", raw["server"])
    log_config = _build_section(LogConfig, "logging", raw["logging"])

    for name in ("port", "admin_port"):
        port = getattr(server, name)
        if not isinstance(port, int) or not 0 <= port <= 65535:
            raise ConfigurationError(f"[server] {name} must be a port number, got {port!r}")

    if log_config.level not in LOG_LEVELS:
        raise ConfigurationError(
            f"[logging] level must be one of {', '.join(LOG_LEVELS)}, got {log_config.level!r}"
        )

    return Settings(server=server, logging=log_config)


def load_settings(
    *,
    project_dir: Path | None = None,
    global_path: Path | None = None,
    config_file: Path | None = None,
) -> Settings:
    """Load, merge and validate configuration.

    An explicit config_file is merged on top of the global and project files.
    """
    raw = load_config(project_dir=project_dir, global_path=global_path)
    if config_file is not None:
        if not config_file.is_file():
            raise ConfigurationError(f"Config file not found: {config_file}")
        raw = _deep_merge(raw, _read_toml(config_file))
    return resolve_settings(raw)


def with_overrides(settings: Settings, **overrides: Any) -> Settings:
    """Apply non-None overrides (e.g. CLI flags) to server and logging settings."""
    server_keys = {f.name for f in fields(ServerConfig)}
    server = {k: v for k, v in overrides.items() if k in server_keys and v is not None}
    level = overrides.get("log_level")

    updated = replace(settings, server=replace(settings.server, **server))
    if level is not None:
        updated = replace(updated, logging=replace(updated.logging, level=level))
    return updated

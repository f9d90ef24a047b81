"""
YAML loader for KernelConfig.

Responsibility:
    Read one YAML document, apply environment overrides, and parse the
    result into a frozen ``KernelConfig``.

Failure modes:
* Missing file     -> ``FileNotFoundError`` propagates.
* Malformed YAML   -> ``ConfigError`` (wrapping ``yaml.YAMLError``).
* Bad field values -> ``ConfigError`` naming the field.
"""

from __future__ import annotations

import logging
from collections.abc import Mapping
from pathlib import Path
from typing import Any

import yaml

from allocation_config.schema import DatabaseSettings, KernelConfig, LoggingSettings

ENV_DATABASE_URL = "ALLOCATION_DATABASE_URL"
ENV_LOG_LEVEL = "ALLOCATION_LOG_LEVEL"

_LOG_LEVELS = frozenset({"DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"})


class ConfigError(ValueError):
    """Configuration could not be parsed or failed validation."""


def load_yaml_file(path: Path) -> dict[str, Any]:
    """
    Load a single YAML file.

    Raises:
        FileNotFoundError: if *path* does not exist.
        ConfigError: if the file is not valid YAML or not a mapping.
    """
    with open(path) as f:
        try:
            data = yaml.safe_load(f) or {}
        except yaml.YAMLError as exc:
            raise ConfigError(f"Invalid YAML in {path}: {exc}") from exc
    if not isinstance(data, dict):
        raise ConfigError(f"Top level of {path} must be a mapping")
    return data


def _section(data: Mapping[str, Any], name: str) -> dict[str, Any]:
    section = data.get(name) or {}
    if not isinstance(section, dict):
        raise ConfigError(f"'{name}' must be a mapping")
    return section


def _int(section: str, name: str, value: Any) -> int:
    if isinstance(value, bool) or not isinstance(value, int) or value < 0:
        raise ConfigError(f"{section}.{name} must be a non-negative integer, got {value!r}")
    return value


def parse_database(data: Mapping[str, Any]) -> DatabaseSettings:
    url = data.get("url")
    if not url or not isinstance(url, str):
        raise ConfigError("database.url is required")
    return DatabaseSettings(
        url=url,
        echo=bool(data.get("echo", False)),
        pool_size=_int("database", "pool_size", data.get("pool_size", 5)),
        max_overflow=_int("database", "max_overflow", data.get("max_overflow", 10)),
    )


def parse_logging(data: Mapping[str, Any]) -> LoggingSettings:
    level = str(data.get("level", "INFO")).upper()
    if level not in _LOG_LEVELS:
        raise ConfigError(
            f"logging.level must be one of {', '.join(sorted(_LOG_LEVELS))}, got {level!r}"
        )
    return LoggingSettings(level=level)


def apply_env_overrides(data: dict[str, Any], environ: Mapping[str, str]) -> dict[str, Any]:
    """Return a copy of *data* with environment overrides applied."""
    merged = dict(data)
    if environ.get(ENV_DATABASE_URL):
        merged["database"] = {**_section(data, "database"), "url": environ[ENV_DATABASE_URL]}
    if environ.get(ENV_LOG_LEVEL):
        merged["logging"] = {**_section(data, "logging"), "level": environ[ENV_LOG_LEVEL]}
    return merged


def parse_config(data: Mapping[str, Any], source: str | None = None) -> KernelConfig:
    version = data.get("version", 1)
    return KernelConfig(
        config_id=str(data.get("config_id", "allocation-kernel")),
        version=_int("root", "version", version),
        database=parse_database(_section(data, "database")),
        logging=parse_logging(_section(data, "logging")),
        source=source,
    )


def load_config(path: Path, environ: Mapping[str, str]) -> KernelConfig:
    data = apply_env_overrides(load_yaml_file(path), environ)
    config = parse_config(data, source=str(path))
    logging.getLogger("allocation_kernel.config").info(
        "config_loaded",
        extra={
            "config_id": config.config_id,
            "config_version": config.version,
            "source": config.source,
            "log_level": config.logging.level,
        },
    )
    return config

"""
allocation_config -- single public entrypoint for kernel configuration.

Responsibility:
    Provides the ONLY way to obtain configuration at runtime through
    ``get_active_config()``.  Returns a frozen ``KernelConfig``.

Architecture position:
    Configuration sits above ``allocation_kernel``.  The kernel MUST NEVER
    import from ``allocation_config``; ``bridges.apply_config`` translates a
    KernelConfig into kernel calls (logging, engine).

Failure modes:
    - ``FileNotFoundError`` -- the requested configuration file is missing.
    - ``ConfigError`` -- malformed YAML or invalid values.
"""

from __future__ import annotations

import os
from collections.abc import Mapping
from pathlib import Path

from allocation_config.loader import ConfigError, load_config
from allocation_config.schema import DatabaseSettings, KernelConfig, LoggingSettings

# Default configuration file
DEFAULT_CONFIG_PATH = Path(__file__).parent / "sets" / "default.yaml"


def get_active_config(
    path: Path | str | None = None,
    environ: Mapping[str, str] | None = None,
) -> KernelConfig:
    """
    The ONLY public configuration entrypoint.

    Args:
        path: YAML file to load.  Defaults to allocation_config/sets/default.yaml.
        environ: Environment used for overrides.  Defaults to ``os.environ``.

    Returns:
        KernelConfig with ALLOCATION_DATABASE_URL / ALLOCATION_LOG_LEVEL
        applied on top of the file's values.
    """
    return load_config(
        Path(path) if path is not None else DEFAULT_CONFIG_PATH,
        os.environ if environ is None else environ,
    )


__all__ = [
    "ConfigError",
    "DatabaseSettings",
    "DEFAULT_CONFIG_PATH",
    "KernelConfig",
    "LoggingSettings",
    "get_active_config",
]

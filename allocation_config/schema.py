"""
KernelConfig schema.

The loader parses YAML into these frozen types; bridges hand them to the
kernel.  Nothing here reads files or the environment.
"""

from __future__ import annotations

from dataclasses import dataclass, field

# ---------------------------------------------------------------------------
# Sections
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class DatabaseSettings:
    """Connection settings for the token store."""

    url: str
    echo: bool = False
    pool_size: int = 5
    max_overflow: int = 10


@dataclass(frozen=True)
class LoggingSettings:
    """Level for the ``allocation_kernel`` logger hierarchy."""

    level: str = "INFO"


# ---------------------------------------------------------------------------
# Root
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class KernelConfig:
    """Runtime configuration for one process."""

    config_id: str
    version: int
    database: DatabaseSettings
    logging: LoggingSettings = field(default_factory=LoggingSettings)
    source: str | None = None  # file the config was loaded from

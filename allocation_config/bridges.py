"""
Config -> Kernel Bridges.

These live in allocation_config (the producer) because the kernel must
NEVER import allocation_config.

Usage:
    from allocation_config import get_active_config
    from allocation_config.bridges import apply_config

    engine = apply_config(get_active_config())
"""

from __future__ import annotations

import logging

from sqlalchemy.engine import Engine

from allocation_config.schema import KernelConfig
from allocation_kernel.db.engine import init_engine_from_url
from allocation_kernel.logging_config import configure_logging


def apply_config(config: KernelConfig) -> Engine:
    """Configure kernel logging, then initialize the engine from *config*."""
    configure_logging(level=logging.getLevelName(config.logging.level))
    return init_engine_from_url(
        config.database.url,
        echo=config.database.echo,
        pool_size=config.database.pool_size,
        max_overflow=config.database.max_overflow,
    )

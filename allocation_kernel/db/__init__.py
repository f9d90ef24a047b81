"""Database layer - engine, base classes, and column types."""

from allocation_kernel.db.base import Base, TrackedBase
from allocation_kernel.db.engine import (
    create_tables,
    drop_tables,
    get_engine,
    get_session,
    get_session_factory,
    init_engine_from_url,
    reset_engine,
    session_scope,
)
from allocation_kernel.db.types import (
    EppActionSet,
    StatusTransitionsType,
    StringSet,
    UTCDateTime,
)

__all__ = [
    "init_engine_from_url",
    "get_engine",
    "get_session",
    "get_session_factory",
    "session_scope",
    "create_tables",
    "drop_tables",
    "reset_engine",
    "Base",
    "TrackedBase",
    "UTCDateTime",
    "StringSet",
    "EppActionSet",
    "StatusTransitionsType",
]

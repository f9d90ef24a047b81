"""
Module: allocation_kernel.db.base
Responsibility: Declarative base classes for all SQLAlchemy ORM models.  Provides
    the type annotation map for consistent column types and the TrackedBase
    mixin for creation/update timestamps.
Architecture position: Kernel > DB.  This is the lowest-level import target
    within the kernel.  ALL model files import from here.  This module MUST NOT
    import from models/, services/, selectors/, or domain/ (except db/types).

Invariants enforced:
    - Decimal precision: type_annotation_map maps Python Decimal to
      Numeric(38, 9).  NEVER use float for discount fractions or prices.
    - Timestamps: datetime columns are timezone-aware and always read back
      as UTC (UTCDateTime), regardless of backend.
    - Natural keys: unlike a surrogate-key schema, every table here is keyed
      by the token identifier or domain name the registry already uses.

Failure modes:
    - IntegrityError on INSERT of a duplicate natural key.
"""

from datetime import datetime
from decimal import Decimal
from typing import ClassVar

from sqlalchemy import BigInteger, Numeric
from sqlalchemy.orm import DeclarativeBase, Mapped, mapped_column

from allocation_kernel.db.types import UTCDateTime


class Base(DeclarativeBase):
    """
    Declarative base for all SQLAlchemy models.

    Guarantees:
        - Decimal maps to Numeric(38, 9).
        - datetime maps to UTCDateTime -- always timezone-aware.
        - int maps to BigInteger.
    """

    type_annotation_map: ClassVar[dict] = {
        Decimal: Numeric(38, 9),
        datetime: UTCDateTime(),
        int: BigInteger,
    }


class TrackedBase(Base):
    """
    Abstract base with creation and update timestamps.

    Contract:
        Timestamps are stamped by the writing service from its injected
        Clock rather than by the database server, so tests can pin them.

    Guarantees:
        - creation_time is set on INSERT and never changes.
        - update_time is set on INSERT and on every write that changes a
          mutable field.
    """

    __abstract__ = True

    creation_time: Mapped[datetime] = mapped_column(UTCDateTime(), nullable=False)
    update_time: Mapped[datetime] = mapped_column(UTCDateTime(), nullable=False)

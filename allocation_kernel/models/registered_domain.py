"""
Module: allocation_kernel.models.registered_domain
Responsibility: The slice of a registered domain the token kernel reads:
    its name, the bulk token it was created under, and when (if ever) it
    was deleted.
Architecture position: Kernel > Models.  May import from db/ only.

Invariants enforced:
    - A domain is live while deletion_time is NULL or in the future.
"""

from __future__ import annotations

from datetime import datetime

from sqlalchemy import Index, String
from sqlalchemy.orm import Mapped, mapped_column

from allocation_kernel.db.base import TrackedBase
from allocation_kernel.db.types import UTCDateTime


class RegisteredDomain(TrackedBase):
    """
    A domain registered through the registry.

    Non-goals:
        - The kernel never writes domains; registration flows own this table.
    """

    __tablename__ = "domains"

    __table_args__ = (
        Index("idx_domain_current_bulk_token", "current_bulk_token"),
    )

    domain_name: Mapped[str] = mapped_column(String(255), primary_key=True)

    # Bulk token the domain counts against, if any
    current_bulk_token: Mapped[str | None] = mapped_column(String(64), nullable=True)

    deletion_time: Mapped[datetime | None] = mapped_column(UTCDateTime(), nullable=True)

    def is_live_at(self, instant: datetime) -> bool:
        return self.deletion_time is None or self.deletion_time > instant

    def __repr__(self) -> str:
        return f"<RegisteredDomain {self.domain_name}>"

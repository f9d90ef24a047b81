"""
Module: allocation_kernel.models.bulk_pricing_package
Responsibility: ORM persistence for bulk pricing packages -- a negotiated
    allotment of domains at a fixed price, keyed off one BULK_PRICING token.
Architecture position: Kernel > Models.  May import from db/ and the domain
    value modules only.

Invariants enforced:
    - One package per token (token is both primary key and foreign key).
    - The price is stored as amount + currency and never as a float.

Failure modes:
    - IntegrityError on a second package for the same token, or on a token
      that does not exist.
"""

from __future__ import annotations

from datetime import datetime
from decimal import Decimal

from sqlalchemy import ForeignKey, String
from sqlalchemy.orm import Mapped, mapped_column

from allocation_kernel.db.base import Base
from allocation_kernel.db.types import UTCDateTime
from allocation_kernel.domain.dtos import BulkPricingPackageInfo
from allocation_kernel.domain.values import Money


class BulkPricingPackage(Base):
    """
    Bulk pricing terms for one BULK_PRICING token.

    Non-goals:
        - Does NOT track usage; ``domains_in_use`` is derived at read time
          from the domains whose current bulk token is this token.
    """

    __tablename__ = "bulk_pricing_packages"

    token: Mapped[str] = mapped_column(
        String(64),
        ForeignKey("allocation_tokens.token"),
        primary_key=True,
    )

    max_domains: Mapped[int] = mapped_column(nullable=False)

    max_creates: Mapped[int] = mapped_column(nullable=False)

    bulk_price_amount: Mapped[Decimal] = mapped_column(nullable=False)

    bulk_price_currency: Mapped[str] = mapped_column(String(3), nullable=False)

    next_billing_date: Mapped[datetime] = mapped_column(UTCDateTime(), nullable=False)

    last_notification_sent: Mapped[datetime | None] = mapped_column(
        UTCDateTime(), nullable=True,
    )

    @property
    def bulk_price(self) -> Money:
        return Money(self.bulk_price_amount, self.bulk_price_currency)

    def __repr__(self) -> str:
        return f"<BulkPricingPackage {self.token}: {self.max_domains} domains at {self.bulk_price}>"

    def to_dto(self, domains_in_use: int = 0) -> BulkPricingPackageInfo:
        """Convert ORM model to frozen domain DTO joined with live usage."""
        return BulkPricingPackageInfo(
            token=self.token,
            max_domains=int(self.max_domains),
            max_creates=int(self.max_creates),
            bulk_price=self.bulk_price,
            next_billing_date=self.next_billing_date,
            last_notification_sent=self.last_notification_sent,
            domains_in_use=domains_in_use,
        )

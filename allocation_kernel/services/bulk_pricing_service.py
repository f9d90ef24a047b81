"""
Service layer for bulk pricing packages.

A package attaches capacity and price terms to one BULK_PRICING token.
"""

from __future__ import annotations

from datetime import datetime

from allocation_kernel.domain.dtos import BulkPricingPackageInfo
from allocation_kernel.domain.token_types import TokenType
from allocation_kernel.domain.values import Money
from allocation_kernel.exceptions import (
    TokenConstraintError,
    UnknownTokenError,
    ValueOutOfRangeError,
)
from allocation_kernel.logging_config import get_logger
from allocation_kernel.models.allocation_token import AllocationToken
from allocation_kernel.models.bulk_pricing_package import BulkPricingPackage
from allocation_kernel.services.base import BaseService

logger = get_logger("services.bulk_pricing")


class BulkPricingService(BaseService[BulkPricingPackage]):
    """Creates bulk pricing packages; reads go through BulkPricingPackageSelector."""

    def create_package(
        self,
        token: str,
        max_domains: int,
        max_creates: int,
        bulk_price: Money,
        next_billing_date: datetime,
        last_notification_sent: datetime | None = None,
    ) -> BulkPricingPackageInfo:
        """
        Create the package for an existing BULK_PRICING token.

        Raises:
            UnknownTokenError: token does not exist.
            TokenConstraintError: token is not BULK_PRICING, or already has
                a package.
            ValueOutOfRangeError: negative capacity.
        """
        owner = self.session.get(AllocationToken, token)
        if owner is None:
            raise UnknownTokenError(token)
        if TokenType(owner.token_type) != TokenType.BULK_PRICING:
            raise TokenConstraintError(
                "BulkPricingPackage must be tied to a BULK_PRICING token", token,
            )
        if self.session.get(BulkPricingPackage, token) is not None:
            raise TokenConstraintError(
                f"BulkPricingPackage with token {token} already exists", token,
            )
        for name, value in (("max_domains", max_domains), ("max_creates", max_creates)):
            if value < 0:
                raise ValueOutOfRangeError(name, value, f"{name} must not be negative", token)

        package = BulkPricingPackage(
            token=token,
            max_domains=max_domains,
            max_creates=max_creates,
            bulk_price_amount=bulk_price.amount,
            bulk_price_currency=bulk_price.currency,
            next_billing_date=next_billing_date,
            last_notification_sent=last_notification_sent,
        )
        self.session.add(package)
        self.session.flush()

        logger.info(
            "bulk_pricing_package_created",
            extra={
                "token": token,
                "max_domains": max_domains,
                "max_creates": max_creates,
                "bulk_price": str(bulk_price),
            },
        )
        return package.to_dto()

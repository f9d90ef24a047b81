"""Persistence models for the allocation kernel."""

from allocation_kernel.models.allocation_token import AllocationToken
from allocation_kernel.models.bulk_pricing_package import BulkPricingPackage
from allocation_kernel.models.registered_domain import RegisteredDomain

__all__ = [
    "AllocationToken",
    "BulkPricingPackage",
    "RegisteredDomain",
]

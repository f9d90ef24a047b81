"""Read-only query selectors."""

from allocation_kernel.selectors.base import BaseSelector
from allocation_kernel.selectors.bulk_pricing_selector import BulkPricingPackageSelector
from allocation_kernel.selectors.domain_selector import DomainSelector
from allocation_kernel.selectors.token_selector import TokenSelector

__all__ = [
    "BaseSelector",
    "BulkPricingPackageSelector",
    "DomainSelector",
    "TokenSelector",
]

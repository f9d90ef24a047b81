"""Write-side services and the batch update orchestrator."""

from allocation_kernel.services.allocation_token_service import AllocationTokenService
from allocation_kernel.services.base import BaseService
from allocation_kernel.services.bulk_pricing_service import BulkPricingService
from allocation_kernel.services.token_update_orchestrator import BatchUpdateOrchestrator

__all__ = [
    "AllocationTokenService",
    "BaseService",
    "BatchUpdateOrchestrator",
    "BulkPricingService",
]

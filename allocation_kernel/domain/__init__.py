"""
Pure domain layer.

This module contains pure data transfer objects and domain logic
with NO dependencies on:
- ORM (SQLAlchemy)
- Database
- I/O

All domain objects are immutable and deterministic.
"""

from allocation_kernel.domain.clock import Clock, DeterministicClock, SystemClock
from allocation_kernel.domain.dtos import (
    MUTABLE_TOKEN_FIELDS,
    AllocationTokenInfo,
    BatchUpdateResult,
    BulkPricingPackageInfo,
    TokenSelection,
    TokenUpdateOutcome,
)
from allocation_kernel.domain.field_values import (
    UNSET,
    FieldValue,
    SetTo,
    format_status_transitions,
    is_set,
    parse_status_transitions,
)
from allocation_kernel.domain.timeline import START_OF_TIME, TimedStateMap
from allocation_kernel.domain.token_status import (
    TERMINAL_STATUSES,
    VALID_TRANSITIONS,
    TokenStatusPolicy,
    is_legal_transition,
    require_start_of_time,
)
from allocation_kernel.domain.token_types import (
    EppAction,
    RegistrationBehavior,
    RenewalPriceBehavior,
    TokenStatus,
    TokenType,
)
from allocation_kernel.domain.token_update import (
    BatchUpdateRequest,
    FieldDeltaApplier,
    TokenDelta,
    TokenFieldUpdates,
    validate_token_constraints,
)
from allocation_kernel.domain.values import Money

__all__ = [
    # Time
    "Clock",
    "DeterministicClock",
    "SystemClock",
    "START_OF_TIME",
    "TimedStateMap",
    # Vocabulary
    "EppAction",
    "RegistrationBehavior",
    "RenewalPriceBehavior",
    "TokenStatus",
    "TokenType",
    "Money",
    # Snapshots
    "MUTABLE_TOKEN_FIELDS",
    "AllocationTokenInfo",
    "BulkPricingPackageInfo",
    "TokenSelection",
    "TokenUpdateOutcome",
    "BatchUpdateResult",
    # Updates
    "UNSET",
    "SetTo",
    "FieldValue",
    "is_set",
    "parse_status_transitions",
    "format_status_transitions",
    "TokenFieldUpdates",
    "BatchUpdateRequest",
    "TokenDelta",
    "FieldDeltaApplier",
    "validate_token_constraints",
    # Lifecycle
    "VALID_TRANSITIONS",
    "TERMINAL_STATUSES",
    "TokenStatusPolicy",
    "is_legal_transition",
    "require_start_of_time",
]

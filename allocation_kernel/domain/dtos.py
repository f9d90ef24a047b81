"""
Data Transfer Objects for the allocation kernel.

These are pure, immutable snapshots crossing the layer boundaries: selectors
and services return them instead of ORM entities, and the field delta
applier computes one ``AllocationTokenInfo`` from another.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime
from decimal import Decimal

from allocation_kernel.domain.timeline import TimedStateMap
from allocation_kernel.domain.token_types import (
    EppAction,
    RegistrationBehavior,
    RenewalPriceBehavior,
    TokenStatus,
    TokenType,
)
from allocation_kernel.domain.values import Money


# =============================================================================
# Token snapshots
# =============================================================================


# Fields the update engine may change, in the order it applies them.
MUTABLE_TOKEN_FIELDS: tuple[str, ...] = (
    "allowed_tlds",
    "allowed_registrar_ids",
    "allowed_epp_actions",
    "discount_fraction",
    "discount_premiums",
    "discount_years",
    "renewal_price_behavior",
    "registration_behavior",
    "token_status_transitions",
)


@dataclass(frozen=True)
class AllocationTokenInfo:
    """
    Immutable snapshot of an allocation token.

    ``token`` and ``token_type`` never change after creation; the fields in
    MUTABLE_TOKEN_FIELDS are what a batch update may patch.
    """

    token: str
    token_type: TokenType
    token_status_transitions: TimedStateMap[TokenStatus]
    domain_name: str | None = None
    allowed_tlds: frozenset[str] = frozenset()
    allowed_registrar_ids: frozenset[str] = frozenset()
    allowed_epp_actions: frozenset[EppAction] = frozenset()
    discount_fraction: Decimal = Decimal("0")
    discount_premiums: bool = False
    discount_years: int = 1
    renewal_price_behavior: RenewalPriceBehavior = RenewalPriceBehavior.DEFAULT
    registration_behavior: RegistrationBehavior = RegistrationBehavior.DEFAULT
    creation_time: datetime | None = None
    update_time: datetime | None = None

    @property
    def is_domain_scoped(self) -> bool:
        return bool(self.domain_name)

    def status_at(self, instant: datetime) -> TokenStatus:
        """Status effective at ``instant``."""
        return self.token_status_transitions.value_at(instant)

    def diff(self, other: AllocationTokenInfo) -> tuple[str, ...]:
        """Mutable fields whose values differ between ``self`` and ``other``."""
        return tuple(
            name for name in MUTABLE_TOKEN_FIELDS
            if getattr(self, name) != getattr(other, name)
        )


@dataclass(frozen=True)
class BulkPricingPackageInfo:
    """
    Immutable snapshot of a bulk pricing package, joined with live usage.

    ``domains_in_use`` counts live domains whose current bulk token is this
    package's token.
    """

    token: str
    max_domains: int
    max_creates: int
    bulk_price: Money
    next_billing_date: datetime
    last_notification_sent: datetime | None = None
    domains_in_use: int = 0

    @property
    def remaining_domains(self) -> int:
        return max(self.max_domains - self.domains_in_use, 0)

    @property
    def has_outstanding_capacity(self) -> bool:
        return self.domains_in_use < self.max_domains


# =============================================================================
# Batch update request / result
# =============================================================================


@dataclass(frozen=True)
class TokenSelection:
    """
    Target set of a batch: an explicit identifier list OR an identifier prefix.

    Exactly one must be supplied; ``TokenSelector.resolve`` enforces it.
    An empty identifier list counts as supplied.
    """

    identifiers: tuple[str, ...] | None = None
    prefix: str | None = None

    @classmethod
    def of_identifiers(cls, *identifiers: str) -> TokenSelection:
        return cls(identifiers=tuple(identifiers))

    @classmethod
    def of_prefix(cls, prefix: str) -> TokenSelection:
        return cls(prefix=prefix)


@dataclass(frozen=True)
class TokenUpdateOutcome:
    """Per-token result of a batch update."""

    token: str
    changed: bool
    changed_fields: tuple[str, ...] = ()


@dataclass(frozen=True)
class BatchUpdateResult:
    """
    Result of one batch update.

    ``committed`` is False for dry runs and for batches with nothing to write.
    """

    batch_id: str
    outcomes: tuple[TokenUpdateOutcome, ...] = field(default_factory=tuple)
    committed: bool = False
    dry_run: bool = False

    @property
    def updated(self) -> tuple[TokenUpdateOutcome, ...]:
        return self.outcomes

    @property
    def changed_tokens(self) -> tuple[str, ...]:
        return tuple(o.token for o in self.outcomes if o.changed)

    @property
    def unchanged_tokens(self) -> tuple[str, ...]:
        return tuple(o.token for o in self.outcomes if not o.changed)


"""
Module: allocation_kernel.models.allocation_token
Responsibility: ORM persistence for allocation tokens -- promotional or
    bulk-pricing codes that grant domain creation privileges, optionally
    restricted by TLD, registrar, EPP action and time-varying status.
Architecture position: Kernel > Models.  May import from db/ and the domain
    value modules only.  MUST NOT import from services/ or selectors/.

Invariants enforced:
    - token is the natural primary key and never changes.
    - token_type and domain_name are fixed at creation.
    - token_status_transitions is always a well-formed timeline (enforced by
      StatusTransitionsType on load and by the domain layer on write).

Failure modes:
    - IntegrityError on duplicate token.
"""

from __future__ import annotations

from datetime import datetime
from decimal import Decimal

from sqlalchemy import Boolean, Index, String
from sqlalchemy.orm import Mapped, mapped_column

from allocation_kernel.db.base import TrackedBase
from allocation_kernel.db.types import EppActionSet, StatusTransitionsType, StringSet
from allocation_kernel.domain.dtos import AllocationTokenInfo
from allocation_kernel.domain.timeline import TimedStateMap
from allocation_kernel.domain.token_types import (
    EppAction,
    RegistrationBehavior,
    RenewalPriceBehavior,
    TokenStatus,
    TokenType,
)


class AllocationToken(TrackedBase):
    """
    A stored allocation token.

    Contract:
        Enum-valued columns hold the member name as text; ``to_dto`` converts
        them back into enum members.  Set-valued columns hold frozensets.

    Non-goals:
        - Does NOT validate status timelines or cross-field rules; that is
          the job of the domain layer before anything is written.
    """

    __tablename__ = "allocation_tokens"

    __table_args__ = (
        Index("idx_allocation_token_type", "token_type"),
    )

    token: Mapped[str] = mapped_column(String(64), primary_key=True)

    token_type: Mapped[TokenType] = mapped_column(String(32), nullable=False)

    # Only SINGLE_USE tokens may be tied to a domain
    domain_name: Mapped[str | None] = mapped_column(String(255), nullable=True)

    allowed_tlds: Mapped[frozenset[str]] = mapped_column(
        StringSet(), nullable=False, default=frozenset,
    )

    allowed_registrar_ids: Mapped[frozenset[str]] = mapped_column(
        StringSet(), nullable=False, default=frozenset,
    )

    allowed_epp_actions: Mapped[frozenset[EppAction]] = mapped_column(
        EppActionSet(), nullable=False, default=frozenset,
    )

    discount_fraction: Mapped[Decimal] = mapped_column(nullable=False, default=Decimal("0"))

    discount_premiums: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)

    discount_years: Mapped[int] = mapped_column(nullable=False, default=1)

    renewal_price_behavior: Mapped[RenewalPriceBehavior] = mapped_column(
        String(32), nullable=False, default=RenewalPriceBehavior.DEFAULT.value,
    )

    registration_behavior: Mapped[RegistrationBehavior] = mapped_column(
        String(32), nullable=False, default=RegistrationBehavior.DEFAULT.value,
    )

    token_status_transitions: Mapped[TimedStateMap[TokenStatus]] = mapped_column(
        StatusTransitionsType(), nullable=False,
    )

    def __repr__(self) -> str:
        return f"<AllocationToken {self.token} ({self.token_type})>"

    def to_dto(self) -> AllocationTokenInfo:
        """Convert ORM model to frozen domain DTO."""
        return AllocationTokenInfo(
            token=self.token,
            token_type=TokenType(self.token_type),
            token_status_transitions=self.token_status_transitions,
            domain_name=self.domain_name,
            allowed_tlds=frozenset(self.allowed_tlds or ()),
            allowed_registrar_ids=frozenset(self.allowed_registrar_ids or ()),
            allowed_epp_actions=frozenset(self.allowed_epp_actions or ()),
            discount_fraction=Decimal(self.discount_fraction),
            discount_premiums=bool(self.discount_premiums),
            discount_years=int(self.discount_years),
            renewal_price_behavior=RenewalPriceBehavior(self.renewal_price_behavior),
            registration_behavior=RegistrationBehavior(self.registration_behavior),
            creation_time=self.creation_time,
            update_time=self.update_time,
        )

    @classmethod
    def from_dto(cls, dto: AllocationTokenInfo, now: datetime) -> AllocationToken:
        """Create ORM model from domain DTO, stamping both timestamps with ``now``."""
        return cls(
            token=dto.token,
            token_type=dto.token_type.value,
            domain_name=dto.domain_name,
            allowed_tlds=dto.allowed_tlds,
            allowed_registrar_ids=dto.allowed_registrar_ids,
            allowed_epp_actions=dto.allowed_epp_actions,
            discount_fraction=dto.discount_fraction,
            discount_premiums=dto.discount_premiums,
            discount_years=dto.discount_years,
            renewal_price_behavior=dto.renewal_price_behavior.value,
            registration_behavior=dto.registration_behavior.value,
            token_status_transitions=dto.token_status_transitions,
            creation_time=now,
            update_time=now,
        )

"""
Service layer for allocation token creation and lookup.

Creation runs every value through the same parsers, lifecycle policy and
cross-field rules as a batch update, so a stored token is always one a
batch update could have produced.
"""

from __future__ import annotations

from collections.abc import Iterable
from datetime import datetime
from decimal import Decimal
from typing import Any

from sqlalchemy.orm import Session

from allocation_kernel.domain.clock import Clock
from allocation_kernel.domain.dtos import AllocationTokenInfo
from allocation_kernel.domain.field_values import (
    parse_bool,
    parse_discount_fraction,
    parse_discount_years,
    parse_enum,
    parse_epp_actions,
    parse_status_transitions,
    parse_string_set,
)
from allocation_kernel.domain.timeline import TimedStateMap
from allocation_kernel.domain.token_status import TokenStatusPolicy, require_start_of_time
from allocation_kernel.domain.token_types import (
    EppAction,
    RegistrationBehavior,
    RenewalPriceBehavior,
    TokenStatus,
    TokenType,
)
from allocation_kernel.domain.token_update import validate_token_constraints
from allocation_kernel.exceptions import (
    MalformedParameterError,
    TokenAlreadyExistsError,
    UnknownTokenError,
)
from allocation_kernel.logging_config import get_logger
from allocation_kernel.models.allocation_token import AllocationToken
from allocation_kernel.services.base import BaseService

logger = get_logger("services.allocation_token")


class AllocationTokenService(BaseService[AllocationToken]):
    """
    Service for creating and reading allocation tokens.

    All public methods return AllocationTokenInfo DTOs, not ORM entities.
    """

    def __init__(
        self,
        session: Session,
        clock: Clock | None = None,
        policy: TokenStatusPolicy | None = None,
    ):
        super().__init__(session, clock)
        self._policy = policy or TokenStatusPolicy()

    def _get(self, token: str) -> AllocationToken:
        row = self.session.get(AllocationToken, token)
        if row is None:
            raise UnknownTokenError(token)
        return row

    def get_token(self, token: str) -> AllocationTokenInfo:
        """
        Get a token by identifier.

        Raises:
            UnknownTokenError: If the token doesn't exist.
        """
        return self._get(token).to_dto()

    def status_at(self, token: str, instant: datetime) -> TokenStatus:
        """Status of ``token`` effective at ``instant``."""
        return self._get(token).to_dto().status_at(instant)

    def create_token(
        self,
        token: str,
        token_type: TokenType | str,
        *,
        domain_name: str | None = None,
        allowed_tlds: Iterable[str] | str = (),
        allowed_registrar_ids: Iterable[str] | str = (),
        allowed_epp_actions: Iterable[EppAction | str] | str = (),
        discount_fraction: Decimal | str | int = Decimal("0"),
        discount_premiums: bool | str = False,
        discount_years: int | str = 1,
        renewal_price_behavior: RenewalPriceBehavior | str = RenewalPriceBehavior.DEFAULT,
        registration_behavior: RegistrationBehavior | str = RegistrationBehavior.DEFAULT,
        token_status_transitions: Any = None,
    ) -> AllocationTokenInfo:
        """
        Create a new token.

        Args:
            token: Unique identifier.
            token_type: SINGLE_USE, UNLIMITED_USE or BULK_PRICING.
            domain_name: Domain a SINGLE_USE token is tied to.
            token_status_transitions: Initial timeline in any form
                ``parse_status_transitions`` accepts; defaults to
                NOT_STARTED from START_OF_TIME.

        Returns:
            Created AllocationTokenInfo DTO.

        Raises:
            TokenAlreadyExistsError: identifier already stored.
            FieldValidationError / LifecycleError / TimelineError: any value
                a batch update would also reject.
        """
        if not token or not token.strip():
            raise MalformedParameterError("token", token, "token identifier must not be blank")
        if self.session.get(AllocationToken, token) is not None:
            raise TokenAlreadyExistsError(token)

        parsed_type = parse_enum("token_type", TokenType, token_type)
        if token_status_transitions is None:
            timeline = TimedStateMap.constant(TokenStatus.NOT_STARTED)
        else:
            timeline = parse_status_transitions(token_status_transitions)
            self._policy.validate(parsed_type, 0, timeline, token_identifier=token)
            require_start_of_time(timeline)

        info = AllocationTokenInfo(
            token=token,
            token_type=parsed_type,
            token_status_transitions=timeline,
            domain_name=domain_name or None,
            allowed_tlds=parse_string_set(allowed_tlds),
            allowed_registrar_ids=parse_string_set(allowed_registrar_ids),
            allowed_epp_actions=parse_epp_actions(allowed_epp_actions),
            discount_fraction=parse_discount_fraction(discount_fraction),
            discount_premiums=parse_bool("discount_premiums", discount_premiums),
            discount_years=parse_discount_years(discount_years),
            renewal_price_behavior=parse_enum(
                "renewal_price_behavior", RenewalPriceBehavior, renewal_price_behavior,
            ),
            registration_behavior=parse_enum(
                "registration_behavior", RegistrationBehavior, registration_behavior,
            ),
        )
        validate_token_constraints(info)

        row = AllocationToken.from_dto(info, self.clock.now())
        self.session.add(row)
        self.session.flush()

        logger.info(
            "token_created",
            extra={
                "token": token,
                "token_type": parsed_type.value,
                "initial_status": timeline.initial_value,
            },
        )
        return row.to_dto()

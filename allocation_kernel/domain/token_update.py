"""
FieldDeltaApplier -- computes a token's new state from optional field updates.

Responsibility:
    Given a token snapshot and a ``TokenFieldUpdates`` (every field UNSET or
    ``SetTo(value)``), parse and normalize each supplied value, apply the
    registration-behavior and status-timeline rules, run the cross-field
    token constraints on the result, and report which fields changed.

Architecture position:
    Kernel > Domain -- pure, zero I/O.  The only outside input is the count
    of live domains bound to the token, passed as a callable so the store is
    queried only when a bulk token's timeline is being ended.

Invariants enforced:
    - No field supplied -> the input snapshot is returned as-is.
    - Fields are applied in MUTABLE_TOKEN_FIELDS order; the first failure wins.
    - ANCHOR_TENANT requires a domain-scoped token.
    - Status timelines pass TokenStatusPolicy.validate and start at
      START_OF_TIME.
    - validate_token_constraints() holds for every resulting snapshot.

Failure modes:
    - Any FieldValidationError, TimelineError or LifecycleError; the
      exception's ``token_identifier`` names the token being updated.
"""

from __future__ import annotations

from collections.abc import Mapping
from dataclasses import dataclass, field, fields, replace
from decimal import Decimal
from typing import Any

from allocation_kernel.domain.dtos import (
    MUTABLE_TOKEN_FIELDS,
    AllocationTokenInfo,
    TokenSelection,
)
from allocation_kernel.domain.field_values import (
    UNSET,
    FieldValue,
    SetTo,
    is_set,
    parse_bool,
    parse_discount_fraction,
    parse_discount_years,
    parse_enum,
    parse_epp_actions,
    parse_status_transitions,
    parse_string_set,
)
from allocation_kernel.domain.token_status import (
    DomainCount,
    TokenStatusPolicy,
    require_start_of_time,
)
from allocation_kernel.domain.token_types import (
    RegistrationBehavior,
    RenewalPriceBehavior,
    TokenType,
)
from allocation_kernel.exceptions import (
    AllocationKernelError,
    AnchorTenantRequiresDomainError,
    MalformedParameterError,
    TokenConstraintError,
)

# Option names as batch tooling spells them -> TokenFieldUpdates attribute.
OPTION_ALIASES: dict[str, str] = {
    "allowed_tlds": "allowed_tlds",
    "allowed_client_ids": "allowed_registrar_ids",
    "allowed_registrar_ids": "allowed_registrar_ids",
    "allowed_epp_actions": "allowed_epp_actions",
    "discount_fraction": "discount_fraction",
    "discount_premiums": "discount_premiums",
    "discount_years": "discount_years",
    "renewal_price_behavior": "renewal_price_behavior",
    "registration_behavior": "registration_behavior",
    "token_status_transitions": "token_status_transitions",
}


@dataclass(frozen=True)
class TokenFieldUpdates:
    """
    Optional new values for one batch update.

    Each attribute is UNSET (leave the stored value alone) or
    ``SetTo(value)``, where ``value`` is option text or an already-typed
    value.  ``SetTo("")`` on a set-valued field clears the set.
    """

    allowed_tlds: FieldValue[Any] = UNSET
    allowed_registrar_ids: FieldValue[Any] = UNSET
    allowed_epp_actions: FieldValue[Any] = UNSET
    discount_fraction: FieldValue[Any] = UNSET
    discount_premiums: FieldValue[Any] = UNSET
    discount_years: FieldValue[Any] = UNSET
    renewal_price_behavior: FieldValue[Any] = UNSET
    registration_behavior: FieldValue[Any] = UNSET
    token_status_transitions: FieldValue[Any] = UNSET

    @classmethod
    def from_options(cls, options: Mapping[str, Any]) -> TokenFieldUpdates:
        """
        Build from an option-name -> value mapping.

        Keys absent from ``options`` stay UNSET; a present key is always
        SetTo, even when its value is the empty string.

        Raises:
            MalformedParameterError: unrecognized option name.
        """
        values: dict[str, FieldValue[Any]] = {}
        for name, value in options.items():
            attribute = OPTION_ALIASES.get(name)
            if attribute is None:
                raise MalformedParameterError(name, value, "unrecognized option")
            values[attribute] = value if isinstance(value, SetTo) else SetTo(value)
        return cls(**values)

    @property
    def is_empty(self) -> bool:
        return not any(is_set(getattr(self, f.name)) for f in fields(self))

    def supplied_fields(self) -> tuple[str, ...]:
        return tuple(f.name for f in fields(self) if is_set(getattr(self, f.name)))


@dataclass(frozen=True)
class BatchUpdateRequest:
    """One batch update: which tokens, which field values, commit or not."""

    selection: TokenSelection
    updates: TokenFieldUpdates = field(default_factory=TokenFieldUpdates)
    dry_run: bool = False


@dataclass(frozen=True)
class TokenDelta:
    """Before/after snapshots of one token and the fields that differ."""

    before: AllocationTokenInfo
    after: AllocationTokenInfo
    changed_fields: tuple[str, ...] = ()

    @property
    def changed(self) -> bool:
        return bool(self.changed_fields)


# =============================================================================
# Cross-field constraints
# =============================================================================


def validate_token_constraints(token: AllocationTokenInfo) -> None:
    """
    Rules that relate several fields of one token.

    Checked on creation and after every non-empty delta.
    """
    if token.registration_behavior == RegistrationBehavior.ANCHOR_TENANT and not token.is_domain_scoped:
        raise AnchorTenantRequiresDomainError(token.token)

    if token.domain_name and token.token_type != TokenType.SINGLE_USE:
        raise TokenConstraintError(
            "Domain name can only be specified for SINGLE_USE tokens", token.token,
        )

    no_discount = token.discount_fraction <= Decimal("0")
    if token.discount_premiums and no_discount:
        raise TokenConstraintError(
            "Discount premiums can only be specified along with a discount fraction",
            token.token,
        )
    if token.discount_years > 1 and no_discount:
        raise TokenConstraintError(
            "Discount years can only be specified along with a discount fraction",
            token.token,
        )

    if token.token_type == TokenType.BULK_PRICING:
        if token.renewal_price_behavior != RenewalPriceBehavior.SPECIFIED:
            raise TokenConstraintError(
                "Bulk tokens must have renewalPriceBehavior set to SPECIFIED", token.token,
            )
        if len(token.allowed_registrar_ids) != 1:
            raise TokenConstraintError(
                "Bulk tokens must have exactly one allowed client registrar", token.token,
            )
        if token.discount_premiums:
            raise TokenConstraintError(
                "Bulk tokens cannot discount premium names", token.token,
            )


# =============================================================================
# Applier
# =============================================================================


class FieldDeltaApplier:
    """
    Computes the new state of one token from a set of optional updates.

    Contract:
        ``apply()`` is pure: it returns a TokenDelta and never touches the
        store.  ``delta.after is delta.before`` when no field was supplied.
    """

    def __init__(self, policy: TokenStatusPolicy | None = None):
        self._policy = policy or TokenStatusPolicy()

    def apply(
        self,
        current: AllocationTokenInfo,
        updates: TokenFieldUpdates,
        domains_still_bound: DomainCount = 0,
    ) -> TokenDelta:
        if updates.is_empty:
            return TokenDelta(before=current, after=current)

        try:
            changes: dict[str, Any] = {}
            for name in MUTABLE_TOKEN_FIELDS:
                supplied = getattr(updates, name)
                if is_set(supplied):
                    changes[name] = self._parse_field(
                        name, supplied.value, current, domains_still_bound,
                    )

            after = replace(current, **changes)
            validate_token_constraints(after)
        except AllocationKernelError as exc:
            if getattr(exc, "token_identifier", None) in (None, ""):
                exc.token_identifier = current.token
            raise

        return TokenDelta(before=current, after=after, changed_fields=current.diff(after))

    def _parse_field(
        self,
        name: str,
        value: Any,
        current: AllocationTokenInfo,
        domains_still_bound: DomainCount,
    ) -> Any:
        if name in ("allowed_tlds", "allowed_registrar_ids"):
            return parse_string_set(value)
        if name == "allowed_epp_actions":
            return parse_epp_actions(value)
        if name == "discount_fraction":
            return parse_discount_fraction(value)
        if name == "discount_premiums":
            return parse_bool(name, value)
        if name == "discount_years":
            return parse_discount_years(value)
        if name == "renewal_price_behavior":
            return parse_enum(name, RenewalPriceBehavior, value)
        if name == "registration_behavior":
            behavior = parse_enum(name, RegistrationBehavior, value)
            if behavior == RegistrationBehavior.ANCHOR_TENANT and not current.is_domain_scoped:
                raise AnchorTenantRequiresDomainError(current.token)
            return behavior
        if name == "token_status_transitions":
            timeline = parse_status_transitions(value)
            self._policy.validate(
                current.token_type, domains_still_bound, timeline, token_identifier=current.token,
            )
            return require_start_of_time(timeline)
        raise MalformedParameterError(name, value, "unrecognized option")

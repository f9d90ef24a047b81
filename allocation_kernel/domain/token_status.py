"""
TokenStatusPolicy -- legality rules for a token's status timeline.

Responsibility:
    Decides whether a proposed whole-map replacement of a token's
    ``token_status_transitions`` is a legal lifecycle, given the token's type
    and how many live domains still reference it as their bulk token.

Architecture position:
    Kernel > Domain -- pure, zero I/O.  The bound-domain count is supplied by
    the caller (a number, or a callable so the store is only queried when the
    bulk guard actually applies).

Invariants enforced:
    - Every consecutive pair is an edge of VALID_TRANSITIONS.
    - A BULK_PRICING token cannot leave VALID for ENDED while any live
      domain is still bound to it.
    - ``require_start_of_time()`` -- token timelines begin at START_OF_TIME.

Failure modes:
    - IllegalTransitionError: first consecutive pair outside the table.
    - PromotionStillActiveError: bulk guard tripped.
    - MalformedTimelineError: timeline does not begin at START_OF_TIME.
"""

from __future__ import annotations

from collections.abc import Callable
from typing import Union

from allocation_kernel.domain.timeline import START_OF_TIME, TimedStateMap
from allocation_kernel.domain.token_types import TokenStatus, TokenType
from allocation_kernel.exceptions import (
    IllegalTransitionError,
    MalformedTimelineError,
    PromotionStillActiveError,
)

# Allowed state transitions (from -> set of valid targets)
VALID_TRANSITIONS: dict[TokenStatus, frozenset[TokenStatus]] = {
    TokenStatus.NOT_STARTED: frozenset({TokenStatus.VALID}),
    TokenStatus.VALID: frozenset({TokenStatus.CANCELLED, TokenStatus.ENDED}),
    # Terminal states
    TokenStatus.CANCELLED: frozenset(),
    TokenStatus.ENDED: frozenset(),
}

TERMINAL_STATUSES: frozenset[TokenStatus] = frozenset(
    status for status, targets in VALID_TRANSITIONS.items() if not targets
)

DomainCount = Union[int, Callable[[], int]]


def is_legal_transition(from_status: TokenStatus, to_status: TokenStatus) -> bool:
    return to_status in VALID_TRANSITIONS.get(from_status, frozenset())


def require_start_of_time(timeline: TimedStateMap[TokenStatus]) -> TimedStateMap[TokenStatus]:
    """Reject token timelines whose first entry is not START_OF_TIME."""
    if timeline.first_instant != START_OF_TIME:
        raise MalformedTimelineError(
            "tokenStatusTransitions map must start at START_OF_TIME."
        )
    return timeline


class TokenStatusPolicy:
    """
    Gatekeeper for token status timelines.

    Contract:
        ``validate()`` never mutates; it returns the proposed map unchanged
        or raises.

    Non-goals:
        - Not a general FSM engine; the table is fixed to the token lifecycle.
        - Does NOT decide when a validation is needed -- callers only invoke
          it when a new map is supplied (update) or a token is created.
    """

    transitions = VALID_TRANSITIONS

    def validate(
        self,
        token_type: TokenType,
        domains_still_bound: DomainCount,
        proposed_map: TimedStateMap[TokenStatus],
        token_identifier: str | None = None,
    ) -> TimedStateMap[TokenStatus]:
        """
        Validate a proposed status timeline for one token.

        Args:
            token_type: The token's (immutable) type.
            domains_still_bound: Live domains whose current bulk token is
                this token, or a zero-arg callable producing that count.
            proposed_map: The full replacement timeline.  Structural
                validity is guaranteed by ``TimedStateMap.build``.
            token_identifier: Used in error messages and error attributes.

        Returns:
            ``proposed_map`` unchanged.
        """
        pairs = list(proposed_map.as_ordered_pairs())
        for (_, from_status), (_, to_status) in zip(pairs, pairs[1:]):
            if not is_legal_transition(from_status, to_status):
                raise IllegalTransitionError(
                    from_status.name, to_status.name, token_identifier=token_identifier,
                )

        if (
            token_type == TokenType.BULK_PRICING
            and len(pairs) >= 2
            and pairs[-1][1] == TokenStatus.ENDED
            and pairs[-2][1] == TokenStatus.VALID
        ):
            count = domains_still_bound() if callable(domains_still_bound) else domains_still_bound
            if count > 0:
                raise PromotionStillActiveError(token_identifier or "", count)

        return proposed_map

"""
Module: allocation_kernel.selectors.token_selector
Responsibility: Resolves the target set of a batch update -- an explicit list
    of token identifiers, or every token whose identifier starts with a
    prefix -- against the token store.
Architecture position: Kernel > Selectors.  Read-only; returns
    AllocationTokenInfo DTOs.

Invariants enforced:
    - Exactly one of identifiers / prefix is supplied.
    - Identifier selection preserves caller order and collapses duplicates.
    - Prefix matching is case-sensitive; results are in identifier order.

Failure modes:
    - AmbiguousSelectorError: both or neither selector supplied.
    - InvalidSelectorError: blank prefix.
    - UnknownTokenError: first requested identifier that is not stored.
"""

from collections.abc import Iterable

from sqlalchemy import func, select
from sqlalchemy.orm import Session

from allocation_kernel.domain.dtos import AllocationTokenInfo, TokenSelection
from allocation_kernel.exceptions import (
    AmbiguousSelectorError,
    InvalidSelectorError,
    UnknownTokenError,
)
from allocation_kernel.logging_config import get_logger
from allocation_kernel.models.allocation_token import AllocationToken
from allocation_kernel.selectors.base import BaseSelector

logger = get_logger("selectors.token")


class TokenSelector(BaseSelector[AllocationToken]):
    """
    Selector for allocation tokens.

    Contract:
        All public methods return AllocationTokenInfo instances.  Loaded rows
        stay in the caller's session, so a writer in the same transaction
        can fetch them again without another query.
    """

    def __init__(self, session: Session):
        super().__init__(session)

    def resolve(self, selection: TokenSelection) -> list[AllocationTokenInfo]:
        """
        Resolve a batch selection.

        Preconditions: exactly one of ``selection.identifiers`` and
            ``selection.prefix`` is not None (an empty list counts).
        """
        if (selection.identifiers is None) == (selection.prefix is None):
            raise AmbiguousSelectorError()

        if selection.identifiers is not None:
            tokens = self.select_by_identifiers(selection.identifiers)
            mode = "identifiers"
        else:
            tokens = self.select_by_prefix(selection.prefix)
            mode = "prefix"

        logger.info(
            "tokens_selected",
            extra={"mode": mode, "prefix": selection.prefix, "count": len(tokens)},
        )
        return tokens

    def select_by_identifiers(self, identifiers: Iterable[str]) -> list[AllocationTokenInfo]:
        """Tokens in caller order; the first missing identifier fails."""
        ordered = list(dict.fromkeys(identifiers))
        if not ordered:
            return []

        rows = self.session.execute(
            select(AllocationToken).where(AllocationToken.token.in_(ordered))
        ).scalars().all()
        by_token = {row.token: row for row in rows}

        result = []
        for identifier in ordered:
            row = by_token.get(identifier)
            if row is None:
                raise UnknownTokenError(identifier)
            result.append(row.to_dto())
        return result

    def select_by_prefix(self, prefix: str) -> list[AllocationTokenInfo]:
        """Every token whose identifier starts with ``prefix``, in identifier order."""
        if prefix is None or not prefix.strip():
            raise InvalidSelectorError(prefix)

        # substr() rather than LIKE: LIKE ignores case on SQLite and needs escaping.
        rows = self.session.execute(
            select(AllocationToken).where(
                func.substr(AllocationToken.token, 1, len(prefix)) == prefix
            ).order_by(AllocationToken.token)
        ).scalars().all()
        return [row.to_dto() for row in rows]

    def get_token(self, identifier: str) -> AllocationTokenInfo:
        """Single token lookup."""
        row = self.session.get(AllocationToken, identifier)
        if row is None:
            raise UnknownTokenError(identifier)
        return row.to_dto()

    def find_token(self, identifier: str) -> AllocationTokenInfo | None:
        row = self.session.get(AllocationToken, identifier)
        return row.to_dto() if row is not None else None

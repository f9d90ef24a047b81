"""
DomainSelector -- counts live domains bound to a bulk token.

A domain is live while it has no deletion time or its deletion time is
still in the future relative to the injected clock.
"""

from sqlalchemy import func, or_, select
from sqlalchemy.orm import Session

from allocation_kernel.domain.clock import Clock, SystemClock
from allocation_kernel.models.registered_domain import RegisteredDomain
from allocation_kernel.selectors.base import BaseSelector


class DomainSelector(BaseSelector[RegisteredDomain]):
    """Read-only queries over registered domains."""

    def __init__(self, session: Session, clock: Clock | None = None):
        super().__init__(session)
        self._clock = clock or SystemClock()

    def count_bound_domains(self, token: str) -> int:
        """Live domains whose current bulk token is ``token``."""
        now = self._clock.now()
        return self.session.execute(
            select(func.count())
            .select_from(RegisteredDomain)
            .where(
                RegisteredDomain.current_bulk_token == token,
                or_(
                    RegisteredDomain.deletion_time.is_(None),
                    RegisteredDomain.deletion_time > now,
                ),
            )
        ).scalar_one()

    def count_bound_domains_by_token(self, tokens: list[str]) -> dict[str, int]:
        """Live bound-domain counts for several tokens; absent tokens map to 0."""
        if not tokens:
            return {}
        now = self._clock.now()
        rows = self.session.execute(
            select(RegisteredDomain.current_bulk_token, func.count())
            .where(
                RegisteredDomain.current_bulk_token.in_(tokens),
                or_(
                    RegisteredDomain.deletion_time.is_(None),
                    RegisteredDomain.deletion_time > now,
                ),
            )
            .group_by(RegisteredDomain.current_bulk_token)
        ).all()
        counts = {token: 0 for token in tokens}
        counts.update({token: count for token, count in rows})
        return counts

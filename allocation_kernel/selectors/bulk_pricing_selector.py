"""
BulkPricingPackageSelector -- bulk pricing package lookup for reports.

Packages are returned in request order, each joined with the number of
live domains currently counted against its token.  Any identifier without
a package fails the whole lookup.
"""

from collections.abc import Iterable

from sqlalchemy import select
from sqlalchemy.orm import Session

from allocation_kernel.domain.clock import Clock
from allocation_kernel.domain.dtos import BulkPricingPackageInfo
from allocation_kernel.exceptions import (
    MalformedParameterError,
    UnknownBulkPricingPackageError,
)
from allocation_kernel.models.bulk_pricing_package import BulkPricingPackage
from allocation_kernel.selectors.base import BaseSelector
from allocation_kernel.selectors.domain_selector import DomainSelector


class BulkPricingPackageSelector(BaseSelector[BulkPricingPackage]):

    def __init__(self, session: Session, clock: Clock | None = None):
        super().__init__(session)
        self._domains = DomainSelector(session, clock)

    def get_packages(self, identifiers: Iterable[str]) -> list[BulkPricingPackageInfo]:
        """
        Look up the packages keyed off ``identifiers``.

        Raises:
            MalformedParameterError: no identifiers given.
            UnknownBulkPricingPackageError: first identifier with no package.
        """
        ordered = list(dict.fromkeys(identifiers))
        if not ordered:
            raise MalformedParameterError(
                "tokens", ordered, "at least one token identifier is required",
            )

        rows = self.session.execute(
            select(BulkPricingPackage).where(BulkPricingPackage.token.in_(ordered))
        ).scalars().all()
        by_token = {row.token: row for row in rows}

        missing = [identifier for identifier in ordered if identifier not in by_token]
        if missing:
            raise UnknownBulkPricingPackageError(missing[0])

        counts = self._domains.count_bound_domains_by_token(ordered)
        return [by_token[identifier].to_dto(counts[identifier]) for identifier in ordered]

    def get_package(self, identifier: str) -> BulkPricingPackageInfo:
        return self.get_packages([identifier])[0]

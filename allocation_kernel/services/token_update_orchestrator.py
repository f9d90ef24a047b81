"""
BatchUpdateOrchestrator -- atomic batch update of allocation tokens.

The Orchestrator ties together:
- TokenSelector: resolves the target tokens (identifier list or prefix)
- FieldDeltaApplier: computes and validates each token's new state
- TokenStatusPolicy: judges replacement status timelines (via the applier)
- DomainSelector: supplies the live bound-domain count, only when needed

Manages its own transaction boundary: one ``session_scope`` spans every
lookup, count and write of a batch.  Either every changed token is written
and committed, or nothing is.
"""

from __future__ import annotations

from enum import Enum
from typing import Any
from uuid import uuid4

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session, sessionmaker

from allocation_kernel.db.engine import session_scope
from allocation_kernel.domain.clock import Clock, SystemClock
from allocation_kernel.domain.dtos import BatchUpdateResult, TokenUpdateOutcome
from allocation_kernel.domain.token_status import TokenStatusPolicy
from allocation_kernel.domain.token_update import (
    BatchUpdateRequest,
    FieldDeltaApplier,
    TokenDelta,
)
from allocation_kernel.exceptions import AllocationKernelError, TokenStoreError
from allocation_kernel.logging_config import LogContext, get_logger
from allocation_kernel.models.allocation_token import AllocationToken
from allocation_kernel.selectors.domain_selector import DomainSelector
from allocation_kernel.selectors.token_selector import TokenSelector

logger = get_logger("services.token_update_orchestrator")


def _column_value(value: Any) -> Any:
    # Enum columns hold the member name as text.
    return value.value if isinstance(value, Enum) else value


class BatchUpdateOrchestrator:
    """
    Orchestrates one batch update request.

    Flow:
    1. Resolve targets (selector errors abort before any read of token state)
    2. Compute every token's delta in selector order; the first failure
       aborts the batch with that token named on the exception
    3. Write changed fields plus update_time for changed tokens only
    4. Commit once (or roll back for a dry run)

    Args:
        session_factory: Factory for the batch session; defaults to the
            engine module's factory.
        clock: Clock for "now" (live-domain cutoff, update_time).
        policy: Status timeline policy handed to the applier.
    """

    def __init__(
        self,
        session_factory: sessionmaker[Session] | None = None,
        clock: Clock | None = None,
        policy: TokenStatusPolicy | None = None,
    ):
        self._session_factory = session_factory
        self._clock = clock or SystemClock()
        self._applier = FieldDeltaApplier(policy)

    def run(self, request: BatchUpdateRequest) -> BatchUpdateResult:
        """
        Run a batch update in its own transaction.

        Raises:
            SelectorError / FieldValidationError / TimelineError /
            LifecycleError: propagated unchanged; nothing is written.
            TokenStoreError: the store failed or aborted the transaction.
        """
        batch_id = str(uuid4())
        with LogContext.bind(batch_id=batch_id):
            logger.info(
                "token_batch_started",
                extra={
                    "prefix": request.selection.prefix,
                    "identifier_count": (
                        len(request.selection.identifiers)
                        if request.selection.identifiers is not None else None
                    ),
                    "fields": list(request.updates.supplied_fields()),
                    "dry_run": request.dry_run,
                },
            )
            try:
                with session_scope(self._session_factory) as session:
                    deltas = self.run_in_session(session, request)
                    if request.dry_run:
                        session.rollback()
            except SQLAlchemyError as exc:
                raise TokenStoreError("batch update", str(exc)) from exc

            outcomes = tuple(
                TokenUpdateOutcome(
                    token=delta.before.token,
                    changed=delta.changed,
                    changed_fields=delta.changed_fields,
                )
                for delta in deltas
            )
            changed = sum(1 for outcome in outcomes if outcome.changed)
            committed = not request.dry_run and changed > 0

            if request.dry_run:
                logger.info(
                    "token_batch_dry_run",
                    extra={"token_count": len(outcomes), "changed_count": changed},
                )
            else:
                logger.info(
                    "token_batch_committed",
                    extra={"token_count": len(outcomes), "changed_count": changed},
                )

            return BatchUpdateResult(
                batch_id=batch_id,
                outcomes=outcomes,
                committed=committed,
                dry_run=request.dry_run,
            )

    def run_in_session(self, session: Session, request: BatchUpdateRequest) -> list[TokenDelta]:
        """
        Compute and (unless dry-run) flush a batch inside the caller's session.

        The caller owns commit/rollback.
        """
        targets = TokenSelector(session).resolve(request.selection)
        domains = DomainSelector(session, self._clock)

        deltas: list[TokenDelta] = []
        for current in targets:
            with LogContext.bind(token_identifier=current.token):
                try:
                    delta = self._applier.apply(
                        current,
                        request.updates,
                        lambda token=current.token: domains.count_bound_domains(token),
                    )
                except AllocationKernelError as exc:
                    logger.warning(
                        "token_update_rejected",
                        extra={"error_code": exc.code, "reason": str(exc)},
                    )
                    raise
            deltas.append(delta)

        if not request.dry_run:
            self._write(session, deltas)
        return deltas

    def _write(self, session: Session, deltas: list[TokenDelta]) -> None:
        now = self._clock.now()
        for delta in deltas:
            if not delta.changed:
                continue
            row = session.get(AllocationToken, delta.after.token)
            for name in delta.changed_fields:
                setattr(row, name, _column_value(getattr(delta.after, name)))
            row.update_time = now
        session.flush()

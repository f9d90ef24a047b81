"""
Pytest fixtures for the allocation kernel test suite.

Provides:
- A file-backed SQLite database per test (tables created fresh)
- A deterministic clock shared by services and selectors
- Token / domain / package factories that commit through session_scope
- Captured structured logs
"""

import json
import logging
from collections.abc import Generator
from datetime import UTC, datetime, timedelta
from io import StringIO

import pytest
from sqlalchemy.orm import Session, sessionmaker

from allocation_kernel.db.engine import (
    create_tables,
    get_session_factory,
    init_engine_from_url,
    reset_engine,
    session_scope,
)
from allocation_kernel.domain.clock import DeterministicClock
from allocation_kernel.domain.dtos import AllocationTokenInfo, BulkPricingPackageInfo
from allocation_kernel.domain.timeline import START_OF_TIME
from allocation_kernel.domain.token_types import (
    RenewalPriceBehavior,
    TokenStatus,
    TokenType,
)
from allocation_kernel.domain.values import Money
from allocation_kernel.logging_config import (
    LogContext,
    StructuredFormatter,
    configure_logging,
    reset_logging,
)
from allocation_kernel.models.allocation_token import AllocationToken
from allocation_kernel.models.registered_domain import RegisteredDomain
from allocation_kernel.services.allocation_token_service import AllocationTokenService
from allocation_kernel.services.bulk_pricing_service import BulkPricingService
from allocation_kernel.services.token_update_orchestrator import BatchUpdateOrchestrator

# =============================================================================
# Logging fixtures
# =============================================================================


@pytest.fixture(autouse=True, scope="session")
def _configure_test_logging():
    """Configure structured logging for the test suite."""
    reset_logging()
    configure_logging(level=logging.DEBUG)
    yield
    reset_logging()


@pytest.fixture(autouse=True)
def _clear_log_context():
    """Clear LogContext between tests to prevent cross-test contamination."""
    LogContext.clear()
    yield
    LogContext.clear()


@pytest.fixture
def captured_logs():
    """
    Capture allocation_kernel logs as parsed JSON dicts.

    Usage::

        def test_something(captured_logs, orchestrator):
            orchestrator.run(request)
            logs = captured_logs()
            assert any(r["message"] == "token_batch_committed" for r in logs)
    """
    stream = StringIO()
    handler = logging.StreamHandler(stream)
    handler.setFormatter(StructuredFormatter())
    root = logging.getLogger("allocation_kernel")
    root.addHandler(handler)

    def _get_records() -> list[dict]:
        lines = stream.getvalue().strip().split("\n")
        return [json.loads(line) for line in lines if line]

    yield _get_records

    root.removeHandler(handler)


# =============================================================================
# Database
# =============================================================================


@pytest.fixture
def engine(tmp_path):
    """Fresh SQLite database file per test."""
    eng = init_engine_from_url(f"sqlite:///{tmp_path / 'tokens.db'}")
    create_tables()
    yield eng
    reset_engine()


@pytest.fixture
def session_factory(engine) -> sessionmaker[Session]:
    return get_session_factory()


@pytest.fixture
def session(session_factory) -> Generator[Session, None, None]:
    """A plain session; the test decides whether to commit."""
    sess = session_factory()
    try:
        yield sess
    finally:
        sess.rollback()
        sess.close()


# =============================================================================
# Time
# =============================================================================


@pytest.fixture
def deterministic_clock() -> DeterministicClock:
    return DeterministicClock(datetime(2024, 6, 1, 12, 0, 0, tzinfo=UTC))


@pytest.fixture
def now(deterministic_clock) -> datetime:
    return deterministic_clock.now()


# =============================================================================
# Factories
# =============================================================================


@pytest.fixture
def orchestrator(session_factory, deterministic_clock) -> BatchUpdateOrchestrator:
    return BatchUpdateOrchestrator(session_factory, clock=deterministic_clock)


@pytest.fixture
def persist_token(session_factory, deterministic_clock):
    """Create and commit a token; keyword arguments go to create_token."""

    def _persist(token: str, token_type=TokenType.UNLIMITED_USE, **kwargs) -> AllocationTokenInfo:
        with session_scope(session_factory) as sess:
            service = AllocationTokenService(sess, deterministic_clock)
            return service.create_token(token, token_type, **kwargs)

    return _persist


@pytest.fixture
def persist_promo_token(persist_token, now):
    """
    UNLIMITED_USE token that became VALID yesterday and ENDS tomorrow.

    Extra keyword arguments override the defaults.
    """

    def _persist(token: str = "token", **kwargs) -> AllocationTokenInfo:
        kwargs.setdefault(
            "token_status_transitions",
            [
                (START_OF_TIME, TokenStatus.NOT_STARTED),
                (now - timedelta(days=1), TokenStatus.VALID),
                (now + timedelta(days=1), TokenStatus.ENDED),
            ],
        )
        return persist_token(token, TokenType.UNLIMITED_USE, **kwargs)

    return _persist


@pytest.fixture
def persist_bulk_token(persist_token, now):
    """BULK_PRICING token, VALID since yesterday, for registrar TheRegistrar."""

    def _persist(token: str = "token", **kwargs) -> AllocationTokenInfo:
        kwargs.setdefault("renewal_price_behavior", RenewalPriceBehavior.SPECIFIED)
        kwargs.setdefault("allowed_registrar_ids", ["TheRegistrar"])
        kwargs.setdefault(
            "token_status_transitions",
            [
                (START_OF_TIME, TokenStatus.NOT_STARTED),
                (now - timedelta(days=1), TokenStatus.VALID),
            ],
        )
        return persist_token(token, TokenType.BULK_PRICING, **kwargs)

    return _persist


@pytest.fixture
def persist_domain(session_factory, now):
    """Register a domain, optionally bound to a bulk token and/or deleted."""

    def _persist(
        domain_name: str,
        current_bulk_token: str | None = None,
        deletion_time: datetime | None = None,
    ) -> None:
        with session_scope(session_factory) as sess:
            sess.add(
                RegisteredDomain(
                    domain_name=domain_name,
                    current_bulk_token=current_bulk_token,
                    deletion_time=deletion_time,
                    creation_time=now,
                    update_time=now,
                )
            )

    return _persist


@pytest.fixture
def persist_package(session_factory, deterministic_clock):
    """Create and commit a bulk pricing package for an existing token."""

    def _persist(
        token: str,
        max_domains: int = 100,
        max_creates: int = 500,
        bulk_price: Money | None = None,
        next_billing_date: datetime | None = None,
        last_notification_sent: datetime | None = None,
    ) -> BulkPricingPackageInfo:
        with session_scope(session_factory) as sess:
            return BulkPricingService(sess, deterministic_clock).create_package(
                token,
                max_domains=max_domains,
                max_creates=max_creates,
                bulk_price=bulk_price or Money.of("1000", "USD"),
                next_billing_date=next_billing_date or datetime.fromisoformat("2012-11-12T05:00:00+00:00"),
                last_notification_sent=last_notification_sent,
            )

    return _persist


@pytest.fixture
def reload_token(session_factory):
    """Read a token back in a fresh session."""

    def _reload(token: str) -> AllocationTokenInfo:
        with session_factory() as sess:
            return sess.get(AllocationToken, token).to_dto()

    return _reload

"""
Tests for the token ORM models and their column types.
"""

from datetime import UTC, datetime, timedelta, timezone
from decimal import Decimal

import pytest
from sqlalchemy import text

from allocation_kernel.db.engine import session_scope
from allocation_kernel.db.types import UTCDateTime
from allocation_kernel.domain.timeline import START_OF_TIME
from allocation_kernel.domain.token_types import EppAction, TokenStatus
from allocation_kernel.domain.values import Money
from allocation_kernel.models.registered_domain import RegisteredDomain


class _Dialect:
    def __init__(self, name):
        self.name = name


class TestUTCDateTime:

    def test_naive_rejected(self):
        with pytest.raises(ValueError, match="Naive datetime"):
            UTCDateTime().process_bind_param(datetime(2024, 1, 1), _Dialect("sqlite"))

    def test_sqlite_stores_naive_utc(self):
        plus_two = timezone(timedelta(hours=2))
        stored = UTCDateTime().process_bind_param(datetime(2024, 1, 1, 2, tzinfo=plus_two), _Dialect("sqlite"))
        assert stored == datetime(2024, 1, 1)

    def test_load_tags_utc(self):
        loaded = UTCDateTime().process_result_value(datetime(2024, 1, 1), _Dialect("sqlite"))
        assert loaded == datetime(2024, 1, 1, tzinfo=UTC)


class TestAllocationTokenStorage:

    def test_sets_and_timeline_stored_as_sorted_json(self, persist_token, session, now):
        persist_token(
            "abc123",
            allowed_tlds=["b", "a"],
            allowed_epp_actions=[EppAction.RESTORE, EppAction.CREATE],
            token_status_transitions=[(START_OF_TIME, "NOT_STARTED"), (now, "VALID")],
        )
        row = session.execute(
            text(
                "SELECT allowed_tlds, allowed_epp_actions, token_status_transitions "
                "FROM allocation_tokens WHERE token = 'abc123'"
            )
        ).one()
        assert row.allowed_tlds == '["a", "b"]'
        assert row.allowed_epp_actions == '["CREATE", "RESTORE"]'
        assert '"NOT_STARTED"' in row.token_status_transitions

    def test_round_trip(self, persist_token, reload_token, now):
        persist_token(
            "abc123",
            allowed_registrar_ids=["TheRegistrar"],
            discount_fraction="0.125",
            token_status_transitions=[
                (START_OF_TIME, TokenStatus.NOT_STARTED),
                (now, TokenStatus.VALID),
            ],
        )
        token = reload_token("abc123")
        assert token.allowed_registrar_ids == frozenset({"TheRegistrar"})
        assert token.discount_fraction == Decimal("0.125")
        assert token.token_status_transitions.to_value_map() == {
            START_OF_TIME: TokenStatus.NOT_STARTED,
            now: TokenStatus.VALID,
        }
        assert token.creation_time.tzinfo == UTC


class TestBulkPricingPackageStorage:

    def test_price_kept_as_decimal(self, persist_bulk_token, persist_package, session_factory):
        persist_bulk_token("abc123")
        package = persist_package("abc123", bulk_price=Money.of("1234.56", "usd"))
        assert package.bulk_price == Money.of("1234.56", "USD")
        assert isinstance(package.bulk_price.amount, Decimal)


class TestRegisteredDomain:

    def test_is_live_at(self, persist_domain, session_factory, now):
        persist_domain("gone.tld", deletion_time=now)
        with session_scope(session_factory) as sess:
            domain = sess.get(RegisteredDomain, "gone.tld")
            assert domain.is_live_at(now - timedelta(seconds=1))
            assert not domain.is_live_at(now)

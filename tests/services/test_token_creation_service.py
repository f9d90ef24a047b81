"""
Tests for AllocationTokenService.
"""

from datetime import timedelta
from decimal import Decimal

import pytest

from allocation_kernel.db.engine import session_scope
from allocation_kernel.domain.timeline import START_OF_TIME, TimedStateMap
from allocation_kernel.domain.token_types import (
    RegistrationBehavior,
    RenewalPriceBehavior,
    TokenStatus,
    TokenType,
)
from allocation_kernel.exceptions import (
    AnchorTenantRequiresDomainError,
    IllegalTransitionError,
    MalformedParameterError,
    MalformedTimelineError,
    TokenAlreadyExistsError,
    TokenConstraintError,
    UnknownTokenError,
)
from allocation_kernel.services.allocation_token_service import AllocationTokenService


@pytest.fixture
def service(session, deterministic_clock):
    return AllocationTokenService(session, deterministic_clock)


class TestCreateToken:

    def test_defaults(self, service, now):
        token = service.create_token("abc123", "unlimited_use")

        assert token.token_type == TokenType.UNLIMITED_USE
        assert token.token_status_transitions == TimedStateMap.constant(TokenStatus.NOT_STARTED)
        assert token.discount_fraction == Decimal("0")
        assert token.discount_years == 1
        assert token.renewal_price_behavior == RenewalPriceBehavior.DEFAULT
        assert token.registration_behavior == RegistrationBehavior.DEFAULT
        assert token.creation_time == now
        assert token.update_time == now

    def test_option_text_accepted(self, service):
        token = service.create_token(
            "abc123",
            TokenType.UNLIMITED_USE,
            allowed_tlds="tld,example",
            allowed_epp_actions="create",
            discount_fraction="0.25",
            discount_years="2",
            token_status_transitions="START_OF_TIME=NOT_STARTED,2024-05-01T00:00:00Z=VALID",
        )
        assert token.allowed_tlds == frozenset({"tld", "example"})
        assert token.discount_years == 2
        assert token.token_status_transitions.final_value == TokenStatus.VALID

    @pytest.mark.parametrize("raw, expected", [("false", False), ("TRUE", True), (False, False)])
    def test_discount_premiums_text(self, service, raw, expected):
        token = service.create_token(
            "abc123", TokenType.UNLIMITED_USE, discount_fraction="0.5", discount_premiums=raw,
        )
        assert token.discount_premiums is expected

    def test_discount_premiums_garbage_rejected(self, service):
        with pytest.raises(MalformedParameterError, match="discount_premiums"):
            service.create_token("abc123", TokenType.UNLIMITED_USE, discount_premiums="maybe")

    def test_single_use_anchor_tenant(self, service):
        token = service.create_token(
            "anchor", TokenType.SINGLE_USE,
            domain_name="example.tld", registration_behavior="ANCHOR_TENANT",
        )
        assert token.domain_name == "example.tld"
        assert token.registration_behavior == RegistrationBehavior.ANCHOR_TENANT

    def test_duplicate_rejected(self, persist_token, service):
        persist_token("abc123")
        with pytest.raises(TokenAlreadyExistsError, match="abc123"):
            service.create_token("abc123", TokenType.SINGLE_USE)

    @pytest.mark.parametrize("identifier", ["", "  "])
    def test_blank_identifier_rejected(self, service, identifier):
        with pytest.raises(MalformedParameterError):
            service.create_token(identifier, TokenType.SINGLE_USE)

    def test_anchor_tenant_without_domain(self, service):
        with pytest.raises(AnchorTenantRequiresDomainError):
            service.create_token("abc123", TokenType.SINGLE_USE, registration_behavior="ANCHOR_TENANT")

    def test_bulk_token_rules(self, service):
        with pytest.raises(TokenConstraintError, match="SPECIFIED"):
            service.create_token("bulk", TokenType.BULK_PRICING, allowed_registrar_ids=["TheRegistrar"])

    def test_illegal_initial_timeline(self, service, now):
        with pytest.raises(IllegalTransitionError):
            service.create_token(
                "abc123", TokenType.UNLIMITED_USE,
                token_status_transitions=[(START_OF_TIME, "NOT_STARTED"), (now, "ENDED")],
            )

    def test_timeline_must_start_at_start_of_time(self, service, now):
        with pytest.raises(MalformedTimelineError):
            service.create_token(
                "abc123", TokenType.UNLIMITED_USE,
                token_status_transitions=[(now, "NOT_STARTED")],
            )

    def test_created_token_survives_reload(self, session_factory, deterministic_clock, reload_token):
        with session_scope(session_factory) as sess:
            AllocationTokenService(sess, deterministic_clock).create_token(
                "abc123", TokenType.UNLIMITED_USE, allowed_registrar_ids="TheRegistrar",
            )
        assert reload_token("abc123").allowed_registrar_ids == frozenset({"TheRegistrar"})

    def test_creation_logged(self, service, captured_logs):
        service.create_token("abc123", TokenType.SINGLE_USE)
        record = next(r for r in captured_logs() if r["message"] == "token_created")
        assert record["token"] == "abc123"
        assert record["token_type"] == "SINGLE_USE"


class TestLookup:

    def test_status_at(self, persist_promo_token, service, now):
        persist_promo_token()
        assert service.status_at("token", now) == TokenStatus.VALID
        assert service.status_at("token", now - timedelta(days=2)) == TokenStatus.NOT_STARTED
        assert service.status_at("token", now + timedelta(days=1)) == TokenStatus.ENDED

    def test_unknown_token(self, service):
        with pytest.raises(UnknownTokenError, match="Token with id nope does not exist"):
            service.get_token("nope")

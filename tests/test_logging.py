"""Tests for the structured logging system (allocation_kernel/logging_config.py)."""

import json
import logging
from datetime import UTC, datetime
from decimal import Decimal
from io import StringIO
from uuid import uuid4

import pytest

from allocation_kernel.domain.token_types import TokenStatus
from allocation_kernel.exceptions import PromotionStillActiveError
from allocation_kernel.logging_config import (
    LogContext,
    StructuredFormatter,
    configure_logging,
    get_logger,
    reset_logging,
)


@pytest.fixture(autouse=True)
def _clean_logging():
    """Reset logging state between tests, then restore the suite's config."""
    reset_logging()
    LogContext.clear()
    yield
    LogContext.clear()
    reset_logging()
    configure_logging(level=logging.DEBUG)


def _make_handler() -> tuple[logging.Handler, StringIO]:
    stream = StringIO()
    handler = logging.StreamHandler(stream)
    handler.setFormatter(StructuredFormatter())
    return handler, stream


def _parse_log(stream: StringIO) -> dict:
    """Parse the first JSON log line from a stream."""
    line = stream.getvalue().strip().split("\n")[0]
    return json.loads(line)


def _parse_all_logs(stream: StringIO) -> list[dict]:
    lines = stream.getvalue().strip().split("\n")
    return [json.loads(line) for line in lines if line]


# ---------------------------------------------------------------------------
# StructuredFormatter tests
# ---------------------------------------------------------------------------


class TestStructuredFormatter:

    def test_basic_json_output(self):
        handler, stream = _make_handler()
        configure_logging(handler=handler)
        get_logger("test").info("hello")

        record = _parse_log(stream)
        assert record["level"] == "INFO"
        assert record["message"] == "hello"
        assert record["logger"] == "allocation_kernel.test"
        assert "ts" in record

    def test_extra_fields_included(self):
        handler, stream = _make_handler()
        configure_logging(handler=handler)
        get_logger("test").info("tokens_selected", extra={"count": 2, "mode": "prefix"})

        record = _parse_log(stream)
        assert record["count"] == 2
        assert record["mode"] == "prefix"

    def test_context_fields_included(self):
        handler, stream = _make_handler()
        configure_logging(handler=handler)
        LogContext.set(batch_id="batch-1", token_identifier="abc123")
        get_logger("test").info("test_msg")

        record = _parse_log(stream)
        assert record["batch_id"] == "batch-1"
        assert record["token_identifier"] == "abc123"

    def test_exception_fields(self):
        handler, stream = _make_handler()
        configure_logging(handler=handler)
        try:
            raise ValueError("boom")
        except ValueError:
            get_logger("test").error("failed", exc_info=True)

        record = _parse_log(stream)
        assert record["exc_type"] == "ValueError"
        assert record["exc_message"] == "boom"
        assert "traceback" in record

    def test_kernel_exception_fields_extracted(self):
        handler, stream = _make_handler()
        configure_logging(handler=handler)
        try:
            raise PromotionStillActiveError("token", 3)
        except PromotionStillActiveError:
            get_logger("test").error("lifecycle_error", exc_info=True)

        record = _parse_log(stream)
        assert record["exc_code"] == "PROMOTION_STILL_ACTIVE"
        assert record["exc_type"] == "PromotionStillActiveError"
        assert record["exc_token_identifier"] == "token"
        assert record["exc_domain_count"] == 3

    def test_no_context_fields_when_empty(self):
        handler, stream = _make_handler()
        configure_logging(handler=handler)
        get_logger("test").info("bare_message")

        record = _parse_log(stream)
        assert "batch_id" not in record
        assert "token_identifier" not in record

    def test_values_serialized(self):
        handler, stream = _make_handler()
        configure_logging(handler=handler)
        uid = uuid4()
        get_logger("test").info(
            "with_values",
            extra={
                "batch_uuid": uid,
                "fraction": Decimal("0.15"),
                "at": datetime(2024, 1, 1, tzinfo=UTC),
                "tlds": frozenset({"b", "a"}),
                "status": TokenStatus.VALID,
            },
        )

        record = _parse_log(stream)
        assert record["batch_uuid"] == str(uid)
        assert record["fraction"] == "0.15"
        assert record["at"] == "2024-01-01T00:00:00+00:00"
        assert record["tlds"] == ["a", "b"]
        assert record["status"] == "VALID"

    def test_valid_json_every_line(self):
        handler, stream = _make_handler()
        configure_logging(handler=handler)
        logger = get_logger("test")
        logger.info("first")
        logger.warning("second", extra={"k": "v"})
        logger.debug("third")

        logs = _parse_all_logs(stream)
        # default level is INFO, so the debug line is dropped
        assert len(logs) == 2
        for record in logs:
            assert {"ts", "level", "logger", "message"} <= record.keys()


# ---------------------------------------------------------------------------
# LogContext tests
# ---------------------------------------------------------------------------


class TestLogContext:

    def test_set_and_get(self):
        LogContext.set(batch_id="x", token_identifier="y")
        assert LogContext.get_all() == {"batch_id": "x", "token_identifier": "y"}

    def test_clear(self):
        LogContext.set(batch_id="x")
        LogContext.clear()
        assert LogContext.get_all() == {}

    def test_bind_context_manager(self):
        LogContext.set(token_identifier="outer")
        with LogContext.bind(token_identifier="inner"):
            assert LogContext.get_all()["token_identifier"] == "inner"
        assert LogContext.get_all()["token_identifier"] == "outer"

    def test_bind_restores_none(self):
        assert "batch_id" not in LogContext.get_all()
        with LogContext.bind(batch_id="temp"):
            assert LogContext.get_all()["batch_id"] == "temp"
        assert "batch_id" not in LogContext.get_all()

    def test_only_batch_fields_tracked(self):
        with LogContext.bind(batch_id="b", token_identifier="t", actor_id="a"):
            assert LogContext.get_all() == {"batch_id": "b", "token_identifier": "t"}
        assert LogContext.get_all() == {}


# ---------------------------------------------------------------------------
# configure_logging tests
# ---------------------------------------------------------------------------


class TestConfigureLogging:

    def test_idempotent(self):
        h1, _ = _make_handler()
        configure_logging(handler=h1)
        h2, _ = _make_handler()
        configure_logging(handler=h2)  # second call is no-op
        handlers = logging.getLogger("allocation_kernel").handlers
        assert h1 in handlers
        assert h2 not in handlers

    def test_get_logger_returns_child(self):
        assert get_logger("services.token_update_orchestrator").name == (
            "allocation_kernel.services.token_update_orchestrator"
        )

    def test_logger_hierarchy(self):
        handler, stream = _make_handler()
        configure_logging(handler=handler, level=logging.DEBUG)
        get_logger("deep.nested.module").debug("hierarchy_test")

        record = _parse_log(stream)
        assert record["message"] == "hierarchy_test"
        assert record["logger"] == "allocation_kernel.deep.nested.module"

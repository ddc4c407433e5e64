"""Tests for the structured logging system (approval_kernel/logging_config.py)."""

import json
import logging
from decimal import Decimal
from io import StringIO
from uuid import uuid4

import pytest

from approval_kernel.exceptions import (
    RequestNotFoundError,
    StaleRequestVersionError,
)
from approval_kernel.logging_config import (
    LogContext,
    StructuredFormatter,
    configure_logging,
    get_logger,
    reset_logging,
)


@pytest.fixture(autouse=True)
def _clean_logging():
    reset_logging()
    LogContext.clear()
    yield
    LogContext.clear()
    reset_logging()


@pytest.fixture
def stream() -> StringIO:
    """Configure logging onto a fresh stream at DEBUG."""
    buffer = StringIO()
    handler = logging.StreamHandler(buffer)
    configure_logging(handler=handler, level=logging.DEBUG)
    return buffer


def _records(stream: StringIO) -> list[dict]:
    lines = stream.getvalue().strip().split("\n")
    return [json.loads(line) for line in lines if line]


class TestStructuredFormatter:

    def test_basic_fields(self, stream):
        get_logger("test").info("request_submitted")

        (record,) = _records(stream)
        assert record["level"] == "INFO"
        assert record["message"] == "request_submitted"
        assert record["logger"] == "approval_kernel.test"
        assert "ts" in record

    def test_extra_fields(self, stream):
        request_id = uuid4()
        get_logger("test").info(
            "request_decided",
            extra={"request_id_extra": request_id, "amount": Decimal("12.50"), "version": 2},
        )

        (record,) = _records(stream)
        assert record["request_id_extra"] == str(request_id)
        assert record["amount"] == "12.50"
        assert record["version"] == 2

    def test_context_fields(self, stream):
        LogContext.set(correlation_id="corr-1", tenant_id="acme")
        get_logger("test").info("with_context")

        (record,) = _records(stream)
        assert record["correlation_id"] == "corr-1"
        assert record["tenant_id"] == "acme"
        assert "actor_id" not in record

    def test_plain_exception(self, stream):
        try:
            raise ValueError("boom")
        except ValueError:
            get_logger("test").error("failed", exc_info=True)

        (record,) = _records(stream)
        assert record["exc_type"] == "ValueError"
        assert record["exc_message"] == "boom"
        assert "exc_code" not in record
        assert "traceback" in record

    def test_engine_error_fields(self, stream):
        try:
            raise RequestNotFoundError("req-1")
        except RequestNotFoundError:
            get_logger("test").warning("lookup_failed", exc_info=True)

        (record,) = _records(stream)
        assert record["exc_type"] == "RequestNotFoundError"
        assert record["exc_code"] == "REQUEST_NOT_FOUND"
        assert record["exc_request_id"] == "req-1"

    def test_stale_version_fields(self, stream):
        try:
            raise StaleRequestVersionError("req-2", 1, None)
        except StaleRequestVersionError:
            get_logger("test").warning("stale", exc_info=True)

        (record,) = _records(stream)
        assert record["exc_code"] == "STALE_REQUEST_VERSION"
        assert record["exc_expected_version"] == 1
        assert record["exc_actual_version"] is None

    def test_level_filtering(self):
        buffer = StringIO()
        configure_logging(handler=logging.StreamHandler(buffer))
        logger = get_logger("test")
        logger.debug("hidden")
        logger.info("shown")

        assert [r["message"] for r in _records(buffer)] == ["shown"]

    def test_formatter_standalone(self):
        formatter = StructuredFormatter()
        record = logging.LogRecord("x", logging.INFO, __file__, 1, "plain %s", ("msg",), None)

        assert json.loads(formatter.format(record))["message"] == "plain msg"


class TestLogContext:

    def test_set_ignores_none(self):
        LogContext.set(actor_id="a")
        LogContext.set(actor_id=None, request_id="r")
        assert LogContext.get_all() == {"actor_id": "a", "request_id": "r"}

    def test_clear(self):
        LogContext.set(delegation_id="d")
        LogContext.clear()
        assert LogContext.get_all() == {}

    def test_bind_restores(self):
        LogContext.set(correlation_id="outer")
        with LogContext.bind(correlation_id="inner", request_id="r"):
            assert LogContext.get_all() == {"correlation_id": "inner", "request_id": "r"}
        assert LogContext.get_all() == {"correlation_id": "outer"}

    def test_bind_stringifies(self):
        actor_id = uuid4()
        with LogContext.bind(actor_id=actor_id):
            assert LogContext.get_all()["actor_id"] == str(actor_id)

    def test_bind_ignores_unknown_fields(self):
        with LogContext.bind(colour="blue"):
            assert LogContext.get_all() == {}


class TestConfigureLogging:

    def test_idempotent(self):
        first = logging.StreamHandler(StringIO())
        second = logging.StreamHandler(StringIO())
        configure_logging(handler=first)
        configure_logging(handler=second)

        # Only the JSON handlers we attach; pytest adds capture handlers of its own
        handlers = logging.getLogger("approval_kernel").handlers
        structured = [h for h in handlers if isinstance(h.formatter, StructuredFormatter)]
        assert structured == [first]
        assert second not in handlers

    def test_does_not_propagate(self):
        configure_logging(handler=logging.StreamHandler(StringIO()))
        assert logging.getLogger("approval_kernel").propagate is False

    def test_child_loggers(self, stream):
        logger = get_logger("services.approval")
        logger.debug("nested")

        (record,) = _records(stream)
        assert logger.name == "approval_kernel.services.approval"
        assert record["logger"] == "approval_kernel.services.approval"

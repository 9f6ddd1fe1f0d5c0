"""
Tests for src.logging_config module.

Covers:
- StructuredFormatter output
- LogContext scoping
- log_event / log_error routing
- Token redaction
"""

import json
import logging

import pytest


@pytest.fixture(autouse=True)
def clean_context():
    from src.logging_config import LogContext

    LogContext.clear()
    yield
    LogContext.clear()


def make_record(msg="hello", **extra):
    record = logging.LogRecord("src.test", logging.INFO, __file__, 10, msg, None, None)
    for key, value in extra.items():
        setattr(record, key, value)
    return record


class TestStructuredFormatter:
    def test_basic_fields(self):
        from src.logging_config import StructuredFormatter

        entry = json.loads(StructuredFormatter(environment="test").format(make_record()))

        assert entry["message"] == "hello"
        assert entry["level"] == "INFO"
        assert entry["logger"] == "src.test"
        assert entry["service"] == "ticketing-admin-client"
        assert entry["environment"] == "test"
        assert entry["timestamp"].endswith("Z")

    def test_extra_and_context_fields(self):
        from src.logging_config import LogContext, LogContextManager, StructuredFormatter

        LogContext.set_role("admin")
        with LogContextManager(request_id="req-1", endpoint="/api/tickets"):
            entry = json.loads(StructuredFormatter().format(make_record(resource="payments", _hidden=1)))

        assert entry["request_id"] == "req-1"
        assert entry["endpoint"] == "/api/tickets"
        assert entry["role"] == "admin"
        assert entry["resource"] == "payments"
        assert "_hidden" not in entry

    def test_extra_fields_can_be_disabled(self):
        from src.logging_config import StructuredFormatter

        entry = json.loads(StructuredFormatter(include_extra_fields=False).format(make_record(resource="x")))

        assert "resource" not in entry


class TestLogContextManager:
    def test_restores_previous_values(self):
        from src.logging_config import LogContext, LogContextManager

        with LogContextManager(request_id="outer", endpoint="/a"):
            with LogContextManager(request_id="inner", endpoint="/b"):
                assert LogContext.get_request_id() == "inner"
            assert LogContext.get_request_id() == "outer"
            assert LogContext.get_endpoint() == "/a"

        assert LogContext.get_request_id() is None


class TestConsoleFormatter:
    def test_includes_request_id(self):
        from src.logging_config import ConsoleFormatter, LogContextManager

        with LogContextManager(request_id="abc123"):
            line = ConsoleFormatter().format(make_record("query_completed"))

        assert "[abc123]" in line
        assert "query_completed" in line


class TestLogHelpers:
    def test_log_event_level_and_fields(self, caplog):
        from src.logging_config import LogLevel, log_event

        caplog.set_level(logging.DEBUG)
        log_event("query_discarded", level=LogLevel.DEBUG, resource="tickets")

        record = caplog.records[-1]
        assert record.name == "src.events"
        assert record.levelno == logging.DEBUG
        assert record.resource == "tickets"

    def test_log_error_attaches_exception(self, caplog):
        from src.exceptions import TransportError
        from src.logging_config import log_error

        exc = TransportError("network_error", path="/api/tickets")
        log_error("admin_action_failed", exc, endpoint_path="/api/tickets")

        record = caplog.records[-1]
        assert record.name == "src.errors"
        assert record.exc_info[1] is exc
        assert record.endpoint_path == "/api/tickets"

    def test_configure_logging_console(self):
        from src.logging_config import ConsoleFormatter, configure_logging

        root = logging.getLogger()
        saved_handlers, saved_level = root.handlers[:], root.level
        try:
            configure_logging(level="WARNING", log_format="console")
            assert root.level == logging.WARNING
            assert isinstance(root.handlers[-1].formatter, ConsoleFormatter)
        finally:
            root.handlers[:] = saved_handlers
            root.setLevel(saved_level)


class TestTokenRedactionFilter:
    def test_masks_bearer_and_drops_secret_extras(self):
        from src.logging_config import TokenRedactionFilter

        record = make_record("sent Authorization: Bearer %s", token="abc", resource="payments")
        record.args = ("tok-secret",)

        assert TokenRedactionFilter().filter(record) is True
        assert record.getMessage() == "sent Authorization: Bearer [redacted]"
        assert not hasattr(record, "token")
        assert record.resource == "payments"

import json
import logging

from careerpilot.middleware.correlation import RequestContextFilter, correlation_id_var, resolve_correlation_id
from careerpilot.utils.logger import ConsoleFormatter, StructuredFormatter


def _record(message, **extra):
    record = logging.LogRecord("careerpilot", logging.INFO, __file__, 1, message, (), None)
    for key, value in extra.items():
        setattr(record, key, value)
    return record


def test_json_entry_carries_extras_and_redacts():
    record = _record("login failed token=abc123", service="ai", attempt=2, correlation_id="cid-1")
    entry = json.loads(StructuredFormatter().format(record))

    assert entry["message"] == "login failed [REDACTED]"
    assert entry["service"] == "ai"
    assert entry["attempt"] == 2
    assert entry["correlation_id"] == "cid-1"
    assert "user_id" not in entry


def test_console_line_appends_extras():
    line = ConsoleFormatter().format(_record("request.completed", status=200, correlation_id="cid-2"))
    assert line.endswith("request.completed  cid=cid-2 status=200")


def test_context_filter_stamps_correlation_id():
    token = correlation_id_var.set("trace-9")
    try:
        record = _record("hello")
        assert RequestContextFilter().filter(record) is True
        assert record.correlation_id == "trace-9"
        assert record.user_id == ""
    finally:
        correlation_id_var.reset(token)


def test_malformed_correlation_ids_are_replaced():
    assert resolve_correlation_id("trace-123") == "trace-123"
    replaced = resolve_correlation_id("bad id\nFAKE LOG LINE")
    assert replaced != "bad id\nFAKE LOG LINE"
    assert len(replaced) == 36

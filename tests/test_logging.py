"""Tests for logging configuration."""

import json
import logging
import sys

from filedrop.core.config import settings
from filedrop.core.logging import JsonLogFormatter, setup_logging, storage_key_context


def _record(msg="hello", **extra):
    record = logging.LogRecord("filedrop.test", logging.WARNING, __file__, 10, msg, None, None)
    for key, value in extra.items():
        setattr(record, key, value)
    return record


def test_json_formatter_single_line_with_extra():
    output = JsonLogFormatter().format(_record(attempt=2, key="1_a.pdf"))

    assert "\n" not in output
    entry = json.loads(output)
    assert entry["severity"] == "WARNING"
    assert entry["message"] == "hello"
    assert entry["attempt"] == 2
    assert entry["key"] == "1_a.pdf"


def test_json_formatter_includes_storage_key_context():
    token = storage_key_context.set("1700_report.pdf")
    try:
        entry = json.loads(JsonLogFormatter().format(_record()))
    finally:
        storage_key_context.reset(token)

    assert entry["storage_key"] == "1700_report.pdf"


def test_json_formatter_includes_exception():
    try:
        raise ValueError("bad")
    except ValueError:
        record = _record()
        record.exc_info = sys.exc_info()

    entry = json.loads(JsonLogFormatter().format(record))

    assert entry["exception_type"] == "ValueError"
    assert entry["exception_message"] == "bad"


def test_setup_logging_uses_json_outside_local(monkeypatch):
    monkeypatch.setattr(settings, "ENV", "prod")
    monkeypatch.setattr(settings, "LOG_LEVEL", "WARNING")

    setup_logging()

    root = logging.getLogger()
    assert root.level == logging.WARNING
    assert isinstance(root.handlers[0].formatter, JsonLogFormatter)


def test_json_formatter_location():
    entry = json.loads(JsonLogFormatter().format(_record()))

    assert entry["location"].startswith("test_logging:")
    assert entry["location"].endswith(":10")
    assert entry["logger"] == "filedrop.test"

"""
Where: lambdasync/common/tests/test_logging_config.py
What: Unit tests for the JSON formatter and YAML logging setup.
Why: Console output is the dev server's only observability surface.
"""

import json
import logging
import sys

from lambdasync.common.core import logging_config
from lambdasync.common.core.logging_config import CustomJsonFormatter
from lambdasync.common.core.request_context import clear_request_id, set_request_id


def _record(msg="hello", **extra) -> logging.LogRecord:
    record = logging.LogRecord(
        name="devserver.test",
        level=logging.INFO,
        pathname=__file__,
        lineno=1,
        msg=msg,
        args=(),
        exc_info=None,
    )
    for key, value in extra.items():
        setattr(record, key, value)
    return record


def test_json_formatter_basic_fields():
    data = json.loads(CustomJsonFormatter().format(_record()))

    assert data["level"] == "INFO"
    assert data["logger"] == "devserver.test"
    assert data["message"] == "hello"
    assert data["_time"].endswith("+00:00")
    assert "aws_request_id" not in data


def test_json_formatter_includes_extras_and_request_id():
    set_request_id("req-123")
    try:
        data = json.loads(CustomJsonFormatter().format(_record(duration_ms=1.5)))
    finally:
        clear_request_id()

    assert data["aws_request_id"] == "req-123"
    assert data["duration_ms"] == 1.5


def test_json_formatter_explicit_request_id_wins():
    set_request_id("from-context")
    try:
        data = json.loads(CustomJsonFormatter().format(_record(aws_request_id="explicit")))
    finally:
        clear_request_id()

    assert data["aws_request_id"] == "explicit"


def test_json_formatter_serializes_exceptions():
    try:
        raise ValueError("boom")
    except ValueError:
        record = _record()
        record.exc_info = sys.exc_info()

    data = json.loads(CustomJsonFormatter().format(record))

    assert "ValueError: boom" in data["exception"]


def test_setup_logging_missing_file_falls_back(monkeypatch, tmp_path):
    calls = {}
    monkeypatch.setattr(
        logging_config.logging, "basicConfig", lambda **kwargs: calls.update(kwargs)
    )

    applied = logging_config.setup_logging(str(tmp_path / "missing.yml"), log_level="debug")

    assert applied is False
    assert calls["level"] == "DEBUG"


def test_setup_logging_substitutes_variables(monkeypatch, tmp_path):
    config_file = tmp_path / "logging.yml"
    config_file.write_text(
        "version: 1\n"
        "loggers:\n"
        "  sample:\n"
        "    level: ${LOG_LEVEL}\n"
        "    formatter_hint: ${LOG_FORMAT}\n",
        encoding="utf-8",
    )
    captured = {}
    monkeypatch.delenv("LOG_FORMAT", raising=False)
    monkeypatch.setattr(logging_config.logging.config, "dictConfig", captured.update)

    applied = logging_config.setup_logging(str(config_file), log_level="warning")

    assert applied is True
    assert captured["loggers"]["sample"]["level"] == "WARNING"
    assert captured["loggers"]["sample"]["formatter_hint"] == "console"

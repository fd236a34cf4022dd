# tests/unit/logging/test_logger.py — v2
"""Tests for logging/logger.py — logger factory and formatters."""

from __future__ import annotations

import json
import logging

import pytest

from reqcache.logging.context import set_operation_context, set_request_context
from reqcache.logging.logger import (
    JsonFormatter,
    TextFormatter,
    get_logger,
    setup_logging,
    setup_logging_from_settings,
)


@pytest.fixture(autouse=True)
def _restore_root_logger():
    yield
    root = logging.getLogger("reqcache")
    for handler in list(root.handlers):
        root.removeHandler(handler)
        handler.close()
    root.setLevel(logging.NOTSET)


def _record(msg: str = "Hello", **extra) -> logging.LogRecord:
    record = logging.LogRecord(
        name="test", level=logging.INFO, pathname="", lineno=0,
        msg=msg, args=(), exc_info=None,
    )
    for key, value in extra.items():
        setattr(record, key, value)
    return record


class TestJsonFormatter:
    def test_format_basic(self):
        parsed = json.loads(JsonFormatter().format(_record()))
        assert parsed["level"] == "INFO"
        assert parsed["message"] == "Hello"
        assert "timestamp" in parsed
        assert "context" not in parsed

    def test_format_with_context(self):
        set_request_context("req-1", content_hash="f" * 64, document_name="spec.docx")
        parsed = json.loads(JsonFormatter().format(_record()))
        assert parsed["context"]["request_id"] == "req-1"
        assert parsed["context"]["content_hash"] == "f" * 12
        assert parsed["context"]["document_name"] == "spec.docx"

    def test_format_with_data(self):
        parsed = json.loads(JsonFormatter().format(_record(data={"checks": ["row_count"]})))
        assert parsed["data"] == {"checks": ["row_count"]}

    def test_format_exception(self):
        try:
            raise ValueError("boom")
        except ValueError:
            import sys

            record = logging.LogRecord(
                name="test", level=logging.ERROR, pathname="", lineno=0,
                msg="failed", args=(), exc_info=sys.exc_info(),
            )
        parsed = json.loads(JsonFormatter().format(record))
        assert "ValueError: boom" in parsed["exception"]


class TestTextFormatter:
    def test_format_basic(self):
        output = TextFormatter().format(_record("Hello text"))
        assert "Hello text" in output
        assert "INFO" in output

    def test_format_with_context(self):
        set_request_context("req-9", document_name="spec.docx")
        set_operation_context("accept_generation")
        output = TextFormatter().format(_record())
        assert "[req-9]" in output
        assert "<spec.docx>" in output
        assert "(accept_generation)" in output


class TestGetLogger:
    def test_prefixed(self):
        assert get_logger("cache").name == "reqcache.cache"

    def test_already_prefixed(self):
        assert get_logger("reqcache.cache").name == "reqcache.cache"


class TestSetupLogging:
    def test_no_duplicate_handlers(self):
        setup_logging(level="DEBUG", log_format="text")
        root = setup_logging(level="DEBUG", log_format="text")
        assert len(root.handlers) == 1
        assert root.level == logging.DEBUG
        assert isinstance(root.handlers[0].formatter, TextFormatter)

    def test_file_handler(self, tmp_path):
        log_file = tmp_path / "logs" / "reqcache.log"
        root = setup_logging(log_file=str(log_file))
        try:
            assert len(root.handlers) == 2
            root.info("written to file")
            for handler in root.handlers:
                handler.flush()
            assert "written to file" in log_file.read_text(encoding="utf-8")
        finally:
            setup_logging()

    def test_from_settings(self, settings):
        root = setup_logging_from_settings(
            settings.model_copy(update={"log_level": "WARNING", "log_format": "text"})
        )
        assert root.level == logging.WARNING

"""Unit tests for the JSON log formatter."""

from __future__ import annotations

import json
import logging
import sys

import pytest

from pubproxy.logging_config import JsonFormatter, configure_logging


def _record(msg: str, *args: object, **extra: object) -> logging.LogRecord:
    record = logging.LogRecord("pubproxy.test", logging.INFO, __file__, 1, msg, args, None)
    for key, value in extra.items():
        setattr(record, key, value)
    return record


class TestJsonFormatter:
    def test_base_fields(self) -> None:
        entry = json.loads(JsonFormatter().format(_record("hello %s", "world")))
        assert entry["message"] == "hello world"
        assert entry["level"] == "INFO"
        assert entry["logger"] == "pubproxy.test"
        assert "timestamp" in entry

    def test_extra_fields(self) -> None:
        record = _record("slot", tier="keyless", wait_seconds=1.1, remaining=4, unrelated="x")
        entry = json.loads(JsonFormatter().format(record))
        assert entry["tier"] == "keyless"
        assert entry["wait_seconds"] == 1.1
        assert entry["remaining"] == 4
        assert "unrelated" not in entry

    @pytest.mark.parametrize(
        "text",
        [
            "GET http://pubproxy.com/api/proxy?limit=5&api=s3cret",
            "api_key=s3cret",
            "Authorization: s3cret",
        ],
    )
    def test_secrets_are_redacted(self, text: str) -> None:
        entry = json.loads(JsonFormatter().format(_record(text)))
        assert "s3cret" not in entry["message"]
        assert "[REDACTED]" in entry["message"]

    def test_exception_is_included(self) -> None:
        try:
            raise RuntimeError("boom")
        except RuntimeError:
            record = _record("failed")
            record.exc_info = sys.exc_info()
        entry = json.loads(JsonFormatter().format(record))
        assert "RuntimeError: boom" in entry["exception"]


class TestConfigureLogging:
    def test_installs_single_json_handler(self) -> None:
        root = logging.getLogger()
        saved_handlers, saved_level = root.handlers[:], root.level
        try:
            configure_logging("DEBUG")
            configure_logging("warning")
            assert len(root.handlers) == 1
            assert isinstance(root.handlers[0].formatter, JsonFormatter)
            assert root.level == logging.WARNING
        finally:
            root.handlers[:] = saved_handlers
            root.setLevel(saved_level)

    def test_plain_text_output(self) -> None:
        root = logging.getLogger()
        saved_handlers, saved_level = root.handlers[:], root.level
        try:
            configure_logging("INFO", json_output=False)
            assert not isinstance(root.handlers[0].formatter, JsonFormatter)
        finally:
            root.handlers[:] = saved_handlers
            root.setLevel(saved_level)

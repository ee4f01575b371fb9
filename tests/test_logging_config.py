"""Unit tests for the log formatter."""

# pylint: disable=redefined-outer-name

import io
import json
import logging

import pytest

from src.config.logging_config import AppFormatter, setup_logging


def make_record(message, *args, level=logging.WARNING, **extra):
    record = logging.LogRecord("test", level, __file__, 1, message, args, None)
    for key, value in extra.items():
        setattr(record, key, value)
    return record


@pytest.fixture
def formatter():
    return AppFormatter()


def test_identifier_and_meta(formatter):
    record = make_record(
        "A malformed room in namespace: %s",
        "chat",
        identifier="roomRegistry",
        meta={"namespace": "chat", "room_name": "lobby", "raw": None},
    )

    line = formatter.format(record)

    assert " - WARNING {" in line
    assert "[roomRegistry]: A malformed room in namespace: chat" in line
    meta = json.loads(line.split("| META: ", 1)[1])
    # None values are dropped
    assert meta == {"namespace": "chat", "room_name": "lobby"}


def test_missing_identifier_and_meta(formatter):
    line = formatter.format(make_record("hello", level=logging.INFO))

    assert "[Unknown]: hello" in line
    assert "META" not in line


def test_exceptions_in_meta_are_rendered_by_message(formatter):
    record = make_record("failed", identifier="x", meta={"error": ValueError("DB index is out of range")})

    line = formatter.format(record)

    assert '"error": "DB index is out of range"' in line


def test_string_meta_is_used_verbatim(formatter):
    line = formatter.format(make_record("hi", identifier="x", meta="plain text"))

    assert line.endswith("| META: plain text")


def test_long_meta_is_truncated():
    formatter = AppFormatter(max_meta_length=10)

    line = formatter.format(make_record("hi", identifier="x", meta={"clients": ["a" * 50]}))

    assert "| META: Too long (" in line
    assert "a" * 50 not in line


def test_pretty_meta():
    formatter = AppFormatter(pretty_meta=True)

    line = formatter.format(make_record("hi", identifier="x", meta={"a": 1}))

    assert '{\n    "a": 1\n}' in line


def test_setup_logging_installs_formatter():
    root = logging.getLogger()
    saved_handlers, saved_level = root.handlers[:], root.level
    stream = io.StringIO()
    setup_logging("debug", stream=stream)
    try:
        assert any(isinstance(h.formatter, AppFormatter) for h in root.handlers)
        logging.getLogger("src.tests").debug("ready", extra={"identifier": "app"})
        assert "DEBUG" in stream.getvalue()
        assert "[app]: ready" in stream.getvalue()
    finally:
        root.handlers[:] = saved_handlers
        root.setLevel(saved_level)

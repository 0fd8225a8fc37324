"""Unit tests for logging configuration."""

from __future__ import annotations

import json
import logging
import logging.handlers
from io import StringIO
from pathlib import Path
from typing import Any

import pytest
import structlog

from docreview.config import LoggingConfig
from docreview.logging import (
    add_correlation_id,
    bind_review_context,
    clear_review_context,
    get_correlation_id,
    get_logger,
    set_correlation_id,
    setup_logging,
)


@pytest.fixture(autouse=True)
def reset_logging() -> None:
    """Reset logging configuration before each test."""
    root = logging.getLogger()
    root.handlers.clear()

    structlog.reset_defaults()

    structlog.contextvars.clear_contextvars()
    set_correlation_id(None)


@pytest.fixture
def capture_stream() -> StringIO:
    """Create a StringIO stream for capturing log output."""
    return StringIO()


@pytest.fixture
def json_config() -> LoggingConfig:
    """Create a LoggingConfig for JSON output to stdout."""
    return LoggingConfig(level="INFO", format="json", file=None)


@pytest.fixture
def console_config() -> LoggingConfig:
    """Create a LoggingConfig for console output to stdout."""
    return LoggingConfig(level="DEBUG", format="console", file=None)


def _capture(stream: StringIO) -> None:
    root = logging.getLogger()
    root.handlers[0].stream = stream


def _last_entry(stream: StringIO) -> dict[str, Any]:
    return json.loads(stream.getvalue().strip().splitlines()[-1])


def test_json_output_format(json_config: LoggingConfig, capture_stream: StringIO) -> None:
    """Test that JSON format produces valid JSON output."""
    setup_logging(json_config)
    _capture(capture_stream)

    logger = get_logger("docreview.test")
    logger.info("review_created", document_type="technical_spec", due_days=5)

    log_entry = _last_entry(capture_stream)
    assert log_entry["event"] == "review_created"
    assert log_entry["document_type"] == "technical_spec"
    assert log_entry["due_days"] == 5
    assert log_entry["level"] == "info"
    assert log_entry["logger"] == "docreview.test"
    assert "timestamp" in log_entry


def test_console_output_format(console_config: LoggingConfig, capture_stream: StringIO) -> None:
    """Test that console format produces human-readable output."""
    setup_logging(console_config)
    _capture(capture_stream)

    logger = get_logger("docreview.test")
    logger.debug("assignment_accepted", status="in_review")

    output = capture_stream.getvalue()
    assert "assignment_accepted" in output
    assert "in_review" in output
    with pytest.raises(json.JSONDecodeError):
        json.loads(output.strip())


def test_log_level_filtering(json_config: LoggingConfig, capture_stream: StringIO) -> None:
    """Test that DEBUG is filtered at INFO level while WARNING passes."""
    setup_logging(json_config)
    _capture(capture_stream)

    logger = get_logger("docreview.test")

    logger.debug("debug_message")
    assert capture_stream.getvalue() == ""

    logger.warning("warning_message")
    assert "warning_message" in capture_stream.getvalue()


def test_correlation_id_binding(json_config: LoggingConfig, capture_stream: StringIO) -> None:
    """Test that correlation ID is added to log entries only while set."""
    setup_logging(json_config)
    _capture(capture_stream)

    logger = get_logger("docreview.test")

    set_correlation_id("corr-12345")
    assert get_correlation_id() == "corr-12345"
    logger.info("with_correlation")
    assert _last_entry(capture_stream)["correlation_id"] == "corr-12345"

    set_correlation_id(None)
    logger.info("without_correlation")
    assert "correlation_id" not in _last_entry(capture_stream)


def test_correlation_id_processor() -> None:
    """Test the correlation ID processor directly."""
    event_dict: dict[str, Any] = {"event": "test"}

    result = add_correlation_id(None, "", event_dict.copy())
    assert "correlation_id" not in result

    set_correlation_id("test-id")
    result = add_correlation_id(None, "", event_dict.copy())
    assert result["correlation_id"] == "test-id"


def test_review_context_binding(json_config: LoggingConfig, capture_stream: StringIO) -> None:
    """Test that review and reviewer identifiers are bound to subsequent logs."""
    setup_logging(json_config)
    _capture(capture_stream)

    bind_review_context(review_id="R-42", reviewer_id="alice")
    get_logger("module1").info("event1")
    first = _last_entry(capture_stream)
    get_logger("module2").info("event2")
    second = _last_entry(capture_stream)

    assert first["review_id"] == "R-42"
    assert first["reviewer_id"] == "alice"
    assert second["review_id"] == "R-42"


def test_review_context_without_reviewer(
    json_config: LoggingConfig, capture_stream: StringIO
) -> None:
    """Test that reviewer_id is omitted when not supplied."""
    setup_logging(json_config)
    _capture(capture_stream)

    bind_review_context(review_id="R-7")
    get_logger("docreview.test").info("event")

    entry = _last_entry(capture_stream)
    assert entry["review_id"] == "R-7"
    assert "reviewer_id" not in entry


def test_clear_review_context(json_config: LoggingConfig, capture_stream: StringIO) -> None:
    """Test that clear_review_context removes the bound identifiers."""
    setup_logging(json_config)
    _capture(capture_stream)

    bind_review_context(review_id="R-1", reviewer_id="bob")
    clear_review_context()
    get_logger("docreview.test").info("after_clear")

    entry = _last_entry(capture_stream)
    assert "review_id" not in entry
    assert "reviewer_id" not in entry


def test_file_rotation_handler_configuration(tmp_path: Path) -> None:
    """Test that file rotation handler is configured correctly."""
    log_file = tmp_path / "logs" / "docreview.log"
    config = LoggingConfig(
        level="INFO",
        format="json",
        file=log_file,
        rotation_size_mb=10,
        retention_count=3,
    )

    setup_logging(config)

    assert log_file.parent.exists()
    root = logging.getLogger()
    assert len(root.handlers) == 1

    handler = root.handlers[0]
    assert isinstance(handler, logging.handlers.RotatingFileHandler)
    assert handler.maxBytes == 10 * 1024 * 1024
    assert handler.backupCount == 3

    get_logger("docreview.test").info("file_write", data="test")
    handler.flush()

    log_entry = json.loads(log_file.read_text().strip())
    assert log_entry["event"] == "file_write"
    assert log_entry["data"] == "test"


def test_exception_formatting(json_config: LoggingConfig, capture_stream: StringIO) -> None:
    """Test that exceptions are formatted correctly in logs."""
    setup_logging(json_config)
    _capture(capture_stream)

    logger = get_logger("docreview.test")
    try:
        raise ValueError("Test exception")
    except ValueError:
        logger.exception("error_occurred")

    log_entry = _last_entry(capture_stream)
    assert log_entry["level"] == "error"
    assert "ValueError: Test exception" in log_entry["exception"]

"""Tests for logging configuration and formatters."""

import json
import logging
import sys
from datetime import date
from decimal import Decimal

import pytest

from neo_alerts.logging import ComponentLoggerAdapter, get_logger
from neo_alerts.logging.config import (
    ContextualFilter,
    JSONFormatter,
    KeyValueFormatter,
    configure_logging,
)
from neo_alerts.logging.context import log_context


@pytest.fixture
def logger():
    """Create a test logger with handler for capturing output."""
    test_logger = logging.getLogger("test_logger")
    test_logger.setLevel(logging.DEBUG)
    test_logger.handlers.clear()

    yield test_logger

    test_logger.handlers.clear()


@pytest.fixture
def restore_root_logger():
    root_logger = logging.getLogger()
    handlers = list(root_logger.handlers)
    level = root_logger.level
    yield root_logger
    root_logger.handlers[:] = handlers
    root_logger.setLevel(level)


def _record(logger, message="Test message", extra=None):
    return logger.makeRecord("test", logging.INFO, "test.py", 1, message, (), None, extra=extra)


def test_json_formatter_basic(logger):
    """Test JSONFormatter produces valid JSON with mandatory fields."""
    log_obj = json.loads(JSONFormatter().format(_record(logger)))

    assert log_obj["level"] == "INFO"
    assert log_obj["message"] == "Test message"
    assert log_obj["logger"] == "test"
    assert "timestamp" in log_obj


def test_json_formatter_with_extra_fields(logger):
    record = _record(logger, extra={"event": "test.event", "count": 42, "flag": True})

    log_obj = json.loads(JSONFormatter().format(record))

    assert log_obj["event"] == "test.event"
    assert log_obj["count"] == 42
    assert log_obj["flag"] is True


def test_json_formatter_coerces_domain_values(logger):
    """Dates and Decimals from hazard events are rendered as strings."""
    record = _record(
        logger,
        extra={"close_approach_date": date(2025, 11, 4), "miss_distance_km": Decimal("4512345.6789")},
    )

    log_obj = json.loads(JSONFormatter().format(record))

    assert log_obj["close_approach_date"] == "2025-11-04"
    assert log_obj["miss_distance_km"] == "4512345.6789"


def test_json_formatter_includes_exception(logger):
    try:
        raise RuntimeError("boom")
    except RuntimeError:
        record = logger.makeRecord("test", logging.ERROR, "test.py", 1, "Failed", (), sys.exc_info())

    log_obj = json.loads(JSONFormatter().format(record))

    assert "RuntimeError: boom" in log_obj["exc_info"]


def test_timestamp_format_in_json(logger):
    timestamp = json.loads(JSONFormatter().format(_record(logger)))["timestamp"]

    # YYYY-MM-DDTHH:MM:SS.sssZ
    assert timestamp.endswith("Z")
    assert "T" in timestamp
    assert len(timestamp) == 24


def test_json_formatter_no_duplicate_fields(logger):
    log_obj = json.loads(JSONFormatter().format(_record(logger, extra={"event": "test.event"})))

    assert "name" not in log_obj
    assert "msg" not in log_obj
    assert "event" in log_obj


def test_contextual_filter_adds_static_fields(logger):
    record = _record(logger)

    assert ContextualFilter(service="test-service", environment="test").filter(record) is True

    assert record.service == "test-service"
    assert record.environment == "test"


def test_contextual_filter_adds_context_fields(logger):
    with log_context(cycle_id="abc123", recipient="ada@example.com"):
        record = _record(logger)
        ContextualFilter().filter(record)

    assert record.cycle_id == "abc123"
    assert record.recipient == "ada@example.com"


def test_explicit_extra_wins_over_context(logger):
    with log_context(recipient="ada@example.com"):
        record = _record(logger, extra={"recipient": "grace@example.com"})
        ContextualFilter().filter(record)

    assert record.recipient == "grace@example.com"


def test_json_formatter_with_context(logger):
    """Test full pipeline: context + filter + JSON formatter."""
    with log_context(run_id="abc123"):
        record = _record(logger, "Detection run started", extra={"event": "pipeline.run.started"})
        ContextualFilter(service="neo-alerts", environment="test").filter(record)
        log_obj = json.loads(JSONFormatter().format(record))

    assert log_obj["event"] == "pipeline.run.started"
    assert log_obj["service"] == "neo-alerts"
    assert log_obj["environment"] == "test"
    assert log_obj["run_id"] == "abc123"


def test_key_value_formatter_basic(logger):
    formatter = KeyValueFormatter("%(asctime)s [%(levelname)s] %(name)s: %(message)s")

    output = formatter.format(_record(logger))

    assert "[INFO]" in output
    assert "Test message" in output


def test_key_value_formatter_with_extras(logger):
    formatter = KeyValueFormatter("%(levelname)s %(message)s")
    record = _record(
        logger,
        extra={"event": "test.event", "count": 42, "skipped": False, "error": None, "reason": "lock held"},
    )

    output = formatter.format(record)

    assert "event=test.event" in output
    assert "count=42" in output
    assert "skipped=false" in output
    assert "error=null" in output
    assert 'reason="lock held"' in output


def test_key_value_formatter_skips_service_fields(logger):
    formatter = KeyValueFormatter("%(message)s")
    record = _record(logger)
    ContextualFilter(service="neo-alerts", environment="test").filter(record)

    assert formatter.format(record) == "Test message"


def test_configure_logging_invalid_level():
    with pytest.raises(ValueError, match="Invalid log level"):
        configure_logging(level="INVALID")


def test_configure_logging_invalid_format():
    with pytest.raises(ValueError, match="Invalid log format"):
        configure_logging(format_type="invalid")


def test_configure_logging_json_format(restore_root_logger):
    configure_logging(level="DEBUG", format_type="json", environment="test")

    assert len(restore_root_logger.handlers) == 1
    assert isinstance(restore_root_logger.handlers[0].formatter, JSONFormatter)
    assert restore_root_logger.level == logging.DEBUG


def test_configure_logging_key_value_format(restore_root_logger):
    configure_logging(level="info", format_type="key-value", environment="test")

    assert isinstance(restore_root_logger.handlers[0].formatter, KeyValueFormatter)
    assert restore_root_logger.level == logging.INFO


def test_configure_logging_quiets_apscheduler(restore_root_logger):
    configure_logging(level="DEBUG")

    assert logging.getLogger("apscheduler").level == logging.WARNING


def test_get_logger_with_component(caplog):
    logger = get_logger("neo_alerts.test", component="dispatcher")

    assert isinstance(logger, ComponentLoggerAdapter)

    with caplog.at_level(logging.INFO, logger="neo_alerts.test"):
        logger.info("Cycle started", extra={"event": "dispatch.cycle.started"})
        logger.info("Override", extra={"component": "sender"})

    assert caplog.records[0].component == "dispatcher"
    assert caplog.records[0].event == "dispatch.cycle.started"
    assert caplog.records[1].component == "sender"


def test_get_logger_without_component():
    assert isinstance(get_logger("neo_alerts.test"), logging.Logger)

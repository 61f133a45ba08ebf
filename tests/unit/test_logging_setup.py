"""
Tests for structured logging setup.
"""

import json
import logging
import sys

import pytest

from concept_llm.logging_setup import PACKAGE_LOGGER, JSONFormatter, configure_logging


def make_record(**extra) -> logging.LogRecord:
    record = logging.LogRecord(
        name="concept_llm.providers.base",
        level=logging.WARNING,
        pathname=__file__,
        lineno=10,
        msg="Model %s not available",
        args=("gpt-x",),
        exc_info=None,
    )
    for key, value in extra.items():
        setattr(record, key, value)
    return record


class TestJSONFormatter:
    """Test JSONFormatter output."""

    def test_core_fields(self) -> None:
        payload = json.loads(JSONFormatter().format(make_record()))

        assert payload["level"] == "WARNING"
        assert payload["logger"] == "concept_llm.providers.base"
        assert payload["message"] == "Model gpt-x not available"
        assert payload["timestamp"].endswith("Z")

    def test_extra_fields_included(self) -> None:
        payload = json.loads(JSONFormatter().format(make_record(provider="openai", latency_ms=12.5)))

        assert payload["provider"] == "openai"
        assert payload["latency_ms"] == 12.5
        assert "args" not in payload

    def test_exception_rendered(self) -> None:
        try:
            raise ValueError("broken")
        except ValueError:
            record = make_record()
            record.exc_info = sys.exc_info()

        payload = json.loads(JSONFormatter().format(record))

        assert "ValueError: broken" in payload["exception"]


@pytest.fixture
def restore_package_logger():
    logger = logging.getLogger(PACKAGE_LOGGER)
    handlers, level, propagate = list(logger.handlers), logger.level, logger.propagate
    yield
    logger.handlers[:] = handlers
    logger.setLevel(level)
    logger.propagate = propagate


@pytest.mark.usefixtures("restore_package_logger")
class TestConfigureLogging:
    """Test configure_logging."""

    def test_single_handler_and_level(self) -> None:
        logger = configure_logging("debug")
        configure_logging("debug")

        assert logger.name == PACKAGE_LOGGER
        assert logger.level == logging.DEBUG
        assert len(logger.handlers) == 1
        assert not isinstance(logger.handlers[0].formatter, JSONFormatter)

    def test_json_format(self) -> None:
        logger = configure_logging("INFO", json_format=True)

        assert isinstance(logger.handlers[0].formatter, JSONFormatter)
        assert logger.level == logging.INFO

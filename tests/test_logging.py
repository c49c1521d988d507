"""Tests for structured logging."""

import logging

import pytest

from synthesis.core.config import Settings
from synthesis.core.logging import (
    ROOT_LOGGER,
    StructuredFormatter,
    configure_logging,
    level_for,
    log_with_context,
)


class _Capture(logging.Handler):
    def __init__(self):
        super().__init__()
        self.records: list[logging.LogRecord] = []

    def emit(self, record):
        self.records.append(record)


@pytest.fixture
def captured():
    logger = logging.getLogger("tests.structured")
    handler = _Capture()
    logger.addHandler(handler)
    logger.setLevel(logging.DEBUG)
    yield logger, handler
    logger.removeHandler(handler)


class TestLogWithContext:
    def test_worksheet_fields_lead_and_extras_follow(self, captured):
        logger, handler = captured

        log_with_context(
            logger, logging.INFO, "Loaded worksheet", harms=2, source="api", project_id="p1", observations=3
        )

        line = StructuredFormatter().format(handler.records[0])
        assert "level=INFO" in line
        assert 'message="Loaded worksheet"' in line
        assert line.index("project_id=p1") < line.index("observations=3") < line.index("harms=2")
        assert line.endswith("source=api")

    def test_missing_context_is_omitted(self, captured):
        logger, handler = captured

        log_with_context(logger, logging.ERROR, "Failed")

        line = StructuredFormatter().format(handler.records[0])
        assert "project_id" not in line
        assert "message=Failed" in line

    def test_exception_is_appended(self, captured):
        logger, handler = captured
        try:
            raise ValueError("boom")
        except ValueError:
            logger.exception("Failed to save observation")

        text = StructuredFormatter().format(handler.records[0])
        assert text.splitlines()[-1] == "ValueError: boom"


class TestConfigureLogging:
    def test_level_follows_environment(self):
        assert level_for(Settings(SYNTHESIS_ENV="dev")) == logging.DEBUG
        assert level_for(Settings(SYNTHESIS_ENV="prod")) == logging.INFO
        assert level_for(Settings(SYNTHESIS_ENV="dev", LOG_LEVEL="warning")) == logging.WARNING
        assert level_for(Settings(SYNTHESIS_ENV="prod", LOG_LEVEL="chatty")) == logging.INFO

    def test_handler_installed_once(self):
        root = configure_logging(Settings(SYNTHESIS_ENV="prod"))
        configure_logging(Settings(SYNTHESIS_ENV="dev"))

        structured = [h for h in root.handlers if isinstance(h.formatter, StructuredFormatter)]
        assert len(structured) == 1
        assert root.name == ROOT_LOGGER
        assert root.level == logging.DEBUG

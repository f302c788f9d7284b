"""
Unit tests for logging helpers.
"""

import io
import logging

import pytest

from gridaction.diagnostics import (
    DiagnosticBuffer,
    LabeledFormatter,
    get_logger,
    setup_logging,
)


def _record(level, message, name="gridaction.test"):
    return logging.LogRecord(name, level, __file__, 1, message, None, None)


class TestDiagnosticBuffer:

    def test_newest_first(self):
        buffer = DiagnosticBuffer()
        buffer.emit(_record(logging.INFO, "first"))
        buffer.emit(_record(logging.WARNING, "second"))
        assert [e.message for e in buffer.entries()] == ["second", "first"]

    def test_capacity(self):
        buffer = DiagnosticBuffer(capacity=2)
        for i in range(5):
            buffer.emit(_record(logging.INFO, f"m{i}"))
        assert len(buffer) == 2
        assert [e.message for e in buffer.entries()] == ["m4", "m3"]

    def test_filter_by_level(self):
        buffer = DiagnosticBuffer()
        buffer.emit(_record(logging.INFO, "info"))
        buffer.emit(_record(logging.ERROR, "bad"))
        assert [e.message for e in buffer.entries("error")] == ["bad"]

    def test_clear(self):
        buffer = DiagnosticBuffer()
        buffer.emit(_record(logging.INFO, "x"))
        buffer.clear()
        assert buffer.entries() == []

    def test_rejects_zero_capacity(self):
        with pytest.raises(ValueError):
            DiagnosticBuffer(capacity=0)

    def test_attached_to_logger(self):
        logger = get_logger("tests.buffer")
        logger.setLevel(logging.DEBUG)
        buffer = DiagnosticBuffer()
        logger.addHandler(buffer)
        try:
            logger.debug("value %d", 3)
        finally:
            logger.removeHandler(buffer)
        entry = buffer.entries()[0]
        assert (entry.level, entry.logger, entry.message) == ("DEBUG", "gridaction.tests.buffer", "value 3")


class TestLabeledFormatter:

    def test_warning_label(self):
        text = LabeledFormatter().format(_record(logging.WARNING, "careful"))
        assert text == "WARN gridaction.test: careful"

    def test_custom_level_uses_name(self):
        logging.addLevelName(25, "NOTICE")
        assert LabeledFormatter().format(_record(25, "hi")).startswith("NOTICE ")


class TestSetupLogging:

    def test_replaces_its_own_handler(self):
        logger = get_logger()
        other = logging.NullHandler()
        logger.addHandler(other)
        first, second = io.StringIO(), io.StringIO()
        try:
            setup_logging(logging.INFO, stream=first)
            setup_logging(logging.INFO, stream=second)
            get_logger("tests.setup").info("hello")

            assert first.getvalue() == ""
            assert second.getvalue() == "INFO gridaction.tests.setup: hello\n"
            assert other in logger.handlers
        finally:
            for handler in list(logger.handlers):
                if getattr(handler, "_gridaction_stream", False):
                    logger.removeHandler(handler)
            logger.removeHandler(other)
            logger.setLevel(logging.NOTSET)

    def test_package_logger_is_silent_by_default(self):
        assert any(isinstance(h, logging.NullHandler) for h in get_logger().handlers)

"""Unit tests for logging setup and formatters."""

import json
import logging
import sys

import pytest

from voicegate.utils.logging import JSONFormatter, TextFormatter, setup_logging


def make_record(message="Voice command processed", level=logging.INFO, **extra):
    record = logging.LogRecord("voicegate.test", level, __file__, 10, message, (), None)
    for key, value in extra.items():
        setattr(record, key, value)
    return record


@pytest.fixture
def restore_root_logger():
    """Put the root logger back the way pytest configured it."""
    root = logging.getLogger()
    handlers = list(root.handlers)
    level = root.level
    yield root
    root.handlers[:] = handlers
    root.setLevel(level)


class TestJSONFormatter:
    """Test structured log output."""

    def test_basic_fields(self):
        """Test the standard fields are present."""
        data = json.loads(JSONFormatter().format(make_record()))

        assert data["level"] == "INFO"
        assert data["logger"] == "voicegate.test"
        assert data["message"] == "Voice command processed"
        assert data["timestamp"].endswith("Z")

    def test_extra_fields(self):
        """Test fields passed through ``extra`` are merged in."""
        data = json.loads(JSONFormatter().format(make_record(reason="duplicate", accepted=False)))

        assert data["reason"] == "duplicate"
        assert data["accepted"] is False
        assert "args" not in data
        assert "levelno" not in data

    def test_exception_info(self):
        """Test exceptions are rendered."""
        try:
            raise RuntimeError("handler exploded")
        except RuntimeError:
            record = logging.LogRecord(
                "voicegate.test", logging.ERROR, __file__, 10, "failed", (), None
            )
            record.exc_info = sys.exc_info()

        data = json.loads(JSONFormatter().format(record))
        assert "RuntimeError: handler exploded" in data["exception"]

    def test_unserializable_extra(self):
        """Test values that are not JSON fall back to their string form."""
        data = json.loads(JSONFormatter().format(make_record(command=object())))
        assert data["command"].startswith("<object object")


class TestTextFormatter:
    """Test human-readable log output."""

    def test_plain_format(self):
        """Test the text layout without colors."""
        output = TextFormatter(use_colors=False).format(make_record())
        assert "[INFO] voicegate.test: Voice command processed" in output

    def test_record_not_mutated(self):
        """Test coloring does not leak into other handlers."""
        formatter = TextFormatter(use_colors=True)
        formatter.use_colors = True
        record = make_record()

        output = formatter.format(record)

        assert "\033[32mINFO\033[0m" in output
        assert record.levelname == "INFO"


class TestSetupLogging:
    """Test root logger configuration."""

    def test_json_setup(self, restore_root_logger):
        """Test JSON format installs a single JSON handler."""
        setup_logging(level="DEBUG", format_type="json")

        assert restore_root_logger.level == logging.DEBUG
        assert len(restore_root_logger.handlers) == 1
        assert isinstance(restore_root_logger.handlers[0].formatter, JSONFormatter)
        assert logging.getLogger("httpx").level == logging.WARNING

    def test_text_setup_and_unknown_level(self, restore_root_logger):
        """Test text format and the INFO fallback for unknown levels."""
        setup_logging(level="chatty", format_type="text")

        assert restore_root_logger.level == logging.INFO
        assert isinstance(restore_root_logger.handlers[0].formatter, TextFormatter)

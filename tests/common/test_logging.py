"""Tests for logging setup and formatters."""

import json
import logging
import sys

import pytest

from unbox.common import LogContext, setup_logging
from unbox.common.logging import JsonFormatter, make_formatter
from unbox.errors import ExtractionError


@pytest.fixture
def restore_root_logger():
    """Restore root logger handlers and level after the test."""
    root = logging.getLogger()
    handlers = list(root.handlers)
    level = root.level
    yield root
    for handler in root.handlers:
        if handler not in handlers:
            handler.close()
    root.handlers[:] = handlers
    root.setLevel(level)


def make_record(message="hello", level=logging.INFO, exc_info=None):
    return logging.getLogger("unbox.test").makeRecord(
        "unbox.test", level, __file__, 10, message, (), exc_info
    )


class TestFormatters:
    """Test the console and file formatters."""

    def test_json_formatter_fields(self):
        """Test that JSON records carry only the basic fields."""
        data = json.loads(JsonFormatter().format(make_record("unpacking")))

        assert set(data) == {"timestamp", "level", "logger", "message"}
        assert data["message"] == "unpacking"
        assert data["level"] == "INFO"
        assert data["logger"] == "unbox.test"

    def test_json_formatter_includes_archive(self):
        """Test that LogContext fields end up in JSON records."""
        logger = logging.getLogger("unbox.test")
        with LogContext(logger, archive="/tmp/a.zip"):
            record = make_record("inside")

        data = json.loads(JsonFormatter().format(record))
        assert data["archive"] == "/tmp/a.zip"

    def test_json_formatter_includes_error_context(self):
        """Test that a logged unbox error brings its context along."""
        try:
            raise ExtractionError("Failed to decode a.tar", path="/tmp/a.tar")
        except ExtractionError:
            record = make_record("failed", logging.ERROR, sys.exc_info())

        data = json.loads(JsonFormatter().format(record))
        assert data["error"] == {
            "type": "ExtractionError",
            "message": "Failed to decode a.tar",
            "context": {"path": "/tmp/a.tar"},
        }

    def test_context_is_removed_on_exit(self):
        """Test that records created after the context carry no fields."""
        logger = logging.getLogger("unbox.test")
        with LogContext(logger, archive="x"):
            pass

        record = make_record()
        assert not hasattr(record, "extra_fields")

    def test_simple_format(self):
        """Test the simple console format."""
        output = make_formatter("simple").format(make_record("done", logging.WARNING))
        assert output == "WARNING  | unbox.test | done"

    def test_detailed_format_contains_location(self):
        """Test that the detailed format shows where the record came from."""
        output = make_formatter("detailed").format(make_record("done"))
        assert "done" in output
        assert "unbox.test" in output
        assert ":10 |" in output


class TestSetupLogging:
    """Test setup_logging."""

    def test_sets_level_and_console_handler(self, restore_root_logger):
        """Test that a single stderr handler is installed."""
        setup_logging(level="debug", format="json")

        assert restore_root_logger.level == logging.DEBUG
        assert len(restore_root_logger.handlers) == 1
        assert isinstance(restore_root_logger.handlers[0].formatter, JsonFormatter)

    def test_file_handler_writes_json(self, restore_root_logger, tmp_path):
        """Test that the optional log file receives JSON records."""
        log_file = tmp_path / "logs" / "unbox.log"
        setup_logging(level="INFO", format="simple", log_file=log_file)

        logging.getLogger("unbox.test").info("to file")
        for handler in restore_root_logger.handlers:
            handler.flush()

        lines = log_file.read_text().splitlines()
        assert json.loads(lines[-1])["message"] == "to file"

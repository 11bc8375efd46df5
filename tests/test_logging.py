"""Tests for logging utilities."""

import logging

import pytest

from tarsnap.logging import (
    TRACE,
    StructuredLogger,
    configure_logging,
    get_level_from_name,
    get_level_from_verbosity,
    get_logger,
    log_performance,
)


class TestLevels:
    """Tests for verbosity and level-name mapping."""

    def test_verbosity_levels(self):
        """Test -v counts map to levels."""
        assert get_level_from_verbosity(0) == logging.INFO
        assert get_level_from_verbosity(1) == logging.DEBUG
        assert get_level_from_verbosity(2) == TRACE
        assert get_level_from_verbosity(5) == TRACE

    def test_level_names(self):
        """Test level names are case-insensitive."""
        assert get_level_from_name("trace") == TRACE
        assert get_level_from_name("DEBUG") == logging.DEBUG
        assert get_level_from_name("Warning") == logging.WARNING

    def test_invalid_level_name(self):
        """Test invalid level name raises."""
        with pytest.raises(ValueError, match="Invalid log level"):
            get_level_from_name("verbose")

    def test_trace_level_registered(self):
        """Test TRACE has a name."""
        assert logging.getLevelName(TRACE) == "TRACE"


class TestConfigureLogging:
    """Tests for configure_logging."""

    def test_configure_default(self):
        """Test default level is INFO with one handler."""
        configure_logging()
        assert logging.root.level == logging.INFO
        assert len(logging.root.handlers) == 1

    def test_configure_replaces_handlers(self):
        """Test repeated configuration does not stack handlers."""
        configure_logging()
        configure_logging(level=logging.DEBUG)
        assert len(logging.root.handlers) == 1
        assert logging.root.level == logging.DEBUG

    def test_configure_log_file(self, tmp_path):
        """Test file handler writes detailed records."""
        log_file = tmp_path / "logs" / "tarsnap.log"
        configure_logging(level=logging.WARNING, log_file=log_file, file_level=logging.DEBUG)

        logging.getLogger("tarsnap.test").debug("file only message")
        for handler in logging.root.handlers:
            handler.flush()

        assert logging.root.level == logging.DEBUG
        assert "file only message" in log_file.read_text()
        configure_logging()


class TestLogPerformance:
    """Tests for log_performance."""

    def test_logs_duration(self, caplog):
        """Test duration and context are logged."""
        logger = logging.getLogger("test.perf")
        with caplog.at_level(logging.DEBUG, logger="test.perf"):
            with log_performance(logger, "Secure copy", host="10.0.0.5"):
                pass

        assert "Secure copy completed in" in caplog.text
        assert "(host=10.0.0.5)" in caplog.text

    def test_logs_on_exception(self, caplog):
        """Test timing is logged even when the block raises."""
        logger = logging.getLogger("test.perf.error")
        with caplog.at_level(logging.DEBUG, logger="test.perf.error"):
            with pytest.raises(RuntimeError):
                with log_performance(logger, "Failing step"):
                    raise RuntimeError("boom")

        assert "Failing step completed in" in caplog.text


class TestStructuredLogger:
    """Tests for StructuredLogger."""

    def test_context_appended(self, caplog):
        """Test default context is added to messages."""
        logger = StructuredLogger("test.structured", host="10.0.0.5")
        with caplog.at_level(logging.INFO, logger="test.structured"):
            logger.info("Copying history")

        assert "Copying history (host=10.0.0.5)" in caplog.text

    def test_extra_context_merged(self, caplog):
        """Test per-message context follows default context."""
        logger = StructuredLogger("test.structured.extra", host="h")
        logger.add_context(user="root")
        with caplog.at_level(logging.INFO, logger="test.structured.extra"):
            logger.warning("Copied", path="x.txt")

        assert "Copied (host=h, user=root, path=x.txt)" in caplog.text

    def test_no_context(self, caplog):
        """Test plain message without context."""
        logger = get_logger("test.structured.plain")
        with caplog.at_level(logging.INFO, logger="test.structured.plain"):
            logger.info("Finished.")

        assert caplog.records[-1].getMessage() == "Finished."

    def test_trace(self, caplog):
        """Test trace messages use the TRACE level."""
        logger = get_logger("test.structured.trace")
        with caplog.at_level(TRACE, logger="test.structured.trace"):
            logger.trace("Executing command", command="scp a b")

        assert caplog.records[-1].levelno == TRACE
        assert "command=scp a b" in caplog.text

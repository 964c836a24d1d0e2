"""
Tests for logging_utils module.
"""

import io
import logging
import sys
import os

import pytest

sys.path.insert(0, os.path.dirname(os.path.dirname(os.path.abspath(__file__))))

from logging_utils import (
    ROOT_LOGGER_NAME,
    get_logger,
    configure_logging,
    set_verbose,
    LoggerAdapter,
)


class TestGetLogger:
    """Test get_logger function."""

    def test_returns_logger(self):
        logger = get_logger("test_module")
        assert isinstance(logger, logging.Logger)

    def test_logger_name_prefixed(self):
        logger = get_logger("stage_machine")
        assert logger.name == "gymbuddy.stage_machine"

    def test_strips_src_prefix(self):
        logger = get_logger("src.conversation")
        assert logger.name == "gymbuddy.conversation"

    def test_already_prefixed_name_unchanged(self):
        logger = get_logger("gymbuddy.client")
        assert logger.name == "gymbuddy.client"

    def test_root_name_unchanged(self):
        assert get_logger(ROOT_LOGGER_NAME).name == ROOT_LOGGER_NAME

    def test_multiple_calls_same_logger(self):
        logger1 = get_logger("same_module")
        logger2 = get_logger("same_module")
        assert logger1 is logger2


class TestConfigureLogging:
    """Test configure_logging function."""

    def test_configures_once(self):
        root = logging.getLogger(ROOT_LOGGER_NAME)
        initial_handlers = len(root.handlers)

        configure_logging()
        configure_logging(stream=io.StringIO())
        configure_logging()

        assert len(root.handlers) <= initial_handlers + 1


class TestSetVerbose:
    """Test set_verbose function."""

    def test_set_verbose_true(self):
        set_verbose(True)
        root = logging.getLogger(ROOT_LOGGER_NAME)
        assert root.level == logging.DEBUG

    def test_set_verbose_false(self):
        set_verbose(False)
        root = logging.getLogger(ROOT_LOGGER_NAME)
        assert root.level == logging.INFO


class TestLoggerAdapter:
    """Test LoggerAdapter class."""

    def test_callable_logs_info(self, caplog):
        logger = get_logger("test_adapter")
        adapter = LoggerAdapter(logger, verbose=True)

        with caplog.at_level(logging.INFO, logger="gymbuddy.test_adapter"):
            adapter("Stage changed: welcome -> onboarding")

        assert "Stage changed: welcome -> onboarding" in caplog.text

    def test_callable_respects_verbose_false(self, caplog):
        logger = get_logger("test_adapter_quiet")
        adapter = LoggerAdapter(logger, verbose=False)

        with caplog.at_level(logging.DEBUG, logger="gymbuddy.test_adapter_quiet"):
            adapter("Should not appear")
            adapter.debug("Nor this")

        assert "Should not appear" not in caplog.text
        assert "Nor this" not in caplog.text

    def test_debug_when_verbose(self, caplog):
        adapter = LoggerAdapter(get_logger("test_adapter_debug"), verbose=True)

        with caplog.at_level(logging.DEBUG, logger="gymbuddy.test_adapter_debug"):
            adapter.debug("Profile record: {}")

        assert "Profile record: {}" in caplog.text

    def test_wrapped_logger_ignores_verbose(self, caplog):
        """Warnings bypass the verbose gate through the wrapped logger."""
        adapter = LoggerAdapter(get_logger("test_adapter_warning"), verbose=False)

        with caplog.at_level(logging.WARNING, logger="gymbuddy.test_adapter_warning"):
            adapter.logger.warning("Backend unreachable")

        assert "Backend unreachable" in caplog.text


if __name__ == "__main__":
    pytest.main([__file__, "-v"])

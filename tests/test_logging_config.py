"""
Unit tests for utils/logging_config.py functions.
"""
import os
import re
import sys
import logging
import pytest
from unittest.mock import patch, MagicMock

# Add project root to path
project_root = os.path.dirname(os.path.dirname(os.path.abspath(__file__)))
sys.path.insert(0, project_root)

from utils.logging_config import NOISY_LOGGERS, setup_logging, get_logger


def read_log(path):
    for handler in logging.getLogger().handlers:
        handler.flush()
    with open(path, 'r', encoding='utf-8') as f:
        return f.read()


class TestSetupLogging:
    """Test cases for setup_logging function."""

    def test_setup_logging_default(self):
        """Test setup_logging with default parameters."""
        logger = setup_logging()

        assert isinstance(logger, logging.Logger)
        assert logger is logging.getLogger()

    @pytest.mark.parametrize('level_name, level', [
        ('DEBUG', logging.DEBUG),
        ('INFO', logging.INFO),
        ('WARNING', logging.WARNING),
        ('ERROR', logging.ERROR),
        ('debug', logging.DEBUG),
    ])
    def test_setup_logging_levels(self, level_name, level):
        """Test level names (case-insensitive) map to logging levels."""
        assert setup_logging(log_level=level_name).level == level

    def test_setup_logging_invalid_level_defaults_to_info(self):
        """Test setup_logging with invalid log level defaults to INFO."""
        assert setup_logging(log_level='INVALID').level == logging.INFO

    def test_setup_logging_with_file(self, tmp_path):
        """Test setup_logging writes to the log file."""
        log_file = str(tmp_path / 'monitor.log')

        logger = setup_logging(log_file=log_file)
        logger.info("Test message")

        assert 'Test message' in read_log(log_file)

    def test_setup_logging_creates_directory(self, tmp_path):
        """Test setup_logging creates the log directory if it doesn't exist."""
        log_file = tmp_path / 'logs' / 'subdir' / 'monitor.log'

        setup_logging(log_file=str(log_file))

        assert log_file.parent.is_dir()

    def test_setup_logging_replaces_handlers(self, tmp_path):
        """Test repeated setup does not accumulate handlers."""
        log_file = str(tmp_path / 'monitor.log')
        setup_logging(log_file=log_file)
        logger = setup_logging(log_file=log_file)

        assert len(logger.handlers) == 2

    def test_setup_logging_has_console_handler(self):
        """Test that setup_logging adds a console handler."""
        logger = setup_logging()

        assert any(type(h) is logging.StreamHandler for h in logger.handlers)

    def test_setup_logging_quiets_noisy_loggers(self):
        """Test third-party loggers stay at WARNING even at DEBUG."""
        setup_logging(log_level='DEBUG')

        for name in NOISY_LOGGERS:
            assert logging.getLogger(name).level == logging.WARNING

    def test_setup_logging_noisy_loggers_follow_higher_level(self):
        setup_logging(log_level='ERROR')

        assert logging.getLogger('urllib3').level == logging.ERROR

    def test_setup_logging_uses_config_log_level(self):
        """Test that setup_logging reads LOG_LEVEL from config.py when not given."""
        mock_config = MagicMock()
        mock_config.LOG_LEVEL = 'WARNING'

        with patch.dict('sys.modules', {'config': mock_config}):
            logger = setup_logging()

        assert logger.level == logging.WARNING


class TestGetLogger:
    """Test cases for get_logger function."""

    def test_get_logger_with_name(self):
        """Test that get_logger returns logger with correct name."""
        assert get_logger('utils.episode_scraper').name == 'utils.episode_scraper'

    def test_get_logger_same_instance(self):
        """Test that get_logger returns same instance for same name."""
        assert get_logger('same.name') is get_logger('same.name')

    def test_get_logger_can_log(self, tmp_path):
        """Test that returned logger can log at every level."""
        log_file = str(tmp_path / 'monitor.log')
        setup_logging(log_file=log_file, log_level='DEBUG')
        logger = get_logger('test.logger')

        logger.debug("Debug message")
        logger.warning("Warning message")

        content = read_log(log_file)
        assert 'Debug message' in content
        assert 'Warning message' in content


class TestLoggingFormat:
    """Test cases for logging format."""

    def test_log_line_layout(self, tmp_path):
        """Test a line carries timestamp, logger name and level."""
        log_file = str(tmp_path / 'monitor.log')
        setup_logging(log_file=log_file)
        get_logger('utils.monitor_scheduler').info("Polling homepage")

        line = read_log(log_file).strip().splitlines()[-1]
        assert re.match(r'\d{4}-\d{2}-\d{2} \d{2}:\d{2}:\d{2},\d{3} - utils\.monitor_scheduler - INFO - '
                        r'Polling homepage$', line)
